"""Tool categories, risk levels, and approval requirements.

Every built-in tool is classified into a :class:`ToolCategory` with a
:class:`ToolRiskLevel`. Tools in ``execute`` and ``admin`` categories require
explicit approval by default; the ``tools.categories`` config block may
override risk level and approval per category.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from ..config import ToolCategoryConfig, WundrToolPolicyConfig, load_tool_policy_config
from .constants import APPROVAL_REQUIRED_CATEGORIES, CATEGORY_DEFAULT_RISK, TOOL_CATEGORY_MAP, ToolRiskLevel
from .groups import normalize_tool_name
from .resolution import ConfigLike


class ToolClassification(NamedTuple):
    category: str
    risk_level: str


def get_tool_classification(name: str) -> Optional[ToolClassification]:
    """Category and built-in risk level of a tool, or ``None`` if unclassified."""
    entry = TOOL_CATEGORY_MAP.get(normalize_tool_name(name))
    if entry is None:
        return None
    return ToolClassification(*entry)


def get_tools_by_category(category: str) -> list[str]:
    """All built-in tools in a category."""
    return [tool for tool, (tool_category, _) in TOOL_CATEGORY_MAP.items() if tool_category == category]


def get_tools_at_or_above_risk(min_risk: str) -> list[str]:
    """All built-in tools whose risk level is at least ``min_risk``.

    Returns an empty list for an unknown risk level.
    """
    hierarchy = ToolRiskLevel.HIERARCHY
    try:
        min_index = hierarchy.index(min_risk)
    except ValueError:
        return []
    return [tool for tool, (_, risk) in TOOL_CATEGORY_MAP.items() if hierarchy.index(risk) >= min_index]


def get_category_config(category: str, config: Optional[ConfigLike]) -> Optional[ToolCategoryConfig]:
    """Configured overrides for a category, if any."""
    if config is None:
        return None
    resolved: WundrToolPolicyConfig = load_tool_policy_config(config)
    if resolved.tools is None:
        return None
    return resolved.tools.categories.get(category)


def get_tool_risk_level(name: str, config: Optional[ConfigLike] = None) -> Optional[str]:
    """Effective risk level: category override, then built-in tool risk, then category default."""
    classification = get_tool_classification(name)
    if classification is None:
        return None

    category_config = get_category_config(classification.category, config)
    if category_config is not None and category_config.risk_level is not None:
        return category_config.risk_level
    return classification.risk_level or CATEGORY_DEFAULT_RISK.get(classification.category)


def tool_requires_approval(name: str, config: Optional[ConfigLike] = None) -> bool:
    """Whether a tool needs explicit approval before execution.

    Unclassified tools never require approval.
    """
    classification = get_tool_classification(name)
    if classification is None:
        return False

    category_config = get_category_config(classification.category, config)
    if category_config is not None and category_config.requires_approval is not None:
        return category_config.requires_approval
    return classification.category in APPROVAL_REQUIRED_CATEGORIES


__all__ = [
    "ToolClassification",
    "get_category_config",
    "get_tool_classification",
    "get_tool_risk_level",
    "get_tools_at_or_above_risk",
    "get_tools_by_category",
    "tool_requires_approval",
]
