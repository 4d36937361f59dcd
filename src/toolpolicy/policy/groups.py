"""Tool name normalization, group expansion, and profile presets.

Provides:
- ``normalize_tool_name()``: lowercase, trim, resolve legacy aliases.
- ``normalize_tool_list()``: normalize a list, dropping empties.
- ``expand_tool_groups()``: replace ``group:<id>`` references with member tools.
- ``resolve_tool_profile_policy()``: profile name → ``ToolPolicy`` preset.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..config import ToolPolicy
from .constants import TOOL_GROUPS, TOOL_NAME_ALIASES, TOOL_PROFILES

logger = logging.getLogger(__name__)


def normalize_tool_name(name: Any) -> str:
    """Normalize a tool name: lowercase, trim, and resolve aliases.

    Idempotent: normalizing an already-normalized name returns it unchanged.
    Non-string input normalizes to ``""``.

    Example::

        >>> normalize_tool_name("  Bash ")
        'bash_execute'
        >>> normalize_tool_name("file_read")
        'file_read'
    """
    if not isinstance(name, str):
        return ""
    normalized = name.strip().lower()
    return TOOL_NAME_ALIASES.get(normalized, normalized)


def normalize_tool_list(names: Optional[Iterable[Any]]) -> list[str]:
    """Normalize every entry and drop the ones that end up empty.

    Any iterable of names is accepted (lists, tuples, sets, generators). A bare
    string or a mapping is not a name list and yields ``[]``.
    """
    if isinstance(names, (str, bytes, Mapping)) or not isinstance(names, Iterable):
        return []
    return [normalized for normalized in map(normalize_tool_name, names) if normalized]


def expand_tool_groups(patterns: Optional[Iterable[Any]]) -> list[str]:
    """Expand ``group:<id>`` references into their member tool names.

    Entries are normalized first; unknown entries (including unknown group ids)
    are kept as-is. The result is deduplicated, first occurrence wins.

    Args:
        patterns: Raw pattern strings from an allow/deny list.

    Returns:
        Deduplicated list of tool names and patterns.

    Example::

        >>> sorted(expand_tool_groups(["group:git", "git_helpers", "web_*"]))
        ['git_helpers', 'git_worktree', 'web_*']
    """
    expanded: dict[str, None] = {}
    for value in normalize_tool_list(patterns):
        for name in TOOL_GROUPS.get(value, (value,)):
            expanded.setdefault(name, None)
    return list(expanded)


def resolve_tool_profile_policy(profile: Optional[str]) -> Optional[ToolPolicy]:
    """Resolve a named profile to a fresh ``ToolPolicy``.

    Returns ``None`` for a missing or unknown profile, and for profiles that
    impose no restrictions (``full``).

    The returned policy still holds group references; they are expanded when
    the policy is compiled.
    """
    if not isinstance(profile, str) or not profile:
        return None

    preset = TOOL_PROFILES.get(profile)
    if preset is None:
        logger.debug("Unknown tool profile '%s'", profile)
        return None

    allow, deny = preset["allow"], preset["deny"]
    if allow is None and deny is None:
        return None

    return ToolPolicy(
        allow=list(allow) if allow is not None else None,
        deny=list(deny) if deny is not None else None,
    )


__all__ = [
    "expand_tool_groups",
    "normalize_tool_list",
    "normalize_tool_name",
    "resolve_tool_profile_policy",
]
