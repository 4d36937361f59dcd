"""Multi-layer (conjunctive) tool policy evaluation.

A tool is permitted only if every present layer permits it. Two code paths
share the single-layer matcher:

- Boolean path (``is_tool_allowed_by_policies``, ``filter_tools_by_policies``)
  for hot filtering before a completion call.
- Audit path (``evaluate_tool_policy``, ``evaluate_tool_access``) reporting
  which layer denied and the matching deny pattern.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..config import load_tool_policy_config
from ..exceptions import ToolPolicyDeniedError
from .arguments import validate_tool_arguments
from .audit import AuditOutcome, ToolAuditEntry, ToolAuditLogger
from .categories import get_category_config, get_tool_classification, get_tool_risk_level, tool_requires_approval
from .constants import AccessCheck
from .groups import normalize_tool_name
from .matching import (
    PolicyLike,
    ToolT,
    compile_patterns,
    is_tool_allowed_by_policy,
    make_detailed_policy_matcher,
    make_tool_policy_matcher,
)
from .resolution import ConfigLike, EffectiveToolPolicies, collect_policies
from .session import SessionToolPermissions, check_tool_rate_limit, is_tool_allowed_by_session


@dataclass
class PolicyEvaluationResult:
    """Audit-friendly outcome of a multi-layer check.

    ``denied_by`` is a :class:`PolicyLayer` value, or an :class:`AccessCheck`
    value for denials from :func:`evaluate_tool_access`. Classification fields
    are filled for classified tools. ``requires_approval`` is ``True`` when
    the tool needs human approval and ``None`` otherwise.
    """

    allowed: bool = True
    denied_by: Optional[str] = None
    denied_by_pattern: Optional[str] = None
    category: Optional[str] = None
    risk_level: Optional[str] = None
    requires_approval: Optional[bool] = None

    @property
    def denied(self) -> bool:
        return not self.allowed


# ── Boolean Path ────────────────────────────────────────


def is_tool_allowed_by_policies(name: str, policies: Sequence[Optional[PolicyLike]]) -> bool:
    """True iff every non-``None`` policy permits the name."""
    return all(is_tool_allowed_by_policy(name, policy) for policy in policies)


def find_denying_policy_index(name: str, policies: Sequence[Optional[PolicyLike]]) -> Optional[int]:
    """Index of the first policy in the list that denies the name, or ``None``."""
    for index, policy in enumerate(policies):
        if not is_tool_allowed_by_policy(name, policy):
            return index
    return None


def filter_tools_by_policies(tools: list[ToolT], policies: EffectiveToolPolicies) -> list[ToolT]:
    """Keep the tool descriptors permitted by every layer, in input order.

    Each layer is compiled once for the whole list.
    """
    matchers = [make_tool_policy_matcher(policy) for policy in collect_policies(policies) if policy is not None]
    return [tool for tool in tools if all(matcher(tool.name) for matcher in matchers)]


# ── Audit Path ──────────────────────────────────────────


def evaluate_tool_policy(name: str, policies: EffectiveToolPolicies) -> PolicyEvaluationResult:
    """Evaluate a name against every layer, stopping at the first denial.

    Layers are checked in :attr:`PolicyLayer.ORDER`. Allowed results carry
    the tool's category, risk level and approval requirement when known.
    """
    for layer, policy in policies.layers():
        if policy is None:
            continue
        allowed, denied_by_pattern = make_detailed_policy_matcher(policy)(name)
        if not allowed:
            return PolicyEvaluationResult(allowed=False, denied_by=layer, denied_by_pattern=denied_by_pattern)

    classification = get_tool_classification(name)
    if classification is None:
        return PolicyEvaluationResult(allowed=True)
    return PolicyEvaluationResult(
        allowed=True,
        category=classification.category,
        risk_level=get_tool_risk_level(name),
        requires_approval=tool_requires_approval(name) or None,
    )


def ensure_tool_allowed(name: str, policies: EffectiveToolPolicies) -> PolicyEvaluationResult:
    """Like :func:`evaluate_tool_policy`, but raise on denial.

    Raises:
        ToolPolicyDeniedError: If any layer denies the tool.
    """
    result = evaluate_tool_policy(name, policies)
    if not result.allowed:
        raise ToolPolicyDeniedError(name, denied_by=result.denied_by, denied_by_pattern=result.denied_by_pattern)
    return result


def _category_deny_pattern(name: str, category: Optional[str], config: Optional[ConfigLike]) -> Optional[str]:
    if category is None:
        return None
    category_config = get_category_config(category, config)
    if category_config is None or not category_config.deny:
        return None
    patterns = compile_patterns(category_config.deny)
    normalized = normalize_tool_name(name)
    for pattern in patterns:
        if pattern.matches(normalized):
            return pattern.source
    return None


def evaluate_tool_access(
    tool_name: str,
    policies: EffectiveToolPolicies,
    *,
    tool_args: Optional[Mapping[str, Any]] = None,
    session: Optional[SessionToolPermissions] = None,
    config: Optional[ConfigLike] = None,
    audit_enabled: Optional[bool] = None,
    audit_logger: Optional[ToolAuditLogger] = None,
) -> PolicyEvaluationResult:
    """Gate a tool invocation through every check.

    Order:
    1. Session revocation → deny.
    2. Policy layers (skipped when the session grants the tool).
    3. Category deny patterns from ``tools.categories``.
    4. Argument rules (when ``tool_args`` and ``config`` are given).
    5. Rate limit (when ``session`` and ``config`` are given; records the call).
    6. Approval requirement.

    Audit entries are recorded when ``audit_enabled`` is true, or when it is
    ``None`` and ``config.tools.audit_enabled`` is set. Entries go to
    ``audit_logger`` (which also appends them to the session) or, without a
    logger, to the session's own log.
    """
    started = time.perf_counter()
    resolved = load_tool_policy_config(config) if config is not None else None
    normalized = normalize_tool_name(tool_name)
    classification = get_tool_classification(normalized)
    category = classification.category if classification is not None else None
    risk_level = get_tool_risk_level(normalized, resolved)

    if audit_enabled is None:
        audit_enabled = bool(resolved is not None and resolved.tools is not None and resolved.tools.audit_enabled)

    def audit(outcome: str, denied_by: Optional[str] = None) -> None:
        if not audit_enabled:
            return
        entry = ToolAuditEntry(
            tool_name=tool_name,
            normalized_tool_name=normalized,
            outcome=outcome,
            category=category,
            risk_level=risk_level,
            denied_by=denied_by,
            agent_id=policies.agent_id,
            session_id=session.session_id if session is not None else None,
            evaluation_us=round((time.perf_counter() - started) * 1_000_000),
        )
        if audit_logger is not None:
            audit_logger.record(entry, session)
        elif session is not None:
            session.audit_log.append(entry)

    def deny(denied_by: str, pattern: Optional[str], outcome: str = AuditOutcome.DENIED) -> PolicyEvaluationResult:
        audit(outcome, denied_by)
        return PolicyEvaluationResult(
            allowed=False,
            denied_by=denied_by,
            denied_by_pattern=pattern,
            category=category,
            risk_level=risk_level,
        )

    session_opinion = is_tool_allowed_by_session(normalized, session)
    if session_opinion is False:
        return deny(AccessCheck.SESSION_REVOCATION, f"session-revocation:{normalized}")

    if session_opinion is not True:
        policy_result = evaluate_tool_policy(tool_name, policies)
        if not policy_result.allowed:
            audit(AuditOutcome.DENIED, policy_result.denied_by)
            return policy_result

    category_pattern = _category_deny_pattern(normalized, category, resolved)
    if category_pattern is not None:
        return deny(AccessCheck.CATEGORY, category_pattern)

    if tool_args is not None and resolved is not None:
        arg_result = validate_tool_arguments(tool_name, tool_args, resolved)
        if not arg_result.valid:
            return deny(AccessCheck.ARGUMENT_VALIDATION, arg_result.message, AuditOutcome.ARGUMENT_INVALID)

    if session is not None and resolved is not None:
        if not check_tool_rate_limit(tool_name, session, resolved):
            return deny(AccessCheck.RATE_LIMIT, f"rate-limit:{normalized}", AuditOutcome.RATE_LIMITED)

    requires_approval = tool_requires_approval(normalized, resolved)
    audit(AuditOutcome.APPROVAL_REQUIRED if requires_approval else AuditOutcome.ALLOWED)

    return PolicyEvaluationResult(
        allowed=True,
        category=category,
        risk_level=risk_level,
        requires_approval=requires_approval or None,
    )


__all__ = [
    "PolicyEvaluationResult",
    "ensure_tool_allowed",
    "evaluate_tool_access",
    "evaluate_tool_policy",
    "filter_tools_by_policies",
    "find_denying_policy_index",
    "is_tool_allowed_by_policies",
]
