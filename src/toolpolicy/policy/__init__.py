"""Layered tool access control for agent sessions.

Defines:
- PolicyLayer / AccessCheck: labels reported when a tool is denied
- TOOL_GROUPS / TOOL_PROFILES / TOOL_NAME_ALIASES: built-in tables
- Pattern matching: compile allow/deny lists into single-layer matchers
- Resolution: build the six effective layers from hierarchical config
- Evaluation: conjunctive multi-layer checks and the combined access gate
- Categories, argument rules, session grants, rate limits and audit
"""

from .arguments import ArgumentValidationResult, evaluate_argument_rule, resolve_arg_path, validate_tool_arguments
from .audit import AuditOutcome, AuditSummary, ToolAuditEntry, ToolAuditListener, ToolAuditLogger
from .categories import (
    ToolClassification,
    get_category_config,
    get_tool_classification,
    get_tool_risk_level,
    get_tools_at_or_above_risk,
    get_tools_by_category,
    tool_requires_approval,
)
from .constants import (
    APPROVAL_REQUIRED_CATEGORIES,
    CATEGORY_DEFAULT_RISK,
    DEFAULT_SUBAGENT_TOOL_DENY,
    TOOL_CATEGORY_MAP,
    TOOL_GROUPS,
    TOOL_NAME_ALIASES,
    TOOL_PROFILES,
    AccessCheck,
    PolicyLayer,
    ToolCategory,
    ToolProfile,
    ToolRiskLevel,
)
from .evaluation import (
    PolicyEvaluationResult,
    ensure_tool_allowed,
    evaluate_tool_access,
    evaluate_tool_policy,
    filter_tools_by_policies,
    find_denying_policy_index,
    is_tool_allowed_by_policies,
)
from .groups import expand_tool_groups, normalize_tool_list, normalize_tool_name, resolve_tool_profile_policy
from .matching import (
    CompiledPattern,
    NamedTool,
    PolicyLike,
    as_tool_policy,
    compile_pattern,
    compile_patterns,
    filter_tool_names_by_policy,
    filter_tools_by_policy,
    find_matching_pattern,
    is_tool_allowed_by_policy,
    make_detailed_policy_matcher,
    make_tool_policy_matcher,
    matches_any,
)
from .resolution import (
    ConfigLike,
    EffectiveToolPolicies,
    collect_explicit_allowlist,
    collect_policies,
    get_default_subagent_deny_list,
    is_default_subagent_denied,
    pick_tool_policy,
    resolve_effective_tool_policy,
    resolve_group_member_policy,
    resolve_group_tool_policy,
    resolve_provider_tool_policy,
    resolve_subagent_tool_policy,
    union_allow,
)
from .session import (
    RateLimitStatus,
    SessionToolPermissions,
    check_tool_rate_limit,
    create_session_tool_permissions,
    get_tool_rate_limit_status,
    grant_session_tool,
    is_tool_allowed_by_session,
    revoke_session_tool,
)

__all__ = [
    "APPROVAL_REQUIRED_CATEGORIES",
    "CATEGORY_DEFAULT_RISK",
    "DEFAULT_SUBAGENT_TOOL_DENY",
    "TOOL_CATEGORY_MAP",
    "TOOL_GROUPS",
    "TOOL_NAME_ALIASES",
    "TOOL_PROFILES",
    "AccessCheck",
    "ArgumentValidationResult",
    "AuditOutcome",
    "AuditSummary",
    "CompiledPattern",
    "ConfigLike",
    "EffectiveToolPolicies",
    "NamedTool",
    "PolicyEvaluationResult",
    "PolicyLayer",
    "PolicyLike",
    "RateLimitStatus",
    "SessionToolPermissions",
    "ToolAuditEntry",
    "ToolAuditListener",
    "ToolAuditLogger",
    "ToolCategory",
    "ToolClassification",
    "ToolProfile",
    "ToolRiskLevel",
    "as_tool_policy",
    "check_tool_rate_limit",
    "collect_explicit_allowlist",
    "collect_policies",
    "compile_pattern",
    "compile_patterns",
    "create_session_tool_permissions",
    "ensure_tool_allowed",
    "evaluate_argument_rule",
    "evaluate_tool_access",
    "evaluate_tool_policy",
    "expand_tool_groups",
    "filter_tool_names_by_policy",
    "filter_tools_by_policies",
    "filter_tools_by_policy",
    "find_denying_policy_index",
    "find_matching_pattern",
    "get_category_config",
    "get_default_subagent_deny_list",
    "get_tool_classification",
    "get_tool_rate_limit_status",
    "get_tool_risk_level",
    "get_tools_at_or_above_risk",
    "get_tools_by_category",
    "grant_session_tool",
    "is_default_subagent_denied",
    "is_tool_allowed_by_policies",
    "is_tool_allowed_by_policy",
    "is_tool_allowed_by_session",
    "make_detailed_policy_matcher",
    "make_tool_policy_matcher",
    "matches_any",
    "normalize_tool_list",
    "normalize_tool_name",
    "pick_tool_policy",
    "resolve_arg_path",
    "resolve_effective_tool_policy",
    "resolve_group_member_policy",
    "resolve_group_tool_policy",
    "resolve_provider_tool_policy",
    "resolve_subagent_tool_policy",
    "resolve_tool_profile_policy",
    "revoke_session_tool",
    "tool_requires_approval",
    "union_allow",
    "validate_tool_arguments",
]
