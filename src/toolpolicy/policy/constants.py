"""Static tool registries for the tool policy engine.

Provides:
- ``PolicyLayer``: names of the independently configured policy layers.
- ``AccessCheck``: non-layer checks that can deny a tool in the access gate.
- ``ToolCategory`` / ``ToolRiskLevel``: functional classification of tools.
- ``TOOL_NAME_ALIASES``, ``TOOL_GROUPS``, ``TOOL_PROFILES``: read-only lookup tables.
- ``DEFAULT_SUBAGENT_TOOL_DENY``: baseline deny set for spawned subagents.

All tables are built once at import time and exposed through read-only views.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


class PolicyLayer:
    """Policy layers in evaluation order.

    Order only matters for audit attribution: a tool must pass every layer.
    """

    GLOBAL = "global"
    GLOBAL_PROVIDER = "global-provider"
    AGENT = "agent"
    AGENT_PROVIDER = "agent-provider"
    GROUP = "group"
    SUBAGENT = "subagent"

    ORDER = ("global", "global-provider", "agent", "agent-provider", "group", "subagent")


class AccessCheck:
    """Checks outside the policy layers that ``evaluate_tool_access`` may deny on."""

    SESSION_REVOCATION = "session-revocation"
    CATEGORY = "category"
    ARGUMENT_VALIDATION = "argument-validation"
    RATE_LIMIT = "rate-limit"


class ToolCategory:
    """Broad functional category of a tool. Each tool belongs to exactly one."""

    READ_ONLY = "read-only"
    WRITE = "write"
    EXECUTE = "execute"
    NETWORK = "network"
    ADMIN = "admin"
    SESSION = "session"

    ALL = frozenset({"read-only", "write", "execute", "network", "admin", "session"})


class ToolRiskLevel:
    """Risk level of a tool.

    Hierarchy: ``none`` < ``low`` < ``medium`` < ``high`` < ``critical``
    """

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    HIERARCHY = ("none", "low", "medium", "high", "critical")


class ToolProfile:
    """Named profile presets."""

    MINIMAL = "minimal"
    CODING = "coding"
    ANALYSIS = "analysis"
    FULL = "full"

    ALL = frozenset({"minimal", "coding", "analysis", "full"})


# ── Aliases ─────────────────────────────────────────────
# Legacy short names → canonical tool names.

TOOL_NAME_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "bash": "bash_execute",
        "read": "file_read",
        "write": "file_write",
        "edit": "file_edit",
        "delete": "file_delete",
        "list": "file_list",
        "fetch": "web_fetch",
        "search": "web_search",
    }
)


# ── Tool Groups ─────────────────────────────────────────
# Referenced in allow/deny lists as ``group:<name>``.

_FS_TOOLS = ("file_read", "file_write", "file_list", "file_delete", "file_edit")
_RUNTIME_TOOLS = ("bash_execute",)
_WEB_TOOLS = ("web_fetch", "web_search")
_SESSION_TOOLS = ("session_spawn", "session_list", "session_status", "session_send", "session_history")
_MEMORY_TOOLS = ("memory_search", "memory_get")
_ANALYSIS_TOOLS = (
    "dependency_analyze",
    "codebase_analysis",
    "drift_detection",
    "pattern_standardize",
    "governance_report",
)
_GIT_TOOLS = ("git_helpers", "git_worktree")
_TESTING_TOOLS = ("test_baseline",)

TOOL_GROUPS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "group:fs": _FS_TOOLS,
        "group:runtime": _RUNTIME_TOOLS,
        "group:web": _WEB_TOOLS,
        "group:sessions": _SESSION_TOOLS,
        "group:memory": _MEMORY_TOOLS,
        "group:analysis": _ANALYSIS_TOOLS,
        "group:git": _GIT_TOOLS,
        "group:testing": _TESTING_TOOLS,
        "group:wundr": (
            _FS_TOOLS
            + _RUNTIME_TOOLS
            + _WEB_TOOLS
            + _SESSION_TOOLS
            + _MEMORY_TOOLS
            + _ANALYSIS_TOOLS
            + _GIT_TOOLS
            + _TESTING_TOOLS
        ),
    }
)


# ── Profiles ────────────────────────────────────────────
# Profile → (allow, deny) fragments. ``None`` means "no entries".

TOOL_PROFILES: Mapping[str, Mapping[str, tuple[str, ...] | None]] = MappingProxyType(
    {
        ToolProfile.MINIMAL: MappingProxyType({"allow": ("session_status",), "deny": None}),
        ToolProfile.CODING: MappingProxyType(
            {
                "allow": ("group:fs", "group:runtime", "group:sessions", "group:memory", "group:git"),
                "deny": None,
            }
        ),
        ToolProfile.ANALYSIS: MappingProxyType(
            {"allow": ("group:analysis", "file_read", "file_list", "group:git"), "deny": None}
        ),
        ToolProfile.FULL: MappingProxyType({"allow": None, "deny": None}),  # No restrictions
    }
)


# ── Subagent Baseline ───────────────────────────────────

DEFAULT_SUBAGENT_TOOL_DENY: tuple[str, ...] = (
    # Session management is left to the parent agent
    "session_list",
    "session_history",
    "session_send",
    "session_spawn",
    "session_status",
    # Dangerous runtime tools
    "bash_execute",
    "file_delete",
    # Memory context arrives in the spawn prompt
    "memory_search",
    "memory_get",
)


# ── Categories ──────────────────────────────────────────

TOOL_CATEGORY_MAP: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        # tool: (category, risk)
        "file_read": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "file_list": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "memory_search": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "memory_get": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "codebase_analysis": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "drift_detection": (ToolCategory.READ_ONLY, ToolRiskLevel.NONE),
        "dependency_analyze": (ToolCategory.READ_ONLY, ToolRiskLevel.LOW),
        "file_write": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "file_edit": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "file_delete": (ToolCategory.WRITE, ToolRiskLevel.MEDIUM),
        "pattern_standardize": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "governance_report": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "git_helpers": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "git_worktree": (ToolCategory.WRITE, ToolRiskLevel.MEDIUM),
        "test_baseline": (ToolCategory.WRITE, ToolRiskLevel.LOW),
        "bash_execute": (ToolCategory.EXECUTE, ToolRiskLevel.HIGH),
        "web_fetch": (ToolCategory.NETWORK, ToolRiskLevel.MEDIUM),
        "web_search": (ToolCategory.NETWORK, ToolRiskLevel.LOW),
        "session_spawn": (ToolCategory.SESSION, ToolRiskLevel.MEDIUM),
        "session_list": (ToolCategory.SESSION, ToolRiskLevel.LOW),
        "session_status": (ToolCategory.SESSION, ToolRiskLevel.NONE),
        "session_send": (ToolCategory.SESSION, ToolRiskLevel.MEDIUM),
        "session_history": (ToolCategory.SESSION, ToolRiskLevel.LOW),
    }
)

CATEGORY_DEFAULT_RISK: Mapping[str, str] = MappingProxyType(
    {
        ToolCategory.READ_ONLY: ToolRiskLevel.NONE,
        ToolCategory.WRITE: ToolRiskLevel.LOW,
        ToolCategory.EXECUTE: ToolRiskLevel.HIGH,
        ToolCategory.NETWORK: ToolRiskLevel.MEDIUM,
        ToolCategory.ADMIN: ToolRiskLevel.CRITICAL,
        ToolCategory.SESSION: ToolRiskLevel.MEDIUM,
    }
)

APPROVAL_REQUIRED_CATEGORIES = frozenset({ToolCategory.EXECUTE, ToolCategory.ADMIN})


__all__ = [
    "APPROVAL_REQUIRED_CATEGORIES",
    "CATEGORY_DEFAULT_RISK",
    "DEFAULT_SUBAGENT_TOOL_DENY",
    "TOOL_CATEGORY_MAP",
    "TOOL_GROUPS",
    "TOOL_NAME_ALIASES",
    "TOOL_PROFILES",
    "AccessCheck",
    "PolicyLayer",
    "ToolCategory",
    "ToolProfile",
    "ToolRiskLevel",
]
