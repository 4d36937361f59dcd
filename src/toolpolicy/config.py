"""Configuration contracts for the tool policy engine.

Two kinds of configuration live here:

- The hierarchical tool policy configuration (``WundrToolPolicyConfig`` and the
  models it nests). It is produced externally by the daemon's config loader
  and handed to the engine as a mapping or a validated model. Keys are accepted
  in either camelCase (as written in daemon config files) or snake_case.
- ``EngineConfig``: process-level settings (logging, audit buffer) loaded once
  via :func:`load_engine_config_from_env`.

Malformed policy entries never fail validation: a pattern list that is not an
iterable of names is treated as absent, non-string patterns are dropped, and
non-mapping blocks are ignored, so one bad entry cannot lock out or open up an
entire layer. Invalid typed entries (rate limits, argument rules, category
overrides) are dropped unless validated strictly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_POLICY_MODEL_CONFIG = ConfigDict(extra="ignore", populate_by_name=True)


def _coerce_pattern_list(value: Any) -> Optional[list[str]]:
    """Keep the string entries of any iterable; bare strings and mappings are absent."""
    if value is None:
        return None
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        logger.debug("Ignoring non-list pattern entry: %r", type(value).__name__)
        return None
    items = list(value)
    patterns = [item for item in items if isinstance(item, str)]
    if len(patterns) != len(items):
        logger.debug("Dropped %d non-string pattern(s)", len(items) - len(patterns))
    return patterns


def _coerce_model(value: Any, model: type[BaseModel]) -> Any:
    """Pass mappings and ``model`` instances through; other models are dumped, anything else is absent."""
    if value is None or isinstance(value, (model, Mapping)):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    logger.debug("Ignoring non-mapping %s entry: %r", model.__name__, type(value).__name__)
    return None


def _coerce_mapping(value: Any, model: type[BaseModel]) -> Optional[dict[str, Any]]:
    """Keep string keys whose values coerce to ``model`` input."""
    if value is None:
        return None
    if not isinstance(value, Mapping):
        logger.debug("Ignoring non-mapping config entry: %r", type(value).__name__)
        return None
    coerced = {}
    for key, item in value.items():
        if not isinstance(key, str):
            continue
        item = _coerce_model(item, model)
        if item is not None:
            coerced[key] = item
    return coerced


def _is_strict(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("strict"))


def _validate_entries(
    value: Any,
    handler: ValidatorFunctionWrapHandler,
    info: ValidationInfo,
) -> dict[str, Any]:
    """Validate a keyed block entry by entry, dropping invalid entries unless strict."""
    if _is_strict(info):
        return handler(value)
    if not isinstance(value, Mapping):
        logger.debug("Ignoring non-mapping %s block: %r", info.field_name, type(value).__name__)
        return {}
    kept: dict[str, Any] = {}
    for key, item in value.items():
        try:
            kept.update(handler({key: item}))
        except ValidationError as e:
            logger.debug("Dropped invalid %s entry %r: %d error(s)", info.field_name, key, e.error_count())
    return kept


# ── Policy Models ───────────────────────────────────────


class ToolPolicy(BaseModel):
    """A single layer's rule set.

    Patterns are exact tool names, ``*`` wildcards (``file_*``), the universal
    wildcard ``*``, or group references (``group:fs``).

    - ``deny`` is evaluated first and always wins.
    - ``allow`` absent or empty → the layer is open.
    - ``allow`` non-empty → only matching names pass.
    """

    model_config = _POLICY_MODEL_CONFIG

    allow: Optional[list[str]] = None
    deny: Optional[list[str]] = None

    @field_validator("allow", "deny", mode="before")
    @classmethod
    def validate_patterns(cls, v: Any) -> Optional[list[str]]:
        return _coerce_pattern_list(v)


class ToolPolicyConfig(ToolPolicy):
    """Policy block as written in configuration.

    Adds ``also_allow`` (additive allow entries), a named ``profile`` and
    provider-specific overrides keyed by provider name or ``provider/model``.
    """

    also_allow: Optional[list[str]] = Field(default=None, alias="alsoAllow")
    profile: Optional[str] = None
    by_provider: Optional[dict[str, ToolPolicyConfig]] = Field(default=None, alias="byProvider")

    @field_validator("also_allow", mode="before")
    @classmethod
    def validate_also_allow(cls, v: Any) -> Optional[list[str]]:
        return _coerce_pattern_list(v)

    @field_validator("profile", mode="before")
    @classmethod
    def validate_profile(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("by_provider", mode="before")
    @classmethod
    def validate_by_provider(cls, v: Any) -> Optional[dict[str, Any]]:
        return _coerce_mapping(v, ToolPolicyConfig)


class GroupToolPolicyConfig(ToolPolicyConfig):
    """Group/team policy with optional per-member overrides (``*`` = any member)."""

    tools_by_member: Optional[dict[str, ToolPolicyConfig]] = Field(default=None, alias="toolsByMember")

    @field_validator("tools_by_member", mode="before")
    @classmethod
    def validate_tools_by_member(cls, v: Any) -> Optional[dict[str, Any]]:
        return _coerce_mapping(v, ToolPolicyConfig)


class SubagentsConfig(BaseModel):
    """Extra restrictions layered on the subagent baseline deny set."""

    model_config = _POLICY_MODEL_CONFIG

    tools: Optional[ToolPolicy] = None

    @field_validator("tools", mode="before")
    @classmethod
    def validate_tools(cls, v: Any) -> Any:
        return _coerce_model(v, ToolPolicy)


class ToolCategoryConfig(BaseModel):
    """Per-category overrides of risk, approval and extra deny patterns."""

    model_config = _POLICY_MODEL_CONFIG

    risk_level: Optional[Literal["none", "low", "medium", "high", "critical"]] = Field(
        default=None, alias="riskLevel"
    )
    requires_approval: Optional[bool] = Field(default=None, alias="requiresApproval")
    deny: Optional[list[str]] = None

    @field_validator("deny", mode="before")
    @classmethod
    def validate_deny(cls, v: Any) -> Optional[list[str]]:
        return _coerce_pattern_list(v)


class ToolArgumentRule(BaseModel):
    """A validation rule applied to one tool argument before execution.

    ``argument`` supports dot-notation for nested arguments (``options.path``).
    """

    model_config = _POLICY_MODEL_CONFIG

    argument: str
    check: str  # required | forbidden | pattern | max-length | one-of
    pattern: Optional[str] = None
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    values: Optional[list[str]] = None
    reason: Optional[str] = None


class ToolRateLimitConfig(BaseModel):
    """Sliding-window invocation limit for one tool."""

    model_config = _POLICY_MODEL_CONFIG

    max_invocations: int = Field(alias="maxInvocations", ge=0)
    window_ms: int = Field(alias="windowMs", gt=0)


class GlobalToolsConfig(ToolPolicyConfig):
    """The global ``tools`` block.

    Invalid category, argument rule and rate limit entries are dropped one by
    one, and an invalid ``auditEnabled`` reads as ``False``. Validating with
    ``context={"strict": True}`` raises on them instead.
    """

    subagents: Optional[SubagentsConfig] = None
    categories: dict[str, ToolCategoryConfig] = Field(default_factory=dict)
    argument_rules: dict[str, list[ToolArgumentRule]] = Field(default_factory=dict, alias="argumentRules")
    rate_limits: dict[str, ToolRateLimitConfig] = Field(default_factory=dict, alias="rateLimits")
    audit_enabled: bool = Field(default=False, alias="auditEnabled")

    @field_validator("subagents", mode="before")
    @classmethod
    def validate_subagents(cls, v: Any) -> Any:
        return _coerce_model(v, SubagentsConfig)

    @field_validator("categories", "rate_limits", mode="wrap")
    @classmethod
    def validate_typed_entries(
        cls, v: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> dict[str, Any]:
        return _validate_entries(v, handler, info)

    @field_validator("argument_rules", mode="wrap")
    @classmethod
    def validate_argument_rules(
        cls, v: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> dict[str, list[ToolArgumentRule]]:
        if _is_strict(info) or not isinstance(v, Mapping):
            return _validate_entries(v, handler, info)
        rules: dict[str, list[ToolArgumentRule]] = {}
        for tool, entries in v.items():
            if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, Iterable):
                logger.debug("Ignoring non-list argument rules for %r", tool)
                continue
            kept = []
            for entry in entries:
                try:
                    kept.extend(handler({tool: [entry]})[tool])
                except ValidationError as e:
                    logger.debug("Dropped invalid argument rule for %r: %d error(s)", tool, e.error_count())
            if kept and isinstance(tool, str):
                rules[tool] = kept
        return rules

    @field_validator("audit_enabled", mode="wrap")
    @classmethod
    def validate_audit_enabled(cls, v: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> bool:
        try:
            return handler(v)
        except ValidationError:
            if _is_strict(info):
                raise
            logger.debug("Ignoring invalid auditEnabled value: %r", v)
            return False


class AgentToolsConfig(BaseModel):
    """Per-agent configuration block."""

    model_config = _POLICY_MODEL_CONFIG

    tools: Optional[ToolPolicyConfig] = None

    @field_validator("tools", mode="before")
    @classmethod
    def validate_tools(cls, v: Any) -> Any:
        return _coerce_model(v, ToolPolicyConfig)


class WundrToolPolicyConfig(BaseModel):
    """Root tool policy configuration consumed by :func:`resolve_effective_tool_policy`.

    Example::

        config = WundrToolPolicyConfig.model_validate({
            "tools": {
                "deny": ["bash_execute"],
                "byProvider": {"openai/gpt-4": {"deny": ["web_fetch"]}},
                "subagents": {"tools": {"deny": ["web_*"]}},
            },
            "agents": {"coder": {"tools": {"profile": "coding"}}},
            "groups": {"eng": {"allow": ["group:fs"], "toolsByMember": {"@alice": {"allow": ["*"]}}}},
        })
    """

    model_config = _POLICY_MODEL_CONFIG

    tools: Optional[GlobalToolsConfig] = None
    agents: dict[str, AgentToolsConfig] = Field(default_factory=dict)
    groups: dict[str, GroupToolPolicyConfig] = Field(default_factory=dict)

    @field_validator("tools", mode="before")
    @classmethod
    def validate_tools(cls, v: Any) -> Any:
        return _coerce_model(v, GlobalToolsConfig)

    @field_validator("agents", mode="before")
    @classmethod
    def validate_agents(cls, v: Any) -> dict[str, Any]:
        return _coerce_mapping(v, AgentToolsConfig) or {}

    @field_validator("groups", mode="before")
    @classmethod
    def validate_groups(cls, v: Any) -> dict[str, Any]:
        return _coerce_mapping(v, GroupToolPolicyConfig) or {}


def load_tool_policy_config(
    raw: Mapping[str, Any] | WundrToolPolicyConfig | None,
    strict: bool = False,
) -> WundrToolPolicyConfig:
    """Validate an already-loaded configuration mapping.

    The engine performs no file I/O; callers parse their config files and pass
    the resulting mapping here (or straight into the engine functions).

    By default invalid entries are dropped (logged at DEBUG) so that a bad
    entry never fails a decision it has nothing to do with. Config loaders
    that want to reject bad files up front pass ``strict=True``.

    Raises:
        ConfigurationError: In strict mode, if a typed block (rate limits,
            argument rules, category overrides, audit flag) has invalid values.
    """
    if isinstance(raw, WundrToolPolicyConfig):
        return raw
    if raw is not None and not isinstance(raw, Mapping):
        logger.debug("Ignoring non-mapping tool policy configuration: %r", type(raw).__name__)
        raw = None
    try:
        return WundrToolPolicyConfig.model_validate(raw or {}, context={"strict": strict})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid tool policy configuration: {e.error_count()} error(s)", errors=e.errors()) from e


# ── Engine Settings ─────────────────────────────────────


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineConfig(BaseModel):
    """Process-level settings for embedding the engine in a daemon."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    redact_secrets: bool = Field(
        default=True,
        description="Redact secret-looking values from log output",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used as the logger namespace (e.g. 'orchestrator-daemon')",
    )
    audit_buffer_size: int = Field(
        default=10_000,
        description="Maximum entries retained by a ToolAuditLogger",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("audit_buffer_size")
    @classmethod
    def validate_audit_buffer_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Audit buffer size must be positive")
        return v

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


def load_engine_config_from_env() -> EngineConfig:
    """Load engine settings from environment variables.

    This is the only place the engine reads the environment.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - LOG_REDACT_SECRETS: Redact secrets in logs (true/false, default: true)
    - SERVICE_NAME: Service name for logger identification
    - TOOL_POLICY_AUDIT_BUFFER_SIZE: Audit buffer capacity (default: 10000)

    Returns:
        EngineConfig instance with values from environment or defaults.
    """
    import os

    truthy = ("true", "1", "yes", "on")

    return EngineConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in truthy,
        redact_secrets=os.getenv("LOG_REDACT_SECRETS", "true").lower() in truthy,
        service_name=os.getenv("SERVICE_NAME"),
        audit_buffer_size=int(os.getenv("TOOL_POLICY_AUDIT_BUFFER_SIZE", "10000")),
    )


__all__ = [
    "AgentToolsConfig",
    "EngineConfig",
    "GlobalToolsConfig",
    "GroupToolPolicyConfig",
    "LogLevel",
    "SubagentsConfig",
    "ToolArgumentRule",
    "ToolCategoryConfig",
    "ToolPolicy",
    "ToolPolicyConfig",
    "ToolRateLimitConfig",
    "WundrToolPolicyConfig",
    "load_engine_config_from_env",
    "load_tool_policy_config",
]
