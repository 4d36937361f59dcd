"""Exception hierarchy for the tool policy engine.

All errors inherit from ToolPolicyError and carry a stable error code, so an
embedding daemon can map them onto its own protocol (RPC status, HTTP code,
agent-facing tool error).

Usage:
    from toolpolicy.exceptions import ToolPolicyDeniedError

    try:
        ensure_tool_allowed("bash_execute", policies)
    except ToolPolicyDeniedError as e:
        reply_with_tool_error(e.code, e.message)
"""

from __future__ import annotations

import math
from typing import Any, Callable, Optional, TypeVar, cast

__all__ = [
    # Base hierarchy
    "ToolPolicyError",
    "ConfigurationError",
    "ToolPolicyDeniedError",
    "ToolArgumentValidationError",
    "ToolRateLimitError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]


# ---- Exception Hierarchy ----------------------------------------------------


class ToolPolicyError(Exception):
    """Base exception for the tool policy engine.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "TOOL_DENIED").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(ToolPolicyError):
    """Invalid engine configuration."""

    code: str = "CONFIGURATION_ERROR"


class ToolPolicyDeniedError(ToolPolicyError):
    """A tool invocation was denied by a policy layer or access check."""

    code: str = "TOOL_DENIED"

    def __init__(
        self,
        tool_name: str,
        denied_by: Optional[str] = None,
        denied_by_pattern: Optional[str] = None,
    ) -> None:
        self.tool_name = tool_name
        self.denied_by = denied_by
        self.denied_by_pattern = denied_by_pattern
        message = f"Tool '{tool_name}' is not allowed"
        if denied_by:
            message += f" (denied by {denied_by} policy)"
        super().__init__(message, tool_name=tool_name, denied_by=denied_by, denied_by_pattern=denied_by_pattern)


class ToolArgumentValidationError(ToolPolicyError):
    """Tool arguments failed a configured argument rule."""

    code: str = "TOOL_ARGUMENT_INVALID"

    def __init__(self, tool_name: str, message: str, failed_rule: Any = None) -> None:
        self.tool_name = tool_name
        self.failed_rule = failed_rule
        super().__init__(f"Tool '{tool_name}': {message}", tool_name=tool_name, failed_rule=failed_rule)


class ToolRateLimitError(ToolPolicyError):
    """A tool exceeded its per-session rate limit."""

    code: str = "TOOL_RATE_LIMITED"

    def __init__(self, tool_name: str, reset_ms: Optional[float] = None) -> None:
        self.tool_name = tool_name
        self.reset_ms = reset_ms
        message = f"Tool '{tool_name}' rate limit exceeded"
        if reset_ms is not None:
            message += f"; resets in {math.ceil(reset_ms / 1000)}s"
        super().__init__(message, tool_name=tool_name, reset_ms=reset_ms)


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[ToolPolicyError])


class ErrorRegistry:
    """Registry for mapping error codes to exception classes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[ToolPolicyError]] = {}

    def register(self, code: str, error_cls: type[ToolPolicyError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[ToolPolicyError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[ToolPolicyError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("TOOL_APPROVAL_REQUIRED")
        class ToolApprovalRequiredError(ToolPolicyError):
            code = "TOOL_APPROVAL_REQUIRED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


error_registry.register("INTERNAL_ERROR", ToolPolicyError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("TOOL_DENIED", ToolPolicyDeniedError)
error_registry.register("TOOL_ARGUMENT_INVALID", ToolArgumentValidationError)
error_registry.register("TOOL_RATE_LIMITED", ToolRateLimitError)
