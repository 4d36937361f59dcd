"""Tool argument validation.

Rules are configured per tool under ``tools.argumentRules`` and evaluated in
order; the first failing rule denies the invocation. Checks:

- ``required``: value must be present and not ``""``.
- ``forbidden``: value must be absent (``None``).
- ``pattern``: ``str(value)`` must match the rule's regex.
- ``max-length``: ``len(str(value))`` must not exceed ``max_length``.
- ``one-of``: ``str(value)`` must be one of ``values``.

``pattern``, ``max-length`` and ``one-of`` skip absent values. Unknown checks pass.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..config import ToolArgumentRule, load_tool_policy_config
from ..logging import safe_log_value
from .groups import normalize_tool_name
from .resolution import ConfigLike

logger = logging.getLogger(__name__)


@dataclass
class ArgumentValidationResult:
    """Outcome of argument validation."""

    valid: bool = True
    failed_rule: Optional[ToolArgumentRule] = None
    message: Optional[str] = None


def resolve_arg_path(args: Mapping[str, Any], path: str) -> Any:
    """Resolve a dot-notation path in nested argument mappings; ``None`` if missing."""
    current: Any = args
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _fail(rule: ToolArgumentRule, default_message: str) -> ArgumentValidationResult:
    return ArgumentValidationResult(valid=False, failed_rule=rule, message=rule.reason or default_message)


def evaluate_argument_rule(rule: ToolArgumentRule, value: Any) -> ArgumentValidationResult:
    """Evaluate a single rule against an already-resolved argument value."""
    if rule.check == "required":
        if value is None or value == "":
            return _fail(rule, f"Argument '{rule.argument}' is required")
        return ArgumentValidationResult()

    if rule.check == "forbidden":
        if value is not None:
            return _fail(rule, f"Argument '{rule.argument}' is forbidden")
        return ArgumentValidationResult()

    if value is None:
        return ArgumentValidationResult()

    text = str(value)

    if rule.check == "pattern":
        if not rule.pattern:
            return ArgumentValidationResult()
        try:
            matched = re.search(rule.pattern, text) is not None
        except re.error as e:
            logger.debug("Invalid argument pattern %r for '%s': %s", rule.pattern, rule.argument, e)
            matched = False
        if not matched:
            return _fail(rule, f"Argument '{rule.argument}' does not match pattern '{rule.pattern}'")
        return ArgumentValidationResult()

    if rule.check == "max-length":
        if rule.max_length is not None and len(text) > rule.max_length:
            return _fail(rule, f"Argument '{rule.argument}' exceeds max length of {rule.max_length}")
        return ArgumentValidationResult()

    if rule.check == "one-of":
        if not rule.values or text not in rule.values:
            allowed = ", ".join(rule.values or [])
            return _fail(rule, f"Argument '{rule.argument}' must be one of: {allowed}")
        return ArgumentValidationResult()

    return ArgumentValidationResult()


def validate_tool_arguments(
    tool_name: str,
    args: Mapping[str, Any],
    config: Optional[ConfigLike] = None,
) -> ArgumentValidationResult:
    """Validate tool arguments against the configured rules for that tool.

    Returns a passing result when no rules are configured.
    """
    if config is None:
        return ArgumentValidationResult()

    resolved = load_tool_policy_config(config)
    if resolved.tools is None:
        return ArgumentValidationResult()

    normalized = normalize_tool_name(tool_name)
    for rule in resolved.tools.argument_rules.get(normalized, []):
        value = resolve_arg_path(args, rule.argument)
        result = evaluate_argument_rule(rule, value)
        if not result.valid:
            logger.debug(
                "Argument rule '%s' failed for %s: %s=%s",
                rule.check,
                normalized,
                rule.argument,
                safe_log_value(value, limit=80),
            )
            return result

    return ArgumentValidationResult()


__all__ = [
    "ArgumentValidationResult",
    "evaluate_argument_rule",
    "resolve_arg_path",
    "validate_tool_arguments",
]
