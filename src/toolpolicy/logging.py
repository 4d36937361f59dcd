"""Logging utilities for the tool policy engine.

This module provides:
- Previews of tool arguments and config values that are safe to log
- Secret redaction that keeps the key and hides the value
- ``PolicyLogFormatter`` rendering audit decisions (tool, outcome, layer)
- Logging configuration from EngineConfig
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional

from .config import EngineConfig, LogLevel

REDACTED = "[REDACTED]"

# ``<name>key=...``, ``client_secret: "..."``, ``x-api-key: ...``; group 1 is kept.
_SECRET_ASSIGNMENT = re.compile(
    r"""\b((?:[a-z0-9]+[_-])*(?:key|token|secret|password|passwd|pwd)\s*[:=]\s*)"""
    r"""(["']?)[^"'\s,;}]+\2""",
    re.IGNORECASE,
)
_AUTH_SCHEME = re.compile(r"\b(bearer|basic)\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_PROVIDER_KEY = re.compile(r"\b(?:sk|pk|ghp|xox[abp])[-_][A-Za-z0-9_-]{16,}")
_PRIVATE_KEY = re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.DOTALL)
_HEX_TOKEN = re.compile(r"\b[0-9a-f]{32,}\b", re.IGNORECASE)

# Record attributes rendered as decision context, in this order.
AUDIT_FIELDS = (
    "agent_id",
    "session_id",
    "tool_name",
    "outcome",
    "denied_by",
    "denied_by_pattern",
    "category",
    "risk_level",
    "evaluation_us",
)

_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        text = value
    elif isinstance(value, (Mapping, list, tuple)):
        try:
            text = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            text = repr(value)
    else:
        text = str(value)
    return " ".join(text.split())


def safe_preview(value: Any, limit: int = 240) -> str:
    """Render a value on one line, at most ``limit`` characters.

    Mappings and sequences are rendered as JSON so tool arguments read the way
    they were passed. ``None`` renders as ``""``.
    """
    return _truncate(_render(value), limit)


def redact_secrets(text: str, replacement: str = REDACTED) -> str:
    """Hide credentials in ``text``.

    Assignments keep their key (``api_key=[REDACTED]``) and auth headers keep
    their scheme (``Bearer [REDACTED]``). Non-string input is returned as is.
    """
    if not isinstance(text, str):
        return text
    text = _PRIVATE_KEY.sub(replacement, text)
    text = _AUTH_SCHEME.sub(lambda m: f"{m.group(1)} {replacement}", text)
    text = _SECRET_ASSIGNMENT.sub(lambda m: m.group(1) + replacement, text)
    text = _PROVIDER_KEY.sub(replacement, text)
    return _HEX_TOKEN.sub(replacement, text)


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview a value for a log line, redacting before truncation."""
    text = _render(value)
    if redact:
        text = redact_secrets(text)
    return _truncate(text, limit)


class PolicyLogFormatter(logging.Formatter):
    """Render records as JSON or as one plain line with ``key=value`` decision context.

    Decision context comes from :data:`AUDIT_FIELDS` set on the record (the
    audit logger and :class:`PolicyLoggerAdapter` set them). Any other extra
    attribute is rendered through :func:`safe_log_value`.
    """

    def __init__(self, json_format: bool = False, redact_secrets: bool = True, **kwargs: Any):
        super().__init__(**kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def _context(self, record: logging.LogRecord) -> dict[str, Any]:
        context = {key: getattr(record, key) for key in AUDIT_FIELDS if getattr(record, key, None) is not None}
        for key, value in vars(record).items():
            if key in _STANDARD_RECORD_ATTRS or key in context or key in AUDIT_FIELDS:
                continue
            context[key] = safe_log_value(value, redact=self.redact_secrets)
        return context

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if self.redact_secrets:
            message = redact_secrets(message)
        context = self._context(record)
        timestamp = self.formatTime(record, self.datefmt)

        if self.json_format:
            payload = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": message,
                **context,
            }
            if record.exc_info:
                payload["exception"] = self.formatException(record.exc_info)
            return json.dumps(payload, default=str, ensure_ascii=False)

        line = f"{timestamp} {record.levelname} {record.name}: {message}"
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class PolicyLoggerAdapter(logging.LoggerAdapter):
    """Stamp ``agent_id`` and ``session_id`` on every record.

    Per-call ``agent_id=``/``session_id=`` keyword arguments replace the
    adapter's defaults::

        logger = get_policy_logger(__name__, agent_id="coder")
        logger.info("Tool denied", session_id=session.session_id)
    """

    def __init__(self, logger: logging.Logger, agent_id: Optional[str] = None, session_id: Optional[str] = None):
        super().__init__(logger, {})
        self.agent_id = agent_id
        self.session_id = session_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        ids = {
            "agent_id": kwargs.pop("agent_id", self.agent_id),
            "session_id": kwargs.pop("session_id", self.session_id),
        }
        extra = dict(kwargs.get("extra") or {})
        extra.update({key: value for key, value in ids.items() if value})
        kwargs["extra"] = extra
        return msg, kwargs


_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def setup_logging(
    config: Optional[EngineConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: Optional[bool] = None,
) -> None:
    """Install a single stderr handler with :class:`PolicyLogFormatter` on the root logger.

    Args:
        config: EngineConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Override ``config.redact_secrets``
    """
    if config is None:
        from .config import load_engine_config_from_env

        config = load_engine_config_from_env()

    level = _LEVELS.get(LogLevel(config.log_level), logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        PolicyLogFormatter(
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=config.redact_secrets if redact_secrets is None else redact_secrets,
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(level)


def get_policy_logger(
    name: str,
    agent_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> PolicyLoggerAdapter:
    """Get a logger adapter that tags records with agent and session ids."""
    return PolicyLoggerAdapter(logging.getLogger(name), agent_id=agent_id, session_id=session_id)


__all__ = [
    "AUDIT_FIELDS",
    "REDACTED",
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "PolicyLogFormatter",
    "PolicyLoggerAdapter",
    "setup_logging",
    "get_policy_logger",
]
