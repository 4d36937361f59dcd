"""Tool usage audit trail.

``ToolAuditLogger`` is instance-scoped: the embedding daemon creates one (per
process or per tenant) and passes it to :func:`evaluate_tool_access`. Each
recorded entry goes to a bounded in-memory buffer, to the session's own log
(when a session is given), to registered listeners, and to the standard
``logging`` pipeline at DEBUG level.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from ..logging import get_policy_logger
from .groups import normalize_tool_name

if TYPE_CHECKING:
    from ..config import EngineConfig
    from .session import SessionToolPermissions

logger = logging.getLogger(__name__)


class AuditOutcome:
    """Outcome recorded for an audited evaluation."""

    ALLOWED = "allowed"
    DENIED = "denied"
    RATE_LIMITED = "rate-limited"
    ARGUMENT_INVALID = "argument-invalid"
    APPROVAL_REQUIRED = "approval-required"


@dataclass
class ToolAuditEntry:
    """A single tool usage event.

    ``denied_by`` is a :class:`PolicyLayer` or :class:`AccessCheck` value.
    ``evaluation_us`` is the evaluation duration in microseconds.
    """

    tool_name: str
    normalized_tool_name: str
    outcome: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000)
    category: Optional[str] = None
    risk_level: Optional[str] = None
    denied_by: Optional[str] = None
    agent_id: Optional[str] = None
    session_id: Optional[str] = None
    evaluation_us: Optional[int] = None


@dataclass
class AuditSummary:
    """Aggregated counts over the audit buffer."""

    total: int = 0
    allowed: int = 0
    denied: int = 0
    rate_limited: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    by_outcome: dict[str, int] = field(default_factory=dict)


ToolAuditListener = Callable[[ToolAuditEntry], None]


class ToolAuditLogger:
    """Bounded audit buffer with listeners.

    When the buffer exceeds ``max_buffer_size`` the oldest 10% of entries are
    dropped in one step.

    Example::

        audit = ToolAuditLogger(max_buffer_size=1000)
        audit.add_listener(lambda entry: metrics.increment(entry.outcome))
        evaluate_tool_access("bash_execute", policies, audit_enabled=True, audit_logger=audit)
        audit.get_summary().denied
    """

    DEFAULT_BUFFER_SIZE = 10_000

    def __init__(self, max_buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self.max_buffer_size = max_buffer_size
        self._buffer: list[ToolAuditEntry] = []
        self._listeners: list[ToolAuditListener] = []

    @classmethod
    def from_config(cls, config: EngineConfig) -> ToolAuditLogger:
        return cls(max_buffer_size=config.audit_buffer_size)

    def record(self, entry: ToolAuditEntry, session: Optional[SessionToolPermissions] = None) -> None:
        """Append an entry to the buffer and session log, then notify listeners."""
        self._buffer.append(entry)
        if len(self._buffer) > self.max_buffer_size:
            drop = max(1, self.max_buffer_size // 10)
            del self._buffer[:drop]

        if session is not None:
            session.audit_log.append(entry)

        get_policy_logger(__name__, agent_id=entry.agent_id, session_id=entry.session_id).debug(
            "Tool %s: %s",
            entry.normalized_tool_name,
            entry.outcome,
            extra={
                "tool_name": entry.normalized_tool_name,
                "outcome": entry.outcome,
                "denied_by": entry.denied_by,
                "category": entry.category,
                "risk_level": entry.risk_level,
                "evaluation_us": entry.evaluation_us,
            },
        )

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logger.warning("Audit listener %r failed: %s", listener, e)

    def add_listener(self, listener: ToolAuditListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ToolAuditListener) -> None:
        """Remove a listener; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def get_buffer(self) -> tuple[ToolAuditEntry, ...]:
        """Snapshot of the buffer, oldest first."""
        return tuple(self._buffer)

    def get_entries_for_tool(self, tool_name: str) -> list[ToolAuditEntry]:
        normalized = normalize_tool_name(tool_name)
        return [entry for entry in self._buffer if entry.normalized_tool_name == normalized]

    def get_entries_for_session(self, session_id: str) -> list[ToolAuditEntry]:
        return [entry for entry in self._buffer if entry.session_id == session_id]

    def get_summary(self) -> AuditSummary:
        """Count buffered entries by outcome and category."""
        by_outcome = Counter(entry.outcome for entry in self._buffer)
        by_category = Counter(entry.category for entry in self._buffer if entry.category)
        return AuditSummary(
            total=len(self._buffer),
            allowed=by_outcome.get(AuditOutcome.ALLOWED, 0),
            denied=by_outcome.get(AuditOutcome.DENIED, 0),
            rate_limited=by_outcome.get(AuditOutcome.RATE_LIMITED, 0),
            by_category=dict(by_category),
            by_outcome=dict(by_outcome),
        )

    def clear(self) -> None:
        self._buffer.clear()


__all__ = [
    "AuditOutcome",
    "AuditSummary",
    "ToolAuditEntry",
    "ToolAuditListener",
    "ToolAuditLogger",
]
