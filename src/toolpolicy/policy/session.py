"""Session-scoped tool grants, revocations, and rate limiting.

Session state is owned by the caller (one ``SessionToolPermissions`` per
agent session) and passed into the functions here; the engine keeps none of
its own. Times are milliseconds since the epoch.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from ..config import load_tool_policy_config
from .groups import normalize_tool_name
from .resolution import ConfigLike

if TYPE_CHECKING:
    from .audit import ToolAuditEntry


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class SessionToolPermissions:
    """Runtime permission state for one session.

    Attributes:
        session_id: Session identifier used for audit correlation.
        created_at: Creation time (ms).
        grants: Tools granted for this session; they bypass the policy layers.
        revocations: Tools revoked for this session; they are always denied.
        rate_limit_buckets: Tool → timestamps of recent invocations.
        audit_log: Audit entries recorded for this session.
    """

    session_id: str
    created_at: float = field(default_factory=_now_ms)
    grants: set[str] = field(default_factory=set)
    revocations: set[str] = field(default_factory=set)
    rate_limit_buckets: dict[str, list[float]] = field(default_factory=dict)
    audit_log: list[ToolAuditEntry] = field(default_factory=list)


@dataclass
class RateLimitStatus:
    """Current rate limit state of a tool within a session."""

    remaining: int
    reset_ms: float
    limited: bool


def create_session_tool_permissions(
    session_id: str,
    initial_grants: Optional[Iterable[str]] = None,
    initial_revocations: Optional[Iterable[str]] = None,
) -> SessionToolPermissions:
    """Create session state with normalized initial grants and revocations."""
    session = SessionToolPermissions(session_id=session_id)
    for tool in initial_grants or ():
        session.grants.add(normalize_tool_name(tool))
    for tool in initial_revocations or ():
        session.revocations.add(normalize_tool_name(tool))
    return session


def grant_session_tool(session: SessionToolPermissions, tool_name: str) -> None:
    """Grant a tool for the session, clearing any revocation."""
    normalized = normalize_tool_name(tool_name)
    session.revocations.discard(normalized)
    session.grants.add(normalized)


def revoke_session_tool(session: SessionToolPermissions, tool_name: str) -> None:
    """Revoke a tool for the session, clearing any grant."""
    normalized = normalize_tool_name(tool_name)
    session.grants.discard(normalized)
    session.revocations.add(normalized)


def is_tool_allowed_by_session(name: str, session: Optional[SessionToolPermissions]) -> Optional[bool]:
    """Session opinion on a tool.

    Returns ``False`` if revoked, ``True`` if granted, ``None`` when the
    session has no opinion (or there is no session).
    """
    if session is None:
        return None
    normalized = normalize_tool_name(name)
    if normalized in session.revocations:
        return False
    if normalized in session.grants:
        return True
    return None


def check_tool_rate_limit(
    tool_name: str,
    session: SessionToolPermissions,
    config: Optional[ConfigLike] = None,
    now: Optional[float] = None,
) -> bool:
    """Check and record an invocation against the tool's sliding window.

    Returns ``True`` (and records the call) when within the limit or when no
    limit is configured; ``False`` when the window is full.
    """
    if config is None:
        return True
    resolved = load_tool_policy_config(config)
    if resolved.tools is None:
        return True

    normalized = normalize_tool_name(tool_name)
    limit = resolved.tools.rate_limits.get(normalized)
    if limit is None:
        return True

    current = _now_ms() if now is None else now
    window_start = current - limit.window_ms

    bucket = [t for t in session.rate_limit_buckets.get(normalized, []) if t > window_start]
    session.rate_limit_buckets[normalized] = bucket

    if len(bucket) >= limit.max_invocations:
        return False

    bucket.append(current)
    return True


def get_tool_rate_limit_status(
    tool_name: str,
    session: SessionToolPermissions,
    config: Optional[ConfigLike] = None,
    now: Optional[float] = None,
) -> Optional[RateLimitStatus]:
    """Remaining invocations and time to reset, without recording a call.

    Returns ``None`` when the tool has no configured rate limit.
    """
    if config is None:
        return None
    resolved = load_tool_policy_config(config)
    if resolved.tools is None:
        return None

    normalized = normalize_tool_name(tool_name)
    limit = resolved.tools.rate_limits.get(normalized)
    if limit is None:
        return None

    current = _now_ms() if now is None else now
    window_start = current - limit.window_ms
    timestamps = [t for t in session.rate_limit_buckets.get(normalized, []) if t > window_start]

    remaining = max(0, limit.max_invocations - len(timestamps))
    oldest = timestamps[0] if timestamps else current
    reset_ms = max(0.0, oldest + limit.window_ms - current)

    return RateLimitStatus(remaining=remaining, reset_ms=reset_ms, limited=remaining == 0)


__all__ = [
    "RateLimitStatus",
    "SessionToolPermissions",
    "check_tool_rate_limit",
    "create_session_tool_permissions",
    "get_tool_rate_limit_status",
    "grant_session_tool",
    "is_tool_allowed_by_session",
    "revoke_session_tool",
]
