"""Pattern compilation and single-layer policy matching.

A policy layer is compiled once into a matcher and reused for many names::

    matcher = make_tool_policy_matcher({"allow": ["group:fs"], "deny": ["file_delete"]})
    matcher("file_read")    # True
    matcher("file_delete")  # False, deny wins
    matcher("bash_execute") # False, not in the allowlist

Evaluation order within a layer:
1. Name matches any ``deny`` pattern → denied.
2. No ``allow`` patterns → allowed (open by default).
3. Name matches any ``allow`` pattern → allowed.
4. Otherwise → denied (allowlist is restrictive).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence, TypeVar, Union

from ..config import ToolPolicy
from .groups import expand_tool_groups, normalize_tool_name


class NamedTool(Protocol):
    """Anything with a ``name`` attribute (tool descriptors, function tools)."""

    name: str


ToolT = TypeVar("ToolT", bound=NamedTool)
PolicyLike = Union[ToolPolicy, Mapping[str, Any]]


def as_tool_policy(policy: Optional[PolicyLike]) -> Optional[ToolPolicy]:
    """Coerce a mapping to a ``ToolPolicy``; ``None`` stays ``None``."""
    if policy is None or isinstance(policy, ToolPolicy):
        return policy
    return ToolPolicy.model_validate(policy)


# ── Pattern Compilation ─────────────────────────────────


@dataclass(frozen=True)
class CompiledPattern:
    """A compiled allow/deny entry.

    ``kind`` is one of ``all``, ``exact`` or ``regex``. ``source`` is the
    normalized pattern text, reported back for audit.
    """

    kind: str
    source: str
    regex: Optional[re.Pattern[str]] = None

    def matches(self, name: str) -> bool:
        if self.kind == "all":
            return True
        if self.kind == "exact":
            return name == self.source
        return self.regex is not None and self.regex.match(name) is not None


def compile_pattern(pattern: Any) -> Optional[CompiledPattern]:
    """Compile one normalized pattern. Returns ``None`` for empty input.

    Only ``*`` is a wildcard; every other regex metacharacter matches literally.
    """
    normalized = normalize_tool_name(pattern)
    if not normalized:
        return None

    if normalized == "*":
        return CompiledPattern(kind="all", source="*")

    if "*" not in normalized:
        return CompiledPattern(kind="exact", source=normalized)

    source = re.escape(normalized).replace(r"\*", ".*")
    return CompiledPattern(kind="regex", source=normalized, regex=re.compile(f"^{source}$"))


def compile_patterns(patterns: Optional[Iterable[Any]]) -> list[CompiledPattern]:
    """Expand group references, then compile each entry, dropping empties."""
    compiled = []
    for value in expand_tool_groups(patterns):
        pattern = compile_pattern(value)
        if pattern is not None:
            compiled.append(pattern)
    return compiled


def matches_any(name: str, patterns: Sequence[CompiledPattern]) -> bool:
    """Test a normalized name against compiled patterns."""
    return any(pattern.matches(name) for pattern in patterns)


def find_matching_pattern(name: str, patterns: Sequence[CompiledPattern]) -> Optional[str]:
    """Return the source of the first pattern matching a normalized name."""
    for pattern in patterns:
        if pattern.matches(name):
            return pattern.source
    return None


# ── Single-Layer Matching ───────────────────────────────


def make_tool_policy_matcher(policy: PolicyLike) -> Callable[[str], bool]:
    """Build a reusable ``name -> allowed`` matcher for one policy layer."""
    resolved = as_tool_policy(policy)
    deny = compile_patterns(resolved.deny)
    allow = compile_patterns(resolved.allow)

    def matcher(name: str) -> bool:
        normalized = normalize_tool_name(name)
        if matches_any(normalized, deny):
            return False
        if not allow:
            return True
        return matches_any(normalized, allow)

    return matcher


def make_detailed_policy_matcher(policy: PolicyLike) -> Callable[[str], tuple[bool, Optional[str]]]:
    """Like :func:`make_tool_policy_matcher` but also reports the deny pattern hit.

    The matcher returns ``(allowed, denied_by_pattern)``. ``denied_by_pattern``
    is ``None`` when the name was allowed or simply missed a restrictive allowlist.
    """
    resolved = as_tool_policy(policy)
    deny = compile_patterns(resolved.deny)
    allow = compile_patterns(resolved.allow)

    def matcher(name: str) -> tuple[bool, Optional[str]]:
        normalized = normalize_tool_name(name)
        denied_by = find_matching_pattern(normalized, deny)
        if denied_by is not None:
            return False, denied_by
        if not allow:
            return True, None
        return matches_any(normalized, allow), None

    return matcher


def is_tool_allowed_by_policy(name: str, policy: Optional[PolicyLike]) -> bool:
    """Check a tool name against a single layer.

    A missing policy imposes no restriction and always allows.
    """
    if policy is None:
        return True
    return make_tool_policy_matcher(policy)(name)


def filter_tool_names_by_policy(names: list[str], policy: Optional[PolicyLike]) -> list[str]:
    """Return the names permitted by one policy layer, in input order."""
    if policy is None:
        return names
    matcher = make_tool_policy_matcher(policy)
    return [name for name in names if matcher(name)]


def filter_tools_by_policy(tools: list[ToolT], policy: Optional[PolicyLike]) -> list[ToolT]:
    """Return the tool descriptors permitted by one policy layer, in input order."""
    if policy is None:
        return tools
    matcher = make_tool_policy_matcher(policy)
    return [tool for tool in tools if matcher(tool.name)]


__all__ = [
    "CompiledPattern",
    "NamedTool",
    "PolicyLike",
    "as_tool_policy",
    "compile_pattern",
    "compile_patterns",
    "filter_tool_names_by_policy",
    "filter_tools_by_policy",
    "find_matching_pattern",
    "is_tool_allowed_by_policy",
    "make_detailed_policy_matcher",
    "make_tool_policy_matcher",
    "matches_any",
]
