"""Resolve per-layer tool policies from the hierarchical configuration.

Provides:
- ``pick_tool_policy()``: ``ToolPolicyConfig`` (with ``also_allow``) → plain ``ToolPolicy``.
- ``resolve_provider_tool_policy()``: ``provider/model`` then bare provider lookup.
- ``resolve_group_tool_policy()``: group (or ``*`` group) with per-member overrides.
- ``resolve_subagent_tool_policy()``: baseline subagent deny set plus configured extras.
- ``resolve_effective_tool_policy()``: the single entry point building ``EffectiveToolPolicies``.

An absent layer imposes no restriction. A context with no configuration at all
therefore resolves to an open bundle; callers that want a stricter default
should apply a profile (e.g. ``minimal``) themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..config import (
    GroupToolPolicyConfig,
    ToolPolicy,
    ToolPolicyConfig,
    WundrToolPolicyConfig,
    load_tool_policy_config,
)
from .constants import DEFAULT_SUBAGENT_TOOL_DENY, PolicyLayer
from .groups import normalize_tool_name

logger = logging.getLogger(__name__)

ConfigLike = Union[WundrToolPolicyConfig, Mapping[str, Any]]


@dataclass(frozen=True)
class EffectiveToolPolicies:
    """Resolved policy bundle for one evaluation context.

    Each ``*_policy`` is one layer; ``None`` means the layer is absent.
    Profile names and additive allow lists are carried for callers that apply
    profiles themselves; they are not part of the conjunctive check.
    """

    agent_id: Optional[str] = None
    global_policy: Optional[ToolPolicy] = None
    global_provider_policy: Optional[ToolPolicy] = None
    agent_policy: Optional[ToolPolicy] = None
    agent_provider_policy: Optional[ToolPolicy] = None
    group_policy: Optional[ToolPolicy] = None
    subagent_policy: Optional[ToolPolicy] = None
    profile: Optional[str] = None
    provider_profile: Optional[str] = None
    profile_also_allow: Optional[list[str]] = None
    provider_profile_also_allow: Optional[list[str]] = None

    def layers(self) -> tuple[tuple[str, Optional[ToolPolicy]], ...]:
        """``(layer, policy)`` pairs in evaluation order."""
        return (
            (PolicyLayer.GLOBAL, self.global_policy),
            (PolicyLayer.GLOBAL_PROVIDER, self.global_provider_policy),
            (PolicyLayer.AGENT, self.agent_policy),
            (PolicyLayer.AGENT_PROVIDER, self.agent_provider_policy),
            (PolicyLayer.GROUP, self.group_policy),
            (PolicyLayer.SUBAGENT, self.subagent_policy),
        )


def collect_policies(policies: EffectiveToolPolicies) -> list[Optional[ToolPolicy]]:
    """Flatten a bundle into the six layer policies, in evaluation order."""
    return [policy for _, policy in policies.layers()]


def collect_explicit_allowlist(policies: list[Optional[ToolPolicy]]) -> list[str]:
    """Collect trimmed, non-empty allow entries across policies."""
    entries: list[str] = []
    for policy in policies:
        if policy is None or not policy.allow:
            continue
        for value in policy.allow:
            trimmed = value.strip()
            if trimmed:
                entries.append(trimmed)
    return entries


# ── Policy Construction ─────────────────────────────────


def union_allow(base: Optional[list[str]], extra: Optional[list[str]]) -> Optional[list[str]]:
    """Merge additive ``also_allow`` entries into a base allowlist.

    - No extras → base unchanged.
    - No base (or empty base) → ``["*", *extra]``: extras are additive on allow-all.
    - Otherwise → union of both, order preserved.
    """
    if not extra:
        return base
    if not base:
        return list(dict.fromkeys(["*", *extra]))
    return list(dict.fromkeys([*base, *extra]))


def pick_tool_policy(config: Optional[ToolPolicyConfig]) -> Optional[ToolPolicy]:
    """Reduce a config block to the plain ``ToolPolicy`` used by the matcher.

    Returns ``None`` when the block sets neither allow/also_allow nor deny.
    """
    if config is None:
        return None

    if config.allow is not None:
        allow = union_allow(config.allow, config.also_allow)
    elif config.also_allow:
        allow = union_allow(None, config.also_allow)
    else:
        allow = None

    if allow is None and config.deny is None:
        return None

    return ToolPolicy(allow=allow, deny=list(config.deny) if config.deny is not None else None)


# ── Provider Policy ─────────────────────────────────────


def _normalize_provider_key(value: str) -> str:
    return value.strip().lower()


def resolve_provider_tool_policy(
    by_provider: Optional[Mapping[str, ToolPolicyConfig]],
    model_provider: Optional[str],
    model_id: Optional[str] = None,
) -> Optional[ToolPolicyConfig]:
    """Find the provider-specific override in a ``by_provider`` map.

    Lookup order (case-insensitive):
    1. Full model id: ``"<provider>/<model_id>"``, or ``model_id`` verbatim
       when it already contains ``/``.
    2. Bare provider name.

    Example::

        by_provider = {"openai": cfg_a, "OpenAI/GPT-4": cfg_b}
        resolve_provider_tool_policy(by_provider, "openai", "gpt-4")   # cfg_b
        resolve_provider_tool_policy(by_provider, "openai", "gpt-3.5") # cfg_a
    """
    provider = model_provider.strip() if isinstance(model_provider, str) else ""
    if not provider or not by_provider:
        return None

    lookup: dict[str, ToolPolicyConfig] = {}
    for key, value in by_provider.items():
        normalized = _normalize_provider_key(key)
        if normalized:
            lookup[normalized] = value

    normalized_provider = _normalize_provider_key(provider)
    raw_model_id = model_id.strip().lower() if isinstance(model_id, str) else ""

    candidates = []
    if raw_model_id:
        candidates.append(raw_model_id if "/" in raw_model_id else f"{normalized_provider}/{raw_model_id}")
    candidates.append(normalized_provider)

    for key in candidates:
        match = lookup.get(key)
        if match is not None:
            return match
    return None


# ── Subagent Policy ─────────────────────────────────────


def resolve_subagent_tool_policy(config: Optional[ConfigLike] = None) -> ToolPolicy:
    """Build the subagent layer.

    ``deny`` is always the baseline subagent deny set unioned with
    ``tools.subagents.tools.deny``; ``allow`` comes from configuration when
    present and is otherwise unrestricted.
    """
    resolved = load_tool_policy_config(config) if config is not None else None
    configured = None
    if resolved is not None and resolved.tools is not None and resolved.tools.subagents is not None:
        configured = resolved.tools.subagents.tools

    deny = list(DEFAULT_SUBAGENT_TOOL_DENY)
    if configured is not None and configured.deny:
        deny.extend(configured.deny)
    allow = list(configured.allow) if configured is not None and configured.allow is not None else None

    return ToolPolicy(allow=allow, deny=deny)


def get_default_subagent_deny_list() -> list[str]:
    """Tools denied to every subagent, for documentation and debugging."""
    return list(DEFAULT_SUBAGENT_TOOL_DENY)


def is_default_subagent_denied(name: str) -> bool:
    """Check whether a tool is in the baseline subagent deny set."""
    return normalize_tool_name(name) in DEFAULT_SUBAGENT_TOOL_DENY


# ── Group Policy ────────────────────────────────────────


def _normalize_member_key(value: Optional[str]) -> str:
    """Case-fold a member identifier and strip a leading ``@``."""
    if not isinstance(value, str):
        return ""
    trimmed = value.strip()
    if trimmed.startswith("@"):
        trimmed = trimmed[1:]
    return trimmed.lower()


def resolve_group_member_policy(
    group_config: GroupToolPolicyConfig,
    member_id: Optional[str] = None,
    member_name: Optional[str] = None,
) -> Optional[ToolPolicy]:
    """Pick the member override within a group.

    Precedence: member id → member name → ``*`` member → group-level policy.
    """
    if not group_config.tools_by_member:
        return pick_tool_policy(group_config)

    lookup: dict[str, ToolPolicyConfig] = {}
    for raw_key, policy in group_config.tools_by_member.items():
        key = _normalize_member_key(raw_key)
        if not key:
            logger.debug("Ignoring empty member key in toolsByMember")
            continue
        lookup.setdefault(key, policy)

    candidates = [_normalize_member_key(member_id), _normalize_member_key(member_name), "*"]
    for key in candidates:
        if key and key in lookup:
            return pick_tool_policy(lookup[key])

    return pick_tool_policy(group_config)


def resolve_group_tool_policy(
    config: Optional[ConfigLike],
    group_id: Optional[str],
    member_id: Optional[str] = None,
    member_name: Optional[str] = None,
) -> Optional[ToolPolicy]:
    """Resolve the group layer.

    Falls back to the ``*`` group when ``group_id`` is not configured, and to
    ``None`` when neither exists.
    """
    if config is None or not isinstance(group_id, str) or not group_id.strip():
        return None

    groups = load_tool_policy_config(config).groups
    if not groups:
        return None

    for key in (group_id.strip(), "*"):
        group_config = groups.get(key)
        if group_config is not None:
            return resolve_group_member_policy(group_config, member_id, member_name)
    return None


# ── Effective Policy ────────────────────────────────────


def _first_list(*candidates: Optional[ToolPolicyConfig]) -> Optional[list[str]]:
    for candidate in candidates:
        if candidate is not None and candidate.also_allow is not None:
            return list(candidate.also_allow)
    return None


def resolve_effective_tool_policy(
    config: Optional[ConfigLike] = None,
    agent_id: Optional[str] = None,
    model_provider: Optional[str] = None,
    model_id: Optional[str] = None,
    group_id: Optional[str] = None,
    member_id: Optional[str] = None,
    member_name: Optional[str] = None,
    is_subagent: bool = False,
) -> EffectiveToolPolicies:
    """Resolve every policy layer for one evaluation context.

    Args:
        config: Root tool policy configuration (model or mapping).
        agent_id: Key into ``config.agents``.
        model_provider: LLM provider name (e.g. ``"openai"``).
        model_id: Model id (e.g. ``"gpt-4"`` or ``"openai/gpt-4"``).
        group_id: Key into ``config.groups`` (falls back to ``*``).
        member_id: Member identifier for per-member group overrides.
        member_name: Member display/user name for per-member overrides.
        is_subagent: Include the subagent layer.

    Returns:
        ``EffectiveToolPolicies`` ready for :func:`evaluate_tool_policy`.
    """
    resolved = load_tool_policy_config(config)
    global_tools = resolved.tools
    agent_entry = resolved.agents.get(agent_id or "")
    agent_tools = agent_entry.tools if agent_entry is not None else None

    provider_policy = resolve_provider_tool_policy(
        global_tools.by_provider if global_tools is not None else None,
        model_provider,
        model_id,
    )
    agent_provider_policy = resolve_provider_tool_policy(
        agent_tools.by_provider if agent_tools is not None else None,
        model_provider,
        model_id,
    )

    profile = (agent_tools.profile if agent_tools is not None else None) or (
        global_tools.profile if global_tools is not None else None
    )
    provider_profile = (agent_provider_policy.profile if agent_provider_policy is not None else None) or (
        provider_policy.profile if provider_policy is not None else None
    )

    return EffectiveToolPolicies(
        agent_id=agent_id,
        global_policy=pick_tool_policy(global_tools),
        global_provider_policy=pick_tool_policy(provider_policy),
        agent_policy=pick_tool_policy(agent_tools),
        agent_provider_policy=pick_tool_policy(agent_provider_policy),
        group_policy=resolve_group_tool_policy(resolved, group_id, member_id, member_name),
        subagent_policy=resolve_subagent_tool_policy(resolved) if is_subagent else None,
        profile=profile,
        provider_profile=provider_profile,
        profile_also_allow=_first_list(agent_tools, global_tools),
        provider_profile_also_allow=_first_list(agent_provider_policy, provider_policy),
    )


__all__ = [
    "ConfigLike",
    "EffectiveToolPolicies",
    "collect_explicit_allowlist",
    "collect_policies",
    "get_default_subagent_deny_list",
    "is_default_subagent_denied",
    "pick_tool_policy",
    "resolve_effective_tool_policy",
    "resolve_group_member_policy",
    "resolve_group_tool_policy",
    "resolve_provider_tool_policy",
    "resolve_subagent_tool_policy",
    "union_allow",
]
