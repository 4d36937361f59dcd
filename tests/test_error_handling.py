"""Tests for the exception hierarchy and graceful degradation on bad input."""

from __future__ import annotations

import pytest

from toolpolicy import (
    ConfigurationError,
    EffectiveToolPolicies,
    ToolArgumentRule,
    ToolArgumentValidationError,
    ToolPolicy,
    ToolPolicyDeniedError,
    ToolPolicyError,
    ToolRateLimitError,
    create_session_tool_permissions,
    evaluate_tool_access,
    evaluate_tool_policy,
    expand_tool_groups,
    is_tool_allowed_by_policy,
    resolve_effective_tool_policy,
    resolve_group_tool_policy,
    resolve_subagent_tool_policy,
    resolve_tool_profile_policy,
)
from toolpolicy.exceptions import error_registry, register_error


class TestExceptions:
    """Tests for the exception classes."""

    def test_base_defaults(self) -> None:
        """The base error carries a default code and message."""
        error = ToolPolicyError()
        assert error.code == "INTERNAL_ERROR"
        assert str(error) == "An internal error occurred"
        assert error.details == {}

    def test_base_with_details(self) -> None:
        error = ToolPolicyError("boom", code="CUSTOM", tool_name="x")
        assert error.code == "CUSTOM"
        assert error.message == "boom"
        assert error.details == {"tool_name": "x"}

    def test_denied_error(self) -> None:
        """The denial error names the tool and the layer."""
        error = ToolPolicyDeniedError("bash_execute", denied_by="subagent", denied_by_pattern="bash_execute")
        assert isinstance(error, ToolPolicyError)
        assert error.code == "TOOL_DENIED"
        assert error.tool_name == "bash_execute"
        assert error.denied_by == "subagent"
        assert "bash_execute" in str(error)
        assert "subagent" in str(error)
        assert error.details["denied_by_pattern"] == "bash_execute"

    def test_denied_error_without_layer(self) -> None:
        error = ToolPolicyDeniedError("web_fetch")
        assert error.denied_by is None
        assert str(error) == "Tool 'web_fetch' is not allowed"

    def test_argument_error(self) -> None:
        rule = ToolArgumentRule(argument="path", check="required")
        error = ToolArgumentValidationError("file_write", "Argument 'path' is required", failed_rule=rule)
        assert error.code == "TOOL_ARGUMENT_INVALID"
        assert error.failed_rule is rule
        assert "file_write" in str(error)

    @pytest.mark.parametrize(("reset_ms", "seconds"), [(1, 1), (1000, 1), (1001, 2), (59_500, 60)])
    def test_rate_limit_error_rounds_up(self, reset_ms: float, seconds: int) -> None:
        """The reset hint is rounded up to whole seconds."""
        error = ToolRateLimitError("web_fetch", reset_ms=reset_ms)
        assert error.code == "TOOL_RATE_LIMITED"
        assert str(error).endswith(f"resets in {seconds}s")

    def test_rate_limit_error_without_reset(self) -> None:
        assert str(ToolRateLimitError("web_fetch")) == "Tool 'web_fetch' rate limit exceeded"


class TestErrorRegistry:
    """Tests for the error registry."""

    def test_builtin_codes(self) -> None:
        assert error_registry.get("TOOL_DENIED") is ToolPolicyDeniedError
        assert error_registry.get("CONFIGURATION_ERROR") is ConfigurationError
        assert error_registry.get("UNKNOWN") is None

    def test_register_custom_error(self) -> None:
        """Custom subclasses can be registered with the decorator."""

        @register_error("TOOL_APPROVAL_REQUIRED")
        class ToolApprovalRequiredError(ToolPolicyError):
            code = "TOOL_APPROVAL_REQUIRED"

        assert error_registry.get("TOOL_APPROVAL_REQUIRED") is ToolApprovalRequiredError
        assert "TOOL_APPROVAL_REQUIRED" in error_registry.all()


class TestGracefulDegradation:
    """Malformed input degrades to "no restriction from this entry"."""

    def test_non_string_tool_name(self) -> None:
        """Non-string names normalize to empty and only match '*'."""
        assert is_tool_allowed_by_policy(None, {"allow": ["file_read"]}) is False  # type: ignore[arg-type]
        assert is_tool_allowed_by_policy(None, {"deny": ["file_read"]}) is True  # type: ignore[arg-type]

    def test_unknown_group_kept_as_literal(self) -> None:
        """An unknown group id only matches itself."""
        assert expand_tool_groups(["group:nope"]) == ["group:nope"]
        assert not is_tool_allowed_by_policy("file_read", {"allow": ["group:nope"]})

    def test_unknown_profile(self) -> None:
        assert resolve_tool_profile_policy("superuser") is None

    def test_malformed_config_never_raises(self) -> None:
        """Malformed policy entries are ignored instead of failing resolution."""
        config = {
            "tools": {"allow": "file_read", "deny": [None, 3, "bash_execute"], "byProvider": "openai"},
            "agents": {"coder": "broken", "reviewer": {"tools": {"allow": [["nested"]]}}},
            "groups": ["eng"],
        }
        policies = resolve_effective_tool_policy(
            config, agent_id="reviewer", model_provider="openai", group_id="eng"
        )
        assert policies.global_provider_policy is None
        assert policies.group_policy is None
        assert not evaluate_tool_policy("bash_execute", policies).allowed
        assert evaluate_tool_policy("file_read", policies).allowed
        assert resolve_effective_tool_policy(config, agent_id="coder").agent_policy is None

    @pytest.mark.parametrize(
        "config",
        [
            {"tools": "file_read"},
            {"tools": ["file_read"]},
            {"agents": {"coder": {"tools": ["file_read"]}}},
            {"tools": {"subagents": "web_*"}},
            {"tools": {"auditEnabled": "maybe"}},
            {"tools": {"rateLimits": {"web_fetch": {"maxInvocations": 1}}}},
            {"tools": {"argumentRules": {"bash_execute": [{"check": "required"}]}}},
            {"tools": {"categories": {"execute": {"riskLevel": "extreme"}}}},
            {"tools": {"subagents": {"tools": "x"}}},
        ],
        ids=[
            "tools-string",
            "tools-list",
            "agent-tools-list",
            "subagents-string",
            "audit-flag",
            "rate-limit-missing-window",
            "argument-rule-missing-argument",
            "category-bad-risk",
            "subagent-tools-string",
        ],
    )
    def test_malformed_typed_blocks_never_raise(self, config: dict) -> None:
        """Bad entries unrelated to a decision do not fail it."""
        policies = resolve_effective_tool_policy(config, agent_id="coder", is_subagent=True)
        assert policies.agent_policy is None
        assert "bash_execute" in policies.subagent_policy.deny
        assert not evaluate_tool_policy("bash_execute", policies).allowed
        assert evaluate_tool_policy("file_read", policies).allowed

        session = create_session_tool_permissions("s-1")
        result = evaluate_tool_access(
            "file_read", policies, tool_args={"path": "/tmp/x"}, session=session, config=config
        )
        assert result.allowed
        assert resolve_subagent_tool_policy(config).allow is None
        assert resolve_group_tool_policy(config, "eng") is None

    def test_foreign_model_under_by_provider(self) -> None:
        """A plain ToolPolicy placed under byProvider still applies."""
        config = {"tools": {"byProvider": {"openai": ToolPolicy(deny=["web_fetch"])}}}
        policies = resolve_effective_tool_policy(config, model_provider="openai")
        result = evaluate_tool_policy("web_fetch", policies)
        assert not result.allowed
        assert result.denied_by == "global-provider"

    def test_engine_functions_do_not_raise_on_empty_input(self) -> None:
        assert evaluate_tool_policy("", EffectiveToolPolicies()).allowed
        assert is_tool_allowed_by_policy("", {"allow": ["*"]})
