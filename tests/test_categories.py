"""Tests for tool categories, risk levels and approval requirements."""

from __future__ import annotations

from toolpolicy import (
    APPROVAL_REQUIRED_CATEGORIES,
    TOOL_CATEGORY_MAP,
    TOOL_GROUPS,
    ToolCategory,
    ToolRiskLevel,
    get_category_config,
    get_tool_classification,
    get_tool_risk_level,
    get_tools_at_or_above_risk,
    get_tools_by_category,
    tool_requires_approval,
)


class TestClassification:
    """Tests for the static classification table."""

    def test_every_grouped_tool_is_classified(self) -> None:
        """Every built-in tool has a valid category and risk level."""
        for tool in TOOL_GROUPS["group:wundr"]:
            classification = get_tool_classification(tool)
            assert classification is not None, tool
            assert classification.category in ToolCategory.ALL
            assert classification.risk_level in ToolRiskLevel.HIERARCHY

    def test_lookup_normalizes(self) -> None:
        """Aliases classify like their canonical names."""
        assert get_tool_classification("Bash") == ("execute", "high")

    def test_unclassified(self) -> None:
        """Unknown tools have no classification."""
        assert get_tool_classification("custom_tool") is None

    def test_tools_by_category(self) -> None:
        """Tools are listed per category."""
        assert get_tools_by_category(ToolCategory.EXECUTE) == ["bash_execute"]
        assert set(get_tools_by_category(ToolCategory.NETWORK)) == {"web_fetch", "web_search"}
        assert get_tools_by_category(ToolCategory.ADMIN) == []

    def test_tools_at_or_above_risk(self) -> None:
        """Risk filtering follows the hierarchy."""
        assert get_tools_at_or_above_risk(ToolRiskLevel.HIGH) == ["bash_execute"]
        medium = set(get_tools_at_or_above_risk(ToolRiskLevel.MEDIUM))
        assert {"bash_execute", "web_fetch", "file_delete"} <= medium
        assert "file_read" not in medium
        assert len(get_tools_at_or_above_risk(ToolRiskLevel.NONE)) == len(TOOL_CATEGORY_MAP)

    def test_unknown_risk_level(self) -> None:
        """An unknown risk level selects nothing."""
        assert get_tools_at_or_above_risk("extreme") == []


class TestRiskLevel:
    """Tests for get_tool_risk_level."""

    def test_builtin_risk(self) -> None:
        """Without config the built-in risk applies."""
        assert get_tool_risk_level("web_fetch") == ToolRiskLevel.MEDIUM
        assert get_tool_risk_level("custom_tool") is None

    def test_category_override(self) -> None:
        """Category config overrides the risk of every tool in it."""
        config = {"tools": {"categories": {"network": {"riskLevel": "critical"}}}}
        assert get_tool_risk_level("web_search", config) == ToolRiskLevel.CRITICAL
        assert get_tool_risk_level("file_read", config) == ToolRiskLevel.NONE

    def test_category_config_lookup(self) -> None:
        """Category config is looked up by category id."""
        config = {"tools": {"categories": {"write": {"requiresApproval": True, "deny": ["file_delete"]}}}}
        category_config = get_category_config("write", config)
        assert category_config is not None
        assert category_config.requires_approval is True
        assert category_config.deny == ["file_delete"]
        assert get_category_config("execute", config) is None
        assert get_category_config("write", None) is None


class TestRequiresApproval:
    """Tests for tool_requires_approval."""

    def test_defaults(self) -> None:
        """Execute and admin categories require approval by default."""
        assert APPROVAL_REQUIRED_CATEGORIES == {ToolCategory.EXECUTE, ToolCategory.ADMIN}
        assert tool_requires_approval("bash_execute")
        assert not tool_requires_approval("file_write")
        assert not tool_requires_approval("custom_tool")

    def test_category_override(self) -> None:
        """Category config can turn approval on or off."""
        config = {
            "tools": {
                "categories": {
                    "execute": {"requiresApproval": False},
                    "write": {"requiresApproval": True},
                }
            }
        }
        assert not tool_requires_approval("bash_execute", config)
        assert tool_requires_approval("file_write", config)
        assert not tool_requires_approval("web_fetch", config)
