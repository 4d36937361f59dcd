"""Tests for toolpolicy.logging module."""

from __future__ import annotations

import json
import logging

import pytest

from toolpolicy import (
    EngineConfig,
    LogLevel,
    PolicyLogFormatter,
    get_policy_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="toolpolicy.test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="Tool %s denied",
        args=("bash_execute",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSafePreview:
    """Tests for safe_preview function."""

    def test_none_value(self) -> None:
        """Test that None returns empty string."""
        assert safe_preview(None) == ""

    def test_string_with_whitespace(self) -> None:
        """Test that whitespace is normalized."""
        assert safe_preview("rm\n\t-rf   /tmp") == "rm -rf /tmp"

    def test_string_truncation(self) -> None:
        """Test that long strings are truncated."""
        result = safe_preview("a" * 300, limit=100)
        assert len(result) == 100
        assert result.endswith("…")

    def test_dict_value(self) -> None:
        """Tool arguments are rendered as JSON."""
        result = safe_preview({"path": "/workspace", "recursive": True})
        assert '"path": "/workspace"' in result


class TestRedactSecrets:
    """Tests for redact_secrets function."""

    def test_password_pattern(self) -> None:
        text = 'password: "secret123"'
        result = redact_secrets(text)
        assert "[REDACTED]" in result
        assert "secret123" not in result

    def test_bearer_token(self) -> None:
        result = redact_secrets("curl -H 'Authorization: Bearer abc123def456'")
        assert "abc123def456" not in result

    def test_no_secrets(self) -> None:
        """Normal text is not modified."""
        text = "Tool file_read allowed for agent coder"
        assert redact_secrets(text) == text

    def test_custom_replacement(self) -> None:
        assert "[HIDDEN]" in redact_secrets("password: secret123", replacement="[HIDDEN]")

    def test_key_and_scheme_are_kept(self) -> None:
        """Only the secret value is replaced."""
        assert redact_secrets("export API_KEY=abc123") == "export API_KEY=[REDACTED]"
        assert redact_secrets('client_secret: "s3cr3t", user: bob') == "client_secret: [REDACTED], user: bob"
        assert redact_secrets("Authorization: Bearer abc.def") == "Authorization: Bearer [REDACTED]"


class TestSafeLogValue:
    """Tests for safe_log_value function."""

    def test_with_redaction(self) -> None:
        assert "[REDACTED]" in safe_log_value({"env": "api_key=sk-1234567890"})

    def test_without_redaction(self) -> None:
        assert "api_key" in safe_log_value("api_key: sk-1234567890", redact=False)

    def test_truncation(self) -> None:
        assert len(safe_log_value("a" * 500, limit=100)) <= 100

    def test_redacts_before_truncating(self) -> None:
        """A secret cut by the length limit is still hidden."""
        value = "x" * 90 + " token=supersecretvalue"
        result = safe_log_value(value, limit=100)
        assert "supersec" not in result
        assert len(result) <= 100


class TestPolicyLogFormatter:
    """Tests for PolicyLogFormatter."""

    def test_json_format(self) -> None:
        """JSON output includes agent/session/tool context."""
        formatter = PolicyLogFormatter(json_format=True)
        data = json.loads(formatter.format(make_record(agent_id="coder", session_id="s-1", tool_name="bash_execute")))
        assert data["level"] == "INFO"
        assert data["message"] == "Tool bash_execute denied"
        assert data["agent_id"] == "coder"
        assert data["session_id"] == "s-1"
        assert data["tool_name"] == "bash_execute"

    def test_plain_format(self) -> None:
        """Plain output carries the context as key=value pairs."""
        formatter = PolicyLogFormatter(json_format=False)
        result = formatter.format(make_record(agent_id="coder"))
        assert not result.startswith("{")
        assert "INFO" in result
        assert "agent_id=coder" in result
        assert "Tool bash_execute denied" in result

    def test_extra_fields_are_redacted(self) -> None:
        """Extra fields pass through safe_log_value."""
        formatter = PolicyLogFormatter(json_format=True)
        data = json.loads(formatter.format(make_record(command="export password=hunter2")))
        assert "hunter2" not in data["command"]

    def test_redaction_can_be_disabled(self) -> None:
        formatter = PolicyLogFormatter(json_format=True, redact_secrets=False)
        record = make_record()
        record.msg = "password=hunter2"
        record.args = ()
        assert json.loads(formatter.format(record))["message"] == "password=hunter2"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_with_config(self) -> None:
        """Test logging setup with EngineConfig."""
        setup_logging(config=EngineConfig(log_level=LogLevel.DEBUG))
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_with_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test logging setup loading from environment."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_json_format_from_config(self, capsys: pytest.CaptureFixture) -> None:
        """log_json selects JSON output."""
        setup_logging(config=EngineConfig(log_level=LogLevel.INFO, log_json=True))
        logging.getLogger("test").info("Test message")

        data = json.loads(capsys.readouterr().err.strip())
        assert data["message"] == "Test message"
        assert data["logger"] == "test"

    def test_plain_format_override(self, capsys: pytest.CaptureFixture) -> None:
        """json_format overrides the config."""
        setup_logging(config=EngineConfig(log_level=LogLevel.INFO, log_json=True), json_format=False)
        logging.getLogger("test").info("Test message")

        output = capsys.readouterr().err.strip()
        assert "Test message" in output
        assert not output.startswith("{")


class TestPolicyLogger:
    """Tests for the policy logger adapter."""

    def test_adapter_stamps_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_policy_logger("toolpolicy.test", agent_id="coder", session_id="s-1")
        with caplog.at_level(logging.INFO, logger="toolpolicy.test"):
            logger.info("Tool denied", extra={"tool_name": "bash_execute"})
        record = caplog.records[-1]
        assert record.agent_id == "coder"
        assert record.session_id == "s-1"
        assert record.tool_name == "bash_execute"

    def test_per_call_override(self, caplog: pytest.LogCaptureFixture) -> None:
        """Per-call ids replace the adapter defaults."""
        logger = get_policy_logger("toolpolicy.test", agent_id="coder")
        with caplog.at_level(logging.INFO, logger="toolpolicy.test"):
            logger.info("Tool denied", agent_id="reviewer", session_id="s-2")
        record = caplog.records[-1]
        assert record.agent_id == "reviewer"
        assert record.session_id == "s-2"

    def test_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_policy_logger("toolpolicy.test")
        with caplog.at_level(logging.INFO, logger="toolpolicy.test"):
            logger.info("Tool allowed")
        assert not hasattr(caplog.records[-1], "agent_id")
