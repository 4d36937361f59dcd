from .config import (
    AgentToolsConfig,
    EngineConfig,
    GlobalToolsConfig,
    GroupToolPolicyConfig,
    LogLevel,
    SubagentsConfig,
    ToolArgumentRule,
    ToolCategoryConfig,
    ToolPolicy,
    ToolPolicyConfig,
    ToolRateLimitConfig,
    WundrToolPolicyConfig,
    load_engine_config_from_env,
    load_tool_policy_config,
)
from .exceptions import (
    ConfigurationError,
    ToolArgumentValidationError,
    ToolPolicyDeniedError,
    ToolPolicyError,
    ToolRateLimitError,
)
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    PolicyLogFormatter,
    PolicyLoggerAdapter,
    setup_logging,
    get_policy_logger,
)
from .policy import *  # noqa: F401,F403
from .policy import __all__ as _policy_all

__all__ = [
    'AgentToolsConfig',
    'EngineConfig',
    'GlobalToolsConfig',
    'GroupToolPolicyConfig',
    'LogLevel',
    'SubagentsConfig',
    'ToolArgumentRule',
    'ToolCategoryConfig',
    'ToolPolicy',
    'ToolPolicyConfig',
    'ToolRateLimitConfig',
    'WundrToolPolicyConfig',
    'load_engine_config_from_env',
    'load_tool_policy_config',
    'ConfigurationError',
    'ToolArgumentValidationError',
    'ToolPolicyDeniedError',
    'ToolPolicyError',
    'ToolRateLimitError',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'PolicyLogFormatter',
    'PolicyLoggerAdapter',
    'setup_logging',
    'get_policy_logger',
    *_policy_all,
]
