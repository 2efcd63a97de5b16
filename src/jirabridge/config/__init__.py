"""
jirabridge - Configuration Management

This module provides configuration management including:
- YAML configuration loading and validation
- Receiver defaults inheritance
- Environment variable handling and Jira credential fallback
"""

from jirabridge.config.environment import (
    EnvironmentConfig,
    ensure_dotenv_loaded,
    load_environment,
    reset_environment,
)
from jirabridge.config.loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATHS,
    ENV_VAR_OVERRIDES,
    ConfigLoader,
    ConfigurationError,
    load_config,
)
from jirabridge.config.models import (
    HttpConfig,
    JirabridgeConfig,
    LoggingConfig,
    LogLevel,
    ReceiverConfig,
    merge_receiver,
    parse_duration,
)

__all__ = [
    # Config models
    "HttpConfig",
    "JirabridgeConfig",
    "LoggingConfig",
    "LogLevel",
    "ReceiverConfig",
    "merge_receiver",
    "parse_duration",
    # Loader
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATHS",
    "ENV_VAR_OVERRIDES",
    # Environment
    "EnvironmentConfig",
    "ensure_dotenv_loaded",
    "load_environment",
    "reset_environment",
]
