"""Configuration module."""

from mailgate.config.loader import (
    EnvironmentReport,
    detect_environment,
    load_config,
    validate_environment,
)
from mailgate.config.models import (
    ConfigError,
    CredentialsConfig,
    TransportConfig,
    TransportMode,
)
from mailgate.config.paths import (
    get_credentials_path,
    get_logs_path,
    get_mailgate_home,
    get_oauth_keys_path,
)

__all__ = [
    "ConfigError",
    "CredentialsConfig",
    "EnvironmentReport",
    "TransportConfig",
    "TransportMode",
    "detect_environment",
    "get_credentials_path",
    "get_logs_path",
    "get_mailgate_home",
    "get_oauth_keys_path",
    "load_config",
    "validate_environment",
]
