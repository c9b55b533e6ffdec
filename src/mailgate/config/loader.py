"""Configuration loading from environment variables."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError

from mailgate.access.matcher import PRIVATE_NETWORK_PATTERN
from mailgate.config.models import (
    MODE_ALIASES,
    ConfigError,
    CredentialsConfig,
    TransportConfig,
    TransportMode,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000

BOOLEAN_VARS = (
    "ENABLE_IPV6",
    "IPV6_DUAL_STACK",
    "IPV6_PREFER",
    "ALLOW_PRIVATE_NETWORK_ACCESS",
    "RAILWAY_INTERNAL_ACCESS",
)

# Defaults applied when running on Railway unless overridden
RAILWAY_DEFAULTS: dict[str, str] = {
    "MCP_SERVER_MODE": "http",
    "ENABLE_IPV6": "true",
    "IPV6_DUAL_STACK": "true",
    "IPV6_PREFER": "true",
    "ALLOW_PRIVATE_NETWORK_ACCESS": "true",
    "RAILWAY_INTERNAL_ACCESS": "true",
}

EXAMPLE_VALUES: dict[str, str] = {
    "CORS_ORIGINS": (
        "https://myapp.example.com,http://localhost:3000,https://*.railway.app"
    ),
    "MCP_SERVER_MODE": "dual",
    "ENABLE_IPV6": "true",
    "GMAIL_CREDENTIALS_PATH": "/app/credentials/gmail-credentials.json",
    "GMAIL_OAUTH_PATH": "/app/credentials/gcp-oauth.keys.json",
}


@dataclass
class EnvironmentReport:
    """Outcome of validating the raw environment."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def detect_environment(environ: Mapping[str, str]) -> Literal["local", "railway"]:
    """Detect whether we are running on Railway or locally."""
    if environ.get("RAILWAY_ENVIRONMENT") or environ.get("RAILWAY_SERVICE_NAME"):
        return "railway"
    # Railway always sets PORT; local Node-style setups usually set NODE_ENV too
    if environ.get("PORT") and not environ.get("NODE_ENV"):
        return "railway"
    return "local"


def _parse_bool(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.strip().lower() == "true"


def _split_origins(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(s.strip() for s in value.split(",") if s.strip())


def _layer(
    environ: Mapping[str, str], overrides: Mapping[str, str] | None
) -> tuple[Literal["local", "railway"], Mapping[str, str]]:
    """Detect the environment, then layer overrides onto the values.

    Overrides never change the detected environment: a PORT given on the
    command line is not evidence of a Railway deployment.
    """
    environment = detect_environment(environ)
    if not overrides:
        return environment, environ
    return environment, {**environ, **overrides}


def validate_environment(
    environ: Mapping[str, str], overrides: Mapping[str, str] | None = None
) -> EnvironmentReport:
    """Check raw environment values, collecting every problem at once."""
    report = EnvironmentReport()
    environment, environ = _layer(environ, overrides)

    port = environ.get("PORT")
    if environment == "railway" and not port:
        report.errors.append(
            "PORT environment variable is required for Railway deployment"
        )
    if port:
        try:
            value = int(port)
        except ValueError:
            value = -1
        if not 1 <= value <= 65535:
            report.errors.append(
                f"Invalid PORT value: {port}. Must be a number between 1 and 65535"
            )

    if environment == "railway":
        if not environ.get("RAILWAY_ENVIRONMENT"):
            report.warnings.append(
                "RAILWAY_ENVIRONMENT not set - this may indicate the app is not "
                "running on Railway"
            )
        if not environ.get("RAILWAY_SERVICE_NAME"):
            report.warnings.append(
                "RAILWAY_SERVICE_NAME not set - service identification may be limited"
            )

    if not environ.get("GMAIL_CREDENTIALS_PATH") and not environ.get(
        "GMAIL_OAUTH_PATH"
    ):
        report.warnings.append(
            "Gmail credential paths not specified - using default locations "
            "in ~/.gmail-mcp/"
        )

    invalid_origins = [
        origin
        for origin in _split_origins(environ.get("CORS_ORIGINS"))
        if origin != PRIVATE_NETWORK_PATTERN
        and not origin.startswith(("http://", "https://"))
        and "*" not in origin
    ]
    if invalid_origins:
        report.errors.append(
            f"Invalid CORS origins detected: {', '.join(invalid_origins)}. "
            "Origins must start with http:// or https://, contain wildcards, "
            f"or be {PRIVATE_NETWORK_PATTERN}"
        )

    for name in BOOLEAN_VARS:
        value = environ.get(name)
        if value and value.strip().lower() not in ("true", "false"):
            report.errors.append(
                f"Invalid boolean value for {name}: {value}. Must be 'true' or 'false'"
            )

    mode = environ.get("MCP_SERVER_MODE")
    if mode and mode.strip().lower() not in MODE_ALIASES:
        report.errors.append(
            f"Invalid MCP_SERVER_MODE: {mode}. Must be 'stdio', 'http', or 'dual'"
        )

    return report


def _build_raw_config(
    environ: Mapping[str, str], environment: Literal["local", "railway"]
) -> dict[str, Any]:
    """Translate environment variables into TransportConfig fields."""
    on_railway = environment == "railway"

    mode_value = environ.get("MCP_SERVER_MODE", "").strip().lower()
    if mode_value:
        mode = MODE_ALIASES[mode_value]
    else:
        mode = TransportMode.NETWORK if on_railway else TransportMode.POINT_TO_POINT

    port_value = environ.get("PORT")
    port = int(port_value) if port_value else DEFAULT_PORT

    enable_ipv6 = _parse_bool(environ.get("ENABLE_IPV6"))
    if enable_ipv6 is None:
        enable_ipv6 = on_railway

    prefer_ipv6 = _parse_bool(environ.get("IPV6_PREFER"))
    if prefer_ipv6 is None:
        prefer_ipv6 = on_railway

    dual_stack = _parse_bool(environ.get("IPV6_DUAL_STACK"))
    if dual_stack is None:
        dual_stack = True if on_railway else enable_ipv6

    allow_private = _parse_bool(environ.get("ALLOW_PRIVATE_NETWORK_ACCESS"))
    if allow_private is None:
        allow_private = on_railway

    allow_platform = _parse_bool(environ.get("RAILWAY_INTERNAL_ACCESS"))
    if allow_platform is None:
        allow_platform = on_railway

    credentials: dict[str, Any] = {}
    if path := environ.get("GMAIL_CREDENTIALS_PATH"):
        credentials["credentials_path"] = Path(path).expanduser()
    if path := environ.get("GMAIL_OAUTH_PATH"):
        credentials["oauth_keys_path"] = Path(path).expanduser()

    return {
        "environment": environment,
        "mode": mode,
        "port": port,
        "bind_address": environ.get("BIND_ADDRESS") or None,
        "enable_ipv6": enable_ipv6,
        "prefer_ipv6": prefer_ipv6,
        "dual_stack": dual_stack,
        "allowed_origins": _split_origins(environ.get("CORS_ORIGINS")),
        "allow_private_network_access": allow_private,
        "allow_platform_internal_access": allow_platform,
        "credentials": CredentialsConfig(**credentials),
    }


def _log_guidance(errors: list[str]) -> None:
    logger.error("Configuration errors:")
    for message in errors:
        logger.error(f"  {message}")
    logger.error("Required for Railway: PORT")
    logger.error("Example values:")
    for key, value in EXAMPLE_VALUES.items():
        logger.error(f"  {key}={value}")


def load_config(
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None,
) -> TransportConfig:
    """Load configuration from environment variables.

    Args:
        environ: Variables to read. If None, uses the process environment.
        overrides: Values that take precedence over environ, such as
            command-line flags. They do not affect environment detection.

    Returns:
        Validated TransportConfig instance.

    Raises:
        ConfigError: If any variable is invalid. Every problem is reported.
    """
    if environ is None:
        environ = os.environ

    report = validate_environment(environ, overrides)
    if not report.is_valid:
        _log_guidance(report.errors)
        raise ConfigError(
            f"Configuration validation failed with {len(report.errors)} error(s)",
            report.errors,
        )

    environment, values = _layer(environ, overrides)
    try:
        config = TransportConfig.model_validate(
            _build_raw_config(values, environment)
        )
    except ValidationError as e:
        errors = [err["msg"] for err in e.errors()]
        _log_guidance(errors)
        raise ConfigError("Configuration validation failed", errors) from e

    for warning in report.warnings:
        logger.warning(warning)

    if config.environment == "local" and config.mode.uses_network:
        logger.info(
            "For Railway deployment, consider setting: "
            + ", ".join(f"{k}={v}" for k, v in RAILWAY_DEFAULTS.items())
        )

    return config
