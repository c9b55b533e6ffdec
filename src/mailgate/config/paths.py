"""Default filesystem locations.

Credentials are shared with the Gmail tool server and live in its
configuration directory. Logs live under the mailgate home, which can be
overridden with the MAILGATE_HOME environment variable.

Default locations:
- Credentials: ~/.gmail-mcp/credentials.json, ~/.gmail-mcp/gcp-oauth.keys.json
- Logs: ~/.mailgate/logs
"""

import os
from pathlib import Path

ENV_VAR = "MAILGATE_HOME"

CREDENTIALS_FILENAME = "credentials.json"
OAUTH_KEYS_FILENAME = "gcp-oauth.keys.json"


def get_mailgate_home() -> Path:
    """Get the base directory for mailgate runtime data.

    Resolution order:
    1. MAILGATE_HOME environment variable (if set)
    2. Platform default (~/.mailgate)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".mailgate"


def get_gmail_config_dir() -> Path:
    """Get the Gmail tool server's configuration directory."""
    return Path.home() / ".gmail-mcp"


def get_credentials_path() -> Path:
    """Get the default stored user credentials path."""
    return get_gmail_config_dir() / CREDENTIALS_FILENAME


def get_oauth_keys_path() -> Path:
    """Get the default OAuth client keys path."""
    return get_gmail_config_dir() / OAUTH_KEYS_FILENAME


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_mailgate_home() / "logs"
