"""Credential presence checks.

OAuth acquisition and refresh belong to the Gmail tool server. This layer
only needs to know whether its credential files exist, for health reporting.
Files are never opened or read here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mailgate.config.models import CredentialsConfig


class CredentialStatus(Protocol):
    """What the credential subsystem exposes to the health aggregator."""

    def credentials_present(self) -> bool: ...

    def oauth_keys_present(self) -> bool: ...


@dataclass(frozen=True)
class FileCredentialStatus:
    """Presence check against the configured credential file paths."""

    credentials_path: Path
    oauth_keys_path: Path

    @classmethod
    def from_config(cls, config: CredentialsConfig) -> "FileCredentialStatus":
        return cls(
            credentials_path=config.credentials_path,
            oauth_keys_path=config.oauth_keys_path,
        )

    def credentials_present(self) -> bool:
        return self.credentials_path.is_file()

    def oauth_keys_present(self) -> bool:
        return self.oauth_keys_path.is_file()
