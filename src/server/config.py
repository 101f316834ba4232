"""Server configuration loaded from environment variables (.env via python-dotenv)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.gmail.oauth import DEFAULT_REDIRECT_URI

_FALSE_VALUES = {"0", "false", "no", "n", "off", "disabled"}
_TRUE_VALUES = {"1", "true", "yes", "y", "on", "enabled"}


class ConfigError(Exception):
    """Raised when required settings are missing."""


def parse_flag(raw: str | None, default: bool = True) -> bool:
    """Interpret a boolean env var; unrecognised values keep the default."""
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _FALSE_VALUES:
        return False
    if value in _TRUE_VALUES:
        return True
    return default


@dataclass
class ServerConfig:
    """OAuth credentials and feature flags for the MCP server."""

    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    nasa_api_key: str = "DEMO_KEY"
    enable_space_picture: bool = True

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build ServerConfig from environment variables."""
        return cls(
            client_id=os.environ.get("GMAIL_CLIENT_ID", ""),
            client_secret=os.environ.get("GMAIL_CLIENT_SECRET", ""),
            refresh_token=os.environ.get("GMAIL_REFRESH_TOKEN", ""),
            redirect_uri=os.environ.get("GMAIL_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            nasa_api_key=os.environ.get("NASA_API_KEY") or "DEMO_KEY",
            enable_space_picture=parse_flag(
                os.environ.get("ENABLE_SPACE_PICTURE_OF_THE_DAY"), default=True
            ),
        )

    def validate_client(self) -> None:
        """Require the OAuth client id and secret (needed by `auth` and `serve`)."""
        if not self.client_id or not self.client_secret:
            raise ConfigError(
                "GMAIL_CLIENT_ID and GMAIL_CLIENT_SECRET must be set in .env file. "
                "Follow the instructions in .env.example to set up OAuth2 credentials."
            )

    def validate(self) -> None:
        """Require everything `serve` needs to reach Gmail."""
        self.validate_client()
        if not self.refresh_token:
            raise ConfigError(
                'GMAIL_REFRESH_TOKEN not found in .env file. Run "gmail-mcp auth" '
                "to get your refresh token."
            )
