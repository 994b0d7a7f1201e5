"""Runtime settings loaded from the environment and .env."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
load_dotenv()


# Env var prefixes tried in order for each platform's client credentials
_CLIENT_ENV_PREFIXES: dict[str, list[str]] = {
    "instagram": ["META", "INSTAGRAM"],
    "facebook": ["FACEBOOK", "META"],
    "meta": ["META"],
    "youtube": ["GOOGLE", "YOUTUBE"],
    "linkedin-org": ["LINKEDIN_CM"],
}

# TikTok names its client id "client key"
_CLIENT_ID_SUFFIX: dict[str, str] = {
    "tiktok": "CLIENT_KEY",
}


class ClientCredentials(BaseModel):
    """OAuth client id/secret pair for one platform."""

    client_id: str = ""
    client_secret: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def __repr__(self) -> str:
        return f"ClientCredentials(client_id={self.client_id!r}, client_secret='***')"


class Settings(BaseSettings):
    """Global settings for the publisher.

    Values come from environment variables (case-insensitive field names)
    or a local .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    token_encryption_key: str = ""
    oauth_state_secret: str = ""
    app_base_url: str = "http://localhost:3000"
    http_timeout_seconds: float = 60.0
    log_dir: Path = Path("logs")
    log_level: str = "INFO"

    # Explicit per-platform credentials; env vars are used when absent
    oauth_clients: dict[str, ClientCredentials] = Field(default_factory=dict)

    @property
    def state_secret(self) -> str:
        """Secret used to sign OAuth state."""
        return self.oauth_state_secret or self.token_encryption_key

    def redirect_uri(self, platform: str) -> str:
        """Callback URL registered with the platform."""
        return f"{self.app_base_url.rstrip('/')}/api/oauth/callback/{platform}"

    def get_client(self, platform: str) -> ClientCredentials:
        """Resolve client credentials for a platform.

        Args:
            platform: Platform identifier.

        Returns:
            ClientCredentials, possibly empty when nothing is configured.
        """
        if platform in self.oauth_clients:
            return self.oauth_clients[platform]

        default_prefix = platform.upper().replace("-", "_")
        prefixes = _CLIENT_ENV_PREFIXES.get(platform, [default_prefix])
        id_suffix = _CLIENT_ID_SUFFIX.get(platform, "CLIENT_ID")

        client_id = _first_env([f"{p}_{id_suffix}" for p in prefixes])
        client_secret = _first_env([f"{p}_CLIENT_SECRET" for p in prefixes])
        return ClientCredentials(client_id=client_id or "", client_secret=client_secret or "")


def _first_env(names: list[str]) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
