"""
Environment-driven settings for the dashboard
"""
import re
from typing import Optional

from pydantic_settings import BaseSettings

from .errors import ConfigurationError

ANALYTICS_SCOPE = "https://www.googleapis.com/auth/analytics.readonly"
OAUTH_SCOPES = ["openid", "profile", "email", ANALYTICS_SCOPE]


class Settings(BaseSettings):
    """Runtime configuration, read once at startup from the environment and .env"""
    google_client_id: str = ""
    google_client_secret: str = ""
    oauth_redirect_uri: str = "http://127.0.0.1:5050/auth/google/callback"
    session_secret: str = "dev-secret"
    session_https_only: bool = False
    ga4_property_id: str = ""
    port: int = 5050
    debug_mode: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_ignore_empty": True,
        "extra": "ignore",
    }

    @property
    def oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Settings from the environment; env_file replaces the default .env"""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()


def normalize_property_id(raw) -> str:
    """Extract the numeric GA4 property id from '123', 'properties/123' or similar.

    Returns an empty string when no digits are present.
    """
    value = str(raw or "").strip()
    if not value:
        return ""
    match = re.search(r"(\d+)", value)
    return match.group(1) if match else ""


def require_property_id(raw) -> str:
    """Like normalize_property_id but raises ConfigurationError on an unusable value"""
    property_id = normalize_property_id(raw)
    if not property_id:
        raise ConfigurationError(
            "Missing/invalid GA4_PROPERTY_ID in .env. Use the numeric GA4 Property ID (digits)."
        )
    return property_id
