"""
Application configuration models and helpers.

Centralizes settings management so the HTTP surface, the artifact relay and
the Canva token lifecycle share one configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the process env."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class _RelayBaseSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")


class CanvaSettings(_RelayBaseSettings):
    """Configuration required for talking to the Canva Connect API."""

    client_id: Optional[str] = Field(None, alias="CANVA_CLIENT_ID")
    client_secret: Optional[str] = Field(None, alias="CANVA_CLIENT_SECRET")
    redirect_uri: Optional[AnyHttpUrl] = Field(None, alias="CANVA_REDIRECT_URI")
    authorize_url: str = Field(
        "https://www.canva.com/api/oauth/authorize", alias="CANVA_AUTHORIZE_URL"
    )
    token_url: str = Field(
        "https://api.canva.com/rest/v1/oauth/token", alias="CANVA_TOKEN_URL"
    )
    api_base_url: str = Field(
        "https://api.canva.com/rest/v1", alias="CANVA_API_BASE_URL"
    )
    design_dpi: int = Field(
        96,
        alias="CANVA_DESIGN_DPI",
        gt=0,
        description="Resolution used to turn millimetres into design pixels.",
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)


class RelaySettings(_RelayBaseSettings):
    """Artifact handoff behaviour."""

    retention_seconds: int = Field(900, alias="RELAY_RETENTION_SECONDS", gt=0)
    single_read: bool = Field(
        False,
        alias="RELAY_SINGLE_READ",
        description="Purge an artifact as soon as it has been retrieved once.",
    )
    session_addressing: Literal["explicit", "cookie"] = Field(
        "explicit",
        alias="RELAY_SESSION_ADDRESSING",
        description="Either caller-supplied sessionId values or a relay-minted cookie.",
    )
    cookie_name: str = Field("relay_session", alias="RELAY_COOKIE_NAME")
    cookie_max_age: int = Field(
        3600, alias="RELAY_COOKIE_MAX_AGE", ge=1800, le=14400
    )
    download_timeout_seconds: float = Field(10.0, alias="RELAY_DOWNLOAD_TIMEOUT", gt=0)
    sweep_interval_seconds: int = Field(
        60, alias="RELAY_SWEEP_INTERVAL_SECONDS", ge=1
    )


class SecuritySettings(_RelayBaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting cached tokens."
        ),
    )


class OAuthSettings(_RelayBaseSettings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, alias="OAUTH_STATE_TTL", gt=0)
    expiry_margin_seconds: int = Field(60, alias="OAUTH_EXPIRY_MARGIN", ge=0)
    request_timeout_seconds: float = Field(10.0, alias="OAUTH_REQUEST_TIMEOUT", gt=0)
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "design:meta:read",
            "design:content:read",
            "design:content:write",
        ),
        alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class AppSettings(_RelayBaseSettings):
    """Root settings object for the relay application."""

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    base_public_url: str = Field(
        "https://canva-mcp-pressero.onrender.com",
        alias="BASE_PUBLIC_URL",
        description="Public origin used to build artifact download URLs.",
    )
    frontend_base_url: Optional[AnyHttpUrl] = Field(
        None,
        alias="FRONTEND_BASE_URL",
        description="Optional URL to send the browser to after authorization.",
    )
    cors_allow_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("*",), alias="CORS_ALLOW_ORIGINS"
    )
    max_body_bytes: int = Field(20 * 1024 * 1024, alias="MAX_BODY_BYTES", gt=0)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    canva: CanvaSettings = Field(default_factory=CanvaSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        if isinstance(value, (tuple, list)):
            return tuple(value)
        return tuple(origin.strip() for origin in value.split(",") if origin.strip())

    @field_validator("base_public_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "CanvaSettings",
    "OAuthSettings",
    "RelaySettings",
    "SecuritySettings",
    "get_settings",
]
