"""
Domain models for the OAuth handshake and cached Canva tokens.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorizationState(BaseModel):
    """Pending authorization flow, keyed by its anti-replay state token."""

    user_key: str = Field(..., description="User on whose behalf consent was requested.")
    code_verifier: str = Field(..., repr=False)
    created_at: datetime = Field(default_factory=_utcnow)


class StoredOAuthToken(BaseModel):
    """Token record cached per user key; token values are kept encrypted."""

    user_key: str
    access_token_encrypted: str = Field(..., repr=False)
    refresh_token_encrypted: Optional[str] = Field(None, repr=False)
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class TokenGrant(BaseModel):
    """Token endpoint response reduced to the fields the relay uses."""

    access_token: str = Field(..., min_length=1, repr=False)
    refresh_token: Optional[str] = Field(None, repr=False)
    expires_in: int = Field(..., gt=0)


__all__ = ["AuthorizationState", "StoredOAuthToken", "TokenGrant"]
