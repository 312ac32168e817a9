"""Schemas related to the Canva OAuth flow."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuthCallbackPayload(BaseModel):
    """Query parameters Canva sends back to the callback endpoint."""

    code: Optional[str] = Field(None, description="Authorization code returned by Canva.")
    state: Optional[str] = Field(None, description="State token issued when starting OAuth.")


class AuthorizationUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    auth_url: str = Field(..., alias="authUrl")


__all__ = ["AuthorizationUrlResponse", "OAuthCallbackPayload"]
