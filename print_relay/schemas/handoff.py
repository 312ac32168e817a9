"""Request and response bodies for the artifact handoff endpoints."""

from __future__ import annotations

import base64
import binascii
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from print_relay.models.artifact import DEFAULT_FILENAME


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class ExportRequest(_CamelModel):
    """Deposit by URL; only the first file is fetched."""

    files: List[str] = Field(default_factory=list)
    session_id: Optional[str] = Field(None, alias="sessionId")
    export_title: Optional[str] = Field(None, alias="exportTitle", max_length=200)


class UploadRequest(_CamelModel):
    """Deposit an inline base64 payload."""

    session_id: Optional[str] = Field(None, alias="sessionId")
    filename: str = Field(DEFAULT_FILENAME, max_length=200)
    file_base64: Optional[str] = Field(None, alias="fileBase64")

    @field_validator("filename")
    @classmethod
    def _basename_only(cls, value: str) -> str:
        name = value.replace("\\", "/").rsplit("/", 1)[-1]
        return name or DEFAULT_FILENAME

    def decode_file(self) -> bytes:
        try:
            # Automation tools often send MIME line-wrapped base64.
            compact = "".join((self.file_base64 or "").split())
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("fileBase64 is not valid base64") from exc


class ClearRequest(_CamelModel):
    session_id: Optional[str] = Field(None, alias="sessionId")


class DesignRequest(_CamelModel):
    """Ask for a new Canva design sized in millimetres."""

    width_mm: float = Field(..., alias="widthMm", gt=0, le=5000)
    height_mm: float = Field(..., alias="heightMm", gt=0, le=5000)
    user_key: Optional[str] = Field(None, alias="userKey")
    title: Optional[str] = Field(None, max_length=255)


class OkResponse(_CamelModel):
    ok: bool = True


class DepositResponse(_CamelModel):
    ok: bool = True
    url: str


class ReadyResponse(_CamelModel):
    ready: bool
    url: Optional[str] = None


class DesignResponse(_CamelModel):
    ok: bool
    edit_url: Optional[str] = Field(None, alias="editUrl")
    need_auth: Optional[bool] = Field(None, alias="needAuth")
    auth_url: Optional[str] = Field(None, alias="authUrl")
    message: Optional[str] = None
    code: Optional[str] = None


class HandoffStatusResponse(_CamelModel):
    state: str


class ErrorResponse(_CamelModel):
    ok: bool = False
    message: str


__all__ = [
    "ClearRequest",
    "DepositResponse",
    "DesignRequest",
    "DesignResponse",
    "ErrorResponse",
    "ExportRequest",
    "HandoffStatusResponse",
    "OkResponse",
    "ReadyResponse",
    "UploadRequest",
]
