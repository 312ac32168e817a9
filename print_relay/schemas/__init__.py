"""Public schema exports."""

from .auth import AuthorizationUrlResponse, OAuthCallbackPayload
from .handoff import (
    ClearRequest,
    DepositResponse,
    DesignRequest,
    DesignResponse,
    ErrorResponse,
    ExportRequest,
    HandoffStatusResponse,
    OkResponse,
    ReadyResponse,
    UploadRequest,
)

__all__ = [
    "AuthorizationUrlResponse",
    "ClearRequest",
    "DepositResponse",
    "DesignRequest",
    "DesignResponse",
    "ErrorResponse",
    "ExportRequest",
    "HandoffStatusResponse",
    "OAuthCallbackPayload",
    "OkResponse",
    "ReadyResponse",
    "UploadRequest",
]
