"""Service layer exports."""

from .artifact_store import ArtifactRelayStore, build_public_url
from .canva_tokens import (
    AuthorizationError,
    AuthorizationOutcome,
    CanvaTokenService,
    TokenFailureReason,
    TokenLookup,
)
from .handoff import DesignOutcome, HandoffService, HandoffState, mm_to_pixels
from .oauth_stores import AuthorizationStateStore, TokenStore
from .token_cipher import TokenCipherService

__all__ = [
    "ArtifactRelayStore",
    "AuthorizationError",
    "AuthorizationOutcome",
    "AuthorizationStateStore",
    "CanvaTokenService",
    "DesignOutcome",
    "HandoffService",
    "HandoffState",
    "TokenCipherService",
    "TokenFailureReason",
    "TokenLookup",
    "TokenStore",
    "build_public_url",
    "mm_to_pixels",
]
