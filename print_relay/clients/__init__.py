"""Expose constructed client wrappers."""

from .artifact_source import ArtifactDownloadError, ArtifactDownloader
from .canva_auth import CanvaOAuthClient, OAuthNotConfiguredError, OAuthTokenExchangeError
from .canva_designs import CanvaApiError, CanvaDesignClient, TokenRevokedError

__all__ = [
    "ArtifactDownloadError",
    "ArtifactDownloader",
    "CanvaApiError",
    "CanvaDesignClient",
    "CanvaOAuthClient",
    "OAuthNotConfiguredError",
    "OAuthTokenExchangeError",
    "TokenRevokedError",
]
