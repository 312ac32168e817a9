"""Download exported artifacts from the URLs the design tool hands over."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class ArtifactDownloadError(Exception):
    """Raised when an artifact cannot be fetched from its source URL."""


class ArtifactDownloader:
    """Fetch binary exports with a hard timeout and no retries."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._max_bytes = max_bytes
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    return await self._read_capped(response)
        except httpx.HTTPError as exc:
            # Export URLs are signed; only the failure type is logged.
            logger.warning("Artifact download failed: %s", type(exc).__name__)
            raise ArtifactDownloadError("Artifact download failed.") from exc

    async def _read_capped(self, response: httpx.Response) -> bytes:
        chunks = bytearray()
        async for chunk in response.aiter_bytes():
            chunks.extend(chunk)
            if self._max_bytes is not None and len(chunks) > self._max_bytes:
                raise ArtifactDownloadError(
                    f"Artifact exceeds the {self._max_bytes} byte limit."
                )
        return bytes(chunks)


__all__ = ["ArtifactDownloadError", "ArtifactDownloader"]
