"""Immediate download of time-limited provider artifacts."""

from __future__ import annotations

import httpx

from incarnate.common.logging import get_logger
from incarnate.providers.base import ProviderError, normalize_error

logger = get_logger(__name__)

GEMINI_FILES_HOST = "generativelanguage.googleapis.com"


class ArtifactDownloader:
    """
    Fetches provider output URLs.

    Provider URLs expire within minutes, so callers fetch bytes as soon as a
    task succeeds instead of keeping the URL.
    """

    def __init__(self, http: httpx.AsyncClient, google_api_key: str = ""):
        self.http = http
        self.google_api_key = google_api_key

    def _headers_for(self, url: str) -> dict[str, str]:
        if self.google_api_key and GEMINI_FILES_HOST in httpx.URL(url).host:
            return {"x-goog-api-key": self.google_api_key}
        return {}

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` and return its body."""
        try:
            response = await self.http.get(
                url,
                headers=self._headers_for(url),
                follow_redirects=True,
            )
        except Exception as e:
            raise normalize_error(e) from e

        if response.is_error:
            message = f"Download failed: {response.status_code}"
            raise ProviderError(message, retryable=response.status_code >= 500)

        logger.info("artifact_downloaded", host=response.url.host, size_bytes=len(response.content))
        return response.content
