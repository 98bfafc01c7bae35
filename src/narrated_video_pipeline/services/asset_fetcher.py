"""Background footage: stock video lookup with a fixed fallback, then download.

Resolution never fails: any search problem (missing key, network error,
non-2xx, empty or malformed payload) yields the configured fallback URL.
Downloading the resolved URL is fatal to the job when it fails.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..config import get_settings
from ..errors import AssetDownloadError
from ..logging_config import LoggerMixin


def extract_video_link(payload: Any) -> Optional[str]:
    """Pick the first playable file link from a Pexels video search payload."""
    if not isinstance(payload, dict):
        return None
    videos = payload.get("videos")
    if not isinstance(videos, list):
        return None

    for video in videos:
        if not isinstance(video, dict):
            continue
        files = video.get("video_files")
        if not isinstance(files, list):
            continue
        for video_file in files:
            if not isinstance(video_file, dict):
                continue
            link = video_file.get("link")
            if isinstance(link, str) and link.startswith("http"):
                return link
    return None


class AssetFetcher(LoggerMixin):
    """Resolve and materialize background footage for a job."""

    def __init__(self, settings=None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout, follow_redirects=True)

    async def resolve_background_url(self, hint: str) -> str:
        """
        Resolve a playable video URL for a style/category hint.

        Args:
            hint: Search query, e.g. the requested style or music mood

        Returns:
            A video URL; the fallback URL whenever the lookup fails
        """
        fallback = self.settings.fallback_video_url
        query = (hint or "").strip() or self.settings.default_background_query
        api_key = self.settings.pexels_api_key

        if not api_key:
            self.logger.warning("Stock footage key missing, using fallback video", query=query)
            return fallback

        params: Dict[str, Any] = {
            "query": query,
            "per_page": 1,
            "orientation": self.settings.background_orientation,
        }
        try:
            async with self._client(self.settings.search_timeout) as client:
                response = await client.get(
                    self.settings.pexels_video_search_url,
                    params=params,
                    headers={"Authorization": api_key},
                )
                response.raise_for_status()
                link = extract_video_link(response.json())
        except Exception as exc:
            self.logger.warning("Stock footage search failed, using fallback video", query=query, error=str(exc))
            return fallback

        if not link:
            self.logger.warning("Stock footage search returned no videos, using fallback", query=query)
            return fallback

        self.logger.info("Stock footage resolved", query=query, url=link)
        return link

    async def download(self, url: str, destination: Path) -> Path:
        """
        Stream ``url`` into ``destination``.

        Raises:
            AssetDownloadError: On transport, HTTP or write failure, or a short body
        """
        destination = Path(destination)
        written = 0
        expected = None
        try:
            async with self._client(self.settings.download_timeout) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    if "content-encoding" not in response.headers:
                        expected = response.headers.get("content-length")
                    handle = await asyncio.to_thread(open, destination, "wb")
                    try:
                        async for chunk in response.aiter_bytes(self.settings.download_chunk_size):
                            await asyncio.to_thread(handle.write, chunk)
                            written += len(chunk)
                    finally:
                        handle.close()
        except (httpx.HTTPError, OSError) as exc:
            raise AssetDownloadError(f"Background download failed: {exc}") from exc

        if written == 0:
            raise AssetDownloadError(f"Background download from {url} returned no data")
        if expected is not None and expected.isdigit() and int(expected) != written:
            raise AssetDownloadError(
                f"Background download truncated: got {written} of {expected} bytes"
            )

        self.logger.info("Background downloaded", url=url, bytes=written, path=str(destination))
        return destination

    async def fetch_background(self, hint: str, destination: Path) -> Path:
        """Resolve a background video for ``hint`` and download it."""
        url = await self.resolve_background_url(hint)
        return await self.download(url, destination)
