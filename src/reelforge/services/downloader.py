"""Streaming HTTP downloads into a job's scratch directory."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiohttp

from reelforge.utils.retry import NetworkError, TemporaryServiceError, retry_api_call

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; reelforge/1.0)"
CHUNK_SIZE = 64 * 1024

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
}


class DownloadError(Exception):
    """Raised when a file cannot be downloaded or comes back empty."""


def guess_extension(content_type: str, url: str, media_type: str = "image") -> str:
    """Determine file extension from content type, then URL, then media type."""
    for mime, ext in CONTENT_TYPE_EXTENSIONS.items():
        if mime in content_type:
            return ext

    path = url.lower().split("?", 1)[0]
    for ext in (".jpg", ".jpeg", ".png", ".webp", ".gif", ".mp4", ".mov", ".webm"):
        if path.endswith(ext):
            return ".jpg" if ext == ".jpeg" else ext

    return ".mp4" if media_type == "video" else ".jpg"


class AssetDownloader:
    """Downloads media with a timeout and one retry on network errors."""

    def __init__(self, timeout_seconds: float = 45.0):
        self.timeout_seconds = timeout_seconds

    async def download(
        self,
        url: str,
        output_path: Path,
        media_type: str = "image",
        timeout_seconds: Optional[float] = None,
        referer: Optional[str] = None,
    ) -> Path:
        """Download url to output_path.

        If output_path has no suffix one is chosen from the response. Returns
        the final path; raises DownloadError on any failure.
        """
        if not url:
            raise DownloadError("No URL to download")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        timeout = timeout_seconds or self.timeout_seconds

        try:
            path = await self._download_with_retry(url, output_path, media_type, timeout, referer)
        except (NetworkError, TemporaryServiceError) as e:
            raise DownloadError(f"Download failed for {url}: {e}") from e

        logger.debug(f"Downloaded {media_type} {url} -> {path}")
        return path

    @retry_api_call(max_retries=1, base_delay=1.0)
    async def _download_with_retry(
        self,
        url: str,
        output_path: Path,
        media_type: str,
        timeout: float,
        referer: Optional[str],
    ) -> Path:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "video/*" if media_type == "video" else "image/*",
        }
        if referer:
            headers["Referer"] = referer

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as session:
                async with session.get(url, headers=headers, allow_redirects=True) as response:
                    if response.status == 429 or response.status >= 500:
                        raise TemporaryServiceError(f"HTTP {response.status} from {url}")
                    if response.status != 200:
                        raise DownloadError(f"HTTP {response.status} from {url}")

                    if not output_path.suffix:
                        content_type = response.headers.get("content-type", "")
                        output_path = output_path.with_suffix(
                            guess_extension(content_type, url, media_type)
                        )

                    with open(output_path, "wb") as f:
                        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                            f.write(chunk)

        except aiohttp.ClientError as e:
            output_path.unlink(missing_ok=True)
            raise NetworkError(f"Network error downloading {url}: {e}") from e
        except asyncio.TimeoutError as e:
            output_path.unlink(missing_ok=True)
            raise NetworkError(f"Timed out downloading {url}") from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            output_path.unlink(missing_ok=True)
            raise DownloadError(f"Downloaded file is empty: {url}")

        return output_path
