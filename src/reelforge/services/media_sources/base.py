"""Base abstractions for stock media sources and providers."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Protocol

import aiohttp

from reelforge.models.asset import MediaCandidate
from reelforge.utils.retry import NetworkError, TemporaryServiceError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT = 30.0


class MediaSourceError(Exception):
    """Raised when media search fails in a way that is not just 'no results'."""


class MediaProvider(Protocol):
    """What the asset resolver needs from a media provider."""

    async def search(self, keywords: str, media_type: str, limit: int) -> list[MediaCandidate]:
        ...

    async def download(self, url: str, output_path: Path, media_type: str = "image") -> Path:
        ...


class MediaSource(ABC):
    """Abstract base class for stock media sources (Pexels, Pixabay, Unsplash)."""

    supported_types: frozenset[str] = frozenset({"image"})

    def __init__(
        self,
        api_key: str = "",
        rate_limit_per_minute: int = 60,
        timeout_seconds: float = DEFAULT_SEARCH_TIMEOUT,
    ):
        self.api_key = api_key
        self.rate_limit_per_minute = rate_limit_per_minute
        self.timeout_seconds = timeout_seconds
        self._window_start = 0.0
        self._window_count = 0

    @abstractmethod
    async def search_media(self, query: str, media_type: str, limit: int) -> list[MediaCandidate]:
        """Search for media matching the query.

        Args:
            query: Search query string
            media_type: "image" or "video"
            limit: Maximum number of results to return

        Returns:
            Candidates in the source's own relevance order
        """

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of this source (e.g., "pexels")."""

    def is_configured(self) -> bool:
        """Sources need an API key unless they override this."""
        return bool(self.api_key)

    def supports(self, media_type: str) -> bool:
        return media_type in self.supported_types

    def check_rate_limit(self) -> bool:
        """Count a request against the per-minute budget; False once it is spent."""
        now = time.monotonic()
        if now - self._window_start >= 60:
            self._window_start = now
            self._window_count = 0

        if self._window_count >= self.rate_limit_per_minute:
            logger.warning(
                f"[{self.get_source_name()}] Rate limit reached: "
                f"{self._window_count}/{self.rate_limit_per_minute} per minute"
            )
            return False

        self._window_count += 1
        return True

    async def _get_json(
        self,
        url: str,
        params: dict,
        headers: Optional[dict] = None,
    ) -> Optional[dict]:
        """GET a JSON document; None for non-retryable HTTP failures."""
        name = self.get_source_name()
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            ) as session:
                async with session.get(url, headers=headers, params=params) as response:
                    if response.status == 401:
                        logger.error(f"[{name}] Invalid API key")
                        return None

                    if response.status == 429:
                        logger.warning(f"[{name}] Rate limit exceeded")
                        raise TemporaryServiceError(f"{name} rate limit exceeded")

                    if response.status >= 500:
                        raise TemporaryServiceError(f"{name} returned status {response.status}")

                    if response.status != 200:
                        logger.warning(f"[{name}] API returned status {response.status}")
                        return None

                    return await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"[{name}] Network error: {e}")
            raise NetworkError(f"{name} network error: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"{name} search timed out") from e
