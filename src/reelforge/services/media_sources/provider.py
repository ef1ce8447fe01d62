"""Stock media provider fanning searches out to every configured source."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from reelforge.models.asset import MediaCandidate
from reelforge.services.downloader import AssetDownloader
from reelforge.services.media_sources.base import MediaSource, MediaSourceError
from reelforge.services.media_sources.pexels import PexelsSource
from reelforge.services.media_sources.pixabay import PixabaySource
from reelforge.services.media_sources.unsplash import UnsplashSource

logger = logging.getLogger(__name__)


class StockMediaProvider:
    """Searches Unsplash, Pixabay and Pexels in parallel.

    Results are concatenated in source order and cut to the requested limit.
    Sources without an API key are skipped; a failing source is logged and
    ignored unless every queried source failed.
    """

    def __init__(
        self,
        sources: Sequence[MediaSource],
        downloader: Optional[AssetDownloader] = None,
    ):
        self.sources = list(sources)
        self.downloader = downloader or AssetDownloader()

        configured = [s.get_source_name() for s in self.sources if s.is_configured()]
        if configured:
            logger.info(f"Stock media sources enabled: {', '.join(configured)}")
        else:
            logger.warning(
                "No stock media API keys configured; scenes will use placeholders. "
                "Set PEXELS_API_KEY, PIXABAY_API_KEY or UNSPLASH_ACCESS_KEY to enable search."
            )

    @classmethod
    def from_config(cls, config: dict, downloader: Optional[AssetDownloader] = None) -> "StockMediaProvider":
        timeout = config.get("search_timeout_seconds", 30.0)
        sources = [
            UnsplashSource(
                api_key=config.get("unsplash_access_key", ""),
                rate_limit_per_minute=config.get("unsplash_rate_limit", 50),
                timeout_seconds=timeout,
            ),
            PixabaySource(
                api_key=config.get("pixabay_api_key", ""),
                rate_limit_per_minute=config.get("pixabay_rate_limit", 100),
                timeout_seconds=timeout,
            ),
            PexelsSource(
                api_key=config.get("pexels_api_key", ""),
                rate_limit_per_minute=config.get("pexels_rate_limit", 200),
                timeout_seconds=timeout,
            ),
        ]
        if downloader is None:
            downloader = AssetDownloader(timeout_seconds=config.get("download_timeout_seconds", 45.0))
        return cls(sources, downloader)

    async def search(self, keywords: str, media_type: str = "image", limit: int = 5) -> list[MediaCandidate]:
        """Search every configured source supporting media_type.

        A video search that finds nothing is retried as an image search.
        """
        results = await self._search_type(keywords, media_type, limit)
        if not results and media_type == "video":
            logger.debug(f"No videos for '{keywords}', trying images")
            results = await self._search_type(keywords, "image", limit)
        return results

    async def _search_type(self, keywords: str, media_type: str, limit: int) -> list[MediaCandidate]:
        active = [s for s in self.sources if s.is_configured() and s.supports(media_type)]
        if not active or not keywords.strip():
            return []

        outcomes = await asyncio.gather(
            *(source.search_media(keywords, media_type, limit) for source in active),
            return_exceptions=True,
        )

        results: list[MediaCandidate] = []
        failures: list[str] = []
        for source, outcome in zip(active, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"[{source.get_source_name()}] Search failed for '{keywords}': {outcome}")
                failures.append(f"{source.get_source_name()}: {outcome}")
                continue
            results.extend(outcome)

        if len(failures) == len(active):
            raise MediaSourceError(f"All media sources failed: {'; '.join(failures)}")

        logger.debug(f"Found {len(results)} {media_type} candidates for '{keywords}'")
        return results[:limit]

    async def download(self, url: str, output_path: Path, media_type: str = "image") -> Path:
        return await self.downloader.download(url, output_path, media_type=media_type)
