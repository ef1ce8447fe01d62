"""Unsplash source for high-quality stock photos."""

import logging
from typing import Optional

from reelforge.models.asset import MediaCandidate
from reelforge.services.media_sources.base import MediaSource
from reelforge.utils.retry import retry_api_call

logger = logging.getLogger(__name__)

UNSPLASH_LICENSE = "Unsplash License"


class UnsplashSource(MediaSource):
    """Unsplash photos (images only).

    API Documentation: https://unsplash.com/documentation#search-photos
    Rate limits: 50 requests per hour on demo keys
    """

    SEARCH_URL = "https://api.unsplash.com/search/photos"
    MAX_PER_PAGE = 30

    supported_types = frozenset({"image"})

    def get_source_name(self) -> str:
        return "unsplash"

    @retry_api_call(max_retries=1, base_delay=1.0)
    async def search_media(self, query: str, media_type: str, limit: int) -> list[MediaCandidate]:
        if media_type != "image" or not query.strip() or not self.is_configured():
            return []
        if not self.check_rate_limit():
            return []

        logger.debug(f"[Unsplash] Searching images for: '{query}'")

        data = await self._get_json(
            self.SEARCH_URL,
            params={
                "query": query,
                "per_page": min(limit, self.MAX_PER_PAGE),
                "orientation": "portrait",
                "content_filter": "high",
            },
            headers={
                "Authorization": f"Client-ID {self.api_key}",
                "Accept-Version": "v1",
            },
        )
        if not data:
            return []

        results = [c for c in (self._parse_photo(p) for p in data.get("results", [])) if c is not None]
        logger.debug(f"[Unsplash] Found {len(results)} image results")
        return results[:limit]

    def _parse_photo(self, photo: dict) -> Optional[MediaCandidate]:
        photo_id = str(photo.get("id", ""))
        urls = photo.get("urls") or {}
        url = urls.get("regular", "")
        if not photo_id or not url:
            return None

        title = photo.get("alt_description") or photo.get("description") or f"Unsplash Photo {photo_id}"
        return MediaCandidate(
            url=url,
            download_url=urls.get("full") or None,
            type="image",
            title=title[:100],
            width=photo.get("width", 0),
            height=photo.get("height", 0),
            provider="unsplash",
            license=UNSPLASH_LICENSE,
            author=(photo.get("user") or {}).get("name"),
        )
