"""Pixabay source for royalty-free stock photos and videos."""

import logging
from typing import Optional

from reelforge.models.asset import MediaCandidate
from reelforge.services.media_sources.base import MediaSource
from reelforge.utils.retry import retry_api_call

logger = logging.getLogger(__name__)

PIXABAY_LICENSE = "Pixabay Content License"


class PixabaySource(MediaSource):
    """Pixabay images and videos.

    Pixabay provides royalty-free media under the Pixabay Content License
    (similar to CC0 - free for commercial and noncommercial use).

    API Documentation: https://pixabay.com/api/docs/
    Rate limits: 100 requests per minute
    """

    IMAGE_URL = "https://pixabay.com/api/"
    VIDEO_URL = "https://pixabay.com/api/videos/"
    MIN_PER_PAGE = 3
    MAX_PER_PAGE = 200

    supported_types = frozenset({"image", "video"})

    def get_source_name(self) -> str:
        return "pixabay"

    @retry_api_call(max_retries=1, base_delay=1.0)
    async def search_media(self, query: str, media_type: str, limit: int) -> list[MediaCandidate]:
        """Search Pixabay for vertical media matching the query.

        Pixabay requires per_page between 3 and 200, so at least 3 are
        requested and the results are sliced back to limit.
        """
        if not query.strip() or not self.is_configured():
            return []
        if not self.check_rate_limit():
            return []

        is_video = media_type == "video"
        logger.debug(f"[Pixabay] Searching {media_type} for: '{query}'")

        params = {
            "key": self.api_key,
            "q": query,
            "per_page": max(self.MIN_PER_PAGE, min(limit, self.MAX_PER_PAGE)),
            "safesearch": "true",
        }
        if is_video:
            params["video_type"] = "film"
        else:
            params.update(
                {
                    "image_type": "photo",
                    "orientation": "vertical",
                    "min_width": 720,
                    "min_height": 1080,
                }
            )

        data = await self._get_json(self.VIDEO_URL if is_video else self.IMAGE_URL, params=params)
        if not data:
            return []

        parse = self._parse_video if is_video else self._parse_image
        results = [c for c in (parse(hit) for hit in data.get("hits", [])) if c is not None]
        logger.debug(f"[Pixabay] Found {len(results)} {media_type} results")
        return results[:limit]

    def _parse_image(self, hit: dict) -> Optional[MediaCandidate]:
        image_id = str(hit.get("id", ""))
        url = hit.get("webformatURL", "")
        if not image_id or not url:
            return None

        return MediaCandidate(
            url=url,
            download_url=hit.get("largeImageURL") or None,
            type="image",
            title=hit.get("tags") or f"Pixabay Image {image_id}",
            width=hit.get("imageWidth", hit.get("webformatWidth", 0)),
            height=hit.get("imageHeight", hit.get("webformatHeight", 0)),
            provider="pixabay",
            license=PIXABAY_LICENSE,
            author=hit.get("user"),
        )

    def _parse_video(self, hit: dict) -> Optional[MediaCandidate]:
        video_id = str(hit.get("id", ""))
        videos = hit.get("videos") or {}
        medium = videos.get("medium") or {}
        large = videos.get("large") or {}

        url = medium.get("url") or large.get("url") or ""
        if not video_id or not url:
            return None

        return MediaCandidate(
            url=url,
            download_url=large.get("url") or None,
            type="video",
            title=hit.get("tags") or f"Pixabay Video {video_id}",
            width=medium.get("width", 0),
            height=medium.get("height", 0),
            provider="pixabay",
            license=PIXABAY_LICENSE,
            author=hit.get("user"),
        )
