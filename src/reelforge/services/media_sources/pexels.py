"""Pexels source for CC0-like stock photos and videos."""

import logging
from typing import Optional

from reelforge.models.asset import MediaCandidate
from reelforge.services.media_sources.base import MediaSource
from reelforge.utils.retry import retry_api_call

logger = logging.getLogger(__name__)

PEXELS_LICENSE = "Pexels License (CC0-like)"


class PexelsSource(MediaSource):
    """Pexels photos and videos.

    API Documentation: https://www.pexels.com/api/documentation/
    Rate limits: 200 requests per hour, 20,000 requests per month
    """

    PHOTO_URL = "https://api.pexels.com/v1/search"
    VIDEO_URL = "https://api.pexels.com/videos/search"
    MAX_PER_PAGE = 80

    supported_types = frozenset({"image", "video"})

    def get_source_name(self) -> str:
        return "pexels"

    @retry_api_call(max_retries=1, base_delay=1.0)
    async def search_media(self, query: str, media_type: str, limit: int) -> list[MediaCandidate]:
        if not query.strip() or not self.is_configured():
            return []
        if not self.check_rate_limit():
            return []

        is_video = media_type == "video"
        logger.debug(f"[Pexels] Searching {media_type} for: '{query}'")

        data = await self._get_json(
            self.VIDEO_URL if is_video else self.PHOTO_URL,
            params={
                "query": query,
                "per_page": min(limit, self.MAX_PER_PAGE),
                "orientation": "portrait",
            },
            headers={"Authorization": self.api_key},
        )
        if not data:
            return []

        items = data.get("videos" if is_video else "photos", [])
        parse = self._parse_video if is_video else self._parse_photo
        results = [c for c in (parse(item) for item in items) if c is not None]
        logger.debug(f"[Pexels] Found {len(results)} {media_type} results")
        return results[:limit]

    def _parse_photo(self, photo: dict) -> Optional[MediaCandidate]:
        photo_id = str(photo.get("id", ""))
        src = photo.get("src") or {}
        if not photo_id or not src:
            return None

        download_url = src.get("large2x") or src.get("large") or src.get("original", "")
        if not download_url:
            return None

        return MediaCandidate(
            url=src.get("portrait") or src.get("large") or download_url,
            download_url=download_url,
            type="image",
            title=(photo.get("alt") or f"Pexels Photo {photo_id}")[:100],
            width=photo.get("width", 0),
            height=photo.get("height", 0),
            provider="pexels",
            license=PEXELS_LICENSE,
            author=photo.get("photographer"),
        )

    def _parse_video(self, video: dict) -> Optional[MediaCandidate]:
        video_id = str(video.get("id", ""))
        video_files = video.get("video_files") or []
        if not video_id or not video_files:
            return None

        # Prefer HD, then the tallest file; the runner-up is the alternate URL
        ranked = sorted(
            video_files,
            key=lambda f: (f.get("quality") == "hd", f.get("height") or 0),
            reverse=True,
        )
        best_file = ranked[0]
        download_url = best_file.get("link", "")
        if not download_url:
            return None
        alternate_url = ranked[1].get("link") if len(ranked) > 1 else None

        page_url = video.get("url", f"https://www.pexels.com/video/{video_id}/")
        slug = page_url.rstrip("/").split("/")[-1]
        if slug.endswith(f"-{video_id}"):
            slug = slug[: -len(f"-{video_id}")]
        title = slug.replace("-", " ").title() or f"Pexels Video {video_id}"

        return MediaCandidate(
            url=alternate_url or download_url,
            download_url=download_url,
            type="video",
            title=title,
            width=best_file.get("width") or video.get("width", 0),
            height=best_file.get("height") or video.get("height", 0),
            provider="pexels",
            license=PEXELS_LICENSE,
            author=(video.get("user") or {}).get("name"),
        )
