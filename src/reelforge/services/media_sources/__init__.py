"""Stock media sources package for multi-provider media search."""

from reelforge.services.media_sources.base import MediaProvider, MediaSource, MediaSourceError
from reelforge.services.media_sources.pexels import PexelsSource
from reelforge.services.media_sources.pixabay import PixabaySource
from reelforge.services.media_sources.provider import StockMediaProvider
from reelforge.services.media_sources.unsplash import UnsplashSource

__all__ = [
    "MediaProvider",
    "MediaSource",
    "MediaSourceError",
    "PexelsSource",
    "PixabaySource",
    "StockMediaProvider",
    "UnsplashSource",
]
