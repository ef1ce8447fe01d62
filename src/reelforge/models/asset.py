"""Data models for media candidates and resolved visual assets."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class AssetType(str, Enum):
    """What kind of visual a resolved asset is."""

    IMAGE = "image"
    VIDEO = "video"
    PLACEHOLDER = "placeholder"

    @property
    def is_still(self) -> bool:
        """Still assets must be looped into a stream before rendering."""
        return self in (AssetType.IMAGE, AssetType.PLACEHOLDER)


class AssetOrigin(str, Enum):
    """Which resolution tier produced an asset."""

    PROVIDER = "provider"
    SYNTHETIC = "synthetic"
    FALLBACK_STOCK = "fallback-stock"


@dataclass
class MediaCandidate:
    """Represents a stock media search result from any provider.

    Supports Pexels, Pixabay and Unsplash. Providers return candidates in
    their own relevance order; the resolver keeps that order.
    """

    url: str  # Page or display URL
    type: str  # image | video
    title: str = ""
    download_url: Optional[str] = None  # Direct, usually higher quality
    width: int = 0
    height: int = 0
    provider: str = ""
    license: Optional[str] = None
    author: Optional[str] = None

    @property
    def primary_url(self) -> str:
        return self.download_url or self.url

    @property
    def secondary_url(self) -> Optional[str]:
        """Alternate URL to retry with, if it differs from the primary one."""
        if self.download_url and self.url and self.url != self.download_url:
            return self.url
        return None

    @property
    def aspect_ratio(self) -> float:
        if self.height == 0:
            return 0.0
        return self.width / self.height


@dataclass
class AssetMetadata:
    """Provenance of a resolved asset."""

    title: str
    source: str
    width: int = 0
    height: int = 0
    file_size: int = 0
    original_url: Optional[str] = None
    fallback_reason: Optional[str] = None


@dataclass
class VisualAsset:
    """The single visual chosen for a scene."""

    scene_id: str
    type: AssetType
    path: Path
    origin: AssetOrigin
    metadata: AssetMetadata = field(default_factory=lambda: AssetMetadata("", ""))

    def is_renderable(self) -> bool:
        """Asset file must exist and be non-empty before it can be rendered."""
        try:
            return self.path.is_file() and self.path.stat().st_size > 0
        except OSError:
            return False

    def to_dict(self) -> dict:
        return {
            "sceneId": self.scene_id,
            "type": self.type.value,
            "path": str(self.path),
            "origin": self.origin.value,
            "metadata": {
                "title": self.metadata.title,
                "source": self.metadata.source,
                "width": self.metadata.width,
                "height": self.metadata.height,
                "fileSize": self.metadata.file_size,
                "originalUrl": self.metadata.original_url,
                "fallbackReason": self.metadata.fallback_reason,
            },
        }
