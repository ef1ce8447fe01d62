"""Render settings and render result models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class ArtifactKind(str, Enum):
    """Distinguishes a rendered video from degraded deliverables."""

    VIDEO = "video"
    SLIDESHOW = "slideshow"
    DATA_DUMP = "data-dump"


# Platform tag -> output frame. Unknown tags use "general".
PLATFORM_PRESETS: dict[str, dict] = {
    "youtube-shorts": {"width": 1080, "height": 1920, "max_duration": 60},
    "tiktok": {"width": 1080, "height": 1920, "max_duration": 180},
    "instagram-reels": {"width": 1080, "height": 1920, "max_duration": 90},
    "twitter": {"width": 1080, "height": 1920, "max_duration": 140},
    "general": {"width": 720, "height": 1280, "max_duration": 60},
}


@dataclass(frozen=True)
class RenderSettings:
    """Fixed output parameters handed to the encoding engine."""

    width: int = 720
    height: int = 1280
    fps: int = 30
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "medium"
    crf: int = 23
    pixel_format: str = "yuv420p"
    fit: str = "cover"  # cover: scale up and crop; contain: scale down and pad
    max_duration: Optional[float] = None

    @classmethod
    def for_platform(cls, platform: Optional[str]) -> "RenderSettings":
        preset = PLATFORM_PRESETS.get(platform or "general", PLATFORM_PRESETS["general"])
        return cls(
            width=preset["width"],
            height=preset["height"],
            max_duration=preset["max_duration"],
        )

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    def output_args(self) -> list[str]:
        """Encoder output options (after the filter graph and map)."""
        return [
            "-r", str(self.fps),
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-pix_fmt", self.pixel_format,
            "-c:a", self.audio_codec,
            "-movflags", "+faststart",
        ]


@dataclass
class RenderResult:
    """Outcome of the render fallback ladder.

    artifact_path is None only when every tier, the data dump included,
    failed to write anything.
    """

    artifact_path: Optional[Path]
    artifact_kind: Optional[ArtifactKind]
    attempts: list[str] = field(default_factory=list)  # tier errors, in order
    rendered_duration: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.artifact_path is not None

    @property
    def degraded(self) -> bool:
        return self.artifact_kind not in (None, ArtifactKind.VIDEO)
