"""Timeline models consumed by the render pipeline."""

import uuid
from dataclasses import dataclass, field

from reelforge.models.asset import VisualAsset
from reelforge.models.caption import CaptionKind, CaptionSegment
from reelforge.models.script import Scene

DEFAULT_TRANSITION_TYPE = "fade"
DEFAULT_TRANSITION_DURATION = 0.5


@dataclass(frozen=True)
class Transition:
    type: str = DEFAULT_TRANSITION_TYPE
    duration: float = DEFAULT_TRANSITION_DURATION


@dataclass
class TimelineScene:
    """One scene of the timeline with its asset, captions and transition."""

    scene: Scene
    asset: VisualAsset
    captions: list[CaptionSegment] = field(default_factory=list)
    transition: Transition = field(default_factory=Transition)

    @property
    def scene_id(self) -> str:
        return self.scene.scene_id

    @property
    def duration(self) -> float:
        return self.scene.duration

    @property
    def spoken_captions(self) -> list[CaptionSegment]:
        return [c for c in self.captions if c.kind == CaptionKind.SPOKEN]

    @property
    def overlay_captions(self) -> list[CaptionSegment]:
        return [c for c in self.captions if c.kind == CaptionKind.OVERLAY]

    def to_dict(self) -> dict:
        data = self.scene.to_dict()
        data["asset"] = self.asset.to_dict()
        data["captions"] = [c.to_dict() for c in self.captions]
        data["transition"] = {
            "type": self.transition.type,
            "duration": self.transition.duration,
        }
        return data


@dataclass
class Timeline:
    """Ordered scene composites ready for rendering.

    total_duration is the duration requested by the script, not the sum of
    the scene durations; see scenes_duration for the latter.
    """

    scenes: list[TimelineScene]
    total_duration: float
    title: str = ""
    platform: str = "general"
    timeline_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def scenes_duration(self) -> float:
        return sum(s.duration for s in self.scenes)

    @property
    def captions(self) -> list[CaptionSegment]:
        return [c for s in self.scenes for c in s.captions]

    def __len__(self) -> int:
        return len(self.scenes)

    def to_dict(self) -> dict:
        return {
            "id": self.timeline_id,
            "title": self.title,
            "platform": self.platform,
            "totalDuration": self.total_duration,
            "scenesDuration": self.scenes_duration,
            "scenes": [s.to_dict() for s in self.scenes],
        }
