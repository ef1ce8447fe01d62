"""Caption data models."""

from dataclasses import dataclass
from enum import Enum


class CaptionKind(str, Enum):
    SPOKEN = "spoken"
    OVERLAY = "overlay"


@dataclass(frozen=True)
class CaptionSegment:
    """A timed caption belonging to one scene."""

    scene_id: str
    start_time: float
    end_time: float
    text: str
    kind: CaptionKind = CaptionKind.SPOKEN

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            "sceneId": self.scene_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "text": self.text,
            "type": self.kind.value,
        }
