"""Script and scene data models."""

from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_TITLE = "Generated Video"
DEFAULT_TOTAL_DURATION = 30.0
DEFAULT_PLATFORM = "general"


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first key present in data (accepts camelCase and snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class RawScene:
    """A scene descriptor exactly as it appears in the submitted script.

    Values are kept loosely typed on purpose: the analyzer applies defaults
    and tolerates missing or malformed fields.
    """

    start_time: Optional[float] = None
    end_time: Optional[float] = None
    voiceover: Any = ""
    visual_direction: Any = ""
    on_screen_text: Any = ""

    @classmethod
    def from_dict(cls, data: dict) -> "RawScene":
        return cls(
            start_time=_pick(data, "startTime", "start_time"),
            end_time=_pick(data, "endTime", "end_time"),
            voiceover=_pick(data, "voiceover", "narration", default=""),
            visual_direction=_pick(data, "visualDirection", "visual_direction", default=""),
            on_screen_text=_pick(data, "onScreenText", "on_screen_text", default=""),
        )


@dataclass(frozen=True)
class ScriptDocument:
    """Immutable narration script submitted to the pipeline."""

    title: str = DEFAULT_TITLE
    duration: float = DEFAULT_TOTAL_DURATION  # requested total, in seconds
    platform: str = DEFAULT_PLATFORM
    scenes: tuple[RawScene, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ScriptDocument":
        """Build a script from its JSON form."""
        raw_scenes = data.get("scenes") or []
        return cls(
            title=data.get("title") or DEFAULT_TITLE,
            duration=float(data.get("duration") or DEFAULT_TOTAL_DURATION),
            platform=data.get("platform") or DEFAULT_PLATFORM,
            scenes=tuple(
                s if isinstance(s, RawScene) else RawScene.from_dict(s)
                for s in raw_scenes
            ),
        )

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "duration": self.duration,
            "platform": self.platform,
            "scenes": [
                {
                    "startTime": s.start_time,
                    "endTime": s.end_time,
                    "voiceover": s.voiceover,
                    "visualDirection": s.visual_direction,
                    "onScreenText": s.on_screen_text,
                }
                for s in self.scenes
            ],
        }


@dataclass(frozen=True)
class Scene:
    """A normalized, timed scene produced by the script analyzer."""

    scene_id: str  # scene_<n>, 1-based
    start_time: float
    end_time: float
    voiceover: str = ""
    visual_direction: str = ""
    on_screen_text: str = ""
    search_keywords: tuple[str, ...] = field(default_factory=tuple)
    media_type: str = "image"  # image | video

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def search_query(self) -> str:
        """Keywords joined into a provider query string."""
        return " ".join(self.search_keywords)

    @property
    def display_text(self) -> str:
        """Best available description of what the scene should show."""
        return self.visual_direction or self.voiceover or "Video Scene"

    def to_dict(self) -> dict:
        return {
            "id": self.scene_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "voiceover": self.voiceover,
            "visualDirection": self.visual_direction,
            "onScreenText": self.on_screen_text,
            "searchKeywords": list(self.search_keywords),
            "mediaType": self.media_type,
        }
