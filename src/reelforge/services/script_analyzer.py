"""Script analysis: raw script scenes to timed, searchable Scene objects."""

import logging
import re
from typing import Any

from reelforge.models.script import RawScene, Scene, ScriptDocument

logger = logging.getLogger(__name__)

DEFAULT_SCENE_WINDOW = 5.0
MAX_KEYWORDS = 5
MIN_KEYWORD_LENGTH = 3

# Direction verbs that describe the shot rather than its subject, plus
# filler words long enough to survive the length filter
STOP_WORDS = frozenset(
    {
        "show", "shows", "display", "see", "watch", "look", "view", "screen",
        "appears", "the", "and", "for", "with", "from", "this", "that", "into",
        "onto", "over", "then", "while", "our", "your", "its", "are", "was",
    }
)

MOTION_KEYWORDS = ("motion", "moving", "animation", "transition", "time-lapse", "action")

_PUNCTUATION = re.compile(r"[^\w\s]")


def extract_keywords(text: Any, limit: int = MAX_KEYWORDS) -> tuple[str, ...]:
    """Pick up to `limit` significant search terms from free text."""
    if not isinstance(text, str) or not text.strip():
        return ()
    words = _PUNCTUATION.sub(" ", text.lower()).split()
    keywords = [w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in STOP_WORDS]
    return tuple(keywords[:limit])


def determine_media_type(visual_direction: Any) -> str:
    """'video' when the direction asks for motion, otherwise 'image'."""
    if not isinstance(visual_direction, str) or not visual_direction:
        return "image"
    lowered = visual_direction.lower()
    return "video" if any(k in lowered for k in MOTION_KEYWORDS) else "image"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()


def _as_seconds(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def analyze_scene(raw: RawScene, index: int) -> Scene:
    """Normalize one raw scene; index is 0-based, ids are 1-based."""
    scene_id = f"scene_{index + 1}"

    start = _as_seconds(raw.start_time)
    if start is None or start < 0:
        start = 0.0
    end = _as_seconds(raw.end_time)
    if end is None:
        end = start + DEFAULT_SCENE_WINDOW
    elif end <= start:
        logger.warning(
            f"{scene_id}: endTime {end} is not after startTime {start}, "
            f"using a {DEFAULT_SCENE_WINDOW:.0f}s window"
        )
        end = start + DEFAULT_SCENE_WINDOW

    voiceover = _as_text(raw.voiceover)
    visual_direction = raw.visual_direction if isinstance(raw.visual_direction, str) else ""

    keywords = extract_keywords(visual_direction) or extract_keywords(voiceover)

    return Scene(
        scene_id=scene_id,
        start_time=start,
        end_time=end,
        voiceover=voiceover,
        visual_direction=visual_direction.strip(),
        on_screen_text=_as_text(raw.on_screen_text),
        search_keywords=keywords,
        media_type=determine_media_type(raw.visual_direction),
    )


def analyze_script(script: ScriptDocument) -> list[Scene]:
    """Turn a script into ordered scenes. Never fails; bad fields get defaults."""
    scenes = [analyze_scene(raw, i) for i, raw in enumerate(script.scenes)]
    logger.info(f"Script analyzed: '{script.title}' -> {len(scenes)} scenes")
    return scenes
