"""Caption timing from narration text.

Narration is spread evenly across the scene: every word gets
scene_duration / word_count seconds, and words are grouped into spoken
captions of up to WORDS_PER_CAPTION words.
"""

import logging
from typing import Iterable

from reelforge.models.caption import CaptionKind, CaptionSegment
from reelforge.models.script import Scene

logger = logging.getLogger(__name__)

WORDS_PER_CAPTION = 6


def time_scene_captions(scene: Scene, words_per_caption: int = WORDS_PER_CAPTION) -> list[CaptionSegment]:
    """Spoken captions for one scene, followed by its overlay caption if any."""
    captions: list[CaptionSegment] = []
    words = scene.voiceover.split()

    if words:
        word_duration = scene.duration / len(words)
        clock = scene.start_time
        caption_start = scene.start_time
        buffer: list[str] = []

        for i, word in enumerate(words):
            buffer.append(word)
            clock += word_duration

            if len(buffer) >= words_per_caption or i == len(words) - 1:
                end = min(clock, scene.end_time)
                captions.append(
                    CaptionSegment(
                        scene_id=scene.scene_id,
                        start_time=caption_start,
                        end_time=end,
                        text=" ".join(buffer),
                        kind=CaptionKind.SPOKEN,
                    )
                )
                buffer = []
                caption_start = end

    if scene.on_screen_text:
        captions.append(
            CaptionSegment(
                scene_id=scene.scene_id,
                start_time=scene.start_time,
                end_time=scene.end_time,
                text=scene.on_screen_text,
                kind=CaptionKind.OVERLAY,
            )
        )

    return captions


def generate_captions(scenes: Iterable[Scene]) -> list[CaptionSegment]:
    """Captions for every scene, in scene order."""
    captions: list[CaptionSegment] = []
    scene_count = 0
    for scene in scenes:
        captions.extend(time_scene_captions(scene))
        scene_count += 1
    logger.info(f"Generated {len(captions)} captions for {scene_count} scenes")
    return captions
