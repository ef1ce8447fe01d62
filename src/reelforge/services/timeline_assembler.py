"""Merge scenes, resolved assets and captions into a Timeline."""

import logging
from typing import Iterable, Mapping

from reelforge.models.asset import VisualAsset
from reelforge.models.caption import CaptionSegment
from reelforge.models.script import Scene, ScriptDocument
from reelforge.models.timeline import Timeline, TimelineScene, Transition

logger = logging.getLogger(__name__)


def assemble_timeline(
    script: ScriptDocument,
    scenes: Iterable[Scene],
    assets: Mapping[str, VisualAsset],
    captions: Iterable[CaptionSegment],
    transition: Transition = Transition(),
) -> Timeline:
    """Build the render timeline.

    Scenes without a renderable asset are left out. total_duration is the
    duration the script asked for, even when the scene windows add up to
    something else.
    """
    captions_by_scene: dict[str, list[CaptionSegment]] = {}
    for caption in captions:
        captions_by_scene.setdefault(caption.scene_id, []).append(caption)

    entries: list[TimelineScene] = []
    for scene in scenes:
        asset = assets.get(scene.scene_id)
        if asset is None or not asset.is_renderable():
            logger.warning(f"Skipping {scene.scene_id}: no renderable asset")
            continue
        entries.append(
            TimelineScene(
                scene=scene,
                asset=asset,
                captions=list(captions_by_scene.get(scene.scene_id, [])),
                transition=transition,
            )
        )

    timeline = Timeline(
        scenes=entries,
        total_duration=script.duration,
        title=script.title,
        platform=script.platform,
    )

    if abs(timeline.scenes_duration - timeline.total_duration) > 0.01:
        logger.debug(
            f"Timeline scenes cover {timeline.scenes_duration:.2f}s; "
            f"script requested {timeline.total_duration:.2f}s"
        )
    logger.info(f"Timeline {timeline.timeline_id} created with {len(entries)} scenes")
    return timeline
