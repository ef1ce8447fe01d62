"""FFmpeg filter graph construction for a Timeline.

Every scene becomes one normalized stream:

    [i:v]loop,scale,crop|pad,setsar,fps,trim,setpts[vi]

Still assets (images and placeholders) are looped first so they last the
scene's duration; videos shorter than their scene hold the last frame. The
scene streams are joined with one concat node into [outv]; a single scene is
copied to [outv] directly.
"""

from dataclasses import dataclass, field
from pathlib import Path

from reelforge.models.render import RenderSettings
from reelforge.models.timeline import Timeline, TimelineScene

OUTPUT_LABEL = "outv"


class FilterGraphError(ValueError):
    """Raised when a timeline cannot be expressed as a filter graph."""


@dataclass
class FilterGraph:
    """Inputs and filter program for one encode."""

    inputs: list[Path]
    graph: str
    output_label: str = OUTPUT_LABEL
    scene_durations: list[float] = field(default_factory=list)

    @property
    def expected_duration(self) -> float:
        return sum(self.scene_durations)

    def input_args(self) -> list[str]:
        args: list[str] = []
        for path in self.inputs:
            args.extend(["-i", str(path)])
        return args

    def map_args(self) -> list[str]:
        return ["-map", f"[{self.output_label}]"]


def _fit_filters(settings: RenderSettings) -> list[str]:
    w, h = settings.width, settings.height
    if settings.fit == "contain":
        return [
            f"scale={w}:{h}:force_original_aspect_ratio=decrease",
            f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:black",
        ]
    return [
        f"scale={w}:{h}:force_original_aspect_ratio=increase",
        f"crop={w}:{h}",
    ]


def scene_filter(index: int, entry: TimelineScene, settings: RenderSettings) -> str:
    """Filter chain normalizing input `index` into the [v<index>] pad."""
    duration = entry.duration
    if duration <= 0:
        raise FilterGraphError(f"{entry.scene_id} has non-positive duration {duration}")

    filters: list[str] = []
    if entry.asset.type.is_still:
        filters.append("loop=loop=-1:size=1:start=0")
    filters.extend(_fit_filters(settings))
    filters.append("setsar=1")
    filters.append(f"fps={settings.fps}")
    if not entry.asset.type.is_still:
        filters.append(f"tpad=stop_mode=clone:stop_duration={duration:.3f}")
    filters.append(f"trim=duration={duration:.3f}")
    filters.append("setpts=PTS-STARTPTS")

    return f"[{index}:v]{','.join(filters)}[v{index}]"


def build_filter_graph(timeline: Timeline, settings: RenderSettings) -> FilterGraph:
    """Build the filter program for every scene of the timeline, in order."""
    if not timeline.scenes:
        raise FilterGraphError("Timeline has no scenes to render")

    parts = [scene_filter(i, entry, settings) for i, entry in enumerate(timeline.scenes)]
    count = len(timeline.scenes)

    if count == 1:
        parts.append(f"[v0]copy[{OUTPUT_LABEL}]")
    else:
        pads = "".join(f"[v{i}]" for i in range(count))
        parts.append(f"{pads}concat=n={count}:v=1:a=0[{OUTPUT_LABEL}]")

    return FilterGraph(
        inputs=[entry.asset.path for entry in timeline.scenes],
        graph=";".join(parts),
        scene_durations=[entry.duration for entry in timeline.scenes],
    )
