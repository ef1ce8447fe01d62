"""Render fallback ladder.

Tiers are tried in order until one writes an artifact:

    video      - FFmpeg encode of the filter graph
    slideshow  - self-contained HTML slideshow
    data-dump  - the timeline as JSON for manual review

Every downgrade is recorded as a job warning. render() never raises past this
module except for cancellation.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from reelforge.models.render import ArtifactKind, RenderResult, RenderSettings
from reelforge.models.timeline import Timeline
from reelforge.render.encoder import EncoderError, EncoderEvent, EncoderSignal, FFmpegEncoder
from reelforge.render.filter_graph import build_filter_graph
from reelforge.render.slideshow import write_data_dump, write_slideshow
from reelforge.utils.progress import JobTracker

logger = logging.getLogger(__name__)

BOUNDARY_TOLERANCE_SECONDS = 0.5
MIN_TOLERANCE_SECONDS = 1.0

RenderTier = Callable[[str, Timeline, RenderSettings, list[str]], Awaitable[tuple[Path, Optional[float]]]]


def duration_tolerance(scene_count: int) -> float:
    """Allowed drift between rendered and planned duration."""
    boundaries = max(scene_count - 1, 0)
    return max(MIN_TOLERANCE_SECONDS, BOUNDARY_TOLERANCE_SECONDS * boundaries)


class RenderPipeline:
    """Turns a Timeline into the best artifact it can produce."""

    def __init__(
        self,
        encoder: FFmpegEncoder,
        tracker: JobTracker,
        output_dir: Path,
        encode_timeout: Optional[float] = None,
    ):
        self.encoder = encoder
        self.tracker = tracker
        self.output_dir = Path(output_dir)
        self.encode_timeout = encode_timeout

    @property
    def tiers(self) -> list[tuple[ArtifactKind, RenderTier]]:
        return [
            (ArtifactKind.VIDEO, self._render_video),
            (ArtifactKind.SLIDESHOW, self._render_slideshow),
            (ArtifactKind.DATA_DUMP, self._render_data_dump),
        ]

    async def render(
        self, job_id: str, timeline: Timeline, settings: Optional[RenderSettings] = None
    ) -> RenderResult:
        settings = settings or RenderSettings.for_platform(timeline.platform)
        if settings.max_duration and timeline.scenes_duration > settings.max_duration:
            self.tracker.add_warning(
                job_id,
                f"Timeline runs {timeline.scenes_duration:.1f}s, longer than the "
                f"{settings.max_duration:.0f}s limit for {timeline.platform}",
            )
        failures: list[str] = []
        tiers = self.tiers

        for position, (kind, tier) in enumerate(tiers):
            try:
                path, rendered_duration = await tier(job_id, timeline, settings, failures)
            except Exception as e:
                reason = str(e) or e.__class__.__name__
                failures.append(f"{kind.value}: {reason}")
                if position + 1 < len(tiers):
                    next_kind = tiers[position + 1][0]
                    self.tracker.add_warning(
                        job_id,
                        f"Rendering fallback: {kind.value} failed ({reason}), trying {next_kind.value}",
                        tier=kind.value,
                    )
                else:
                    logger.error(f"All render tiers failed for job {job_id}: {'; '.join(failures)}")
                continue

            logger.info(f"Rendered {kind.value} artifact: {path}")
            return RenderResult(
                artifact_path=path,
                artifact_kind=kind,
                attempts=failures,
                rendered_duration=rendered_duration,
            )

        return RenderResult(artifact_path=None, artifact_kind=None, attempts=failures)

    async def _render_video(
        self, job_id: str, timeline: Timeline, settings: RenderSettings, failures: list[str]
    ) -> tuple[Path, Optional[float]]:
        graph = build_filter_graph(timeline, settings)
        output_path = self.output_dir / f"{job_id}.mp4"

        def on_event(event: EncoderEvent) -> None:
            if event.signal == EncoderSignal.PROGRESS:
                self.tracker.update_stage_progress(
                    job_id, event.percent / 100, f"Encoding video ({event.percent:.0f}%)"
                )
            elif event.signal == EncoderSignal.START:
                self.tracker.update_stage_progress(job_id, 0.0, event.message)
            elif event.signal == EncoderSignal.ERROR:
                logger.warning(f"Encoder reported error for job {job_id}: {event.message}")

        try:
            await asyncio.wait_for(
                self.encoder.encode(graph, settings, output_path, on_event=on_event),
                timeout=self.encode_timeout,
            )
        except asyncio.TimeoutError as e:
            output_path.unlink(missing_ok=True)
            raise EncoderError(f"Encoding timed out after {self.encode_timeout}s") from e
        except Exception:
            output_path.unlink(missing_ok=True)
            raise

        rendered = await self.encoder.probe_duration(output_path)
        if rendered is not None:
            expected = graph.expected_duration
            tolerance = duration_tolerance(len(timeline))
            if abs(rendered - expected) > tolerance:
                self.tracker.add_warning(
                    job_id,
                    f"Rendered duration {rendered:.2f}s differs from planned {expected:.2f}s "
                    f"by more than {tolerance:.1f}s",
                )
        return output_path, rendered

    async def _render_slideshow(
        self, job_id: str, timeline: Timeline, settings: RenderSettings, failures: list[str]
    ) -> tuple[Path, Optional[float]]:
        path = write_slideshow(timeline, self.output_dir / f"{job_id}_slideshow.html")
        return path, None

    async def _render_data_dump(
        self, job_id: str, timeline: Timeline, settings: RenderSettings, failures: list[str]
    ) -> tuple[Path, Optional[float]]:
        path = write_data_dump(
            timeline,
            self.output_dir / f"{job_id}_data.json",
            job_id=job_id,
            reason="; ".join(failures) or None,
        )
        return path, None
