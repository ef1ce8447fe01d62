"""Script-to-render pipeline entry point.

VideoPipeline runs one job per script:

    script analysis -> scene resolution -> caption generation
        -> timeline assembly -> rendering

Every collaborator is passed in, so concurrent pipelines share nothing but
what the caller chooses to share (usually the JobTracker).
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union

from reelforge.models.job import JobStatus, ProcessingJob
from reelforge.models.render import ArtifactKind, RenderResult, RenderSettings
from reelforge.models.script import ScriptDocument
from reelforge.models.timeline import Timeline
from reelforge.render.encoder import FFmpegEncoder
from reelforge.render.pipeline import RenderPipeline
from reelforge.services.asset_resolver import AssetResolver, Synthesizer
from reelforge.services.caption_timer import generate_captions
from reelforge.services.downloader import AssetDownloader
from reelforge.services.media_sources.base import MediaProvider
from reelforge.services.media_sources.provider import StockMediaProvider
from reelforge.services.placeholder import PlaceholderSynthesizer
from reelforge.services.script_analyzer import analyze_script
from reelforge.services.timeline_assembler import assemble_timeline
from reelforge.utils.logging import clear_job_context, set_job_context
from reelforge.utils.progress import JobTracker

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Raised for failures that end a job (no usable scenes, no artifact)."""


class ProjectStore(Protocol):
    async def save_project(self, record: dict) -> None:
        ...


@dataclass
class PipelineResult:
    """What run_pipeline hands back to the caller."""

    job_id: str
    status: JobStatus
    artifact_path: Optional[Path] = None
    artifact_kind: Optional[ArtifactKind] = None
    timeline: Optional[Timeline] = None

    @property
    def succeeded(self) -> bool:
        return self.status != JobStatus.FAILED and self.artifact_path is not None

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "artifactPath": str(self.artifact_path) if self.artifact_path else None,
            "artifactKind": self.artifact_kind.value if self.artifact_kind else None,
            "timeline": self.timeline.to_dict() if self.timeline else None,
        }


class VideoPipeline:
    """Turns a ScriptDocument into a video, slideshow or data dump."""

    def __init__(
        self,
        provider: MediaProvider,
        synthesizer: Synthesizer,
        downloader: AssetDownloader,
        encoder: FFmpegEncoder,
        tracker: Optional[JobTracker] = None,
        output_dir: Union[str, Path] = "output/videos",
        scratch_root: Union[str, Path] = "temp/video-gen",
        max_concurrent: int = 4,
        result_limit: int = 5,
        fallback_timeout: float = 15.0,
        cleanup_grace: float = 5.0,
        encode_timeout: Optional[float] = None,
        store: Optional[ProjectStore] = None,
    ):
        self.provider = provider
        self.synthesizer = synthesizer
        self.downloader = downloader
        self.encoder = encoder
        self.tracker = tracker or JobTracker()
        self.output_dir = Path(output_dir)
        self.scratch_root = Path(scratch_root)
        self.max_concurrent = max_concurrent
        self.result_limit = result_limit
        self.fallback_timeout = fallback_timeout
        self.cleanup_grace = cleanup_grace
        self.store = store

        self.renderer = RenderPipeline(encoder, self.tracker, self.output_dir, encode_timeout=encode_timeout)
        self._cleanup_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        config: dict,
        tracker: Optional[JobTracker] = None,
        store: Optional[ProjectStore] = None,
    ) -> "VideoPipeline":
        """Build a pipeline wired to the real providers, Pillow and FFmpeg."""
        downloader = AssetDownloader(timeout_seconds=config.get("download_timeout_seconds", 45.0))
        return cls(
            provider=StockMediaProvider.from_config(config, downloader),
            synthesizer=PlaceholderSynthesizer(),
            downloader=downloader,
            encoder=FFmpegEncoder(
                ffmpeg_path=config.get("ffmpeg_path", "ffmpeg"),
                ffprobe_path=config.get("ffprobe_path", "ffprobe"),
            ),
            tracker=tracker,
            output_dir=config.get("output_dir", "output/videos"),
            scratch_root=config.get("scratch_dir", "temp/video-gen"),
            max_concurrent=config.get("max_concurrent_scenes", 4),
            result_limit=config.get("search_result_limit", 5),
            fallback_timeout=config.get("fallback_download_timeout_seconds", 15.0),
            cleanup_grace=config.get("cleanup_grace_seconds", 5.0),
            store=store,
        )

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        """Snapshot of a job for polling, or None if unknown."""
        return self.tracker.get_job(job_id)

    async def run_pipeline(
        self,
        script: Union[ScriptDocument, dict],
        job_id: Optional[str] = None,
    ) -> PipelineResult:
        """Run the whole pipeline for one script.

        A queued job already registered under job_id is adopted, which lets
        callers subscribe before the run starts. Reusing the id of a job that
        already started raises PipelineError. The job always ends in a
        terminal state. Failed runs return a result with status failed and no
        artifact; cancellation fails the job, removes the scratch directory
        and re-raises.
        """
        if isinstance(script, dict):
            script = ScriptDocument.from_dict(script)

        job = self.tracker.get_job(job_id) if job_id else None
        if job is not None and job.status != JobStatus.QUEUED:
            raise PipelineError(f"Job {job_id} already exists with status {job.status.value}")
        if job is None:
            job = self.tracker.create_job(
                job_id=job_id,
                metadata={
                    "title": script.title,
                    "platform": script.platform,
                    "scene_count": len(script.scenes),
                },
            )
        job_id = job.job_id
        scratch_dir = self.scratch_root / job_id
        settings = RenderSettings.for_platform(script.platform)
        timeline: Optional[Timeline] = None

        set_job_context(job_id)
        logger.info(f"Starting pipeline for '{script.title}' ({len(script.scenes)} scenes)")
        try:
            timeline = await self._build_timeline(job_id, script, settings, scratch_dir)

            self.tracker.start_stage(job_id, "rendering", {"scenes": len(timeline)})
            render = await self.renderer.render(job_id, timeline, settings)
            if not render.succeeded:
                raise PipelineError(
                    f"Rendering produced no artifact ({'; '.join(render.attempts)})"
                )

            status = self.tracker.finish_job(
                job_id,
                artifact_path=str(render.artifact_path),
                artifact_kind=render.artifact_kind.value,
                result=self._result_summary(timeline, render),
            )
            result = PipelineResult(
                job_id=job_id,
                status=status,
                artifact_path=render.artifact_path,
                artifact_kind=render.artifact_kind,
                timeline=timeline,
            )
            self._schedule_cleanup(scratch_dir)

        except asyncio.CancelledError:
            self.tracker.fail_job(job_id, "Pipeline cancelled")
            self._remove_scratch(scratch_dir)
            clear_job_context()
            raise
        except PipelineError as e:
            self.tracker.fail_job(job_id, e)
            self._remove_scratch(scratch_dir)
            result = PipelineResult(job_id=job_id, status=JobStatus.FAILED, timeline=timeline)
        except Exception as e:
            logger.exception(f"Pipeline crashed: {e}")
            self.tracker.fail_job(job_id, e, unexpected=True)
            self._remove_scratch(scratch_dir)
            clear_job_context()
            raise

        try:
            await self._hand_off(script, result)
        finally:
            clear_job_context()
        return result

    async def _build_timeline(
        self,
        job_id: str,
        script: ScriptDocument,
        settings: RenderSettings,
        scratch_dir: Path,
    ) -> Timeline:
        scenes = analyze_script(script)
        if not scenes:
            raise PipelineError("Script contains no scenes")

        try:
            scratch_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PipelineError(f"Cannot create scratch directory {scratch_dir}: {e}") from e

        self.tracker.start_stage(job_id, "scene_resolution", {"scenes": len(scenes)})
        resolver = AssetResolver(
            provider=self.provider,
            synthesizer=self.synthesizer,
            downloader=self.downloader,
            tracker=self.tracker,
            settings=settings,
            max_concurrent=self.max_concurrent,
            result_limit=self.result_limit,
            fallback_timeout=self.fallback_timeout,
        )
        assets = await resolver.resolve_all(job_id, scenes, scratch_dir)
        if not assets:
            raise PipelineError("No scene could be resolved to a visual asset")
        self.tracker.complete_stage(job_id, {"resolved": len(assets), "total": len(scenes)})

        self.tracker.start_stage(job_id, "caption_generation")
        captions = generate_captions(scenes)
        self.tracker.complete_stage(job_id, {"captions": len(captions)})

        self.tracker.start_stage(job_id, "timeline_assembly")
        timeline = assemble_timeline(script, scenes, assets, captions)
        if not timeline.scenes:
            raise PipelineError("Timeline has no renderable scenes")
        self.tracker.complete_stage(
            job_id,
            {"timeline_id": timeline.timeline_id, "scenes": len(timeline)},
        )
        return timeline

    @staticmethod
    def _result_summary(timeline: Timeline, render: RenderResult) -> dict:
        return {
            "timeline_id": timeline.timeline_id,
            "scenes": len(timeline),
            "total_duration": timeline.total_duration,
            "scenes_duration": timeline.scenes_duration,
            "rendered_duration": render.rendered_duration,
            "render_attempts": list(render.attempts),
        }

    async def _hand_off(self, script: ScriptDocument, result: PipelineResult) -> None:
        """Give the finished project to the store; store failures are only logged."""
        if self.store is None:
            return
        now = datetime.now(timezone.utc).isoformat()
        job = self.tracker.get_job(result.job_id)
        created_at = (
            datetime.fromtimestamp(job.start_time, timezone.utc).isoformat() if job else now
        )
        record = {
            "id": result.job_id,
            "title": script.title,
            "platform": script.platform,
            "duration": script.duration,
            "artifact_path": str(result.artifact_path) if result.artifact_path else None,
            "artifact_kind": result.artifact_kind.value if result.artifact_kind else None,
            "status": result.status.value,
            "timeline": result.timeline.to_dict() if result.timeline else None,
            "script": script.to_dict(),
            "created_at": created_at,
            "updated_at": now,
        }
        try:
            await self.store.save_project(record)
        except Exception as e:
            logger.warning(f"Project store rejected job {result.job_id}: {e}")

    # ------------------------------------------------------------------
    # Scratch directory cleanup
    # ------------------------------------------------------------------

    def _schedule_cleanup(self, scratch_dir: Path) -> None:
        task = asyncio.create_task(self._cleanup_later(scratch_dir))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _cleanup_later(self, scratch_dir: Path) -> None:
        await asyncio.sleep(self.cleanup_grace)
        await asyncio.to_thread(self._remove_scratch, scratch_dir)

    @staticmethod
    def _remove_scratch(scratch_dir: Path) -> None:
        if scratch_dir.exists():
            shutil.rmtree(scratch_dir, ignore_errors=True)
            logger.debug(f"Removed scratch directory {scratch_dir}")

    async def drain_cleanup(self) -> None:
        """Wait for every pending deferred cleanup."""
        if self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain_cleanup()
