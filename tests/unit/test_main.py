"""Unit tests for the CLI helpers."""

import json
from unittest.mock import patch

import pytest
from rich.console import Console

from reelforge.main import ProgressBarCallback, main, print_presets, print_summary, render_script
from reelforge.models.job import JobEvent, JobStatus
from reelforge.pipeline import PipelineResult


def test_progress_bar_follows_tracker(tracker):
    job = tracker.create_job()
    callback = ProgressBarCallback()
    tracker.subscribe(job.job_id, callback)

    tracker.start_stage(job.job_id, "scene_resolution")
    tracker.update_stage_progress(job.job_id, 1.0)
    tracker.add_warning(job.job_id, "placeholder used")
    tracker.finish_job(job.job_id, artifact_path="a.mp4", artifact_kind="video")

    assert callback.bar.n == 100
    assert callback.bar.desc.startswith("Done")
    callback.close()


def test_progress_bar_ignores_unknown_payload_keys():
    callback = ProgressBarCallback()
    callback(JobEvent.STAGE_START, {"stage": "rendering"})
    assert callback.bar.desc.startswith("Rendering")
    callback.close()


def test_print_presets_lists_every_platform():
    console = Console(record=True, width=120)
    print_presets(console)
    text = console.export_text()
    assert "youtube-shorts" in text
    assert "1080x1920" in text
    assert "720x1280" in text


def test_print_summary_lists_errors(tracker):
    job = tracker.create_job()
    tracker.add_error(job.job_id, "All resolution tiers failed", scene_id="scene_2")
    tracker.fail_job(job.job_id, "No scene could be resolved to a visual asset")
    console = Console(record=True, width=120)

    print_summary(console, PipelineResult(job.job_id, JobStatus.FAILED), tracker.get_job(job.job_id))

    text = console.export_text()
    assert "failed" in text
    assert "[scene_2] All resolution tiers failed" in text


@pytest.mark.asyncio
async def test_render_script_returns_exit_code(temp_dir, sample_script_data):
    script_path = temp_dir / "script.json"
    script_path.write_text(json.dumps(sample_script_data))
    config = {
        "output_dir": str(temp_dir / "out"),
        "scratch_dir": str(temp_dir / "scratch"),
        "cleanup_grace_seconds": 0,
    }
    console = Console(record=True, width=120)

    async def no_encoder(self, job_id, timeline, settings, failures):
        raise RuntimeError("ffmpeg unavailable")

    with patch("reelforge.render.pipeline.RenderPipeline._render_video", new=no_encoder):
        code = await render_script(script_path, config, console)

    assert code == 0
    assert list((temp_dir / "out").glob("*_slideshow.html"))
    assert "slideshow" in console.export_text()


def test_missing_script_exits(temp_dir, monkeypatch):
    monkeypatch.setenv("OUTPUT_DIR", str(temp_dir / "out"))
    monkeypatch.setenv("SCRATCH_DIR", str(temp_dir / "scratch"))
    with patch("sys.argv", ["reelforge", "render", str(temp_dir / "missing.json")]):
        with pytest.raises(SystemExit) as exc_info:
            main()
    assert exc_info.value.code == 1
