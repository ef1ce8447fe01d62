"""Main application entry point for reelforge."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from tqdm import tqdm

from reelforge.models.job import JobEvent, ProcessingJob
from reelforge.models.render import PLATFORM_PRESETS, RenderSettings
from reelforge.models.script import ScriptDocument
from reelforge.pipeline import PipelineResult, VideoPipeline
from reelforge.utils.config import load_config, validate_config
from reelforge.utils.logging import setup_logging
from reelforge.utils.progress import JobTracker

logger = logging.getLogger(__name__)


class ProgressBarCallback:
    """Tracker subscriber driving a tqdm bar for one job."""

    def __init__(self):
        self.bar: Optional[tqdm] = None

    def __call__(self, event: JobEvent, payload: dict) -> None:
        if self.bar is None:
            self.bar = tqdm(
                total=100,
                desc="Rendering",
                unit="%",
                leave=True,
                bar_format="{l_bar}{bar}| {n:.0f}/{total:.0f}% [{elapsed}]",
            )

        stage = payload.get("stage")
        if event == JobEvent.STAGE_START and stage:
            self.bar.set_description(stage.replace("_", " ").title())
        elif event == JobEvent.WARNING:
            self.bar.write(f"warning: {payload['warning']['message']}")
        elif event == JobEvent.ERROR:
            self.bar.write(f"error: {payload['error']['message']}")
        elif event == JobEvent.COMPLETED:
            self.bar.set_description("Done ✓")
        elif event == JobEvent.FAILED:
            self.bar.set_description("Failed ✗")

        self.bar.n = payload.get("progress", self.bar.n)
        self.bar.refresh()

    def close(self) -> None:
        if self.bar:
            self.bar.close()


def print_summary(console: Console, result: PipelineResult, job: Optional[ProcessingJob]) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Job", result.job_id)
    table.add_row("Status", result.status.value)
    table.add_row("Artifact", str(result.artifact_path) if result.artifact_path else "-")
    table.add_row("Kind", result.artifact_kind.value if result.artifact_kind else "-")
    if result.timeline:
        table.add_row("Scenes", str(len(result.timeline)))
        table.add_row("Duration", f"{result.timeline.scenes_duration:.1f}s")
    if job:
        if job.duration is not None:
            table.add_row("Elapsed", f"{job.duration:.1f}s")
        table.add_row("Warnings", str(len(job.warnings)))
        table.add_row("Errors", str(len(job.errors)))

    style = "red" if result.status.value == "failed" else "green"
    console.print(Panel(table, title="[bold]reelforge[/bold]", border_style=style))

    if job and job.errors:
        console.print("[bold red]Errors:[/bold red]")
        for issue in job.errors:
            scope = f" [{issue.scene_id}]" if issue.scene_id else ""
            console.print(f"  •{escape(scope)} {escape(issue.message)}")


def print_presets(console: Console) -> None:
    table = Table(title="Platform presets")
    table.add_column("Platform", style="cyan")
    table.add_column("Resolution")
    table.add_column("FPS", justify="right")
    table.add_column("Max duration", justify="right")

    for platform in PLATFORM_PRESETS:
        settings = RenderSettings.for_platform(platform)
        table.add_row(
            platform,
            settings.resolution,
            str(settings.fps),
            f"{settings.max_duration:.0f}s" if settings.max_duration else "-",
        )
    console.print(table)


async def render_script(script_path: Path, config: dict, console: Console) -> int:
    with open(script_path, encoding="utf-8") as f:
        script = ScriptDocument.from_dict(json.load(f))

    tracker = JobTracker()
    pipeline = VideoPipeline.from_config(config, tracker=tracker)
    progress = ProgressBarCallback()

    # Reserve the job first so the progress bar sees every event
    job = tracker.create_job(metadata={"script": str(script_path)})
    tracker.subscribe(job.job_id, progress)

    try:
        result = await pipeline.run_pipeline(script, job_id=job.job_id)
    finally:
        progress.close()

    print_summary(console, result, pipeline.get_job(result.job_id))
    await pipeline.aclose()
    return 1 if result.status.value == "failed" else 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Render narration scripts into short vertical videos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  reelforge render script.json                 # Render with settings from .env
  reelforge render script.json -o out/videos   # Custom output directory
  reelforge presets                            # List platform presets
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render a script JSON file")
    render_parser.add_argument("script", type=Path, help="Path to the script JSON file")
    render_parser.add_argument("-o", "--output-dir", help="Directory for rendered artifacts")
    render_parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    render_parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    subparsers.add_parser("presets", help="List platform presets")

    args = parser.parse_args()
    console = Console()

    if args.command == "presets":
        print_presets(console)
        return

    config = load_config()
    if args.output_dir:
        config["output_dir"] = str(Path(args.output_dir).resolve())
    setup_logging(args.log_level or config["log_level"], args.json_logs or config["log_json"])

    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        sys.exit(1)

    if not args.script.is_file():
        console.print(f"[red]Script not found:[/red] {args.script}")
        sys.exit(1)

    try:
        exit_code = asyncio.run(render_script(args.script, config, console))
    except KeyboardInterrupt:
        logger.info("Render interrupted by user")
        sys.exit(130)
    except (OSError, ValueError) as e:
        logger.error(f"Render failed: {e}")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
