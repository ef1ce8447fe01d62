"""FFmpeg driver with progress reporting.

FFmpeg runs with `-progress pipe:1`, which writes key=value blocks to stdout.
`out_time_us` is turned into a percentage of the expected duration and
reported through the on_event callback together with start, completion and
error signals.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from reelforge.models.render import RenderSettings
from reelforge.render.filter_graph import FilterGraph

logger = logging.getLogger(__name__)

STDERR_TAIL = 2000
TERMINATE_GRACE_SECONDS = 5.0
PROBE_TIMEOUT_SECONDS = 30.0


class EncoderError(Exception):
    """Raised when FFmpeg cannot be started or exits with an error."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class EncoderSignal(str, Enum):
    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class EncoderEvent:
    signal: EncoderSignal
    percent: float = 0.0
    message: str = ""


EncoderCallback = Callable[[EncoderEvent], None]


def parse_progress_line(line: str, expected_duration: float) -> Optional[float]:
    """Percentage for an `out_time_us=` line, or None for any other line."""
    if not line.startswith("out_time_us=") or expected_duration <= 0:
        return None
    try:
        seconds = int(line.split("=", 1)[1]) / 1_000_000
    except ValueError:
        # FFmpeg prints N/A before the first frame
        return None
    return max(0.0, min(100.0, seconds / expected_duration * 100))


class FFmpegEncoder:
    """Runs one FFmpeg encode per call as an asyncio subprocess."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path

    def build_command(self, graph: FilterGraph, settings: RenderSettings, output_path: Path) -> list[str]:
        return [
            self.ffmpeg_path, "-y",
            "-hide_banner",
            "-nostats",
            "-progress", "pipe:1",
            *graph.input_args(),
            "-filter_complex", graph.graph,
            *graph.map_args(),
            "-s", settings.resolution,
            *settings.output_args(),
            str(output_path),
        ]

    async def encode(
        self,
        graph: FilterGraph,
        settings: RenderSettings,
        output_path: Path,
        on_event: Optional[EncoderCallback] = None,
    ) -> Path:
        """Encode graph into output_path.

        Cancelling the calling task terminates FFmpeg and re-raises
        CancelledError.

        Raises:
            EncoderError: If FFmpeg is missing, fails, or writes nothing
        """
        emit = on_event or (lambda event: None)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(graph, settings, output_path)

        logger.info(f"FFmpeg: encode {len(graph.inputs)} scenes -> {output_path.name}")
        logger.debug(f"Command: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            emit(EncoderEvent(EncoderSignal.ERROR, message=str(e)))
            raise EncoderError(f"Could not start FFmpeg: {e}") from e

        emit(EncoderEvent(EncoderSignal.START, message=f"Encoding {len(graph.inputs)} scenes"))

        try:
            _, stderr = await asyncio.gather(
                self._read_progress(proc, graph.expected_duration, emit),
                proc.stderr.read(),
            )
            returncode = await proc.wait()
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise

        stderr_text = stderr.decode("utf-8", errors="replace")[-STDERR_TAIL:]
        if returncode != 0:
            logger.error(f"FFmpeg stderr: {stderr_text[-1000:]}")
            message = f"FFmpeg exited with code {returncode}"
            emit(EncoderEvent(EncoderSignal.ERROR, message=message))
            raise EncoderError(message, returncode=returncode, stderr=stderr_text)

        if not output_path.is_file() or output_path.stat().st_size == 0:
            message = f"FFmpeg produced no output at {output_path}"
            emit(EncoderEvent(EncoderSignal.ERROR, message=message))
            raise EncoderError(message, returncode=returncode, stderr=stderr_text)

        emit(EncoderEvent(EncoderSignal.COMPLETE, percent=100.0, message="Encoding complete"))
        return output_path

    async def _read_progress(self, proc, expected_duration: float, emit: EncoderCallback) -> None:
        last_reported = -1
        async for raw_line in proc.stdout:
            line = raw_line.decode("utf-8", errors="replace").strip()
            percent = parse_progress_line(line, expected_duration)
            if percent is not None and int(percent) > last_reported:
                last_reported = int(percent)
                emit(EncoderEvent(EncoderSignal.PROGRESS, percent=percent))

    @staticmethod
    async def _terminate(proc) -> None:
        if proc.returncode is not None:
            return
        logger.warning("Terminating FFmpeg")
        try:
            proc.terminate()
            await asyncio.wait_for(proc.wait(), timeout=TERMINATE_GRACE_SECONDS)
        except ProcessLookupError:
            return
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()

    async def probe_duration(self, path: Path) -> Optional[float]:
        """Duration of a media file in seconds via ffprobe, or None if unknown."""
        cmd = [
            self.ffprobe_path,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "json",
            str(path),
        ]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=PROBE_TIMEOUT_SECONDS)
            if proc.returncode != 0:
                return None
            data = json.loads(stdout)
            return float(data["format"]["duration"])
        except asyncio.TimeoutError:
            proc.kill()
            logger.warning(f"ffprobe timed out for {path}")
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"ffprobe failed for {path}: {e}")
        return None
