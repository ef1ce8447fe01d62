"""Degraded deliverables: HTML slideshow and timeline data dump."""

import base64
import html
import json
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from string import Template
from typing import Optional

from reelforge.models.timeline import Timeline, TimelineScene

logger = logging.getLogger(__name__)

DATA_DUMP_MESSAGE = "Video processing completed. Data saved for manual review."

# Inline images larger than this are left out so the page stays loadable
MAX_INLINE_BYTES = 8 * 1024 * 1024


class SlideshowError(Exception):
    """Raised when the slideshow or data dump cannot be written."""


SLIDESHOW_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title</title>
    <style>
        body {
            margin: 0;
            background: #000;
            color: #fff;
            font-family: Arial, sans-serif;
            display: flex;
            align-items: center;
            justify-content: center;
            min-height: 100vh;
        }
        .slideshow-container {
            width: 360px;
            height: 640px;
            position: relative;
            background: linear-gradient(45deg, #1a1a1a, #2d2d2d);
            border-radius: 20px;
            overflow: hidden;
        }
        .slide {
            position: absolute;
            inset: 0;
            display: flex;
            flex-direction: column;
            align-items: center;
            justify-content: center;
            opacity: 0;
            transition: opacity 0.5s ease-in-out;
            padding: 40px;
            text-align: center;
            box-sizing: border-box;
        }
        .slide.active { opacity: 1; }
        .slide img { max-width: 100%; max-height: 60%; border-radius: 10px; margin-bottom: 20px; }
        .slide-content { font-size: 18px; line-height: 1.4; color: #00D4FF; }
        .slide-overlay { margin-top: 12px; font-size: 22px; font-weight: bold; }
        .controls {
            position: absolute;
            bottom: 20px;
            left: 50%;
            transform: translateX(-50%);
            display: flex;
            gap: 10px;
        }
        .control-btn {
            background: rgba(0, 212, 255, 0.3);
            border: none;
            color: white;
            padding: 10px 15px;
            border-radius: 5px;
            cursor: pointer;
        }
        .progress-bar {
            position: absolute;
            bottom: 0;
            left: 0;
            height: 3px;
            background: #00D4FF;
            width: 0%;
        }
    </style>
</head>
<body>
    <div class="slideshow-container">
$slides
        <div class="controls">
            <button class="control-btn" id="prevBtn">&#9664; Prev</button>
            <button class="control-btn" id="playBtn">&#9654; Play</button>
            <button class="control-btn" id="nextBtn">Next &#9654;</button>
        </div>
        <div class="progress-bar" id="progressBar"></div>
    </div>
    <script>
        const slides = document.querySelectorAll('.slide');
        const progressBar = document.getElementById('progressBar');
        const playBtn = document.getElementById('playBtn');
        let current = 0;
        let playing = false;
        let timer = null;

        function showSlide(index) {
            slides.forEach(slide => slide.classList.remove('active'));
            slides[index].classList.add('active');
            current = index;
        }
        function nextSlide() { showSlide((current + 1) % slides.length); }
        function previousSlide() { showSlide((current - 1 + slides.length) % slides.length); }

        function playCurrent() {
            const duration = parseInt(slides[current].dataset.duration, 10);
            progressBar.style.transition = 'none';
            progressBar.style.width = '0%';
            void progressBar.offsetWidth;
            progressBar.style.transition = 'width ' + duration + 'ms linear';
            progressBar.style.width = '100%';
            timer = setTimeout(() => {
                nextSlide();
                if (playing) playCurrent();
            }, duration);
        }
        function togglePlay() {
            if (playing) {
                clearTimeout(timer);
                playBtn.innerHTML = '&#9654; Play';
                progressBar.style.transition = 'none';
                progressBar.style.width = '0%';
            } else {
                playCurrent();
                playBtn.innerHTML = '&#10074;&#10074; Pause';
            }
            playing = !playing;
        }

        document.getElementById('prevBtn').addEventListener('click', previousSlide);
        document.getElementById('nextBtn').addEventListener('click', nextSlide);
        playBtn.addEventListener('click', togglePlay);
        setTimeout(togglePlay, 1000);
    </script>
</body>
</html>
""")


def _inline_image(path: Path) -> Optional[str]:
    """data: URI for an image file, or None if it cannot be inlined."""
    try:
        size = path.stat().st_size
    except OSError:
        return None
    if size == 0 or size > MAX_INLINE_BYTES:
        return None
    mime = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def render_slide(index: int, entry: TimelineScene) -> str:
    duration_ms = int(round(entry.duration * 1000))
    parts = [
        f'        <div class="slide{" active" if index == 0 else ""}" '
        f'data-duration="{duration_ms}" data-scene="{html.escape(entry.scene_id)}">'
    ]

    if entry.asset.type.is_still:
        src = _inline_image(entry.asset.path)
        if src:
            parts.append(f'            <img src="{src}" alt="{html.escape(entry.scene_id)}">')

    parts.append(f'            <div class="slide-content">{html.escape(entry.scene.display_text)}</div>')
    for caption in entry.overlay_captions:
        parts.append(f'            <div class="slide-overlay">{html.escape(caption.text)}</div>')
    parts.append("        </div>")
    return "\n".join(parts)


def render_slideshow_html(timeline: Timeline) -> str:
    """Self-contained HTML page playing the timeline as timed slides."""
    if not timeline.scenes:
        raise SlideshowError("Timeline has no scenes for a slideshow")
    slides = "\n".join(render_slide(i, entry) for i, entry in enumerate(timeline.scenes))
    return SLIDESHOW_TEMPLATE.substitute(
        title=html.escape(f"{timeline.title} - {timeline.timeline_id}"),
        slides=slides,
    )


def write_slideshow(timeline: Timeline, output_path: Path) -> Path:
    """Write the slideshow page to output_path.

    Raises:
        SlideshowError: If the page cannot be built or written
    """
    output_path = Path(output_path)
    try:
        page = render_slideshow_html(timeline)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(page, encoding="utf-8")
    except OSError as e:
        raise SlideshowError(f"Could not write slideshow: {e}") from e

    logger.info(f"Slideshow written: {output_path}")
    return output_path


def write_data_dump(
    timeline: Timeline,
    output_path: Path,
    job_id: str,
    reason: Optional[str] = None,
) -> Path:
    """Persist the full timeline as JSON for manual review.

    Raises:
        SlideshowError: If the file cannot be written
    """
    output_path = Path(output_path)
    document = {
        "id": job_id,
        "type": "slideshow_data",
        "timeline": timeline.to_dict(),
        "message": DATA_DUMP_MESSAGE,
        "reason": reason,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(document, indent=2, default=str), encoding="utf-8")
    except (OSError, TypeError, ValueError) as e:
        raise SlideshowError(f"Could not write data dump: {e}") from e

    logger.info(f"Timeline data written: {output_path}")
    return output_path
