"""Synthetic placeholder images for scenes without stock media."""

import logging
import textwrap
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 100
LINE_WIDTH = 20
MAX_LINES = 2
TITLE = "AI Video Scene"
DEFAULT_CAPTION = "Generated Content"

GRADIENT_START = (0x66, 0x7E, 0xEA)
GRADIENT_END = (0x76, 0x4B, 0xA2)

FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "DejaVuSans-Bold.ttf",
)


class PlaceholderError(Exception):
    """Raised when a placeholder image cannot be produced."""


def wrap_caption(text: str, max_length: int = MAX_TEXT_LENGTH) -> list[str]:
    """Truncate text and wrap it into at most MAX_LINES short lines."""
    text = " ".join(text.split())[:max_length]
    lines = textwrap.wrap(text, width=LINE_WIDTH, break_long_words=True)
    return lines[:MAX_LINES]


def _load_font(size: int) -> ImageFont.ImageFont:
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default()


def _draw_gradient(image: Image.Image) -> None:
    """Vertical gradient from GRADIENT_START to GRADIENT_END."""
    width, height = image.size
    draw = ImageDraw.Draw(image)
    span = max(height - 1, 1)
    for y in range(height):
        t = y / span
        color = tuple(
            int(start + (end - start) * t) for start, end in zip(GRADIENT_START, GRADIENT_END)
        )
        draw.line([(0, y), (width, y)], fill=color)


def _draw_centered(draw: ImageDraw.ImageDraw, text: str, y: int, width: int, font, fill) -> None:
    bbox = draw.textbbox((0, 0), text, font=font)
    text_width = bbox[2] - bbox[0]
    draw.text(((width - text_width) // 2, y), text, font=font, fill=fill)


class PlaceholderSynthesizer:
    """Renders descriptive text over a gradient at the target frame size."""

    def render(self, text: str, width: int, height: int, output_path: Path) -> Path:
        """Write a PNG placeholder to output_path and return the path.

        The parent directory must already exist.

        Raises:
            PlaceholderError: If Pillow cannot draw or save the image
        """
        if width <= 0 or height <= 0:
            raise PlaceholderError(f"Invalid placeholder size {width}x{height}")

        output_path = Path(output_path).with_suffix(".png")
        lines = wrap_caption(text) or [DEFAULT_CAPTION]

        try:
            image = Image.new("RGB", (width, height), GRADIENT_START)
            _draw_gradient(image)

            draw = ImageDraw.Draw(image)
            scale = width / 720
            title_font = _load_font(max(int(32 * scale), 12))
            body_font = _load_font(max(int(18 * scale), 10))

            center_y = height // 2
            _draw_centered(draw, TITLE, center_y - int(80 * scale), width, title_font, "white")
            for i, line in enumerate(lines):
                y = center_y + int((i * 30 - 10) * scale)
                _draw_centered(draw, line, y, width, body_font, (0xE0, 0xE0, 0xE0))

            # Faint marker under the caption
            radius = int(30 * scale)
            cy = center_y + int(120 * scale)
            draw.ellipse(
                [(width // 2 - radius, cy - radius), (width // 2 + radius, cy + radius)],
                outline=(255, 255, 255),
                width=max(int(2 * scale), 1),
            )

            image.save(output_path, "PNG")
        except (OSError, ValueError) as e:
            output_path.unlink(missing_ok=True)
            raise PlaceholderError(f"Failed to render placeholder: {e}") from e

        logger.debug(f"Created placeholder {output_path} ({width}x{height})")
        return output_path
