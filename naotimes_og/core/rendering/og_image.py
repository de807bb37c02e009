"""
OG Image Composer
=================

Composite the naoTimes Open Graph card with Pillow: the server name, the
remaining-work and project counters, and a footer, drawn over a 1280x720
background.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from naotimes_og.config.logging import get_logger
from naotimes_og.config.settings import Settings, get_settings
from naotimes_og.models.schemas import OGImageRequest

logger = get_logger(__name__)

CANVAS_SIZE = (1280, 720)
MAX_TEXT_WIDTH = 1160
BACKGROUND = (32, 34, 37, 255)
WHITE = (255, 255, 255, 255)
FADED_WHITE = (255, 255, 255, 128)

Font = Any  # ImageFont.FreeTypeFont or ImageFont.ImageFont


class OGImageError(Exception):
    """Exception raised when the OG image cannot be composited."""

    pass


@dataclass
class TextRun:
    """A piece of text drawn with one font and color."""

    text: str
    font: Font
    fill: Tuple[int, int, int, int] = WHITE


def counter_runs(
    value: int, empty_text: str, label: str, unit: str, regular: Font, bold: Font
) -> List[TextRun]:
    """Runs for a counter line, e.g. ``Sisa utang: 3 utang``."""
    if value == 0:
        return [TextRun(empty_text, regular)]
    return [TextRun(f"{label}: ", regular), TextRun(f"{value} {unit}", bold)]


def name_margin_top(request: OGImageRequest) -> int:
    margin = 100
    if request.count is not None and request.total is not None:
        margin += 70
    elif request.count is not None or request.total is not None:
        margin += 44
    return margin


class OGImageComposer:
    """Draw OG cards. Blocking, meant to run on the worker thread pool."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="og_image")
        self._base: Optional[Image.Image] = None

    def _load_font(self, path: Optional[Path], size: int) -> Font:
        if path is not None:
            try:
                return ImageFont.truetype(str(path), size)
            except OSError as e:
                self.logger.warning("Failed to load font, using default", path=str(path), error=str(e))
        return ImageFont.load_default(size=size)

    def _background(self) -> Image.Image:
        if self._base is None:
            path = self.settings.og_base_image
            if path is not None:
                try:
                    with Image.open(path) as base:
                        self._base = base.convert("RGBA").resize(CANVAS_SIZE)
                except OSError as e:
                    raise OGImageError(f"Failed to load base image: {e}") from e
            else:
                self._base = Image.new("RGBA", CANVAS_SIZE, BACKGROUND)
        return self._base.copy()

    def compose(self, request: OGImageRequest, uuid: str) -> bytes:
        """
        Paint the OG card.

        Args:
            request: Card parameters
            uuid: Identifier used in log lines

        Returns:
            PNG bytes

        Raises:
            OGImageError: If compositing fails
        """
        try:
            image = self._background()
            overlay = Image.new("RGBA", CANVAS_SIZE, (0, 0, 0, 0))
            draw = ImageDraw.Draw(overlay)

            bold_40 = self._load_font(self.settings.og_font_bold, 40)
            bold_24 = self._load_font(self.settings.og_font_bold, 24)
            light_24 = self._load_font(self.settings.og_font_light, 24)
            bold_20 = self._load_font(self.settings.og_font_bold, 20)
            light_20 = self._load_font(self.settings.og_font_light, 20)

            y = name_margin_top(request)
            for line in self._wrap(draw, request.name, bold_40):
                y = self._draw_centered(draw, y, [TextRun(line, bold_40)], line_height=1.2)

            if request.count is not None:
                runs = counter_runs(
                    request.count, "Tidak ada utang", "Sisa utang", "utang", light_24, bold_24
                )
                y = self._draw_centered(draw, y + 30, runs, line_height=2.5)

            if request.total is not None:
                runs = counter_runs(
                    request.total, "Tidak ada garapan", "Proyek", "garapan", light_24, bold_24
                )
                spacing = 12 if request.count is not None else 30
                y = self._draw_centered(draw, y + spacing, runs, line_height=2.5)

            self._draw_footer(
                draw,
                [
                    TextRun("Diprakasai dengan ", light_20, FADED_WHITE),
                    TextRun("naoTimes", bold_20, WHITE),
                ],
            )

            self.logger.info("Painting", uuid=uuid)
            painted = Image.alpha_composite(image, overlay)

            output = io.BytesIO()
            painted.save(output, format="PNG", optimize=True)
            return output.getvalue()

        except OGImageError:
            raise
        except Exception as e:
            raise OGImageError(f"Error creating OG Image: {e}") from e

    def _wrap(self, draw: ImageDraw.ImageDraw, text: str, font: Font) -> List[str]:
        """Break ``text`` at any character so each line fits the text width."""
        lines: List[str] = []
        current = ""
        for char in text:
            if current and draw.textlength(current + char, font=font) > MAX_TEXT_WIDTH:
                lines.append(current)
                current = char
            else:
                current += char
        if current or not lines:
            lines.append(current)
        return lines

    def _line_size(
        self, draw: ImageDraw.ImageDraw, runs: List[TextRun]
    ) -> Tuple[float, int]:
        width = sum(draw.textlength(run.text, font=run.font) for run in runs)
        height = max(run.font.getbbox("Ay")[3] for run in runs)
        return width, height

    def _draw_runs(
        self, draw: ImageDraw.ImageDraw, x: float, y: float, runs: List[TextRun]
    ) -> None:
        for run in runs:
            draw.text((x, y), run.text, font=run.font, fill=run.fill)
            x += draw.textlength(run.text, font=run.font)

    def _draw_centered(
        self, draw: ImageDraw.ImageDraw, y: int, runs: List[TextRun], line_height: float
    ) -> int:
        width, height = self._line_size(draw, runs)
        x = (CANVAS_SIZE[0] - width) / 2
        self._draw_runs(draw, x, y, runs)
        return y + int(height * line_height)

    def _draw_footer(self, draw: ImageDraw.ImageDraw, runs: List[TextRun]) -> None:
        width, height = self._line_size(draw, runs)
        x = CANVAS_SIZE[0] - 30 - width
        y = CANVAS_SIZE[1] - 30 - height
        self._draw_runs(draw, x, y, runs)
