"""Text measurement, word wrapping and label:value field layout."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Protocol

from PIL import ImageFont

from .utils import get_logger

logger = get_logger(__name__)

LINE_HEIGHT = 40
LABEL_WIDTH = 250
# Applied after every field so consecutive fields sit tighter than paragraphs
FIELD_SPACING_ADJUST = 10
PLACEHOLDER = "-"
ELLIPSIS = "..."

TEXT_COLOR = (255, 255, 255)

REGULAR_FONT_FILE = "DejaVuSans.ttf"
BOLD_FONT_FILE = "DejaVuSans-Bold.ttf"


class MeasuringFont(Protocol):
    def getlength(self, text: str) -> float: ...


@dataclass(frozen=True)
class LayoutCursor:
    """Vertical drawing offset within a column of a given origin and width."""

    x: int
    y: int
    max_width: int

    def moved_to(self, y: int) -> "LayoutCursor":
        return replace(self, y=y)

    def advanced(self, dy: int) -> "LayoutCursor":
        return replace(self, y=self.y + dy)


@dataclass(frozen=True)
class FontSet:
    """The four text styles used across all cards."""

    title: MeasuringFont
    heading: MeasuringFont
    bold: MeasuringFont
    data: MeasuringFont


def _load_font(fonts_dir: Path, filename: str, size: int):
    try:
        return ImageFont.truetype(str(fonts_dir / filename), size)
    except OSError:
        logger.debug(f"Font {filename} not found in {fonts_dir}, using Pillow default")
        return ImageFont.load_default(size)


def load_fonts(fonts_dir: Path) -> FontSet:
    """Load the card fonts from ``fonts_dir``, falling back to Pillow's default face."""
    return FontSet(
        title=_load_font(fonts_dir, BOLD_FONT_FILE, 56),
        heading=_load_font(fonts_dir, BOLD_FONT_FILE, 30),
        bold=_load_font(fonts_dir, BOLD_FONT_FILE, 20),
        data=_load_font(fonts_dir, REGULAR_FONT_FILE, 20),
    )


def wrap_text(text: str, font: MeasuringFont, max_width: float) -> list[str]:
    """
    Greedy word wrap.

    A word that would push the candidate line past ``max_width`` starts a new
    line, unless the candidate line is still empty, so a single word wider than
    ``max_width`` is kept alone on its own line. Always returns at least one
    line (an empty string for blank input).
    """
    lines: list[str] = []
    line = ""
    for word in text.split():
        candidate = f"{line} {word}" if line else word
        if line and font.getlength(candidate) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    lines.append(line)
    return lines


def fit_text(text: str, font: MeasuringFont, max_width: float) -> str:
    """Truncate ``text`` to a single line no wider than ``max_width``."""
    if font.getlength(text) <= max_width:
        return text
    while text and font.getlength(text + ELLIPSIS) > max_width:
        text = text[:-1]
    return text.rstrip() + ELLIPSIS


class TextLayout:
    """Draws wrapped text and two-column label:value fields."""

    def __init__(
        self,
        fonts: FontSet,
        line_height: int = LINE_HEIGHT,
        label_width: int = LABEL_WIDTH,
        color: tuple[int, int, int] = TEXT_COLOR,
    ):
        self.fonts = fonts
        self.line_height = line_height
        self.label_width = label_width
        self.color = color

    def print_wrapped(
        self,
        draw,
        font: MeasuringFont,
        x: int,
        y: int,
        max_width: int,
        text: str,
    ) -> tuple[list[str], int]:
        """Draw ``text`` wrapped to ``max_width``; return the lines and the next cursor y."""
        lines = wrap_text(text, font, max_width)
        for line in lines:
            draw.text((x, y), line, font=font, fill=self.color)
            y += self.line_height
        return lines, y

    def print_field(
        self,
        draw,
        cursor: LayoutCursor,
        label: str,
        value: Optional[str],
        data_width: Optional[int] = None,
    ) -> int:
        """Draw ``label:`` then the wrapped value beside it; return the next cursor y."""
        if data_width is None:
            data_width = cursor.max_width - self.label_width
        draw.text((cursor.x, cursor.y), f"{label}:", font=self.fonts.bold, fill=self.color)
        _, y = self.print_wrapped(
            draw,
            self.fonts.data,
            cursor.x + self.label_width,
            cursor.y,
            data_width,
            value or PLACEHOLDER,
        )
        return y - FIELD_SPACING_ADJUST

    def measure_field(self, value: Optional[str], data_width: int) -> int:
        """Height ``print_field`` would advance the cursor by, without drawing."""
        lines = wrap_text(value or PLACEHOLDER, self.fonts.data, data_width)
        return len(lines) * self.line_height - FIELD_SPACING_ADJUST

    def print_fitted(self, draw, font: MeasuringFont, x: int, y: int, max_width: int, text: str) -> None:
        draw.text((x, y), fit_text(text, font, max_width), font=font, fill=self.color)
