"""Paginated section packer.

Fits a list of fixed-shape text blocks (three label:value lines each) into
the vertical space left on a card. The primary card uses a single column and
projects each block's real wrapped height before drawing it; continuation
cards use two columns of fixed-height slots.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, Sequence, TypeVar

from .text_layout import LayoutCursor, TextLayout

T = TypeVar("T")

CANVAS_HEIGHT = 1920
# Nothing from a packed section may be drawn below this line
FOOTER_BOUNDARY = CANVAS_HEIGHT - 150

BLOCK_LINES = 3
ITEM_PADDING = 20
COLUMN_GAP = 40
DUAL_LABEL_WIDTH = 150

BlockFields = Callable[[T], Sequence[tuple[str, str]]]


class LayoutMode(Enum):
    SINGLE_COLUMN = "single"
    DUAL_COLUMN = "dual"


@dataclass
class PackResult(Generic[T]):
    """Outcome of one pack call: the new cursor y, what was drawn, what is left."""

    cursor: int
    placed: list[T] = field(default_factory=list)
    remaining: list[T] = field(default_factory=list)
    columns: list[list[T]] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return not self.remaining


class SectionPacker(Generic[T]):
    """Greedily places leading items of a list into the space above the footer."""

    def __init__(
        self,
        layout: TextLayout,
        block_fields: BlockFields,
        boundary: int = FOOTER_BOUNDARY,
        item_padding: int = ITEM_PADDING,
        column_gap: int = COLUMN_GAP,
    ):
        self.layout = layout
        self.block_fields = block_fields
        self.boundary = boundary
        self.item_padding = item_padding
        self.column_gap = column_gap

    @property
    def item_height(self) -> int:
        """Fixed slot height of one block in dual-column mode."""
        return BLOCK_LINES * self.layout.line_height + self.item_padding

    def pack(self, draw, items: Sequence[T], cursor: LayoutCursor, mode: LayoutMode) -> PackResult[T]:
        """
        Draw as many leading ``items`` as fit between ``cursor.y`` and the boundary.

        Args:
            draw: ImageDraw-like target (only ``text`` is called)
            items: Blocks to place, in order
            cursor: Start position; its ``max_width`` is the section width
            mode: Single column (primary card) or two columns (continuation)

        Returns:
            PackResult with the advanced cursor y and the unconsumed remainder
        """
        if not items:
            return PackResult(cursor=cursor.y)
        if mode is LayoutMode.SINGLE_COLUMN:
            return self._pack_single(draw, list(items), cursor)
        return self._pack_dual(draw, list(items), cursor)

    # ------------------------------------------------------------------
    # Single column
    # ------------------------------------------------------------------

    def _data_width(self, cursor: LayoutCursor) -> int:
        return cursor.max_width - self.layout.label_width

    def projected_end(self, item: T, cursor: LayoutCursor) -> int:
        """Cursor y after drawing ``item`` at ``cursor``, computed without drawing."""
        data_width = self._data_width(cursor)
        height = sum(
            self.layout.measure_field(value, data_width) for _, value in self.block_fields(item)
        )
        return cursor.y + height + self.item_padding

    def _draw_block(self, draw, item: T, cursor: LayoutCursor) -> int:
        data_width = self._data_width(cursor)
        y = cursor.y
        for label, value in self.block_fields(item):
            y = self.layout.print_field(draw, cursor.moved_to(y), label, value, data_width)
        return y + self.item_padding

    def _pack_single(self, draw, items: list[T], cursor: LayoutCursor) -> PackResult[T]:
        placed: list[T] = []
        for index, item in enumerate(items):
            if self.projected_end(item, cursor) > self.boundary:
                return PackResult(cursor=cursor.y, placed=placed, remaining=items[index:], columns=[placed])
            cursor = cursor.moved_to(self._draw_block(draw, item, cursor))
            placed.append(item)
        return PackResult(cursor=cursor.y, placed=placed, remaining=[], columns=[placed])

    # ------------------------------------------------------------------
    # Dual column
    # ------------------------------------------------------------------

    def per_column_capacity(self, start_y: int) -> int:
        available = self.boundary - start_y
        return max(0, available // self.item_height)

    def column_width(self, cursor: LayoutCursor) -> int:
        return (cursor.max_width - self.column_gap) // 2

    def _draw_slot(self, draw, item: T, x: int, y: int, width: int) -> None:
        fonts = self.layout.fonts
        value_width = width - DUAL_LABEL_WIDTH
        for line, (label, value) in enumerate(self.block_fields(item)):
            line_y = y + line * self.layout.line_height
            self.layout.print_fitted(draw, fonts.bold, x, line_y, DUAL_LABEL_WIDTH, f"{label}:")
            self.layout.print_fitted(
                draw, fonts.data, x + DUAL_LABEL_WIDTH, line_y, value_width, value or "-"
            )

    def _draw_column(self, draw, items: list[T], x: int, top: int, width: int) -> int:
        y = top
        for item in items:
            self._draw_slot(draw, item, x, y, width)
            y += self.item_height
        return y

    def _pack_dual(self, draw, items: list[T], cursor: LayoutCursor) -> PackResult[T]:
        per_column = self.per_column_capacity(cursor.y)
        consumed = min(len(items), 2 * per_column)
        left_count = math.ceil(consumed / 2)
        left = items[:left_count]
        right = items[left_count:consumed]

        width = self.column_width(cursor)
        left_end = self._draw_column(draw, left, cursor.x, cursor.y, width)
        right_end = self._draw_column(draw, right, cursor.x + width + self.column_gap, cursor.y, width)

        return PackResult(
            cursor=max(left_end, right_end),
            placed=items[:consumed],
            remaining=items[consumed:],
            columns=[left, right],
        )
