# canvas.py: the board as one byte per row
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from config import MAX_SIDE
from matrix import Matrix, bit_at, parse_row, popcount, row_mask
from models import Position


@dataclass(frozen=True)
class Canvas:
    """Fixed-size board; a set bit marks an occupied cell.

    Column 0 is the most significant bit of each row byte, the same
    convention :class:`matrix.Matrix` uses, so a shape at column ``x`` is
    tested by shifting its rows right by ``x``. Bits past ``width`` stay 0.
    """

    width: int
    height: int
    rows: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if not 1 <= int(self.width) <= MAX_SIDE or not 1 <= int(self.height) <= MAX_SIDE:
            raise ValueError(
                f"Canvas must be between 1×1 and {MAX_SIDE}×{MAX_SIDE}, got {self.width}×{self.height}"
            )
        rows = tuple(int(r) for r in self.rows) or (0,) * int(self.height)
        if len(rows) != int(self.height):
            raise ValueError(f"Canvas has {len(rows)} rows, expected {self.height}")
        mask = row_mask(self.width)
        for r in rows:
            if r < 0 or r & ~mask:
                raise ValueError(f"Row {r:#010b} uses bits outside width {self.width}")
        object.__setattr__(self, "rows", rows)

    @classmethod
    def empty(cls, width: int, height: int) -> "Canvas":
        return cls(width, height)

    @classmethod
    def from_strings(cls, lines: Sequence[str], width: Optional[int] = None) -> "Canvas":
        lines = [line.rstrip("\n") for line in lines]
        if width is None:
            width = max((len(line) for line in lines), default=0)
        return cls(width, len(lines), tuple(parse_row(line[:width]) for line in lines))

    @property
    def cell_total(self) -> int:
        return self.width * self.height

    def free_cell_count(self) -> int:
        return self.cell_total - sum(popcount(r) for r in self.rows)

    def is_full(self) -> bool:
        mask = row_mask(self.width)
        return all(r == mask for r in self.rows)

    def fits(self, shape: Matrix, origin: Position) -> bool:
        if origin.x < 0:
            return False
        return self.fits_rows(shape.shifted(origin.x), shape.width, origin)

    def fits_rows(self, shifted: Sequence[int], shape_width: int, origin: Position) -> bool:
        """Overlap test for shape rows already shifted to ``origin.x``."""
        if origin.x < 0 or origin.y < 0:
            return False
        if origin.x + shape_width > self.width or origin.y + len(shifted) > self.height:
            return False
        rows = self.rows
        for i, bits in enumerate(shifted):
            if rows[origin.y + i] & bits:
                return False
        return True

    def overlay(self, shape: Matrix, origin: Position) -> Optional["Canvas"]:
        """Return a new canvas with ``shape`` placed, or None if it does not fit."""
        if origin.x < 0:
            return None
        return self.overlay_rows(shape.shifted(origin.x), shape.width, origin)

    def overlay_rows(self, shifted: Sequence[int], shape_width: int, origin: Position) -> Optional["Canvas"]:
        if not self.fits_rows(shifted, shape_width, origin):
            return None
        rows = list(self.rows)
        for i, bits in enumerate(shifted):
            rows[origin.y + i] |= bits
        return Canvas(self.width, self.height, tuple(rows))

    def is_occupied(self, x: int, y: int) -> bool:
        return bool(bit_at(self.rows[y], x))

    def to_strings(self) -> Tuple[str, ...]:
        return tuple(
            "".join("#" if bit_at(r, x) else "." for x in range(self.width))
            for r in self.rows
        )

    def __str__(self) -> str:
        return "\n".join(self.to_strings())
