# matrix.py: byte-row bitmask footprints and their rotations
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

from config import MAX_SIDE
from models import Rotation

ROW_BITS = 8
TOP_BIT = 0b10000000
OCCUPIED_MARKS = frozenset("#X1*")


def row_mask(width: int) -> int:
    """Bits a row of ``width`` cells may use (left-justified)."""
    return (0xFF << (ROW_BITS - width)) & 0xFF


def bit_at(row: int, col: int) -> int:
    return (row >> (ROW_BITS - 1 - col)) & 1


def reverse_bits(row: int) -> int:
    return int(f"{row & 0xFF:08b}"[::-1], 2)


def popcount(value: int) -> int:
    return bin(value).count("1")


def parse_row(text: str) -> int:
    bits = 0
    for col, mark in enumerate(text):
        if mark in OCCUPIED_MARKS:
            bits |= TOP_BIT >> col
    return bits


@dataclass(frozen=True)
class Matrix:
    """One orientation of a piece footprint.

    ``rows[i]`` is a byte whose most significant bit is column 0, so a shape is
    moved to column ``x`` by shifting every row right by ``x``.
    """

    width: int
    rows: Tuple[int, ...]

    def __post_init__(self) -> None:
        rows = tuple(int(r) for r in self.rows)
        object.__setattr__(self, "rows", rows)
        if not 1 <= int(self.width) <= MAX_SIDE:
            raise ValueError(f"Shape width must be 1..{MAX_SIDE}, got {self.width}")
        if not 1 <= len(rows) <= MAX_SIDE:
            raise ValueError(f"Shape height must be 1..{MAX_SIDE}, got {len(rows)}")
        mask = row_mask(self.width)
        for r in rows:
            if r < 0 or r & ~mask:
                raise ValueError(f"Row {r:#010b} uses bits outside width {self.width}")
        if not any(rows):
            raise ValueError("Shape has no occupied cells")

    @classmethod
    def from_strings(cls, lines: Sequence[str]) -> "Matrix":
        lines = [line.rstrip() for line in lines if line.strip()]
        if not lines:
            raise ValueError("Shape has no rows")
        width = max(len(line) for line in lines)
        return cls(width, tuple(parse_row(line) for line in lines))

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def cell_count(self) -> int:
        return sum(popcount(r) for r in self.rows)

    def shifted(self, dx: int) -> Tuple[int, ...]:
        return tuple(r >> dx for r in self.rows)

    def cells(self) -> Iterator[Tuple[int, int]]:
        for y, r in enumerate(self.rows):
            for x in range(self.width):
                if bit_at(r, x):
                    yield x, y

    def to_strings(self) -> Tuple[str, ...]:
        return tuple(
            "".join("#" if bit_at(r, x) else "." for x in range(self.width))
            for r in self.rows
        )

    def __str__(self) -> str:
        return "\n".join(self.to_strings())


# ---------- rotations ----------

def cw90(m: Matrix) -> Matrix:
    # Column i of the source becomes row i; the top source row lands in the
    # rightmost column.
    h = m.height
    rows = []
    for i in range(m.width):
        bits = 0
        for c in range(h):
            if bit_at(m.rows[h - 1 - c], i):
                bits |= TOP_BIT >> c
        rows.append(bits)
    return Matrix(h, tuple(rows))


def cw180(m: Matrix) -> Matrix:
    rows = tuple(
        (reverse_bits(r) << (ROW_BITS - m.width)) & 0xFF
        for r in reversed(m.rows)
    )
    return Matrix(m.width, rows)


def cw270(m: Matrix) -> Matrix:
    return cw180(cw90(m))


def rotate(m: Matrix, rotation: Rotation = Rotation.CW90) -> Matrix:
    rotation = Rotation(rotation)
    if rotation == Rotation.CW0:
        return m
    if rotation == Rotation.CW90:
        return cw90(m)
    if rotation == Rotation.CW180:
        return cw180(m)
    return cw270(m)


@dataclass(frozen=True)
class RotationCache:
    """All four clockwise orientations of one footprint, built once."""

    cw0: Matrix
    cw90: Matrix
    cw180: Matrix
    cw270: Matrix

    @classmethod
    def build(cls, m: Matrix) -> "RotationCache":
        return cls(m, cw90(m), cw180(m), cw270(m))

    def get(self, rotation: Rotation) -> Matrix:
        return (self.cw0, self.cw90, self.cw180, self.cw270)[int(rotation)]

    @property
    def symmetry_degree(self) -> int:
        return symmetry_degree(self)

    def distinct_rotations(self) -> Tuple[Rotation, ...]:
        """The first ``symmetry_degree`` rotations; the rest repeat them."""
        return tuple(Rotation(i) for i in range(self.symmetry_degree))

    def __iter__(self) -> Iterator[Matrix]:
        return iter((self.cw0, self.cw90, self.cw180, self.cw270))


def symmetry_degree(cache: RotationCache) -> int:
    if cache.cw0 == cache.cw90:
        return 1
    if cache.cw0 == cache.cw180:
        return 2
    return 4
