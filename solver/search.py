# solver/search.py: depth-first placement enumeration
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from canvas import Canvas
from matrix import Matrix
from models import CalculationResult, Chip, Placement, Position, Rotation, SearchConfig
from shapes import ShapeRegistry

LeafCallback = Callable[[CalculationResult], None]
Orientation = Tuple[Rotation, Matrix]


def candidate_rotations(chip: Chip, registry: ShapeRegistry, config: SearchConfig) -> Tuple[Rotation, ...]:
    """Rotations worth trying for ``chip``.

    Without rotation only the natural orientation is allowed. With rotation we
    stop at the shape's symmetry degree, because later rotations repeat the
    same bit pattern. The rotation equivalent to the natural one is reported
    as the natural rotation, so it is placed free of correction cost.
    """
    if not config.allow_rotation:
        return (chip.natural_rotation,)
    cache = registry.cache_for(chip.shape)
    degree = cache.symmetry_degree
    natural = Rotation(chip.natural_rotation)
    return tuple(
        natural if int(rotation) == int(natural) % degree else rotation
        for rotation in cache.distinct_rotations()
    )


@dataclass(frozen=True)
class SearchContext:
    """Read-only inputs shared by every branch of one search."""

    chips: Tuple[Chip, ...]
    registry: ShapeRegistry
    config: SearchConfig = SearchConfig()
    orientations: Tuple[Tuple[Orientation, ...], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        chips = tuple(self.chips)
        object.__setattr__(self, "chips", chips)
        table = []
        for chip in chips:
            cache = self.registry.cache_for(chip.shape)
            table.append(tuple(
                (rotation, cache.get(rotation))
                for rotation in candidate_rotations(chip, self.registry, self.config)
            ))
        object.__setattr__(self, "orientations", tuple(table))

    def all_indices(self) -> Tuple[int, ...]:
        return tuple(range(len(self.chips)))


def validate_inputs(canvas: Canvas, chips: Sequence[Chip], registry: ShapeRegistry) -> None:
    """Caller-side contract check; the engine itself assumes valid input."""
    if not isinstance(canvas, Canvas):
        raise ValueError(f"Expected a Canvas, got {type(canvas).__name__}")
    for idx, chip in enumerate(chips):
        if chip.shape not in registry:
            raise ValueError(f"Chip {idx}: unknown shape {chip.shape!r}")
        if int(chip.correction_cost) < 0:
            raise ValueError(f"Chip {idx}: correction cost must be non-negative")
        Rotation(chip.natural_rotation)


# ---------- the shared "try every placement" primitive ----------

def _iter_orientation(canvas: Canvas, rotation: Rotation, matrix: Matrix, first_fit: bool):
    if matrix.width > canvas.width or matrix.height > canvas.height:
        return
    for x in range(canvas.width - matrix.width + 1):
        # The rotated shape is shifted once per column, then slid down the rows.
        shifted = matrix.shifted(x)
        for y in range(canvas.height - matrix.height + 1):
            position = Position(x, y)
            placed = canvas.overlay_rows(shifted, matrix.width, position)
            if placed is None:
                continue
            yield placed, position, rotation
            if first_fit:
                return


def iter_placements(
    canvas: Canvas, chip_index: int, context: SearchContext
) -> Iterator[Tuple[Canvas, Position, Rotation]]:
    """Yield ``(canvas, position, rotation)`` for every fit of one chip.

    Rotations come in candidate order; origins are scanned column by column
    (``x`` outer, ``y`` inner).
    """
    first_fit = context.config.first_fit
    for rotation, matrix in context.orientations[chip_index]:
        yield from _iter_orientation(canvas, rotation, matrix, first_fit)


def _remaining_after(remaining: Tuple[int, ...], slot: int, ascending: bool) -> Tuple[int, ...]:
    if ascending:
        return remaining[slot + 1:]
    return remaining[:slot] + remaining[slot + 1:]


def successors_for_slot(
    canvas: Canvas,
    remaining: Tuple[int, ...],
    slot: int,
    partial: CalculationResult,
    context: SearchContext,
) -> Iterator[Tuple[Canvas, Tuple[int, ...], CalculationResult]]:
    """Successor states from placing the chip at ``remaining[slot]``."""
    chip_index = remaining[slot]
    chip = context.chips[chip_index]
    rest = _remaining_after(remaining, slot, context.config.ascending_pieces)
    for placed, position, rotation in iter_placements(canvas, chip_index, context):
        step = Placement(chip_index, position, rotation)
        yield placed, rest, partial.extend(step, chip.cost_for(rotation))


def iter_successors(
    canvas: Canvas,
    remaining: Tuple[int, ...],
    partial: CalculationResult,
    context: SearchContext,
) -> Iterator[Tuple[Canvas, Tuple[int, ...], CalculationResult]]:
    for slot in range(len(remaining)):
        yield from successors_for_slot(canvas, remaining, slot, partial, context)


# ---------- engine ----------

def _search(
    canvas: Canvas,
    remaining: Tuple[int, ...],
    partial: CalculationResult,
    context: SearchContext,
    on_leaf: LeafCallback,
) -> None:
    threshold = context.config.prune_threshold
    placed_any = False
    for placed, rest, extended in iter_successors(canvas, remaining, partial, context):
        placed_any = True
        if placed.free_cell_count() < threshold:
            on_leaf(extended)
        else:
            _search(placed, rest, extended, context, on_leaf)
    if not placed_any:
        on_leaf(partial)


def _initial_remaining(context: SearchContext, partial: CalculationResult, used) -> Tuple[int, ...]:
    skip = set(partial.used)
    if used:
        skip.update(int(i) for i in used)
    return tuple(i for i in context.all_indices() if i not in skip)


def search(
    canvas: Canvas,
    context: SearchContext,
    on_leaf: LeafCallback,
    *,
    used: Optional[Sequence[int]] = None,
    partial: Optional[CalculationResult] = None,
) -> None:
    """Report every leaf reachable from ``canvas`` through ``on_leaf``.

    Chips listed in ``used`` (or already placed in ``partial``) are never
    placed again. A state from which nothing fits is itself reported, so every
    branch ends in exactly one callback.
    """
    partial = partial if partial is not None else CalculationResult()
    _search(canvas, _initial_remaining(context, partial, used), partial, context, on_leaf)


def calculate(
    canvas: Canvas,
    context: SearchContext,
    *,
    used: Optional[Sequence[int]] = None,
    partial: Optional[CalculationResult] = None,
) -> List[CalculationResult]:
    leaves: List[CalculationResult] = []
    search(canvas, context, leaves.append, used=used, partial=partial)
    return leaves


# ---------- resumable job state ----------

@dataclass(frozen=True)
class CalculationJob:
    """One search state: a board, the chips still to try, and what is placed."""

    canvas: Canvas
    remaining: Tuple[int, ...]
    base: CalculationResult = CalculationResult()
    # Set when the board fell below the prune threshold; such a job is final.
    is_leaf: bool = False

    @classmethod
    def initial(
        cls,
        canvas: Canvas,
        context: SearchContext,
        *,
        used: Optional[Sequence[int]] = None,
        partial: Optional[CalculationResult] = None,
    ) -> "CalculationJob":
        partial = partial if partial is not None else CalculationResult()
        return cls(canvas, _initial_remaining(context, partial, used), partial)

    def calculate(self, context: SearchContext) -> List[CalculationResult]:
        if self.is_leaf:
            return [self.base]
        leaves: List[CalculationResult] = []
        _search(self.canvas, self.remaining, self.base, context, leaves.append)
        return leaves

    def generate_jobs(self, context: SearchContext):
        from solver.frontier import GenerateJob
        return GenerateJob(self, context)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "width": self.canvas.width,
            "height": self.canvas.height,
            "rows": list(self.canvas.rows),
            "remaining": list(self.remaining),
            "base": self.base.to_dict(),
            "is_leaf": self.is_leaf,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalculationJob":
        canvas = Canvas(int(data["width"]), int(data["height"]), tuple(int(r) for r in data["rows"]))
        return cls(
            canvas,
            tuple(int(i) for i in data.get("remaining") or ()),
            CalculationResult.from_dict(data.get("base") or {}),
            bool(data.get("is_leaf", False)),
        )
