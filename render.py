import html
import random
from typing import Dict, List, Sequence, Tuple

from canvas import Canvas
from models import CalculationResult, Chip
from shapes import ShapeRegistry

CELL_PX = 40


def _color(name: str) -> str:
    random.seed(sum(ord(c) * (i + 1) for i, c in enumerate(name)) & 0xFFFFFFFF)
    r = random.randint(40, 200)
    g = random.randint(40, 200)
    b = random.randint(40, 200)
    return f"rgb({r},{g},{b})"


def leaf_cells(
    leaf: CalculationResult, chips: Sequence[Chip], registry: ShapeRegistry
) -> List[Tuple[int, List[Tuple[int, int]]]]:
    """Board cells covered by each placement, as ``(piece_index, [(x, y), ...])``."""
    out = []
    for p in leaf.placements:
        matrix = registry.cache_for(chips[p.piece_index].shape).get(p.rotation)
        out.append((p.piece_index, [(p.position.x + x, p.position.y + y) for x, y in matrix.cells()]))
    return out


def render_text(canvas: Canvas, leaf: CalculationResult, chips: Sequence[Chip], registry: ShapeRegistry) -> List[str]:
    """Board rows with pre-occupied cells as ``#`` and each chip as a letter (a, b, ...)."""
    grid = [list(row) for row in canvas.to_strings()]
    for idx, cells in leaf_cells(leaf, chips, registry):
        mark = chr(ord("a") + idx % 26)
        for x, y in cells:
            grid[y][x] = mark
    return ["".join(row) for row in grid]


def render_leaf(canvas: Canvas, leaf: CalculationResult, chips: Sequence[Chip], registry: ShapeRegistry):
    palette: Dict[str, str] = {}
    for p in leaf.placements:
        name = chips[p.piece_index].shape
        palette.setdefault(name, _color(name))

    svg_w = canvas.width * CELL_PX + 2
    svg_h = canvas.height * CELL_PX + 2

    blocked = []
    for y in range(canvas.height):
        for x in range(canvas.width):
            if canvas.is_occupied(x, y):
                blocked.append(
                    f'<rect x="{x * CELL_PX + 1}" y="{y * CELL_PX + 1}" width="{CELL_PX}" height="{CELL_PX}" fill="#999"/>'
                )

    rects = []
    for idx, cells in leaf_cells(leaf, chips, registry):
        name = chips[idx].shape
        for x, y in cells:
            rects.append(
                f'<rect x="{x * CELL_PX + 1}" y="{y * CELL_PX + 1}" width="{CELL_PX}" height="{CELL_PX}" '
                f'fill="{palette[name]}" stroke="black" stroke-width="1"/>'
            )
        x0, y0 = cells[0]
        rects.append(
            f'<text x="{x0 * CELL_PX + 5}" y="{y0 * CELL_PX + 15}" font-size="12" fill="black">{html.escape(name)}#{idx}</text>'
        )
    frame = f'<rect x="1" y="1" width="{svg_w - 2}" height="{svg_h - 2}" fill="none" stroke="black" stroke-width="2"/>'
    svg = (
        f'<svg class="layout-svg" xmlns="http://www.w3.org/2000/svg" '
        f'width="{svg_w}" height="{svg_h}" '
        f'viewBox="0 0 {svg_w} {svg_h}" preserveAspectRatio="xMinYMin meet">'
        f'{"".join(blocked)}{"".join(rects)}{frame}</svg>'
    )

    legend = "".join(f"<li><span class='swatch' style='background:{c}'></span>{html.escape(n)}</li>" for n, c in palette.items())
    return svg, legend
