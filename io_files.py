"""Helpers for writing search results to disk."""

from __future__ import annotations

import os
from typing import List, Sequence

from canvas import Canvas
from config import CFG
from models import CalculationResult, Chip
from render import render_text
from shapes import ShapeRegistry


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def write_leaves(
    leaves: List[CalculationResult],
    canvas: Canvas,
    chips: Sequence[Chip],
    registry: ShapeRegistry,
    base_dir: str,
) -> str:
    """Write each leaf's placements and board picture to the configured text file."""

    path = _resolve_output_path(base_dir, CFG.LEAVES_OUT, "leaves.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if not leaves:
            f.write("No leaves\n")
        for n, leaf in enumerate(leaves, start=1):
            f.write(f"leaf {n}: {len(leaf)} chips, correction cost {leaf.correction_cost}\n")
            for p in leaf.placements:
                f.write(
                    f"  {chips[p.piece_index].shape}#{p.piece_index} @ ({p.position.x},{p.position.y}) "
                    f"rotated {p.rotation.degrees}°\n"
                )
            for row in render_text(canvas, leaf, chips, registry):
                f.write(f"  {row}\n")
    return path


def write_layout_view_html(svg: str, legend_html: str, base_dir: str) -> str:
    """Write the rendered SVG/legend preview to the configured HTML file."""

    path = _resolve_output_path(base_dir, CFG.LAYOUT_HTML, "layout_view.html")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as vf:
        vf.write(
            f"""<!doctype html>
<html><head><meta charset='utf-8'><title>Best Leaf</title></head>
<body>
<h1>Best Leaf</h1>
<section><div>{svg}</div></section>
<section><h3>Legend</h3><ul>{legend_html}</ul></section>
</body></html>"""
        )
    return path


__all__ = ["write_leaves", "write_layout_view_html"]
