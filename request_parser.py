# request_parser.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from canvas import Canvas
from matrix import Matrix
from models import Chip, Rotation, SearchConfig
from shapes import ShapeRegistry, canonical_name


def _to_int(x: Any) -> Optional[int]:
    try:
        return int(float(x))
    except Exception:
        return None


def _to_bool(x: Any) -> Optional[bool]:
    if x is None:
        return None
    if isinstance(x, bool):
        return x
    text = str(x).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return None


def _as_lines(val: Any) -> List[str]:
    if isinstance(val, str):
        return val.splitlines()
    if isinstance(val, (list, tuple)):
        return [str(v) for v in val]
    return []


def parse_canvas(data: Any) -> Tuple[Optional[Canvas], Optional[str]]:
    """
    Return (canvas, error_message_or_None).
    Accepts {"cells": ["#..", "..."]} or {"width", "height", "rows": [ints]};
    a bare {"width", "height"} gives an empty board.
    """
    if not isinstance(data, dict):
        return None, "grid must be an object"

    lines = _as_lines(data.get("cells"))
    try:
        if lines:
            return Canvas.from_strings(lines, _to_int(data.get("width"))), None
        w = _to_int(data.get("width"))
        h = _to_int(data.get("height"))
        if not w or not h:
            return None, "grid needs width and height, or cells"
        rows = data.get("rows") or ()
        return Canvas(w, h, tuple(int(r) for r in rows)), None
    except (ValueError, TypeError) as e:
        return None, f"bad grid: {e}"


def parse_chips(items: Any, registry: ShapeRegistry) -> Tuple[List[Chip], Optional[str]]:
    """
    Return (chips, error_message_or_None).
    Each item is a shape name, or {"shape": name, "rotation": r, "cost": n};
    an item carrying a "matrix" registers that footprint under its shape id.
    Unknown names fail the whole request.
    """
    if not isinstance(items, (list, tuple)):
        return [], "chips must be a list"

    chips: List[Chip] = []
    for idx, item in enumerate(items):
        if isinstance(item, str):
            item = {"shape": item}
        if not isinstance(item, dict):
            return [], f"chip {idx}: expected a name or an object"

        shape_id = str(item.get("shape") or "").strip()
        if item.get("matrix") is not None:
            shape_id = shape_id or f"custom-{idx}"
            try:
                registry.register(shape_id, Matrix.from_strings(_as_lines(item["matrix"])))
            except ValueError as e:
                return [], f"chip {idx}: {e}"
        else:
            shape_id = canonical_name(shape_id) or shape_id
            if shape_id not in registry:
                return [], f"chip {idx}: unknown shape {item.get('shape')!r}"

        try:
            rotation = Rotation.parse(item.get("rotation", 0) or 0)
        except (ValueError, TypeError):
            return [], f"chip {idx}: bad rotation {item.get('rotation')!r}"
        cost = _to_int(item.get("cost", 0) or 0)
        if cost is None or cost < 0:
            return [], f"chip {idx}: cost must be a non-negative number"
        chips.append(Chip(shape_id, rotation, cost))

    return chips, None


def parse_config(data: Any) -> Tuple[SearchConfig, Optional[str]]:
    """Overlay request options on the CFG defaults."""
    if data is None:
        return SearchConfig.from_cfg(), None
    if not isinstance(data, dict):
        return SearchConfig.from_cfg(), "config must be an object"

    overrides: Dict[str, Any] = {}
    for key in ("allow_rotation", "first_fit", "ascending_pieces"):
        if key in data:
            flag = _to_bool(data[key])
            if flag is None:
                return SearchConfig.from_cfg(), f"config.{key} must be a boolean"
            overrides[key] = flag
    if "prune_threshold" in data:
        threshold = _to_int(data["prune_threshold"])
        if threshold is None:
            return SearchConfig.from_cfg(), "config.prune_threshold must be a number"
        overrides["prune_threshold"] = threshold
    return SearchConfig.from_cfg(**overrides), None
