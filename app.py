# app.py: JSON endpoints around the placement search
from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, request, jsonify

from canvas import Canvas
from config import CFG
from io_files import write_leaves, write_layout_view_html
from models import CalculationResult, Chip, SearchConfig
from render import render_leaf
from request_parser import parse_canvas, parse_chips, parse_config
from shapes import ShapeRegistry
from solver.frontier import expand_frontier
from solver.orchestrator import solve_orchestrator
from solver.search import CalculationJob, SearchContext, validate_inputs

from progress import (
    reset as progress_reset,
    as_json as progress_json,
    start_timer as progress_start,
    set_status, set_elapsed, set_done, log_attempt_error,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

app = Flask(__name__)


@app.after_request
def _no_cache_progress(resp):
    try:
        if request.path == "/progress":
            resp.headers["Cache-Control"] = "no-store, max-age=0"
            resp.headers["Pragma"] = "no-cache"
            resp.headers["Expires"] = "0"
    except Exception:
        pass
    return resp


def _bad_request(reason: str):
    return jsonify({"ok": False, "reason": reason}), 400


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_problem(p: Dict[str, Any]) -> Tuple[Optional[Tuple[Canvas, List[Chip], ShapeRegistry, SearchConfig]], Optional[str]]:
    registry = ShapeRegistry.default()
    canvas, err = parse_canvas(p.get("grid"))
    if err:
        return None, err
    chips, err = parse_chips(p.get("chips", []), registry)
    if err:
        return None, err
    config, err = parse_config(p.get("config"))
    if err:
        return None, err
    return (canvas, chips, registry, config), None


def _sort_key(leaf: CalculationResult) -> Tuple[int, int]:
    # More chips first, then the cheapest rotation corrections.
    return (-len(leaf), leaf.correction_cost)


def _ordered(leaves: List[CalculationResult], limit: Optional[int]) -> List[CalculationResult]:
    ordered = sorted(leaves, key=_sort_key)
    if limit is not None and limit > 0:
        ordered = ordered[:limit]
    return ordered


def _leaves_json(leaves: List[CalculationResult], limit: Optional[int]) -> List[Dict[str, Any]]:
    return [leaf.to_dict() for leaf in _ordered(leaves, limit)]


def _write_outputs(
    leaves: List[CalculationResult], canvas: Canvas, chips: List[Chip], registry: ShapeRegistry
) -> Dict[str, Optional[str]]:
    """Write the leaf listing and a picture of the best leaf; failures leave a path unset."""
    out: Dict[str, Optional[str]] = {"leaves": None, "layout": None}
    try:
        out["leaves"] = os.path.relpath(write_leaves(leaves, canvas, chips, registry, BASE_DIR), BASE_DIR)
    except OSError as e:
        log_attempt_error("Leaf listing not written", reason=str(e))
    if leaves:
        svg, legend = render_leaf(canvas, leaves[0], chips, registry)
        try:
            out["layout"] = os.path.relpath(write_layout_view_html(svg, legend, BASE_DIR), BASE_DIR)
        except OSError as e:
            log_attempt_error("Layout view not written", reason=str(e))
    return out


def _finalize_solver_progress(ok_flag: bool, reason: Optional[str]) -> None:
    """Write the terminal solver status without clobbering failure states."""

    set_status("Solved" if ok_flag else "Error")
    set_done(ok_flag, reason=reason)


@app.route("/search", methods=["POST"])
def search_route():
    progress_reset()
    progress_start()
    set_status("Solving")
    t0 = time.time()

    p = _payload()
    problem, err = _parse_problem(p)
    if err:
        _finalize_solver_progress(False, f"Bad input: {err}")
        return _bad_request(f"Bad input: {err}")
    canvas, chips, registry, config = problem

    try:
        workers = int(p["workers"]) if p.get("workers") is not None else None
        depth = int(p["frontier_depth"]) if p.get("frontier_depth") is not None else None
        limit = int(p["limit"]) if p.get("limit") is not None else CFG.RESULT_LIMIT
        save = bool(p.get("save", CFG.WRITE_OUTPUTS))
    except (TypeError, ValueError):
        _finalize_solver_progress(False, "Bad input: workers, frontier_depth and limit must be integers")
        return _bad_request("Bad input: workers, frontier_depth and limit must be integers")

    ok, leaves, reason, meta = solve_orchestrator(
        canvas, chips, registry, config, workers=workers, frontier_depth=depth,
    )
    _finalize_solver_progress(ok, reason)
    set_elapsed(time.time() - t0)
    if not ok:
        return jsonify({"ok": False, "reason": reason, "meta": meta}), 400

    ordered = _ordered(leaves, limit)
    body = {
        "ok": True,
        "reason": reason,
        "leaf_count": len(leaves),
        "leaves": [leaf.to_dict() for leaf in ordered],
        "meta": meta,
    }
    if save:
        body["outputs"] = _write_outputs(ordered, canvas, chips, registry)
    return jsonify(body)


@app.route("/jobs", methods=["POST"])
def jobs_route():
    p = _payload()
    problem, err = _parse_problem(p)
    if err:
        return _bad_request(f"Bad input: {err}")
    canvas, chips, registry, config = problem
    try:
        validate_inputs(canvas, chips, registry)
        depth = int(p.get("depth", 1))
    except (TypeError, ValueError) as e:
        return _bad_request(f"Bad input: {e}")

    context = SearchContext(tuple(chips), registry, config)
    jobs = expand_frontier([CalculationJob.initial(canvas, context)], context, depth)
    return jsonify({"ok": True, "jobs": [job.to_dict() for job in jobs]})


@app.route("/jobs/run", methods=["POST"])
def run_job_route():
    p = _payload()
    registry = ShapeRegistry.default()
    chips, err = parse_chips(p.get("chips", []), registry)
    if err:
        return _bad_request(f"Bad input: {err}")
    config, err = parse_config(p.get("config"))
    if err:
        return _bad_request(f"Bad input: {err}")
    try:
        job = CalculationJob.from_dict(p.get("job") or {})
    except (KeyError, TypeError, ValueError) as e:
        return _bad_request(f"Bad input: bad job: {e}")
    if any(i < 0 or i >= len(chips) for i in job.remaining):
        return _bad_request("Bad input: job refers to chips that were not sent")

    leaves = job.calculate(SearchContext(tuple(chips), registry, config))
    return jsonify({"ok": True, "leaf_count": len(leaves), "leaves": _leaves_json(leaves, None)})


@app.route("/progress")
def progress_route():
    return jsonify(progress_json())


if __name__ == "__main__":
    app.run(debug=False)
