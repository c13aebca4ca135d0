# Orchestrator: frontier split + per-job search, inline or on a process pool
from __future__ import annotations

import time
import traceback
from typing import Any, Dict, List, Optional, Sequence, Tuple

import multiprocessing as mp

from canvas import Canvas
from config import CFG
from models import CalculationResult, Chip, SearchConfig
from progress import (
    set_status, set_phase, set_phase_total, set_attempt, set_grid,
    set_progress_pct, set_best_placed, set_best_fill_pct, set_leaves,
    set_chip_count, set_message, log_attempt_detail, log_attempt_error,
)
from shapes import ShapeRegistry
from solver.frontier import expand_frontier
from solver.search import CalculationJob, SearchContext, validate_inputs


# ---------- helpers ----------

def _covered_cells(leaf: CalculationResult, context: SearchContext) -> int:
    registry = context.registry
    return sum(
        registry.matrix(context.chips[p.piece_index].shape).cell_count
        for p in leaf.placements
    )


def _fill_pct(leaf: CalculationResult, context: SearchContext, free_cells: int) -> float:
    if free_cells <= 0:
        return 0.0
    return 100.0 * _covered_cells(leaf, context) / float(free_cells)


def _resolve_workers(workers: Optional[int], job_count: int) -> int:
    if workers is None:
        workers = int(getattr(CFG, "WORKERS", 1))
    workers = int(workers)
    if workers <= 0:
        workers = mp.cpu_count()
    return max(1, min(workers, max(1, job_count)))


# ---------- worker side ----------

_WORKER_CONTEXT: Optional[SearchContext] = None


def _init_worker(context: SearchContext) -> None:
    global _WORKER_CONTEXT
    _WORKER_CONTEXT = context


def _run_job_worker(item: Tuple[int, Dict[str, Any]]) -> Tuple[int, List[Dict[str, Any]]]:
    # Must stay top-level so the spawn start method can pickle it.
    idx, job_data = item
    job = CalculationJob.from_dict(job_data)
    leaves = job.calculate(_WORKER_CONTEXT)
    return idx, [leaf.to_dict() for leaf in leaves]


# ---------- public entrypoint ----------

def run_jobs(
    jobs: Sequence[CalculationJob],
    context: SearchContext,
    *,
    workers: int = 1,
    max_leaves: int = 0,
    free_cells: int = 0,
) -> Tuple[List[CalculationResult], bool]:
    """Run every job and concatenate the leaves.

    Returns ``(leaves, capped)``. Jobs are independent, so with ``workers > 1``
    they go to a spawn-context pool and finish in any order.
    """
    leaves: List[CalculationResult] = []
    total = len(jobs)
    best_placed = 0
    best_fill = 0.0
    done = 0

    def _collect(batch: List[CalculationResult]) -> bool:
        nonlocal best_placed, best_fill, done
        done += 1
        leaves.extend(batch)
        for leaf in batch:
            if len(leaf) > best_placed:
                best_placed = len(leaf)
                set_best_placed(best_placed)
            fill = _fill_pct(leaf, context, free_cells)
            if fill > best_fill:
                best_fill = fill
                set_best_fill_pct(best_fill)
        set_leaves(len(leaves))
        set_progress_pct(100.0 * done / max(1, total))
        return bool(max_leaves) and len(leaves) >= max_leaves

    if workers <= 1:
        for i, job in enumerate(jobs, start=1):
            set_attempt(f"job {i}/{total}")
            if _collect(job.calculate(context)):
                return leaves[:max_leaves], True
        return leaves, False

    ctx = mp.get_context("spawn")
    payload = [(i, job.to_dict()) for i, job in enumerate(jobs)]
    set_attempt(f"{total} jobs on {workers} workers")
    with ctx.Pool(processes=workers, initializer=_init_worker, initargs=(context,)) as pool:
        for _idx, batch in pool.imap_unordered(_run_job_worker, payload):
            if _collect([CalculationResult.from_dict(d) for d in batch]):
                pool.terminate()
                return leaves[:max_leaves], True
    return leaves, False


def solve_orchestrator(
    canvas: Canvas,
    chips: Sequence[Chip],
    registry: Optional[ShapeRegistry] = None,
    config: Optional[SearchConfig] = None,
    *,
    workers: Optional[int] = None,
    frontier_depth: Optional[int] = None,
    max_leaves: Optional[int] = None,
    partial: Optional[CalculationResult] = None,
):
    """
    Returns: (ok, leaves, reason, meta)
    ``ok`` is False only for bad input or a failed worker; an exhausted search
    with nothing placeable is still ok and yields the starting state as a leaf.
    """
    t0 = time.time()
    registry = registry if registry is not None else ShapeRegistry.default()
    config = config if config is not None else SearchConfig.from_cfg()
    depth = int(frontier_depth if frontier_depth is not None else getattr(CFG, "FRONTIER_DEPTH", 1))
    cap = int(max_leaves if max_leaves is not None else getattr(CFG, "MAX_LEAVES", 0))

    meta: Dict[str, Any] = {
        "config": config.to_dict(),
        "frontier_depth": depth,
        "max_leaves": cap,
        "jobs": 0,
        "leaves": 0,
        "workers": 0,
        "capped": False,
    }

    try:
        validate_inputs(canvas, chips, registry)
        context = SearchContext(tuple(chips), registry, config)
    except (ValueError, KeyError, TypeError) as e:
        reason = f"Bad input: {e}"
        set_status("Error")
        set_message(reason)
        log_attempt_error("Bad input", reason=reason)
        meta["elapsed_sec"] = time.time() - t0
        return False, [], reason, meta

    free_cells = canvas.free_cell_count()
    log_attempt_detail(
        "Run setup",
        grid=f"{canvas.width}x{canvas.height}",
        free_cells=free_cells,
        chips=len(context.chips),
        allow_rotation=int(config.allow_rotation),
        prune_threshold=config.prune_threshold,
        first_fit=int(config.first_fit),
        ascending=int(config.ascending_pieces),
        frontier_depth=depth,
    )

    set_status("Solving")
    set_grid(f"{canvas.width} × {canvas.height} cells")
    set_chip_count(len(context.chips))
    set_best_placed(0)
    set_best_fill_pct(0.0)
    set_leaves(0)

    set_phase("frontier")
    set_phase_total(depth)
    root = CalculationJob.initial(canvas, context, partial=partial)
    jobs = expand_frontier([root], context, depth)
    meta["jobs"] = len(jobs)

    pool_size = _resolve_workers(workers, len(jobs))
    meta["workers"] = pool_size
    log_attempt_detail("Frontier expanded", jobs=len(jobs), workers=pool_size)

    set_phase("search")
    set_phase_total(len(jobs))
    set_progress_pct(0.0)
    try:
        leaves, capped = run_jobs(
            jobs, context, workers=pool_size, max_leaves=cap, free_cells=free_cells,
        )
    except Exception as e:
        reason = f"Worker exception: {type(e).__name__}: {e}"
        set_status("Error")
        set_message(reason)
        log_attempt_error("Search failed", reason=reason, trace=traceback.format_exc(limit=3).replace("\n", " | "))
        meta["elapsed_sec"] = time.time() - t0
        return False, [], reason, meta

    meta["leaves"] = len(leaves)
    meta["capped"] = capped
    meta["elapsed_sec"] = time.time() - t0
    reason = f"Leaf cap {cap} reached" if capped else None
    if reason:
        set_message(reason)
    log_attempt_detail(
        "Search finished",
        jobs=len(jobs),
        leaves=len(leaves),
        capped=int(capped),
        elapsed=f"{meta['elapsed_sec']:.2f}s",
    )
    return True, leaves, reason, meta


__all__ = ["run_jobs", "solve_orchestrator"]
