from collections import Counter

import pytest

import progress
from canvas import Canvas
from models import Chip, Rotation, SearchConfig
from shapes import ShapeRegistry
from solver.orchestrator import run_jobs, solve_orchestrator
from solver.search import CalculationJob, SearchContext, calculate


CHIPS = [Chip("4T", Rotation.CW0, 3), Chip("3L", Rotation.CW90, 1), Chip("2"), Chip("1")]


def _board() -> Canvas:
    return Canvas.from_strings(["#...", "....", "..#.", "...."])


def _key(leaf):
    return (leaf.placements, leaf.correction_cost)


def test_inline_run_matches_direct_search():
    config = SearchConfig(prune_threshold=3)
    registry = ShapeRegistry.default()

    ok, leaves, reason, meta = solve_orchestrator(
        _board(), CHIPS, registry, config, workers=1, frontier_depth=2, max_leaves=0,
    )

    assert ok, reason
    direct = calculate(_board(), SearchContext(tuple(CHIPS), registry, config))
    assert Counter(map(_key, leaves)) == Counter(map(_key, direct))
    assert meta["leaves"] == len(leaves)
    assert meta["jobs"] > 1
    assert meta["capped"] is False


def test_pool_run_matches_inline_run():
    config = SearchConfig(prune_threshold=4)
    ok_a, inline, _, _ = solve_orchestrator(_board(), CHIPS, config=config, workers=1, max_leaves=0)
    ok_b, pooled, reason, meta = solve_orchestrator(
        _board(), CHIPS, config=config, workers=2, frontier_depth=1, max_leaves=0,
    )
    assert ok_a and ok_b, reason
    assert meta["workers"] == 2
    assert Counter(map(_key, pooled)) == Counter(map(_key, inline))


def test_unknown_shape_is_bad_input():
    ok, leaves, reason, meta = solve_orchestrator(Canvas.empty(3, 3), [Chip("9Q")])
    assert not ok
    assert leaves == []
    assert reason.startswith("Bad input")
    assert "elapsed_sec" in meta


def test_negative_cost_is_bad_input():
    ok, _, reason, _ = solve_orchestrator(Canvas.empty(3, 3), [Chip("1", Rotation.CW0, -1)])
    assert not ok
    assert "non-negative" in reason


def test_leaf_cap_truncates_results():
    ok, leaves, reason, meta = solve_orchestrator(
        Canvas.empty(4, 4), CHIPS, config=SearchConfig(), workers=1, max_leaves=5,
    )
    assert ok
    assert len(leaves) == 5
    assert meta["capped"] is True
    assert "cap" in reason


def test_nothing_placeable_still_returns_start_state():
    ok, leaves, reason, meta = solve_orchestrator(
        Canvas.empty(2, 2), [Chip("6I")], config=SearchConfig(), workers=1, frontier_depth=3,
    )
    assert ok, reason
    assert len(leaves) == 1
    assert len(leaves[0]) == 0
    assert meta["jobs"] == 1


def test_run_jobs_publishes_progress():
    progress.reset()
    ctx = SearchContext(tuple(CHIPS[2:]), ShapeRegistry.default(), SearchConfig())
    canvas = Canvas.empty(2, 2)
    jobs = [CalculationJob.initial(canvas, ctx)]

    leaves, capped = run_jobs(jobs, ctx, workers=1, free_cells=canvas.free_cell_count())

    snap = progress.snapshot()
    assert not capped
    assert snap["leaves"] == len(leaves)
    assert snap["best_placed"] == 2
    assert snap["best_fill_pct"] == pytest.approx(75.0)
    assert snap["percent"] == pytest.approx(100.0)


def test_defaults_come_from_cfg(monkeypatch):
    import solver.orchestrator as orchestrator

    monkeypatch.setattr(orchestrator.CFG, "FRONTIER_DEPTH", 0, raising=False)
    monkeypatch.setattr(orchestrator.CFG, "MAX_LEAVES", 0, raising=False)
    monkeypatch.setattr(orchestrator.CFG, "WORKERS", 1, raising=False)

    ok, _, _, meta = orchestrator.solve_orchestrator(Canvas.empty(2, 2), [Chip("1")])
    assert ok
    assert meta["frontier_depth"] == 0
    assert meta["jobs"] == 1
    assert meta["workers"] == 1
