from collections import Counter

import pytest

from canvas import Canvas
from models import CalculationResult, Chip, Position, Rotation, SearchConfig
from shapes import ShapeRegistry
from solver.frontier import GenerateJob, expand_frontier
from solver.search import CalculationJob, SearchContext, calculate


def _context(chips, **cfg):
    return SearchContext(tuple(chips), ShapeRegistry.default(), SearchConfig(**cfg))


def _key(leaf: CalculationResult):
    return (leaf.placements, leaf.correction_cost)


def test_single_level_follows_engine_order():
    ctx = _context([Chip("2")], allow_rotation=False)
    root = CalculationJob.initial(Canvas.empty(2, 3), ctx)
    jobs = list(root.generate_jobs(ctx))

    assert [job.base.placements[0].position for job in jobs] == [
        Position(0, 0), Position(0, 1), Position(1, 0), Position(1, 1),
    ]
    for job in jobs:
        assert job.remaining == ()
        assert job.canvas.free_cell_count() == 4
        assert not job.is_leaf


def test_successors_carry_the_new_board():
    ctx = _context([Chip("1"), Chip("2")], allow_rotation=False)
    root = CalculationJob.initial(Canvas.empty(2, 2), ctx)
    first = next(GenerateJob(root, ctx))
    assert first.canvas.to_strings() == ("#.", "..")
    assert first.remaining == (1,)
    assert root.canvas.free_cell_count() == 4


def test_chips_are_scanned_lazily():
    ctx = _context([Chip("1"), Chip("1")], allow_rotation=False)
    gen = GenerateJob(CalculationJob.initial(Canvas.empty(1, 1), ctx), ctx)
    first = next(gen)
    assert first.base.placements[0].piece_index == 0
    assert not gen.exhausted
    second = next(gen)
    assert second.base.placements[0].piece_index == 1
    assert gen.exhausted
    with pytest.raises(StopIteration):
        next(gen)


def test_nothing_fits_gives_empty_expansion():
    ctx = _context([Chip("5I")])
    root = CalculationJob.initial(Canvas.empty(3, 3), ctx)
    assert list(GenerateJob(root, ctx)) == []
    assert expand_frontier([root], ctx, 3) == [root]


def test_leaf_job_does_not_expand():
    ctx = _context([Chip("1"), Chip("1")], prune_threshold=3)
    root = CalculationJob.initial(Canvas.empty(2, 1), ctx)
    jobs = list(GenerateJob(root, ctx))
    assert jobs and all(job.is_leaf for job in jobs)
    assert list(GenerateJob(jobs[0], ctx)) == []


def test_rotated_successor_records_cost():
    ctx = _context([Chip("2", Rotation.CW0, 5)])
    root = CalculationJob.initial(Canvas.empty(2, 3), ctx)
    costs = {job.base.placements[0].rotation: job.base.correction_cost for job in GenerateJob(root, ctx)}
    assert costs == {Rotation.CW0: 0, Rotation.CW90: 5}


@pytest.mark.parametrize("depth", [1, 2, 3, 5])
@pytest.mark.parametrize(
    "cfg",
    [
        {},
        {"allow_rotation": False},
        {"prune_threshold": 4},
        {"ascending_pieces": True},
        {"first_fit": True},
    ],
)
def test_split_search_matches_direct_search(depth, cfg):
    ctx = _context([Chip("3L", Rotation.CW90, 2), Chip("2", Rotation.CW0, 1), Chip("1")], **cfg)
    canvas = Canvas.from_strings(["#..", "...", "..."])

    direct = Counter(_key(leaf) for leaf in calculate(canvas, ctx))

    jobs = expand_frontier([CalculationJob.initial(canvas, ctx)], ctx, depth)
    split = Counter(_key(leaf) for job in jobs for leaf in job.calculate(ctx))

    assert split == direct


def test_repeated_expansion_reaches_leaves():
    ctx = _context([Chip("1"), Chip("1"), Chip("1")])
    canvas = Canvas.empty(3, 1)
    jobs = expand_frontier([CalculationJob.initial(canvas, ctx)], ctx, 10)
    # Three monominoes on three cells: every chip order times every free cell.
    assert len(jobs) == (3 * 3) * (2 * 2) * (1 * 1)
    assert all(len(job.base) == 3 for job in jobs)
    assert all(list(GenerateJob(job, ctx)) == [] for job in jobs)
