# solver/frontier.py: one-level expansion of a search state into jobs
from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List

from solver.search import CalculationJob, SearchContext, successors_for_slot


class GenerateJob:
    """Iterator over the direct successors of one :class:`CalculationJob`.

    Successors come out in the order the search engine would visit them, but
    nothing is recursed into. Chips are scanned lazily: the successors of one
    chip are buffered, handed out, and only then is the next chip scanned. An
    empty iteration means the job is already a leaf.
    """

    def __init__(self, job: CalculationJob, context: SearchContext) -> None:
        self.job = job
        self.context = context
        self._slots: Deque[int] = deque() if job.is_leaf else deque(range(len(job.remaining)))
        self._cache: Deque[CalculationJob] = deque()

    def __iter__(self) -> "GenerateJob":
        return self

    def __next__(self) -> CalculationJob:
        while not self._cache:
            if not self._slots:
                raise StopIteration
            self._scan(self._slots.popleft())
        return self._cache.popleft()

    def _scan(self, slot: int) -> None:
        threshold = self.context.config.prune_threshold
        job = self.job
        for placed, rest, extended in successors_for_slot(
            job.canvas, job.remaining, slot, job.base, self.context
        ):
            self._cache.append(
                CalculationJob(placed, rest, extended, placed.free_cell_count() < threshold)
            )

    @property
    def exhausted(self) -> bool:
        return not self._cache and not self._slots


def expand_frontier(
    jobs: Iterable[CalculationJob], context: SearchContext, depth: int = 1
) -> List[CalculationJob]:
    """Expand ``jobs`` up to ``depth`` levels.

    A job with no successors is kept as-is; running it later reports its base
    as the only leaf, exactly as the engine would have.
    """
    frontier = list(jobs)
    for _ in range(max(0, int(depth))):
        grew = False
        next_level: List[CalculationJob] = []
        for job in frontier:
            children = list(GenerateJob(job, context))
            if children:
                grew = True
                next_level.extend(children)
            else:
                next_level.append(job)
        frontier = next_level
        if not grew:
            break
    return frontier
