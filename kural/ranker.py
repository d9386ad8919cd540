"""Top-K ranking of solved routes."""

import heapq
import itertools
import threading
from dataclasses import dataclass, field
from typing import Optional

from .models import RouteSolution


@dataclass(order=True, frozen=True)
class _Entry:
    # Orders weakest-first for the min-heap: lower profit, then later order key
    profit: int
    neg_order: int
    neg_seq: int
    solution: RouteSolution = field(compare=False)


class TopKRanker:
    """Keeps the `limit` most profitable routes seen so far.

    Memory stays O(limit) no matter how many solutions are pushed. Equal
    profits are ordered by the order key passed to push (lower first);
    without one, insertion order is used.

    Thread-safe: push and merge take a lock, so several workers may feed one
    ranker. The route engine instead gives each worker a private ranker and
    merges them, which avoids contention.
    """

    def __init__(self, limit: int = 5):
        """Initialize ranker.

        Args:
            limit: Number of routes to retain
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        self.limit = limit
        self._lock = threading.Lock()
        self._heap: list[_Entry] = []
        self._counter = itertools.count()
        self.seen = 0

    def push(self, solution: Optional[RouteSolution], order: Optional[int] = None) -> bool:
        """Offer a solution. None (an infeasible pair) is ignored.

        Args:
            solution: Solved route, or None
            order: Tie-break key; lower wins among equal profits

        Returns:
            True if the solution is currently retained
        """
        if solution is None:
            return False
        with self._lock:
            self.seen += 1
            seq = next(self._counter)
            if order is None:
                order = seq
            return self._offer(_Entry(solution.profit, -order, -seq, solution))

    def _offer(self, entry: _Entry) -> bool:
        if len(self._heap) < self.limit:
            heapq.heappush(self._heap, entry)
            return True
        if entry > self._heap[0]:
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def merge(self, other: "TopKRanker") -> None:
        """Fold another ranker's retained routes into this one."""
        with other._lock:
            entries = list(other._heap)
            other_seen = other.seen
        with self._lock:
            self.seen += other_seen
            for entry in entries:
                self._offer(entry)

    def results(self) -> list[RouteSolution]:
        """Retained routes, most profitable first."""
        with self._lock:
            ordered = sorted(self._heap, reverse=True)
        return [entry.solution for entry in ordered]

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)
