"""Two-piece gap-affine cost model and graph distance helper."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from poasta.scoring import AlignState, RefGraph

# Breakpoint reported when the first piece is never worse than the second.
NO_BREAKPOINT = 2**64 - 1

_MAX_COST = 255


@dataclass(frozen=True)
class GapAffine2Piece:
    """Gap costs as the minimum of two affine functions.

    The first piece (open1, extend1) is meant for short gaps, the second
    (open2, extend2) for long ones, so extend1 must not be below extend2.
    """

    cost_mismatch: int
    cost_gap_extend1: int
    cost_gap_open1: int
    cost_gap_extend2: int
    cost_gap_open2: int

    def __post_init__(self) -> None:
        for name in (
            "cost_mismatch",
            "cost_gap_extend1",
            "cost_gap_open1",
            "cost_gap_extend2",
            "cost_gap_open2",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an integer, got {value!r}")
            if not 0 <= value <= _MAX_COST:
                raise ValueError(f"{name} must be between 0 and {_MAX_COST}, got {value}")
        if self.cost_gap_extend1 < self.cost_gap_extend2:
            raise ValueError(
                "gap_extend1 must be greater than or equal to gap_extend2 for two-piece model"
            )

    @property
    def mismatch(self) -> int:
        return self.cost_mismatch

    @property
    def gap_open(self) -> int:
        return self.cost_gap_open1

    @property
    def gap_extend(self) -> int:
        return self.cost_gap_extend1

    @property
    def gap_open2(self) -> int:
        return self.cost_gap_open2

    @property
    def gap_extend2(self) -> int:
        return self.cost_gap_extend2

    def breakpoint(self) -> int:
        """Gap length at which the second piece takes over from the first."""
        extend_diff = self.cost_gap_extend1 - self.cost_gap_extend2
        if extend_diff == 0:
            return NO_BREAKPOINT if self.cost_gap_open1 <= self.cost_gap_open2 else 0
        if self.cost_gap_open2 >= self.cost_gap_open1:
            return (self.cost_gap_open2 - self.cost_gap_open1) // extend_diff
        diff = self.cost_gap_open1 - self.cost_gap_open2
        return -(-diff // extend_diff)

    def gap_cost(self, current_state: AlignState, length: int) -> int:
        """Cost of a gap of ``length`` positions, coming from ``current_state``."""
        if length == 0:
            return 0
        first = self.cost_gap_open1 + length * self.cost_gap_extend1
        second = self.cost_gap_open2 + length * self.cost_gap_extend2
        if current_state in (AlignState.INSERTION, AlignState.DELETION):
            return first
        if current_state in (AlignState.INSERTION2, AlignState.DELETION2):
            return second
        if current_state is AlignState.MATCH:
            return min(first, second)
        raise ValueError(f"invalid alignment state {current_state!r}")


def dist_to_end(graph: RefGraph, start: int, maximum: int) -> int | None:
    """Number of edges on the shortest path from ``start`` to the end node.

    Paths longer than ``maximum`` are not followed; returns None when the end
    node is not reached within that distance.
    """
    end = graph.end_node()
    queue: deque[tuple[int, int]] = deque([(start, 0)])
    visited = {start}
    while queue:
        node, dist = queue.popleft()
        if node == end:
            return dist
        if dist >= maximum:
            continue
        for succ in graph.successors(node):
            if succ not in visited:
                visited.add(succ)
                queue.append((succ, dist + 1))
    return None