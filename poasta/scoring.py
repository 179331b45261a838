"""Core scoring types shared by the alignment cost models."""

from __future__ import annotations

import enum
import functools
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Union

_SCORE_LIMIT = 2**32 - 1

Symbol = Union[int, str, bytes, None]


class AlignState(enum.Enum):
    """State of a cell in the alignment graph."""

    MATCH = "match"
    INSERTION = "insertion"
    DELETION = "deletion"
    INSERTION2 = "insertion2"
    DELETION2 = "deletion2"


@functools.total_ordering
@dataclass(frozen=True)
class Score:
    """An alignment score, or the marker for a cell not yet visited.

    Unvisited compares greater than every real score.
    """

    value: int | None = None

    def __post_init__(self) -> None:
        if self.value is None:
            return
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"score must be an integer, got {self.value!r}")
        if self.value < 0:
            raise ValueError(f"score cannot be negative: {self.value}")
        if self.value >= _SCORE_LIMIT:
            raise OverflowError(f"score {self.value} exceeds the maximum of {_SCORE_LIMIT - 1}")

    @classmethod
    def unvisited(cls) -> Score:
        return cls(None)

    def is_visited(self) -> bool:
        return self.value is not None

    def _require_value(self, action: str) -> int:
        if self.value is None:
            raise ValueError(f"cannot {action} an unvisited score")
        return self.value

    def __add__(self, other: object) -> Score:
        if not isinstance(other, int) or isinstance(other, bool):
            return NotImplemented
        return Score(self._require_value("add to") + other)

    def __sub__(self, other: object) -> Score:
        if not isinstance(other, int) or isinstance(other, bool):
            return NotImplemented
        return Score(self._require_value("subtract from") - other)

    def __int__(self) -> int:
        return self._require_value("convert")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Score):
            return NotImplemented
        if self.value is None:
            return False
        if other.value is None:
            return True
        return self.value < other.value

    def __str__(self) -> str:
        return "unvisited" if self.value is None else str(self.value)


class BoundKind(enum.Enum):
    UNBOUNDED = "unbounded"
    INCLUDED = "included"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class Bound:
    """A limit on a free end: unbounded, or an inclusive/exclusive maximum."""

    kind: BoundKind
    value: int | None = None

    def __post_init__(self) -> None:
        if self.kind is BoundKind.UNBOUNDED:
            if self.value is not None:
                raise ValueError("an unbounded bound carries no value")
        elif not isinstance(self.value, int) or self.value < 0:
            raise ValueError(f"{self.kind.value} bound needs a non-negative integer, got {self.value!r}")

    @classmethod
    def unbounded(cls) -> Bound:
        return cls(BoundKind.UNBOUNDED)

    @classmethod
    def included(cls, value: int) -> Bound:
        return cls(BoundKind.INCLUDED, value)

    @classmethod
    def excluded(cls, value: int) -> Bound:
        return cls(BoundKind.EXCLUDED, value)


@dataclass(frozen=True)
class AlignmentType:
    """Global alignment, or ends-free alignment with limits on each free end.

    Global alignment has no bounds at all; ends-free alignment has all four.
    """

    qry_free_begin: Bound | None = None
    qry_free_end: Bound | None = None
    graph_free_begin: Bound | None = None
    graph_free_end: Bound | None = None

    def __post_init__(self) -> None:
        bounds = (self.qry_free_begin, self.qry_free_end, self.graph_free_begin, self.graph_free_end)
        present = [b is not None for b in bounds]
        if any(present) and not all(present):
            raise ValueError("ends-free alignment needs all four bounds")

    @classmethod
    def global_alignment(cls) -> AlignmentType:
        return cls()

    @classmethod
    def ends_free(
        cls,
        qry_free_begin: Bound,
        qry_free_end: Bound,
        graph_free_begin: Bound,
        graph_free_end: Bound,
    ) -> AlignmentType:
        bounds = (qry_free_begin, qry_free_end, graph_free_begin, graph_free_end)
        if any(b is None for b in bounds):
            raise ValueError("ends-free alignment needs all four bounds")
        return cls(*bounds)

    def is_global(self) -> bool:
        return self.qry_free_begin is None


@dataclass(frozen=True, order=True)
class AlignmentGraphNode:
    """A cell of the alignment graph: a reference node and a query offset."""

    node: int
    offset: int

    def increase_one(self) -> AlignmentGraphNode:
        """Return the cell at the same node, one query position further."""
        return AlignmentGraphNode(self.node, self.offset + 1)


@dataclass(frozen=True)
class AlignedPair:
    """One column of an alignment; None marks a gap on that side."""

    rpos: int | None
    qpos: int | None


def _normalise_symbol(symbol: Symbol) -> int | None:
    if symbol is None or isinstance(symbol, int):
        return symbol
    if isinstance(symbol, (str, bytes)) and len(symbol) == 1:
        return ord(symbol)
    raise ValueError(f"invalid node symbol {symbol!r}")


class RefGraph:
    """A directed acyclic reference graph with a start and an end node.

    Nodes are numbered by their position in ``symbols``.
    """

    def __init__(
        self,
        symbols: Sequence[Symbol] | bytes,
        edges: Iterable[tuple[int, int]],
        start: int,
        end: int,
    ) -> None:
        self._symbols = [_normalise_symbol(s) for s in symbols]
        count = len(self._symbols)
        for name, ix in (("start", start), ("end", end)):
            if not 0 <= ix < count:
                raise ValueError(f"{name} node {ix} is not in the graph")
        self._start = start
        self._end = end
        self._succ: list[list[int]] = [[] for _ in range(count)]
        self._pred: list[list[int]] = [[] for _ in range(count)]
        for u, v in edges:
            if not (0 <= u < count and 0 <= v < count):
                raise ValueError(f"edge ({u}, {v}) references a missing node")
            if v not in self._succ[u]:
                self._succ[u].append(v)
                self._pred[v].append(u)
        self._ranks = self._topological_ranks()

    def _topological_ranks(self) -> list[int]:
        in_degree = [len(p) for p in self._pred]
        ready = deque(n for n, d in enumerate(in_degree) if d == 0)
        ranks = [-1] * len(self._symbols)
        rank = 0
        while ready:
            n = ready.popleft()
            ranks[n] = rank
            rank += 1
            for s in self._succ[n]:
                in_degree[s] -= 1
                if in_degree[s] == 0:
                    ready.append(s)
        if rank != len(ranks):
            raise ValueError("reference graph contains a cycle")
        return ranks

    def start_node(self) -> int:
        return self._start

    def end_node(self) -> int:
        return self._end

    def all_nodes(self) -> Iterator[int]:
        return iter(range(len(self._symbols)))

    def successors(self, node: int) -> list[int]:
        return list(self._succ[node])

    def predecessors(self, node: int) -> list[int]:
        return list(self._pred[node])

    def is_symbol_equal(self, node: int, symbol: Symbol) -> bool:
        own = self._symbols[node]
        return own is not None and own == _normalise_symbol(symbol)

    def node_count_with_start_and_end(self) -> int:
        return len(self._symbols)

    def get_node_ordering(self) -> list[int]:
        """Topological rank of each node, indexed by node number."""
        return list(self._ranks)


@dataclass(frozen=True)
class GapLinear:
    """Linear gap costs: every gap position costs the same."""

    cost_mismatch: int
    cost_gap: int

    def gap_cost(self, current_state: AlignState, length: int) -> int:
        return length * self.cost_gap