"""Search state for the two-piece gap-affine model: visited cells, reached
bubble exits, backtracking and the bucketed priority queue."""

from __future__ import annotations

from typing import Iterable, NamedTuple, Sequence, Union

from poasta.scoring import AlignedPair, AlignmentGraphNode, AlignState, RefGraph, Score
from poasta.two_piece_costs import GapAffine2Piece
from poasta.two_piece_visited import BlockedVisitedStorageAffine2Piece, TextWriter

Query = Union[bytes, str, Sequence[int]]

_GAP_STATES = frozenset(
    {AlignState.INSERTION, AlignState.INSERTION2, AlignState.DELETION, AlignState.DELETION2}
)

_END_STATE_ORDER = (
    AlignState.MATCH,
    AlignState.INSERTION,
    AlignState.INSERTION2,
    AlignState.DELETION,
    AlignState.DELETION2,
)


class QueuedItem(NamedTuple):
    """An alignment cell waiting in the queue, with its score and state."""

    score: Score
    node: AlignmentGraphNode
    aln_state: AlignState


class Affine2PieceAstarData:
    """Everything the search remembers while aligning one query to a graph."""

    def __init__(
        self,
        costs: GapAffine2Piece,
        ref_graph: RefGraph,
        seq: Query,
        bubble_exits: Iterable[int] = (),
    ) -> None:
        self.costs = costs
        self.seq_len = len(seq)
        self._bubble_exits = frozenset(bubble_exits)
        self._visited = BlockedVisitedStorageAffine2Piece(ref_graph)
        self._reached: dict[int, set[int]] = {}

    def get_score(self, aln_node: AlignmentGraphNode, aln_state: AlignState) -> Score:
        return self._visited.get_score(aln_node, aln_state)

    def set_score(self, aln_node: AlignmentGraphNode, aln_state: AlignState, score: Score) -> None:
        self._visited.set_score(aln_node, aln_state, score)

    def update_score_if_lower(
        self,
        aln_node: AlignmentGraphNode,
        aln_state: AlignState,
        parent: AlignmentGraphNode,
        parent_state: AlignState,
        score: Score,
    ) -> bool:
        return self._visited.update_score_if_lower(aln_node, aln_state, parent, parent_state, score)

    def mark_reached(self, score: Score, aln_node: AlignmentGraphNode, aln_state: AlignState) -> None:
        """Remember the query offsets at which a bubble exit was reached in match state."""
        if aln_state is AlignState.MATCH and aln_node.node in self._bubble_exits:
            self._reached.setdefault(aln_node.node, set()).add(aln_node.offset)

    def reached_offsets(self, node: int) -> list[int]:
        """Sorted query offsets at which bubble exit ``node`` was reached."""
        return sorted(self._reached.get(node, ()))

    def _step_back(
        self, ref_graph: RefGraph, seq: Query, aln_node: AlignmentGraphNode, aln_state: AlignState
    ) -> tuple[AlignmentGraphNode, AlignState] | None:
        return self._visited.get_backtrace(ref_graph, seq, self.costs, aln_node, aln_state)

    def backtrace(
        self, ref_graph: RefGraph, seq: Query, aln_node: AlignmentGraphNode
    ) -> list[AlignedPair]:
        """Reconstruct the alignment that ends at ``aln_node``."""
        if len(seq) == 0:
            return []

        if len(seq) == 1 and aln_node.offset == 1 and ref_graph.is_symbol_equal(aln_node.node, seq[0]):
            return [AlignedPair(aln_node.node, 0)]

        first = next(
            (
                step
                for step in (self._step_back(ref_graph, seq, aln_node, s) for s in _END_STATE_ORDER)
                if step is not None
            ),
            None,
        )
        if first is None:
            raise ValueError("No backtrace for alignment end state?")

        curr, curr_state = first
        alignment: list[AlignedPair] = []
        start = ref_graph.start_node()

        while (step := self._step_back(ref_graph, seq, curr, curr_state)) is not None:
            bt_node, bt_state = step
            # Closing a gap is a zero-cost edge; follow it without emitting a column.
            if curr_state is AlignState.MATCH and bt_state in _GAP_STATES:
                curr, curr_state = bt_node, bt_state
                continue

            if curr_state is AlignState.MATCH:
                alignment.append(AlignedPair(curr.node, curr.offset - 1))
            elif curr_state in (AlignState.INSERTION, AlignState.INSERTION2):
                alignment.append(AlignedPair(None, curr.offset - 1))
            else:
                alignment.append(AlignedPair(curr.node, None))

            if bt_node.node == start:
                break
            curr, curr_state = bt_node, bt_state

        alignment.reverse()
        return alignment

    def write_tsv(self, writer: TextWriter) -> None:
        self._visited.write_tsv(writer)


class Affine2PieceQueueLayer:
    """One priority bucket, holding a stack of cells per alignment state."""

    _POP_ORDER = (
        AlignState.MATCH,
        AlignState.DELETION,
        AlignState.DELETION2,
        AlignState.INSERTION,
        AlignState.INSERTION2,
    )

    def __init__(self) -> None:
        self._stacks: dict[AlignState, list[tuple[Score, AlignmentGraphNode]]] = {
            state: [] for state in self._POP_ORDER
        }

    def queue(self, score: Score, node: AlignmentGraphNode, aln_state: AlignState) -> None:
        try:
            stack = self._stacks[aln_state]
        except KeyError:
            raise ValueError(f"invalid alignment state {aln_state!r}") from None
        stack.append((score, node))

    def pop(self) -> QueuedItem | None:
        """Most recently queued match cell, then deletions, then insertions."""
        for state in self._POP_ORDER:
            stack = self._stacks[state]
            if stack:
                score, node = stack.pop()
                return QueuedItem(score, node, state)
        return None

    def is_empty(self) -> bool:
        return not any(self._stacks.values())


class Affine2PieceLayeredQueue:
    """Bucketed priority queue; cells with the lowest priority come out first."""

    def __init__(self) -> None:
        self._layers: list[Affine2PieceQueueLayer] = []
        self._lowest = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def queue_aln_state(
        self, node: AlignmentGraphNode, aln_state: AlignState, score: Score, h: int
    ) -> None:
        """Queue a cell with priority ``score + h``."""
        priority = int(score) + h
        while len(self._layers) <= priority:
            self._layers.append(Affine2PieceQueueLayer())
        self._layers[priority].queue(score, node, aln_state)
        self._lowest = min(self._lowest, priority)
        self._size += 1

    def pop_aln_state(self) -> QueuedItem | None:
        while self._lowest < len(self._layers):
            item = self._layers[self._lowest].pop()
            if item is not None:
                self._size -= 1
                return item
            self._lowest += 1
        return None