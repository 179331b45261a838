"""Blocked storage of visited alignment cells for the two-piece gap model.

Scores are kept in square blocks of cells, keyed by the topological rank of
the reference node and the query offset, so that cells near each other on the
search front share a block.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence, Union

from poasta.scoring import AlignmentGraphNode, AlignState, RefGraph, Score
from poasta.two_piece_costs import GapAffine2Piece

Query = Union[bytes, str, Sequence[int]]

_TSV_LABELS = (
    (AlignState.MATCH, "match"),
    (AlignState.INSERTION, "insertion1"),
    (AlignState.INSERTION2, "insertion2"),
    (AlignState.DELETION, "deletion1"),
    (AlignState.DELETION2, "deletion2"),
)


class TextWriter(Protocol):
    def write(self, text: str) -> object: ...


@dataclass
class _Cell:
    scores: dict[AlignState, Score] = field(default_factory=dict)

    def get(self, state: AlignState) -> Score:
        return self.scores.get(state, Score.unvisited())


def _minus(score: Score, delta: int) -> Score | None:
    """``score - delta``, or None when the result would be negative."""
    value = int(score) - delta
    return Score(value) if value >= 0 else None


class BlockedVisitedStorageAffine2Piece:
    """Best known score of every (node, offset, state) cell reached so far."""

    def __init__(self, ref_graph: RefGraph, block_size: int = 8) -> None:
        if block_size <= 0 or block_size & (block_size - 1) != 0:
            raise ValueError("Block size B should be a power of 2!")
        self._block_size = block_size
        self._shift = block_size.bit_length() - 1
        num_blocks = ref_graph.node_count_with_start_and_end() // block_size + 1
        self._node_blocks: list[dict[int, list[list[_Cell]]]] = [{} for _ in range(num_blocks)]
        self._node_ranks = ref_graph.get_node_ordering()

    def _block_ix(self, aln_node: AlignmentGraphNode) -> tuple[int, int, int, int]:
        rank = self._node_ranks[aln_node.node]
        mask = self._block_size - 1
        return (
            rank >> self._shift,
            aln_node.offset >> self._shift,
            rank & mask,
            aln_node.offset & mask,
        )

    def _new_block(self) -> list[list[_Cell]]:
        return [[_Cell() for _ in range(self._block_size)] for _ in range(self._block_size)]

    def _find_cell(self, aln_node: AlignmentGraphNode) -> _Cell | None:
        node_block, offset_block, row, col = self._block_ix(aln_node)
        block = self._node_blocks[node_block].get(offset_block)
        return None if block is None else block[row][col]

    def _cell(self, aln_node: AlignmentGraphNode) -> _Cell:
        node_block, offset_block, row, col = self._block_ix(aln_node)
        blocks = self._node_blocks[node_block]
        block = blocks.get(offset_block)
        if block is None:
            block = blocks[offset_block] = self._new_block()
        return block[row][col]

    def get_score(self, aln_node: AlignmentGraphNode, aln_state: AlignState) -> Score:
        cell = self._find_cell(aln_node)
        return Score.unvisited() if cell is None else cell.get(aln_state)

    def set_score(self, aln_node: AlignmentGraphNode, aln_state: AlignState, score: Score) -> None:
        self._cell(aln_node).scores[aln_state] = score

    def update_score_if_lower(
        self,
        aln_node: AlignmentGraphNode,
        aln_state: AlignState,
        parent: AlignmentGraphNode,
        parent_state: AlignState,
        score: Score,
    ) -> bool:
        """Store ``score`` if it beats the current one; report whether it did."""
        cell = self._cell(aln_node)
        if score < cell.get(aln_state):
            cell.scores[aln_state] = score
            return True
        return False

    def get_backtrace(
        self,
        ref_graph: RefGraph,
        seq: Query,
        costs: GapAffine2Piece,
        aln_node: AlignmentGraphNode,
        aln_state: AlignState,
    ) -> tuple[AlignmentGraphNode, AlignState] | None:
        """The predecessor cell and state this cell's score came from, if any."""
        curr = self.get_score(aln_node, aln_state)
        if not curr.is_visited():
            return None

        open1 = costs.cost_gap_open1 + costs.cost_gap_extend1
        node, offset = aln_node.node, aln_node.offset

        if aln_state is AlignState.MATCH:
            if offset > 0:
                at_end = node == ref_graph.end_node()
                is_match_or_end = ref_graph.is_symbol_equal(node, seq[offset - 1]) or at_end
                pred_offset = offset if at_end else offset - 1
                wanted = curr if is_match_or_end else _minus(curr, costs.cost_mismatch)
                for p in ref_graph.predecessors(node):
                    pred = AlignmentGraphNode(p, pred_offset)
                    if wanted is not None and self.get_score(pred, AlignState.MATCH) == wanted:
                        return pred, AlignState.MATCH
            for closing in (
                AlignState.DELETION,
                AlignState.DELETION2,
                AlignState.INSERTION,
                AlignState.INSERTION2,
            ):
                if self.get_score(aln_node, closing) == curr:
                    return aln_node, closing
            return None

        if aln_state in (AlignState.DELETION, AlignState.DELETION2):
            if aln_state is AlignState.DELETION:
                steps = ((AlignState.MATCH, open1), (AlignState.DELETION, costs.cost_gap_extend1))
            else:
                steps = (
                    (AlignState.DELETION, costs.cost_gap_extend2),
                    (AlignState.DELETION2, costs.cost_gap_extend2),
                )
            preds = ref_graph.predecessors(node)
            for pred_state, delta in steps:
                wanted = _minus(curr, delta)
                if wanted is None:
                    continue
                for p in preds:
                    pred = AlignmentGraphNode(p, offset)
                    if self.get_score(pred, pred_state) == wanted:
                        return pred, pred_state
            return None

        if aln_state in (AlignState.INSERTION, AlignState.INSERTION2):
            if offset == 0:
                return None
            if aln_state is AlignState.INSERTION:
                steps = ((AlignState.MATCH, open1), (AlignState.INSERTION, costs.cost_gap_extend1))
            else:
                steps = (
                    (AlignState.INSERTION, costs.cost_gap_extend2),
                    (AlignState.INSERTION2, costs.cost_gap_extend2),
                )
            pred = AlignmentGraphNode(node, offset - 1)
            for pred_state, delta in steps:
                wanted = _minus(curr, delta)
                if wanted is not None and self.get_score(pred, pred_state) == wanted:
                    return pred, pred_state
            return None

        raise ValueError(f"invalid alignment state {aln_state!r}")

    def write_tsv(self, writer: TextWriter) -> None:
        """Write every visited cell as ``node_id offset matrix score`` rows."""
        writer.write("node_id\toffset\tmatrix\tscore\n")
        rank_to_node = sorted(range(len(self._node_ranks)), key=lambda n: self._node_ranks[n])
        size = self._block_size

        for block_num, blocks in enumerate(self._node_blocks):
            rank_base = block_num * size
            for qry_block, block in blocks.items():
                qry_base = qry_block * size
                for row_num, row in enumerate(block):
                    rank = rank_base + row_num
                    if rank >= len(rank_to_node):
                        break
                    node_ix = rank_to_node[rank]
                    for col, cell in enumerate(row):
                        qry_pos = qry_base + col
                        for state, label in _TSV_LABELS:
                            score = cell.get(state)
                            if score.is_visited():
                                writer.write(f"{node_ix}\t{qry_pos}\t{label}\t{score}\n")