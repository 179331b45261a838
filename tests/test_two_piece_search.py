import io

import pytest

from poasta.scoring import AlignedPair, AlignmentGraphNode, AlignState, RefGraph, Score
from poasta.two_piece_costs import GapAffine2Piece
from poasta.two_piece_search import (
    Affine2PieceAstarData,
    Affine2PieceLayeredQueue,
    Affine2PieceQueueLayer,
)

COSTS = GapAffine2Piece(1, 2, 10, 1, 8)
OPEN1 = COSTS.cost_gap_open1 + COSTS.cost_gap_extend1


def linear_graph() -> RefGraph:
    # start, A, C, G, T, end
    return RefGraph([None, "A", "C", "G", "T", None], [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5)], 0, 5)


def node(n, o):
    return AlignmentGraphNode(n, o)


def test_score_roundtrip_and_update():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "ACGT")
    assert not data.get_score(node(1, 1), AlignState.MATCH).is_visited()
    data.set_score(node(1, 1), AlignState.MATCH, Score(5))
    assert data.get_score(node(1, 1), AlignState.MATCH) == Score(5)
    assert not data.update_score_if_lower(node(1, 1), AlignState.MATCH, node(0, 0), AlignState.MATCH, Score(5))
    assert data.update_score_if_lower(node(1, 1), AlignState.MATCH, node(0, 0), AlignState.MATCH, Score(2))
    assert data.get_score(node(1, 1), AlignState.MATCH) == Score(2)
    assert not data.get_score(node(1, 1), AlignState.DELETION2).is_visited()


def test_mark_reached_only_records_match_at_exits():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "ACGT", bubble_exits=[3])
    data.mark_reached(Score(0), node(3, 2), AlignState.MATCH)
    data.mark_reached(Score(0), node(3, 1), AlignState.MATCH)
    data.mark_reached(Score(0), node(3, 4), AlignState.INSERTION)
    data.mark_reached(Score(0), node(2, 1), AlignState.MATCH)
    assert data.reached_offsets(3) == [1, 2]
    assert data.reached_offsets(2) == []


def test_backtrace_empty_query():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "")
    assert data.backtrace(graph, "", node(5, 0)) == []


def test_backtrace_single_nucleotide_match():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "A")
    assert data.backtrace(graph, "A", node(1, 1)) == [AlignedPair(1, 0)]


def test_backtrace_without_scores_raises():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "ACGT")
    with pytest.raises(ValueError, match="No backtrace"):
        data.backtrace(graph, "ACGT", node(5, 4))


def test_backtrace_perfect_match():
    graph = linear_graph()
    seq = "ACGT"
    data = Affine2PieceAstarData(COSTS, graph, seq)
    for cell in [node(0, 0), node(1, 1), node(2, 2), node(3, 3), node(4, 4), node(5, 4)]:
        data.set_score(cell, AlignState.MATCH, Score(0))
    alignment = data.backtrace(graph, seq, node(5, 4))
    assert alignment == [AlignedPair(1, 0), AlignedPair(2, 1), AlignedPair(3, 2), AlignedPair(4, 3)]


def test_backtrace_through_insertion():
    graph = linear_graph()
    seq = "ACCGT"
    data = Affine2PieceAstarData(COSTS, graph, seq)
    for cell in [node(0, 0), node(1, 1), node(2, 2)]:
        data.set_score(cell, AlignState.MATCH, Score(0))
    data.set_score(node(2, 3), AlignState.INSERTION, Score(OPEN1))
    for cell in [node(2, 3), node(3, 4), node(4, 5), node(5, 5)]:
        data.set_score(cell, AlignState.MATCH, Score(OPEN1))
    alignment = data.backtrace(graph, seq, node(5, 5))
    assert alignment == [
        AlignedPair(1, 0),
        AlignedPair(2, 1),
        AlignedPair(None, 2),
        AlignedPair(3, 3),
        AlignedPair(4, 4),
    ]
    assert [p.qpos for p in alignment] == list(range(len(seq)))


def test_backtrace_through_deletion():
    graph = linear_graph()
    seq = "AGT"
    data = Affine2PieceAstarData(COSTS, graph, seq)
    data.set_score(node(0, 0), AlignState.MATCH, Score(0))
    data.set_score(node(1, 1), AlignState.MATCH, Score(0))
    data.set_score(node(2, 1), AlignState.DELETION, Score(OPEN1))
    for cell in [node(2, 1), node(3, 2), node(4, 3), node(5, 3)]:
        data.set_score(cell, AlignState.MATCH, Score(OPEN1))
    alignment = data.backtrace(graph, seq, node(5, 3))
    assert alignment == [AlignedPair(1, 0), AlignedPair(2, None), AlignedPair(3, 1), AlignedPair(4, 2)]
    assert [p.rpos for p in alignment] == [1, 2, 3, 4]


def test_write_tsv_lists_visited_cells():
    graph = linear_graph()
    data = Affine2PieceAstarData(COSTS, graph, "ACGT")
    data.set_score(node(2, 1), AlignState.DELETION2, Score(7))
    out = io.StringIO()
    data.write_tsv(out)
    lines = out.getvalue().splitlines()
    assert lines[0] == "node_id\toffset\tmatrix\tscore"
    assert lines[1:] == ["2\t1\tdeletion2\t7"]


def test_queue_layer_pop_order():
    layer = Affine2PieceQueueLayer()
    assert layer.is_empty()
    assert layer.pop() is None
    layer.queue(Score(1), node(1, 1), AlignState.INSERTION2)
    layer.queue(Score(2), node(2, 1), AlignState.INSERTION)
    layer.queue(Score(3), node(3, 1), AlignState.DELETION2)
    layer.queue(Score(4), node(4, 1), AlignState.DELETION)
    layer.queue(Score(5), node(1, 2), AlignState.MATCH)
    layer.queue(Score(6), node(2, 2), AlignState.MATCH)
    assert not layer.is_empty()
    popped = [(item.node, item.aln_state) for item in iter(layer.pop, None)]
    assert popped == [
        (node(2, 2), AlignState.MATCH),
        (node(1, 2), AlignState.MATCH),
        (node(4, 1), AlignState.DELETION),
        (node(3, 1), AlignState.DELETION2),
        (node(2, 1), AlignState.INSERTION),
        (node(1, 1), AlignState.INSERTION2),
    ]
    assert layer.is_empty()


def test_layered_queue_orders_by_priority():
    queue = Affine2PieceLayeredQueue()
    assert queue.pop_aln_state() is None
    queue.queue_aln_state(node(3, 3), AlignState.MATCH, Score(5), 0)
    queue.queue_aln_state(node(1, 1), AlignState.DELETION, Score(1), 1)
    queue.queue_aln_state(node(2, 2), AlignState.MATCH, Score(0), 4)
    assert len(queue) == 3
    first = queue.pop_aln_state()
    assert first.node == node(1, 1) and first.score == Score(1)
    # Same priority bucket: the later queued item comes out first.
    assert queue.pop_aln_state().node == node(2, 2)
    assert queue.pop_aln_state().node == node(3, 3)
    assert queue.pop_aln_state() is None
    assert len(queue) == 0


def test_layered_queue_accepts_lower_priority_after_pop():
    queue = Affine2PieceLayeredQueue()
    queue.queue_aln_state(node(1, 1), AlignState.MATCH, Score(6), 0)
    queue.queue_aln_state(node(2, 2), AlignState.MATCH, Score(8), 0)
    assert queue.pop_aln_state().node == node(1, 1)
    queue.queue_aln_state(node(3, 3), AlignState.INSERTION, Score(2), 0)
    assert queue.pop_aln_state().aln_state is AlignState.INSERTION
    assert queue.pop_aln_state().node == node(2, 2)


def test_layered_queue_rejects_unvisited_score():
    queue = Affine2PieceLayeredQueue()
    with pytest.raises(ValueError):
        queue.queue_aln_state(node(1, 1), AlignState.MATCH, Score.unvisited(), 0)