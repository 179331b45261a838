# poasta

Building blocks for aligning sequences to a partial order (POA) graph:
score and state types, a two-piece gap-affine cost model, storage of
visited alignment cells with backtracking, a bucketed priority queue, and
the option handling that turns gap-penalty strings into a gap model.

No third-party libraries are needed.

## Modules

- `poasta.scoring`
  - `Score`: an integer score, or `Score.unvisited()`, which compares
    greater than every real score. Adding or subtracting an integer,
    or calling `int()`, on an unvisited score raises `ValueError`.
    `str()` gives the number or `"unvisited"`.
  - `AlignState`: `MATCH`, `INSERTION`, `DELETION`, `INSERTION2`,
    `DELETION2`.
  - `Bound` / `BoundKind`: `Bound.unbounded()`, `Bound.included(n)`,
    `Bound.excluded(n)`.
  - `AlignmentType`: `AlignmentType.global_alignment()` or
    `AlignmentType.ends_free(qry_free_begin, qry_free_end,
    graph_free_begin, graph_free_end)`; `is_global()`.
  - `AlignmentGraphNode(node, offset)` with `increase_one()`, and
    `AlignedPair(rpos, qpos)` where `None` marks a gap.
  - `RefGraph(symbols, edges, start, end)`: a directed acyclic graph whose
    nodes are numbered by position in `symbols`. It offers
    `start_node()`, `end_node()`, `all_nodes()`, `successors()`,
    `predecessors()`, `is_symbol_equal()`,
    `node_count_with_start_and_end()` and `get_node_ordering()`
    (topological rank per node). A cycle raises `ValueError`.
  - `GapLinear(cost_mismatch, cost_gap)` with `gap_cost()`.
- `poasta.two_piece_costs`
  - `GapAffine2Piece(cost_mismatch, cost_gap_extend1, cost_gap_open1,
    cost_gap_extend2, cost_gap_open2)`: costs must be integers from 0 to
    255, and `cost_gap_extend1` must not be below `cost_gap_extend2`.
    `gap_cost(state, length)` and `breakpoint()`.
  - `dist_to_end(graph, start, maximum)`: edges on the shortest path to
    the end node, or `None` if it is not reached within `maximum`.
- `poasta.two_piece_visited`
  - `BlockedVisitedStorageAffine2Piece(ref_graph, block_size=8)`: best
    score per node, query offset and state, with `get_score()`,
    `set_score()`, `update_score_if_lower()`, `get_backtrace()` and
    `write_tsv(writer)`, which writes a `node_id offset matrix score`
    table of every visited cell.
- `poasta.two_piece_search`
  - `Affine2PieceAstarData(costs, ref_graph, seq, bubble_exits=())`:
    scores, bubble exits reached in match state (`mark_reached()`,
    `reached_offsets()`), `backtrace()` returning a list of
    `AlignedPair`, and `write_tsv()`.
  - `Affine2PieceQueueLayer`: one bucket; `pop()` returns the most recently
    queued match cell first, then deletions, then insertions.
  - `Affine2PieceLayeredQueue`: `queue_aln_state(node, state, score, h)`
    queues at priority `score + h`; `pop_aln_state()` returns the lowest
    priority item, or `None` when empty.
- `poasta.penalties`
  - `parse_gap_penalties(text)`, `select_gap_model(mismatch, gap_open,
    gap_extend)` returning a `GapModel`, `alignment_type_for_span(span)`
    for an `AlignmentSpan`, `is_fasta_path(path)`, and the `OutputType`
    enum (`poasta`, `fasta`, `gfa`, `dot`).

## Gap penalties

```python
from poasta.penalties import parse_gap_penalties, select_gap_model

parse_gap_penalties("6")        # [6]
parse_gap_penalties("256,300")  # [256, 300]

model = select_gap_model(None, "8,24", "2,1")
model.is_two_piece              # True
model.mismatch                  # 4 (the default)
```

`select_gap_model` takes the gap-open and gap-extend option strings. Two
values each select the two-piece model, unless the first extension cost is
not greater than the second: then a `UserWarning` is issued and the
standard model is used with the first values. One value each selects the
standard model; any other combination raises `ValueError`. Values are
kept to a single byte, so larger values wrap around.

`alignment_type_for_span` maps `AlignmentSpan.GLOBAL` to global alignment,
and both `SEMI_GLOBAL` and `ENDS_FREE` to ends-free alignment with all four
ends unbounded.

## Two-piece gap costs

A gap opened from a match costs the cheaper of the two pieces; inside a
piece, that piece's costs apply:

```python
from poasta.scoring import AlignState
from poasta.two_piece_costs import GapAffine2Piece

costs = GapAffine2Piece(1, 2, 10, 1, 8)   # mismatch, extend1, open1, extend2, open2
costs.gap_cost(AlignState.MATCH, 1)        # 9
costs.gap_cost(AlignState.INSERTION, 1)    # 12
costs.breakpoint()                         # 2
```

## Reference graphs

```python
from poasta.scoring import RefGraph
from poasta.two_piece_costs import dist_to_end

graph = RefGraph([None, "A", "C", None], [(0, 1), (1, 2), (2, 3)], start=0, end=3)
dist_to_end(graph, 1, 5)   # 2
dist_to_end(graph, 1, 1)   # None
```

## What this package does not do

The package has no alignment driver: nothing here expands alignment
states and runs the search loop that ties costs, visited storage and the
queue together, so it does not compute an alignment of a query to a graph
on its own. It does not build or update POA graphs from sequences, read or
write FASTA, GFA, DOT or graph files, or provide a command-line program;
`OutputType` and `is_fasta_path` only name and recognise those formats.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.