"""Command-line level choices: output formats, alignment span and gap model."""

from __future__ import annotations

import enum
import os
import re
import warnings
from dataclasses import dataclass
from typing import Union

from poasta.scoring import AlignmentType, Bound

_PENALTY_PATTERN = re.compile(r"\+?[0-9]+")
_BYTE_MASK = 0xFF
_DEFAULT_MISMATCH = 4

FASTA_EXTENSIONS = (".fa", ".fa.gz", ".fna", ".fna.gz", ".fasta", ".fasta.gz")


class OutputType(enum.Enum):
    """Formats a graph can be written in."""

    POASTA = "poasta"
    FASTA = "fasta"
    GFA = "gfa"
    DOT = "dot"


class AlignmentSpan(enum.Enum):
    """How much of the query and the graph an alignment must cover."""

    GLOBAL = "global"
    SEMI_GLOBAL = "semi-global"
    ENDS_FREE = "ends-free"


@dataclass(frozen=True)
class GapModel:
    """Selected gap costs: standard affine, or two-piece affine when the
    second piece is given."""

    mismatch: int
    gap_open: int
    gap_extend: int
    gap_open2: int | None = None
    gap_extend2: int | None = None

    @property
    def is_two_piece(self) -> bool:
        return self.gap_open2 is not None


def parse_gap_penalties(gap_str: str) -> list[int]:
    """Parse a comma separated list of non-negative gap penalties."""
    values = []
    for part in gap_str.split(","):
        text = part.strip()
        if not _PENALTY_PATTERN.fullmatch(text):
            raise ValueError(f"Invalid gap penalty value: {part!r}")
        values.append(int(text))
    return values


def _as_byte(value: int) -> int:
    # Penalties are stored in a single byte; larger values wrap around.
    return value & _BYTE_MASK


def select_gap_model(
    mismatch: int | None, gap_open: str, gap_extend: str
) -> GapModel:
    """Choose the gap model from the gap-open and gap-extend option strings.

    Two values for both options select the two-piece model, unless the first
    extension cost is not above the second, in which case the standard model
    is used with the first values and a warning is issued.
    """
    if mismatch is None:
        mismatch = _DEFAULT_MISMATCH
    if not isinstance(mismatch, int) or isinstance(mismatch, bool) or not 0 <= mismatch <= _BYTE_MASK:
        raise ValueError(f"mismatch penalty must be between 0 and {_BYTE_MASK}, got {mismatch!r}")

    open_values = parse_gap_penalties(gap_open)
    extend_values = parse_gap_penalties(gap_extend)

    if len(open_values) == 2 and len(extend_values) == 2:
        open1, open2 = (_as_byte(v) for v in open_values)
        extend1, extend2 = (_as_byte(v) for v in extend_values)
        if extend1 <= extend2:
            warnings.warn(
                f"gap_extend1 ({extend1}) should be greater than gap_extend2 ({extend2}) "
                "for two-piece model; using standard affine gap model instead.",
                UserWarning,
                stacklevel=2,
            )
            return GapModel(mismatch, open1, extend1)
        return GapModel(mismatch, open1, extend1, open2, extend2)

    if len(open_values) != 1 or len(extend_values) != 1:
        raise ValueError(
            "Standard affine mode requires exactly 1 value for both gap-open and "
            "gap-extend (e.g., -g 6 -e 2)"
        )
    return GapModel(mismatch, _as_byte(open_values[0]), _as_byte(extend_values[0]))


def alignment_type_for_span(span: AlignmentSpan) -> AlignmentType:
    """The alignment type used for a requested alignment span."""
    if span is AlignmentSpan.GLOBAL:
        return AlignmentType.global_alignment()
    if span in (AlignmentSpan.SEMI_GLOBAL, AlignmentSpan.ENDS_FREE):
        free = Bound.unbounded()
        return AlignmentType.ends_free(free, free, free, free)
    raise ValueError(f"unknown alignment span {span!r}")


def is_fasta_path(path: Union[str, "os.PathLike[str]"]) -> bool:
    """Whether the file name marks a (possibly gzipped) FASTA file."""
    name = os.fspath(path)
    return any(name.endswith(ext) for ext in FASTA_EXTENSIONS)