"""Scoring types, two-piece gap-affine costs, visited-cell storage, search
queues and gap-penalty handling for sequence-to-POA-graph alignment."""

__version__ = "0.1.0"

__all__ = [
    "scoring",
    "two_piece_costs",
    "two_piece_visited",
    "two_piece_search",
    "penalties",
]