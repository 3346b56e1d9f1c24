"""
Day-level reconciliation of two copies of the same table.

Each source computes per-day row counts and checksums; the two result sets are
aligned by day and every divergence is reported.
"""

from .cli import run_cli
from .diff import DiffOutcome, DiffReport, DiffStatus, Verdict, diff_fingerprints
from .fingerprint import AggregateRow

__all__ = [
    "AggregateRow",
    "DiffOutcome",
    "DiffReport",
    "DiffStatus",
    "Verdict",
    "diff_fingerprints",
    "run_cli",
]
