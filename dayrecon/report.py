from __future__ import annotations

import sys
from typing import Any, Dict, Optional, TextIO

from colorama import Fore, Style

from .diff import DiffOutcome, DiffReport, DiffStatus
from .fingerprint import AggregateRow
from .results import ReconRunSummary

MATCH_GLYPH = "✔"
MISS_GLYPH = "✘"
ABSENT = "-"

NOT_MATCHING_NOTICE = "Databases do not match"


def _paint(text: str, colour: str, color: bool) -> str:
    return f"{colour}{text}{Style.RESET_ALL}" if color else text


def format_key(outcome: DiffOutcome) -> str:
    return outcome.key.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_side(row: Optional[AggregateRow]) -> str:
    if row is None:
        return ABSENT
    return "({},{},{})".format(*row.fingerprint)


def format_line(outcome: DiffOutcome, *, color: bool = False) -> str:
    if outcome.matched:
        glyph = _paint(MATCH_GLYPH, Fore.GREEN, color)
    else:
        glyph = _paint(MISS_GLYPH, Fore.RED, color)
    line = f"{glyph} {format_key(outcome)} a={format_side(outcome.row_a)} b={format_side(outcome.row_b)}"
    if outcome.status in (DiffStatus.MISSING_IN_A, DiffStatus.MISSING_IN_B):
        line += f" [{outcome.status.value}]"
    return line


def summary_line(report: DiffReport, *, color: bool = False) -> str:
    summary = ReconRunSummary.from_report(report)
    if report.passed:
        return _paint("PASS", Fore.GREEN, color) + f": {summary.matched} of {summary.total} buckets match"
    return _paint("FAIL", Fore.RED, color) + (
        f": {summary.matched} matched, {summary.mismatched} mismatched, "
        f"{summary.missing_in_a} missing in A, {summary.missing_in_b} missing in B "
        f"(A has {summary.size_a} buckets, B has {summary.size_b})"
    )


def render_report(report: DiffReport, stream: Optional[TextIO] = None, *, color: bool = False) -> None:
    """Write one line per outcome followed by the verdict summary."""
    out = stream or sys.stdout
    for outcome in report:
        print(format_line(outcome, color=color), file=out)
    print(summary_line(report, color=color), file=out)


def _row_dict(row: Optional[AggregateRow]) -> Optional[Dict[str, int]]:
    if row is None:
        return None
    return {"row_count": row.row_count, "checksum_a": row.checksum_a, "checksum_b": row.checksum_b}


def report_to_dict(report: DiffReport) -> Dict[str, Any]:
    payload = ReconRunSummary.from_report(report).to_dict()
    payload["outcomes"] = [
        {
            "bucket_key": outcome.key.isoformat(),
            "status": outcome.status.value,
            "a": _row_dict(outcome.row_a),
            "b": _row_dict(outcome.row_b),
        }
        for outcome in report
    ]
    return payload


__all__ = [
    "NOT_MATCHING_NOTICE",
    "format_line",
    "render_report",
    "report_to_dict",
    "summary_line",
]
