from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .diff import DiffReport, DiffStatus


@dataclass
class ReconRunSummary:
    total: int
    matched: int
    mismatched: int
    missing_in_a: int
    missing_in_b: int
    size_a: int
    size_b: int
    verdict: str

    @classmethod
    def from_report(cls, report: DiffReport) -> "ReconRunSummary":
        counts = report.counts()
        return cls(
            total=len(report),
            matched=counts[DiffStatus.MATCHED],
            mismatched=counts[DiffStatus.MISMATCHED],
            missing_in_a=counts[DiffStatus.MISSING_IN_A],
            missing_in_b=counts[DiffStatus.MISSING_IN_B],
            size_a=report.size_a,
            size_b=report.size_b,
            verdict=report.verdict.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "completed",
            "verdict": self.verdict,
            "summary": {
                "total": self.total,
                "matched": self.matched,
                "mismatched": self.mismatched,
                "missing_in_a": self.missing_in_a,
                "missing_in_b": self.missing_in_b,
                "buckets_a": self.size_a,
                "buckets_b": self.size_b,
            },
        }
