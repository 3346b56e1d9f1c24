from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .fingerprint import AggregateRow


class DiffStatus(str, enum.Enum):
    MATCHED = "matched"
    MISMATCHED = "mismatched"
    MISSING_IN_A = "missing_in_a"
    MISSING_IN_B = "missing_in_b"


class Verdict(str, enum.Enum):
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class DiffOutcome:
    key: datetime
    status: DiffStatus
    row_a: Optional[AggregateRow] = None
    row_b: Optional[AggregateRow] = None

    @property
    def matched(self) -> bool:
        return self.status is DiffStatus.MATCHED


@dataclass(frozen=True)
class DiffReport:
    outcomes: Tuple[DiffOutcome, ...]
    verdict: Verdict
    size_a: int
    size_b: int

    def __iter__(self) -> Iterator[DiffOutcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS

    def counts(self) -> Dict[DiffStatus, int]:
        totals = {status: 0 for status in DiffStatus}
        for outcome in self.outcomes:
            totals[outcome.status] += 1
        return totals


def classify(row_a: Optional[AggregateRow], row_b: Optional[AggregateRow]) -> DiffStatus:
    if row_a is None and row_b is None:
        raise ValueError("at least one side must be present")
    if row_b is None:
        return DiffStatus.MISSING_IN_B
    if row_a is None:
        return DiffStatus.MISSING_IN_A
    # exact sums, no tolerance
    if row_a.fingerprint == row_b.fingerprint:
        return DiffStatus.MATCHED
    return DiffStatus.MISMATCHED


def diff_fingerprints(
    map_a: Mapping[datetime, AggregateRow],
    map_b: Mapping[datetime, AggregateRow],
) -> DiffReport:
    """Align two fingerprint mappings by bucket key and classify every key.

    Outcomes cover the union of both key sets in ascending key order. The run
    passes only when every key matched and both sides hold the same number of
    buckets.
    """
    outcomes = []
    for key in sorted(set(map_a) | set(map_b)):
        row_a = map_a.get(key)
        row_b = map_b.get(key)
        outcomes.append(DiffOutcome(key=key, status=classify(row_a, row_b), row_a=row_a, row_b=row_b))
    all_matched = all(outcome.matched for outcome in outcomes)
    verdict = Verdict.PASS if all_matched and len(map_a) == len(map_b) else Verdict.FAIL
    return DiffReport(outcomes=tuple(outcomes), verdict=verdict, size_a=len(map_a), size_b=len(map_b))


__all__ = ["DiffOutcome", "DiffReport", "DiffStatus", "Verdict", "classify", "diff_fingerprints"]
