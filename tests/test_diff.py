from datetime import datetime, timezone

from dayrecon.diff import DiffStatus, Verdict, diff_fingerprints
from dayrecon.fingerprint import AggregateRow


def _day(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


def _map(entries):
    return {
        _day(day): AggregateRow(bucket_key=_day(day), row_count=count, checksum_a=a, checksum_b=b)
        for day, (count, a, b) in entries.items()
    }


def test_identical_single_bucket_passes():
    report = diff_fingerprints(_map({1: (10, 5, 100)}), _map({1: (10, 5, 100)}))

    assert [outcome.status for outcome in report] == [DiffStatus.MATCHED]
    assert report.verdict is Verdict.PASS


def test_row_count_difference_is_a_mismatch():
    report = diff_fingerprints(_map({1: (10, 5, 100)}), _map({1: (11, 5, 100)}))

    assert [outcome.status for outcome in report] == [DiffStatus.MISMATCHED]
    assert report.verdict is Verdict.FAIL


def test_each_checksum_is_compared_exactly():
    base = _map({1: (10, 5, 100)})

    assert not diff_fingerprints(base, _map({1: (10, 6, 100)})).passed
    assert not diff_fingerprints(base, _map({1: (10, 5, 101)})).passed


def test_bucket_only_in_a_is_missing_in_b():
    map_a = _map({1: (10, 5, 100), 2: (3, 1, 9)})
    map_b = _map({1: (10, 5, 100)})

    report = diff_fingerprints(map_a, map_b)

    assert [outcome.status for outcome in report] == [DiffStatus.MATCHED, DiffStatus.MISSING_IN_B]
    assert report.outcomes[1].row_a == map_a[_day(2)]
    assert report.outcomes[1].row_b is None
    assert report.verdict is Verdict.FAIL


def test_bucket_only_in_b_is_missing_in_a():
    report = diff_fingerprints(_map({}), _map({3: (1, 1, 1)}))

    assert [outcome.status for outcome in report] == [DiffStatus.MISSING_IN_A]
    assert report.outcomes[0].row_a is None
    assert report.verdict is Verdict.FAIL


def test_empty_inputs_pass():
    report = diff_fingerprints({}, {})

    assert len(report) == 0
    assert report.verdict is Verdict.PASS


def test_equal_sizes_with_disjoint_keys_fail():
    report = diff_fingerprints(_map({1: (1, 1, 1)}), _map({2: (1, 1, 1)}))

    assert [outcome.status for outcome in report] == [DiffStatus.MISSING_IN_B, DiffStatus.MISSING_IN_A]
    assert report.verdict is Verdict.FAIL


def test_equal_mappings_match_everywhere():
    entries = {day: (day * 3, day % 10, day * 86400) for day in range(1, 29)}

    report = diff_fingerprints(_map(entries), _map(entries))

    assert report.passed
    assert all(outcome.status is DiffStatus.MATCHED for outcome in report)
    assert len(report) == 28


def test_output_is_sorted_regardless_of_insertion_order():
    map_a = _map({9: (1, 1, 1), 2: (1, 1, 1), 5: (1, 1, 1)})
    map_b = _map({7: (1, 1, 1), 5: (2, 1, 1), 1: (1, 1, 1)})

    keys = [outcome.key for outcome in diff_fingerprints(map_a, map_b)]

    assert keys == [_day(day) for day in (1, 2, 5, 7, 9)]


def test_swapping_sides_swaps_missing_labels_only():
    map_a = _map({1: (1, 1, 1), 2: (2, 2, 2), 3: (3, 3, 3)})
    map_b = _map({2: (2, 2, 2), 3: (4, 3, 3), 4: (4, 4, 4)})
    swapped = {
        DiffStatus.MISSING_IN_A: DiffStatus.MISSING_IN_B,
        DiffStatus.MISSING_IN_B: DiffStatus.MISSING_IN_A,
        DiffStatus.MATCHED: DiffStatus.MATCHED,
        DiffStatus.MISMATCHED: DiffStatus.MISMATCHED,
    }

    forward = diff_fingerprints(map_a, map_b)
    backward = diff_fingerprints(map_b, map_a)

    assert [swapped[outcome.status] for outcome in forward] == [outcome.status for outcome in backward]
    assert forward.verdict == backward.verdict


def test_diff_is_idempotent():
    map_a = _map({1: (1, 1, 1), 2: (2, 2, 2)})
    map_b = _map({2: (2, 2, 3), 3: (3, 3, 3)})

    assert diff_fingerprints(map_a, map_b) == diff_fingerprints(map_a, map_b)


def test_counts_per_status():
    report = diff_fingerprints(
        _map({1: (1, 1, 1), 2: (2, 2, 2), 3: (3, 3, 3)}),
        _map({1: (1, 1, 1), 2: (2, 2, 0), 4: (4, 4, 4)}),
    )

    counts = report.counts()

    assert counts[DiffStatus.MATCHED] == 1
    assert counts[DiffStatus.MISMATCHED] == 1
    assert counts[DiffStatus.MISSING_IN_A] == 1
    assert counts[DiffStatus.MISSING_IN_B] == 1
