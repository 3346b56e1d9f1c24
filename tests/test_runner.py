import io
import threading
from datetime import datetime, timezone

import pytest

from dayrecon.config import DateRange, ReconConfig, SourceConfig
from dayrecon.diff import DiffStatus, Verdict
from dayrecon.runner import run_reconciliation
from parity.common import PrintLogger
from parity.endpoints.factory import EndpointFactory
from parity.errors import ConfigError, ConnectError, FetchError, QueryError
from parity.tools.base import ExecutionTool

WINDOW = DateRange.parse("20240101", "20240103")


def _logger():
    return PrintLogger(job_name="test", stream=io.StringIO())


def _cfg(url_a, url_b, **runtime):
    return ReconConfig(
        source_a=SourceConfig(label="A", url=url_a),
        source_b=SourceConfig(label="B", url=url_b),
        window=WINDOW,
        runtime=runtime,
    )


class _StubTool(ExecutionTool):
    def __init__(self, rows=None, error=None, dialect="postgresql"):
        self.rows = rows or []
        self.error = error
        self.dialect = dialect
        self.requests = []
        self.stopped = False

    def query(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return list(self.rows)

    def stop(self):
        self.stopped = True


def _factory(tools):
    def _build(url, runtime, logger):
        return tools[url]

    return _build


def test_identical_sources_pass(make_db):
    cfg = _cfg(make_db("a"), make_db("b"), retries=0)

    report = run_reconciliation(cfg, _logger())

    assert report.verdict is Verdict.PASS
    assert [outcome.status for outcome in report] == [DiffStatus.MATCHED] * 3


def test_diverging_sources_fail(make_db):
    rows_b = [
        (1, "2024-01-01 05:00:00"),
        (2, "2024-01-01 23:59:59"),
        (13, "2024-01-02 00:00:00"),
    ]
    cfg = _cfg(make_db("a"), make_db("b", rows=rows_b), retries=0)

    report = run_reconciliation(cfg, _logger())

    assert report.verdict is Verdict.FAIL
    assert [outcome.status for outcome in report] == [
        DiffStatus.MATCHED,
        DiffStatus.MATCHED,
        DiffStatus.MISSING_IN_B,
    ]


def test_checksum_difference_with_equal_counts_fails(make_db):
    rows_b = [
        (1, "2024-01-01 05:00:00"),
        (2, "2024-01-01 23:59:59"),
        (4, "2024-01-02 00:00:00"),
        (14, "2024-01-03 12:00:00"),
    ]
    cfg = _cfg(make_db("a"), make_db("b", rows=rows_b), retries=0)

    report = run_reconciliation(cfg, _logger())

    assert report.outcomes[1].status is DiffStatus.MISMATCHED
    assert report.outcomes[1].row_a.row_count == report.outcomes[1].row_b.row_count


def test_fetch_logs_bucket_counts(make_db):
    stream = io.StringIO()
    logger = PrintLogger(job_name="test", stream=stream)

    run_reconciliation(_cfg(make_db("a"), make_db("b"), retries=0), logger)

    lines = stream.getvalue()
    assert '"msg": "fetch_complete"' in lines
    assert '"buckets": 3' in lines
    assert '"verdict": "pass"' in lines


def test_failed_side_aborts_run_and_stops_both_tools():
    good = _StubTool(
        rows=[{"bucket_key": datetime(2024, 1, 1, tzinfo=timezone.utc), "row_count": 1, "checksum_a": 1, "checksum_b": 1}]
    )
    bad = _StubTool(error=ConnectError("refused"))

    with pytest.raises(ConnectError) as exc:
        run_reconciliation(_cfg("a", "b"), _logger(), tool_factory=_factory({"a": good, "b": bad}))

    assert exc.value.side == "B"
    assert str(exc.value) == "database B: refused"
    assert good.stopped and bad.stopped


def test_undecodable_result_is_a_fetch_error():
    broken = _StubTool(rows=[{"bucket_key": "not a day", "row_count": 1, "checksum_a": 1, "checksum_b": 1}])

    with pytest.raises(FetchError) as exc:
        run_reconciliation(_cfg("a", "b"), _logger(), tool_factory=_factory({"a": broken, "b": _StubTool()}))

    assert isinstance(exc.value, QueryError)
    assert exc.value.side == "A"


def test_fetches_run_concurrently():
    barrier = threading.Barrier(2, timeout=5)

    class _BarrierTool(_StubTool):
        def query(self, request):
            # both sides must be in flight at the same time to get past the barrier
            barrier.wait()
            return super().query(request)

    tools = {"a": _BarrierTool(), "b": _BarrierTool()}

    report = run_reconciliation(_cfg("a", "b"), _logger(), tool_factory=_factory(tools))

    assert report.passed
    assert tools["a"].requests[0].sql == tools["b"].requests[0].sql


def test_unsupported_dialect_fails_before_any_query():
    first = _StubTool()
    second = _StubTool(dialect="oracle")

    with pytest.raises(ConfigError):
        run_reconciliation(_cfg("a", "b"), _logger(), tool_factory=_factory({"a": first, "b": second}))

    assert first.requests == [] and second.requests == []
    assert first.stopped


def test_unreachable_sqlite_source_is_a_connect_error(tmp_path, make_db):
    missing = f"sqlite:///{tmp_path / 'no-such-dir' / 'b.db'}"
    cfg = _cfg(make_db("a"), missing, retries=1, retry_backoff_seconds=0)

    with pytest.raises(ConnectError) as exc:
        run_reconciliation(cfg, _logger(), tool_factory=EndpointFactory.build_tool)

    assert exc.value.side == "B"
    assert "2 attempt(s)" in str(exc.value)
