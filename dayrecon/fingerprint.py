"""Per-day aggregate fingerprints of one source table.

A fingerprint is the triple ``(row_count, checksum_a, checksum_b)`` computed by
the source itself for every calendar day that has at least one row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Tuple

from parity.endpoints.base import SupportsQueryExecution
from parity.errors import ConfigError, QueryError
from parity.query.plan import OrderItem, QueryPlan, QueryResult, SelectItem

from .config import DateRange, SourceConfig

FINGERPRINT_COLUMNS = ("bucket_key", "row_count", "checksum_a", "checksum_b")


@dataclass(frozen=True)
class AggregateRow:
    bucket_key: datetime
    row_count: int
    checksum_a: int
    checksum_b: int

    @property
    def fingerprint(self) -> Tuple[int, int, int]:
        return (self.row_count, self.checksum_a, self.checksum_b)


@dataclass(frozen=True)
class DialectTemplate:
    day_bucket: str
    epoch_seconds: str
    bigint_sum: str
    naive_bounds: bool = False
    bound_column: str = "{col}"

    def sum_of(self, expression: str) -> str:
        return self.bigint_sum.format(expr=expression)


DIALECTS: Dict[str, DialectTemplate] = {
    "postgresql": DialectTemplate(
        day_bucket="date_trunc('day', {col})",
        epoch_seconds="EXTRACT(EPOCH FROM {col})::bigint",
        bigint_sum="SUM({expr})::bigint",
    ),
    "sqlite": DialectTemplate(
        day_bucket="datetime({col}, 'start of day')",
        epoch_seconds="CAST(strftime('%s', {col}) AS INTEGER)",
        bigint_sum="SUM({expr})",
        naive_bounds=True,
        bound_column="datetime({col})",
    ),
    "mysql": DialectTemplate(
        day_bucket="TIMESTAMP(DATE({col}))",
        epoch_seconds="UNIX_TIMESTAMP({col})",
        bigint_sum="CAST(SUM({expr}) AS SIGNED)",
    ),
}


def dialect_template(dialect: str) -> DialectTemplate:
    template = DIALECTS.get((dialect or "").lower())
    if template is None:
        raise ConfigError(
            f"unsupported source dialect '{dialect}' (supported: {', '.join(sorted(DIALECTS))})"
        )
    return template


def build_fingerprint_plan(source: SourceConfig, window: DateRange, dialect: str) -> QueryPlan:
    template = dialect_template(dialect)
    ts = source.timestamp_column
    bucket = template.day_bucket.format(col=ts)
    id_expr = source.id_column
    if source.id_modulus:
        id_expr = f"{source.id_column} % {source.id_modulus}"
    start, end = window.bounds()
    if template.naive_bounds:
        # sqlite compares timestamps as text; datetime() brings stored offsets to UTC first
        start_param: Any = start.strftime("%Y-%m-%d %H:%M:%S")
        end_param: Any = end.strftime("%Y-%m-%d %H:%M:%S")
    else:
        start_param, end_param = start, end
    plan = QueryPlan(
        selects=(
            SelectItem(expression=bucket, alias="bucket_key"),
            SelectItem(expression="COUNT(*)", alias="row_count"),
            SelectItem(expression=template.sum_of(id_expr), alias="checksum_a"),
            SelectItem(
                expression=template.sum_of(template.epoch_seconds.format(col=ts)),
                alias="checksum_b",
            ),
        ),
        source=source.table,
        group_by=(bucket,),
        order_by=(OrderItem(expression="bucket_key"),),
    )
    bounded = template.bound_column.format(col=ts)
    plan = plan.with_filter(f"{bounded} >= :first_day", first_day=start_param)
    return plan.with_filter(f"{bounded} < :end_day", end_day=end_param)


def normalize_bucket_key(value: Any) -> datetime:
    """Return the UTC midnight of the day ``value`` falls on.

    Drivers hand back aware datetimes, naive datetimes (taken as UTC), plain
    dates or ISO strings depending on the backend.
    """
    if isinstance(value, str):
        text = value.strip().replace(" UTC", "+00:00")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as exc:
            raise QueryError(f"bucket_key is not a timestamp: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise QueryError(f"bucket_key has unexpected type {type(value).__name__}")


def _as_int(value: Any, column: str) -> int:
    if value is None:
        # SUM over a day whose id/timestamp values are all NULL
        return 0
    if isinstance(value, bool):
        raise QueryError(f"{column} has unexpected type bool")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise QueryError(f"{column} is not an integer: {value}")
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise QueryError(f"{column} is not an integer: {value!r}")


def decode_fingerprints(result: QueryResult) -> Dict[datetime, AggregateRow]:
    fingerprints: Dict[datetime, AggregateRow] = {}
    for row in result.rows:
        missing = [column for column in FINGERPRINT_COLUMNS if not row.has(column)]
        if missing:
            raise QueryError(f"result is missing column(s): {', '.join(missing)}")
        key = normalize_bucket_key(row.get("bucket_key"))
        if key in fingerprints:
            raise QueryError(f"duplicate bucket_key {key:%Y-%m-%d} in result")
        fingerprints[key] = AggregateRow(
            bucket_key=key,
            row_count=_as_int(row.get("row_count"), "row_count"),
            checksum_a=_as_int(row.get("checksum_a"), "checksum_a"),
            checksum_b=_as_int(row.get("checksum_b"), "checksum_b"),
        )
    return fingerprints


def fetch_fingerprints(endpoint: SupportsQueryExecution, plan: QueryPlan) -> Dict[datetime, AggregateRow]:
    return decode_fingerprints(endpoint.execute_query_plan(plan))


__all__ = [
    "AggregateRow",
    "DIALECTS",
    "build_fingerprint_plan",
    "decode_fingerprints",
    "fetch_fingerprints",
    "normalize_bucket_key",
]
