from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


@dataclass(frozen=True)
class SelectItem:
    expression: str
    alias: Optional[str] = None

    def render(self) -> str:
        return f"{self.expression} AS {self.alias}" if self.alias else self.expression


@dataclass(frozen=True)
class OrderItem:
    expression: str
    descending: bool = False

    def render(self) -> str:
        suffix = " DESC" if self.descending else ""
        return f"{self.expression}{suffix}"


@dataclass(frozen=True)
class QueryPlan:
    selects: Sequence[SelectItem]
    source: Optional[str] = None
    filters: Sequence[str] = field(default_factory=tuple)
    group_by: Sequence[str] = field(default_factory=tuple)
    order_by: Sequence[OrderItem] = field(default_factory=tuple)
    params: Mapping[str, Any] = field(default_factory=dict)

    def with_filter(self, predicate: Optional[str], **params: Any) -> "QueryPlan":
        if not predicate:
            return self
        merged = dict(self.params)
        merged.update(params)
        return QueryPlan(
            selects=self.selects,
            source=self.source,
            filters=(*self.filters, predicate),
            group_by=self.group_by,
            order_by=self.order_by,
            params=merged,
        )


@dataclass
class ResultRow:
    values: Dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.values:
            return self.values[key]
        lowered = key.lower()
        for name, value in self.values.items():
            if name.lower() == lowered:
                return value
        return default

    def has(self, key: str) -> bool:
        lowered = key.lower()
        return any(name.lower() == lowered for name in self.values)


@dataclass
class QueryResult:
    rows: List[ResultRow]

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "QueryResult":
        return cls(rows=[ResultRow(values=dict(record)) for record in records])

    def __len__(self) -> int:
        return len(self.rows)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [dict(row.values) for row in self.rows]
