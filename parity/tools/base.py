from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class QueryRequest:
    sql: str
    params: Mapping[str, Any] = field(default_factory=dict)


class ExecutionTool(abc.ABC):
    """Runs read-only SQL against one source and hands back plain dict rows."""

    #: SQLAlchemy dialect name of the source (``postgresql``, ``sqlite``, ...)
    dialect: str = "generic"

    @abc.abstractmethod
    def query(self, request: QueryRequest) -> List[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        ...

    def __enter__(self) -> "ExecutionTool":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.stop()
