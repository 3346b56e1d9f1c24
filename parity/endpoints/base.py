from __future__ import annotations

import abc

from parity.query.plan import QueryPlan, QueryResult


class SupportsQueryExecution(abc.ABC):
    """Endpoint able to run a :class:`QueryPlan` against its table."""

    dialect: str = "generic"

    @abc.abstractmethod
    def execute_query_plan(self, plan: QueryPlan) -> QueryResult:
        ...
