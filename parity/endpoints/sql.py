from __future__ import annotations

from parity.query.plan import QueryPlan, QueryResult, SelectItem
from parity.tools.base import ExecutionTool, QueryRequest

from .base import SupportsQueryExecution


def render_sql(plan: QueryPlan, table_name: str) -> str:
    selects = plan.selects or (SelectItem(expression="*"),)
    select_clause = ", ".join(sel.render() for sel in selects)
    where_clause = ""
    if plan.filters:
        where_clause = " WHERE " + " AND ".join(f"({expr})" for expr in plan.filters)
    group_clause = ""
    if plan.group_by:
        group_clause = " GROUP BY " + ", ".join(plan.group_by)
    order_clause = ""
    if plan.order_by:
        order_clause = " ORDER BY " + ", ".join(order.render() for order in plan.order_by)
    return f"SELECT {select_clause} FROM {table_name}{where_clause}{group_clause}{order_clause}"


class SqlTableEndpoint(SupportsQueryExecution):
    """A single table reached through an :class:`ExecutionTool`."""

    def __init__(self, tool: ExecutionTool, table_name: str) -> None:
        self.tool = tool
        self.table_name = table_name
        self.dialect = tool.dialect

    def execute_query_plan(self, plan: QueryPlan) -> QueryResult:
        table_name = plan.source or self.table_name
        sql = render_sql(plan, table_name)
        rows = self.tool.query(QueryRequest(sql=sql, params=dict(plan.params)))
        return QueryResult.from_records(rows)
