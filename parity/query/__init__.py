from .plan import OrderItem, QueryPlan, QueryResult, ResultRow, SelectItem

__all__ = ["OrderItem", "QueryPlan", "QueryResult", "ResultRow", "SelectItem"]
