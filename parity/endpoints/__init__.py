from .base import SupportsQueryExecution
from .factory import EndpointFactory
from .sql import SqlTableEndpoint

__all__ = ["EndpointFactory", "SqlTableEndpoint", "SupportsQueryExecution"]
