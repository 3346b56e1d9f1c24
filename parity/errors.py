from __future__ import annotations

from typing import Optional


class ReconError(Exception):
    """Base class for every fatal reconciliation error."""


class ConfigError(ReconError, ValueError):
    """Invalid input detected before any source is contacted."""


class FetchError(ReconError, RuntimeError):
    """Fetching aggregates from one source failed."""

    def __init__(self, message: str, *, side: Optional[str] = None) -> None:
        super().__init__(message)
        self.side = side

    def __str__(self) -> str:
        message = super().__str__()
        if self.side:
            return f"database {self.side}: {message}"
        return message


class ConnectError(FetchError):
    """A connection to the source could not be established."""


class QueryError(FetchError):
    """The aggregation query failed or returned something undecodable."""


__all__ = ["ReconError", "ConfigError", "FetchError", "ConnectError", "QueryError"]
