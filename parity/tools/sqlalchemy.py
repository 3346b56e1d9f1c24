from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import ArgumentError, DBAPIError, NoSuchModuleError, SQLAlchemyError

from ..common import PrintLogger
from ..errors import ConfigError, ConnectError, QueryError
from ..events import emit_log
from .base import ExecutionTool, QueryRequest


class SQLAlchemyTool(ExecutionTool):
    def __init__(
        self,
        engine: Engine,
        *,
        retries: int = 2,
        backoff_seconds: float = 1.0,
        logger: Optional[PrintLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._engine = engine
        self.dialect = engine.dialect.name
        self.retries = max(0, int(retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.logger = logger
        self._sleep = sleep

    def _connect(self) -> Connection:
        attempt = 0
        while True:
            try:
                return self._engine.connect()
            except (DBAPIError, OSError) as exc:
                if attempt >= self.retries:
                    raise ConnectError(
                        f"could not connect after {attempt + 1} attempt(s): {_short(exc)}"
                    ) from exc
                delay = self.backoff_seconds * (2 ** attempt)
                emit_log(
                    None,
                    level="WARN",
                    msg="fetch_retry",
                    logger=self.logger,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                    err=_short(exc),
                )
                self._sleep(delay)
                attempt += 1

    def query(self, request: QueryRequest) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            try:
                result = conn.execute(text(request.sql), dict(request.params))
                return [dict(row._mapping) for row in result]
            except SQLAlchemyError as exc:
                raise QueryError(f"query failed: {_short(exc)}") from exc

    @classmethod
    def from_url(
        cls,
        url: str,
        engine_options: Optional[Mapping[str, Any]] = None,
        *,
        retries: int = 2,
        backoff_seconds: float = 1.0,
        logger: Optional[PrintLogger] = None,
    ) -> "SQLAlchemyTool":
        if not url:
            raise ConfigError("a connection string must be provided")
        options = dict(engine_options or {})
        try:
            if url.startswith("postgresql") and "connect_args" not in options:
                # day buckets are computed by the server in its session time zone
                options["connect_args"] = {"options": "-c timezone=UTC"}
            engine = create_engine(url, **options)
        except (ArgumentError, NoSuchModuleError) as exc:
            raise ConfigError(f"invalid connection string: {exc}") from exc
        except ImportError as exc:
            raise ConfigError(f"database driver for '{_backend(url)}' is not installed: {exc}") from exc
        return cls(engine, retries=retries, backoff_seconds=backoff_seconds, logger=logger)

    def stop(self) -> None:
        if self._engine:
            self._engine.dispose()


def _backend(url: str) -> str:
    return url.split("://", 1)[0]


def _short(exc: BaseException) -> str:
    message = str(getattr(exc, "orig", None) or exc).strip()
    return message.splitlines()[0] if message else exc.__class__.__name__


__all__ = ["SQLAlchemyTool"]
