from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ..common import PrintLogger
from ..errors import ConfigError, ConnectError, QueryError
from ..events import emit_log
from .base import ExecutionTool, QueryRequest

_JDBC_SCHEMES = {
    "postgresql": ("postgresql", 5432, "org.postgresql.Driver"),
    "mysql": ("mysql", 3306, "com.mysql.cj.jdbc.Driver"),
}

# connection properties that pin the database session to UTC
_JDBC_UTC_PROPERTIES = {
    "postgresql": {"options": "-c timezone=UTC"},
    "mysql": {"connectionTimeZone": "UTC", "forceConnectionTimeZoneToSession": "true"},
}

SESSION_DEFAULTS = {
    "spark.sql.session.timeZone": "UTC",
    "spark.driver.extraJavaOptions": "-Duser.timezone=UTC",
    "spark.executor.extraJavaOptions": "-Duser.timezone=UTC",
}

_PARAM_RE = re.compile(r"(?<![:\w]):(\w+)")


def jdbc_options(url: str) -> Dict[str, str]:
    """Translate a SQLAlchemy URL into Spark JDBC reader options."""
    try:
        parsed = make_url(url)
    except ArgumentError as exc:
        raise ConfigError(f"invalid connection string: {exc}") from exc
    backend = parsed.get_backend_name()
    if backend not in _JDBC_SCHEMES:
        raise ConfigError(f"spark engine does not support '{backend}' sources")
    scheme, default_port, driver = _JDBC_SCHEMES[backend]
    host = parsed.host or "localhost"
    port = parsed.port or default_port
    options = {
        "url": f"jdbc:{scheme}://{host}:{port}/{parsed.database or ''}",
        "driver": driver,
    }
    options.update(_JDBC_UTC_PROPERTIES[backend])
    if parsed.username:
        options["user"] = parsed.username
    if parsed.password:
        options["password"] = str(parsed.password)
    return options


def spark_session_conf(spark_cfg: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Session settings: UTC defaults overlaid with the configured ``conf`` block."""
    conf: Dict[str, Any] = dict(SESSION_DEFAULTS)
    conf.update((spark_cfg or {}).get("conf") or {})
    return conf


def inline_params(sql: str, params: Mapping[str, Any]) -> str:
    """Replace ``:name`` placeholders with quoted literals.

    Only dates, datetimes and numbers are accepted; JDBC ``query`` pushdown has
    no bind parameters. Aware datetimes keep their UTC offset.
    """

    def _literal(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in params:
            raise QueryError(f"missing value for parameter :{name}")
        value = params[name]
        if isinstance(value, datetime):
            return f"'{value.isoformat(sep=' ')}'"
        if isinstance(value, date):
            return f"'{value.isoformat()}'"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise QueryError(f"cannot inline parameter :{name} of type {type(value).__name__}")

    return _PARAM_RE.sub(_literal, sql)


def _as_utc(value: Any) -> Any:
    # collect() returns timestamps as naive datetimes in the local zone
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.astimezone(timezone.utc)
    return value


class SparkTool(ExecutionTool):
    def __init__(
        self,
        spark,
        url: str,
        *,
        driver: Optional[str] = None,
        logger: Optional[PrintLogger] = None,
    ) -> None:
        self.spark = spark
        self.reader_options = jdbc_options(url)
        if driver:
            self.reader_options["driver"] = driver
        self.dialect = make_url(url).get_backend_name()
        self.logger = logger

    def query(self, request: QueryRequest) -> List[Dict[str, Any]]:
        sql = inline_params(request.sql, request.params)
        reader = self.spark.read.format("jdbc")
        for key, value in self.reader_options.items():
            reader = reader.option(key, value)
        try:
            frame = reader.option("query", sql).load()
            rows = frame.collect()
        except Exception as exc:
            message = str(exc).strip().splitlines()[0] if str(exc).strip() else type(exc).__name__
            if "connect" in message.lower():
                raise ConnectError(f"jdbc connection failed: {message}") from exc
            raise QueryError(f"jdbc query failed: {message}") from exc
        emit_log(None, level="DEBUG", msg="spark_jdbc_query", rows=len(rows), logger=self.logger)
        return [
            {key: _as_utc(value) for key, value in row.asDict(recursive=True).items()}
            for row in rows
        ]

    @classmethod
    def from_config(
        cls,
        url: str,
        spark_cfg: Optional[Mapping[str, Any]] = None,
        *,
        logger: Optional[PrintLogger] = None,
    ) -> "SparkTool":
        try:
            from pyspark.sql import SparkSession
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise ConfigError("the spark engine requires the 'pyspark' package") from exc
        spark_cfg = dict(spark_cfg or {})
        builder = SparkSession.builder.appName(str(spark_cfg.get("app_name", "dayrecon")))
        if spark_cfg.get("master"):
            builder = builder.master(str(spark_cfg["master"]))
        for key, value in spark_session_conf(spark_cfg).items():
            builder = builder.config(key, value)
        spark = builder.getOrCreate()
        return cls(spark, url, driver=spark_cfg.get("jdbc_driver"), logger=logger)

    def stop(self) -> None:
        # the session is process-wide and shared by both sides
        self.spark = None
