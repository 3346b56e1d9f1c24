from __future__ import annotations

from typing import Any, Dict, Optional

from parity.common import PrintLogger
from parity.errors import ConfigError
from parity.tools.base import ExecutionTool

from .sql import SqlTableEndpoint

ENGINES = ("sqlalchemy", "spark")


class EndpointFactory:
    """Construct execution tools and query endpoints from runtime configuration."""

    @staticmethod
    def build_tool(
        url: str,
        runtime_cfg: Dict[str, Any],
        logger: Optional[PrintLogger] = None,
    ) -> ExecutionTool:
        engine = str(runtime_cfg.get("engine", "sqlalchemy")).lower()
        if engine == "spark":
            from parity.tools.spark import SparkTool

            return SparkTool.from_config(url, runtime_cfg.get("spark"), logger=logger)
        if engine == "sqlalchemy":
            from parity.tools.sqlalchemy import SQLAlchemyTool

            return SQLAlchemyTool.from_url(
                url,
                runtime_cfg.get("sqlalchemy"),
                retries=int(runtime_cfg.get("retries", 2)),
                backoff_seconds=float(runtime_cfg.get("retry_backoff_seconds", 1.0)),
                logger=logger,
            )
        raise ConfigError(f"Unsupported engine: {engine}")

    @staticmethod
    def build_source(tool: ExecutionTool, table_name: str) -> SqlTableEndpoint:
        if tool is None:
            raise ValueError("Execution tool required for source endpoint")
        return SqlTableEndpoint(tool, table_name)
