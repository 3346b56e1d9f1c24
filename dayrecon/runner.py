from __future__ import annotations

import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from parity.common import PrintLogger
from parity.endpoints.factory import EndpointFactory
from parity.errors import FetchError
from parity.events import emit_log
from parity.query.plan import QueryPlan
from parity.tools.base import ExecutionTool

from .config import ReconConfig
from .context import ReconContext
from .diff import DiffReport, diff_fingerprints
from .fingerprint import AggregateRow, build_fingerprint_plan, fetch_fingerprints

ToolFactory = Callable[[str, Dict[str, Any], Optional[PrintLogger]], ExecutionTool]
Fingerprints = Dict[datetime, AggregateRow]


def _prepare_contexts(
    cfg: ReconConfig,
    logger: PrintLogger,
    tool_factory: ToolFactory,
) -> List[Tuple[ReconContext, QueryPlan]]:
    """Build both tools and plans up front; nothing here touches the network."""
    prepared: List[Tuple[ReconContext, QueryPlan]] = []
    tools: List[ExecutionTool] = []
    try:
        for source in cfg.sources:
            tool = tool_factory(source.url, cfg.runtime, logger)
            tools.append(tool)
            ctx = ReconContext(
                source=source,
                window=cfg.window,
                tool=tool,
                endpoint=EndpointFactory.build_source(tool, source.table),
                logger=logger,
            )
            prepared.append((ctx, build_fingerprint_plan(source, cfg.window, ctx.endpoint.dialect)))
    except Exception:
        for tool in tools:
            tool.stop()
        raise
    return prepared


def _fetch_side(ctx: ReconContext, plan: QueryPlan) -> Fingerprints:
    emit_log(
        None,
        level="INFO",
        msg="fetch_start",
        logger=ctx.logger,
        side=ctx.label,
        url=ctx.source.display_url,
        table=ctx.source.table,
    )
    started = time.monotonic()
    try:
        fingerprints = fetch_fingerprints(ctx.endpoint, plan)
    except FetchError as exc:
        if exc.side is None:
            exc.side = ctx.label
        raise
    finally:
        ctx.tool.stop()
    emit_log(
        None,
        level="INFO",
        msg="fetch_complete",
        logger=ctx.logger,
        side=ctx.label,
        buckets=len(fingerprints),
        elapsed_seconds=round(time.monotonic() - started, 3),
    )
    return fingerprints


def fetch_both(prepared: List[Tuple[ReconContext, QueryPlan]]) -> Tuple[Fingerprints, Fingerprints]:
    """Fetch both sides concurrently and join; the first failure aborts the run."""
    executor = ThreadPoolExecutor(max_workers=len(prepared), thread_name_prefix="dayrecon-fetch")
    futures: List[Future] = [executor.submit(_fetch_side, ctx, plan) for ctx, plan in prepared]
    try:
        done, _pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in futures:
            if future in done and future.exception() is not None:
                for other, (ctx, _plan) in zip(futures, prepared):
                    if other.cancel():
                        ctx.tool.stop()
                raise future.exception()
        map_a, map_b = (future.result() for future in futures)
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
    return map_a, map_b


def run_reconciliation(
    cfg: ReconConfig,
    logger: PrintLogger,
    *,
    tool_factory: ToolFactory = EndpointFactory.build_tool,
) -> DiffReport:
    emit_log(
        None,
        level="INFO",
        msg="recon_start",
        logger=logger,
        first_day=cfg.window.first_day.isoformat(),
        last_day=cfg.window.last_day.isoformat(),
        days=cfg.window.days,
        engine=cfg.runtime.get("engine", "sqlalchemy"),
    )
    prepared = _prepare_contexts(cfg, logger, tool_factory)
    map_a, map_b = fetch_both(prepared)
    report = diff_fingerprints(map_a, map_b)
    counts = report.counts()
    emit_log(
        None,
        level="INFO",
        msg="recon_complete",
        logger=logger,
        verdict=report.verdict.value,
        **{status.value: count for status, count in counts.items()},
    )
    return report


__all__ = ["fetch_both", "run_reconciliation"]
