from __future__ import annotations

from typing import Any, Optional

from .common import PrintLogger


def emit_log(
    emitter: Any = None,
    *,
    level: str = "INFO",
    msg: str,
    logger: Optional[PrintLogger] = None,
    **fields: Any,
) -> None:
    """Route a structured event to ``logger``; a missing logger drops it.

    ``emitter`` is an optional callable that also receives ``(level, msg, fields)``.
    """
    if emitter is not None:
        emitter(level, msg, dict(fields))
    if logger is None:
        return
    getattr(logger, level.lower(), logger.info)(msg, **fields)


__all__ = ["emit_log"]
