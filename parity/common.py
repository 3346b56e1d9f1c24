from __future__ import annotations

import json
import sys
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

RUN_ID = uuid.uuid4().hex

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class PrintLogger:
    """Structured line logger writing one JSON record per event.

    Records go to ``stream`` (stderr by default, stdout is reserved for the
    report) and are appended to ``file_path`` when one is configured.
    """

    def __init__(
        self,
        job_name: str = "dayrecon",
        file_path: Optional[str] = None,
        level: str = "INFO",
        stream: Optional[TextIO] = None,
    ) -> None:
        self.job_name = job_name
        self.file_path = file_path
        self.level = _normalize_level(level)
        self.stream = stream
        self._lock = threading.Lock()

    def enabled_for(self, level: str) -> bool:
        return _LEVELS[_normalize_level(level)] >= _LEVELS[self.level]

    def log(self, level: str, msg: str, **fields: Any) -> None:
        level = _normalize_level(level)
        if not self.enabled_for(level):
            return
        record: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": level,
            "job": self.job_name,
            "run_id": RUN_ID,
            "msg": msg,
        }
        record.update({key: value for key, value in fields.items() if value is not None})
        line = json.dumps(record, default=str, sort_keys=False)
        # fetch threads log concurrently
        with self._lock:
            stream = self.stream or sys.stderr
            print(line, file=stream, flush=True)
            if self.file_path:
                with open(self.file_path, "a", encoding="utf-8") as handle:
                    handle.write(line + "\n")

    def debug(self, msg: str, **fields: Any) -> None:
        self.log("DEBUG", msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log("INFO", msg, **fields)

    def warn(self, msg: str, **fields: Any) -> None:
        self.log("WARN", msg, **fields)

    warning = warn

    def error(self, msg: str, **fields: Any) -> None:
        self.log("ERROR", msg, **fields)


def _normalize_level(level: str) -> str:
    value = str(level or "INFO").strip().upper()
    if value == "WARNING":
        value = "WARN"
    if value not in _LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    return value


__all__ = ["PrintLogger", "RUN_ID"]
