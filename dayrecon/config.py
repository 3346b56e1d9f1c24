from __future__ import annotations

import argparse
import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from parity.endpoints.factory import ENGINES
from parity.errors import ConfigError

DEFAULT_TABLE = "predictions"
DEFAULT_TIMESTAMP_COLUMN = "tmstmp"
DEFAULT_ID_COLUMN = "id"
DEFAULT_ID_MODULUS = 10
MAX_IDENTIFIER_LENGTH = 63
SIDES = ("a", "b")

_NON_DIGIT = re.compile(r"\D")
_NON_ALPHA = re.compile(r"[^A-Za-z]")


def parse_day(value: Any, *, name: str = "day") -> date:
    """Parse an 8-digit ``YYYYMMDD`` day; separators such as ``-`` are ignored."""
    if value is None:
        raise ConfigError(f"{name} is required")
    digits = _NON_DIGIT.sub("", str(value))
    if len(digits) != 8:
        raise ConfigError(f"{name} must contain exactly 8 digits (YYYYMMDD), got {value!r}")
    try:
        return datetime.strptime(digits, "%Y%m%d").date()
    except ValueError as exc:
        raise ConfigError(f"{name} is not a calendar date: {value!r}") from exc


def sanitize_identifier(value: Any, *, name: str = "identifier") -> str:
    """Keep only alphabetic characters so the value can be interpolated into SQL."""
    cleaned = _NON_ALPHA.sub("", str(value or ""))
    if not cleaned:
        raise ConfigError(f"{name} is empty after removing non-alphabetic characters: {value!r}")
    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise ConfigError(f"{name} exceeds {MAX_IDENTIFIER_LENGTH} characters: {cleaned!r}")
    return cleaned


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    first_day: date
    last_day: date

    def __post_init__(self) -> None:
        if self.first_day > self.last_day:
            raise ConfigError(
                f"first_day {self.first_day:%Y%m%d} is after last_day {self.last_day:%Y%m%d}"
            )

    @classmethod
    def parse(cls, first_day: Any, last_day: Any) -> "DateRange":
        return cls(parse_day(first_day, name="first_day"), parse_day(last_day, name="last_day"))

    @property
    def end_exclusive(self) -> date:
        return self.last_day + timedelta(days=1)

    def bounds(self) -> Tuple[datetime, datetime]:
        """Half-open ``[start, end)`` bounds as UTC midnights."""
        start = datetime.combine(self.first_day, datetime.min.time(), tzinfo=timezone.utc)
        end = datetime.combine(self.end_exclusive, datetime.min.time(), tzinfo=timezone.utc)
        return start, end

    @property
    def days(self) -> int:
        return (self.last_day - self.first_day).days + 1


@dataclass(frozen=True)
class SourceConfig:
    label: str
    url: str
    table: str = DEFAULT_TABLE
    timestamp_column: str = DEFAULT_TIMESTAMP_COLUMN
    id_column: str = DEFAULT_ID_COLUMN
    id_modulus: int = DEFAULT_ID_MODULUS

    @property
    def display_url(self) -> str:
        try:
            return make_url(self.url).render_as_string(hide_password=True)
        except ArgumentError:
            return "<unparseable>"


@dataclass(frozen=True)
class ReconConfig:
    source_a: SourceConfig
    source_b: SourceConfig
    window: DateRange
    runtime: Dict[str, Any] = field(default_factory=dict)

    @property
    def sources(self) -> Tuple[SourceConfig, SourceConfig]:
        return self.source_a, self.source_b

    @property
    def job_name(self) -> str:
        return str(self.runtime.get("job_name", "dayrecon"))


def load_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            cfg = json.load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc.strerror or exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return cfg


def validate_runtime(runtime: Dict[str, Any]) -> None:
    engine = str(runtime.get("engine", "sqlalchemy")).lower()
    if engine not in ENGINES:
        raise ConfigError(f"runtime.engine must be one of {', '.join(ENGINES)}")
    retries = runtime.get("retries", 2)
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
        raise ConfigError("runtime.retries must be a non-negative integer")
    backoff = runtime.get("retry_backoff_seconds", 1.0)
    if isinstance(backoff, bool) or not isinstance(backoff, (int, float)) or backoff < 0:
        raise ConfigError("runtime.retry_backoff_seconds must be a non-negative number")
    level = str(runtime.get("log_level", "INFO")).upper()
    if level not in {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}:
        raise ConfigError(f"runtime.log_level is not a known level: {level}")
    for key in ("sqlalchemy", "spark"):
        if runtime.get(key) is not None and not isinstance(runtime[key], dict):
            raise ConfigError(f"runtime.{key} must be an object when provided")


def _build_source(label: str, entry: Dict[str, Any]) -> SourceConfig:
    side = label.lower()
    url = entry.get("url")
    if not url or not isinstance(url, str):
        raise ConfigError(f"a connection string for database {label} is required (--database-{side})")
    modulus = entry.get("id_modulus", DEFAULT_ID_MODULUS)
    if isinstance(modulus, bool) or not isinstance(modulus, int) or modulus < 0:
        raise ConfigError(f"sources.{side}.id_modulus must be a non-negative integer")
    return SourceConfig(
        label=label,
        url=url,
        table=sanitize_identifier(entry.get("table") or DEFAULT_TABLE, name=f"sources.{side}.table"),
        timestamp_column=sanitize_identifier(
            entry.get("timestamp_column") or DEFAULT_TIMESTAMP_COLUMN,
            name=f"sources.{side}.timestamp_column",
        ),
        id_column=sanitize_identifier(
            entry.get("id_column") or DEFAULT_ID_COLUMN,
            name=f"sources.{side}.id_column",
        ),
        id_modulus=modulus,
    )


def build_recon_config(
    args: Optional[argparse.Namespace] = None,
    file_cfg: Optional[Dict[str, Any]] = None,
) -> ReconConfig:
    """Merge CLI flags over the optional config file and validate the result."""
    cfg = dict(file_cfg or {})
    runtime = cfg.get("runtime") or {}
    sources = cfg.get("sources") or {}
    window = cfg.get("window") or {}
    for key, value in (("runtime", runtime), ("sources", sources), ("window", window)):
        if not isinstance(value, dict):
            raise ConfigError(f"{key} must be an object when provided")
    runtime = dict(runtime)
    window = dict(window)
    merged_sources: Dict[str, Dict[str, Any]] = {}
    for side in SIDES:
        entry = sources.get(side) or {}
        if not isinstance(entry, dict):
            raise ConfigError(f"sources.{side} must be an object when provided")
        merged_sources[side] = dict(entry)

    if args is not None:
        for side in SIDES:
            url = getattr(args, f"database_{side}", None)
            table = getattr(args, f"table_{side}", None)
            if url:
                merged_sources[side]["url"] = url
            if table:
                merged_sources[side]["table"] = table
        for key in ("first_day", "last_day"):
            value = getattr(args, key, None)
            if value:
                window[key] = value
        if getattr(args, "engine", None):
            runtime["engine"] = args.engine

    # the window is checked first so a bad range never reaches a connection
    date_range = DateRange.parse(window.get("first_day"), window.get("last_day"))
    validate_runtime(runtime)
    return ReconConfig(
        source_a=_build_source("A", merged_sources["a"]),
        source_b=_build_source("B", merged_sources["b"]),
        window=date_range,
        runtime=runtime,
    )


__all__ = [
    "DEFAULT_TABLE",
    "DateRange",
    "ReconConfig",
    "SourceConfig",
    "build_recon_config",
    "load_config_file",
    "parse_day",
    "sanitize_identifier",
    "validate_runtime",
]
