from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict, List, NoReturn, Optional, TextIO

import colorama

from parity.common import PrintLogger
from parity.endpoints.factory import ENGINES
from parity.errors import ReconError
from parity.events import emit_log

from .config import DEFAULT_TABLE, build_recon_config, load_config_file
from .report import NOT_MATCHING_NOTICE, render_report, report_to_dict
from .runner import run_reconciliation

EXIT_PASS = 0
EXIT_FAIL = 1


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors are fatal errors like any other and exit with ``EXIT_FAIL``."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAIL, f"{self.prog}: error: {message}\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        prog="dayrecon",
        description="Compare per-day row counts and checksums of the same table in two databases.",
    )
    parser.add_argument(
        "--database-a",
        metavar="CONNECTION_STRING",
        help="SQLAlchemy connection string for database A",
        default=None,
    )
    parser.add_argument(
        "--database-b",
        metavar="CONNECTION_STRING",
        help="SQLAlchemy connection string for database B",
        default=None,
    )
    parser.add_argument("--table-a", help=f"Table to read in database A (default: {DEFAULT_TABLE})", default=None)
    parser.add_argument("--table-b", help=f"Table to read in database B (default: {DEFAULT_TABLE})", default=None)
    parser.add_argument("--first-day", help="First day to compare (YYYYMMDD, inclusive)", default=None)
    parser.add_argument("--last-day", help="Last day to compare (YYYYMMDD, inclusive)", default=None)
    parser.add_argument("--config", help="Optional JSON configuration file", default=None)
    parser.add_argument(
        "--engine",
        choices=list(ENGINES),
        default=None,
        help="Execution engine to use (default: sqlalchemy)",
    )
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Colorize the report (default: auto)",
    )
    parser.add_argument(
        "--output-json",
        help="Optional path to write the reconciliation result as JSON",
        default=None,
    )
    return parser.parse_args(argv)


def _use_color(choice: str, stream: TextIO) -> bool:
    if choice == "always":
        return True
    if choice == "never" or os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def run_cli(
    argv: Optional[List[str]] = None,
    *,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
    logger: Optional[PrintLogger] = None,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        # --help exits 0; usage errors exit EXIT_FAIL
        return EXIT_FAIL if exc.code else EXIT_PASS
    try:
        file_cfg: Dict[str, Any] = load_config_file(args.config) if args.config else {}
        cfg = build_recon_config(args, file_cfg)
        logger = logger or PrintLogger(
            job_name=cfg.job_name,
            file_path=cfg.runtime.get("log_file"),
            level=str(cfg.runtime.get("log_level", "INFO")),
            stream=err,
        )
        report = run_reconciliation(cfg, logger)
    except ReconError as exc:
        emit_log(
            None,
            level="ERROR",
            msg="recon_failed",
            error_type=type(exc).__name__,
            err=str(exc),
            logger=logger,
        )
        print(f"error: {exc}", file=err)
        return EXIT_FAIL

    render_report(report, out, color=_use_color(args.color, out))
    if args.output_json:
        with open(args.output_json, "w", encoding="utf-8") as handle:
            json.dump(report_to_dict(report), handle, indent=2, sort_keys=True)
    if not report.passed:
        print(NOT_MATCHING_NOTICE, file=err)
        return EXIT_FAIL
    return EXIT_PASS


def main(argv: Optional[List[str]] = None) -> None:
    colorama.just_fix_windows_console()
    raise SystemExit(run_cli(argv))


__all__ = ["main", "parse_args", "run_cli"]
