"""
Logging module for schemaflow with dev/user modes

Dev mode: Detailed logging for debugging (lookup map samples, row counts, prompts)
User mode: Clean, simple logging showing only important steps
JSON mode: Structured JSON-Lines output for external integrations
"""
from __future__ import annotations

import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    """Logging levels"""
    USER = "user"      # Simple, clean logging for end users
    DEV = "dev"        # Detailed logging for developers
    DEBUG = "debug"    # Very verbose logging


class LogFormat(Enum):
    """Log output formats"""
    TEXT = "text"      # Human-readable text with colors
    JSON = "json"      # Structured JSON-Lines format


_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_GRAY = "\033[90m"


class Logger:
    """Pipeline logger with configurable verbosity and output format"""

    def __init__(self, level: LogLevel = LogLevel.USER, format: LogFormat = LogFormat.TEXT):
        self.configure(level, format)

    def configure(self, level: LogLevel, format: LogFormat) -> None:
        self.level = level
        self.format = format
        self._colors_enabled = sys.stdout.isatty() and format == LogFormat.TEXT
        self._json_logger = None

        if format == LogFormat.JSON:
            from schemaflow.common.json_formatter import JSONLogger
            self._json_logger = JSONLogger()

    def _timestamp(self) -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _format_message(self, msg: str, prefix: str = "", color: str = "") -> str:
        ts = self._timestamp()
        if self._colors_enabled and color:
            return f"{color}[{ts}]{prefix} {msg}\033[0m"
        return f"[{ts}]{prefix} {msg}"

    @property
    def verbose(self) -> bool:
        return self.level in (LogLevel.DEV, LogLevel.DEBUG)

    # ========== USER-LEVEL LOGGING (Always shown) ==========

    def info(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.info(msg)
        else:
            print(self._format_message(msg, color=_CYAN))

    def success(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.success(msg)
        else:
            print(self._format_message(msg, prefix=" [OK]", color=_GREEN))

    def warning(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.warning(msg)
        else:
            print(self._format_message(msg, prefix=" [WARN]", color=_YELLOW))

    def error(self, msg: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.error(msg)
        else:
            print(self._format_message(msg, prefix=" [ERROR]", color=_RED))

    # ========== DEV-LEVEL LOGGING (Shown in dev/debug modes) ==========

    def dev(self, msg: str) -> None:
        if self.verbose:
            if self.format == LogFormat.JSON:
                self._json_logger.debug(msg)
            else:
                print(self._format_message(msg, prefix=" [DEV]", color=_GRAY))

    def dev_detail(self, label: str, value: Any) -> None:
        if self.verbose:
            if self.format == LogFormat.JSON:
                self._json_logger.debug(f"{label}: {value}", data={"label": label, "value": str(value)})
            else:
                print(self._format_message(f"{label}: {value}", prefix=" [DEV]", color=_GRAY))

    # ========== DEBUG-LEVEL LOGGING (Shown only in debug mode) ==========

    def debug(self, msg: str) -> None:
        if self.level == LogLevel.DEBUG:
            if self.format == LogFormat.JSON:
                self._json_logger.debug(msg)
            else:
                print(self._format_message(msg, prefix=" [DEBUG]", color=_GRAY))

    # ========== PIPELINE LOGGING ==========

    def pipeline_start(self, source: str, table_count: int) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.pipeline_start(source, table_count)
        else:
            self.info(f"Starting pipeline: {source} ({table_count} tables planned)")

    def pipeline_summary(self, total: int, success: int, failed: int, skipped: int, elapsed: float) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.pipeline_summary(total, success, failed, skipped, elapsed)
        else:
            line = "=" * 60
            print(f"\n{line}")
            print("PIPELINE SUMMARY")
            print(line)
            print(f"  Total Tables:  {total}")
            print(f"  Success:       {success}")
            if failed > 0:
                print(f"  Failed:        {failed}")
            if skipped > 0:
                print(f"  Skipped:       {skipped}")
            print(f"  Elapsed Time:  {elapsed:.2f}s")
            print(line)

    def pipeline_failed(self, error: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.pipeline_failed(error)
        else:
            self.error(f"Pipeline failed: {error}")

    # ========== PLANNER LOGGING ==========

    def plan_received(self, tables: Dict[str, Dict[str, Any]]) -> None:
        """Log a one-line summary per planned table"""
        if self.format == LogFormat.JSON:
            self._json_logger.plan_received(tables)
            return
        self.info(f"Schema plan received ({len(tables)} tables)")
        for name, details in tables.items():
            natural_key = ", ".join(details.get("natural_key_for_uniqueness") or [])
            self.info(f"  - Table '{name}' (PK: {details.get('primary_key')}, Natural Key: [{natural_key}])")

    def planner_failed(self, error: str, fallback_table: Optional[str] = None) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.planner_failed(error, fallback_table)
        else:
            self.warning(f"Schema planner failed: {error}")
            if fallback_table:
                self.warning(f"Falling back to a single flat table: {fallback_table}")

    # ========== TABLE LOGGING ==========

    def table_start(self, table_name: str, kind: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.table_start(table_name, kind)
        elif self.level == LogLevel.USER:
            print(self._format_message(f"[{kind}] {table_name}", color=_CYAN))
        else:
            print(self._format_message(f"[{kind}] Processing: {table_name}", color=_CYAN))

    def table_success(self, table_name: str, kind: str, stats: Dict[str, Any]) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.table_success(table_name, kind, stats)
        elif self.level == LogLevel.USER:
            self.success(f"[{kind}] {table_name} - {stats.get('rows_out', 0)} rows")
        else:
            self.success(
                f"[{kind}] {table_name}: {stats.get('rows_in', 0)} rows in -> "
                f"{stats.get('rows_out', 0)} unique rows"
            )

    def table_failed(self, table_name: str, error: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.table_failed(table_name, error)
        else:
            self.error(f"{table_name} FAILED: {error}")

    def table_skipped(self, table_name: str, reason: str = "") -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.table_skipped(table_name, reason)
        else:
            msg = f"{table_name} skipped"
            if reason:
                msg += f": {reason}"
            self.warning(msg)

    def lookup_sample(self, table_name: str, lookup_map: Dict[str, str], size: int = 5) -> None:
        """Dev-only peek at the first entries of a lookup map"""
        if self.verbose:
            sample = dict(list(lookup_map.items())[:size])
            self.dev_detail(f"  Lookup map for '{table_name}' (sample)", sample)

    # ========== STORAGE LOGGING ==========

    def store_connect(self, store_type: str, path: str) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.store_connect(store_type, path)
        elif self.level != LogLevel.USER:
            self.info(f"{store_type.upper()} store opened: {path}")

    def store_write(self, table_name: str, rows: int) -> None:
        self.dev(f"    Saved {rows} rows to table '{table_name}'")

    # ========== REPORT LOGGING ==========

    def report_start(self, title: str, tables: List[str]) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.report_start(title, tables)
        else:
            self.info(f"Generating report: \"{title}\"")
            self.dev_detail("  Tables", ", ".join(tables))

    def report_success(self, title: str, rows: int) -> None:
        if self.format == LogFormat.JSON:
            self._json_logger.report_success(title, rows)
        else:
            self.success(f"Report ready: \"{title}\" ({rows} rows)")


# Global logger instance
_logger: Optional[Logger] = None


def get_logger() -> Logger:
    """Get the global logger instance"""
    global _logger
    if _logger is None:
        _logger = Logger(LogLevel.USER)
    return _logger


def init_logger(level: LogLevel | str = LogLevel.USER, format: LogFormat | str = LogFormat.TEXT) -> Logger:
    """Initialize and return the global logger"""
    global _logger
    if isinstance(level, str):
        level = LogLevel(level.lower())
    if isinstance(format, str):
        format = LogFormat(format.lower())

    # Reconfigure in place: modules keep the instance they got at import time
    if _logger is None:
        _logger = Logger(level, format)
    else:
        _logger.configure(level, format)
    return _logger
