"""
JSON-Lines formatter for structured logging output

Used when the CLI runs with --json so that a wrapping application can parse
and display pipeline progress.

Output format: One JSON object per line (JSON-Lines / NDJSON)
{
    "timestamp": "2025-10-25T10:30:00.123Z",
    "level": "info",
    "category": "pipeline",
    "message": "Starting pipeline",
    "data": {...}  // Optional metadata
}
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JSONLogLevel(str, Enum):
    """JSON log levels matching standard severity"""
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class JSONLogCategory(str, Enum):
    """Log categories for semantic grouping"""
    PIPELINE = "pipeline"
    PLANNER = "planner"
    TABLE = "table"
    READER = "reader"
    STORAGE = "storage"
    REPORT = "report"
    SYSTEM = "system"


class JSONLogger:
    """
    Structured JSON logger that outputs one JSON object per line.

    Each log entry includes:
    - timestamp: ISO 8601 format with timezone
    - level: debug, info, success, warning, error
    - category: Semantic category (pipeline, table, planner, ...)
    - message: Human-readable message
    - data: Optional structured metadata
    """

    def __init__(self, output_stream=None):
        self.output_stream = output_stream or sys.stdout

    def _emit(
        self,
        level: JSONLogLevel,
        category: JSONLogCategory,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "category": category.value,
            "message": message,
        }
        if data:
            entry["data"] = data

        # default=str keeps odd scalars (dates, decimals) from breaking a log line
        self.output_stream.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        self.output_stream.flush()

    # ========== STANDARD LOG LEVELS ==========

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.DEBUG, category, message, data)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.INFO, category, message, data)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.SUCCESS, category, message, data)

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.WARNING, category, message, data)

    def error(self, message: str, data: Optional[Dict[str, Any]] = None, category: JSONLogCategory = JSONLogCategory.SYSTEM) -> None:
        self._emit(JSONLogLevel.ERROR, category, message, data)

    # ========== PIPELINE-SPECIFIC METHODS ==========

    def pipeline_start(self, source: str, table_count: int) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.PIPELINE,
            f"Starting pipeline: {source}",
            {"source": source, "tables": table_count},
        )

    def pipeline_summary(self, total: int, success: int, failed: int, skipped: int, elapsed: float) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.PIPELINE,
            "Pipeline Summary",
            {
                "total_tables": total,
                "success": success,
                "failed": failed,
                "skipped": skipped,
                "elapsed_seconds": round(elapsed, 2),
            },
        )

    def pipeline_failed(self, error: str) -> None:
        self._emit(JSONLogLevel.ERROR, JSONLogCategory.PIPELINE, f"Pipeline failed: {error}", {"error": error})

    def plan_received(self, tables: Dict[str, Dict[str, Any]]) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.PLANNER,
            f"Schema plan received ({len(tables)} tables)",
            {"tables": tables},
        )

    def planner_failed(self, error: str, fallback_table: Optional[str]) -> None:
        data: Dict[str, Any] = {"error": error}
        if fallback_table:
            data["fallback_table"] = fallback_table
        self._emit(JSONLogLevel.WARNING, JSONLogCategory.PLANNER, f"Schema planner failed: {error}", data)

    def table_start(self, table_name: str, kind: str) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.TABLE,
            f"[{kind}] {table_name}",
            {"table": table_name, "kind": kind},
        )

    def table_success(self, table_name: str, kind: str, stats: Dict[str, Any]) -> None:
        self._emit(
            JSONLogLevel.SUCCESS,
            JSONLogCategory.TABLE,
            f"[{kind}] {table_name}: {stats.get('rows_out', 0)} rows",
            {"table": table_name, "kind": kind, **stats},
        )

    def table_failed(self, table_name: str, error: str) -> None:
        self._emit(
            JSONLogLevel.ERROR,
            JSONLogCategory.TABLE,
            f"{table_name} FAILED: {error}",
            {"table": table_name, "error": error},
        )

    def table_skipped(self, table_name: str, reason: str) -> None:
        self._emit(
            JSONLogLevel.WARNING,
            JSONLogCategory.TABLE,
            f"{table_name} skipped: {reason}",
            {"table": table_name, "reason": reason},
        )

    def store_connect(self, store_type: str, path: str) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.STORAGE,
            f"{store_type.upper()} store opened: {path}",
            {"store_type": store_type, "path": path},
        )

    def report_start(self, title: str, tables: list) -> None:
        self._emit(
            JSONLogLevel.INFO,
            JSONLogCategory.REPORT,
            f"Generating report: {title}",
            {"title": title, "tables": tables},
        )

    def report_success(self, title: str, rows: int) -> None:
        self._emit(
            JSONLogLevel.SUCCESS,
            JSONLogCategory.REPORT,
            f"Report ready: {title} ({rows} rows)",
            {"title": title, "rows": rows},
        )
