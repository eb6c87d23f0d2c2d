#!/usr/bin/env python
"""
Command-line front end
Usage: schemaflow ingest data/orders.csv
       schemaflow suggest
       schemaflow report --index 1 --html out/reports/orders.html
"""
from __future__ import annotations

import argparse
import json
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from schemaflow.agents.analyst import suggest_reports
from schemaflow.common.config_models import AppConfig, build_config
from schemaflow.common.logger import LogFormat, get_logger, init_logger
from schemaflow.common.utils import load_yaml, set_dotted
from schemaflow.core.errors import SchemaflowError
from schemaflow.core.ingest import ingest_file
from schemaflow.core.models import ReportSuggestion
from schemaflow.core.report_executor import generate_report
from schemaflow.plugins.api import LLMClient, TableStore
from schemaflow.plugins.registry import get_llm_client, get_store
from schemaflow.reporting.html_report import write_html_report

DEFAULT_CONFIG = "config/schemaflow.yaml"
SUGGESTIONS_KEY = "report_suggestions"

log = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemaflow",
        description="Normalize CSV files into related tables with an AI schema planner, then report on them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  schemaflow ingest data/orders.csv
  schemaflow ingest data/orders.csv --table orders_raw --no-fallback
  schemaflow --set storage.type=duckdb --set storage.path=data/sf.duckdb tables
  schemaflow config set api_key YOUR_KEY
  schemaflow report --index 2 --html out/reports/revenue.html
        """,
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG,
                        help=f"Path to configuration file (default: {DEFAULT_CONFIG})")
    parser.add_argument("--dotenv", help="Path to .env file to load (optional)")
    parser.add_argument("--set", action="append",
                        help="Override config with dotted.key=value (repeatable)")
    parser.add_argument("--log-level", choices=["user", "dev", "debug"],
                        help="Logging verbosity (default: logging.level from config)")
    parser.add_argument("--json", action="store_true",
                        help="Output logs in JSON-Lines format")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="Plan and load a CSV file")
    p.add_argument("file", type=Path)
    p.add_argument("--table", help="Table name for the flat-table fallback (default: file stem)")
    p.add_argument("--no-fallback", action="store_true",
                   help="Fail instead of storing a flat table when the planner fails")
    p.add_argument("--delimiter", help="Field delimiter (default: auto-detect)")

    sub.add_parser("tables", help="List stored tables")

    p = sub.add_parser("show", help="Print rows of a stored table")
    p.add_argument("table")
    p.add_argument("--limit", type=int, default=20)

    p = sub.add_parser("delete", help="Delete a stored table")
    p.add_argument("table")

    sub.add_parser("schema", help="Print the stored schema plan")
    sub.add_parser("suggest", help="Ask the analyst for report suggestions")

    p = sub.add_parser("report", help="Generate a report")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--index", type=int, help="1-based index into the last `suggest` output")
    src.add_argument("--file", type=Path, help="JSON file holding one report suggestion")
    p.add_argument("--html", nargs="?", const="", metavar="PATH",
                   help="Also write a standalone HTML report (default: reporting.output_dir/<title>.html)")

    p = sub.add_parser("config", help="Read or write stored settings (e.g. api_key)")
    csub = p.add_subparsers(dest="config_command", required=True)
    cp = csub.add_parser("set")
    cp.add_argument("key")
    cp.add_argument("value")
    cp = csub.add_parser("get")
    cp.add_argument("key")

    return parser


def load_app_config(args: argparse.Namespace) -> AppConfig:
    load_dotenv(args.dotenv) if args.dotenv else load_dotenv()

    config_path = Path(args.config)
    raw: Dict[str, Any] = {}
    if config_path.exists():
        raw = load_yaml(config_path)
    elif args.config != DEFAULT_CONFIG:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    for override in args.set or []:
        if "=" not in override:
            raise ValueError(f"--set expects dotted.key=value, got: {override}")
        key, value = override.split("=", 1)
        set_dotted(raw, key.strip(), value)

    return build_config(raw)


def open_store(config: AppConfig) -> TableStore:
    return get_store(config.storage.model_dump(mode="json"))


def make_client(config: AppConfig, store: TableStore) -> LLMClient:
    llm_cfg = config.llm.model_dump(mode="json")
    if not llm_cfg.get("api_key"):
        llm_cfg["api_key"] = os.environ.get("GEMINI_API_KEY") or store.get_config("api_key")
    return get_llm_client(llm_cfg)


def html_path(requested: str, title: str, config: AppConfig) -> Path:
    if requested:
        return Path(requested)
    stem = re.sub(r"[^A-Za-z0-9]+", "_", title).strip("_").lower() or "report"
    return Path(config.reporting.output_dir) / f"{stem}.html"


def print_rows(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> None:
    if not rows:
        print("(no rows)")
        return
    frame = pd.DataFrame.from_records(rows, columns=columns)
    print(frame.to_string(index=False))


# ============================================================================
# Commands
# ============================================================================

def cmd_ingest(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    opts = {"delimiter": args.delimiter} if args.delimiter else {}
    outcome = ingest_file(
        args.file,
        store,
        make_client(config, store),
        settings=config.pipeline,
        table_name=args.table,
        fallback=False if args.no_fallback else None,
        reader_options=opts,
    )
    if not outcome.success:
        log.error(f"Pipeline failed: {outcome.result.error}")
        return 1
    if outcome.fallback:
        log.success(f"Table \"{outcome.result.selected_table}\" updated/created successfully.")
    else:
        log.success("Data processing pipeline completed successfully!")
    log.info(f"Selected table: {outcome.result.selected_table}")
    return 0


def cmd_tables(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    tables = store.list_tables()
    if not tables:
        print("(no tables)")
    for name in tables:
        print(name)
    return 0


def cmd_show(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    rows = store.get_table(args.table)
    print_rows(rows[: args.limit] if args.limit >= 0 else rows)
    if 0 <= args.limit < len(rows):
        print(f"... {len(rows) - args.limit} more row(s)")
    return 0


def cmd_delete(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    if not store.delete_table(args.table):
        log.error(f"Table '{args.table}' not found")
        return 1
    remaining = [t for t in store.get_config("table_list", []) or [] if t != args.table]
    store.put_config("table_list", remaining)
    log.success(f"Table '{args.table}' deleted")
    return 0


def cmd_schema(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    plan = store.get_schema()
    if plan is None:
        log.error("Database schema not found. Please ingest a file first.")
        return 1
    print(json.dumps(plan.to_wire(), indent=2))
    return 0


def cmd_suggest(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    plan = store.get_schema()
    if plan is None:
        log.error("Database schema not found. Please ingest a file first.")
        return 1
    suggestions = suggest_reports(make_client(config, store), plan)
    store.put_config(SUGGESTIONS_KEY, [s.model_dump(mode="json", by_alias=True) for s in suggestions])
    for i, s in enumerate(suggestions, start=1):
        print(f"{i}. {s.title}")
        if s.description:
            print(f"   {s.description}")
    return 0


def _load_suggestion(args: argparse.Namespace, store: TableStore) -> ReportSuggestion:
    if args.file:
        return ReportSuggestion.model_validate(json.loads(args.file.read_text(encoding="utf-8")))
    saved = store.get_config(SUGGESTIONS_KEY, []) or []
    if not 1 <= args.index <= len(saved):
        raise ValueError(f"No suggestion #{args.index} (run `schemaflow suggest` first; {len(saved)} saved)")
    return ReportSuggestion.model_validate(saved[args.index - 1])


def cmd_report(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    suggestion = _load_suggestion(args, store)
    report = generate_report(
        store,
        suggestion,
        client=make_client(config, store),
        summary_sample_rows=config.reporting.summary_sample_rows,
        default_chart_type=config.reporting.chart_type,
    )
    print(report.title)
    print()
    print(report.summary)
    print()
    print_rows(report.rows, report.columns)
    if args.html is not None:
        write_html_report(report, html_path(args.html, report.title, config))
    return 0


def cmd_config(args: argparse.Namespace, config: AppConfig, store: TableStore) -> int:
    if args.config_command == "set":
        store.put_config(args.key, args.value)
        log.success(f"Saved '{args.key}'")
        return 0
    value = store.get_config(args.key)
    if value is None:
        log.error(f"'{args.key}' is not set")
        return 1
    print(value if isinstance(value, str) else yaml.safe_dump(value, default_flow_style=True).strip())
    return 0


COMMANDS = {
    "ingest": cmd_ingest,
    "tables": cmd_tables,
    "show": cmd_show,
    "delete": cmd_delete,
    "schema": cmd_schema,
    "suggest": cmd_suggest,
    "report": cmd_report,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_app_config(args)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        init_logger(args.log_level or "user", LogFormat.JSON if args.json else LogFormat.TEXT)
        log.error(f"Invalid configuration: {e}")
        return 2

    init_logger(args.log_level or config.logging.level,
                LogFormat.JSON if args.json else config.logging.format)

    try:
        with open_store(config) as store:
            return COMMANDS[args.command](args, config, store)
    except (SchemaflowError, ValueError, OSError) as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
