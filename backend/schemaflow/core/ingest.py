"""
File ingest: preview -> schema planner -> plan validation -> orchestrator

When the planner fails (or its plan does not fit the file) the whole file is
stored as one flat table instead, unless the fallback is disabled.
"""
from __future__ import annotations
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from schemaflow.agents.architect import infer_schema
from schemaflow.common.config_models import PipelineSettings
from schemaflow.core.errors import PlannerError, RowSourceError, SchemaflowError
from schemaflow.core.models import Row, SchemaPlan
from schemaflow.core.orchestrator import PipelineOrchestrator, PipelineResult, remember_tables
from schemaflow.core.plan_validation import validate_plan
from schemaflow.plugins.api import LLMClient, TableStore
from schemaflow.plugins.registry import get_reader
from schemaflow.common.logger import get_logger

log = get_logger()


@dataclass
class IngestResult:
    result: PipelineResult
    headers: List[str] = field(default_factory=list)
    plan: Optional[SchemaPlan] = None
    fallback: bool = False
    planner_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.result.success


def store_flat_table(store: TableStore, rows: Iterable[Row], table_name: str) -> PipelineResult:
    """Store every row unchanged under `table_name`."""
    t0 = time.perf_counter()
    try:
        data = list(rows)
    except RowSourceError as e:
        log.pipeline_failed(f"Error parsing file: {e.message}")
        return PipelineResult(success=False, error=f"Error parsing file: {e.message}")
    if not data:
        log.pipeline_failed("Could not parse any data from the file")
        return PipelineResult(success=False, error="Could not parse any data from the file")

    log.table_start(table_name, "flat")
    try:
        store.put_table(table_name, data)
        remember_tables(store, [table_name])
    except SchemaflowError as e:
        log.table_failed(table_name, str(e))
        return PipelineResult(success=False, error=f"Failed to store table '{table_name}': {e}")
    stats = {"rows_in": len(data), "rows_out": len(data)}
    log.table_success(table_name, "flat", stats)
    return PipelineResult(
        success=True,
        tables=[table_name],
        selected_table=table_name,
        order=[table_name],
        stats={table_name: stats},
        elapsed=time.perf_counter() - t0,
    )


def ingest_file(
    path: Path,
    store: TableStore,
    client: LLMClient,
    settings: Optional[PipelineSettings] = None,
    table_name: Optional[str] = None,
    fallback: Optional[bool] = None,
    reader_options: Optional[Mapping[str, Any]] = None,
) -> IngestResult:
    """
    Plan and load one CSV file.

    Args:
        path: CSV file
        store: Destination table store
        client: LLM transport used by the schema planner
        settings: Pipeline settings (defaults apply when omitted)
        table_name: Flat-table name used by the fallback (default: file stem)
        fallback: Override `settings.fallback_to_flat_table`
        reader_options: Passed to the reader (delimiter, infer_schema_length)
    """
    settings = settings or PipelineSettings()
    path = Path(path)
    allow_fallback = settings.fallback_to_flat_table if fallback is None else fallback
    opts: Dict[str, Any] = dict(reader_options or {})

    reader = get_reader({"path": str(path), **opts})
    try:
        preview = list(reader.open(path, {**opts, "limit": settings.preview_rows}))
    except RowSourceError as e:
        log.pipeline_failed(f"Error parsing file preview: {e.message}")
        return IngestResult(result=PipelineResult(success=False, error=f"Error parsing file preview: {e.message}"))
    if not preview:
        log.pipeline_failed("Could not parse any data from the file")
        return IngestResult(result=PipelineResult(success=False, error="Could not parse any data from the file"))

    headers = list(preview[0].keys())
    log.dev(f"Columns: {headers}")
    rows = reader.open(path, opts)

    try:
        plan = infer_schema(client, headers, preview[: settings.planner_sample_rows])
        validate_plan(plan, headers)
    except PlannerError as e:
        if not allow_fallback:
            log.planner_failed(str(e))
            return IngestResult(
                result=PipelineResult(success=False, error=str(e)),
                headers=headers,
                planner_error=str(e),
            )
        flat_name = table_name or path.stem
        log.planner_failed(str(e), flat_name)
        return IngestResult(
            result=store_flat_table(store, rows, flat_name),
            headers=headers,
            fallback=True,
            planner_error=str(e),
        )

    log.plan_received(plan.summary())
    result = PipelineOrchestrator(store, settings).run(rows, plan, source=path.name)
    return IngestResult(result=result, headers=headers, plan=plan)
