"""
Pipeline orchestrator: plan + rows -> normalized tables in the store

Tables run strictly one after another in dependency order. Lookup maps
produced by each table are threaded forward to its children and dropped when
the run ends. The first failing table stops the run; tables already written
stay committed.
"""
from __future__ import annotations
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from schemaflow.common.config_models import PipelineSettings
from schemaflow.core.errors import InputError, PipelineError, RowSourceError, SchemaflowError
from schemaflow.core.execution_order import PlanLike, coerce_plan, resolve_execution_order
from schemaflow.core.models import LookupMap, Row, SchemaPlan, TableSpec
from schemaflow.core.table_processor import TableResult, process_child_table, process_parent_table
from schemaflow.plugins.api import TableStore
from schemaflow.common.logger import get_logger

log = get_logger()

TABLE_LIST_KEY = "table_list"


@dataclass
class PipelineResult:
    success: bool
    error: Optional[str] = None
    tables: List[str] = field(default_factory=list)
    selected_table: Optional[str] = None
    order: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    stats: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    elapsed: float = 0.0


def remember_tables(store: TableStore, names: Iterable[str]) -> List[str]:
    """Merge `names` into the stored table list (first-seen order)."""
    current = list(store.get_config(TABLE_LIST_KEY, []) or [])
    for name in names:
        if name not in current:
            current.append(name)
    store.put_config(TABLE_LIST_KEY, current)
    return current


class PipelineOrchestrator:
    """Runs one schema plan over one row set against a table store."""

    def __init__(self, store: TableStore, settings: Optional[PipelineSettings] = None):
        self.store = store
        self.settings = settings or PipelineSettings()
        self._running = threading.Lock()

    def run(self, rows: Iterable[Row], plan: PlanLike, source: str = "input") -> PipelineResult:
        if not self._running.acquire(blocking=False):
            error = PipelineError("A pipeline run is already in progress on this orchestrator")
            log.pipeline_failed(str(error))
            return PipelineResult(success=False, error=str(error))
        try:
            return self._run(rows, plan, source)
        finally:
            self._running.release()

    def _fail(self, result: PipelineResult, error: str, t0: float) -> PipelineResult:
        result.success = False
        result.error = error
        result.elapsed = time.perf_counter() - t0
        log.pipeline_failed(error)
        return result

    def _run(self, rows: Iterable[Row], plan: PlanLike, source: str) -> PipelineResult:
        t0 = time.perf_counter()
        result = PipelineResult(success=False)

        try:
            schema_plan = coerce_plan(plan)
        except ValidationError as e:
            return self._fail(result, f"Invalid schema plan: {e.error_count()} error(s): {e.errors()[0]['msg']}", t0)
        if schema_plan is None:
            return self._fail(result, "No schema or executable order found in the plan", t0)
        try:
            order = resolve_execution_order(schema_plan)
        except InputError as e:
            return self._fail(result, str(e), t0)
        if not order:
            return self._fail(result, "No schema or executable order found in the plan", t0)
        result.order = order
        log.dev(f"Determined table processing order: {order}")

        try:
            data: List[Row] = list(rows)
        except RowSourceError as e:
            return self._fail(result, f"Error parsing file: {e.message}", t0)
        if not data:
            return self._fail(result, "Could not parse any data from the file", t0)
        log.dev(f"Parsed {len(data)} rows from {source}")

        log.pipeline_start(source, len(order))
        lookup_maps: Dict[str, LookupMap] = {}
        failed = 0
        for table_name in order:
            spec = schema_plan.get(table_name)
            if spec is None:
                log.table_skipped(table_name, "details not found in the schema")
                result.skipped.append(table_name)
                continue

            kind = "parent" if spec.is_parent else "child"
            log.table_start(table_name, kind)
            try:
                table = self._process(table_name, spec, data, lookup_maps, schema_plan)
                self.store.put_table(table_name, table.rows)
            except SchemaflowError as e:
                failed += 1
                log.table_failed(table_name, str(e))
                self._summary(order, result, failed, t0)
                return self._fail(result, f"Failed to process table '{table_name}': {e}", t0)

            lookup_maps[table_name] = table.lookup_map
            result.tables.append(table_name)
            result.stats[table_name] = table.stats
            log.table_success(table_name, kind, table.stats)

        try:
            self.store.put_schema(schema_plan)
            remember_tables(self.store, schema_plan.table_names())
        except SchemaflowError as e:
            return self._fail(result, f"Failed to save the schema: {e}", t0)

        result.success = True
        result.selected_table = result.tables[-1] if result.tables else None
        self._summary(order, result, failed, t0)
        result.elapsed = time.perf_counter() - t0
        return result

    def _process(self, table_name: str, spec: TableSpec, data: List[Row],
                 lookup_maps: Dict[str, LookupMap], plan: SchemaPlan) -> TableResult:
        if spec.is_parent:
            return process_parent_table(table_name, spec, data)
        return process_child_table(
            table_name, spec, data, lookup_maps, plan,
            unresolved_fk=self.settings.unresolved_fk,
        )

    @staticmethod
    def _summary(order: List[str], result: PipelineResult, failed: int, t0: float) -> None:
        done = len(result.tables) + failed + len(result.skipped)
        log.pipeline_summary(
            total=len(order),
            success=len(result.tables),
            failed=failed,
            skipped=len(result.skipped) + (len(order) - done),
            elapsed=time.perf_counter() - t0,
        )
