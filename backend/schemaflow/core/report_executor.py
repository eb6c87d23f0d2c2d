"""
Report execution over stored tables

    load tables -> (optional) parent/child join -> (optional) group-by
    aggregation -> uniform projection -> chart payload

Values coming out of storage are treated opaquely; anything summed or
charted goes through `parse_float`.
"""
from __future__ import annotations
import math
import re
from typing import Any, Dict, List, Optional

from schemaflow.agents.summarizer import FALLBACK_SUMMARY, summarize
from schemaflow.core.errors import ReportError, StorageError
from schemaflow.core.models import (
    AggregationMethod,
    AggregationSpec,
    ChartData,
    ChartDataset,
    JoinSpec,
    ReportData,
    ReportResult,
    ReportSuggestion,
    Row,
)
from schemaflow.plugins.api import LLMClient, TableStore, union_columns
from schemaflow.common.logger import get_logger

log = get_logger()

_FLOAT_PREFIX = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_float(value: Any) -> Optional[float]:
    """
    Leading-numeric-prefix parse: "12.5kg" -> 12.5, "abc" -> None.

    Booleans, None and NaN have no numeric value.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return None if math.isnan(f) else f
    m = _FLOAT_PREFIX.match(str(value).lstrip())
    if not m:
        return None
    return float(m.group(0).replace("Infinity", "inf"))


# ============================================================================
# Join / aggregate / project
# ============================================================================

def join_rows(parent_rows: List[Row], child_rows: List[Row], join: JoinSpec) -> List[Row]:
    """
    Merge each child row with the parent row whose `parent_key` equals the
    child's `child_key`. Parent fields win on collision; unmatched children
    keep only their own fields.
    """
    parent_map: Dict[Any, Row] = {}
    for parent in parent_rows:
        key = parent.get(join.parent_key)
        if key is not None:
            parent_map[key] = parent  # later rows replace earlier ones

    joined: List[Row] = []
    matched = 0
    for child in child_rows:
        merged = dict(child)
        key = child.get(join.child_key)
        parent = parent_map.get(key) if key is not None else None
        if parent is not None:
            merged.update(parent)
            matched += 1
        joined.append(merged)
    log.dev(f"  Joined {len(child_rows)} '{join.child_table}' rows; {matched} matched '{join.parent_table}'")
    return joined


def aggregate_rows(rows: List[Row], aggregation: AggregationSpec) -> List[Row]:
    """Group by `groupBy` in first-seen order and apply SUM, COUNT or AVG."""
    group_by, target = aggregation.group_by, aggregation.new_column_name
    method = aggregation.method
    groups: Dict[Any, Row] = {}
    sums: Dict[Any, float] = {}
    counts: Dict[Any, int] = {}

    for row in rows:
        group_value = row.get(group_by)
        if group_value not in groups:
            groups[group_value] = {group_by: group_value, target: 0}
            sums[group_value] = 0.0
            counts[group_value] = 0
        value = parse_float(row.get(aggregation.column)) if aggregation.column else None

        if method == AggregationMethod.SUM:
            groups[group_value][target] += value or 0
        elif method == AggregationMethod.COUNT:
            groups[group_value][target] += 1
        elif method == AggregationMethod.AVG and value is not None:
            sums[group_value] += value
            counts[group_value] += 1

    if method == AggregationMethod.AVG:
        for group_value, group in groups.items():
            n = counts[group_value]
            group[target] = sums[group_value] / n if n > 0 else 0

    return list(groups.values())


def project_rows(rows: List[Row], columns: List[str]) -> List[Row]:
    """Every row gets exactly `columns`, in order; missing keys become None."""
    return [{col: row.get(col) for col in columns} for row in rows]


def build_chart(rows: List[Row], columns: List[str], aggregation: Optional[AggregationSpec],
                chart_type: str = "bar") -> ChartData:
    if aggregation:
        label_col, data_col = aggregation.group_by, aggregation.new_column_name
    elif rows and len(columns) >= 2:
        label_col, data_col = columns[0], columns[1]
    else:
        return ChartData(type=chart_type)

    return ChartData(
        type=chart_type,
        labels=[row.get(label_col) for row in rows],
        datasets=[ChartDataset(label=data_col, data=[parse_float(row.get(data_col)) for row in rows])],
    )


# ============================================================================
# Executor
# ============================================================================

class ReportExecutor:
    """Runs report suggestions against a table store."""

    def __init__(self, store: TableStore, default_chart_type: str = "bar"):
        self.store = store
        self.default_chart_type = default_chart_type

    def _load(self, name: str) -> List[Row]:
        try:
            return self.store.get_table(name)
        except StorageError as e:
            raise ReportError(f"Table '{name}' is not available: {e}") from e

    def _joined_rows(self, suggestion: ReportSuggestion) -> List[Row]:
        query = suggestion.query
        if len(query.tables) == 1:
            return self._load(query.tables[0])

        join = query.join
        if join is None:
            raise ReportError(
                f"Report '{suggestion.title}' uses {len(query.tables)} tables but defines no join"
            )
        extra = [t for t in query.tables if t not in (join.parent_table, join.child_table)]
        if extra:
            log.warning(f"Report '{suggestion.title}': tables {extra} are not part of the join; ignored")

        parent_rows = self._load(join.parent_table)
        child_rows = self._load(join.child_table)
        if parent_rows and not any(join.parent_key in row for row in parent_rows):
            raise ReportError(f"Join key '{join.parent_key}' not found in table '{join.parent_table}'")
        if child_rows and not any(join.child_key in row for row in child_rows):
            raise ReportError(f"Join key '{join.child_key}' not found in table '{join.child_table}'")
        return join_rows(parent_rows, child_rows, join)

    def execute(self, suggestion: ReportSuggestion) -> ReportData:
        query = suggestion.query
        aggregation = query.aggregation
        if aggregation and aggregation.method != AggregationMethod.COUNT and not aggregation.column:
            raise ReportError(f"Aggregation {aggregation.method.value} needs a 'column'")

        rows = self._joined_rows(suggestion)

        if aggregation:
            log.dev(f"  Aggregating {len(rows)} rows: {aggregation.method.value}({aggregation.column}) by {aggregation.group_by}")
            rows = aggregate_rows(rows, aggregation)
            columns = [aggregation.group_by, aggregation.new_column_name]
        else:
            columns = query.requested_columns() or union_columns(rows)

        uniform = project_rows(rows, columns)
        chart_type = str(suggestion.chart_config.get("type") or self.default_chart_type)
        chart = build_chart(uniform, columns, aggregation, chart_type)
        return ReportData(chart=chart, rows=uniform, columns=columns)


def generate_report(
    store: TableStore,
    suggestion: ReportSuggestion,
    client: Optional[LLMClient] = None,
    summary_sample_rows: int = 20,
    default_chart_type: str = "bar",
) -> ReportResult:
    """Execute `suggestion` and attach the narrative summary."""
    log.report_start(suggestion.title, list(suggestion.query.tables))
    data = ReportExecutor(store, default_chart_type).execute(suggestion)

    if client is None:
        summary = FALLBACK_SUMMARY
    else:
        summary = summarize(client, suggestion.title, suggestion.description, data.rows[:summary_sample_rows])

    log.report_success(suggestion.title, len(data.rows))
    return ReportResult(
        title=suggestion.title,
        description=suggestion.description,
        summary=summary,
        chart=data.chart,
        rows=data.rows,
        columns=data.columns,
    )
