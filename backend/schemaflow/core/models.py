"""
Pydantic models for schema plans and report suggestions

Wire shapes follow what the planner and analyst agents are asked to return:

    {"schema": {"customers": {"columns": [...], "primary_key": "customer_id",
                              "natural_key_for_uniqueness": ["Customer Name"],
                              "foreign_keys": {}}}}

    {"title": ..., "description": ...,
     "query": {"tables": [...], "columns": [...],
               "join": {"parent_table", "parent_key", "child_table", "child_key"},
               "aggregation": {"groupBy", "column", "method", "newColumnName"}},
     "chart_config": {"type": "bar"}}
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

Row = Dict[str, Any]
LookupMap = Dict[str, str]


# ============================================================================
# Schema Plan
# ============================================================================

class ForeignKeyRef(BaseModel):
    """A parsed "<parent_table>.<parent_column>" reference"""
    column: str
    parent_table: str
    parent_column: str = ""

    @classmethod
    def parse(cls, column: str, reference: str) -> "ForeignKeyRef":
        parent_table, _, parent_column = str(reference).partition(".")
        return cls(column=column, parent_table=parent_table.strip(), parent_column=parent_column.strip())


class TableSpec(BaseModel):
    """One table of a schema plan"""
    columns: List[str] = Field(default_factory=list, description="Columns kept in the final rows")
    primary_key: str = Field(default="", description="Column receiving the generated identifier")
    natural_key_for_uniqueness: List[str] = Field(default_factory=list, description="Deduplication key columns")
    foreign_keys: Dict[str, str] = Field(default_factory=dict, description="local column -> parent.column")

    # Planners like to add descriptions; keep them around
    model_config = {"extra": "allow"}

    @field_validator("natural_key_for_uniqueness", "columns", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("foreign_keys", mode="before")
    @classmethod
    def coerce_fk(cls, v: Any) -> Any:
        return v or {}

    @property
    def is_parent(self) -> bool:
        return not self.foreign_keys

    def foreign_key_refs(self) -> List[ForeignKeyRef]:
        return [ForeignKeyRef.parse(col, ref) for col, ref in self.foreign_keys.items()]


class SchemaPlan(BaseModel):
    """Table name -> TableSpec, in the order the planner listed them (null specs are skipped at run time)"""
    tables: Dict[str, Optional[TableSpec]] = Field(..., alias="schema")

    model_config = {"populate_by_name": True, "extra": "allow"}

    def table_names(self) -> List[str]:
        return list(self.tables.keys())

    def get(self, name: str) -> Optional[TableSpec]:
        return self.tables.get(name)

    def to_wire(self) -> Dict[str, Any]:
        return {"schema": {name: spec.model_dump() if spec else None for name, spec in self.tables.items()}}

    def summary(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {
                "primary_key": spec.primary_key,
                "natural_key_for_uniqueness": list(spec.natural_key_for_uniqueness),
                "foreign_keys": dict(spec.foreign_keys),
            }
            for name, spec in self.tables.items()
            if spec is not None
        }


# ============================================================================
# Report Suggestions
# ============================================================================

class AggregationMethod(str, Enum):
    SUM = "SUM"
    COUNT = "COUNT"
    AVG = "AVG"


class JoinSpec(BaseModel):
    parent_table: str
    parent_key: str
    child_table: str
    child_key: str


class AggregationSpec(BaseModel):
    group_by: str = Field(..., alias="groupBy")
    column: Optional[str] = None
    method: AggregationMethod
    new_column_name: str = Field(..., alias="newColumnName")

    model_config = {"populate_by_name": True}

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ReportQuery(BaseModel):
    tables: List[str] = Field(..., min_length=1)
    columns: Union[List[str], Dict[str, Union[List[str], str]]] = Field(default_factory=list)
    join: Optional[JoinSpec] = None
    aggregation: Optional[AggregationSpec] = None

    def requested_columns(self) -> List[str]:
        """Flatten `columns` (list or table -> list mapping) into an ordered, de-duplicated list."""
        if isinstance(self.columns, dict):
            groups = list(self.columns.values())
        else:
            groups = [self.columns]
        out: List[str] = []
        for group in groups:
            for col in ([group] if isinstance(group, str) else group):
                if col not in out:
                    out.append(col)
        return out


class ReportSuggestion(BaseModel):
    title: str
    description: str = ""
    query: ReportQuery
    chart_config: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}


# ============================================================================
# Report Output
# ============================================================================

class ChartDataset(BaseModel):
    label: str = ""
    data: List[Optional[float]] = Field(default_factory=list)


class ChartData(BaseModel):
    """Chart payload: one label array and one numeric dataset of equal length"""
    type: str = "bar"
    labels: List[Any] = Field(default_factory=list)
    datasets: List[ChartDataset] = Field(default_factory=lambda: [ChartDataset()])

    @property
    def series(self) -> Tuple[List[Any], List[Optional[float]]]:
        return self.labels, self.datasets[0].data


class ReportData(BaseModel):
    chart: ChartData
    rows: List[Row]
    columns: List[str]


class ReportResult(BaseModel):
    title: str
    description: str = ""
    summary: str
    chart: ChartData
    rows: List[Row]
    columns: List[str]
