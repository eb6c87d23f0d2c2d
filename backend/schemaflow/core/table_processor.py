"""
Per-table split, dedup and surrogate-key assignment

Both processors derive new rows; input rows are never mutated.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from schemaflow.common.config_models import UnresolvedFKPolicy
from schemaflow.core.errors import InputError
from schemaflow.core.models import LookupMap, Row, SchemaPlan, TableSpec
from schemaflow.common.logger import get_logger

log = get_logger()

KEY_SEPARATOR = "|"


@dataclass
class TableResult:
    rows: List[Row]
    lookup_map: LookupMap
    stats: Dict[str, Any] = field(default_factory=dict)


def key_part(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def natural_key(row: Mapping[str, Any], columns: List[str]) -> str:
    """Pipe-joined key; a missing column contributes an empty part."""
    return KEY_SEPARATOR.join(key_part(row.get(col)) for col in columns)


def _check_spec(table_name: str, spec: TableSpec) -> None:
    if not spec.natural_key_for_uniqueness:
        raise InputError(f"Table '{table_name}' has an empty natural_key_for_uniqueness")
    if not spec.primary_key:
        raise InputError(f"Table '{table_name}' has no primary_key")


def _check_key_columns(table_name: str, spec: TableSpec, rows: List[Row]) -> None:
    """Every natural-key column must exist in the input (or be one of the table's own FKs)."""
    if not rows:
        return
    available = set(spec.foreign_keys)
    for row in rows:
        available.update(row.keys())
    for col in spec.natural_key_for_uniqueness:
        if col not in available:
            raise InputError(f"Table '{table_name}': natural key column '{col}' not found in the input")


def _dedupe_and_assign(table_name: str, spec: TableSpec, rows: List[Row]) -> TableResult:
    unique: Dict[str, Row] = {}
    for row in rows:
        # first row per key wins
        unique.setdefault(natural_key(row, spec.natural_key_for_uniqueness), row)

    lookup_map: LookupMap = {}
    final_rows: List[Row] = []
    for n, (key, row) in enumerate(unique.items(), start=1):
        generated_id = f"{table_name}_{n}"
        lookup_map[key] = generated_id
        augmented = dict(row)
        augmented[spec.primary_key] = generated_id
        final_rows.append({col: augmented[col] for col in spec.columns if col in augmented})

    stats = {
        "rows_in": len(rows),
        "rows_out": len(final_rows),
        "duplicates": len(rows) - len(final_rows),
    }
    return TableResult(rows=final_rows, lookup_map=lookup_map, stats=stats)


def process_parent_table(table_name: str, spec: TableSpec, rows: List[Row]) -> TableResult:
    """Root table: dedup the raw rows on the natural key and number them."""
    _check_spec(table_name, spec)
    _check_key_columns(table_name, spec, rows)
    result = _dedupe_and_assign(table_name, spec, rows)
    log.dev(f"  Found {result.stats['rows_out']} unique rows for table '{table_name}'")
    log.lookup_sample(table_name, result.lookup_map)
    return result


def process_child_table(
    table_name: str,
    spec: TableSpec,
    rows: List[Row],
    lookup_maps: Mapping[str, LookupMap],
    plan: SchemaPlan,
    unresolved_fk: UnresolvedFKPolicy = UnresolvedFKPolicy.NULL,
) -> TableResult:
    """
    Child table: resolve foreign keys first, then dedup the enriched rows.

    For each foreign key the parent's natural key is rebuilt from the current
    row and looked up in the parent's lookup map. A miss is handled by
    `unresolved_fk`: null the cell, keep the raw value, or abort the table.
    """
    _check_spec(table_name, spec)
    _check_key_columns(table_name, spec, rows)
    policy = UnresolvedFKPolicy(unresolved_fk)
    refs = spec.foreign_key_refs()

    resolved = 0
    unresolved = 0
    missing_prereqs: Dict[str, str] = {}
    enriched: List[Row] = []
    for row in rows:
        out = dict(row)
        for ref in refs:
            parent_spec = plan.get(ref.parent_table)
            parent_map: Optional[LookupMap] = lookup_maps.get(ref.parent_table)
            generated_id = None
            if parent_spec is None or parent_map is None:
                missing_prereqs.setdefault(ref.column, ref.parent_table)
            else:
                generated_id = parent_map.get(natural_key(out, parent_spec.natural_key_for_uniqueness))

            if generated_id is not None:
                out[ref.column] = generated_id
                resolved += 1
                continue

            unresolved += 1
            if policy == UnresolvedFKPolicy.ERROR:
                raise InputError(
                    f"Table '{table_name}': foreign key '{ref.column}' -> '{ref.parent_table}' "
                    f"could not be resolved for row {len(enriched) + 1}"
                )
            if policy == UnresolvedFKPolicy.NULL:
                out[ref.column] = None
        enriched.append(out)

    for column, parent in missing_prereqs.items():
        log.warning(f"Table '{table_name}': prerequisite data for FK '{column}' -> '{parent}' is missing")
    if unresolved:
        log.warning(
            f"Table '{table_name}': {unresolved} foreign key value(s) could not be resolved "
            f"(policy: {policy.value})"
        )
    log.dev(f"  Step 1 complete: populated foreign keys for {len(enriched)} rows")

    result = _dedupe_and_assign(table_name, spec, enriched)
    result.stats["fk_resolved"] = resolved
    result.stats["fk_unresolved"] = unresolved
    log.dev(f"  Step 2 complete: found {result.stats['rows_out']} unique rows for '{table_name}'")
    log.lookup_sample(table_name, result.lookup_map)
    return result
