"""
Structural checks for planner-authored schema plans

The planner is an LLM; its plan is only trusted after every column it names
is traced back to the input headers or to a key column the plan introduces.
"""
from __future__ import annotations
from typing import Iterable, List, Set

from schemaflow.core.errors import PlannerError
from schemaflow.core.models import SchemaPlan
from schemaflow.common.logger import get_logger

log = get_logger()


def introduced_columns(plan: SchemaPlan) -> Set[str]:
    """Primary-key and foreign-key columns the plan adds to the input."""
    cols: Set[str] = set()
    for spec in plan.tables.values():
        if spec is None:
            continue
        if spec.primary_key:
            cols.add(spec.primary_key)
        cols.update(spec.foreign_keys.keys())
    return cols


def plan_problems(plan: SchemaPlan, headers: Iterable[str]) -> List[str]:
    """Every reason `plan` cannot be run against `headers` (empty list = fine)."""
    header_set = set(headers)
    allowed = header_set | introduced_columns(plan)
    problems: List[str] = []

    if not plan.tables:
        return ["Plan contains no tables"]

    for name, spec in plan.tables.items():
        if not name.strip():
            problems.append("Plan contains a table with an empty name")
        if spec is None:
            problems.append(f"Table '{name}' has no definition")
            continue
        if not spec.primary_key:
            problems.append(f"Table '{name}': primary_key is empty")
        elif spec.primary_key not in spec.columns:
            problems.append(f"Table '{name}': primary_key '{spec.primary_key}' is not listed in columns")
        if not spec.natural_key_for_uniqueness:
            problems.append(f"Table '{name}': natural_key_for_uniqueness is empty")

        for col in spec.columns:
            if col not in allowed:
                problems.append(f"Table '{name}': unknown column '{col}'")

        own_fks = set(spec.foreign_keys.keys())
        for col in spec.natural_key_for_uniqueness:
            if col not in header_set and col not in own_fks:
                problems.append(f"Table '{name}': natural key column '{col}' is not in the input")

        for ref in spec.foreign_key_refs():
            if not ref.parent_table:
                problems.append(f"Table '{name}': foreign key '{ref.column}' has an empty reference")
            elif ref.parent_table not in plan.tables:
                # tolerated at run time, the FK is skipped
                log.warning(f"Table '{name}': foreign key '{ref.column}' references unknown table '{ref.parent_table}'")

    return problems


def validate_plan(plan: SchemaPlan, headers: Iterable[str]) -> SchemaPlan:
    """Raise PlannerError listing every problem; return the plan otherwise."""
    problems = plan_problems(plan, headers)
    if problems:
        for p in problems:
            log.dev(f"  Plan problem: {p}")
        raise PlannerError(
            f"Schema plan does not fit the input ({len(problems)} problem(s)): {problems[0]}",
            diagnostics=problems,
        )
    return plan
