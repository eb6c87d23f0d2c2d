"""
Processing order for the tables of a schema plan

Kahn's algorithm over the foreign-key graph, run layer by layer so that
tables which become ready together keep the order the planner listed them
in. For one-level plans this is "all root tables, then all children".
"""
from __future__ import annotations
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Union

from schemaflow.core.errors import SchemaCycleError
from schemaflow.core.models import SchemaPlan
from schemaflow.common.logger import get_logger

log = get_logger()

PlanLike = Union[SchemaPlan, Mapping[str, Any], None]


def coerce_plan(plan: PlanLike) -> Optional[SchemaPlan]:
    """Accept a SchemaPlan or its wire dict; None when there is no 'schema'."""
    if isinstance(plan, SchemaPlan):
        return plan
    if not isinstance(plan, Mapping) or not isinstance(plan.get("schema"), Mapping):
        return None
    return SchemaPlan.model_validate(plan)


def dependency_graph(plan: SchemaPlan) -> Dict[str, List[str]]:
    """table -> in-plan parent tables (self and dangling references dropped)."""
    parents: Dict[str, List[str]] = {}
    for name, spec in plan.tables.items():
        deps: List[str] = []
        if spec is None:
            parents[name] = deps
            continue
        for ref in spec.foreign_key_refs():
            if ref.parent_table == name:
                log.warning(f"Table '{name}': foreign key '{ref.column}' references itself; ignored for ordering")
                continue
            if ref.parent_table not in plan.tables:
                log.warning(
                    f"Table '{name}': foreign key '{ref.column}' references unknown table "
                    f"'{ref.parent_table}'; ignored for ordering"
                )
                continue
            if ref.parent_table not in deps:
                deps.append(ref.parent_table)
        parents[name] = deps
    return parents


def resolve_execution_order(plan: PlanLike) -> List[str]:
    """
    Order tables so every table comes after the tables it references.

    Returns [] for a missing or malformed plan. Raises SchemaCycleError when
    the foreign keys form a cycle.
    """
    schema_plan = coerce_plan(plan)
    if schema_plan is None:
        log.warning("Could not determine execution order: 'schema' is missing from the plan")
        return []

    names = schema_plan.table_names()
    parents = dependency_graph(schema_plan)

    in_degree = {name: len(parents[name]) for name in names}
    children: Dict[str, List[str]] = defaultdict(list)
    for name in names:
        for parent in parents[name]:
            children[parent].append(name)

    result: List[str] = []
    layer = [name for name in names if in_degree[name] == 0]
    while layer:
        result.extend(layer)
        ready = set()
        for node in layer:
            for child in children[node]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    ready.add(child)
        layer = [name for name in names if name in ready]

    if len(result) != len(names):
        raise SchemaCycleError([name for name in names if name not in result])

    log.debug(f"Execution order: {result}")
    return result
