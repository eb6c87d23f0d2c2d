import pytest

from schemaflow.core.errors import InputError, SchemaCycleError
from schemaflow.core.execution_order import dependency_graph, resolve_execution_order
from schemaflow.core.models import SchemaPlan


def _table(*fks):
    return {
        "columns": ["id"],
        "primary_key": "id",
        "natural_key_for_uniqueness": ["k"],
        "foreign_keys": {f"{p}_id": f"{p}.id" for p in fks},
    }


def test_parents_run_before_children_regardless_of_plan_order(plan):
    assert resolve_execution_order(plan) == ["customers", "products", "orders"]


def test_one_level_plan_keeps_plan_order_within_each_bucket():
    plan = {"schema": {"c1": _table("p1"), "p1": _table(), "c2": _table("p2"), "p2": _table()}}
    assert resolve_execution_order(plan) == ["p1", "p2", "c1", "c2"]


def test_multi_level_chain_is_ordered_topologically():
    plan = {"schema": {"line": _table("order"), "order": _table("customer"), "customer": _table()}}
    assert resolve_execution_order(plan) == ["customer", "order", "line"]


def test_missing_schema_key_yields_empty_order():
    assert resolve_execution_order({"tables": {}}) == []
    assert resolve_execution_order(None) == []


def test_cycle_raises_schema_cycle_error():
    plan = {"schema": {"a": _table("b"), "b": _table("a"), "root": _table()}}
    with pytest.raises(SchemaCycleError) as exc:
        resolve_execution_order(plan)
    assert sorted(exc.value.tables) == ["a", "b"]
    assert isinstance(exc.value, InputError)


def test_self_reference_and_dangling_reference_do_not_block_ordering():
    plan = SchemaPlan.model_validate({"schema": {"emp": _table("emp"), "dept": _table("ghost")}})
    assert dependency_graph(plan) == {"emp": [], "dept": []}
    assert resolve_execution_order(plan) == ["emp", "dept"]


def test_null_table_spec_is_ordered_but_has_no_parents():
    plan = {"schema": {"child": _table("parent"), "parent": _table(), "empty": None}}
    assert resolve_execution_order(plan) == ["parent", "empty", "child"]
