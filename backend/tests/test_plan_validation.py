import pytest

from schemaflow.core.errors import PlannerError
from schemaflow.core.models import SchemaPlan
from schemaflow.core.plan_validation import introduced_columns, plan_problems, validate_plan

HEADERS = ["Order No", "Customer Name", "Email", "Product", "Price", "Qty"]


def test_valid_plan_passes(plan):
    assert plan_problems(plan, HEADERS) == []
    assert validate_plan(plan, HEADERS) is plan


def test_introduced_columns_are_allowed(plan):
    assert introduced_columns(plan) == {"order_id", "customer_id", "product_id"}


def test_unknown_column_is_reported_with_diagnostic(plan_wire):
    plan_wire["schema"]["customers"]["columns"].append("Loyalty Tier")
    with pytest.raises(PlannerError) as exc:
        validate_plan(SchemaPlan.model_validate(plan_wire), HEADERS)
    assert "Table 'customers': unknown column 'Loyalty Tier'" in exc.value.diagnostics


def test_natural_key_must_come_from_input(plan_wire):
    plan_wire["schema"]["products"]["natural_key_for_uniqueness"] = ["SKU"]
    problems = plan_problems(SchemaPlan.model_validate(plan_wire), HEADERS)
    assert problems == ["Table 'products': natural key column 'SKU' is not in the input"]


def test_natural_key_may_use_own_foreign_key(plan_wire):
    plan_wire["schema"]["orders"]["natural_key_for_uniqueness"] = ["customer_id", "Order No"]
    assert plan_problems(SchemaPlan.model_validate(plan_wire), HEADERS) == []


def test_empty_natural_key_and_missing_primary_key(plan_wire):
    spec = plan_wire["schema"]["customers"]
    spec["natural_key_for_uniqueness"] = []
    spec["columns"].remove("customer_id")
    problems = plan_problems(SchemaPlan.model_validate(plan_wire), HEADERS)
    assert "Table 'customers': natural_key_for_uniqueness is empty" in problems
    assert "Table 'customers': primary_key 'customer_id' is not listed in columns" in problems


def test_dangling_foreign_key_is_only_a_warning(plan_wire):
    plan_wire["schema"]["orders"]["foreign_keys"]["store_id"] = "stores.store_id"
    plan_wire["schema"]["orders"]["columns"].append("store_id")
    assert plan_problems(SchemaPlan.model_validate(plan_wire), HEADERS) == []


def test_empty_plan_is_a_problem():
    assert plan_problems(SchemaPlan(tables={}), HEADERS) == ["Plan contains no tables"]
