import pytest

from schemaflow.core.errors import ReportError
from schemaflow.core.orchestrator import PipelineOrchestrator
from schemaflow.core.models import AggregationSpec, JoinSpec, ReportSuggestion
from schemaflow.core.report_executor import (
    ReportExecutor,
    aggregate_rows,
    generate_report,
    join_rows,
    parse_float,
)


def _suggestion(**query):
    return ReportSuggestion.model_validate({
        "title": "Test report",
        "description": "desc",
        "query": query,
        "chart_config": {"type": "bar"},
    })


@pytest.fixture
def sales_store(store):
    store.put_table("sales", [
        {"p": "X", "total": 2},
        {"p": "X", "total": 3},
        {"p": "Y", "total": 5},
    ])
    return store


def test_parse_float_mirrors_leading_prefix_semantics():
    assert parse_float("12.5kg") == 12.5
    assert parse_float("  -3") == -3.0
    assert parse_float(".5") == 0.5
    assert parse_float("1e3x") == 1000.0
    assert parse_float(4) == 4.0
    assert parse_float("abc") is None
    assert parse_float("") is None
    assert parse_float(None) is None
    assert parse_float(True) is None
    assert parse_float(float("nan")) is None


def test_sum_aggregation(sales_store):
    data = ReportExecutor(sales_store).execute(_suggestion(
        tables=["sales"],
        aggregation={"groupBy": "p", "column": "total", "method": "SUM", "newColumnName": "total"},
    ))
    assert data.rows == [{"p": "X", "total": 5}, {"p": "Y", "total": 5}]
    assert data.columns == ["p", "total"]


def test_avg_aggregation_does_not_leak_accumulators():
    rows = [{"p": "X", "v": 2}, {"p": "X", "v": 3}, {"p": "Y", "v": 5}, {"p": "Z", "v": "n/a"}]
    agg = AggregationSpec(group_by="p", column="v", method="avg", new_column_name="total")
    assert aggregate_rows(rows, agg) == [
        {"p": "X", "total": 2.5},
        {"p": "Y", "total": 5},
        {"p": "Z", "total": 0},
    ]


def test_count_aggregation_keeps_first_seen_group_order():
    rows = [{"g": "b"}, {"g": "a"}, {"g": "b"}]
    agg = AggregationSpec(group_by="g", method="COUNT", new_column_name="n")
    assert aggregate_rows(rows, agg) == [{"g": "b", "n": 2}, {"g": "a", "n": 1}]


def test_sum_treats_unparseable_values_as_zero():
    rows = [{"g": "a", "v": "3 units"}, {"g": "a", "v": None}, {"g": "a", "v": "?"}]
    agg = AggregationSpec(group_by="g", column="v", method="SUM", new_column_name="s")
    assert aggregate_rows(rows, agg) == [{"g": "a", "s": 3}]


def test_join_parent_fields_win_on_collision():
    join = JoinSpec(parent_table="p", parent_key="id", child_table="c", child_key="pid")
    parents = [{"id": "p_1", "name": "parent", "shared": "from parent"}]
    children = [
        {"pid": "p_1", "shared": "from child", "qty": 1},
        {"pid": "p_9", "shared": "orphan", "qty": 2},
    ]
    assert join_rows(parents, children, join) == [
        {"pid": "p_1", "shared": "from parent", "qty": 1, "id": "p_1", "name": "parent"},
        {"pid": "p_9", "shared": "orphan", "qty": 2},
    ]


def test_join_later_parent_rows_replace_earlier_ones():
    join = JoinSpec(parent_table="p", parent_key="id", child_table="c", child_key="pid")
    parents = [{"id": 1, "v": "old"}, {"id": 1, "v": "new"}]
    assert join_rows(parents, [{"pid": 1}], join)[0]["v"] == "new"


def test_uniform_projection_fills_missing_columns_with_none(store):
    store.put_table("t", [{"a": 1, "b": 2}, {"a": 3}])
    data = ReportExecutor(store).execute(_suggestion(tables=["t"], columns={"t": ["a", "b", "c"]}))
    assert data.rows == [{"a": 1, "b": 2, "c": None}, {"a": 3, "b": None, "c": None}]


def test_joined_report_with_aggregation(store, plan, rows):
    assert PipelineOrchestrator(store).run(rows, plan).success

    data = ReportExecutor(store).execute(_suggestion(
        tables=["customers", "orders"],
        columns=["Customer Name", "Qty"],
        join={"parent_table": "customers", "parent_key": "customer_id",
              "child_table": "orders", "child_key": "customer_id"},
        aggregation={"groupBy": "Customer Name", "column": "Qty", "method": "SUM", "newColumnName": "units"},
    ))
    assert data.rows == [{"Customer Name": "Alice", "units": 4}, {"Customer Name": "Bob", "units": 2}]
    assert data.chart.labels == ["Alice", "Bob"]
    assert data.chart.datasets[0].data == [4.0, 2.0]
    assert data.chart.datasets[0].label == "units"


def test_chart_without_aggregation_uses_first_two_columns(store):
    store.put_table("t", [{"name": "a", "value": "10"}, {"name": "b", "value": "x"}])
    data = ReportExecutor(store).execute(_suggestion(tables=["t"], columns=["name", "value"]))
    assert data.chart.series == (["a", "b"], [10.0, None])


def test_chart_is_empty_with_a_single_column(store):
    store.put_table("t", [{"name": "a"}])
    data = ReportExecutor(store).execute(_suggestion(tables=["t"], columns=["name"]))
    assert data.chart.labels == []
    assert data.chart.datasets[0].data == []


def test_unknown_table_raises_report_error(store):
    with pytest.raises(ReportError):
        ReportExecutor(store).execute(_suggestion(tables=["nope"]))


def test_multiple_tables_without_join_raise(sales_store):
    sales_store.put_table("other", [{"a": 1}])
    with pytest.raises(ReportError):
        ReportExecutor(sales_store).execute(_suggestion(tables=["sales", "other"]))


def test_join_key_absent_from_all_rows_raises(sales_store):
    sales_store.put_table("other", [{"a": 1}])
    with pytest.raises(ReportError):
        ReportExecutor(sales_store).execute(_suggestion(
            tables=["other", "sales"],
            join={"parent_table": "other", "parent_key": "id", "child_table": "sales", "child_key": "p"},
        ))


def test_generate_report_uses_summarizer(sales_store, scripted):
    scripted.queue("X and Y sold the same amount.")
    report = generate_report(sales_store, _suggestion(tables=["sales"], columns=["p", "total"]), client=scripted)
    assert report.summary == "X and Y sold the same amount."
    assert '"Test report"' in scripted.calls[0]["prompt"]


def test_generate_report_survives_summarizer_failure(sales_store, scripted):
    report = generate_report(sales_store, _suggestion(tables=["sales"]), client=scripted)
    assert report.summary == "Could not generate summary."
    assert report.columns == ["p", "total"]
    assert len(report.rows) == 3
