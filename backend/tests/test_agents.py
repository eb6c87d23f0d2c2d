import json

import pytest

from schemaflow.agents.analyst import AnalystAgent, suggest_reports
from schemaflow.agents.architect import ArchitectAgent, infer_schema
from schemaflow.agents.base import strip_fences
from schemaflow.agents.summarizer import summarize
from schemaflow.core.errors import LLMError, PlannerError, ReportError
from schemaflow.core.models import AggregationMethod


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('```\n[1]\n```') == "[1]"
    assert strip_fences('  {"a": 1} ') == '{"a": 1}'


def test_architect_parses_fenced_plan(scripted, plan_wire):
    scripted.queue("```json\n" + json.dumps(plan_wire) + "\n```")
    plan = infer_schema(scripted, ["Order No", "Customer Name"], [{"Order No": "O1"}])
    assert plan.table_names() == ["orders", "customers", "products"]

    call = scripted.calls[0]
    assert "- Order No" in call["prompt"]
    assert '"Order No": "O1"' in call["prompt"]
    assert "database architect" in call["system_instruction"]


@pytest.mark.parametrize("reply", [
    "not json at all",
    '{"tables": {}}',
    '{"schema": {"t": {"columns": 5}}}',
])
def test_architect_bad_replies_become_planner_errors(scripted, reply):
    scripted.queue(reply)
    with pytest.raises(PlannerError):
        infer_schema(scripted, ["a"])


def test_architect_transport_failure_is_a_planner_error(scripted):
    scripted.queue(LLMError("status 500"))
    with pytest.raises(PlannerError) as exc:
        infer_schema(scripted, ["a"])
    assert "status 500" in str(exc.value)


def test_agent_result_keeps_raw_text(scripted):
    scripted.queue("oops")
    result = ArchitectAgent(scripted).run({"headers": ["a"]})
    assert not result.success
    assert result.raw == "oops"


def test_analyst_parses_suggestions(scripted, plan):
    scripted.queue(json.dumps([{
        "title": "Units by customer",
        "description": "Total units per customer",
        "query": {
            "tables": ["customers", "orders"],
            "columns": {"customers": ["Customer Name"], "orders": ["Qty"]},
            "join": {"parent_table": "customers", "parent_key": "customer_id",
                     "child_table": "orders", "child_key": "customer_id"},
            "aggregation": {"groupBy": "Customer Name", "column": "Qty", "method": "sum", "newColumnName": "units"},
        },
        "chart_config": {"type": "bar"},
    }]))
    suggestions = suggest_reports(scripted, plan)
    assert len(suggestions) == 1
    s = suggestions[0]
    assert s.query.aggregation.method == AggregationMethod.SUM
    assert s.query.requested_columns() == ["Customer Name", "Qty"]
    assert '"customers"' in scripted.calls[0]["prompt"]


def test_analyst_accepts_wrapped_list(scripted, plan):
    agent = AnalystAgent(scripted)
    parsed = agent.parse_response('{"reports": [{"title": "t", "query": {"tables": ["orders"]}}]}')
    assert parsed[0].title == "t"


def test_analyst_failure_raises_report_error(scripted, plan):
    scripted.queue('{"title": "not a list"}')
    with pytest.raises(ReportError):
        suggest_reports(scripted, plan)


def test_summarizer_falls_back_on_failure(scripted):
    scripted.queue("   ")
    assert summarize(scripted, "t", "d", []) == "Could not generate summary."
    scripted.queue("Sales doubled.")
    assert summarize(scripted, "t", "d", [{"a": 1}]) == "Sales doubled."
