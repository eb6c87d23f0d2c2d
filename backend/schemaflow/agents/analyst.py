from __future__ import annotations
import json
from typing import Any, Dict, List

from schemaflow.agents.base import BaseAgent, parse_json
from schemaflow.agents.prompts import ANALYST_PROMPT, ANALYST_SYSTEM
from schemaflow.core.errors import ReportError
from schemaflow.core.models import ReportSuggestion, SchemaPlan
from schemaflow.plugins.api import LLMClient


class AnalystAgent(BaseAgent[List[ReportSuggestion]]):
    """Suggests reports over the stored schema."""
    name = "BI Analyst"
    description = "Suggests analytical reports for a stored schema."
    system_instruction = ANALYST_SYSTEM

    def get_prompt(self, context: Dict[str, Any]) -> str:
        plan: SchemaPlan = context["plan"]
        return ANALYST_PROMPT.format(
            schema=json.dumps(plan.to_wire(), indent=2),
            count=int(context.get("count", 4)),
        )

    def parse_response(self, text: str) -> List[ReportSuggestion]:
        data = parse_json(text)
        # Some models wrap the array: {"reports": [...]}
        if isinstance(data, dict):
            data = data.get("reports") or data.get("suggestions")
        if not isinstance(data, list):
            raise ValueError("Response is not a list of report suggestions")
        return [ReportSuggestion.model_validate(item) for item in data]


def suggest_reports(client: LLMClient, plan: SchemaPlan, count: int = 4) -> List[ReportSuggestion]:
    result = AnalystAgent(client).run({"plan": plan, "count": count})
    if not result.success or result.data is None:
        raise ReportError(f"Failed to get report suggestions: {result.error}")
    return result.data
