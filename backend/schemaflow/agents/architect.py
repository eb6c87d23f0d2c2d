from __future__ import annotations
import json
from typing import Any, Dict, List, Optional

from schemaflow.agents.base import AgentResult, BaseAgent, parse_json
from schemaflow.agents.prompts import ARCHITECT_PROMPT, ARCHITECT_SYSTEM
from schemaflow.core.errors import PlannerError
from schemaflow.core.models import Row, SchemaPlan
from schemaflow.plugins.api import LLMClient


class ArchitectAgent(BaseAgent[SchemaPlan]):
    """Proposes a normalized SchemaPlan from a flat header list."""
    name = "Database Architect"
    description = "Designs a normalized table layout for a flat CSV file."
    system_instruction = ARCHITECT_SYSTEM

    def get_prompt(self, context: Dict[str, Any]) -> str:
        headers = context.get("headers") or []
        sample = context.get("sample") or []
        return ARCHITECT_PROMPT.format(
            headers="\n".join(f"- {h}" for h in headers),
            sample=json.dumps(sample, indent=2, default=str) if sample else "(none)",
        )

    def parse_response(self, text: str) -> SchemaPlan:
        data = parse_json(text)
        if not isinstance(data, dict) or "schema" not in data:
            raise ValueError("Response has no 'schema' object")
        return SchemaPlan.model_validate(data)


def infer_schema(client: LLMClient, headers: List[str], sample: Optional[List[Row]] = None) -> SchemaPlan:
    """Ask the architect for a plan; any failure becomes PlannerError."""
    result: AgentResult[SchemaPlan] = ArchitectAgent(client).run({"headers": headers, "sample": sample or []})
    if not result.success or result.data is None:
        raise PlannerError(f"AI Architect failed: {result.error}", diagnostics=[result.error or ""])
    return result.data
