from __future__ import annotations
import json
from typing import Any, Dict, List

from schemaflow.agents.base import BaseAgent
from schemaflow.agents.prompts import SUMMARIZER_PROMPT
from schemaflow.core.models import Row
from schemaflow.plugins.api import LLMClient
from schemaflow.common.logger import get_logger

log = get_logger()

FALLBACK_SUMMARY = "Could not generate summary."


class SummarizerAgent(BaseAgent[str]):
    name = "Summarizer"
    description = "Summarizes the key insights from a report."

    def get_prompt(self, context: Dict[str, Any]) -> str:
        return SUMMARIZER_PROMPT.format(
            title=context.get("title", ""),
            description=context.get("description", ""),
            sample=json.dumps(context.get("data") or [], indent=2, default=str),
        )

    def parse_response(self, text: str) -> str:
        # Plain text, not JSON
        text = (text or "").strip()
        if not text:
            raise ValueError("Empty summary")
        return text


def summarize(client: LLMClient, title: str, description: str, rows: List[Row]) -> str:
    """Narrative summary of a report; never fails the report itself."""
    result = SummarizerAgent(client).run({"title": title, "description": description, "data": rows})
    if not result.success or result.data is None:
        log.warning(f"Failed to get summary from AI: {result.error}")
        return FALLBACK_SUMMARY
    return result.data
