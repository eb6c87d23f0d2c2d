"""
Agent base: prompt -> LLM transport -> parsed result

Agents never raise on model trouble; they return an AgentResult so the
caller decides whether a failure is fatal (planner) or cosmetic (summary).
"""
from __future__ import annotations
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from schemaflow.core.errors import LLMError
from schemaflow.plugins.api import LLMClient
from schemaflow.common.logger import get_logger

log = get_logger()

T = TypeVar("T")

_FENCE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_fences(text: str) -> str:
    """Models like to wrap JSON in ```json fences; drop them."""
    m = _FENCE.match(text or "")
    return (m.group(1) if m else (text or "")).strip()


def parse_json(text: str) -> Any:
    try:
        return json.loads(strip_fences(text))
    except json.JSONDecodeError as e:
        raise ValueError(f"Response is not valid JSON: {e.msg} (line {e.lineno}, col {e.colno})") from e


@dataclass
class AgentResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    raw: Optional[str] = None


class BaseAgent(Generic[T]):
    name: str = "agent"
    description: str = ""
    system_instruction: Optional[str] = None

    def __init__(self, client: LLMClient):
        self.client = client

    def get_prompt(self, context: Dict[str, Any]) -> str:
        raise NotImplementedError

    def parse_response(self, text: str) -> T:
        raise NotImplementedError

    def run(self, context: Dict[str, Any], history: Optional[List[Dict[str, str]]] = None) -> AgentResult[T]:
        prompt = self.get_prompt(context)
        log.debug(f"[{self.name}] prompt ({len(prompt)} chars)")
        try:
            text = self.client.generate(prompt, history=history, system_instruction=self.system_instruction)
        except LLMError as e:
            log.dev(f"[{self.name}] transport failed: {e}")
            return AgentResult(success=False, error=str(e))

        log.debug(f"[{self.name}] response: {text[:500]}")
        try:
            return AgentResult(success=True, data=self.parse_response(text), raw=text)
        except ValidationError as e:
            return AgentResult(success=False, error=f"Response has the wrong shape: {e.error_count()} error(s): {e.errors()[0]['msg']}", raw=text)
        except (ValueError, TypeError) as e:
            return AgentResult(success=False, error=str(e), raw=text)
