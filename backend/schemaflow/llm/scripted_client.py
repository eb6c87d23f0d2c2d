"""
Scripted LLM transport

Replays canned responses in order and records every call. Used by the test
suite and for offline demos (`llm.provider: scripted`).
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional

from schemaflow.core.errors import LLMError
from schemaflow.plugins.api import LLMClient
from schemaflow.plugins.registry import register_llm_client


@register_llm_client
class ScriptedClient(LLMClient):
    name = "scripted"

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        config = dict(config or {})
        self.responses: List[Any] = list(config.get("responses") or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> "ScriptedClient":
        self.responses.extend(responses)
        return self

    def generate(self, prompt: str, history: Optional[List[Dict[str, str]]] = None,
                 system_instruction: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "history": list(history or []),
                           "system_instruction": system_instruction})
        if not self.responses:
            raise LLMError("Scripted client has no responses left")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return str(nxt)
