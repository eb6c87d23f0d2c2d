"""
Ollama transport (/api/chat, non-streaming)
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from schemaflow.core.errors import LLMError
from schemaflow.llm.http_base import HTTPLLMClient
from schemaflow.plugins.registry import register_llm_client


@register_llm_client
class OllamaClient(HTTPLLMClient):
    name = "ollama"
    default_base_url = "http://localhost:11434"

    def _endpoint(self) -> str:
        return f"{self.base_url}/api/chat"

    def _payload(self, prompt: str, history: List[Dict[str, str]],
                 system_instruction: Optional[str]) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        for turn in history:
            # Ollama calls the model side "assistant"
            role = "assistant" if turn.get("role") == "model" else turn.get("role", "user")
            messages.append({"role": role, "content": turn.get("text", "")})
        messages.append({"role": "user", "content": prompt})
        body: Dict[str, Any] = {"model": self.model, "messages": messages, "stream": False}
        if self.temperature is not None:
            body["options"] = {"temperature": self.temperature}
        return body

    def _extract_text(self, body: Dict[str, Any]) -> str:
        try:
            return str(body["message"]["content"])
        except (KeyError, TypeError) as e:
            raise LLMError(f"Unexpected Ollama response shape: {str(body)[:200]}") from e
