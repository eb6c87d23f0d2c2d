"""
Gemini REST transport (generativelanguage v1beta generateContent)
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from schemaflow.core.errors import LLMError
from schemaflow.llm.http_base import HTTPLLMClient
from schemaflow.plugins.registry import register_llm_client


@register_llm_client
class GeminiClient(HTTPLLMClient):
    name = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def _endpoint(self) -> str:
        if not self.api_key:
            raise LLMError("Gemini API key is not set (llm.api_key, GEMINI_API_KEY or `config set api_key`)")
        return f"{self.base_url}/models/{self.model or 'gemini-2.5-flash'}:generateContent?key={self.api_key}"

    def _payload(self, prompt: str, history: List[Dict[str, str]],
                 system_instruction: Optional[str]) -> Dict[str, Any]:
        contents = [
            {"role": turn.get("role", "user"), "parts": [{"text": turn.get("text", "")}]}
            for turn in history
        ]
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        body: Dict[str, Any] = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if self.temperature is not None:
            body["generationConfig"] = {"temperature": self.temperature}
        return body

    def _extract_text(self, body: Dict[str, Any]) -> str:
        try:
            parts = body["candidates"][0]["content"]["parts"]
            return "".join(p.get("text", "") for p in parts)
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Unexpected Gemini response shape: {str(body)[:200]}") from e
