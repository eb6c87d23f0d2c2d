"""
Shared request/retry loop for HTTP-backed LLM transports
"""
from __future__ import annotations
import time
from abc import abstractmethod
from typing import Any, Dict, List, Mapping, Optional

import requests

from schemaflow.core.errors import LLMError
from schemaflow.plugins.api import LLMClient
from schemaflow.common.logger import get_logger

log = get_logger()


class HTTPLLMClient(LLMClient):
    """
    Posts one JSON request per `generate` call.

    Network errors and 5xx/429 responses are retried `max_retries` times with
    a fixed delay; anything else (4xx, malformed body) fails immediately.
    """
    default_base_url = ""

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        config = dict(config or {})
        self.model = str(config.get("model") or "")
        self.api_key = config.get("api_key")
        self.base_url = str(config.get("base_url") or self.default_base_url).rstrip("/")
        self.timeout = float(config.get("timeout", 60.0))
        self.max_retries = int(config.get("max_retries", 2))
        self.retry_delay = float(config.get("retry_delay", 2.0))
        self.temperature = config.get("temperature")

    @abstractmethod
    def _endpoint(self) -> str:
        ...

    @abstractmethod
    def _payload(self, prompt: str, history: List[Dict[str, str]],
                 system_instruction: Optional[str]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def _extract_text(self, body: Dict[str, Any]) -> str:
        ...

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def generate(self, prompt: str, history: Optional[List[Dict[str, str]]] = None,
                 system_instruction: Optional[str] = None) -> str:
        payload = self._payload(prompt, list(history or []), system_instruction)
        attempts = self.max_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                resp = requests.post(self._endpoint(), headers=self._headers(), json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                last_error = f"Request failed: {e}"
            else:
                if resp.status_code == 429 or resp.status_code >= 500:
                    last_error = f"API call failed with status: {resp.status_code}"
                elif resp.status_code >= 400:
                    raise LLMError(f"API call failed with status: {resp.status_code}: {resp.text[:200]}")
                else:
                    try:
                        body = resp.json()
                    except ValueError as e:
                        raise LLMError(f"{self.name} returned a non-JSON body: {e}") from e
                    return self._extract_text(body)

            if attempt < attempts:
                log.warning(f"{self.name} call failed ({last_error}); retry {attempt}/{self.max_retries}")
                time.sleep(self.retry_delay)

        raise LLMError(f"{self.name} call failed after {attempts} attempt(s): {last_error}")
