import pytest
import requests

from schemaflow.core.errors import LLMError
from schemaflow.llm.gemini_client import GeminiClient
from schemaflow.llm.ollama_client import OllamaClient
from schemaflow.llm.scripted_client import ScriptedClient
from schemaflow.plugins.registry import get_llm_client


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def posts(monkeypatch):
    """Queue of fake responses for requests.post; records each call."""
    state = {"responses": [], "calls": []}

    def fake_post(url, headers=None, json=None, timeout=None):
        state["calls"].append({"url": url, "json": json, "timeout": timeout})
        nxt = state["responses"].pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    monkeypatch.setattr(requests, "post", fake_post)
    monkeypatch.setattr("time.sleep", lambda s: None)
    return state


def _gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_gemini_request_shape(posts):
    posts["responses"].append(FakeResponse(body=_gemini_body("hi")))
    client = GeminiClient({"api_key": "k", "model": "gemini-2.5-flash", "timeout": 5})
    out = client.generate("hello", history=[{"role": "model", "text": "earlier"}], system_instruction="be brief")

    assert out == "hi"
    call = posts["calls"][0]
    assert call["url"].endswith("/models/gemini-2.5-flash:generateContent?key=k")
    assert call["timeout"] == 5
    assert call["json"]["contents"] == [
        {"role": "model", "parts": [{"text": "earlier"}]},
        {"role": "user", "parts": [{"text": "hello"}]},
    ]
    assert call["json"]["systemInstruction"] == {"parts": [{"text": "be brief"}]}


def test_gemini_retries_server_errors_then_succeeds(posts):
    posts["responses"] += [
        FakeResponse(status_code=503),
        requests.exceptions.ConnectionError("down"),
        FakeResponse(body=_gemini_body("ok")),
    ]
    client = GeminiClient({"api_key": "k", "max_retries": 2})
    assert client.generate("x") == "ok"
    assert len(posts["calls"]) == 3


def test_gemini_gives_up_after_bounded_retries(posts):
    posts["responses"] += [FakeResponse(status_code=500)] * 2
    with pytest.raises(LLMError):
        GeminiClient({"api_key": "k", "max_retries": 1}).generate("x")
    assert len(posts["calls"]) == 2


def test_client_errors_are_not_retried(posts):
    posts["responses"].append(FakeResponse(status_code=400, text="bad request"))
    with pytest.raises(LLMError):
        GeminiClient({"api_key": "k", "max_retries": 3}).generate("x")
    assert len(posts["calls"]) == 1


def test_gemini_requires_api_key(posts):
    with pytest.raises(LLMError):
        GeminiClient({}).generate("x")
    assert posts["calls"] == []


def test_malformed_gemini_body(posts):
    posts["responses"].append(FakeResponse(body={"candidates": []}))
    with pytest.raises(LLMError):
        GeminiClient({"api_key": "k"}).generate("x")


def test_ollama_chat_request(posts):
    posts["responses"].append(FakeResponse(body={"message": {"role": "assistant", "content": "pong"}}))
    client = OllamaClient({"model": "llama3", "base_url": "http://ollama:11434/"})
    out = client.generate("ping", history=[{"role": "model", "text": "prev"}], system_instruction="sys")

    assert out == "pong"
    call = posts["calls"][0]
    assert call["url"] == "http://ollama:11434/api/chat"
    assert call["json"]["stream"] is False
    assert call["json"]["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "assistant", "content": "prev"},
        {"role": "user", "content": "ping"},
    ]


def test_scripted_client_replays_and_records():
    client = ScriptedClient({"responses": ["a"]}).queue("b")
    assert client.generate("1") == "a"
    assert client.generate("2") == "b"
    assert [c["prompt"] for c in client.calls] == ["1", "2"]
    with pytest.raises(LLMError):
        client.generate("3")


def test_registry_builds_clients_by_provider():
    assert isinstance(get_llm_client({"provider": "scripted"}), ScriptedClient)
    assert isinstance(get_llm_client({"provider": "gemini", "api_key": "k"}), GeminiClient)
    with pytest.raises(ValueError):
        get_llm_client({"provider": "nope"})
