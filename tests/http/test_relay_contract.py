import pytest
from fastapi.testclient import TestClient

from aether.config import Config
from aether.providers import ChatCompletionProvider, LLMResponse, ProviderError, ProviderNotConfigured
from aether.relay.server import create_app


class FakeProvider:
    def __init__(self, text="a drifting reply", exc=None):
        self.text = text
        self.exc = exc
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc is not None:
            raise self.exc
        return LLMResponse(text=self.text, model="fake", latency_s=0.01)


@pytest.fixture
def relay():
    app = create_app(Config())

    def _with(provider):
        app.dependency_overrides[app.state.get_provider] = lambda: provider
        return TestClient(app)

    return _with


def test_post_returns_text_with_fixed_sampling(relay):
    provider = FakeProvider()
    client = relay(provider)
    r = client.post("/api/thought", json={"text": "hello", "systemPrompt": "be calm"})
    assert r.status_code == 200
    assert r.json() == {"text": "a drifting reply"}
    assert "X-Response-Time" in r.headers
    call = provider.calls[0]
    assert call["text"] == "hello"
    assert call["system_prompt"] == "be calm"
    assert call["temperature"] == 0.65
    assert call["max_tokens"] == 160


def test_empty_provider_output_is_200_with_empty_text(relay):
    r = relay(FakeProvider(text="")).post("/api/thought", json={"text": "hi"})
    assert r.status_code == 200
    assert r.json() == {"text": ""}


def test_provider_failure_is_5xx_with_error(relay):
    r = relay(FakeProvider(exc=ProviderError("boom"))).post("/api/thought", json={"text": "hi"})
    assert r.status_code == 502
    assert r.json() == {"error": "LLM failure"}


def test_unexpected_provider_bug_is_500_with_error(relay):
    r = relay(FakeProvider(exc=KeyError("choices"))).post("/api/thought", json={"text": "hi"})
    assert r.status_code == 500
    assert r.json() == {"error": "LLM failure"}


class _OneShotSession:
    def __init__(self, data):
        self.data = data

    def post(self, url, json=None, headers=None, timeout=None):
        return _JsonResponse(self.data)


class _JsonResponse:
    status_code = 200
    text = ""

    def __init__(self, data):
        self._data = data

    def json(self):
        return self._data


def test_misshaped_provider_body_is_200_with_empty_text(relay):
    provider = ChatCompletionProvider(
        "https://provider.test/v1/chat/completions", "sk-test-123456789", "some/model",
        session=_OneShotSession({"choices": ["oops"]}),
    )
    r = relay(provider).post("/api/thought", json={"text": "hi"})
    assert r.status_code == 200
    assert r.json() == {"text": ""}


def test_unconfigured_provider_is_500(relay):
    r = relay(FakeProvider(exc=ProviderNotConfigured("PROVIDER_API_KEY is not set"))).post(
        "/api/thought", json={"text": "hi"}
    )
    assert r.status_code == 500
    assert "error" in r.json()


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS"])
def test_other_methods_are_405(relay, method):
    provider = FakeProvider()
    r = relay(provider).request(method, "/api/thought")
    assert r.status_code == 405
    assert r.json() == {"error": "Method not allowed"}
    assert provider.calls == []


def test_missing_text_is_rejected(relay):
    r = relay(FakeProvider()).post("/api/thought", json={"systemPrompt": "x"})
    assert r.status_code == 422


def test_health(monkeypatch):
    monkeypatch.setenv("PROVIDER_MODEL", "some/model")
    client = TestClient(create_app(Config()))
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "model_configured": True}
