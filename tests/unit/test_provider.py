import pytest
import requests

from aether.config import RelayConfig
from aether.providers import ChatCompletionProvider, ProviderError, ProviderNotConfigured


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


def _provider(session, api_key="sk-test-123456789", model="some/model"):
    return ChatCompletionProvider(
        "https://provider.test/v1/chat/completions", api_key, model,
        referer="https://aether.local", title="Aether", session=session,
    )


def _generate(provider):
    return provider.generate(
        text="hello", system_prompt="be calm", temperature=0.65, max_tokens=160, timeout=5
    )


def test_builds_chat_completion_request():
    session = FakeSession(FakeResponse(200, {
        "choices": [{"message": {"content": "  calm words  "}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3},
    }))
    result = _generate(_provider(session))
    assert result.text == "calm words"
    assert result.prompt_tokens == 12
    call = session.calls[0]
    assert call["url"] == "https://provider.test/v1/chat/completions"
    assert call["json"] == {
        "model": "some/model",
        "messages": [
            {"role": "system", "content": "be calm"},
            {"role": "user", "content": "hello"},
        ],
        "temperature": 0.65,
        "max_tokens": 160,
    }
    assert call["headers"]["Authorization"] == "Bearer sk-test-123456789"
    assert call["headers"]["X-Title"] == "Aether"
    assert call["headers"]["HTTP-Referer"] == "https://aether.local"
    assert call["timeout"] == 5


def test_missing_choices_yield_empty_text():
    result = _generate(_provider(FakeSession(FakeResponse(200, {"choices": []}))))
    assert result.text == ""


@pytest.mark.parametrize("body", [
    {"choices": ["oops"]},
    {"choices": "nope"},
    {"choices": [{"message": "flat"}]},
    {"choices": [{"message": {"content": ["a", "b"]}}]},
    {"choices": [{"message": {"content": "ok"}}], "usage": "n/a"},
])
def test_misshaped_choices_do_not_raise(body):
    result = _generate(_provider(FakeSession(FakeResponse(200, body))))
    assert result.text in ("", "ok")
    assert result.prompt_tokens is None


@pytest.mark.parametrize("api_key,model", [(None, "m"), ("k", None), ("  ", "m")])
def test_missing_credentials(api_key, model):
    with pytest.raises(ProviderNotConfigured):
        _generate(_provider(FakeSession(), api_key=api_key, model=model))


def test_http_error_status():
    session = FakeSession(FakeResponse(429, {"error": "slow down"}, text="rate limited"))
    with pytest.raises(ProviderError, match="429"):
        _generate(_provider(session))


def test_transport_error():
    session = FakeSession(exc=requests.ConnectionError("down"))
    with pytest.raises(ProviderError):
        _generate(_provider(session))


def test_non_json_body():
    with pytest.raises(ProviderError):
        _generate(_provider(FakeSession(FakeResponse(200, None, text="<html>"))))


def test_from_env(monkeypatch):
    monkeypatch.setenv("PROVIDER_API_KEY", "sk-env-key-0000")
    monkeypatch.setenv("PROVIDER_MODEL", "env/model")
    provider = ChatCompletionProvider.from_env(RelayConfig())
    assert provider.api_key == "sk-env-key-0000"
    assert provider.model == "env/model"
    assert provider.endpoint == RelayConfig().endpoint
