"""Chat-completion provider used by the relay."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import os
import time

import requests

from aether.config import RelayConfig

API_KEY_ENV = "PROVIDER_API_KEY"
MODEL_ENV = "PROVIDER_MODEL"

_log = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    """Generic provider failure."""


class ProviderNotConfigured(ProviderError):
    """Raised when a provider is missing credentials or configuration."""


@dataclass
class LLMResponse:
    text: str
    model: str
    latency_s: float
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


def _first_content(data: Dict[str, Any]) -> str:
    """Return ``choices[0].message.content``, or "" when any level is missing or mis-shaped."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


class ChatCompletionProvider:
    """OpenAI-compatible ``/chat/completions`` endpoint (OpenRouter by default)."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str],
        model: Optional[str],
        *,
        referer: str = "",
        title: str = "",
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = (endpoint or "").strip()
        self.api_key = (api_key or "").strip() or None
        self.model = (model or "").strip() or None
        self.referer = referer
        self.title = title
        self._session = session or requests.Session()

    @classmethod
    def from_env(cls, relay: RelayConfig) -> "ChatCompletionProvider":
        return cls(
            relay.endpoint,
            os.getenv(API_KEY_ENV),
            os.getenv(MODEL_ENV),
            referer=relay.referer,
            title=relay.title,
        )

    def ensure_ready(self) -> None:
        if not self.endpoint:
            raise ProviderNotConfigured("provider endpoint is not set")
        if not self.api_key:
            raise ProviderNotConfigured(f"{API_KEY_ENV} is not set")
        if not self.model:
            raise ProviderNotConfigured(f"{MODEL_ENV} is not set")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.title:
            headers["X-Title"] = self.title
        return headers

    def generate(
        self,
        *,
        text: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> LLMResponse:
        self.ensure_ready()
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": text or ""})
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": max(0.0, min(2.0, float(temperature))),
            "max_tokens": int(max_tokens),
        }
        started = time.perf_counter()
        try:
            response = self._session.post(
                self.endpoint, json=payload, headers=self._headers(), timeout=timeout
            )
        except requests.RequestException as exc:
            raise ProviderError(f"provider request failed: {exc}") from exc
        latency = time.perf_counter() - started
        if response.status_code >= 400:
            raise ProviderError(
                f"provider error {response.status_code}: {response.text.strip()[:300]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("provider returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProviderError("provider returned an unexpected JSON shape")
        content = _first_content(data)
        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        _log.debug("provider replied in %.2fs", latency)
        return LLMResponse(
            text=content.strip(),
            model=self.model or "",
            latency_s=latency,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
