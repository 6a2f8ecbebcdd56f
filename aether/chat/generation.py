"""Client side of the generation relay.

``generate(text)`` either returns the reply text (possibly empty) or raises
:class:`GenerationError`. The relay contract is ``POST {text, systemPrompt}``
→ ``200 {"text": "..."}``; anything else is a failure.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from aether.config import GenerationConfig

_log = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Transport, timeout, status or payload failure talking to the relay."""


class GenerationService(Protocol):
    async def generate(self, text: str) -> str: ...


class RelayGenerationClient:
    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or GenerationConfig()
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_s)
        return self._client

    async def generate(self, text: str) -> str:
        payload = {"text": text, "systemPrompt": self.config.system_prompt}
        try:
            response = await self._http().post(self.config.relay_url, json=payload)
        except httpx.HTTPError as exc:
            raise GenerationError(f"relay request failed: {exc}") from exc
        if response.status_code != 200:
            raise GenerationError(
                f"relay error {response.status_code}: {response.text.strip()[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationError("relay returned a non-JSON body") from exc
        reply = data.get("text") if isinstance(data, dict) else None
        if not isinstance(reply, str):
            raise GenerationError("relay response is missing a 'text' string")
        return reply

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
