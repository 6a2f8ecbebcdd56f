"""Provider adapter for the generation relay."""
from __future__ import annotations

from .base import (  # noqa: F401
    ChatCompletionProvider,
    LLMResponse,
    ProviderError,
    ProviderNotConfigured,
)

__all__ = [
    "ChatCompletionProvider",
    "LLMResponse",
    "ProviderError",
    "ProviderNotConfigured",
]
