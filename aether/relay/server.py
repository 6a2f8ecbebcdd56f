#!/usr/bin/env python3
"""
Aether Generation Relay
=======================

FastAPI service that sits between the thought engine and a chat-completion
provider:

1. ``POST /api/thought`` with ``{"text", "systemPrompt"}`` → ``{"text": ...}``
2. Any other method on that path → 405
3. ``GET /api/health`` for liveness checks

Credentials and model come from ``PROVIDER_API_KEY`` / ``PROVIDER_MODEL`` in
the process environment; sampling is fixed by the relay configuration.
"""
import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from aether.config import Config, get_config
from aether.providers import ChatCompletionProvider, ProviderError, ProviderNotConfigured

from .json_logging import log_provider_failure, log_request, logger

THOUGHT_PATH = "/api/thought"


class ThoughtRequest(BaseModel):
    text: str
    systemPrompt: str = ""


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_app(config: Optional[Config] = None) -> FastAPI:
    cfg = config or get_config()
    app = FastAPI(title="Aether Generation Relay", version="1.0.0")
    app.state.config = cfg

    def get_provider() -> ChatCompletionProvider:
        # Read env on every request so rotated keys apply without a restart
        return ChatCompletionProvider.from_env(cfg.relay)

    app.state.get_provider = get_provider

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Centralized logging middleware with request timing."""
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path}", exc_info=e)
            raise
        response_time_ms = (time.time() - start_time) * 1000
        log_request(
            client_ip=get_client_ip(request),
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            response_time_ms=response_time_ms,
            user_agent=request.headers.get("user-agent"),
        )
        response.headers["X-Response-Time"] = f"{response_time_ms:.2f}"
        return response

    @app.post(THOUGHT_PATH)
    def generate_thought(body: ThoughtRequest, provider: ChatCompletionProvider = Depends(get_provider)):
        started = time.time()
        try:
            result = provider.generate(
                text=body.text,
                system_prompt=body.systemPrompt,
                temperature=cfg.relay.temperature,
                max_tokens=cfg.relay.max_tokens,
                timeout=cfg.relay.timeout_s,
            )
        except ProviderNotConfigured as exc:
            log_provider_failure(THOUGHT_PATH, str(exc))
            return JSONResponse(status_code=500, content={"error": "Relay not configured"})
        except ProviderError as exc:
            log_provider_failure(THOUGHT_PATH, str(exc), int((time.time() - started) * 1000))
            return JSONResponse(status_code=502, content={"error": "LLM failure"})
        except Exception as exc:
            logger.error(f"Unexpected relay failure: {exc}", exc_info=exc)
            return JSONResponse(status_code=500, content={"error": "LLM failure"})
        return {"text": result.text or ""}

    @app.api_route(THOUGHT_PATH, methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
    async def thought_method_not_allowed():
        return JSONResponse(
            status_code=405,
            content={"error": "Method not allowed"},
            headers={"Allow": "POST"},
        )

    @app.get("/api/health")
    async def health():
        return {"ok": True, "model_configured": bool(get_provider().model)}

    return app


def serve(config: Optional[Config] = None) -> None:
    import uvicorn

    cfg = config or get_config()
    uvicorn.run(create_app(cfg), host=cfg.relay.host, port=int(cfg.relay.port), log_level="info")


if __name__ == "__main__":
    serve()
