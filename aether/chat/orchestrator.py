"""Input orchestration: one utterance in flight, always a visible reply.

States: ``IDLE → SUBMITTING → (SUCCESS | FAILURE) → IDLE``. The gate check and
the switch to ``SUBMITTING`` happen before the first ``await``, so on a single
event loop two submissions can never both pass it.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from aether.config import GenerationConfig
from aether.thoughts import InputMode, ThoughtFactory, ThoughtStore

from .generation import GenerationError, GenerationService

_log = logging.getLogger(__name__)

Speaker = Callable[[str], Awaitable[None]]


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILURE = "failure"


class InputOrchestrator:
    def __init__(
        self,
        store: ThoughtStore,
        factory: ThoughtFactory,
        generator: GenerationService,
        config: Optional[GenerationConfig] = None,
        *,
        speaker: Optional[Speaker] = None,
        on_accept: Optional[Callable[[], None]] = None,
    ) -> None:
        self.store = store
        self.factory = factory
        self.generator = generator
        self.config = config or GenerationConfig()
        self.speaker = speaker
        self.on_accept = on_accept  # e.g. clear the UI input buffer
        self.state = OrchestratorState.IDLE
        self.last_outcome: Optional[OrchestratorState] = None
        self._token = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_busy(self) -> bool:
        return self.state is not OrchestratorState.IDLE

    def accepts(self, text: Optional[str]) -> bool:
        return bool((text or "").strip()) and not self.is_busy

    async def submit(self, text: Optional[str], mode: InputMode = InputMode.TYPED) -> bool:
        """Handle one utterance. Returns False when it was dropped (blank or busy)."""
        if not (text or "").strip():
            _log.debug("dropped blank utterance")
            return False
        if self.is_busy:
            _log.debug("dropped utterance while a request is in flight")
            return False

        mode = InputMode(mode)
        self.state = OrchestratorState.SUBMITTING
        self._token += 1
        token = self._token
        if self.on_accept is not None:
            self.on_accept()

        try:
            self.store.push(self.factory.user(text, mode))

            try:
                reply = await self.generator.generate(text)
                if not isinstance(reply, str):
                    raise GenerationError(f"generator returned {type(reply).__name__}, expected str")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                _log.warning("generation failed, using fallback: %s", exc)
                self.state = OrchestratorState.FAILURE
                reply = self.config.fallback_text
            else:
                self.state = OrchestratorState.SUCCESS
                if not reply.strip():
                    reply = self.config.placeholder

            if self.config.discard_stale and token != self._token:
                _log.info("discarding stale reply for request %d", token)
                return True

            self.store.push(self.factory.response(reply, mode))

            if mode is InputMode.SPOKEN and self.speaker is not None:
                try:
                    await self.speaker(reply)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    _log.warning("voice output failed: %s", exc)
            return True
        finally:
            self.last_outcome = self.state if self.state is not OrchestratorState.SUBMITTING else None
            self.state = OrchestratorState.IDLE

    def submit_nowait(self, text: Optional[str], mode: InputMode = InputMode.TYPED) -> Optional[asyncio.Task]:
        """Schedule :meth:`submit` from a synchronous UI callback.

        The gate is checked synchronously so a dropped utterance costs no task.
        A strong reference to the task is kept until it finishes.
        """
        if not self.accepts(text):
            return None
        task = asyncio.get_running_loop().create_task(self.submit(text, mode))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def invalidate(self) -> None:
        """Mark the in-flight request (if any) as superseded.

        Only has an effect when ``discard_stale`` is enabled.
        """
        self._token += 1

    async def drain(self) -> None:
        """Wait for any scheduled submissions to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
