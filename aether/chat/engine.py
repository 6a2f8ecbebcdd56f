"""Engine lifecycle controller.

Owns the scoped resources of a session: the animation task (alive only while
the CHAT scene is presented) and the speech capture session. Everything runs
on one asyncio loop, so the animation tick and the orchestrator's store
insertions never interleave mid-operation.
"""
from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Optional, Tuple

from aether.config import Config, get_config
from aether.thoughts import (
    DriftSimulator,
    InputMode,
    ThoughtFactory,
    ThoughtStore,
    ThoughtView,
    Viewport,
    now_ms,
)
from aether.thoughts.model import Clock
from aether.voice.speech import REASON_NOT_SUPPORTED, SpeechAdapter, SpeechUnavailable

from .generation import GenerationService, RelayGenerationClient
from .orchestrator import InputOrchestrator

_log = logging.getLogger(__name__)


class Scene(str, Enum):
    LANDING = "landing"
    TRANSITIONING = "transitioning"
    CHAT = "chat"


class ThoughtEngine:
    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        generator: Optional[GenerationService] = None,
        speech: Optional[SpeechAdapter] = None,
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or get_config()
        eng = self.config.engine
        self.viewport = Viewport(float(eng.viewport_width), float(eng.viewport_height))
        self.store = ThoughtStore(eng.max_thoughts)
        self.factory = ThoughtFactory(
            self.viewport, self.config.drift, self.config.ephemeral, clock=clock, rng=rng
        )
        self.simulator = DriftSimulator(
            self.store, self.viewport, self.config.drift, self.config.ephemeral, clock=clock
        )
        self.generator = generator or RelayGenerationClient(self.config.generation)
        self.speech = speech
        self.orchestrator = InputOrchestrator(
            self.store,
            self.factory,
            self.generator,
            self.config.generation,
            speaker=self.speech.speak if self.speech is not None else None,
            on_accept=self.clear_input,
        )
        self.scene = Scene.LANDING
        self.input_text = ""
        self.is_listening = False
        self.mic_error: Optional[str] = None
        self._frame_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ---- presentation boundary ------------------------------------------
    @property
    def is_busy(self) -> bool:
        return self.orchestrator.is_busy

    @property
    def can_send(self) -> bool:
        return not self.is_busy and bool(self.input_text.strip())

    @property
    def animating(self) -> bool:
        return self._frame_task is not None and not self._frame_task.done()

    def snapshot(self) -> Tuple[ThoughtView, ...]:
        return self.store.snapshot()

    def set_input(self, text: str) -> None:
        self.input_text = text or ""

    def clear_input(self) -> None:
        self.input_text = ""

    def resize(self, width: float, height: float) -> None:
        self.simulator.resize(width, height)

    async def submit(self, text: Optional[str], mode: InputMode = InputMode.TYPED) -> bool:
        return await self.orchestrator.submit(text, mode)

    async def submit_input(self) -> bool:
        """Submit whatever is in the input buffer as a typed utterance."""
        return await self.orchestrator.submit(self.input_text, InputMode.TYPED)

    # ---- scenes ----------------------------------------------------------
    async def enter(self) -> None:
        """LANDING → TRANSITIONING → (after the transition delay) CHAT."""
        if self.scene is not Scene.LANDING:
            return
        self.scene = Scene.TRANSITIONING
        await asyncio.sleep(max(0.0, float(self.config.engine.transition_s)))
        if self.scene is Scene.TRANSITIONING:
            self.enter_chat()

    def enter_chat(self) -> None:
        if self.scene is Scene.CHAT and self.animating:
            return
        self._loop = asyncio.get_running_loop()
        self.scene = Scene.CHAT
        self._acquire_speech()
        self._frame_task = self._loop.create_task(self._run_frames(), name="aether_frames")
        _log.info("chat scene active (%dx%d)", self.viewport.width, self.viewport.height)

    async def leave(self) -> None:
        """Leave CHAT: cancel the animation task and release the speech session."""
        self.scene = Scene.LANDING
        task, self._frame_task = self._frame_task, None
        try:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        finally:
            self._release_speech()
            self.orchestrator.invalidate()

    async def close(self) -> None:
        try:
            await self.leave()
            await self.orchestrator.drain()
        finally:
            if self.speech is not None:
                self.speech.close()
            aclose = getattr(self.generator, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _run_frames(self) -> None:
        interval = float(self.config.engine.frame_interval_s)
        while True:
            try:
                self.simulator.tick()
            except Exception:
                _log.exception("animation stopped: frame %d failed", self.simulator.frames)
                return
            await asyncio.sleep(interval)

    # ---- speech ----------------------------------------------------------
    def _acquire_speech(self) -> None:
        if self.speech is None:
            return
        if not self.speech.supported:
            self.mic_error = "not supported"
            _log.info("voice input not supported on this platform")
            return
        self.speech.set_callbacks(
            on_start=lambda: self._from_thread(self._speech_started),
            on_transcript=lambda text: self._from_thread(self._speech_transcript, text),
            on_error=lambda reason: self._from_thread(self._speech_error, reason),
            on_end=lambda: self._from_thread(self._speech_ended),
        )

    def _release_speech(self) -> None:
        if self.speech is None:
            return
        self.speech.stop()
        self.speech.set_callbacks()
        self.is_listening = False

    def _from_thread(self, fn, *args) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(fn, *args)

    def _speech_started(self) -> None:
        self.mic_error = None
        self.is_listening = True

    def _speech_transcript(self, text: str) -> None:
        self.orchestrator.submit_nowait(text, InputMode.SPOKEN)

    def _speech_error(self, reason: str) -> None:
        self.is_listening = False
        self.mic_error = reason
        _log.info("voice input error: %s", reason)

    def _speech_ended(self) -> None:
        self.is_listening = False

    def toggle_listening(self) -> bool:
        """Stop capture if listening, otherwise start it. Returns the new listening state."""
        if self.speech is None or self.scene is not Scene.CHAT:
            return False
        if not self.speech.supported:
            self.mic_error = "not supported"
            return False
        if self.is_listening or self.speech.active:
            self.speech.stop()
            return False
        try:
            return self.speech.start()
        except SpeechUnavailable:
            self.mic_error = "not supported"
            _log.info("voice input not supported (%s)", REASON_NOT_SUPPORTED)
            return False
