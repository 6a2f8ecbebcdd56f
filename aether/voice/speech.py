"""Speech adapter: microphone capture (SpeechRecognition) and voice output (pyttsx3).

Capture is a single-utterance session: ``start()`` opens the microphone and
listens in the background, the first recognised phrase is delivered through
``on_transcript`` and the session ends by itself. Callbacks fire on the
listener's worker thread; callers that live on an event loop must hop back
with ``loop.call_soon_threadsafe``.

Error reason codes: ``not-supported``, ``not-allowed``, ``audio-capture``,
``no-speech``, ``network``.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from aether.config import VoiceConfig

# Optional dependencies: both are platform/audio dependent. When missing the
# adapter reports itself unsupported instead of failing at import time.
try:  # pragma: no cover - import variability depends on environment
    import speech_recognition as sr  # type: ignore
except Exception:  # pragma: no cover
    sr = None  # type: ignore

try:  # pragma: no cover
    import pyttsx3  # type: ignore
except Exception:  # pragma: no cover
    pyttsx3 = None  # type: ignore

_logger = logging.getLogger(__name__)

REASON_NOT_SUPPORTED = "not-supported"
REASON_NOT_ALLOWED = "not-allowed"
REASON_AUDIO_CAPTURE = "audio-capture"
REASON_NO_SPEECH = "no-speech"
REASON_NETWORK = "network"


class SpeechUnavailable(RuntimeError):
    """Capture or synthesis backend is missing on this platform."""


def _reason_for_os_error(exc: OSError) -> str:
    msg = str(exc).lower()
    if "denied" in msg or "permission" in msg or "not permitted" in msg:
        return REASON_NOT_ALLOWED
    return REASON_AUDIO_CAPTURE


class SpeechAdapter:
    def __init__(
        self,
        config: Optional[VoiceConfig] = None,
        *,
        recognizer=None,
        microphone_factory: Optional[Callable[[], object]] = None,
    ) -> None:
        self.config = config or VoiceConfig()
        self._recognizer = recognizer
        self._microphone_factory = microphone_factory
        self._stop_listening: Optional[Callable[..., None]] = None
        self._lock = threading.RLock()
        self._active = False
        self._tts_engine = None
        self._tts_pool: Optional[ThreadPoolExecutor] = None
        self._on_start: Optional[Callable[[], None]] = None
        self._on_transcript: Optional[Callable[[str], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None
        self._on_end: Optional[Callable[[], None]] = None

    # ---- capability ------------------------------------------------------
    @property
    def supported(self) -> bool:
        if not self.config.enabled:
            return False
        return sr is not None or self._recognizer is not None

    @property
    def active(self) -> bool:
        return self._active

    def set_callbacks(self, on_start=None, on_transcript=None, on_error=None, on_end=None) -> None:
        self._on_start = on_start
        self._on_transcript = on_transcript
        self._on_error = on_error
        self._on_end = on_end

    def _emit(self, cb, *args) -> None:
        if callable(cb):
            cb(*args)

    # ---- capture session -------------------------------------------------
    def _new_recognizer(self):
        if self._recognizer is None:
            self._recognizer = sr.Recognizer()
        return self._recognizer

    def _new_microphone(self):
        if self._microphone_factory is not None:
            return self._microphone_factory()
        return sr.Microphone(device_index=self.config.device_index)

    def start(self) -> bool:
        """Open a capture session. Returns False if one is already active."""
        if not self.supported:
            raise SpeechUnavailable(REASON_NOT_SUPPORTED)
        with self._lock:
            if self._active:
                return False
            recognizer = self._new_recognizer()
            try:
                mic = self._new_microphone()
                self._stop_listening = recognizer.listen_in_background(
                    mic, self._on_audio, phrase_time_limit=self.config.phrase_time_limit
                )
            except AttributeError as exc:
                # SpeechRecognition raises AttributeError when PyAudio is absent
                raise SpeechUnavailable(REASON_NOT_SUPPORTED) from exc
            except OSError as exc:
                _logger.info("microphone unavailable: %s", exc)
                self._emit(self._on_error, _reason_for_os_error(exc))
                return False
            self._active = True
        self._emit(self._on_start)
        return True

    def stop(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._halt()
        self._emit(self._on_end)

    def _halt(self) -> None:
        stopper, self._stop_listening = self._stop_listening, None
        self._active = False
        if stopper is not None:
            # never join here: this may run on the listener thread itself
            stopper(wait_for_stop=False)

    def _recognize(self, recognizer, audio) -> str:
        backend = (self.config.recognizer or "google").lower()
        if backend == "sphinx":
            return recognizer.recognize_sphinx(audio)
        return recognizer.recognize_google(audio, language=self.config.language)

    def _on_audio(self, recognizer, audio) -> None:
        with self._lock:
            if not self._active:
                return
        transcript: Optional[str] = None
        reason: Optional[str] = None
        try:
            transcript = (self._recognize(recognizer, audio) or "").strip()
        except Exception as exc:
            reason = self._reason_for(exc)
            _logger.info("speech recognition failed (%s): %s", reason, exc)
        with self._lock:
            if not self._active:
                return
            self._halt()
        if reason is not None:
            self._emit(self._on_error, reason)
        elif transcript:
            self._emit(self._on_transcript, transcript)
        else:
            self._emit(self._on_error, REASON_NO_SPEECH)
        self._emit(self._on_end)

    @staticmethod
    def _reason_for(exc: Exception) -> str:
        if sr is not None:
            if isinstance(exc, sr.UnknownValueError):
                return REASON_NO_SPEECH
            if isinstance(exc, sr.RequestError):
                return REASON_NETWORK
        return REASON_AUDIO_CAPTURE

    # ---- voice output ----------------------------------------------------
    def _ensure_tts(self):
        if self._tts_engine is not None:
            return self._tts_engine
        if pyttsx3 is None:
            raise SpeechUnavailable("pyttsx3 not installed")
        eng = pyttsx3.init()
        try:
            base_rate = eng.getProperty("rate") or 200
            eng.setProperty("rate", int(base_rate * max(0.1, float(self.config.rate))))
        except Exception as e:  # pragma: no cover - driver specific
            _logger.debug("could not set TTS rate: %s", e)
        self._tts_engine = eng
        return eng

    def _speak_blocking(self, text: str) -> None:
        eng = self._ensure_tts()
        eng.say(text)
        eng.runAndWait()

    async def speak(self, text: str) -> bool:
        """Say ``text``; settles when playback ends. Failures are logged, never raised."""
        if not text:
            return False
        if self._tts_pool is None:
            # pyttsx3 engines must stay on the thread that created them
            self._tts_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="aether_tts")
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._tts_pool, self._speak_blocking, text)
        except Exception as e:
            _logger.warning("TTS speak failed: %s", e)
            return False
        return True

    def close(self) -> None:
        self.stop()
        if self._tts_pool is not None:
            self._tts_pool.shutdown(wait=False)
            self._tts_pool = None
