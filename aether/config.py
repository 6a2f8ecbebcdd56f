"""Central configuration loader.

Precedence: built-in defaults → settings.yaml → environment (AETHER_*).
Env parsing delegates to aether.runtime.env helpers for consistent typing.
Provider credentials are never read from settings files; the relay takes
them from PROVIDER_API_KEY / PROVIDER_MODEL at request time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Optional, Any, Dict

import yaml

from aether.runtime import env as envutil

DEFAULT_SETTINGS_PATH = Path(__file__).with_name("settings.yaml")

DEFAULT_SYSTEM_PROMPT = (
    "You are a quiet inner voice. Answer the user's thought with one or two "
    "short, calm sentences, as if thinking aloud. No lists, no markdown, "
    "no questions back."
)

DEFAULT_FALLBACK_TEXT = "The thought drifted out of reach. Try again in a moment."

STT_RECOGNIZERS = ("google", "sphinx")


# -----------------------------
# dataclasses
# -----------------------------

@dataclass
class EngineConfig:
    max_thoughts: int = 12
    frame_interval_s: float = 1.0 / 60.0
    viewport_width: float = 1280.0
    viewport_height: float = 800.0
    transition_s: float = 2.4  # landing → chat scene delay


@dataclass
class DriftConfig:
    """Policy for persistent (response) thoughts."""
    margin_x: float = 160.0
    margin_top: float = 140.0
    margin_bottom: float = 240.0  # leaves room for the input bar
    speed_min: float = 0.05
    speed_max: float = 0.3
    baseline: float = 0.85
    floor: float = 0.35
    decay_window_ms: float = 140_000.0
    spawn_offset_y: float = -40.0
    spawn_jitter: float = 24.0


@dataclass
class EphemeralConfig:
    """Policy for ephemeral (user echo) thoughts."""
    initial_opacity: float = 0.6
    fade_step: float = 0.006
    exit_speed: float = 2.4
    exit_threshold: float = 300.0


@dataclass
class GenerationConfig:
    relay_url: str = "http://127.0.0.1:8787/api/thought"
    timeout_s: float = 20.0
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    fallback_text: str = DEFAULT_FALLBACK_TEXT
    placeholder: str = "…"
    discard_stale: bool = False


@dataclass
class VoiceConfig:
    enabled: bool = True
    language: str = "en-US"
    recognizer: str = "google"  # "google" | "sphinx"
    device_index: Optional[int] = None
    phrase_time_limit: float = 8.0
    rate: float = 1.0  # speech rate multiplier for pyttsx3


@dataclass
class RelayConfig:
    host: str = "127.0.0.1"
    port: int = 8787
    endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    temperature: float = 0.65
    max_tokens: int = 160
    referer: str = "https://aether.local"
    title: str = "Aether"
    timeout_s: float = 30.0


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    drift: DriftConfig = field(default_factory=DriftConfig)
    ephemeral: EphemeralConfig = field(default_factory=EphemeralConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -----------------------------
# loading / singleton access
# -----------------------------

_CONFIG: Optional[Config] = None


def _load_yaml_settings(path: Path) -> Dict[str, Any]:
    # safe_load also accepts JSON documents
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected settings root type in {str(path)!r}")
    return data


def _apply_section(section: Any, values: Dict[str, Any]) -> None:
    known = {f.name for f in fields(section)}
    for k, v in (values or {}).items():
        if k in known:
            setattr(section, k, v)


def _apply_settings_dict(cfg: Config, data: Dict[str, Any]) -> Config:
    for name in ("engine", "drift", "ephemeral", "generation", "voice", "relay"):
        section = data.get(name) or {}
        if isinstance(section, dict):
            _apply_section(getattr(cfg, name), section)
    return cfg


def _merge_engine_from_env(e: EngineConfig) -> EngineConfig:
    e.max_thoughts = envutil.get_env_int("AETHER_MAX_THOUGHTS", e.max_thoughts)
    e.viewport_width = envutil.get_env_float("AETHER_VIEWPORT_WIDTH", e.viewport_width)
    e.viewport_height = envutil.get_env_float("AETHER_VIEWPORT_HEIGHT", e.viewport_height)
    return e


def _merge_generation_from_env(g: GenerationConfig) -> GenerationConfig:
    g.relay_url = envutil.get_env_str("AETHER_RELAY_URL", g.relay_url) or g.relay_url
    g.timeout_s = envutil.get_env_float("AETHER_GENERATION_TIMEOUT", g.timeout_s)
    g.fallback_text = envutil.get_env_str("AETHER_FALLBACK_TEXT", g.fallback_text) or g.fallback_text
    return g


def _merge_voice_from_env(v: VoiceConfig) -> VoiceConfig:
    v.enabled = envutil.get_env_bool("AETHER_VOICE_ENABLED", v.enabled)
    v.recognizer = envutil.get_env_choice("AETHER_STT_RECOGNIZER", STT_RECOGNIZERS, v.recognizer)
    v.device_index = envutil.get_env_int("AETHER_VOICE_DEVICE", v.device_index)
    v.rate = envutil.get_env_float("AETHER_VOICE_RATE", v.rate)
    return v


def _merge_relay_from_env(r: RelayConfig) -> RelayConfig:
    r.host = envutil.get_env_str("AETHER_RELAY_HOST", r.host) or r.host
    r.port = envutil.get_env_int("AETHER_RELAY_PORT", r.port)
    return r


def load_config(settings_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML + env overrides.

    This function is pure (no module-level state). Use :func:`get_config`
    if you want the cached singleton for general app use.
    """
    cfg = Config()

    if settings_path is None:
        settings_path = envutil.get_env_path("AETHER_SETTINGS_PATH", DEFAULT_SETTINGS_PATH)

    data = _load_yaml_settings(Path(settings_path))
    cfg = _apply_settings_dict(cfg, data)

    cfg.engine = _merge_engine_from_env(cfg.engine)
    cfg.generation = _merge_generation_from_env(cfg.generation)
    cfg.voice = _merge_voice_from_env(cfg.voice)
    cfg.relay = _merge_relay_from_env(cfg.relay)

    return cfg


def get_config() -> Config:
    """Return a cached Config instance (singleton-ish).

    Tests can call :func:`reload_config` to reset.
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reload_config(settings_path: Optional[Path] = None) -> Config:
    """Force reload configuration and update the cache."""
    global _CONFIG
    _CONFIG = load_config(settings_path)
    return _CONFIG
