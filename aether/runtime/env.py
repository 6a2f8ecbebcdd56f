import os
from pathlib import Path
from typing import Iterable, Optional

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def get_env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return env var as str or *default* if missing/empty."""
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def get_env_bool(name: str, default: bool = False) -> bool:
    """Return env var parsed as boolean; unrecognised values keep *default*."""
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return default


def get_env_int(name: str, default: Optional[int]) -> Optional[int]:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def get_env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def get_env_path(name: str, default: Path) -> Path:
    """Return a Path from env or the provided default Path."""
    v = get_env_str(name)
    return Path(v) if v else default


def get_env_choice(name: str, choices: Iterable[str], default: str) -> str:
    """Return the lower-cased env value if it is one of *choices*, else *default*."""
    v = (get_env_str(name) or "").lower()
    return v if v in {c.lower() for c in choices} else default
