"""Shared ``aether`` logger with secret redaction.

Every module logs under the ``aether`` hierarchy; the single handler installed
here masks credentials before anything reaches the stream, so a provider key
echoed in an error message never lands in a terminal or log file.
"""
import logging
import re
from typing import Dict, Tuple

_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"

# (pattern, replacement) pairs; keyed secrets keep their key name.
_REDACTIONS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"(api[_-]?key|token|secret|password)\s*[:=]\s*[^\s,;]+", re.I), r"\1=***"),
    (re.compile(r"Bearer\s+[A-Za-z0-9._\-]+"), "Bearer ***"),
    (re.compile(r"sk-[A-Za-z0-9_\-]{8,}"), "***"),
)

_LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERR": logging.ERROR,
    "ERROR": logging.ERROR,
}


def redact(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class _RedactFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.msg, record.args = redact(str(record.getMessage())), ()
        return True


_root = logging.getLogger("aether")
if not _root.handlers:
    _root.setLevel(logging.INFO)
    _handler = logging.StreamHandler()
    _handler.addFilter(_RedactFilter())
    _handler.setFormatter(logging.Formatter(_FORMAT))
    _root.addHandler(_handler)


def _level(name: str) -> int:
    return _LEVELS.get((name or "INFO").upper(), logging.INFO)


def get_logger(name: str = "aether") -> logging.Logger:
    """Return ``name`` under the ``aether`` hierarchy so the redacting handler applies."""
    if name == "aether" or name.startswith("aether."):
        return logging.getLogger(name)
    return logging.getLogger(f"aether.{name}")


def log(msg: str, level: str = "INFO") -> None:
    """One-off message on the shared logger; unknown levels log at INFO."""
    _root.log(_level(level), msg)


def configure(level: str = "INFO") -> None:
    """Set the level of the shared ``aether`` logger (e.g. from ``--log-level``)."""
    _root.setLevel(_level(level))
