"""Thought entities, the capped store and the drift/decay simulator."""
from .model import (  # noqa: F401
    InputMode,
    KindPolicy,
    POLICIES,
    Thought,
    ThoughtFactory,
    ThoughtKind,
    ThoughtView,
    Vec2,
    Viewport,
    now_ms,
    policy_for,
)
from .simulator import DriftSimulator  # noqa: F401
from .store import ThoughtStore  # noqa: F401

__all__ = [
    "DriftSimulator",
    "InputMode",
    "KindPolicy",
    "POLICIES",
    "Thought",
    "ThoughtFactory",
    "ThoughtKind",
    "ThoughtStore",
    "ThoughtView",
    "Vec2",
    "Viewport",
    "now_ms",
    "policy_for",
]
