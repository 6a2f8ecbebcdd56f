"""Thought entity, kind policies and the factory that spawns thoughts.

A thought is either the ephemeral echo of what the user said (``USER``) or a
generated reply that stays on screen and drifts (``RESPONSE``). Behaviour that
differs between the two lives in :data:`POLICIES` rather than in scattered
``if kind == ...`` branches.
"""
from __future__ import annotations

import math
import random
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

from aether.config import DriftConfig, EphemeralConfig

Clock = Callable[[], float]


def now_ms() -> float:
    """Wall-clock milliseconds, the unit every thought timestamp uses."""
    return time.time() * 1000.0


class ThoughtKind(str, Enum):
    USER = "user"
    RESPONSE = "response"

    @classmethod
    def coerce(cls, value: Optional[object]) -> "ThoughtKind":
        """Map a missing/unknown kind onto RESPONSE (single-kind configurations)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.RESPONSE


class InputMode(str, Enum):
    TYPED = "typed"
    SPOKEN = "spoken"


@dataclass(frozen=True)
class KindPolicy:
    reflect: bool      # bounce inside the margins instead of flying out
    age_decay: bool    # opacity from age (True) or a fixed per-tick step (False)
    removable: bool    # the simulator may retire it
    phase: str


POLICIES: Dict[ThoughtKind, KindPolicy] = {
    ThoughtKind.USER: KindPolicy(reflect=False, age_decay=False, removable=True, phase="exiting"),
    ThoughtKind.RESPONSE: KindPolicy(reflect=True, age_decay=True, removable=False, phase="drifting"),
}


def policy_for(kind: Optional[object]) -> KindPolicy:
    return POLICIES[ThoughtKind.coerce(kind)]


@dataclass
class Vec2:
    x: float = 0.0
    y: float = 0.0

    def copy(self) -> "Vec2":
        return Vec2(self.x, self.y)


@dataclass
class Viewport:
    width: float
    height: float

    @property
    def center(self) -> Vec2:
        return Vec2(self.width / 2.0, self.height / 2.0)


@dataclass(frozen=True)
class ThoughtView:
    """Immutable per-frame copy of a thought, handed to renderers."""
    id: str
    text: str
    kind: ThoughtKind
    x: float
    y: float
    opacity: float
    scale: float
    method: InputMode
    phase: str


@dataclass
class Thought:
    text: str
    kind: ThoughtKind = ThoughtKind.RESPONSE
    position: Vec2 = field(default_factory=Vec2)
    velocity: Vec2 = field(default_factory=Vec2)
    created_at: float = field(default_factory=now_ms)
    opacity: float = 1.0
    scale: float = 1.0
    method: InputMode = InputMode.TYPED
    anchor_time: Optional[float] = None
    phase: str = "drifting"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        self.kind = ThoughtKind.coerce(self.kind)
        if self.anchor_time is None:
            self.anchor_time = self.created_at

    @property
    def policy(self) -> KindPolicy:
        return POLICIES[self.kind]

    def age_ms(self, now: float) -> float:
        return max(0.0, now - self.created_at)

    def view(self) -> ThoughtView:
        return ThoughtView(
            id=self.id,
            text=self.text,
            kind=self.kind,
            x=self.position.x,
            y=self.position.y,
            opacity=self.opacity,
            scale=self.scale,
            method=self.method,
            phase=self.phase,
        )


class ThoughtFactory:
    """Builds new thoughts at the spawn point with kind-appropriate motion."""

    def __init__(
        self,
        viewport: Viewport,
        drift: Optional[DriftConfig] = None,
        ephemeral: Optional[EphemeralConfig] = None,
        *,
        clock: Clock = now_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.viewport = viewport
        self.drift = drift or DriftConfig()
        self.ephemeral = ephemeral or EphemeralConfig()
        self.clock = clock
        self.rng = rng or random.Random()

    def _spawn_point(self) -> Vec2:
        c = self.viewport.center
        return Vec2(c.x, c.y + self.drift.spawn_offset_y)

    def _heading(self, speed: float) -> Vec2:
        angle = self.rng.uniform(0.0, 2.0 * math.pi)
        return Vec2(math.cos(angle) * speed, math.sin(angle) * speed)

    def user(self, text: str, method: InputMode = InputMode.TYPED) -> Thought:
        """Echo of the raw utterance; leaves radially and fades fast."""
        created = self.clock()
        return Thought(
            text=text,
            kind=ThoughtKind.USER,
            position=self._spawn_point(),
            velocity=self._heading(self.ephemeral.exit_speed),
            created_at=created,
            opacity=self.ephemeral.initial_opacity,
            method=InputMode(method),
            phase=POLICIES[ThoughtKind.USER].phase,
        )

    def response(self, text: str, method: InputMode = InputMode.TYPED) -> Thought:
        created = self.clock()
        pos = self._spawn_point()
        j = self.drift.spawn_jitter
        if j > 0:
            pos.x += self.rng.uniform(-j, j)
            pos.y += self.rng.uniform(-j, j)
        speed = self.rng.uniform(self.drift.speed_min, self.drift.speed_max)
        return Thought(
            text=text,
            kind=ThoughtKind.RESPONSE,
            position=pos,
            velocity=self._heading(speed),
            created_at=created,
            opacity=max(self.drift.floor, min(1.0, self.drift.baseline)),
            method=InputMode(method),
            phase=POLICIES[ThoughtKind.RESPONSE].phase,
        )
