from __future__ import annotations

import random

import pytest

from aether.config import Config
from aether.thoughts import DriftSimulator, ThoughtFactory, ThoughtStore, Viewport


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cfg():
    return Config()


@pytest.fixture
def viewport(cfg):
    return Viewport(cfg.engine.viewport_width, cfg.engine.viewport_height)


@pytest.fixture
def store(cfg):
    return ThoughtStore(cfg.engine.max_thoughts)


@pytest.fixture
def factory(cfg, viewport, clock):
    return ThoughtFactory(viewport, cfg.drift, cfg.ephemeral, clock=clock, rng=random.Random(7))


@pytest.fixture
def simulator(cfg, store, viewport, clock):
    return DriftSimulator(store, viewport, cfg.drift, cfg.ephemeral, clock=clock)
