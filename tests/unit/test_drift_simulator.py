import math

from aether.config import DriftConfig, EphemeralConfig
from aether.thoughts import DriftSimulator, InputMode, Thought, ThoughtKind, ThoughtStore, Vec2, Viewport


def test_persistent_thoughts_stay_inside_margins(store, factory, simulator):
    for i in range(6):
        store.push(factory.response(f"r{i}"))
    # one fast mover to force many reflections
    store.push(Thought(text="fast", position=Vec2(640, 300), velocity=Vec2(7.3, -5.1)))
    (x_lo, x_hi), (y_lo, y_hi) = simulator.bounds()
    for _ in range(10_000):
        simulator.tick()
        for v in store.snapshot():
            assert x_lo <= v.x <= x_hi
            assert y_lo <= v.y <= y_hi
    assert len(store) == 7


def test_bounds_follow_configured_margins(simulator):
    (x_lo, x_hi), (y_lo, y_hi) = simulator.bounds()
    assert (x_lo, x_hi) == (160, 1280 - 160)
    assert (y_lo, y_hi) == (140, 800 - 240)


def test_age_opacity_is_clamped_and_non_increasing(simulator):
    d = simulator.drift
    previous = 1.0
    for age in range(0, 300_001, 500):
        op = simulator.age_opacity(age)
        assert d.floor <= op <= 1.0
        assert op <= previous
        previous = op
        if age >= d.decay_window_ms:
            assert op == d.floor


def test_persistent_opacity_tracks_age_and_is_never_removed(store, factory, simulator, clock):
    store.push(factory.response("stay"))
    simulator.tick()
    assert math.isclose(store.snapshot()[0].opacity, simulator.drift.baseline)
    clock.advance(14_000)
    simulator.tick()
    assert math.isclose(store.snapshot()[0].opacity, simulator.drift.baseline - 0.1)
    clock.advance(10_000_000)
    simulator.tick()
    assert store.snapshot()[0].opacity == simulator.drift.floor
    assert len(store) == 1


def test_ephemeral_thought_fades_and_is_retired(store, factory, simulator):
    store.push(factory.user("gone soon", InputMode.TYPED))
    last = store.snapshot()[0].opacity
    ticks = 0
    while len(store) and ticks < 1_000:
        simulator.tick()
        ticks += 1
        if len(store):
            op = store.snapshot()[0].opacity
            assert op < last
            last = op
    assert len(store) == 0
    assert ticks <= 110


def test_ephemeral_thought_leaving_screen_is_retired():
    store = ThoughtStore()
    vp = Viewport(1000, 600)
    sim = DriftSimulator(store, vp, DriftConfig(), EphemeralConfig(fade_step=0.0, exit_threshold=300))
    store.push(Thought(text="bye", kind=ThoughtKind.USER, position=Vec2(990, 300),
                       velocity=Vec2(50, 0), opacity=0.6))
    for _ in range(6):
        sim.tick()
    assert len(store) == 1
    assert store.snapshot()[0].x > 1000
    sim.tick()
    sim.tick()
    assert len(store) == 0


def test_ephemeral_thoughts_do_not_reflect(store, simulator):
    store.push(Thought(text="out", kind=ThoughtKind.USER, position=Vec2(170, 300),
                       velocity=Vec2(-3, 0), opacity=0.6))
    for _ in range(20):
        simulator.tick()
    view = store.snapshot()[0]
    assert view.x < simulator.drift.margin_x


def test_reflection_at_margin_does_not_oscillate(store, simulator):
    margin = simulator.drift.margin_x
    t = Thought(text="edge", position=Vec2(margin, 300), velocity=Vec2(-0.1, 0.0))
    store.push(t)
    simulator.tick()
    assert t.position.x == margin
    assert t.velocity.x == 0.1
    for _ in range(5):
        simulator.tick()
        assert t.velocity.x > 0
    assert t.position.x > margin


def test_resting_on_margin_does_not_flip(store, simulator):
    margin = simulator.drift.margin_x
    t = Thought(text="touch", position=Vec2(margin, 300), velocity=Vec2(0.2, 0.0))
    store.push(t)
    simulator.tick()
    assert t.velocity.x == 0.2


def test_tiny_viewport_collapses_to_centre_line():
    store = ThoughtStore()
    vp = Viewport(200, 200)
    sim = DriftSimulator(store, vp, DriftConfig(), EphemeralConfig())
    t = Thought(text="squeezed", position=Vec2(100, 100), velocity=Vec2(0.3, 0.3))
    store.push(t)
    for _ in range(50):
        sim.tick()
    (x_lo, x_hi), (y_lo, y_hi) = sim.bounds()
    assert x_lo == x_hi == 100
    assert t.position.x == 100
    assert t.position.y == y_lo


def test_resize_reclamps_on_next_tick(store, simulator):
    t = Thought(text="wide", position=Vec2(1100, 300), velocity=Vec2(0.1, 0))
    store.push(t)
    simulator.resize(900, 800)
    simulator.tick()
    assert t.position.x == 900 - simulator.drift.margin_x
    assert t.velocity.x < 0


def test_tick_counts_frames_and_removals(store, factory, simulator):
    store.push(factory.response("keep"))
    store.push(Thought(text="dead", kind=ThoughtKind.USER, opacity=0.001))
    removed = simulator.tick()
    assert removed == 1
    assert simulator.frames == 1
    assert [v.text for v in store.snapshot()] == ["keep"]
