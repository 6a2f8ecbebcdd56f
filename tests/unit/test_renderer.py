import io

from aether.chat.renderer import TerminalRenderer, format_view
from aether.thoughts import Thought, ThoughtKind, ThoughtStore


def test_each_thought_is_drawn_once_oldest_first():
    out = io.StringIO()
    renderer = TerminalRenderer(out)
    store = ThoughtStore()
    store.subscribe(renderer)
    store.push(Thought(text="first", kind=ThoughtKind.USER, opacity=0.6))
    store.push(Thought(text="second", opacity=0.85))
    store.replace(lambda t: True)
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("› first")
    assert lines[1].endswith("~ second")
    assert renderer.visible == 2


def test_retired_thoughts_are_forgotten():
    out = io.StringIO()
    renderer = TerminalRenderer(out)
    store = ThoughtStore()
    store.subscribe(renderer)
    store.push(Thought(text="gone", kind=ThoughtKind.USER))
    store.replace(lambda t: False)
    assert renderer.visible == 0


def test_format_handles_transparent_thoughts():
    view = Thought(text="faint", kind=ThoughtKind.USER, opacity=0.0).view()
    assert format_view(view) == "  › faint"
