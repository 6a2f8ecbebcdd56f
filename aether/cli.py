"""Command line entry point: ``aether relay | chat | config``."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from aether.config import Config, load_config
from aether.telemetry.logger import configure as configure_logging, log


def _load_env() -> None:
    override = os.getenv("AETHER_DOTENV_PATH")
    if override:
        load_dotenv(dotenv_path=Path(override))
        return
    for candidate in (Path.cwd() / ".env", Path(__file__).resolve().parents[1] / ".env"):
        if candidate.exists():
            load_dotenv(dotenv_path=candidate)
            return


def _cmd_config(cfg: Config, args: argparse.Namespace) -> int:
    print(json.dumps(cfg.to_dict(), indent=2, default=str))
    return 0


def _cmd_relay(cfg: Config, args: argparse.Namespace) -> int:
    from aether.relay.server import serve

    if args.host:
        cfg.relay.host = args.host
    if args.port:
        cfg.relay.port = args.port
    log(f"relay serving on {cfg.relay.host}:{cfg.relay.port}")
    serve(cfg)
    return 0


async def _chat_loop(cfg: Config, args: argparse.Namespace) -> int:
    from aether.chat.engine import Scene, ThoughtEngine
    from aether.chat.renderer import TerminalRenderer
    from aether.thoughts import InputMode
    from aether.voice.speech import SpeechAdapter

    if args.text_only:
        cfg.voice.enabled = False
    speech = SpeechAdapter(cfg.voice) if cfg.voice.enabled else None
    engine = ThoughtEngine(cfg, speech=speech)
    renderer = TerminalRenderer()
    unsubscribe = engine.store.subscribe(renderer)

    if args.skip_transition:
        engine.enter_chat()
    else:
        print("…")
        await engine.enter()
    if engine.scene is not Scene.CHAT:
        return 1
    if engine.mic_error:
        print(f"[voice] {engine.mic_error}")
    print("type a thought · /mic toggles voice · /quit exits")

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.rstrip("\n")
            if line.strip() == "/quit":
                break
            if line.strip() == "/mic":
                listening = engine.toggle_listening()
                print(f"[voice] {'listening…' if listening else (engine.mic_error or 'stopped')}")
                continue
            engine.set_input(line)
            if engine.orchestrator.submit_nowait(engine.input_text, InputMode.TYPED) is None and line.strip():
                print("[busy]")
    finally:
        unsubscribe()
        await engine.close()
        log(f"chat session closed after {engine.simulator.frames} frames", "DEBUG")
    return 0


def _cmd_chat(cfg: Config, args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_chat_loop(cfg, args))
    except KeyboardInterrupt:
        return 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aether", description="Drifting generated thoughts")
    parser.add_argument("--settings", type=Path, default=None, help="Path to settings.yaml")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    p_relay = sub.add_parser("relay", help="Serve the generation relay")
    p_relay.add_argument("--host", default=None)
    p_relay.add_argument("--port", type=int, default=None)
    p_relay.set_defaults(func=_cmd_relay)

    p_chat = sub.add_parser("chat", help="Run the thought engine in the terminal")
    p_chat.add_argument("--text-only", action="store_true", help="Disable speech input and output")
    p_chat.add_argument("--skip-transition", action="store_true", help="Enter the chat scene immediately")
    p_chat.set_defaults(func=_cmd_chat)

    p_cfg = sub.add_parser("config", help="Print the resolved configuration as JSON")
    p_cfg.set_defaults(func=_cmd_config)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _load_env()
    configure_logging(args.log_level)
    cfg = load_config(args.settings)
    return int(args.func(cfg, args) or 0)


if __name__ == "__main__":
    sys.exit(main())
