"""Command-line interface for the caption translator.

WHY: The engine normally lives inside a host page, but it is useful to
exercise the translation policy and the full capture pipeline from a
terminal: translate one string, replay a caption file as if a player were
showing it cue by cue, or serve the HTTP API.

HOW: argparse with three sub-commands. translate runs one orchestrated
translation. replay feeds each non-blank line of a file to an in-memory
caption track, so it travels through the structured adapter, the
continuation merger and (optionally) the orchestrator, and ConsoleSink
prints every rendered line. serve starts uvicorn.

RULES:
- Status output goes to stderr; results go to stdout
- --verbose switches logging to DEBUG (default WARNING)
- translate exits 1 when the result is a provider error
- Settings come from the environment (.env), then command-line overrides
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from caption_translator import __version__
from caption_translator.capture.memory import MemoryTrack, MemoryTrackList
from caption_translator.config import DEFAULT_TARGET_LANGUAGE, LOG_FORMAT
from caption_translator.engine.engine import CaptionEngine
from caption_translator.engine.presentation import ConsoleSink
from caption_translator.settings import InvalidSettingsError, Settings
from caption_translator.translation.orchestrator import build_orchestrator


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    update: Dict[str, Any] = {"targetLang": args.to}
    if getattr(args, "strategy", None):
        update["translationProvider"] = args.strategy
    if getattr(args, "glossary", None):
        update["glossary"] = args.glossary
    if getattr(args, "show_translation", False):
        update["showTranslatedSubtitle"] = True
    return Settings.from_env().merged(update)


# ---------------------------------------------------------------------------
# Sub-commands
# ---------------------------------------------------------------------------


async def _run_translate(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    async with httpx.AsyncClient() as client:
        orchestrator = build_orchestrator(settings, http_client=client)
        result = await orchestrator.translate(args.text, settings.target_language)

    if result.failed:
        _status("Error: {}".format(result.error))
        return 1
    print("[{}] {}".format(result.provider.value, result.translated_text))
    return 0


async def _run_replay(args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        _status("Error: File not found: {}".format(path))
        return 1
    cues = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    cues = [cue for cue in cues if cue]

    settings = _settings_from_args(args)
    track = MemoryTrack(kind="subtitles")
    tracks = MemoryTrackList([track])

    async with httpx.AsyncClient() as client:
        engine = CaptionEngine(
            settings,
            build_orchestrator(settings, http_client=client),
            ConsoleSink(),
        )
        engine.start(lambda: tracks)
        _status("Replaying {} cues from {}".format(len(cues), path.name))
        try:
            for cue in cues:
                track.show_cue(cue)
                await engine.wait_idle()
                if args.interval > 0:
                    await asyncio.sleep(args.interval)
        finally:
            engine.stop()
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    from caption_translator.server.app import run_api

    _status("Serving on http://{}:{}".format(args.host, args.port))
    run_api(host=args.host, port=args.port)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser (separate from main() so tests can inspect it)."""
    parser = argparse.ArgumentParser(
        prog="caption_translator",
        description="Translate captions with a generative provider and a bulk fallback.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    translate = sub.add_parser("translate", help="Translate one text and print the result.")
    translate.add_argument("text", help="Text to translate.")
    _add_common(translate)
    translate.add_argument(
        "--strategy",
        choices=["auto", "force-primary", "force-secondary", "gemini", "google"],
        default=None,
        help="Provider strategy (default: from environment, else auto).",
    )
    translate.add_argument(
        "--glossary",
        default=None,
        help='Comma-separated terms to keep untranslated, e.g. "Kubernetes, Ada".',
    )

    replay = sub.add_parser("replay", help="Replay a caption file through the engine.")
    replay.add_argument("file", help="Text file with one caption cue per line.")
    _add_common(replay)
    replay.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between cues (default: %(default)s). Short gaps merge unterminated lines.",
    )
    replay.add_argument(
        "--show-translation",
        action="store_true",
        help="Translate each displayed line.",
    )

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: %(default)s).")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: %(default)s).")

    return parser


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--to",
        default=DEFAULT_TARGET_LANGUAGE,
        help="Target language ISO 639-1 code (default: %(default)s).",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m caption_translator`` and the console script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    try:
        if args.command == "serve":
            code = _run_serve(args)
        elif args.command == "translate":
            code = asyncio.run(_run_translate(args))
        else:
            code = asyncio.run(_run_replay(args))
    except InvalidSettingsError as exc:
        _status("Error: {}".format(exc))
        code = 1
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
