"""FCINQ CLI entrypoints."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .chat.context_images import context_image_from_file
from .chat.loop import ChatLoop
from .errors import ValidationError
from .session.store import SessionStore
from .settings import EngineSettings
from .utils import load_dotenv


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fcinq", description="FCINQ generation workflow client")
    sub = parser.add_subparsers(dest="command")

    def _common(command: argparse.ArgumentParser) -> None:
        command.add_argument("--webhook", help="n8n webhook URL (overrides FCINQ_WEBHOOK_URL)")
        command.add_argument("--storage", help="Session storage file (overrides FCINQ_STORAGE_PATH)")
        command.add_argument("--events", help="Path to events.jsonl (overrides FCINQ_EVENTS_PATH)")
        command.add_argument("--dryrun", action="store_true", help="Answer locally without the workflow")
        command.add_argument("--downloads", default=".", help="Directory for downloaded results")

    chat = sub.add_parser("chat", help="Interactive chat loop")
    _common(chat)

    run = sub.add_parser("run", help="Single generation")
    _common(run)
    run.add_argument("--prompt", required=True)
    run.add_argument("--video", action="store_true", help="Generate a video instead of images")
    run.add_argument("--model", help="Model id for the resolved path")
    run.add_argument("--image", action="append", default=[], help="Context image file (repeatable)")
    run.add_argument("--plan", action="store_true", help="Print the plan without submitting")
    run.add_argument("--download", action="store_true", help="Save results after generating")

    session = sub.add_parser("session", help="Print the persisted session id")
    session.add_argument("--storage", help="Session storage file (overrides FCINQ_STORAGE_PATH)")

    return parser


def _settings_from_args(args: argparse.Namespace) -> EngineSettings:
    settings = EngineSettings.from_env()
    if getattr(args, "webhook", None):
        settings.webhook_url = args.webhook.strip()
    if getattr(args, "storage", None):
        settings.storage_path = Path(args.storage).expanduser()
    if getattr(args, "events", None):
        settings.events_path = Path(args.events).expanduser()
    if getattr(args, "dryrun", False):
        settings.dryrun = True
    return settings


def _run_once(args: argparse.Namespace, settings: EngineSettings) -> int:
    loop = ChatLoop.from_settings(settings, Path(args.downloads))
    for raw_path in args.image:
        try:
            loop.context.add(context_image_from_file(Path(raw_path).expanduser()))
        except ValidationError as exc:
            print(f"Upload failed: {exc}")
            return 2
    loop.controls.set_video_mode(args.video)
    if args.model and not loop.controls.request_model(args.model):
        print(f"Model {args.model!r} is not available for {loop.controls.path.value}; using {loop.controls.selected_model}")
    generation_input = loop.controls.input_for(args.prompt)
    if args.plan:
        print(json.dumps(loop.orchestrator.preview(generation_input), indent=2))
        return 0
    outcome = loop.orchestrator.submit(generation_input)
    if outcome is None:
        print("Prompt is empty.")
        return 2
    if not outcome.ok:
        return 1
    if args.download:
        loop.handle("/download")
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1
    settings = _settings_from_args(args)
    if args.command == "session":
        print(SessionStore.at(settings.storage_path).get_or_create_session_id())
        return 0
    if args.command == "run":
        return _run_once(args, settings)
    ChatLoop.from_settings(settings, Path(args.downloads)).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
