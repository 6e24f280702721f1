"""Interactive chat loop wrapper."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, TextIO

from ..cli_progress import ProgressAnimator
from ..engine import RequestOrchestrator
from ..errors import GenerationError, ValidationError
from ..models.paths import GenerationPath
from ..models.registry import ModelRegistry
from ..models.selectors import ModelControls, PathResolver
from ..pricing.tables import load_price_overrides
from ..providers import GenerationTransport, build_transport
from ..runs.export import download_all, download_result
from ..session.store import SessionStore
from ..settings import EngineSettings
from ..utils import format_cost_usd, format_seconds
from .command_registry import COMMANDS
from .context_images import ImageContextManager, context_image_from_file
from .intent_parser import parse_intent
from .render import TerminalRenderer, display_url


WELCOME_EXAMPLES = (
    "Create professional glasses display images",
    "Modern sunglasses with dramatic lighting",
    "Luxury eyewear product photography",
)


def welcome_message(configured: bool) -> str:
    lines = [
        "👋 Welcome to FCINQ Platform!",
        "I can create professional product display images and videos for eyewear using AI.",
        "Try saying:",
    ]
    lines.extend(f'  • "{example}"' for example in WELCOME_EXAMPLES)
    if configured:
        lines.append("✓ Connected to workflow")
    else:
        lines.append("⚠️ Please configure your n8n webhook URL (FCINQ_WEBHOOK_URL)")
    lines.append("Type /help for commands.")
    return "\n".join(lines)


class ChatLoop:
    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        controls: ModelControls,
        renderer: TerminalRenderer,
        downloads_dir: Path,
        stream: TextIO | None = None,
        input_fn: Callable[[str], str] = input,
    ) -> None:
        self.orchestrator = orchestrator
        self.controls = controls
        self.renderer = renderer
        self.context = orchestrator.context
        self.downloads_dir = downloads_dir
        self.stream = stream or sys.stdout
        self.input_fn = input_fn
        self.controls.on_change = self._announce_controls

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        downloads_dir: Path,
        *,
        transport: GenerationTransport | None = None,
        stream: TextIO | None = None,
        input_fn: Callable[[str], str] = input,
    ) -> "ChatLoop":
        out = stream or sys.stdout
        registry = ModelRegistry(price_overrides=load_price_overrides())
        resolver = PathResolver(registry)
        context = ImageContextManager()
        renderer = TerminalRenderer(stream=out, on_select=context.add)
        orchestrator = RequestOrchestrator(
            SessionStore.at(settings.storage_path),
            context,
            transport or build_transport(settings, registry),
            resolver=resolver,
            renderer=renderer,
            settings=settings,
            events_path=settings.events_path,
            progress_factory=lambda label, duration: ProgressAnimator(label, duration, stream=out),
        )
        controls = ModelControls(resolver)
        controls.track(context)
        return cls(orchestrator, controls, renderer, downloads_dir, stream=out, input_fn=input_fn)

    def _print(self, message: str = "") -> None:
        self.stream.write(f"{message}\n")
        self.stream.flush()

    def _announce_controls(self, path: GenerationPath, model_id: str) -> None:
        self._print(f"Mode {path.value} • model {model_id}")

    def run(self) -> None:
        self._print(welcome_message(self.orchestrator.config_error is None))
        while True:
            try:
                line = self.input_fn("> ")
            except (EOFError, KeyboardInterrupt):
                break
            try:
                self.handle(line)
            except KeyboardInterrupt:
                self._print("Interrupted. The workflow may still finish in the background.")

    def handle(self, line: str) -> None:
        intent = parse_intent(line)
        action = intent.action
        args = intent.command_args
        if action == "noop":
            return
        if action == "generate":
            self._generate(intent.prompt or "")
            return
        if action == "help":
            for spec in COMMANDS:
                self._print(f"/{spec.command:<9} {spec.help}")
            return
        if action == "set_video_mode":
            enabled = args.get("enabled")
            if enabled is None:
                if args.get("arg"):
                    self._print("/video expects on or off")
                    return
                enabled = not self.controls.is_video_mode
            self.controls.set_video_mode(enabled)
            self._print(f"Video mode {'on' if enabled else 'off'}")
            return
        if action == "set_model":
            self._set_model(str(args.get("value") or ""))
            return
        if action == "list_models":
            self._list_models()
            return
        if action == "upload":
            self._upload(args.get("paths") or [])
            return
        if action == "select_result":
            self._select(args.get("index"))
            return
        if action == "remove_context":
            image_id = str(args.get("value") or "")
            if image_id not in self.context:
                self._print(f"No context image with id {image_id!r}")
                return
            self.context.remove(image_id)
            self._print(f"Removed {image_id}")
            return
        if action == "clear_context":
            self.context.clear()
            self._print("Image context cleared")
            return
        if action == "show_context":
            self._show_context()
            return
        if action == "download":
            self._download(args.get("index"))
            return
        if action == "preview":
            self._preview(intent.prompt or "")
            return
        if action == "show_session":
            ledger = self.orchestrator.ledger
            self._print(f"Session {self.orchestrator.session_id}")
            self._print(f"Session cost {format_cost_usd(ledger.total_usd)} over {len(ledger.history)} generations")
            return
        self._print(f"Unknown command /{args.get('command')}. Type /help for commands.")

    def _generate(self, prompt: str) -> None:
        outcome = self.orchestrator.submit(self.controls.input_for(prompt))
        if outcome is None:
            return
        if outcome.fallback_reason and self.controls.selected_model:
            if outcome.request.selected_model != self.controls.selected_model:
                self._print(outcome.fallback_reason)

    def _set_model(self, model_id: str) -> None:
        if not model_id:
            self._print(f"Current model: {self.controls.selected_model}")
            return
        if not self.controls.request_model(model_id):
            available = ", ".join(model.id for model in self.controls.models())
            self._print(f"Model {model_id!r} is not available for {self.controls.path.value} ({available})")

    def _list_models(self) -> None:
        for model in self.controls.models():
            marker = "*" if model.id == self.controls.selected_model else " "
            self._print(f"{marker} {model.id:<22} {model.label:<22} {format_cost_usd(model.price)}")

    def _upload(self, paths: list[str]) -> None:
        if not paths:
            self._print("/upload requires at least one path")
            return
        for raw_path in paths:
            try:
                image = context_image_from_file(Path(raw_path).expanduser())
            except ValidationError as exc:
                self._print(f"Upload failed: {exc}")
                continue
            self.context.add(image)
            self._print(f"Added {image.filename} as {image.id}")

    def _select(self, index: int | None) -> None:
        if index is None:
            self._print("/select requires a result number")
            return
        entry = self.renderer.select(index)
        if entry is None:
            self._print(f"No result {index} in the last generation")
            return
        self._print(f"Result {index} added to context as {entry.id}")

    def _show_context(self) -> None:
        if self.context.is_empty:
            self._print("Image context is empty")
            return
        for image in self.context:
            label = image.filename or display_url(image.url, limit=60)
            self._print(f"  {image.id} ({image.source.value}) {label}")

    def _download(self, index: int | None) -> None:
        response = self.renderer.last_response
        if response is None:
            self._print("Nothing to download yet")
            return
        urls = [image.url for image in response.images]
        if response.video is not None:
            urls = [response.video.url]
        try:
            if index is None:
                saved = download_all(urls, self.downloads_dir)
            elif 1 <= index <= len(urls):
                saved = [download_result(urls[index - 1], self.downloads_dir, index)]
            else:
                self._print(f"No result {index} in the last generation")
                return
        except GenerationError as exc:
            self._print(f"Download failed: {exc}")
            return
        for path in saved:
            self._print(f"Saved {path}")

    def _preview(self, prompt: str) -> None:
        plan = self.orchestrator.preview(self.controls.input_for(prompt))
        self._print(f"Path {plan['path']} • model {plan['model']} ({', '.join(plan['models'])})")
        if plan["fallback_reason"] and plan["model"] != self.controls.selected_model:
            self._print(plan["fallback_reason"])
        self._print(
            f"Timeout {format_seconds(plan['timeout_ms'] / 1000)} • progress ~{plan['progress_s']}s • "
            f"estimated {format_cost_usd(plan['estimated_cost_usd'])}"
        )
