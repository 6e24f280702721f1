from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

import pytest

from fcinq_engine.chat.context_images import ContextImage, ImageContextManager, ImageSource
from fcinq_engine.engine import RequestOrchestrator, SubmissionState
from fcinq_engine.errors import (
    ConfigurationError,
    GenerationError,
    GenerationTimeout,
    NetworkError,
    ProtocolError,
)
from fcinq_engine.models.paths import GenerationPath
from fcinq_engine.models.registry import ModelRegistry
from fcinq_engine.models.selectors import PathResolver
from fcinq_engine.pricing.latency import TimingPolicy
from fcinq_engine.providers.base import CancelToken
from fcinq_engine.runs.events import EventWriter
from fcinq_engine.runs.payloads import GenerationInput, GenerationResponse
from fcinq_engine.session.store import SessionStore
from fcinq_engine.settings import EngineSettings


def _image_payload(cost: float = 0.156, session: float | None = None) -> dict[str, Any]:
    cost_block: dict[str, Any] = {"current": cost}
    if session is not None:
        cost_block["session"] = session
    return {
        "phase": "complete",
        "type": "image",
        "content": {"images": [{"id": f"img-{idx}", "url": f"https://x/{idx}.png"} for idx in range(4)]},
        "cost": cost_block,
        "metadata": {"enhancedPrompt": "enhanced", "modelName": "nano-banana"},
    }


class FakeTransport:
    name = "fake"

    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[dict[str, str]] = []

    def send(self, fields, token: CancelToken) -> Any:
        self.calls.append(dict(fields))
        if self.error is not None:
            raise self.error
        return self.payload


class BlockingTransport:
    name = "blocking"

    def __init__(self, payload: Any = None) -> None:
        self.payload = payload
        self.started = threading.Event()
        self.release = threading.Event()
        self.saw_cancel = threading.Event()
        self.calls: list[dict[str, str]] = []

    def send(self, fields, token: CancelToken) -> Any:
        self.calls.append(dict(fields))
        self.started.set()
        while not self.release.is_set():
            if token.wait(0.01):
                self.saw_cancel.set()
                raise GenerationTimeout("cancelled")
        return self.payload


class RecordingRenderer:
    def __init__(self, context: ImageContextManager) -> None:
        self.context = context
        self.rendered: list[tuple[GenerationResponse, float]] = []
        self.context_sizes_at_render: list[int] = []
        self.errors: list[GenerationError] = []

    def render(self, response: GenerationResponse, session_total: float) -> None:
        self.rendered.append((response, session_total))
        self.context_sizes_at_render.append(len(self.context))

    def render_error(self, error: GenerationError) -> None:
        self.errors.append(error)


class FakeAnimator:
    instances: list["FakeAnimator"] = []

    def __init__(self, label: str, duration: float) -> None:
        self.label = label
        self.duration = duration
        self.started = False
        self.stopped_with: bool | None = None
        FakeAnimator.instances.append(self)

    def start_ticking(self) -> None:
        self.started = True

    def stop(self, done: bool = True) -> None:
        self.stopped_with = done


def _build(
    tmp_path: Path,
    transport: Any,
    *,
    timing: TimingPolicy | None = None,
    settings: EngineSettings | None = None,
    progress_factory: Any = None,
) -> tuple[RequestOrchestrator, ImageContextManager, RecordingRenderer]:
    registry = ModelRegistry()
    resolver = PathResolver(registry, timing or TimingPolicy(registry))
    context = ImageContextManager()
    renderer = RecordingRenderer(context)
    orchestrator = RequestOrchestrator(
        SessionStore.at(tmp_path / "storage.json"),
        context,
        transport,
        resolver=resolver,
        renderer=renderer,
        settings=settings,
        events_path=tmp_path / "events.jsonl",
        progress_factory=progress_factory,
    )
    return orchestrator, context, renderer


def _upload(image_id: str = "u1") -> ContextImage:
    return ContextImage(id=image_id, url="data:image/png;base64,AAAA", source=ImageSource.UPLOAD, filename="a.png")


def _events(tmp_path: Path) -> list[dict[str, Any]]:
    lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_text_to_image_submission(tmp_path: Path) -> None:
    transport = FakeTransport(_image_payload())
    orchestrator, _, renderer = _build(tmp_path, transport)

    outcome = orchestrator.submit(GenerationInput("  red shoes  "))

    assert outcome is not None and outcome.state is SubmissionState.SUCCEEDED
    assert outcome.request.path is GenerationPath.T2I
    assert outcome.timeout_ms == 120_000
    assert [model.id for model in orchestrator.resolver.models_for(outcome.request.path)] == [
        "nano-banana",
        "nano-banana-pro",
        "imagen4",
    ]
    sent = transport.calls[0]
    assert sent["prompt"] == "red shoes"
    assert sent["selectedModel"] == "nano-banana"
    assert sent["numImages"] == "4"
    assert sent["generationType"] == "image"
    assert sent["sessionId"] == orchestrator.session_id
    assert "imageContext" not in sent
    assert len(renderer.rendered) == 1
    assert orchestrator.state is SubmissionState.IDLE


def test_image_to_image_submission_clears_context_after_render(tmp_path: Path) -> None:
    transport = FakeTransport(_image_payload())
    orchestrator, context, renderer = _build(tmp_path, transport)
    context.add(_upload())

    outcome = orchestrator.submit(GenerationInput("make it blue"))

    assert outcome is not None and outcome.ok
    assert outcome.request.path is GenerationPath.I2I
    sent = transport.calls[0]
    assert sent["selectedModel"] == "nano-banana-edit"
    assert "numImages" not in sent
    assert len(json.loads(sent["imageContext"])) == 1
    assert renderer.context_sizes_at_render == [1]
    assert context.is_empty


def test_premium_text_to_video_timeout_and_progress(tmp_path: Path) -> None:
    payload = {"phase": "complete", "type": "video", "content": {"video": {"url": "https://x/v.mp4"}}}
    FakeAnimator.instances = []
    orchestrator, _, _ = _build(tmp_path, FakeTransport(payload), progress_factory=FakeAnimator)

    outcome = orchestrator.submit(GenerationInput("spin", is_video_mode=True, requested_model="sora2-t2v-pro"))

    assert outcome is not None and outcome.ok
    assert outcome.request.path is GenerationPath.T2V
    assert outcome.timeout_ms == 300_000
    assert outcome.progress_s == 90
    animator = FakeAnimator.instances[-1]
    assert animator.label == "Generating video"
    assert animator.duration == 90
    assert animator.started and animator.stopped_with is True


def test_pending_phase_is_protocol_error_and_keeps_context(tmp_path: Path) -> None:
    transport = FakeTransport({"phase": "pending"})
    orchestrator, context, renderer = _build(tmp_path, transport)
    context.add(_upload())

    outcome = orchestrator.submit(GenerationInput("make it blue"))

    assert outcome is not None and outcome.state is SubmissionState.FAILED
    assert isinstance(outcome.error, ProtocolError)
    assert context.ids() == ["u1"]
    assert orchestrator.state is SubmissionState.IDLE
    assert isinstance(renderer.errors[-1], ProtocolError)

    transport.payload = _image_payload()
    assert orchestrator.submit(GenerationInput("again")) is not None


def test_timeout_cancels_and_keeps_context(tmp_path: Path) -> None:
    registry = ModelRegistry()
    timing = TimingPolicy(registry, image_timeout_ms=50)
    transport = BlockingTransport(_image_payload())
    orchestrator, context, renderer = _build(tmp_path, transport, timing=timing)
    context.add(_upload())

    try:
        outcome = orchestrator.submit(GenerationInput("slow"))
        assert outcome is not None and outcome.state is SubmissionState.CANCELLED
        assert isinstance(outcome.error, GenerationTimeout)
        assert outcome.error.kind == "Timeout"
        assert context.ids() == ["u1"]
        assert orchestrator.state is SubmissionState.IDLE
        assert renderer.rendered == []
        assert transport.saw_cancel.wait(1.0)
    finally:
        transport.release.set()


def test_single_flight_rejects_second_submit(tmp_path: Path) -> None:
    transport = BlockingTransport(_image_payload())
    orchestrator, _, _ = _build(tmp_path, transport)
    outcomes: list[Any] = []
    worker = threading.Thread(target=lambda: outcomes.append(orchestrator.submit(GenerationInput("first"))))
    worker.start()
    try:
        assert transport.started.wait(2.0)
        assert orchestrator.state is SubmissionState.SUBMITTING

        assert orchestrator.submit(GenerationInput("second")) is None
        assert orchestrator.state is SubmissionState.SUBMITTING
        assert len(transport.calls) == 1
    finally:
        transport.release.set()
        worker.join(5.0)

    assert outcomes[0].ok
    assert outcomes[0].request.prompt == "first"
    assert orchestrator.state is SubmissionState.IDLE


@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
def test_empty_prompt_is_silently_ignored(tmp_path: Path, prompt: str) -> None:
    transport = FakeTransport(_image_payload())
    orchestrator, _, renderer = _build(tmp_path, transport)

    assert orchestrator.submit(GenerationInput(prompt)) is None
    assert transport.calls == []
    assert renderer.errors == []


def test_transport_failure_is_network_error(tmp_path: Path) -> None:
    orchestrator, _, renderer = _build(tmp_path, FakeTransport(error=NetworkError("HTTP error! status: 502")))

    outcome = orchestrator.submit(GenerationInput("red shoes"))

    assert outcome is not None and outcome.state is SubmissionState.FAILED
    assert isinstance(outcome.error, NetworkError)
    assert "502" in str(outcome.error)
    assert renderer.errors and renderer.errors[0].hint


def test_unexpected_transport_exception_is_wrapped(tmp_path: Path) -> None:
    orchestrator, _, _ = _build(tmp_path, FakeTransport(error=ConnectionResetError("reset")))

    outcome = orchestrator.submit(GenerationInput("red shoes"))

    assert outcome is not None
    assert isinstance(outcome.error, NetworkError)


def test_missing_webhook_is_configuration_error(tmp_path: Path) -> None:
    transport = FakeTransport(_image_payload())
    settings = EngineSettings(webhook_url=None, storage_path=tmp_path / "storage.json", events_path=None)
    orchestrator, _, _ = _build(tmp_path, transport, settings=settings)

    first = orchestrator.submit(GenerationInput("red shoes"))
    second = orchestrator.submit(GenerationInput("red shoes"))

    assert first is not None and isinstance(first.error, ConfigurationError)
    assert second is not None and second.state is SubmissionState.FAILED
    assert transport.calls == []


def test_session_cost_accumulates_current(tmp_path: Path) -> None:
    transport = FakeTransport(_image_payload(cost=0.1, session=5.0))
    orchestrator, _, renderer = _build(tmp_path, transport)

    orchestrator.submit(GenerationInput("one"))
    orchestrator.submit(GenerationInput("two"))

    assert orchestrator.ledger.total_usd == pytest.approx(0.2)
    assert renderer.rendered[-1][1] == pytest.approx(0.2)
    assert orchestrator.ledger.last_reported_session_usd == pytest.approx(5.0)


def test_fallback_reason_when_model_not_on_path(tmp_path: Path) -> None:
    orchestrator, _, _ = _build(tmp_path, FakeTransport(_image_payload()))

    outcome = orchestrator.submit(GenerationInput("red shoes", requested_model="veo3"))

    assert outcome is not None
    assert outcome.request.selected_model == "nano-banana"
    assert outcome.fallback_reason == "Requested model 'veo3' unavailable for path 't2i'."


def test_events_record_each_submission(tmp_path: Path) -> None:
    orchestrator, context, _ = _build(tmp_path, FakeTransport(_image_payload()))
    context.add(_upload())
    orchestrator.submit(GenerationInput("make it blue"))

    types = [event["type"] for event in _events(tmp_path)]

    assert types[0] == "session_started"
    assert types.index("generation_submitted") < types.index("generation_succeeded")
    assert "cost_update" in types
    assert types.count("context_updated") == 2


def test_preview_reports_plan_without_dispatch(tmp_path: Path) -> None:
    transport = FakeTransport(_image_payload())
    orchestrator, _, _ = _build(tmp_path, transport)

    plan = orchestrator.preview(GenerationInput("red shoes"))

    assert plan["path"] == "t2i"
    assert plan["model"] == "nano-banana"
    assert plan["num_images"] == 4
    assert plan["timeout_ms"] == 120_000
    assert plan["progress_s"] == 25
    assert plan["estimated_cost_usd"] == pytest.approx(0.156)
    assert transport.calls == []


class _FailingEventWriter(EventWriter):
    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        if event_type == "generation_succeeded":
            raise OSError("events log unavailable")
        return super().emit(event_type, **payload)


def test_events_failure_happens_after_render_and_clear(tmp_path: Path) -> None:
    orchestrator, context, renderer = _build(tmp_path, FakeTransport(_image_payload()))
    orchestrator.events = _FailingEventWriter(tmp_path / "events.jsonl", orchestrator.session_id)
    context.add(_upload())

    with pytest.raises(OSError):
        orchestrator.submit(GenerationInput("make it blue"))

    assert len(renderer.rendered) == 1
    assert context.is_empty
    assert orchestrator.ledger.total_usd == pytest.approx(0.156)
    assert orchestrator.state is SubmissionState.IDLE
