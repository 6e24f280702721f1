"""Request orchestration for workflow submissions."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from .chat.context_images import ImageContextManager
from .chat.render import ResultRenderer
from .errors import GenerationError, GenerationTimeout, NetworkError, ValidationError
from .models.selectors import PathResolver
from .pricing.estimator import PricingEstimator, SessionCostLedger
from .providers.base import CancelToken, GenerationTransport
from .runs.events import EventWriter
from .runs.payloads import GenerationInput, GenerationRequest, GenerationResponse, parse_response
from .session.store import SessionStore
from .settings import EngineSettings


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SubmissionOutcome:
    state: SubmissionState
    request: GenerationRequest
    timeout_ms: int
    progress_s: int
    fallback_reason: str | None = None
    response: GenerationResponse | None = None
    error: GenerationError | None = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED


ProgressFactory = Callable[[str, float], Any]


class RequestOrchestrator:
    def __init__(
        self,
        session: SessionStore,
        context: ImageContextManager,
        transport: GenerationTransport,
        *,
        resolver: PathResolver | None = None,
        renderer: ResultRenderer | None = None,
        settings: EngineSettings | None = None,
        events_path: Path | None = None,
        progress_factory: ProgressFactory | None = None,
    ) -> None:
        self.session = session
        self.session_id = session.get_or_create_session_id()
        self.context = context
        self.transport = transport
        self.resolver = resolver or PathResolver()
        self.renderer = renderer
        self.pricing = PricingEstimator(self.resolver.registry)
        self.ledger = SessionCostLedger()
        self.progress_factory = progress_factory
        self.events = EventWriter(events_path, self.session_id)
        self.config_error = settings.configuration_error() if settings is not None else None
        self._state = SubmissionState.IDLE
        self._lock = threading.Lock()
        self.context.subscribe(self._on_context_change)
        self.events.emit(
            "session_started",
            transport=getattr(transport, "name", type(transport).__name__),
            persistent_session=session.persistent,
            configured=self.config_error is None,
        )

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_generating(self) -> bool:
        return self._state is not SubmissionState.IDLE

    def _on_context_change(self, context: ImageContextManager) -> None:
        self.events.emit("context_updated", image_ids=context.ids(), count=len(context))

    def _build_request(self, prompt: str, generation_input: GenerationInput) -> tuple[GenerationRequest, str | None]:
        path = self.resolver.resolve_path(generation_input.is_video_mode, not self.context.is_empty)
        selection = self.resolver.selector.select(path, generation_input.requested_model)
        request = GenerationRequest(
            prompt=prompt,
            session_id=self.session_id,
            path=path,
            selected_model=selection.model.id,
            image_context=self.context.as_payload() if path.uses_context else [],
        )
        return request, selection.fallback_reason

    def preview(self, generation_input: GenerationInput) -> dict[str, Any]:
        request, fallback_reason = self._build_request(generation_input.prompt.strip(), generation_input)
        path = request.path
        estimate = self.pricing.estimate(path, request.selected_model)
        plan = {
            "path": path.value,
            "generation_type": request.generation_type,
            "model": request.selected_model,
            "models": [descriptor.id for descriptor in self.resolver.models_for(path)],
            "fallback_reason": fallback_reason,
            "num_images": request.num_images,
            "context_images": len(request.image_context),
            "timeout_ms": self.resolver.timeout_for(path, request.selected_model),
            "progress_s": self.resolver.progress_duration_for(path, request.selected_model),
            "estimated_cost_usd": estimate.total_usd,
        }
        self.events.emit("plan_preview", plan=plan)
        return plan

    def submit(self, generation_input: GenerationInput) -> SubmissionOutcome | None:
        try:
            prompt = _validate_prompt(generation_input.prompt)
        except ValidationError as exc:
            self.events.emit("submission_rejected", reason=str(exc))
            return None
        with self._lock:
            if self._state is not SubmissionState.IDLE:
                self.events.emit("submission_rejected", reason="A generation is already in progress.")
                return None
            self._state = SubmissionState.SUBMITTING
        try:
            return self._run(prompt, generation_input)
        finally:
            with self._lock:
                self._state = SubmissionState.IDLE

    def _run(self, prompt: str, generation_input: GenerationInput) -> SubmissionOutcome:
        request, fallback_reason = self._build_request(prompt, generation_input)
        path = request.path
        model_id = request.selected_model
        outcome = SubmissionOutcome(
            state=SubmissionState.SUBMITTING,
            request=request,
            timeout_ms=self.resolver.timeout_for(path, model_id),
            progress_s=self.resolver.progress_duration_for(path, model_id),
            fallback_reason=fallback_reason,
        )
        if self.config_error is not None:
            return self._finish(outcome, SubmissionState.FAILED, self.config_error)

        token = CancelToken(outcome.timeout_ms)
        self.events.emit(
            "generation_submitted",
            path=path.value,
            model=model_id,
            fallback_reason=fallback_reason,
            timeout_ms=outcome.timeout_ms,
            context_images=len(request.image_context),
        )
        animator = None
        if self.progress_factory is not None:
            noun = "video" if path.is_video else "images"
            animator = self.progress_factory(f"Generating {noun}", outcome.progress_s)
            animator.start_ticking()

        started_at = time.monotonic()
        payload: Any = None
        error: GenerationError | None = None
        try:
            payload = self._dispatch(request.form_fields(), token)
        except GenerationError as exc:
            error = exc
        finally:
            outcome.elapsed_s = max(time.monotonic() - started_at, 0.0)
            if animator is not None:
                animator.stop(done=error is None)

        if isinstance(error, GenerationTimeout):
            return self._finish(outcome, SubmissionState.CANCELLED, error)
        if error is not None:
            return self._finish(outcome, SubmissionState.FAILED, error)
        try:
            response = parse_response(payload)
        except GenerationError as exc:
            return self._finish(outcome, SubmissionState.FAILED, exc)

        outcome.response = response
        return self._succeed(outcome, response)

    def _dispatch(self, fields: list[tuple[str, str]], token: CancelToken) -> Any:
        results: queue.Queue[tuple[Any, GenerationError | None]] = queue.Queue(maxsize=1)

        def _worker() -> None:
            try:
                payload = self.transport.send(fields, token)
            except GenerationError as exc:
                results.put((None, exc))
            except Exception as exc:
                results.put((None, NetworkError(f"Transport failed: {exc}")))
            else:
                results.put((payload, None))

        thread = threading.Thread(target=_worker, name="fcinq-dispatch", daemon=True)
        thread.start()
        try:
            payload, error = results.get(timeout=token.remaining_s())
        except queue.Empty:
            token.cancel()
            seconds = token.timeout_ms // 1000
            raise GenerationTimeout(f"No response from workflow after {seconds}s.") from None
        except BaseException:
            token.cancel()
            raise
        if error is not None:
            raise error
        return payload

    def _succeed(self, outcome: SubmissionOutcome, response: GenerationResponse) -> SubmissionOutcome:
        outcome.state = SubmissionState.SUCCEEDED
        cost = response.cost
        total = self.ledger.record(cost.current if cost else None, cost.session if cost else None)
        if self.renderer is not None:
            self.renderer.render(response, total)
        # Only after the renderer holds the payload.
        self.context.clear()
        self.events.emit(
            "generation_succeeded",
            path=outcome.request.path.value,
            model=outcome.request.selected_model,
            result_type=response.type,
            images=len(response.images),
            model_name=response.metadata.model_name,
            elapsed_s=outcome.elapsed_s,
        )
        self.events.emit(
            "cost_update",
            current_usd=cost.current if cost else None,
            reported_session_usd=cost.session if cost else None,
            session_total_usd=total,
        )
        return outcome

    def _finish(self, outcome: SubmissionOutcome, state: SubmissionState, error: GenerationError) -> SubmissionOutcome:
        outcome.state = state
        outcome.error = error
        if self.renderer is not None:
            self.renderer.render_error(error)
        event_type = "generation_cancelled" if state is SubmissionState.CANCELLED else "generation_failed"
        self.events.emit(
            event_type,
            path=outcome.request.path.value,
            model=outcome.request.selected_model,
            error_kind=error.kind,
            error=str(error),
            elapsed_s=outcome.elapsed_s,
        )
        return outcome


def _validate_prompt(prompt: str | None) -> str:
    cleaned = (prompt or "").strip()
    if not cleaned:
        raise ValidationError("Prompt is empty.")
    return cleaned
