"""Outbound form payloads and inbound workflow responses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..errors import ProtocolError
from ..models.paths import GenerationPath


NUM_IMAGES_FIELD_VALUE = "4"
COMPLETE_PHASE = "complete"


@dataclass
class GenerationInput:
    prompt: str
    is_video_mode: bool = False
    requested_model: str | None = None


@dataclass
class GenerationRequest:
    prompt: str
    session_id: str
    path: GenerationPath
    selected_model: str
    image_context: list[dict[str, str]] = field(default_factory=list)

    @property
    def generation_type(self) -> str:
        return self.path.generation_type

    @property
    def num_images(self) -> int | None:
        return int(NUM_IMAGES_FIELD_VALUE) if self.path is GenerationPath.T2I else None

    def form_fields(self) -> list[tuple[str, str]]:
        fields = [
            ("prompt", self.prompt),
            ("sessionId", self.session_id),
            ("generationType", self.generation_type),
            ("selectedModel", self.selected_model),
        ]
        if self.num_images is not None:
            fields.append(("numImages", NUM_IMAGES_FIELD_VALUE))
        if self.image_context:
            fields.append(("imageContext", json.dumps(self.image_context)))
        return fields


@dataclass(frozen=True)
class ResultImage:
    url: str
    id: str | None = None


@dataclass(frozen=True)
class ResultVideo:
    url: str


@dataclass(frozen=True)
class CostInfo:
    current: float
    session: float | None = None


@dataclass(frozen=True)
class ResponseMetadata:
    enhanced_prompt: str | None = None
    model_name: str | None = None


@dataclass
class GenerationResponse:
    phase: str
    type: str
    images: list[ResultImage] = field(default_factory=list)
    video: ResultVideo | None = None
    cost: CostInfo | None = None
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)


def parse_response(payload: Any) -> GenerationResponse:
    if not isinstance(payload, Mapping):
        raise ProtocolError("Workflow response is not a JSON object.")
    phase = payload.get("phase")
    if phase != COMPLETE_PHASE:
        raise ProtocolError(f"Workflow returned phase {phase!r}, expected 'complete'.")
    kind = payload.get("type")
    content = payload.get("content")
    if not isinstance(content, Mapping):
        raise ProtocolError("Workflow response is missing 'content'.")

    images: list[ResultImage] = []
    video: ResultVideo | None = None
    if kind == "image":
        images = _parse_images(content.get("images"))
    elif kind == "video":
        video = _parse_video(content.get("video"))
    else:
        raise ProtocolError(f"Unsupported result type {kind!r}.")

    return GenerationResponse(
        phase=phase,
        type=kind,
        images=images,
        video=video,
        cost=_parse_cost(payload.get("cost")),
        metadata=_parse_metadata(payload.get("metadata")),
        raw=payload,
    )


def _parse_images(value: Any) -> list[ResultImage]:
    if not isinstance(value, list) or not value:
        raise ProtocolError("Image response carries no images.")
    images: list[ResultImage] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ProtocolError("Image entry is not an object.")
        url = item.get("url")
        if not isinstance(url, str) or not url:
            raise ProtocolError("Image entry is missing 'url'.")
        image_id = item.get("id")
        images.append(ResultImage(url=url, id=str(image_id) if image_id not in (None, "") else None))
    return images


def _parse_video(value: Any) -> ResultVideo:
    if not isinstance(value, Mapping):
        raise ProtocolError("Video response is missing 'video'.")
    url = value.get("url")
    if not isinstance(url, str) or not url:
        raise ProtocolError("Video entry is missing 'url'.")
    return ResultVideo(url=url)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_cost(value: Any) -> CostInfo | None:
    if value is None:
        return None
    if not isinstance(value, Mapping) or not _is_number(value.get("current")):
        raise ProtocolError("Cost block must carry a numeric 'current'.")
    session = value.get("session")
    if session is not None and not _is_number(session):
        raise ProtocolError("Cost 'session' must be numeric.")
    return CostInfo(current=float(value["current"]), session=float(session) if session is not None else None)


def _parse_metadata(value: Any) -> ResponseMetadata:
    if not isinstance(value, Mapping):
        return ResponseMetadata()
    enhanced = value.get("enhancedPrompt")
    model_name = value.get("modelName")
    return ResponseMetadata(
        enhanced_prompt=enhanced if isinstance(enhanced, str) and enhanced else None,
        model_name=model_name if isinstance(model_name, str) and model_name else None,
    )
