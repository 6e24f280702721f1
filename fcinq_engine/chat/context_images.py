"""Images carried as conditioning input into the next request."""

from __future__ import annotations

import hashlib
import io
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator

from PIL import Image, UnidentifiedImageError

from ..errors import ValidationError
from ..utils import encode_data_uri, epoch_ms


class ImageSource(str, Enum):
    UPLOAD = "upload"
    GENERATED = "generated"


@dataclass(frozen=True)
class ContextImage:
    id: str
    url: str
    source: ImageSource
    filename: str | None = None

    def as_payload(self) -> dict[str, str]:
        return {"id": self.id, "url": self.url, "source": self.source.value}


ContextListener = Callable[["ImageContextManager"], None]


class ImageContextManager:
    def __init__(self) -> None:
        self._images: list[ContextImage] = []
        self._listeners: list[ContextListener] = []

    def subscribe(self, listener: ContextListener) -> None:
        self._listeners.append(listener)

    def add(self, image: ContextImage) -> None:
        if image.id in self:
            return
        self._images.append(image)
        self._notify()

    def remove(self, image_id: str) -> None:
        remaining = [image for image in self._images if image.id != image_id]
        if len(remaining) == len(self._images):
            return
        self._images = remaining
        self._notify()

    def clear(self) -> None:
        if not self._images:
            return
        self._images = []
        self._notify()

    def items(self) -> list[ContextImage]:
        return list(self._images)

    def ids(self) -> list[str]:
        return [image.id for image in self._images]

    def as_payload(self) -> list[dict[str, str]]:
        return [image.as_payload() for image in self._images]

    @property
    def is_empty(self) -> bool:
        return not self._images

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[ContextImage]:
        return iter(list(self._images))

    def __contains__(self, image_id: object) -> bool:
        return any(image.id == image_id for image in self._images)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


def context_image_from_file(path: Path, image_id: str | None = None) -> ContextImage:
    """Build an upload entry, embedding the file as a data URI."""
    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"File not found: {path}")
    blob = path.read_bytes()
    try:
        with Image.open(io.BytesIO(blob)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError(f"Not a readable image: {path}") from exc
    mime_type = Image.MIME.get(image_format or "", "application/octet-stream")
    return ContextImage(
        id=image_id or f"upload-{epoch_ms()}-{uuid.uuid4().hex[:8]}",
        url=encode_data_uri(blob, mime_type),
        source=ImageSource.UPLOAD,
        filename=path.name,
    )


def context_image_from_result(image: Any, index: int) -> ContextImage:
    """Build a ``generated`` entry from a rendered result image.

    Results without an id get one derived from their URL, so selecting the
    same image twice stays a single entry.
    """

    url = str(image.url)
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:10]
    image_id = getattr(image, "id", None) or f"generated-{index}-{digest}"
    return ContextImage(id=str(image_id), url=url, source=ImageSource.GENERATED)
