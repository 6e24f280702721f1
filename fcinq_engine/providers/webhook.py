"""n8n webhook transport."""

from __future__ import annotations

import json
import secrets
from typing import Any, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import GenerationTimeout, NetworkError, ProtocolError
from ..utils import epoch_ms
from .base import CancelToken


_MIN_SOCKET_TIMEOUT_S = 0.5


class WebhookTransport:
    name = "webhook"

    def __init__(self, url: str) -> None:
        self.url = url

    def send(self, fields: Sequence[tuple[str, str]], token: CancelToken) -> Any:
        if token.cancelled or token.expired:
            raise GenerationTimeout("Request cancelled before dispatch.")
        status_code, raw = _post_multipart(
            self.url,
            fields=fields,
            timeout_s=max(token.remaining_s(), _MIN_SOCKET_TIMEOUT_S),
        )
        if token.cancelled:
            raise GenerationTimeout("Response arrived after the client stopped waiting.")
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise ProtocolError(f"Workflow returned non-JSON body (status {status_code}).") from exc


def _post_multipart(url: str, *, fields: Sequence[tuple[str, Any]], timeout_s: float) -> tuple[int, bytes]:
    boundary = f"----FcinqBoundary{epoch_ms()}{secrets.token_hex(4)}"
    body = _build_multipart_body(boundary, fields)
    req = Request(
        url,
        data=body,
        headers={
            "Accept": "application/json",
            "Content-Type": f"multipart/form-data; boundary={boundary}",
        },
        method="POST",
    )
    try:
        with urlopen(req, timeout=timeout_s) as response:
            status_code = int(getattr(response, "status", 200))
            raw = response.read()
    except HTTPError as exc:
        raise NetworkError(f"HTTP error! status: {exc.code}") from exc
    except URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise GenerationTimeout(f"Webhook request timed out after {timeout_s:.0f}s.") from exc
        raise NetworkError(f"Webhook request failed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise GenerationTimeout(f"Webhook request timed out after {timeout_s:.0f}s.") from exc
    except OSError as exc:
        raise NetworkError(f"Webhook connection error: {exc}") from exc
    return status_code, raw


def _build_multipart_body(boundary: str, fields: Sequence[tuple[str, Any]]) -> bytes:
    boundary_bytes = boundary.encode("utf-8")
    payload = bytearray()
    for key, value in fields:
        if value is None:
            continue
        payload.extend(b"--")
        payload.extend(boundary_bytes)
        payload.extend(b"\r\n")
        disposition = f'Content-Disposition: form-data; name="{_multipart_quote(key)}"\r\n\r\n'
        payload.extend(disposition.encode("utf-8"))
        payload.extend(str(value).encode("utf-8"))
        payload.extend(b"\r\n")
    payload.extend(b"--")
    payload.extend(boundary_bytes)
    payload.extend(b"--\r\n")
    return bytes(payload)


def _multipart_quote(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')
