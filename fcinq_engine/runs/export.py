"""Save generated results to disk."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterable
from urllib.error import URLError
from urllib.request import Request, urlopen

from ..errors import NetworkError
from ..utils import decode_data_uri, epoch_ms, is_data_uri


DOWNLOAD_PREFIX = "fcinq-product-display"
_DEFAULT_EXTENSION = ".jpg"


def download_result(url: str, out_dir: Path, index: int, stamp: int | None = None) -> Path:
    blob, mime_type = _fetch(url)
    out_dir.mkdir(parents=True, exist_ok=True)
    extension = _extension_for(mime_type, url)
    target = out_dir / f"{DOWNLOAD_PREFIX}-{index}-{stamp or epoch_ms()}{extension}"
    target.write_bytes(blob)
    return target


def download_all(urls: Iterable[str], out_dir: Path) -> list[Path]:
    stamp = epoch_ms()
    return [download_result(url, out_dir, idx, stamp) for idx, url in enumerate(urls, start=1)]


def _fetch(url: str) -> tuple[bytes, str | None]:
    if is_data_uri(url):
        try:
            return decode_data_uri(url)
        except ValueError as exc:
            raise NetworkError(f"Could not decode inline result: {exc}") from exc
    req = Request(url, headers={"User-Agent": "fcinq/0.1"})
    try:
        with urlopen(req, timeout=60.0) as response:
            content_type = response.headers.get_content_type() if response.headers else None
            return response.read(), content_type
    except URLError as exc:
        raise NetworkError(f"Download failed: {exc.reason}") from exc
    except OSError as exc:
        raise NetworkError(f"Download failed: {exc}") from exc


def _extension_for(mime_type: str | None, url: str) -> str:
    if mime_type and mime_type != "application/octet-stream":
        guessed = mimetypes.guess_extension(mime_type)
        if guessed:
            return ".jpg" if guessed == ".jpe" else guessed
    if not is_data_uri(url):
        suffix = Path(url.split("?", 1)[0]).suffix
        if suffix and len(suffix) <= 5:
            return suffix
    return _DEFAULT_EXTENSION
