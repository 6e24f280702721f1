from __future__ import annotations

from pathlib import Path

import pytest

from fcinq_engine.errors import NetworkError
from fcinq_engine.runs.export import DOWNLOAD_PREFIX, _extension_for, download_all, download_result
from fcinq_engine.utils import encode_data_uri


def test_download_result_writes_data_uri(tmp_path: Path) -> None:
    url = encode_data_uri(b"\x89PNG-bytes", "image/png")
    target = download_result(url, tmp_path / "out", 2, stamp=1700)
    assert target.name == f"{DOWNLOAD_PREFIX}-2-1700.png"
    assert target.read_bytes() == b"\x89PNG-bytes"


def test_download_all_numbers_results(tmp_path: Path) -> None:
    urls = [encode_data_uri(b"a", "image/jpeg"), encode_data_uri(b"b", "image/jpeg")]
    saved = download_all(urls, tmp_path)
    assert [path.name.split("-")[3] for path in saved] == ["1", "2"]
    assert all(path.suffix == ".jpg" for path in saved)


def test_bad_data_uri_is_network_error(tmp_path: Path) -> None:
    with pytest.raises(NetworkError):
        download_result("data:image/png,not-base64", tmp_path, 1)


def test_extension_fallbacks() -> None:
    assert _extension_for(None, "https://cdn.example.com/result.webp?sig=1") == ".webp"
    assert _extension_for("application/octet-stream", "https://cdn.example.com/blob") == ".jpg"
    assert _extension_for("video/mp4", "https://cdn.example.com/clip") == ".mp4"
