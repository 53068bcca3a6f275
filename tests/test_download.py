"""Tests for network fetches and their retry policy."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from omni_installer.download import (
    download_file,
    fetch_text,
    go_archive_name,
    parse_go_version,
    parse_pypi_version,
    parse_python_versions,
)
from omni_installer.errors import DownloadFailed


def _response(text: str = "", chunks: list[bytes] | None = None) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.iter_content.return_value = chunks or []
    return response


@pytest.mark.parametrize("retries", [1, 3, 5])
def test_fetch_gives_up_after_max_retries(retries: int) -> None:
    """Failures are retried a bounded number of times with a fixed delay."""
    sleeps: list[float] = []
    with patch("requests.get", side_effect=requests.ConnectionError("unreachable")) as get:
        with pytest.raises(DownloadFailed) as excinfo:
            fetch_text("https://go.dev/VERSION?m=text", retries=retries, backoff=2.0, sleep=sleeps.append)

    assert get.call_count == retries
    assert sleeps == [2.0] * (retries - 1)
    assert sum(sleeps) <= retries * 2.0
    assert excinfo.value.attempts == retries
    assert "unreachable" in excinfo.value.message


def test_fetch_recovers_after_transient_failure() -> None:
    sleeps: list[float] = []
    responses = [requests.ConnectionError("reset"), _response("go1.21.5\ntime 2023-12-05T18:23:49Z\n")]
    with patch("requests.get", side_effect=responses) as get:
        text = fetch_text("https://go.dev/VERSION?m=text", sleep=sleeps.append)

    assert parse_go_version(text) == "1.21.5"
    assert get.call_count == 2
    assert sleeps == [2.0]


def test_http_errors_are_retried() -> None:
    response = _response()
    response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
    with patch("requests.get", return_value=response) as get:
        with pytest.raises(DownloadFailed):
            fetch_text("https://dl.k8s.io/release/stable.txt", retries=2, sleep=lambda _: None)
    assert get.call_count == 2


def test_download_file_writes_content(tmp_path: Path) -> None:
    destination = tmp_path / "kubectl"
    with patch("requests.get", return_value=_response(chunks=[b"#!/bin/sh\n", b"echo kubectl\n"])):
        result = download_file("https://dl.k8s.io/kubectl", destination, sleep=lambda _: None)

    assert result == destination
    assert destination.read_bytes() == b"#!/bin/sh\necho kubectl\n"


def test_download_file_removes_partial_file(tmp_path: Path) -> None:
    destination = tmp_path / "minikube"
    destination.write_bytes(b"partial")
    with patch("requests.get", side_effect=requests.Timeout("timed out")):
        with pytest.raises(DownloadFailed):
            download_file("https://example.com/minikube", destination, retries=2, sleep=lambda _: None)

    assert not destination.exists()


def test_parse_go_version() -> None:
    assert parse_go_version("go1.22.0\ntime 2024-02-06T17:35:00Z\n") == "1.22.0"
    with pytest.raises(ValueError, match="Unexpected Go version"):
        parse_go_version("<html>Not Found</html>")
    with pytest.raises(ValueError, match="Unexpected Go version"):
        parse_go_version("")


def test_parse_python_versions() -> None:
    listing = """
    <a href="3.9.18/">3.9.18/</a>
    <a href="3.12.1/">3.12.1/</a>
    <a href="3.12.0/">3.12.0/</a>
    <a href="3.11.7/">3.11.7/</a>
    <a href="2.7.18/">2.7.18/</a>
    <a href="3.13.0a2/">3.13.0a2/</a>
    """
    assert parse_python_versions(listing) == "3.12.1"
    with pytest.raises(ValueError, match="No Python versions"):
        parse_python_versions("<html></html>")


def test_parse_pypi_version() -> None:
    assert parse_pypi_version('{"info": {"name": "pip", "version": "24.3.1"}}') == "24.3.1"
    with pytest.raises(ValueError, match="Unexpected PyPI project document"):
        parse_pypi_version("<html>Service Unavailable</html>")
    with pytest.raises(ValueError, match="Unexpected PyPI project document"):
        parse_pypi_version('{"message": "Not Found"}')


def test_go_archive_name() -> None:
    with patch("omni_installer.download.current_platform", return_value=("linux", "arm64")):
        assert go_archive_name("go1.21.5") == "go1.21.5.linux-arm64.tar.gz"
