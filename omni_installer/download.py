"""Network fetches with a bounded retry policy."""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Callable

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .errors import DownloadFailed
from .utils import console, current_platform, normalize_version

logger = logging.getLogger(__name__)

GO_VERSION_URL = "https://go.dev/VERSION?m=text"
GO_DOWNLOAD_URL = "https://dl.google.com/go/{archive}"
PYTHON_FTP_URL = "https://www.python.org/ftp/python/"
PYTHON_SOURCE_URL = "https://www.python.org/ftp/python/{version}/Python-{version}.tgz"
PYPI_PIP_URL = "https://pypi.org/pypi/pip/json"

Sleep = Callable[[float], None]


def _retrying(retries: int, backoff: float, sleep: Sleep) -> Retrying:
    def warn(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        console.print(
            f"⚠️ [yellow]Download failed ({error}), retry {retry_state.attempt_number}/{retries}[/yellow]",
        )

    return Retrying(
        stop=stop_after_attempt(retries),
        wait=wait_fixed(backoff),
        retry=retry_if_exception_type(requests.RequestException),
        before_sleep=warn,
        sleep=sleep,
        reraise=True,
    )


def fetch_text(
    url: str,
    retries: int = 3,
    backoff: float = 2.0,
    timeout: float = 30.0,
    sleep: Sleep = time.sleep,
) -> str:
    """Fetch a small text document, retrying up to ``retries`` attempts."""
    console.print(f"🔍 [blue]Fetching {url}[/blue]")
    try:
        for attempt in _retrying(retries, backoff, sleep):
            with attempt:
                response = requests.get(url, timeout=timeout)
                response.raise_for_status()
                return response.text
    except requests.RequestException as e:
        raise DownloadFailed(url, retries, str(e)) from e
    raise DownloadFailed(url, retries, "no attempt was made")  # pragma: no cover


def download_file(
    url: str,
    destination: Path,
    retries: int = 3,
    backoff: float = 2.0,
    timeout: float = 30.0,
    sleep: Sleep = time.sleep,
) -> Path:
    """Download a file from a URL to a destination path."""
    console.print(f"📥 [blue]Downloading from {url}[/blue]")
    try:
        for attempt in _retrying(retries, backoff, sleep):
            with attempt:
                response = requests.get(url, stream=True, timeout=timeout)
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=8192):
                        f.write(chunk)
    except requests.RequestException as e:
        destination.unlink(missing_ok=True)
        raise DownloadFailed(url, retries, str(e)) from e
    return destination


def parse_go_version(text: str) -> str:
    """Extract the version from the go.dev VERSION document."""
    first_line = text.strip().splitlines()[0] if text.strip() else ""
    version = normalize_version(first_line)
    if not version or not re.match(r"^\d+(\.\d+)+$", version):
        msg = f"Unexpected Go version document: {first_line!r}"
        raise ValueError(msg)
    return version


def parse_python_versions(listing: str) -> str:
    """Pick the highest final release from the python.org FTP index."""
    versions = set(re.findall(r'href="(\d+\.\d+\.\d+)/"', listing))
    if not versions:
        msg = "No Python versions found in the python.org listing"
        raise ValueError(msg)
    return max(versions, key=lambda v: tuple(int(part) for part in v.split(".")))


def parse_pypi_version(text: str) -> str:
    """The latest release named by a PyPI JSON project document."""
    try:
        return json.loads(text)["info"]["version"]
    except (ValueError, KeyError, TypeError) as e:
        msg = f"Unexpected PyPI project document: {e}"
        raise ValueError(msg) from e


def go_archive_name(version: str) -> str:
    """Name of the official Go tarball for this host."""
    system, arch = current_platform()
    return f"go{normalize_version(version)}.{system}-{arch}.tar.gz"


def go_download_url(version: str) -> str:
    return GO_DOWNLOAD_URL.format(archive=go_archive_name(version))
