"""Utility functions for omni-installer."""

from __future__ import annotations

import getpass
import logging
import os
import re
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Initialize rich console
console = Console()

_VERSION_TAG = re.compile(r"^(?:go|v|V)(?=\d)")
_VERSION_NUMBER = re.compile(r"\d+(?:\.\d+)+")


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def set_color(enabled: bool) -> None:  # noqa: FBT001
    """Turn colored console output on or off."""
    console.no_color = not enabled


def log(message: str, level: str = "default") -> None:
    """Print a status line with the icon and color of its level."""
    styles = {
        "info": ("🔍", "blue"),
        "success": ("✅", "green"),
        "warning": ("⚠️", "yellow"),
        "error": ("❌", "bold red"),
        "default": ("", ""),
    }
    icon, color = styles.get(level, styles["default"])
    if color:
        console.print(f"{icon} [{color}]{message}[/{color}]")
    else:
        console.print(message)


def normalize_version(version: str | None) -> str | None:
    """Strip a leading tag such as ``go`` or ``v`` from a version string.

    >>> normalize_version("go1.21.3")
    '1.21.3'
    >>> normalize_version("v2.23.0")
    '2.23.0'
    """
    if version is None:
        return None
    version = version.strip()
    if not version or version == "latest":
        return None
    return _VERSION_TAG.sub("", version)


def parse_version(output: str, pattern: str | None = None) -> str | None:
    """Pull the first version number out of a command's output."""
    if pattern:
        match = re.search(pattern, output)
        if match:
            return normalize_version(match.group(1) if match.groups() else match.group(0))
        return None
    match = _VERSION_NUMBER.search(output)
    return match.group(0) if match else None


def current_platform() -> tuple[str, str]:
    """Detect the current platform and architecture, in Go's naming."""
    platform = "linux"
    if sys.platform == "darwin":
        platform = "darwin"

    arch = "amd64"
    machine = os.uname().machine.lower()
    if machine in ["arm64", "aarch64"]:
        arch = "arm64"

    return platform, arch


def current_user() -> str:
    """Name of the user running the installer."""
    return os.environ.get("USER") or getpass.getuser()


def home_dir() -> Path:
    """Home directory of the user running the installer."""
    return Path(os.path.expanduser("~"))
