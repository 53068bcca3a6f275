"""Detect the host's distribution family and package manager."""

from __future__ import annotations

import shutil
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

OS_RELEASE = Path("/etc/os-release")

# Probe order on Linux; the first package manager found on PATH wins.
LINUX_PACKAGE_MANAGERS = (
    ("apt", "debian"),
    ("yum", "rhel"),
    ("dnf", "rhel"),
)


class Family(str, Enum):
    """Distribution family a command template is written for."""

    DEBIAN = "debian"
    RHEL = "rhel"
    MACOS = "macos"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Platform:
    """The resolved host platform."""

    family: Family
    package_manager: str | None = None
    distro: str = ""

    @property
    def is_known(self) -> bool:
        return self.family is not Family.UNKNOWN and self.package_manager is not None

    def __str__(self) -> str:
        if not self.is_known:
            return "unknown"
        distro = f"{self.distro}, " if self.distro else ""
        return f"{self.family.value} ({distro}{self.package_manager})"


UNKNOWN = Platform(Family.UNKNOWN)


def read_os_release(path: Path = OS_RELEASE) -> dict[str, str]:
    """Parse an os-release file into a dict with lowercase keys."""
    try:
        content = path.read_text()
    except OSError:
        return {}
    info = {}
    for line in content.splitlines():
        if "=" not in line or line.startswith("#"):
            continue
        key, value = line.split("=", 1)
        info[key.strip().lower()] = value.strip().strip('"')
    return info


def resolve(
    which: Callable[[str], str | None] = shutil.which,
    system: str = sys.platform,
    os_release: Path = OS_RELEASE,
) -> Platform:
    """Resolve the host platform.

    Never raises: a host without a known package manager resolves to
    ``UNKNOWN`` and callers decide what that means for each step.
    """
    if system.startswith("darwin"):
        if which("brew"):
            return Platform(Family.MACOS, "brew", "macos")
        return UNKNOWN

    if not system.startswith("linux"):
        return UNKNOWN

    distro = read_os_release(os_release).get("id", "")
    for manager, family in LINUX_PACKAGE_MANAGERS:
        if which(manager):
            return Platform(Family(family), manager, distro)
    return UNKNOWN


def index_refresh_command(platform: Platform) -> list[str] | None:
    """Command that refreshes the package index, or None if there is none."""
    commands = {
        "apt": ["apt-get", "update"],
        "yum": ["yum", "makecache", "-y"],
        "dnf": ["dnf", "makecache", "-y"],
        "brew": ["brew", "update"],
    }
    if platform.package_manager is None:
        return None
    return commands.get(platform.package_manager)


def install_command(platform: Platform, packages: list[str]) -> list[str]:
    """Non-interactive install command for the given packages."""
    manager = platform.package_manager
    if manager == "apt":
        return ["apt-get", "install", "-y", *packages]
    if manager in ("yum", "dnf"):
        return [manager, "install", "-y", *packages]
    if manager == "brew":
        return ["brew", "install", *packages]
    msg = f"No package manager available on {platform}"
    raise ValueError(msg)


def needs_privilege(platform: Platform) -> bool:
    """Whether package-manager commands must run as root on this platform."""
    return platform.package_manager != "brew"
