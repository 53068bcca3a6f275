"""omni-installer - Developer Workstation Provisioner.

Installs and configures developer tools (containers, Kubernetes clients,
compilers, Python environments, eBPF toolchains) on Debian, RHEL-family,
and macOS hosts. Every tool is checked before anything is installed, so
running the installer twice changes nothing the second time.
"""

from __future__ import annotations

__version__ = "1.0.0"

from . import cli, config, download, installer, platforms, profile, report, runner, tools, utils
from .cli import main

# Re-export commonly used names
from .config import InstallerConfig
from .errors import InstallerError
from .installer import Installer, InstallOutcome, InstallRequest, RunSummary, Status
from .platforms import Family, Platform, resolve
from .runner import CommandRunner
from .tools import TOOLS, ToolSpec

__all__ = [
    "TOOLS",
    "CommandRunner",
    "Family",
    "InstallOutcome",
    "InstallRequest",
    "Installer",
    "InstallerConfig",
    "InstallerError",
    "Platform",
    "RunSummary",
    "Status",
    "ToolSpec",
    "cli",
    "config",
    "download",
    "installer",
    "main",
    "platforms",
    "profile",
    "report",
    "resolve",
    "runner",
    "tools",
    "utils",
]
