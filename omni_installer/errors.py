"""Exceptions raised while provisioning tools."""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for all omni-installer errors."""

    fatal = False

    def __init__(self, message: str) -> None:
        """Initialize the InstallerError."""
        self.message = message
        super().__init__(message)


class UnsupportedPlatform(InstallerError):  # noqa: N818
    """No known package manager was found on this host."""

    fatal = True


class PreconditionFailed(InstallerError):  # noqa: N818
    """A once-per-run prerequisite (package index refresh) failed."""

    fatal = True


class DownloadFailed(InstallerError):  # noqa: N818
    """A network fetch failed after exhausting its retries."""

    def __init__(self, url: str, attempts: int, reason: str) -> None:
        """Initialize the DownloadFailed."""
        self.url = url
        self.attempts = attempts
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {reason}")


class CommandFailed(InstallerError):  # noqa: N818
    """An install or build step exited non-zero."""

    def __init__(self, argv: list[str], returncode: int, output: str = "") -> None:
        """Initialize the CommandFailed."""
        self.argv = argv
        self.returncode = returncode
        self.output = output
        super().__init__(f"`{' '.join(argv)}` exited with status {returncode}")


class PresenceCheckFailed(InstallerError):  # noqa: N818
    """The tool is still missing after its install steps succeeded."""


class UserDeclined(InstallerError):  # noqa: N818
    """An interactive prompt rejected the action."""
