"""Run external commands as explicit argument vectors."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import CommandFailed, PreconditionFailed
from .utils import console

logger = logging.getLogger(__name__)

PRIVILEGE_POLICIES = ("sudo", "root", "none")

# Lines of output kept on a failed command
_OUTPUT_TAIL = 20


@dataclass
class CommandResult:
    """Exit status and combined output of one command."""

    argv: list[str]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def is_root() -> bool:
    """Whether the installer runs with an effective uid of 0."""
    return hasattr(os, "geteuid") and os.geteuid() == 0


class CommandRunner:
    """Execute commands for the installer.

    ``probe`` is for read-only checks and never raises. ``run`` is for steps
    that change the host; it raises :class:`CommandFailed` on a non-zero exit.
    Privileged steps get ``sudo`` prepended according to the privilege policy.
    """

    def __init__(
        self,
        privilege: str = "sudo",
        dry_run: bool = False,  # noqa: FBT001, FBT002
        running_as_root: bool | None = None,
    ) -> None:
        if privilege not in PRIVILEGE_POLICIES:
            msg = f"Unknown privilege policy {privilege!r}, expected one of {PRIVILEGE_POLICIES}"
            raise ValueError(msg)
        self.privilege = privilege
        self.dry_run = dry_run
        self.running_as_root = is_root() if running_as_root is None else running_as_root
        self.extra_path: list[str] = []

    def extend_path(self, directory: str) -> None:
        """Search ``directory`` before PATH in every later command."""
        if directory not in self.extra_path:
            self.extra_path.insert(0, directory)

    def _env(self) -> dict[str, str] | None:
        if not self.extra_path:
            return None
        env = dict(os.environ)
        env["PATH"] = os.pathsep.join([*self.extra_path, env.get("PATH", os.defpath)])
        return env

    def elevate(self, argv: list[str], privileged: bool) -> list[str]:  # noqa: FBT001
        """Apply the privilege policy to a command."""
        if not privileged or self.running_as_root or self.privilege == "none":
            return list(argv)
        if self.privilege == "root":
            msg = f"`{' '.join(argv)}` needs root; run omni-installer as root or change the privilege policy"
            raise PreconditionFailed(msg)
        return ["sudo", *argv]

    def probe(self, argv: list[str]) -> CommandResult:
        """Run a read-only check; a missing binary counts as a failed check."""
        logger.debug("probe: %s", argv)
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                env=self._env(),
                capture_output=True,
                text=True,
                stdin=subprocess.DEVNULL,
                check=False,
                timeout=60,
            )
        except (FileNotFoundError, PermissionError):
            return CommandResult(list(argv), 127)
        except subprocess.TimeoutExpired:
            return CommandResult(list(argv), 124)
        return CommandResult(
            list(argv),
            completed.returncode,
            (completed.stdout or "") + (completed.stderr or ""),
        )

    def run(
        self,
        argv: list[str],
        *,
        privileged: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run a step that changes the host."""
        argv = self.elevate(argv, privileged)
        if self.dry_run:
            console.print(f"[dim]would run: {' '.join(argv)}[/dim]")
            return CommandResult(argv, 0)

        logger.info("run: %s", argv)
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                cwd=cwd,
                env=self._env(),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise CommandFailed(argv, 127, str(e)) from e

        output = completed.stdout or ""
        logger.debug(output)
        if completed.returncode != 0:
            tail = "\n".join(output.splitlines()[-_OUTPUT_TAIL:])
            raise CommandFailed(argv, completed.returncode, tail)
        return CommandResult(argv, completed.returncode, output)
