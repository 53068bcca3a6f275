"""Configuration for pytest fixtures used in omni-installer tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from omni_installer.config import InstallerConfig
from omni_installer.errors import CommandFailed
from omni_installer.installer import Installer
from omni_installer.platforms import Family, Platform
from omni_installer.runner import CommandResult, CommandRunner


class FakeRunner(CommandRunner):
    """CommandRunner that never touches the host.

    ``installed`` maps a full check command to the output the check prints;
    any other check fails. ``effects`` maps a substring of a run
    command to a callback that updates ``installed``, which is how a fake
    install makes the tool appear. Runs matching ``fail`` exit with status 1.
    """

    def __init__(
        self,
        installed: dict[str, str] | None = None,
        effects: dict[str, Callable[[FakeRunner], None]] | None = None,
        fail: tuple[str, ...] = (),
        privilege: str = "sudo",
        dry_run: bool = False,  # noqa: FBT001, FBT002
    ) -> None:
        super().__init__(privilege=privilege, dry_run=dry_run, running_as_root=False)
        self.installed = dict(installed or {})
        self.effects = effects or {}
        self.fail = fail
        self.probes: list[list[str]] = []
        self.runs: list[list[str]] = []

    def probe(self, argv: list[str]) -> CommandResult:
        self.probes.append(list(argv))
        command = " ".join(argv)
        if command not in self.installed:
            return CommandResult(list(argv), 127)
        return CommandResult(list(argv), 0, self.installed[command])

    def run(
        self,
        argv: list[str],
        *,
        privileged: bool = False,
        cwd: Path | None = None,  # noqa: ARG002
    ) -> CommandResult:
        elevated = self.elevate(argv, privileged)
        if self.dry_run:
            return CommandResult(elevated, 0)
        self.runs.append(elevated)
        command = " ".join(argv)
        for pattern in self.fail:
            if pattern in command:
                raise CommandFailed(list(argv), 1, "simulated failure")
        for pattern, effect in self.effects.items():
            if pattern in command:
                effect(self)
        return CommandResult(elevated, 0)


def mark_installed(check: str, output: str) -> Callable[[FakeRunner], None]:
    """Effect that makes ``check`` succeed with ``output`` from now on."""

    def _effect(runner: FakeRunner) -> None:
        runner.installed[check] = output

    return _effect


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A fake home directory with empty bash and zsh profiles."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".bashrc").write_text("# bashrc\n")
    (home / ".zshrc").write_text("# zshrc\n")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USER", "tester")
    return home


@pytest.fixture
def config(tmp_path: Path, home: Path) -> InstallerConfig:
    """Configuration that keeps every path inside the test directory."""
    go_install_dir = tmp_path / "usr-local"
    go_install_dir.mkdir()
    return InstallerConfig(
        log_file=tmp_path / "omni-installer.log",
        profiles=[home / ".bashrc", home / ".zshrc", home / ".profile"],
        go_install_dir=go_install_dir,
        venv_dir=home / "python-environments",
        examples_dir=home / "ebpf-examples",
    )


@pytest.fixture
def debian() -> Platform:
    return Platform(Family.DEBIAN, "apt", "ubuntu")


@pytest.fixture
def make_installer(config: InstallerConfig) -> Callable[..., Installer]:
    """Build an Installer around a FakeRunner that never sleeps."""

    def _make(platform: Platform, runner: FakeRunner, **kwargs) -> Installer:  # noqa: ANN003
        return Installer(platform, config, runner, sleep=lambda _: None, **kwargs)

    return _make
