"""Decide, per tool, whether to skip, install, or replace it, and do it."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from . import profile
from .config import InstallerConfig
from .download import download_file, fetch_text
from .errors import (
    CommandFailed,
    InstallerError,
    PreconditionFailed,
    PresenceCheckFailed,
    UnsupportedPlatform,
    UserDeclined,
)
from .platforms import Platform, index_refresh_command, install_command, needs_privilege
from .report import ActionLog
from .runner import CommandResult, CommandRunner
from .tools import ToolSpec, build_catalog, expand
from .utils import current_user, home_dir, log, normalize_version, parse_version

logger = logging.getLogger(__name__)


class Status(Enum):
    """Terminal state of one tool in a run."""

    ALREADY_PRESENT = "already present"
    INSTALLED = "installed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class InstallOutcome:
    """Result of ensuring one tool."""

    tool: str
    status: Status
    version: str | None = None
    reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.status is Status.FAILED


@dataclass(frozen=True)
class InstallRequest:
    """One tool asked for on the command line, with its pre-resolved inputs."""

    tool: str
    version: str | None = None
    choice: str | None = None


@dataclass
class RunSummary:
    """Every outcome of a run, in request order."""

    outcomes: list[InstallOutcome] = field(default_factory=list)
    fatal: InstallerError | None = None

    @property
    def ok(self) -> bool:
        return self.fatal is None and not any(o.failed for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def versions_match(installed: str | None, wanted: str) -> bool:
    """Whether an installed version is exactly the requested one.

    Both sides are normalized first, so ``go1.21.5`` matches ``1.21.5``, but
    ``3.11.5`` does not match ``3.11``.
    """
    installed = normalize_version(installed)
    if installed is None:
        return False
    return installed == normalize_version(wanted)


class InstallContext:
    """What install steps and recipes can do while installing one tool."""

    def __init__(
        self,
        installer: Installer,
        tool: ToolSpec,
        version: str | None,
        choice: str | None,
        tmp: Path,
    ) -> None:
        self.installer = installer
        self.tool = tool
        self.version = version
        self.choice = choice
        self.tmp = tmp
        self.variables = installer.variables(version=version, choice=choice, tmp=tmp)

    @property
    def platform(self) -> Platform:
        return self.installer.platform

    @property
    def config(self) -> InstallerConfig:
        return self.installer.config

    @property
    def dry_run(self) -> bool:
        return self.installer.runner.dry_run

    @property
    def home(self) -> Path:
        return Path(self.variables["home"])

    @property
    def user(self) -> str:
        return self.variables["user"]

    @property
    def kernel(self) -> str:
        return self.variables["kernel"]

    def expand(self, argv: Iterable[str]) -> list[str]:
        return expand(list(argv), self.variables)

    def run(
        self,
        argv: list[str],
        *,
        privileged: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        return self.installer.runner.run(argv, privileged=privileged, cwd=cwd)

    def probe(self, argv: list[str]) -> CommandResult:
        return self.installer.runner.probe(argv)

    def require_package_index(self) -> None:
        self.installer.refresh_package_index()

    def install_packages(self, *names: str) -> None:
        self.require_package_index()
        self.run(
            install_command(self.platform, list(names)),
            privileged=needs_privilege(self.platform),
        )

    def fetch_text(self, url: str) -> str:
        config = self.config
        return fetch_text(
            url,
            retries=config.max_retries,
            backoff=config.retry_backoff,
            timeout=config.request_timeout,
            sleep=self.installer.sleep,
        )

    def download(self, url: str, destination: Path) -> Path:
        if self.dry_run:
            log(f"would download {url} to {destination}", "info")
            return destination
        config = self.config
        return download_file(
            url,
            destination,
            retries=config.max_retries,
            backoff=config.retry_backoff,
            timeout=config.request_timeout,
            sleep=self.installer.sleep,
        )

    def update_profiles(self, lines: list[str], marker: str | None = None) -> None:
        """Append ``lines`` to each configured shell profile that lacks ``marker``."""
        if self.dry_run:
            log(f"would add to shell profiles: {'; '.join(lines)}", "info")
            return
        for changed in profile.update_profiles(self.config.profiles, lines, marker):
            log(f"Updated {changed}", "success")
            self.installer.record("PROFILE", f"{changed}: {'; '.join(lines)}")

    def append_lines(self, path: Path, lines: list[str], marker: str | None = None) -> None:
        if self.dry_run:
            log(f"would add to {path}: {'; '.join(lines)}", "info")
            return
        if profile.append_block(path, lines, marker):
            self.installer.record("PROFILE", f"{path}: {'; '.join(lines)}")

    def make_dirs(self, path: Path) -> None:
        if not self.dry_run:
            path.mkdir(parents=True, exist_ok=True)

    def write_script(self, path: Path, content: str) -> None:
        if self.dry_run:
            log(f"would write {path}", "info")
            return
        path.write_text(content)
        path.chmod(0o755)

    def copy_tree(self, source: Path, destination: Path) -> None:
        if not self.dry_run:
            shutil.copytree(source, destination, dirs_exist_ok=True)

    def extend_path(self, directory: Path) -> None:
        self.installer.runner.extend_path(str(directory))

    def note(self, message: str, level: str = "info") -> None:
        log(message, level)


class Installer:
    """Ensure tools are installed on one resolved platform.

    Tools run one at a time. A failing tool becomes a ``FAILED`` outcome and
    the batch moves on; only an unsupported platform or a failed package
    index refresh stop the run.
    """

    def __init__(
        self,
        platform: Platform,
        config: InstallerConfig | None = None,
        runner: CommandRunner | None = None,
        action_log: ActionLog | None = None,
        on_outcome: Callable[[InstallOutcome], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.platform = platform
        self.config = config or InstallerConfig()
        self.runner = runner or CommandRunner(privilege=self.config.privilege)
        self.action_log = action_log
        self.on_outcome = on_outcome
        self.sleep = sleep
        self.catalog = build_catalog(self.config.tools)
        self._index_refreshed = False
        self._index_error: PreconditionFailed | None = None
        self._attempted: set[str] = set()

    def record(self, action: str, details: str) -> None:
        if self.action_log is not None:
            self.action_log.record(action, details)

    def register(self, tool: ToolSpec) -> None:
        """Add a tool built at runtime, such as a custom pip package set."""
        self.catalog[tool.name] = tool

    def variables(
        self,
        version: str | None = None,
        choice: str | None = None,
        tmp: Path | None = None,
    ) -> dict[str, str]:
        """Values available to ``{name}`` placeholders in command templates."""
        return {
            "home": str(home_dir()),
            "user": current_user(),
            "kernel": os.uname().release,
            "pm": self.platform.package_manager or "",
            "version": version or "",
            "choice": choice or "",
            "go_root": str(self.config.go_install_dir / "go"),
            "venv_dir": str(self.config.venv_dir),
            "examples_dir": str(self.config.examples_dir),
            "tmp": str(tmp) if tmp else tempfile.gettempdir(),
        }

    def refresh_package_index(self) -> None:
        """Refresh the package index once per run; failure is fatal."""
        if not self.platform.is_known:
            msg = "No supported package manager (apt, yum, dnf, brew) was found; install this tool manually"
            raise UnsupportedPlatform(msg)
        if self._index_error is not None:
            raise self._index_error
        if self._index_refreshed:
            return

        command = index_refresh_command(self.platform)
        if command:
            log(f"Updating package index with {self.platform.package_manager}...", "info")
            try:
                self.runner.run(command, privileged=needs_privilege(self.platform))
            except CommandFailed as e:
                self._index_error = PreconditionFailed(f"Package index refresh failed: {e.message}")
                self.record("ERROR", self._index_error.message)
                raise self._index_error from e
            self.record("INDEX", " ".join(command))
        self._index_refreshed = True

    def latest_version(self, tool: ToolSpec) -> str | None:
        """The newest published release of a tool that names a release feed."""
        config = self.config
        text = fetch_text(
            tool.latest_url,
            retries=config.max_retries,
            backoff=config.retry_backoff,
            timeout=config.request_timeout,
            sleep=self.sleep,
        )
        return normalize_version(tool.latest_parser(text))

    def check(self, tool: ToolSpec, choice: str | None = None) -> tuple[bool, str | None]:
        """Run a tool's presence check; returns (present, version)."""
        variables = self.variables(choice=choice or tool.default_choice)
        for hint in tool.path_hints:
            self.runner.extend_path(expand([hint], variables)[0])

        results = [self.runner.probe(expand(check, variables)) for check in tool.checks]
        passed = [r for r in results if r.ok]
        present = bool(passed) if tool.any_check else len(passed) == len(results)
        if not present:
            return False, None
        return True, parse_version(passed[0].output, tool.version_pattern)

    def _finish(self, outcome: InstallOutcome) -> InstallOutcome:
        details = outcome.tool
        if outcome.version:
            details += f" {outcome.version}"
        if outcome.reason:
            details += f": {outcome.reason}"
        self.record(outcome.status.name, details)
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome

    def _failed(self, tool: ToolSpec, reason: str) -> InstallOutcome:
        return self._finish(InstallOutcome(tool.name, Status.FAILED, reason=reason))

    def ensure(
        self,
        tool: ToolSpec,
        version: str | None = None,
        choice: str | None = None,
    ) -> InstallOutcome:
        """Make sure ``tool`` is installed, at ``version`` if one is given.

        ``choice`` is the pre-resolved answer for tools that offer
        alternatives; ``None`` means the tool's default and ``"skip"`` means
        the user declined.

        Raises:
            UnsupportedPlatform: the tool must be installed but this host has
                no known package manager.
            PreconditionFailed: the package index could not be refreshed.

        """
        wanted = normalize_version(version)
        if wanted and not tool.versioned:
            log(f"{tool.name} does not support version pinning, ignoring {version}", "warning")
            wanted = None

        try:
            choice = tool.resolve_choice(choice)
        except ValueError as e:
            return self._failed(tool, str(e))
        if choice == "skip":
            return self._finish(
                InstallOutcome(tool.name, Status.SKIPPED, reason="declined by user"),
            )

        present, installed = self.check(tool, choice)
        if present and wanted is None and tool.latest_url:
            try:
                wanted = self.latest_version(tool)
            except (InstallerError, ValueError) as e:
                return self._failed(tool, f"could not look up the latest release: {e}")
        if present and (wanted is None or versions_match(installed, wanted)):
            return self._finish(InstallOutcome(tool.name, Status.ALREADY_PRESENT, installed))

        steps = tool.steps_for(self.platform.family)
        if not steps:
            if not self.platform.is_known:
                msg = f"{tool.name} is not installed and no supported package manager was found; install it manually"
                raise UnsupportedPlatform(msg)
            return self._failed(tool, f"no install method for {tool.name} on {self.platform}")
        if present and not (tool.remove or tool.replaces_in_place):
            return self._failed(
                tool,
                f"{installed} is installed and there is no way to replace it with {wanted}",
            )

        if tool.name in self._attempted:
            return self._failed(tool, "installation already attempted in this run")
        self._attempted.add(tool.name)

        try:
            with tempfile.TemporaryDirectory(prefix=f"omni-{tool.name}-") as tmp:
                ctx = InstallContext(self, tool, wanted, choice, Path(tmp))
                if present and tool.remove:
                    log(
                        f"Removing {tool.name} {installed} before installing {wanted} (last version wins)",
                        "warning",
                    )
                    for command in tool.remove:
                        command.execute(ctx)
                elif present:
                    log(f"Upgrading {tool.name} {installed} to {wanted} in place", "warning")
                log(f"Installing {tool.name}...", "info")
                for step in steps:
                    step.execute(ctx)
        except UserDeclined as e:
            return self._finish(InstallOutcome(tool.name, Status.SKIPPED, reason=e.message))
        except InstallerError as e:
            if e.fatal:
                raise
            return self._failed(tool, e.message)
        except (OSError, ValueError) as e:
            return self._failed(tool, str(e))

        if self.runner.dry_run:
            return self._finish(InstallOutcome(tool.name, Status.SKIPPED, reason="dry run"))

        present, installed = self.check(tool, choice)
        if not present:
            error = PresenceCheckFailed(f"{tool.name} still not found after installation")
            return self._failed(tool, error.message)
        if wanted and not versions_match(installed, wanted):
            error = PresenceCheckFailed(f"expected version {wanted}, found {installed}")
            return self._failed(tool, error.message)
        return self._finish(InstallOutcome(tool.name, Status.INSTALLED, installed))

    def run_batch(self, requests: Iterable[InstallRequest]) -> RunSummary:
        """Ensure every requested tool in order and collect the outcomes."""
        requests = list(requests)
        unknown = [r.tool for r in requests if r.tool not in self.catalog]
        if unknown:
            msg = f"Unknown tool(s): {', '.join(unknown)}"
            raise KeyError(msg)

        summary = RunSummary()
        seen = set()
        for request in requests:
            if request.tool in seen:
                summary.outcomes.append(
                    self._finish(
                        InstallOutcome(request.tool, Status.SKIPPED, reason="duplicate request"),
                    ),
                )
                continue
            seen.add(request.tool)
            try:
                outcome = self.ensure(
                    self.catalog[request.tool],
                    request.version,
                    request.choice,
                )
            except InstallerError as e:
                summary.fatal = e
                self.record("FATAL", e.message)
                break
            summary.outcomes.append(outcome)
        return summary

    def status(self, names: Iterable[str]) -> list[tuple[ToolSpec, str | None, bool]]:
        """Presence and version of each named tool, without changing anything."""
        rows = []
        for name in names:
            tool = self.catalog[name]
            present, version = self.check(tool)
            rows.append((tool, version, present))
        return rows
