"""Status lines, run summaries, and the action log."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from rich.table import Table

from .utils import console

if TYPE_CHECKING:
    from .installer import InstallOutcome, RunSummary
    from .tools import ToolSpec

STATUS_STYLES = {
    "ALREADY_PRESENT": ("✅", "green"),
    "INSTALLED": ("✅", "green"),
    "FAILED": ("❌", "bold red"),
    "SKIPPED": ("⏭️", "yellow"),
}

ACTION_LOG_FORMAT = "[%(asctime)s] %(message)s"
ACTION_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def describe(outcome: InstallOutcome) -> str:
    """One-line description of an outcome."""
    text = outcome.status.value
    if outcome.version:
        text += f" ({outcome.version})"
    if outcome.reason:
        text += f": {outcome.reason}"
    return text


def print_outcome(outcome: InstallOutcome) -> None:
    """Print the colored status line of a finished tool."""
    icon, color = STATUS_STYLES[outcome.status.name]
    console.print(f"{icon} [{color}]{outcome.tool}: {describe(outcome)}[/{color}]")


def print_summary(summary: RunSummary) -> None:
    """Print the end-of-run table of every tool and its outcome."""
    table = Table(title="Installation summary")
    table.add_column("Tool", style="bold")
    table.add_column("Outcome")
    table.add_column("Version")
    table.add_column("Details")
    for outcome in summary.outcomes:
        _, color = STATUS_STYLES[outcome.status.name]
        table.add_row(
            outcome.tool,
            f"[{color}]{outcome.status.value}[/{color}]",
            outcome.version or "",
            outcome.reason or "",
        )
    console.print(table)

    failed = [o.tool for o in summary.outcomes if o.failed]
    if summary.fatal is not None:
        console.print(f"❌ [bold red]Run aborted: {summary.fatal.message}[/bold red]")
    elif failed:
        console.print(f"❌ [bold red]{len(failed)} tool(s) failed: {', '.join(failed)}[/bold red]")
    else:
        console.print(
            f"🔄 [blue]Completed: {len(summary.outcomes)} tool(s) processed successfully[/blue]",
        )


def print_status(rows: Iterable[tuple[ToolSpec, str | None, bool]]) -> None:
    """Print the installed/not-installed table of the status view."""
    table = Table(title="Installation status")
    table.add_column("Tool", style="bold")
    table.add_column("Status")
    for tool, version, present in rows:
        if present:
            table.add_row(tool.name, f"[green]✓ Installed{f' ({version})' if version else ''}[/green]")
        else:
            table.add_row(tool.name, "[red]✗ Not installed[/red]")
    console.print(table)


def print_catalog(catalog: dict[str, ToolSpec], categories: dict[str, tuple[str, ...]]) -> None:
    """List the tools of every category."""
    console.print("🔧 [blue]Available tools:[/blue]")
    listed = set()
    for category, names in categories.items():
        console.print(f"\n[bold]{category}[/bold]")
        for name in names:
            tool = catalog[name]
            flag = f" (-{tool.flag})" if tool.flag and category == "system-tools" else ""
            choices = f" [dim]choices: {', '.join(tool.choices)}[/dim]" if tool.choices else ""
            console.print(f"  [green]{name}[/green]{flag} - {tool.description}{choices}")
            listed.add(name)
    custom = [name for name in catalog if name not in listed]
    if custom:
        console.print("\n[bold]custom[/bold]")
        for name in custom:
            console.print(f"  [green]{name}[/green] - {catalog[name].description}")


class ActionLog:
    """Append-only log file with one line per action."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.logger = logging.getLogger(f"omni_installer.actions.{path}")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        if not self.logger.handlers:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
            handler.setFormatter(logging.Formatter(ACTION_LOG_FORMAT, ACTION_LOG_DATEFMT))
            self.logger.addHandler(handler)

    def record(self, action: str, details: str) -> None:
        self.logger.info("%s: %s", action, details)

    def start_session(self) -> None:
        self.record("SESSION", "omni-installer session started")

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
