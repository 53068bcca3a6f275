"""Command-line interface for omni-installer."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.prompt import Prompt

from . import __version__
from .config import InstallerConfig
from .errors import InstallerError
from .installer import Installer, InstallRequest
from .platforms import resolve
from .report import ActionLog, print_catalog, print_outcome, print_status, print_summary
from .runner import CommandRunner
from .tools import CATEGORIES, FLAGS, STATUS_TOOLS, build_catalog, pip_collection
from .utils import console, set_color, setup_logging

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    "system-tools": "System Tools Installation",
    "python": "Python Installation",
    "ebpf": "eBPF Installation",
}


def list_tools(_args: argparse.Namespace, config: InstallerConfig) -> int:
    """List available tools."""
    print_catalog(build_catalog(config.tools), CATEGORIES)
    return 0


def show_status(_args: argparse.Namespace, config: InstallerConfig) -> int:
    """Show which tools are installed; never changes the host."""
    platform = resolve()
    console.print(f"🔍 [blue]Detected platform: {platform}[/blue]")
    installer = Installer(platform, config, CommandRunner(privilege=config.privilege))
    names = [*STATUS_TOOLS, *config.tools]
    print_status(installer.status(names))
    return 0


def show_version(_args: argparse.Namespace, _config: InstallerConfig) -> int:
    console.print(f"[yellow]omni-installer[/] [bold]v{__version__}[/]")
    return 0


def _parse_assignments(values: list[str], option: str) -> dict[str, str]:
    """Parse repeated ``TOOL=VALUE`` options."""
    parsed = {}
    for value in values:
        name, sep, setting = value.partition("=")
        if not sep or not name or not setting:
            msg = f"{option} expects TOOL=VALUE, got {value!r}"
            raise ValueError(msg)
        parsed[name] = setting
    return parsed


def _requested_names(args: argparse.Namespace, versions: dict[str, str]) -> list[str]:
    """Tool names from --all, the legacy flags, and positional arguments."""
    names: list[str] = []
    if args.all:
        names.extend(CATEGORIES[args.category])

    for letter, tool in FLAGS.items():
        if getattr(args, f"flag_{letter}", False):
            names.append(tool)
    if getattr(args, "go", None) is not None:
        names.append("go")
        versions["go"] = args.go

    for item in args.tools:
        name, _, version = item.partition("@")
        names.append(name)
        if version:
            versions[name] = version
    return names


def build_requests(args: argparse.Namespace, installer: Installer) -> list[InstallRequest]:
    """Turn parsed arguments into install requests with pre-resolved choices."""
    versions = _parse_assignments(args.pin, "--pin")
    choices = _parse_assignments(args.choice, "--choice")
    names = _requested_names(args, versions)

    if args.category == "python":
        if args.method or args.python_version:
            names.insert(0, "python3")
        if args.method:
            choices["python3"] = args.method
        if args.python_version:
            versions["python3"] = args.python_version
        if args.upgrade_pip:
            names.append("pip-upgrade")
        if args.packages:
            packages = tuple(p.strip() for p in args.packages.split(",") if p.strip())
            installer.register(pip_collection("custom-packages", packages))
            names.append("custom-packages")
        if args.venv:
            names.append("venv")
            choices["venv"] = args.venv

    ordered = list(dict.fromkeys(names))
    if args.version:
        for name in ordered:
            tool = installer.catalog.get(name)
            if tool is not None and tool.versioned:
                versions.setdefault(name, args.version)

    if args.interactive:
        for name in ordered:
            tool = installer.catalog.get(name)
            if tool is not None and tool.choices and name not in choices:
                choices[name] = Prompt.ask(
                    f"Which {name} option do you want?",
                    choices=[*tool.choices, "skip"],
                    default=tool.default_choice,
                )

    return [InstallRequest(name, versions.get(name), choices.get(name)) for name in ordered]


def install_category(args: argparse.Namespace, config: InstallerConfig) -> int:
    """Install the selected tools of one category."""
    console.print(f"# 🛠️ [bold]{CATEGORY_LABELS[args.category]}[/bold]")
    platform = resolve()
    console.print(f"🔍 [blue]Detected platform: {platform}[/blue]")

    action_log = ActionLog(config.log_file)
    installer = Installer(
        platform,
        config,
        CommandRunner(privilege=config.privilege, dry_run=args.dry_run),
        action_log,
        on_outcome=print_outcome,
    )
    requests = build_requests(args, installer)
    if not requests:
        console.print("⚠️ [yellow]No tools selected, use --all or name some tools[/yellow]")
        return 2

    action_log.start_session()
    action_log.record(CATEGORY_LABELS[args.category], " ".join(r.tool for r in requests))
    try:
        summary = installer.run_batch(requests)
    finally:
        action_log.close()
    print_summary(summary)
    return summary.exit_code


def _add_install_options(parser: argparse.ArgumentParser, category: str) -> None:
    parser.add_argument(
        "tools",
        nargs="*",
        help="Tools to install, optionally as TOOL@VERSION",
    )
    parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help=f"Install every {category} tool",
    )
    parser.add_argument(
        "--version",
        dest="version",
        metavar="VERSION",
        help="Version for the selected tools that support pinning",
    )
    parser.add_argument(
        "--pin",
        action="append",
        default=[],
        metavar="TOOL=VERSION",
        help="Require a specific version (replaces a different installed version)",
    )
    parser.add_argument(
        "--choice",
        action="append",
        default=[],
        metavar="TOOL=VALUE",
        help="Answer a tool's option up front, or 'skip' it",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Ask for tool options that were not given",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without changing anything",
    )
    parser.set_defaults(func=install_category, category=category)


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="omni-installer",
        description="omni-installer - Provision a developer workstation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Append the action log to this file",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # system-tools command
    system_parser = subparsers.add_parser("system-tools", help="Docker, Kubernetes, build tools, Zsh, Go")
    _add_install_options(system_parser, "system-tools")
    for letter, tool in FLAGS.items():
        if tool == "go":
            continue
        system_parser.add_argument(f"-{letter}", dest=f"flag_{letter}", action="store_true", help=f"Install {tool}")
    system_parser.add_argument(
        "-g",
        "--go",
        nargs="?",
        const="latest",
        metavar="VERSION",
        help="Install Go (latest if no version is given, e.g. 1.21.5)",
    )

    # python command
    python_parser = subparsers.add_parser("python", help="Python, pip packages, virtual environments")
    _add_install_options(python_parser, "python")
    python_parser.add_argument(
        "-m",
        "--method",
        choices=["system", "pyenv", "source"],
        help="How to install Python 3",
    )
    python_parser.add_argument("--python-version", help="Python version, e.g. 3.11.5")
    python_parser.add_argument("-u", "--upgrade-pip", action="store_true", help="Upgrade pip to the latest release")
    python_parser.add_argument("-c", "--packages", help="Comma-separated pip packages to install")
    python_parser.add_argument("-e", "--venv", metavar="NAME", help="Create a virtual environment")

    # ebpf command
    ebpf_parser = subparsers.add_parser("ebpf", help="eBPF toolkit and libraries")
    _add_install_options(ebpf_parser, "ebpf")

    # list command
    list_parser = subparsers.add_parser("list", help="List available tools")
    list_parser.set_defaults(func=list_tools)

    # status command
    status_parser = subparsers.add_parser("status", help="Show installed tools and versions")
    status_parser.set_defaults(func=show_status)

    # version command
    version_parser = subparsers.add_parser("version", help="Print version information")
    version_parser.set_defaults(func=show_version)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        config = InstallerConfig.load_from_file(args.config_file)
        if args.log_file:
            config.log_file = Path(args.log_file).expanduser()
        if args.no_color:
            config.color = False
        set_color(config.color)
        logger.debug("Configuration: %s", config)

        if hasattr(args, "func"):
            exit_code = args.func(args, config)
        else:
            parser.print_help()
            exit_code = 0

    except InstallerError as e:
        console.print(f"❌ [bold red]Error: {e.message}[/bold red]")
        sys.exit(1)
    except (KeyError, ValueError) as e:
        console.print(f"❌ [bold red]Error: {e.args[0] if e.args else e}[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"❌ [bold red]Error: {e!s}[/bold red]")
        console.print_exception()
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
