"""Tests for the command-line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from conftest import FakeRunner, mark_installed

from omni_installer import __version__, cli
from omni_installer.config import InstallerConfig
from omni_installer.installer import Installer, InstallRequest
from omni_installer.platforms import UNKNOWN, Platform


@pytest.fixture
def config_file(tmp_path: Path, home: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "log_file": str(tmp_path / "actions.log"),
                "profiles": [str(home / ".bashrc")],
                "go_install_dir": str(tmp_path),
            },
        ),
    )
    return path


@pytest.fixture
def fake_host(debian: Platform, monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    """Route the CLI to a Debian host whose commands are all simulated."""
    runner = FakeRunner(
        installed={"docker --version": "Docker version 24.0.7, build afdd53b"},
        effects={"install -y net-tools": mark_installed("ifconfig -a", "eth0: flags=4163")},
    )

    def _runner(privilege: str = "sudo", dry_run: bool = False) -> FakeRunner:  # noqa: FBT001, FBT002
        runner.privilege = privilege
        runner.dry_run = dry_run
        return runner

    monkeypatch.setattr(cli, "resolve", lambda: debian)
    monkeypatch.setattr(cli, "CommandRunner", _runner)
    return runner


def _parse(*argv: str):  # noqa: ANN202
    return cli.create_parser().parse_args(list(argv))


def _requests(installer: Installer, *argv: str) -> list[InstallRequest]:
    return cli.build_requests(_parse(*argv), installer)


@pytest.fixture
def installer(debian: Platform, config: InstallerConfig) -> Installer:
    return Installer(debian, config, FakeRunner())


def test_cli_no_command(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 0
    assert "usage:" in capsys.readouterr().out


def test_cli_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["version"])
    assert excinfo.value.code == 0
    assert f"v{__version__}" in capsys.readouterr().out


def test_cli_list(capsys: pytest.CaptureFixture[str], config_file: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "list"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "docker" in out
    assert "ebpf-examples" in out


def test_legacy_flags_select_tools(installer: Installer) -> None:
    requests = _requests(installer, "system-tools", "-d", "-z", "-g")
    assert requests == [
        InstallRequest("docker"),
        InstallRequest("zsh"),
        InstallRequest("go", "latest"),
    ]


def test_go_flag_with_version(installer: Installer) -> None:
    requests = _requests(installer, "system-tools", "-g", "1.21.5")
    assert requests == [InstallRequest("go", "1.21.5")]


def test_positional_tools_with_versions_and_choices(installer: Installer) -> None:
    requests = _requests(
        installer,
        "system-tools",
        "docker-compose",
        "go@1.21.5",
        "kubectl",
        "--choice",
        "docker-compose=standalone",
        "--pin",
        "kubectl=1.29.0",
    )
    assert requests == [
        InstallRequest("docker-compose", None, "standalone"),
        InstallRequest("go", "1.21.5"),
        InstallRequest("kubectl", "1.29.0"),
    ]


def test_version_option_applies_to_versioned_tools(installer: Installer) -> None:
    requests = _requests(installer, "system-tools", "docker", "go", "--version", "1.22.0")
    assert requests == [InstallRequest("docker"), InstallRequest("go", "1.22.0")]


def test_all_selects_the_category(installer: Installer) -> None:
    requests = _requests(installer, "ebpf", "--all")
    assert [r.tool for r in requests] == [
        "kernel-headers", "libbpf", "bpftool", "bcc", "bpftrace", "ebpf-examples",
    ]


def test_python_options(installer: Installer) -> None:
    requests = _requests(
        installer,
        "python",
        "--method",
        "pyenv",
        "--python-version",
        "3.11.5",
        "-u",
        "-c",
        "numpy, requests",
        "-e",
        "ml-env",
    )

    assert requests == [
        InstallRequest("python3", "3.11.5", "pyenv"),
        InstallRequest("pip-upgrade"),
        InstallRequest("custom-packages"),
        InstallRequest("venv", None, "ml-env"),
    ]
    assert installer.catalog["custom-packages"].checks == (
        ("python3", "-m", "pip", "show", "numpy"),
        ("python3", "-m", "pip", "show", "requests"),
    )


def test_interactive_prompts_for_missing_choices(installer: Installer) -> None:
    with patch.object(cli.Prompt, "ask", return_value="skip") as ask:
        requests = _requests(installer, "system-tools", "-c", "-z", "--choice", "zsh=both", "-i")

    assert ask.call_count == 1
    assert requests == [
        InstallRequest("docker-compose", None, "skip"),
        InstallRequest("zsh", None, "both"),
    ]


def test_bad_assignment_is_rejected(installer: Installer) -> None:
    with pytest.raises(ValueError, match="TOOL=VALUE"):
        _requests(installer, "system-tools", "--choice", "docker-compose")


def test_install_run_exit_code(
    fake_host: FakeRunner,
    config_file: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "system-tools", "-d", "-n"])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "docker: already present" in out
    assert "net-tools: installed" in out
    assert ["sudo", "apt-get", "install", "-y", "net-tools"] in fake_host.runs

    log = (tmp_path / "actions.log").read_text()
    assert "SESSION: " in log
    assert "INSTALLED: net-tools" in log


def test_install_failure_exit_code(
    fake_host: FakeRunner,
    config_file: Path,
) -> None:
    fake_host.fail = ("install -y cmake",)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "system-tools", "cmake", "docker"])
    assert excinfo.value.code == 1


def test_dry_run_flag(fake_host: FakeRunner, config_file: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "system-tools", "-n", "--dry-run"])

    assert excinfo.value.code == 0
    assert fake_host.runs == []


def test_no_tools_selected(fake_host: FakeRunner, config_file: Path) -> None:  # noqa: ARG001
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "python"])
    assert excinfo.value.code == 2


def test_unknown_tool(
    fake_host: FakeRunner,  # noqa: ARG001
    config_file: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "system-tools", "nonexistent"])
    assert excinfo.value.code == 1
    assert "Unknown tool(s): nonexistent" in capsys.readouterr().out


def test_unsupported_platform(
    fake_host: FakeRunner,
    config_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(cli, "resolve", lambda: UNKNOWN)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "system-tools", "-n"])
    assert excinfo.value.code == 1
    assert "Run aborted" in capsys.readouterr().out
    assert fake_host.runs == []


def test_status_does_not_write_the_log(
    fake_host: FakeRunner,
    config_file: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config-file", str(config_file), "status"])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "Installed (24.0.7)" in out
    assert "Not installed" in out
    assert fake_host.runs == []
    assert not (tmp_path / "actions.log").exists()
