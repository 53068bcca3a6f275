"""Tests for shell profile updates."""

from __future__ import annotations

from pathlib import Path

from omni_installer.profile import append_block, update_profiles

GO_LINES = ["export PATH=$PATH:/usr/local/go/bin"]


def test_append_block_is_idempotent(tmp_path: Path) -> None:
    profile = tmp_path / ".bashrc"
    profile.write_text("# existing")

    assert append_block(profile, GO_LINES, marker="/usr/local/go/bin")
    assert not append_block(profile, GO_LINES, marker="/usr/local/go/bin")

    content = profile.read_text()
    assert content == "# existing\nexport PATH=$PATH:/usr/local/go/bin\n"
    assert content.count("/usr/local/go/bin") == 1


def test_marker_already_written_by_hand(tmp_path: Path) -> None:
    profile = tmp_path / ".bashrc"
    profile.write_text('export PATH="/usr/local/go/bin:$PATH"\n')

    assert not append_block(profile, GO_LINES, marker="/usr/local/go/bin")


def test_append_block_without_marker_adds_missing_lines(tmp_path: Path) -> None:
    profile = tmp_path / ".zshrc"
    profile.write_text("export GOPATH=$HOME/go\n")

    changed = append_block(profile, ["export GOROOT=/usr/local/go", "export GOPATH=$HOME/go"])

    assert changed
    assert profile.read_text() == "export GOPATH=$HOME/go\nexport GOROOT=/usr/local/go\n"


def test_append_block_creates_file(tmp_path: Path) -> None:
    target = tmp_path / ".zshrc"
    assert append_block(target, ["plugins=(git)"], marker="plugins=")
    assert target.read_text() == "plugins=(git)\n"


def test_update_profiles_skips_missing_files(tmp_path: Path) -> None:
    bashrc = tmp_path / ".bashrc"
    bashrc.write_text("")
    missing = tmp_path / ".profile"

    changed = update_profiles([bashrc, missing], GO_LINES, marker="go/bin")

    assert changed == [bashrc]
    assert not missing.exists()
    assert update_profiles([bashrc, missing], GO_LINES, marker="go/bin") == []
