"""Tests for the tool catalog."""

from __future__ import annotations

import pytest

from omni_installer.platforms import Family
from omni_installer.tools import (
    CATEGORIES,
    FLAGS,
    STATUS_TOOLS,
    TOOLS,
    Command,
    Recipe,
    ToolSpec,
    build_catalog,
    expand,
    pip_collection,
    _remove_go,
    tool_from_config,
)


def test_expand_substitutes_each_argument() -> None:
    variables = {"user": "alice", "go_root": "/usr/local/go"}

    assert expand(["usermod", "-aG", "docker", "{user}"], variables) == ["usermod", "-aG", "docker", "alice"]
    assert expand(["{go_root}/bin/go"], variables) == ["/usr/local/go/bin/go"]
    # unknown placeholders and values with spaces stay single arguments
    assert expand(["echo", "{missing}"], {"missing_not": "x"}) == ["echo", "{missing}"]
    assert expand(["{user}"], {"user": "a b; rm -rf /"}) == ["a b; rm -rf /"]


def test_catalog_is_consistent() -> None:
    for category, names in CATEGORIES.items():
        for name in names:
            assert name in TOOLS, f"{category} lists unknown tool {name}"
    for name in STATUS_TOOLS:
        assert name in TOOLS
    for name, tool in TOOLS.items():
        assert tool.name == name
        assert tool.checks


def test_legacy_flags() -> None:
    assert FLAGS == {
        "d": "docker",
        "c": "docker-compose",
        "k": "minikube",
        "p": "kubectl",
        "n": "net-tools",
        "b": "bpftool",
        "z": "zsh",
        "g": "go",
    }


def test_toolspec_requires_a_check() -> None:
    with pytest.raises(ValueError, match="presence check"):
        ToolSpec(name="broken", description="", checks=())


def test_toolspec_default_choice_must_be_valid() -> None:
    with pytest.raises(ValueError, match="default choice"):
        ToolSpec(name="broken", description="", checks=(("true",),), choices=("a", "b"), default_choice="c")


def test_resolve_choice() -> None:
    compose = TOOLS["docker-compose"]

    assert compose.resolve_choice(None) == "plugin"
    assert compose.resolve_choice("standalone") == "standalone"
    assert compose.resolve_choice("skip") == "skip"
    with pytest.raises(ValueError, match="Invalid choice"):
        compose.resolve_choice("sideways")
    # free-form choices are passed through
    assert TOOLS["venv"].resolve_choice("ml-env") == "ml-env"


def test_steps_for_falls_back() -> None:
    assert TOOLS["net-tools"].steps_for(Family.MACOS) == ()
    assert TOOLS["go"].steps_for(Family.RHEL) == TOOLS["go"].fallback
    assert TOOLS["minikube"].steps_for(Family.MACOS) != TOOLS["minikube"].fallback


def test_go_is_versioned_and_removable() -> None:
    go = TOOLS["go"]
    assert go.versioned
    assert go.remove == (Recipe(_remove_go),)


def test_python_tools_replace_in_place() -> None:
    assert TOOLS["python3"].replaces_in_place
    assert TOOLS["pip"].replaces_in_place
    assert TOOLS["python3"].remove == ()


def test_pip_upgrade_tracks_the_latest_release() -> None:
    tool = TOOLS["pip-upgrade"]

    assert tool.latest_url == "https://pypi.org/pypi/pip/json"
    assert tool.latest_parser('{"info": {"version": "24.3.1"}}') == "24.3.1"
    assert tool.fallback == (Command(("python3", "-m", "pip", "install", "--upgrade", "pip")),)
    assert "pip-upgrade" in CATEGORIES["python"]


def test_latest_url_needs_a_parser() -> None:
    with pytest.raises(ValueError, match="needs a parser"):
        ToolSpec(name="x", description="x", checks=(("x",),), latest_url="https://example.com")


def test_tool_from_config() -> None:
    tool = tool_from_config(
        "jq",
        {
            "check": ["jq", "--version"],
            "install": {
                "debian": ["apt-get", "install", "-y", "jq"],
                "any": [["curl", "-Lo", "/tmp/jq", "https://example.com/jq"], ["install", "/tmp/jq", "/usr/local/bin/jq"]],
            },
            "privileged": False,
        },
    )

    assert tool.checks == (("jq", "--version"),)
    assert tool.install[Family.DEBIAN] == (Command(("apt-get", "install", "-y", "jq")),)
    assert len(tool.fallback) == 2
    assert not tool.versioned


def test_tool_from_config_rejects_unknown_family() -> None:
    with pytest.raises(ValueError):
        tool_from_config("jq", {"check": ["jq"], "install": {"gentoo": ["emerge", "jq"]}})


def test_build_catalog_adds_custom_tools() -> None:
    catalog = build_catalog({"jq": {"check": ["jq", "--version"], "install": {"any": ["true"]}}})

    assert "jq" in catalog
    assert "jq" not in TOOLS
    assert catalog["docker"] is TOOLS["docker"]


def test_pip_collection() -> None:
    tool = pip_collection("custom-packages", ("numpy", "requests"))

    assert tool.checks == (
        ("python3", "-m", "pip", "show", "numpy"),
        ("python3", "-m", "pip", "show", "requests"),
    )
    assert tool.fallback == (Command(("python3", "-m", "pip", "install", "numpy", "requests")),)
