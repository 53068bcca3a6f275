"""Configuration management for omni-installer."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .profile import DEFAULT_PROFILES
from .runner import PRIVILEGE_POLICIES
from .utils import console

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/omni-installer/config.yaml"

_PATH_FIELDS = ("log_file", "go_install_dir", "venv_dir", "examples_dir")


def _expand(path: str | Path) -> Path:
    return Path(os.path.expanduser(str(path)))


@dataclass
class InstallerConfig:
    """Configuration for omni-installer."""

    log_file: Path = field(
        default_factory=lambda: _expand("~/.omni-installer.log"),
    )
    profiles: list[Path] = field(
        default_factory=lambda: [_expand(p) for p in DEFAULT_PROFILES],
    )
    privilege: str = "sudo"
    max_retries: int = 3
    retry_backoff: float = 2.0
    request_timeout: float = 30.0
    go_install_dir: Path = field(default_factory=lambda: Path("/usr/local"))
    venv_dir: Path = field(
        default_factory=lambda: _expand("~/python-environments"),
    )
    examples_dir: Path = field(
        default_factory=lambda: _expand("~/ebpf-examples"),
    )
    color: bool = True
    tools: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate the configuration."""
        if self.privilege not in PRIVILEGE_POLICIES:
            console.print(
                f"⚠️ [yellow]Unknown privilege policy '{self.privilege}', using 'sudo'[/yellow]",
            )
            self.privilege = "sudo"
        if self.max_retries < 1:
            console.print("⚠️ [yellow]max_retries must be at least 1, using 1[/yellow]")
            self.max_retries = 1
        if self.retry_backoff < 0:
            console.print("⚠️ [yellow]retry_backoff cannot be negative, using 0[/yellow]")
            self.retry_backoff = 0.0

        for tool_name, tool_config in self.tools.items():
            self._validate_tool_config(tool_name, tool_config)

    def _validate_tool_config(
        self,
        tool_name: str,
        tool_config: dict[str, Any],
    ) -> None:
        """Validate a single custom tool configuration."""
        for _field in ("check", "install"):
            if _field not in tool_config:
                console.print(
                    f"⚠️ [yellow]Tool {tool_name} is missing required field '{_field}'[/yellow]",
                )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallerConfig:
        """Build a configuration from a parsed YAML mapping."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        for key in unknown:
            console.print(f"⚠️ [yellow]Ignoring unknown configuration key '{key}'[/yellow]")
        data = {k: v for k, v in data.items() if k in known}

        for key in _PATH_FIELDS:
            if isinstance(data.get(key), str):
                data[key] = _expand(data[key])
        if "profiles" in data:
            data["profiles"] = [_expand(p) for p in data["profiles"]]
        if data.get("tools") is None:
            data.pop("tools", None)

        config = cls(**data)
        config.validate()
        return config

    @classmethod
    def load_from_file(cls, config_path: str | None = None) -> InstallerConfig:
        """Load configuration from YAML file."""
        explicit = config_path is not None
        path = _expand(config_path or DEFAULT_CONFIG_PATH)

        try:
            with open(path) as file:
                config_data = yaml.safe_load(file) or {}
            if not isinstance(config_data, dict):
                msg = f"expected a mapping at the top level, got {type(config_data).__name__}"
                raise TypeError(msg)  # noqa: TRY301
            return cls.from_dict(config_data)

        except FileNotFoundError:
            if explicit:
                console.print(
                    f"⚠️ [yellow]Configuration file not found: {path}[/yellow]",
                )
            return cls()
        except yaml.YAMLError:
            console.print(
                f"❌ [bold red]Invalid YAML in configuration file: {path}[/bold red]",
            )
            logger.debug("YAML error", exc_info=True)
            return cls()
        except (TypeError, ValueError) as e:
            console.print(f"❌ [bold red]Error loading configuration: {e}[/bold red]")
            return cls()
