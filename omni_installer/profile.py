"""Idempotent edits to shell profile files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

DEFAULT_PROFILES = ("~/.bashrc", "~/.zshrc", "~/.profile")


def append_block(path: Path, lines: Iterable[str], marker: str | None = None) -> bool:
    """Append ``lines`` to ``path`` unless ``marker`` already occurs in it.

    Without a marker each line is its own marker and only the missing lines
    are appended. Returns True if the file changed.
    """
    lines = list(lines)
    content = path.read_text() if path.exists() else ""

    if marker is not None:
        if marker in content:
            return False
        missing = lines
    else:
        present = set(content.splitlines())
        missing = [line for line in lines if line not in present]
    if not missing:
        return False

    with path.open("a") as f:
        if content and not content.endswith("\n"):
            f.write("\n")
        for line in missing:
            f.write(f"{line}\n")
    logger.info("Appended %d line(s) to %s", len(missing), path)
    return True


def update_profiles(
    profiles: Iterable[Path],
    lines: Iterable[str],
    marker: str | None = None,
) -> list[Path]:
    """Append a block to every existing profile file that lacks it.

    Profiles that do not exist are left alone. Returns the files changed.
    """
    lines = list(lines)
    changed = []
    for profile in profiles:
        if not profile.is_file():
            continue
        if append_block(profile, lines, marker):
            changed.append(profile)
    return changed
