"""
Homebrew: macOS native manager, also usable on Linux (linuxbrew).
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from devbox.adapters.base import PackageManager
from devbox.core.models.action import Receipt
from devbox.core.models.facts import ManagerId

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Where the installer puts brew when it is not on PATH yet
BREW_PREFIX_BINARIES = (
    "/opt/homebrew/bin/brew",
    "/usr/local/bin/brew",
    "/home/linuxbrew/.linuxbrew/bin/brew",
)


def locate_brew() -> str | None:
    """Find the brew executable on PATH or in a standard prefix."""
    found = shutil.which("brew")
    if found:
        return found
    for candidate in BREW_PREFIX_BINARIES:
        if os.access(candidate, os.X_OK):
            return candidate
    return None


class HomebrewManager(PackageManager):
    """brew install / brew list. Never runs under sudo."""

    needs_root = False

    @property
    def id(self) -> ManagerId:
        return ManagerId.BREW

    @property
    def binary(self) -> str:
        return locate_brew() or "brew"

    def install_command(self, names: list[str]) -> list[str]:
        return [self.binary, "install"] + names

    def query_command(self, name: str) -> list[str]:
        return [self.binary, "list", "--versions", name]

    def update_command(self) -> list[str] | None:
        return [self.binary, "update"]

    def env_overrides(self) -> dict[str, str]:
        return {"HOMEBREW_NO_INSTALL_CLEANUP": "1"}

    def prefix(self) -> Path | None:
        brew = locate_brew()
        return Path(brew).parent.parent if brew else None

    def shellenv_line(self) -> str:
        """The profile line that puts brew on PATH for new shells."""
        brew = locate_brew() or BREW_PREFIX_BINARIES[0]
        return f'eval "$({brew} shellenv)"'

    def bootstrap(self) -> Receipt:
        """Install Homebrew itself with the official installer script."""
        return self.runner.run(
            ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {INSTALL_SCRIPT_URL})"'],
            step="homebrew",
            target=str(Path(BREW_PREFIX_BINARIES[0]).parent.parent),
            required=True,
            timeout=self.install_timeout,
            env_overrides={"NONINTERACTIVE": "1"},
        )
