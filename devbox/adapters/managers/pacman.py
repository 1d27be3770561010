"""
pacman: Arch Linux and derivatives.
"""

from __future__ import annotations

from devbox.adapters.base import PackageManager
from devbox.core.models.facts import ManagerId


class PacmanManager(PackageManager):

    @property
    def id(self) -> ManagerId:
        return ManagerId.PACMAN

    @property
    def binary(self) -> str:
        return "pacman"

    def install_command(self, names: list[str]) -> list[str]:
        # --needed keeps re-runs from reinstalling up-to-date packages
        return self._privileged(["pacman", "-S", "--needed", "--noconfirm"] + names)

    def query_command(self, name: str) -> list[str]:
        return ["pacman", "-Qi", name]

    def update_command(self) -> list[str] | None:
        return self._privileged(["pacman", "-Sy"])
