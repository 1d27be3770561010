"""
apt: Debian, Ubuntu and WSL distributions.
"""

from __future__ import annotations

from devbox.adapters.base import PackageManager
from devbox.core.models.facts import ManagerId


class AptManager(PackageManager):

    @property
    def id(self) -> ManagerId:
        return ManagerId.APT

    @property
    def binary(self) -> str:
        return "apt-get"

    def install_command(self, names: list[str]) -> list[str]:
        return self._privileged(["apt-get", "install", "-y"] + names)

    def query_command(self, name: str) -> list[str]:
        return ["dpkg", "-s", name]

    def update_command(self) -> list[str] | None:
        return self._privileged(["apt-get", "update"])

    def env_overrides(self) -> dict[str, str]:
        return {"DEBIAN_FRONTEND": "noninteractive"}
