"""
Host facts: the immutable snapshot produced by the environment probe.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class OsFamily(str, Enum):
    MACOS = "macos"
    LINUX = "linux"
    OTHER = "other"


class ManagerId(str, Enum):
    """Supported package managers."""

    BREW = "brew"
    PACMAN = "pacman"
    APT = "apt"


class HostFacts(BaseModel):
    """What the host looks like, computed once at startup.

    The set fields are frozensets so two probes of an unchanged host
    compare equal regardless of discovery order.
    """

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily
    is_wsl: bool = False
    available_managers: frozenset[ManagerId] = frozenset()
    available_binaries: frozenset[str] = frozenset()

    # Informational only
    system: str = ""
    release: str = ""
    machine: str = ""
    distro: str | None = None

    def has(self, binary: str) -> bool:
        """Whether a binary was found on PATH at probe time."""
        return binary in self.available_binaries

    def has_manager(self, manager: ManagerId) -> bool:
        return manager in self.available_managers

    def to_dict(self) -> dict[str, Any]:
        return {
            "os_family": self.os_family.value,
            "is_wsl": self.is_wsl,
            "system": self.system,
            "release": self.release,
            "machine": self.machine,
            "distro": self.distro,
            "available_managers": sorted(m.value for m in self.available_managers),
            "available_binaries": sorted(self.available_binaries),
        }
