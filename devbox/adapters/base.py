"""
Package manager base: the contract between the engine and a manager.

The engine only talks to package managers through this interface and
never builds manager command lines itself. Concrete managers only
describe their commands; running them, timeouts and receipts are
handled here via the shared CommandRunner.

To add a manager:
    1. Subclass PackageManager
    2. Set ``id`` / ``binary`` and implement the *_command methods
    3. Register it in the ManagerRegistry
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path

from devbox.adapters.shell.command import CommandRunner
from devbox.core.models.action import Receipt
from devbox.core.models.facts import ManagerId


class PackageManager(ABC):
    """Abstract package manager.

    Capability set: ``install(names)``, ``has(name)``, ``update()``.
    """

    #: Whether several packages can be installed in one invocation.
    supports_batch: bool = True
    #: Whether commands that change the system need root.
    needs_root: bool = True

    def __init__(
        self,
        runner: CommandRunner | None = None,
        sudo: bool = True,
        install_timeout: float = 900,
    ):
        self.runner = runner or CommandRunner()
        self.sudo = sudo
        self.install_timeout = install_timeout

    @property
    @abstractmethod
    def id(self) -> ManagerId:
        """The manager identifier."""

    @property
    @abstractmethod
    def binary(self) -> str:
        """Executable whose presence means the manager is installed."""

    @abstractmethod
    def install_command(self, names: list[str]) -> list[str]:
        """Command line installing the given packages."""

    @abstractmethod
    def query_command(self, name: str) -> list[str]:
        """Command line exiting 0 iff the package is installed."""

    def update_command(self) -> list[str] | None:
        """Command line refreshing the package index, if the manager has one."""
        return None

    def env_overrides(self) -> dict[str, str]:
        return {}

    def shellenv_line(self) -> str | None:
        """Profile line that puts the manager on PATH, if it needs one."""
        return None

    def prefix(self) -> Path | None:
        """Install prefix of a self-contained manager (Homebrew), else None."""
        return None

    def _privileged(self, cmd: list[str]) -> list[str]:
        if self.needs_root and self.sudo and os.geteuid() != 0:
            return ["sudo"] + cmd
        return cmd

    # ── Capabilities ────────────────────────────────────────────

    def install(self, names: list[str], required: bool = True) -> Receipt:
        """Install packages in a single invocation."""
        receipt = self.runner.run(
            self.install_command(names),
            step="install",
            target=" ".join(names),
            required=required,
            timeout=self.install_timeout,
            env_overrides=self.env_overrides(),
        )
        receipt.metadata["manager"] = self.id.value
        receipt.metadata["packages"] = list(names)
        return receipt

    def has(self, name: str) -> bool:
        """Whether a package is already installed."""
        receipt = self.runner.run(self.query_command(name), step="query", target=name)
        return receipt.ok

    def update(self) -> Receipt:
        """Refresh the package index. Never blocks the run."""
        cmd = self.update_command()
        if cmd is None:
            return Receipt.skip(
                step="update",
                target=self.id.value,
                reason="No index update needed",
                required=False,
            )
        return self.runner.run(
            cmd,
            step="update",
            target=self.id.value,
            required=False,
            timeout=self.install_timeout,
            env_overrides=self.env_overrides(),
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id.value!r}>"
