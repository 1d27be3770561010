"""
Mock package manager: test double and ``--mock`` stand-in.

Records every install call instead of spawning a process. Configurable
to fail specific packages, to refuse batching, or to report packages
as already installed.
"""

from __future__ import annotations

from pathlib import Path

from devbox.adapters.base import PackageManager
from devbox.core.models.action import Receipt
from devbox.core.models.facts import ManagerId


class MockManager(PackageManager):
    """Universal mock manager.

    By default every install succeeds. ``fail`` names packages whose
    install fails; a batch containing one of them fails as a whole,
    like a real manager would.
    """

    def __init__(
        self,
        manager_id: ManagerId = ManagerId.APT,
        supports_batch: bool = True,
        installed: set[str] | None = None,
        fail: set[str] | None = None,
        prefix: Path | None = None,
    ):
        super().__init__()
        self._id = manager_id
        self.supports_batch = supports_batch
        self.installed: set[str] = set(installed or ())
        self.fail: set[str] = set(fail or ())
        self._calls: list[list[str]] = []
        self.update_calls = 0
        self._prefix = prefix

    @property
    def id(self) -> ManagerId:
        return self._id

    @property
    def binary(self) -> str:
        return f"mock-{self._id.value}"

    @property
    def calls(self) -> list[list[str]]:
        """Package lists of every install() call, in order."""
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def install_command(self, names: list[str]) -> list[str]:
        return [self.binary, "install"] + names

    def query_command(self, name: str) -> list[str]:
        return [self.binary, "query", name]

    def prefix(self) -> Path | None:
        return self._prefix

    def shellenv_line(self) -> str | None:
        if self._id is ManagerId.BREW:
            return 'eval "$(brew shellenv)"'
        return None

    def install(self, names: list[str], required: bool = True) -> Receipt:
        self._calls.append(list(names))
        broken = [n for n in names if n in self.fail]
        if broken:
            return Receipt.failure(
                step="install",
                target=" ".join(names),
                error=f"[mock] could not install {', '.join(broken)}",
                required=required,
                metadata={"manager": self._id.value, "packages": list(names), "mock": True},
            )
        self.installed.update(names)
        return Receipt.success(
            step="install",
            target=" ".join(names),
            output=f"[mock] installed {len(names)} package(s)",
            required=required,
            metadata={"manager": self._id.value, "packages": list(names), "mock": True},
        )

    def has(self, name: str) -> bool:
        return name in self.installed

    def update(self) -> Receipt:
        self.update_calls += 1
        return Receipt.success(
            step="update",
            target=self._id.value,
            output="[mock] index updated",
            required=False,
        )
