"""
Manager registry: resolution and dispatch for package managers.

The registry is the single point of package-manager management: it
picks the manager for a host, maps logical packages to manager names,
and turns a package list into as few install invocations as possible.
The engine never talks to a manager directly for installs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from devbox.adapters.base import PackageManager
from devbox.core.errors import FatalEnvironmentError, PackageUnsupported
from devbox.core.models.action import Receipt
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily
from devbox.core.models.package import PackageSpec

logger = logging.getLogger(__name__)

# Platform-native first, then the ordered candidate list
NATIVE_MANAGER: dict[OsFamily, ManagerId] = {OsFamily.MACOS: ManagerId.BREW}
CANDIDATE_ORDER: tuple[ManagerId, ...] = (ManagerId.PACMAN, ManagerId.APT, ManagerId.BREW)


class Unsupported:
    """Sentinel returned by lookup() for packages a manager lacks."""

    _instance: Unsupported | None = None

    def __new__(cls) -> Unsupported:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSUPPORTED"


UNSUPPORTED = Unsupported()


class ManagerRegistry:
    """Registry and dispatcher for package managers.

    Features:
        - Register managers by id
        - Resolve the manager to use from HostFacts
        - Look up manager-specific package names
        - Batch installs, with per-package fallback when a batch fails
    """

    def __init__(self, managers: Iterable[PackageManager] | None = None):
        self._managers: dict[ManagerId, PackageManager] = {}
        for manager in managers or ():
            self.register(manager)

    def register(self, manager: PackageManager) -> None:
        """Register a manager, replacing any previous one with the same id."""
        if manager.id in self._managers:
            logger.warning("Overwriting existing manager: %s", manager.id.value)
        self._managers[manager.id] = manager
        logger.debug("Registered manager: %s", manager.id.value)

    def get(self, manager_id: ManagerId) -> PackageManager | None:
        return self._managers.get(manager_id)

    def list_managers(self) -> list[ManagerId]:
        return list(self._managers)

    # ── Resolution ──────────────────────────────────────────────

    def resolve(self, facts: HostFacts) -> ManagerId:
        """Pick the package manager for this host.

        Raises:
            FatalEnvironmentError: No registered manager is present.
        """
        order: list[ManagerId] = []
        native = NATIVE_MANAGER.get(facts.os_family)
        if native is not None:
            order.append(native)
        order.extend(m for m in CANDIDATE_ORDER if m not in order)

        for manager_id in order:
            if manager_id in self._managers and facts.has_manager(manager_id):
                logger.info("Using package manager: %s", manager_id.value)
                return manager_id

        tried = ", ".join(m.value for m in order)
        raise FatalEnvironmentError(
            f"No supported package manager found on this {facts.os_family.value} host "
            f"(looked for: {tried})"
        )

    def manager_for(self, facts: HostFacts) -> PackageManager:
        manager_id = self.resolve(facts)
        return self._managers[manager_id]

    # ── Lookup ──────────────────────────────────────────────────

    @staticmethod
    def lookup(spec: PackageSpec, manager: ManagerId) -> str | Unsupported:
        """Manager-specific package name, or UNSUPPORTED."""
        name = spec.name_for(manager)
        return name if name else UNSUPPORTED

    def require(self, spec: PackageSpec, manager: ManagerId) -> str:
        """Like lookup(), but raise PackageUnsupported."""
        name = self.lookup(spec, manager)
        if isinstance(name, Unsupported):
            raise PackageUnsupported(spec.logical_name, manager.value)
        return name

    def is_installed(self, spec: PackageSpec, manager_id: ManagerId) -> bool:
        """Ask the manager whether a logical package is installed."""
        manager = self._managers[manager_id]
        try:
            return manager.has(self.require(spec, manager_id))
        except PackageUnsupported:
            return False

    # ── Install orchestration ───────────────────────────────────

    def install_packages(
        self,
        specs: list[PackageSpec],
        manager_id: ManagerId,
        update: bool = True,
    ) -> list[Receipt]:
        """Install every resolvable package through one manager.

        Unsupported packages become skipped receipts carrying a warning.
        Resolvable ones go out in a single invocation when the manager
        supports batching. If that batch fails, each package is retried
        on its own so one broken package cannot hide the others.

        Returns:
            Receipts in execution order.
        """
        manager = self._managers.get(manager_id)
        if manager is None:
            raise FatalEnvironmentError(f"Package manager not registered: {manager_id.value}")

        receipts: list[Receipt] = []
        resolved: list[tuple[str, PackageSpec]] = []
        seen: set[str] = set()

        for spec in specs:
            name = self.lookup(spec, manager_id)
            if isinstance(name, Unsupported):
                warning = str(PackageUnsupported(spec.logical_name, manager_id.value))
                logger.warning("%s, skipping", warning)
                receipts.append(
                    Receipt.skip(
                        step="install",
                        target=spec.logical_name,
                        reason="unsupported",
                        required=False,
                        warnings=[warning],
                        metadata={"manager": manager_id.value},
                    )
                )
                continue
            if name in seen:
                continue
            seen.add(name)
            resolved.append((name, spec))

        if not resolved:
            logger.info("No packages to install via %s", manager_id.value)
            return receipts

        if update:
            update_receipt = manager.update()
            if update_receipt.failed:
                update_receipt.warnings.append(
                    f"Index update failed: {update_receipt.error}"
                )
                logger.warning("%s index update failed: %s", manager_id.value, update_receipt.error)
            receipts.append(update_receipt)

        names = [name for name, _ in resolved]
        any_required = any(spec.required for _, spec in resolved)

        if manager.supports_batch and len(resolved) > 1:
            logger.info("Installing %d packages via %s", len(names), manager_id.value)
            batch = manager.install(names, required=any_required)
            if not batch.failed:
                receipts.append(batch)
                return receipts

            logger.warning(
                "Batch install via %s failed (%s), retrying packages individually",
                manager_id.value,
                batch.error,
            )
            batch.required = False
            batch.warnings.append("Batch install failed; packages retried individually")
            receipts.append(batch)

        for name, spec in resolved:
            receipt = manager.install([name], required=spec.required)
            receipt.target = spec.logical_name
            if receipt.failed and not spec.required:
                receipt.warnings.append(f"Optional package '{spec.logical_name}' failed to install")
            receipts.append(receipt)

        return receipts


def default_registry(runner=None, install_timeout: float = 900) -> ManagerRegistry:
    """Registry with every real manager, sharing one runner."""
    from devbox.adapters.managers import AptManager, HomebrewManager, PacmanManager

    return ManagerRegistry(
        [
            HomebrewManager(runner=runner, install_timeout=install_timeout),
            PacmanManager(runner=runner, install_timeout=install_timeout),
            AptManager(runner=runner, install_timeout=install_timeout),
        ]
    )


def mock_registry() -> ManagerRegistry:
    """Registry where every manager is a MockManager."""
    from devbox.adapters.mock import MockManager

    return ManagerRegistry([MockManager(manager_id=m) for m in ManagerId])
