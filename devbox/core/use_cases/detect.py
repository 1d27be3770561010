"""
Detect use cases: read-only views of the host.

``run_probe`` backs ``devbox probe`` and ``run_health`` backs
``devbox health``. Neither installs nor writes anything.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass

from devbox.adapters.registry import ManagerRegistry, default_registry
from devbox.core.data.catalog import probe_binaries
from devbox.core.errors import FatalEnvironmentError
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import HostFacts, ManagerId
from devbox.core.services.healthcheck import HealthReport, run_healthcheck
from devbox.core.services.probe import probe

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """Host facts plus the manager a bootstrap would use."""

    facts: HostFacts | None = None
    manager: ManagerId | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.facts is None:
            return {"error": self.error}
        result = self.facts.to_dict()
        result["manager"] = self.manager.value if self.manager else None
        if self.error:
            result["error"] = self.error
        return result


def _resolve(registry: ManagerRegistry, facts: HostFacts) -> tuple[ManagerId | None, str | None]:
    try:
        return registry.resolve(facts), None
    except FatalEnvironmentError as e:
        return None, str(e)


def run_probe(config: BootstrapConfig, registry: ManagerRegistry | None = None) -> ProbeResult:
    """Probe the host and report the manager that would be used."""
    try:
        facts = probe(probe_binaries(config))
    except FatalEnvironmentError as e:
        return ProbeResult(error=str(e))

    manager, error = _resolve(registry or default_registry(), facts)
    return ProbeResult(facts=facts, manager=manager, error=error)


def run_health(
    config: BootstrapConfig,
    registry: ManagerRegistry | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> HealthReport:
    """Run the healthcheck.

    Raises:
        FatalEnvironmentError: The OS is neither macOS nor Linux.
    """
    facts = probe(probe_binaries(config), which=which)
    manager, error = _resolve(registry or default_registry(), facts)
    if error:
        logger.info("%s", error)
    return run_healthcheck(facts, manager, home=config.home)
