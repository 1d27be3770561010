"""
Bootstrap use case: the full vertical slice of ``devbox run``.

Probes the host, resolves a package manager, runs the engine and
persists the run record and audit entry. ``run_reconcile`` is the
files-only variant behind ``devbox reconcile``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from devbox.adapters.managers.homebrew import HomebrewManager
from devbox.adapters.registry import ManagerRegistry, default_registry, mock_registry
from devbox.adapters.shell.command import CommandRunner
from devbox.adapters.vcs.git import GitClient
from devbox.core.data.catalog import probe_binaries
from devbox.core.engine.executor import BootstrapEngine, BootstrapReport, generate_operation_id
from devbox.core.errors import FatalEnvironmentError
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import HostFacts, ManagerId
from devbox.core.persistence.audit import AuditWriter
from devbox.core.persistence.state_file import save_run_record
from devbox.core.services.probe import probe

logger = logging.getLogger(__name__)


def _probe_host(config: BootstrapConfig) -> HostFacts:
    return probe(probe_binaries(config))


def _mock_facts(facts: HostFacts, registry: ManagerRegistry) -> HostFacts:
    """Mock runs on a host without any manager pretend every mock is present."""
    if facts.available_managers:
        return facts
    return facts.model_copy(update={"available_managers": frozenset(registry.list_managers())})


def _maybe_install_homebrew(
    config: BootstrapConfig,
    facts: HostFacts,
    runner: CommandRunner,
    report: BootstrapReport,
) -> HostFacts:
    """Run the Homebrew installer when asked to and brew is missing."""
    if not config.install_homebrew or facts.has_manager(ManagerId.BREW):
        return facts

    logger.info("Homebrew not found, running the official installer")
    receipt = HomebrewManager(runner=runner, install_timeout=config.command_timeout).bootstrap()
    report.receipts.append(receipt)
    if receipt.failed:
        logger.warning("Homebrew install failed: %s", receipt.error)
        return facts
    if config.dry_run:
        return facts
    return _probe_host(config)


def _persist(config: BootstrapConfig, report: BootstrapReport) -> None:
    """Save the run record and append the audit entry. Dry runs write nothing."""
    if config.dry_run:
        return
    try:
        save_run_record(report.to_record(), config.run_record_path)
    except OSError as e:
        logger.warning("Run record not saved: %s", e)
    AuditWriter(config.audit_path).write(report.to_audit_entry())


def run_bootstrap(
    config: BootstrapConfig,
    registry: ManagerRegistry | None = None,
    mock_mode: bool = False,
    save: bool = True,
    which: Callable[[str], str | None] = shutil.which,
) -> BootstrapReport:
    """Bootstrap this workstation.

    Args:
        config: Run configuration.
        registry: Pre-configured manager registry (default: real
            managers, or mock ones in mock mode).
        mock_mode: Use MockManagers instead of real package managers.
            Files are still reconciled (use ``dry_run`` to avoid that).
        save: Persist the run record and audit entry.
        which: PATH lookup for post steps.

    Returns:
        BootstrapReport. Fatal environment problems are recorded on the
        report (``fatal``), never raised.
    """
    report = BootstrapReport(
        operation_id=generate_operation_id(),
        command="run",
        dry_run=config.dry_run,
    )
    runner = CommandRunner(dry_run=config.dry_run)
    if registry is None:
        registry = mock_registry() if mock_mode else default_registry(runner, config.command_timeout)

    try:
        facts = _probe_host(config)
        report.facts = facts
        if mock_mode:
            facts = _mock_facts(facts, registry)
        else:
            facts = _maybe_install_homebrew(config, facts, runner, report)
        manager_id = registry.resolve(facts)
    except FatalEnvironmentError as e:
        logger.error("%s", e)
        report.fatal = str(e)
        if save:
            _persist(config, report)
        return report

    engine = BootstrapEngine(
        config=config,
        registry=registry,
        git=GitClient(runner=runner, timeout=config.command_timeout),
        which=which,
    )
    engine.run(facts, manager_id, report)

    logger.info(
        "Bootstrap %s: %d ok, %d skipped, %d failed",
        report.status,
        report.succeeded,
        report.skipped,
        report.failed,
    )
    if save:
        _persist(config, report)
    return report


def run_reconcile(
    config: BootstrapConfig,
    registry: ManagerRegistry | None = None,
    save: bool = True,
) -> BootstrapReport:
    """Reconcile managed files only.

    The manager is still resolved so the Homebrew shell environment
    blocks are included on brew hosts. No manager is not fatal here;
    those blocks are simply left out.
    """
    report = BootstrapReport(
        operation_id=generate_operation_id(),
        command="reconcile",
        dry_run=config.dry_run,
    )
    runner = CommandRunner(dry_run=config.dry_run)
    if registry is None:
        registry = default_registry(runner, config.command_timeout)

    try:
        facts = _probe_host(config)
    except FatalEnvironmentError as e:
        logger.error("%s", e)
        report.fatal = str(e)
        return report

    try:
        manager_id: ManagerId | None = registry.resolve(facts)
    except FatalEnvironmentError as e:
        logger.warning("%s; reconciling without manager-specific files", e)
        manager_id = None

    engine = BootstrapEngine(config=config, registry=registry, git=GitClient(runner=runner))
    engine.reconcile(facts, manager_id, report)

    if save:
        _persist(config, report)
    return report
