"""
Bootstrap engine: the ordered step loop.

Takes a probed host and a resolved manager, runs every step through
the adapters, collects receipts and turns them into an exit status.

Flow:
    [xcode CLT] → packages → fzf bindings → managed files → login shell
    → post steps (zinit, editor config, git editor)

Steps never raise for recoverable problems. Ctrl-C stops the loop;
receipts collected so far are kept and the report carries ``interrupted``.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from devbox.adapters.registry import ManagerRegistry
from devbox.adapters.shell.command import CommandRunner
from devbox.adapters.vcs.git import GitClient
from devbox.core.data.catalog import managed_files, select_packages
from devbox.core.models.action import Receipt
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily
from devbox.core.models.managed_file import ManagedFile
from devbox.core.models.state import RunRecord, StepRecord
from devbox.core.persistence.audit import AuditEntry
from devbox.core.services.reconciler import ConfigReconciler

logger = logging.getLogger(__name__)

ZINIT_REPO = "https://github.com/zdharma-continuum/zinit.git"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2
EXIT_INTERRUPTED = 130


@dataclass
class BootstrapReport:
    """Result of a bootstrap (or reconcile-only) run."""

    operation_id: str = ""
    command: str = "run"
    dry_run: bool = False
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    facts: HostFacts | None = None
    manager: ManagerId | None = None
    receipts: list[Receipt] = field(default_factory=list)
    fatal: str | None = None
    interrupted: bool = False

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def blocking(self) -> list[Receipt]:
        """Failed required steps."""
        return [r for r in self.receipts if r.blocking]

    @property
    def warnings(self) -> list[str]:
        return [w for r in self.receipts for w in r.warnings]

    @property
    def status(self) -> str:
        if self.fatal:
            return "fatal"
        if self.interrupted:
            return "interrupted"
        if not self.blocking:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def exit_code(self) -> int:
        if self.fatal:
            return EXIT_FATAL
        if self.interrupted:
            return EXIT_INTERRUPTED
        if self.blocking:
            return EXIT_FAILED
        return EXIT_OK

    def files_changed(self) -> list[str]:
        return [
            r.target
            for r in self.receipts
            if r.step == "file" and r.ok and not r.metadata.get("dry_run")
        ]

    def packages_installed(self) -> list[str]:
        names: list[str] = []
        for r in self.receipts:
            if r.step == "install" and r.ok:
                names.extend(r.metadata.get("packages", []))
        return names

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "command": self.command,
            "dry_run": self.dry_run,
            "status": self.status,
            "exit_code": self.exit_code,
            "manager": self.manager.value if self.manager else None,
            "facts": self.facts.to_dict() if self.facts else None,
            "fatal": self.fatal,
            "interrupted": self.interrupted,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }

    def to_record(self) -> RunRecord:
        """Compact, persistable view of this report."""
        return RunRecord(
            operation_id=self.operation_id,
            command=self.command,
            started_at=self.started_at,
            status=self.status,
            exit_code=self.exit_code,
            dry_run=self.dry_run,
            os_family=self.facts.os_family.value if self.facts else "",
            is_wsl=self.facts.is_wsl if self.facts else False,
            manager=self.manager.value if self.manager else None,
            steps=[
                StepRecord(
                    step=r.step,
                    target=r.target,
                    status=r.status,
                    required=r.required,
                    error=r.error,
                    warnings=list(r.warnings),
                )
                for r in self.receipts
            ],
            fatal=self.fatal,
        )

    def to_audit_entry(self) -> AuditEntry:
        return AuditEntry(
            operation_id=self.operation_id,
            command=self.command,
            status=self.status,
            exit_code=self.exit_code,
            manager=self.manager.value if self.manager else None,
            steps_total=self.total,
            steps_failed=self.failed,
            files_changed=self.files_changed(),
            packages=self.packages_installed(),
            errors=[f"{r.label}: {r.error}" for r in self.receipts if r.failed]
            + ([self.fatal] if self.fatal else []),
        )


class BootstrapEngine:
    """Runs the bootstrap steps for one host.

    Args:
        config: Run configuration.
        registry: Manager registry (real or mock).
        git: Git client for checkouts and config.
        which: PATH lookup, re-evaluated after installs for post steps.
        runner: Command runner for host post steps (default: the git
            client's runner).
    """

    def __init__(
        self,
        config: BootstrapConfig,
        registry: ManagerRegistry,
        git: GitClient,
        which: Callable[[str], str | None] = shutil.which,
        runner: CommandRunner | None = None,
    ):
        self.config = config
        self.registry = registry
        self.git = git
        self.runner = runner or git.runner
        self.which = which
        self.reconciler = ConfigReconciler(
            home=config.home,
            dry_run=config.dry_run,
            refresh_stale_blocks=config.refresh_stale_blocks,
        )

    # ── Steps ───────────────────────────────────────────────────

    def install_packages(self, manager_id: ManagerId) -> list[Receipt]:
        specs = select_packages(self.config)
        logger.info("Installing %d packages via %s", len(specs), manager_id.value)
        return self.registry.install_packages(specs, manager_id, update=self.config.update_index)

    def files_for(self, manager_id: ManagerId | None) -> list[ManagedFile]:
        """Managed files applicable to the resolved manager."""
        shellenv = None
        if manager_id is not None:
            manager = self.registry.get(manager_id)
            shellenv = manager.shellenv_line() if manager is not None else None

        files: list[ManagedFile] = []
        for managed in managed_files(self.config, brew_shellenv=shellenv):
            if managed.requires_manager is not None and managed.requires_manager != manager_id:
                logger.debug("Skipping %s: needs %s", managed.name, managed.requires_manager.value)
                continue
            files.append(managed)
        return files

    def reconcile_files(self, manager_id: ManagerId | None) -> Iterator[Receipt]:
        for managed in self.files_for(manager_id):
            yield self.reconciler.reconcile(managed)

    def checkout_zinit(self) -> Receipt:
        if not self.config.install_zinit:
            return Receipt.skip(step="checkout", target="zinit", reason="disabled", required=False)
        if not self._has("git"):
            return self._missing_tool("checkout", "zinit", "git")
        return self.git.ensure_checkout(ZINIT_REPO, self.config.zinit_dir, name="zinit")

    def checkout_editor_config(self) -> Receipt:
        repo = self.config.nvim_config_repo
        if not repo:
            return Receipt.skip(
                step="checkout",
                target="nvim-config",
                reason="NVIM_CONFIG_REPO not set",
                required=False,
            )
        if not self._has("git"):
            return self._missing_tool("checkout", "nvim-config", "git")
        return self.git.ensure_checkout(repo, self.config.effective_nvim_dir, name="nvim-config")

    def set_git_editor(self) -> Receipt:
        if not self.config.set_git_editor:
            return Receipt.skip(step="git-config", target="core.editor", reason="disabled", required=False)
        for tool in ("git", "nvim"):
            if not self._has(tool):
                return self._missing_tool("git-config", "core.editor", tool)
        return self.git.set_global_config("core.editor", "nvim")

    def install_xcode_cli_tools(self) -> Receipt:
        """macOS only: ``xcode-select --install`` unless already present."""
        target = "command-line-tools"
        if not self._has("xcode-select"):
            return self._missing_tool("xcode-clt", target, "xcode-select")
        check = self.runner.run(["xcode-select", "-p"], step="xcode-clt", target=target, required=False)
        if check.ok:
            return Receipt.skip(step="xcode-clt", target=target, reason="already installed", required=False)

        logger.info("Installing Xcode Command Line Tools")
        receipt = self.runner.run(["xcode-select", "--install"], step="xcode-clt", target=target, required=False)
        if receipt.failed:
            receipt.warnings.append("xcode-select --install failed; install the Command Line Tools by hand")
        return receipt

    def set_default_shell(self) -> Receipt:
        """``chsh -s <zsh>`` when zsh is not the login shell yet."""
        if not self.config.set_default_shell:
            return Receipt.skip(step="login-shell", target="zsh", reason="disabled", required=False)
        if not self._has("zsh"):
            return self._missing_tool("login-shell", "zsh", "zsh")
        zsh = self.which("zsh") or "zsh"
        if self.config.login_shell == zsh:
            return Receipt.skip(step="login-shell", target="zsh", reason="already the login shell", required=False)

        logger.info("Setting zsh as default shell (may prompt for password)")
        receipt = self.runner.run(["chsh", "-s", zsh], step="login-shell", target="zsh", required=False)
        if receipt.failed:
            receipt.warnings.append("Could not change default shell (this can be restricted)")
        return receipt

    def install_fzf_bindings(self, manager_id: ManagerId) -> Receipt:
        """Run Homebrew's fzf installer for key bindings and completion."""
        if not self.config.install_fzf_bindings:
            return Receipt.skip(step="fzf", target="key-bindings", reason="disabled", required=False)
        manager = self.registry.get(manager_id)
        prefix = manager.prefix() if manager is not None else None
        if prefix is None:
            return Receipt.skip(
                step="fzf",
                target="key-bindings",
                reason=f"no fzf installer for {manager_id.value}",
                required=False,
            )
        installer = prefix / "opt" / "fzf" / "install"
        if not installer.is_file():
            return Receipt.skip(step="fzf", target="key-bindings", reason=f"{installer} not found", required=False)
        receipt = self.runner.run(
            [str(installer), "--key-bindings", "--completion", "--no-update-rc"],
            step="fzf",
            target="key-bindings",
            required=False,
        )
        if receipt.failed:
            receipt.warnings.append("fzf key bindings not installed")
        return receipt

    # ── Orchestration ───────────────────────────────────────────

    def run(self, facts: HostFacts, manager_id: ManagerId, report: BootstrapReport) -> BootstrapReport:
        """Run every step, appending receipts to ``report``."""
        report.facts = facts
        report.manager = manager_id

        steps: list[tuple[str, Callable[[], Iterable[Receipt] | Receipt]]] = []
        if facts.os_family is OsFamily.MACOS:
            steps.append(("xcode-clt", self.install_xcode_cli_tools))
        steps.append(("packages", lambda: self.install_packages(manager_id)))
        if manager_id is ManagerId.BREW:
            steps.append(("fzf", lambda: self.install_fzf_bindings(manager_id)))
        steps.extend(
            [
                ("files", lambda: self.reconcile_files(manager_id)),
                ("login-shell", self.set_default_shell),
                ("zinit", self.checkout_zinit),
                ("editor-config", self.checkout_editor_config),
                ("git-editor", self.set_git_editor),
            ]
        )
        self._run_steps(steps, report)

        if facts.is_wsl and not report.interrupted:
            logger.warning("WSL detected: keep your repos inside /home (NOT /mnt/c) for best performance.")
            logger.warning("Consider Windows Defender exclusions for \\\\wsl$\\ to avoid slow file IO.")
        return report

    def reconcile(self, facts: HostFacts, manager_id: ManagerId | None, report: BootstrapReport) -> BootstrapReport:
        """Managed files only; no packages, no post steps."""
        report.facts = facts
        report.manager = manager_id
        self._run_steps([("files", lambda: self.reconcile_files(manager_id))], report)
        return report

    def _run_steps(self, steps, report: BootstrapReport) -> None:
        for name, step in steps:
            try:
                logger.debug("Step: %s", name)
                outcome = step()
                if isinstance(outcome, Receipt):
                    outcome = [outcome]
                # an interrupt keeps the receipts already collected
                for receipt in outcome:
                    self._log_receipt(receipt)
                    report.receipts.append(receipt)
            except KeyboardInterrupt:
                logger.warning("Interrupted during step '%s'", name)
                report.interrupted = True
                return

    # ── Helpers ─────────────────────────────────────────────────

    def _has(self, tool: str) -> bool:
        # dry runs install nothing
        return self.config.dry_run or self.which(tool) is not None

    @staticmethod
    def _missing_tool(step: str, target: str, tool: str) -> Receipt:
        warning = f"{tool} not found; skipping {target}"
        logger.warning(warning)
        return Receipt.skip(step=step, target=target, reason=f"{tool} missing", required=False, warnings=[warning])

    @staticmethod
    def _log_receipt(receipt: Receipt) -> None:
        marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        level = logging.WARNING if receipt.blocking else logging.DEBUG
        logger.log(level, "%s %s → %s", marker, receipt.label, receipt.status)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
