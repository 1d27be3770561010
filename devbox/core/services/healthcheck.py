"""
Healthcheck: which expected tools are present on this host?

Read-only. Each ToolCheck is classified found/missing; missing required
checks make the report unhealthy and pull in the remediation hints for
the host's package manager.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.data.catalog import HEALTH_CHECKS, REMEDIATION_HINTS
from devbox.core.models.facts import HostFacts, ManagerId
from devbox.core.models.health import ToolCheck

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of one check."""

    check: ToolCheck
    found: bool
    found_as: str | None = None     # which alternative (or path) matched

    def to_dict(self) -> dict:
        return {
            "label": self.check.label,
            "group": self.check.group,
            "required": self.check.required,
            "found": self.found,
            "found_as": self.found_as,
        }


@dataclass
class HealthReport:
    """Result of a healthcheck run."""

    manager: ManagerId | None = None
    is_wsl: bool = False
    results: list[CheckResult] = field(default_factory=list)

    @property
    def missing_required(self) -> list[CheckResult]:
        return [r for r in self.results if not r.found and r.check.required]

    @property
    def missing_optional(self) -> list[CheckResult]:
        return [r for r in self.results if not r.found and not r.check.required]

    @property
    def ok(self) -> bool:
        return not self.missing_required

    @property
    def hints(self) -> list[str]:
        """Install hints for the host's manager, only when something required is missing."""
        if self.ok:
            return []
        return list(REMEDIATION_HINTS.get(self.manager, REMEDIATION_HINTS[None]))

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def groups(self) -> dict[str, list[CheckResult]]:
        """Results by group, in first-seen order."""
        grouped: dict[str, list[CheckResult]] = {}
        for result in self.results:
            grouped.setdefault(result.check.group, []).append(result)
        return grouped

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "manager": self.manager.value if self.manager else None,
            "is_wsl": self.is_wsl,
            "missing_required": len(self.missing_required),
            "missing_optional": len(self.missing_optional),
            "checks": [r.to_dict() for r in self.results],
            "hints": self.hints,
        }


def _expand(path: str, home: Path) -> Path:
    if path == "~":
        return home
    if path.startswith("~/"):
        return home / path[2:]
    return Path(path)


def evaluate(check: ToolCheck, facts: HostFacts, home: Path) -> CheckResult:
    """Evaluate a single check against the probed binaries."""
    if check.path:
        target = _expand(check.path, home)
        return CheckResult(check, target.is_file(), str(target) if target.is_file() else None)

    for command in check.commands:
        if facts.has(command):
            return CheckResult(check, True, command)
    return CheckResult(check, False)


def run_healthcheck(
    facts: HostFacts,
    manager: ManagerId | None,
    home: Path,
    checks: list[ToolCheck] | None = None,
) -> HealthReport:
    """Check every expected tool.

    Args:
        facts: Host facts. Command checks read ``available_binaries``.
        manager: Resolved manager, or None when none could be resolved.
            Selects the remediation hints.
        home: Directory ``~`` expands to for file checks.
        checks: Checks to run (default: the catalog's HEALTH_CHECKS).
    """
    report = HealthReport(manager=manager, is_wsl=facts.is_wsl)
    for check in checks if checks is not None else HEALTH_CHECKS:
        result = evaluate(check, facts, home)
        report.results.append(result)
        if not result.found:
            level = logging.WARNING if check.required else logging.DEBUG
            logger.log(level, "Missing %s: %s", "required" if check.required else "optional", check.label)

    logger.info(
        "Healthcheck: %d missing required, %d missing optional",
        len(report.missing_required),
        len(report.missing_optional),
    )
    return report
