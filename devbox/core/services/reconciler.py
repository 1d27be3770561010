"""
Config reconciler: bring managed files to their desired state.

Per ManagedFile the reconciler first *plans* (reads the file, picks a
Decision) and then *applies* the decision. Planning never writes, so a
dry run reports exactly what a real run would do.

full_overwrite:
    absent                     → WRITE
    present, content current   → SKIP_CURRENT
    present, differs           → BACKUP_AND_WRITE (backup only if
                                 ``<path>.bak`` does not exist yet)
    present, differs, overwrite disabled → KEEP_EXISTING (warning)

append_marked_block:
    begin marker absent        → APPEND_BLOCK (file created if needed),
                                 or SKIP_CURRENT when ``satisfied_by`` is there
    block present, current     → SKIP_CURRENT
    block present, stale       → KEEP_STALE (warning) or REFRESH_BLOCK
    duplicate / unterminated   → KEEP_STALE / REFRESH_BLOCK / CONFLICT

Every write is atomic. The backup is the pre-bootstrap original and is
never overwritten by later runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from devbox.core.errors import PermissionDenied
from devbox.core.models.action import Receipt
from devbox.core.models.managed_file import ManagedFile, WriteMode
from devbox.core.persistence.atomic import atomic_copy, atomic_write_bytes

logger = logging.getLogger(__name__)

# Round-trips arbitrary bytes through str so untouched regions stay byte-identical
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class Decision(str, Enum):
    SKIP_CURRENT = "skip_current"
    WRITE = "write"
    BACKUP_AND_WRITE = "backup_and_write"
    KEEP_EXISTING = "keep_existing"
    APPEND_BLOCK = "append_block"
    REFRESH_BLOCK = "refresh_block"
    KEEP_STALE = "keep_stale"
    CONFLICT = "conflict"

    @property
    def writes(self) -> bool:
        return self in (
            Decision.WRITE,
            Decision.BACKUP_AND_WRITE,
            Decision.APPEND_BLOCK,
            Decision.REFRESH_BLOCK,
        )


@dataclass
class BlockSpan:
    """Character offsets of one marked block, markers included."""

    start: int
    end: int            # exclusive; includes the end marker's newline
    body: str           # text between the marker lines


@dataclass
class BlockScan:
    blocks: list[BlockSpan] = field(default_factory=list)
    unterminated: bool = False

    @property
    def count(self) -> int:
        return len(self.blocks)


@dataclass
class Plan:
    """What the reconciler intends to do with one file."""

    managed: ManagedFile
    target: Path
    decision: Decision
    reason: str = ""
    new_content: str | None = None
    backup: Path | None = None          # set when a backup will be taken
    warnings: list[str] = field(default_factory=list)


def scan_blocks(text: str, begin: str, end: str) -> BlockScan:
    """Find every ``begin … end`` region, matching whole trimmed lines."""
    scan = BlockScan()
    offset = 0
    open_at: int | None = None
    body: list[str] = []

    for line in text.splitlines(keepends=True):
        stripped = line.strip()
        if open_at is None:
            if stripped == begin:
                open_at = offset
                body = []
        elif stripped == end:
            scan.blocks.append(BlockSpan(start=open_at, end=offset + len(line), body="".join(body)))
            open_at = None
        else:
            body.append(line)
        offset += len(line)

    if open_at is not None:
        scan.unterminated = True
    return scan


def _same_body(found: str, managed: ManagedFile) -> bool:
    return found.rstrip("\n") == managed.desired_block.rstrip("\n")


def _has_line(text: str, needle: str) -> bool:
    """Fixed-string search, line by line (``grep -F``)."""
    needle = needle.strip()
    return any(needle in line for line in text.splitlines())


def _append(text: str, block: str) -> str:
    if not text:
        return block
    if not text.endswith("\n"):
        text += "\n"
    return text + "\n" + block


def _replace_blocks(text: str, blocks: list[BlockSpan], block: str) -> str:
    """Collapse all blocks into one, placed where the first one was."""
    out: list[str] = []
    cursor = 0
    for i, span in enumerate(blocks):
        out.append(text[cursor:span.start])
        if i == 0:
            out.append(block)
        cursor = span.end
    out.append(text[cursor:])
    return "".join(out)


class ConfigReconciler:
    """Reconciles managed files under a home directory.

    Args:
        home: Directory ``~`` expands to.
        dry_run: Plan and report only.
        refresh_stale_blocks: Rewrite marked blocks whose content no
            longer matches the desired block (default: keep and warn).
    """

    def __init__(self, home: Path, dry_run: bool = False, refresh_stale_blocks: bool = False):
        self.home = home
        self.dry_run = dry_run
        self.refresh_stale_blocks = refresh_stale_blocks

    # ── Planning ────────────────────────────────────────────────

    def resolve_target(self, managed: ManagedFile) -> Path:
        """Target path; symlinked dotfiles are followed so the link survives."""
        target = managed.target(self.home)
        if target.is_symlink():
            return target.resolve()
        return target

    def plan(self, managed: ManagedFile) -> Plan:
        """Decide what to do with one file. Reads only.

        Raises:
            PermissionDenied: The existing file cannot be read.
            IsADirectoryError: The target is a directory.
        """
        target = self.resolve_target(managed)
        if target.is_dir():
            raise IsADirectoryError(f"{target} is a directory")

        existing: bytes | None
        try:
            existing = target.read_bytes() if target.exists() else None
        except PermissionError as e:
            raise PermissionDenied(str(target), "cannot read") from e

        if managed.mode is WriteMode.FULL_OVERWRITE:
            return self._plan_overwrite(managed, target, existing)
        return self._plan_block(managed, target, existing)

    def _plan_overwrite(self, managed: ManagedFile, target: Path, existing: bytes | None) -> Plan:
        desired = managed.desired_block
        if existing is None:
            return Plan(managed, target, Decision.WRITE, "created", new_content=desired)

        if existing == desired.encode(_ENCODING):
            return Plan(managed, target, Decision.SKIP_CURRENT, "already current")

        if not managed.overwrite:
            warning = f"{target} exists and differs; overwrite disabled, leaving as-is"
            return Plan(managed, target, Decision.KEEP_EXISTING, "overwrite disabled", warnings=[warning])

        backup = ManagedFile.backup_path(target)
        return Plan(
            managed,
            target,
            Decision.BACKUP_AND_WRITE,
            "replaced",
            new_content=desired,
            backup=None if backup.exists() else backup,
        )

    def _plan_block(self, managed: ManagedFile, target: Path, existing: bytes | None) -> Plan:
        text = existing.decode(_ENCODING, _ERRORS) if existing is not None else ""
        block = managed.render_block()
        scan = scan_blocks(text, managed.marker_begin, managed.marker_end)

        if scan.unterminated:
            warning = (
                f"{target}: '{managed.marker_begin}' has no matching "
                f"'{managed.marker_end}'; fix the file by hand"
            )
            return Plan(managed, target, Decision.CONFLICT, "unterminated block", warnings=[warning])

        if scan.count == 0 and managed.satisfied_by and _has_line(text, managed.satisfied_by):
            return Plan(managed, target, Decision.SKIP_CURRENT, "line already present")

        if scan.count == 0:
            reason = "block appended" if existing is not None else "created with block"
            return Plan(managed, target, Decision.APPEND_BLOCK, reason, new_content=_append(text, block))

        if scan.count == 1 and _same_body(scan.blocks[0].body, managed):
            return Plan(managed, target, Decision.SKIP_CURRENT, "block already present")

        problem = "duplicate blocks" if scan.count > 1 else "stale block"
        if not self.refresh_stale_blocks:
            warning = (
                f"{target}: {problem} for '{managed.name}' left as-is "
                f"(set REFRESH_STALE_BLOCKS=1 to rewrite)"
            )
            return Plan(managed, target, Decision.KEEP_STALE, problem, warnings=[warning])

        backup = ManagedFile.backup_path(target)
        return Plan(
            managed,
            target,
            Decision.REFRESH_BLOCK,
            f"{problem} refreshed",
            new_content=_replace_blocks(text, scan.blocks, block),
            backup=None if backup.exists() else backup,
        )

    # ── Applying ────────────────────────────────────────────────

    def apply(self, plan: Plan) -> None:
        """Carry out a plan.

        Raises:
            PermissionDenied: The target or its backup cannot be written.
        """
        if not plan.decision.writes or plan.new_content is None:
            return

        try:
            if plan.backup is not None:
                # keeps the original bytes and permission bits
                atomic_copy(plan.target, plan.backup)
                logger.info("Backed up %s to %s", plan.target, plan.backup)
            atomic_write_bytes(plan.target, plan.new_content.encode(_ENCODING, _ERRORS))
        except PermissionError as e:
            raise PermissionDenied(str(plan.target), "cannot write") from e

    def reconcile(self, managed: ManagedFile) -> Receipt:
        """Plan and apply one file. Never raises for file-level problems."""
        try:
            plan = self.plan(managed)
            if not self.dry_run:
                self.apply(plan)
        except PermissionDenied as e:
            logger.warning("%s", e)
            return Receipt.failure(
                step="file",
                target=managed.name,
                error=str(e),
                required=managed.required,
                warnings=[str(e)],
                metadata={"path": managed.path, "error_kind": "permission_denied"},
            )
        except OSError as e:
            logger.warning("Cannot reconcile %s: %s", managed.name, e)
            return Receipt.failure(
                step="file",
                target=managed.name,
                error=f"{e.__class__.__name__}: {e}",
                required=managed.required,
                metadata={"path": managed.path},
            )

        for warning in plan.warnings:
            logger.warning("%s", warning)

        metadata = {
            "path": str(plan.target),
            "mode": managed.mode.value,
            "decision": plan.decision.value,
            "backup": str(plan.backup) if plan.backup else None,
            "dry_run": self.dry_run,
        }

        if plan.decision is Decision.CONFLICT:
            return Receipt.failure(
                step="file",
                target=managed.name,
                error=plan.reason,
                required=managed.required,
                warnings=plan.warnings,
                metadata=metadata,
            )

        if plan.decision.writes:
            prefix = "[dry-run] would be " if self.dry_run else ""
            logger.info("%s%s: %s (%s)", "[dry-run] " if self.dry_run else "", managed.name, plan.reason, plan.target)
            receipt = Receipt.success(
                step="file",
                target=managed.name,
                output=f"{prefix}{plan.reason}",
                required=managed.required,
                warnings=plan.warnings,
                metadata=metadata,
            )
            if self.dry_run:
                receipt.status = "skipped"
            return receipt

        logger.info("%s: %s", managed.name, plan.reason)
        return Receipt.skip(
            step="file",
            target=managed.name,
            reason=plan.reason,
            required=managed.required,
            warnings=plan.warnings,
            metadata=metadata,
        )

    def reconcile_all(self, files: list[ManagedFile]) -> list[Receipt]:
        """Reconcile files in order; each file is independent."""
        return [self.reconcile(managed) for managed in files]
