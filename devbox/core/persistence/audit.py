"""
Audit ledger: append-only history of bootstrap runs.

Every run appends one JSON line to ``<state_dir>/audit.ndjson``, so a
workstation keeps a trail of what was installed and written, and when.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single audit log entry."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    command: str = ""               # run, reconcile
    status: str = ""
    exit_code: int = 0
    manager: str | None = None

    steps_total: int = 0
    steps_failed: int = 0
    files_changed: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path):
        self.path = path

    def write(self, entry: AuditEntry) -> None:
        """Append one entry. Failures are logged, never raised."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning("Cannot write audit entry to %s: %s", self.path, e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries, skipping malformed lines."""
        if not self.path.is_file():
            return []

        entries: list[AuditEntry] = []
        for line_no, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(AuditEntry.model_validate(json.loads(line)))
            except Exception as e:
                logger.warning("Skipping malformed audit line %d: %s", line_no, e)
        return entries

    def read_recent(self, n: int = 10) -> list[AuditEntry]:
        """Last ``n`` entries, oldest first."""
        entries = self.read_all()
        return entries[-n:] if n > 0 else []
