"""
Status use case: what happened on the last runs?
"""

from __future__ import annotations

from dataclasses import dataclass, field

from devbox.core.models.config import BootstrapConfig
from devbox.core.models.state import RunRecord
from devbox.core.persistence.audit import AuditEntry, AuditWriter
from devbox.core.persistence.state_file import load_run_record


@dataclass
class StatusResult:
    """Last run record plus recent audit history."""

    record: RunRecord | None = None
    history: list[AuditEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "last_run": self.record.model_dump(mode="json") if self.record else None,
            "history": [e.model_dump(mode="json") for e in self.history],
        }


def get_status(config: BootstrapConfig, history: int = 5) -> StatusResult:
    return StatusResult(
        record=load_run_record(config.run_record_path),
        history=AuditWriter(config.audit_path).read_recent(history),
    )
