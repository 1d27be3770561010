"""
RunRecord: persisted summary of the last bootstrap run.

Serialized to ``<state_dir>/last_run.json``. It is disposable: delete
it and the next run simply starts without history.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepRecord(BaseModel):
    """Compact view of one receipt."""

    step: str
    target: str = ""
    status: str = ""                # ok, skipped, failed
    required: bool = True
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)


class RunRecord(BaseModel):
    """Root state model for the last run."""

    schema_version: int = 1

    operation_id: str = ""
    command: str = ""               # run, reconcile
    started_at: str = ""
    ended_at: str = Field(default_factory=_now_iso)
    status: str = ""                # ok, partial, failed, fatal, interrupted
    exit_code: int = 0
    dry_run: bool = False

    os_family: str = ""
    is_wsl: bool = False
    manager: str | None = None

    steps: list[StepRecord] = Field(default_factory=list)
    fatal: str | None = None

    def touch(self) -> None:
        """Update the ended_at timestamp."""
        self.ended_at = _now_iso()
