"""
Receipt model: the outcome of one bootstrap step.

Every step (package batch, managed file, checkout, git config) returns
a Receipt. Steps never raise for recoverable failures; the failure is
captured here together with any warnings, and the engine aggregates
receipts into the final exit status.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of a single step.

    ``required`` marks whether a failure of this step fails the run.
    Optional steps that fail only contribute a warning.
    """

    step: str                       # install, update, file, checkout, git-config, ...
    target: str = ""                # package batch, file name, repo path, ...
    status: Literal["ok", "skipped", "failed"] = "ok"
    required: bool = True

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the step succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the step failed."""
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def blocking(self) -> bool:
        """A failure that should make the run exit non-zero."""
        return self.failed and self.required

    @classmethod
    def success(cls, step: str, target: str = "", output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(step=step, target=target, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, step: str, target: str = "", error: str = "", **kwargs: Any) -> Receipt:
        """Create a failure receipt."""
        return cls(step=step, target=target, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, step: str, target: str = "", reason: str = "", **kwargs: Any) -> Receipt:
        """Create a skip receipt."""
        return cls(step=step, target=target, status="skipped", output=reason, **kwargs)

    @property
    def label(self) -> str:
        return f"{self.step}:{self.target}" if self.target else self.step
