"""
Managed file model: a configuration file owned by the bootstrapper.

A managed file is either fully owned (``full_overwrite``: the whole
file is replaced by the desired content) or partially owned
(``append_marked_block``: only the region between two sentinel lines
belongs to us).
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from devbox.core.models.facts import ManagerId

BACKUP_SUFFIX = ".bak"


class WriteMode(str, Enum):
    FULL_OVERWRITE = "full_overwrite"
    APPEND_MARKED_BLOCK = "append_marked_block"


def block_markers(name: str) -> tuple[str, str]:
    """Standard begin/end sentinel lines for a named block."""
    return f"# >>> devbox: {name} >>>", f"# <<< devbox: {name} <<<"


class ManagedFile(BaseModel):
    """A file whose content lifecycle devbox owns.

    Attributes:
        name:              Identifier used in reports and config overrides.
        path:              Target path. ``~`` is expanded against the
                           configured home, ``$VARS`` from the environment.
        desired_block:     Full content (full_overwrite) or block body
                           (append_marked_block).
        marker_begin/end:  Sentinel lines delimiting the owned block.
        overwrite:         full_overwrite only: replace a differing file.
        required:          A failure on this file fails the run.
        requires_manager:  Only reconciled when this manager was resolved.
        satisfied_by:      append_marked_block only: a literal line that,
                           already present outside any block, makes the
                           block unnecessary.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    desired_block: str = Field(validation_alias=AliasChoices("desired_block", "content"))
    marker_begin: str = ""
    marker_end: str = ""
    mode: WriteMode = WriteMode.APPEND_MARKED_BLOCK
    overwrite: bool = True
    required: bool = False
    requires_manager: ManagerId | None = None
    satisfied_by: str | None = None

    @model_validator(mode="after")
    def _check_markers(self) -> ManagedFile:
        if self.mode is WriteMode.APPEND_MARKED_BLOCK:
            if not self.marker_begin or not self.marker_end:
                begin, end = block_markers(self.name)
                self.marker_begin = self.marker_begin or begin
                self.marker_end = self.marker_end or end
            if self.marker_begin == self.marker_end:
                raise ValueError(f"{self.name}: begin and end markers must differ")
            for marker in (self.marker_begin, self.marker_end):
                if "\n" in marker or marker != marker.strip():
                    raise ValueError(f"{self.name}: markers must be single trimmed lines")
            for line in self.desired_block.splitlines():
                if line.strip() in (self.marker_begin, self.marker_end):
                    raise ValueError(f"{self.name}: block body must not contain its own markers")
        return self

    def target(self, home: Path) -> Path:
        """Resolve the target path against a home directory."""
        raw = os.path.expandvars(self.path)
        if raw == "~":
            return home
        if raw.startswith("~/"):
            return home / raw[2:]
        return Path(raw).expanduser()

    @staticmethod
    def backup_path(target: Path) -> Path:
        """Sibling backup path for a target."""
        return target.with_name(target.name + BACKUP_SUFFIX)

    def block_body(self) -> str:
        """Desired block body, normalised to end with exactly one newline."""
        return self.desired_block.rstrip("\n") + "\n"

    def render_block(self) -> str:
        """The full marked block as it appears in the file."""
        return f"{self.marker_begin}\n{self.block_body()}{self.marker_end}\n"
