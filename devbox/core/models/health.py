"""
Health check model: one expected tool or file.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ToolCheck(BaseModel):
    """An expected command (or set of alternatives) or file.

    With several ``commands`` the check passes if any one is present.
    With ``path`` set, the file's existence is checked instead.
    """

    label: str
    group: str = "Core tools"
    commands: list[str] = Field(default_factory=list)
    path: str | None = None
    required: bool = True

    @model_validator(mode="after")
    def _needs_subject(self) -> ToolCheck:
        if not self.commands and not self.path:
            raise ValueError(f"{self.label}: a check needs commands or a path")
        return self

    @classmethod
    def cmd(cls, command: str, group: str, required: bool = True) -> ToolCheck:
        return cls(label=command, group=group, commands=[command], required=required)

    @classmethod
    def any_of(cls, label: str, commands: list[str], group: str) -> ToolCheck:
        return cls(label=label, group=group, commands=commands, required=True)
