"""
Package model: a logical tool and its per-manager package names.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from devbox.core.models.facts import ManagerId


class PackageSpec(BaseModel):
    """A logical package.

    ``per_manager_names`` maps a manager to its package name. A manager
    missing from the mapping means the package is unsupported there.

    In devbox.yml the short keys ``name`` and ``managers`` are accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    logical_name: str = Field(validation_alias=AliasChoices("logical_name", "name"))
    per_manager_names: dict[ManagerId, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("per_manager_names", "managers"),
    )
    binary: str | None = None       # command the package provides, if any
    required: bool = True           # failure to install fails the run
    description: str = ""

    def name_for(self, manager: ManagerId) -> str | None:
        """Package name on a manager, or None if unsupported."""
        return self.per_manager_names.get(manager)

    @property
    def command(self) -> str:
        """The binary to look for on PATH."""
        return self.binary or self.logical_name
