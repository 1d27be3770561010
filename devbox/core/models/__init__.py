"""
Domain models: Pydantic types for the bootstrapper.

    from devbox.core.models import HostFacts, PackageSpec, ManagedFile, Receipt
"""

from devbox.core.models.action import Receipt
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily
from devbox.core.models.health import ToolCheck
from devbox.core.models.managed_file import (
    BACKUP_SUFFIX,
    ManagedFile,
    WriteMode,
    block_markers,
)
from devbox.core.models.package import PackageSpec
from devbox.core.models.state import RunRecord, StepRecord

__all__ = [
    "BACKUP_SUFFIX",
    "BootstrapConfig",
    "HostFacts",
    "ManagedFile",
    "ManagerId",
    "OsFamily",
    "PackageSpec",
    "Receipt",
    "RunRecord",
    "StepRecord",
    "ToolCheck",
    "WriteMode",
    "block_markers",
]
