"""
Static data: package, file and health-check catalogs plus templates.

    from devbox.core.data import select_packages, managed_files, HEALTH_CHECKS
"""

from devbox.core.data.catalog import (
    HEALTH_CHECKS,
    NODE_PACKAGES,
    PREREQ_PACKAGES,
    REMEDIATION_HINTS,
    TOOL_PACKAGES,
    managed_files,
    probe_binaries,
    select_packages,
)

__all__ = [
    "HEALTH_CHECKS",
    "NODE_PACKAGES",
    "PREREQ_PACKAGES",
    "REMEDIATION_HINTS",
    "TOOL_PACKAGES",
    "managed_files",
    "probe_binaries",
    "select_packages",
]
