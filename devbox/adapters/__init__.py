"""Adapters: bindings to package managers, git and the shell.

Public re-exports for convenient access.
"""

from devbox.adapters.base import PackageManager
from devbox.adapters.mock import MockManager
from devbox.adapters.registry import UNSUPPORTED, ManagerRegistry

__all__ = [
    "MockManager",
    "ManagerRegistry",
    "PackageManager",
    "UNSUPPORTED",
]
