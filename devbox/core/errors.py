"""
Error taxonomy for the bootstrapper.

Only the fatal kinds ever reach the CLI. Everything else is caught at
the step boundary and turned into a Receipt with a visible warning,
so one broken step never stops the rest of the run.
"""

from __future__ import annotations


class DevboxError(Exception):
    """Base class for all bootstrapper errors."""


class FatalEnvironmentError(DevboxError):
    """The host cannot be bootstrapped at all (unknown OS, no package manager).

    Raised before any mutation happens.
    """


class ConfigError(DevboxError):
    """Raised when bootstrap configuration is invalid or unreadable."""


class PackageUnsupported(DevboxError):
    """A logical package has no name on the selected package manager."""

    def __init__(self, logical_name: str, manager: str):
        super().__init__(f"Package '{logical_name}' is not available via {manager}")
        self.logical_name = logical_name
        self.manager = manager


class SubprocessFailure(DevboxError):
    """An external command exited non-zero, timed out, or could not start."""

    def __init__(self, command: list[str], error: str, return_code: int | None = None):
        super().__init__(f"{' '.join(command)}: {error}")
        self.command = command
        self.error = error
        self.return_code = return_code


class PermissionDenied(DevboxError):
    """A managed file could not be read or written."""

    def __init__(self, path: str, reason: str = ""):
        message = f"Permission denied: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path
