"""
Command runner: the single place subprocesses are spawned.

Every external call (package manager, git, installer script) goes
through here. Each call has an explicit timeout; a non-zero exit, a
timeout or a missing binary becomes a failed Receipt. Only
KeyboardInterrupt escapes, so the engine can stop between steps.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time

from devbox.core.errors import SubprocessFailure
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Output kept on receipts (tail only)
_MAX_OUTPUT = 2000


class CommandRunner:
    """Run commands and capture their outcome as receipts.

    Args:
        timeout: Default timeout in seconds.
        dry_run: If True, commands are logged and reported as skipped.
        env: Base environment (default: the current process environment).
    """

    def __init__(
        self,
        timeout: float = 120,
        dry_run: bool = False,
        env: dict[str, str] | None = None,
    ):
        self.timeout = timeout
        self.dry_run = dry_run
        self._env = env
        self._history: list[list[str]] = []

    @property
    def history(self) -> list[list[str]]:
        """Commands passed to run(), including dry-run ones."""
        return self._history

    def run(
        self,
        cmd: list[str],
        *,
        step: str = "command",
        target: str = "",
        required: bool = True,
        timeout: float | None = None,
        cwd: str | None = None,
        env_overrides: dict[str, str] | None = None,
    ) -> Receipt:
        """Run a command and return a receipt (never raises for failures)."""
        timeout = timeout if timeout is not None else self.timeout
        display = shlex.join(cmd)
        self._history.append(list(cmd))

        if self.dry_run:
            logger.info("[dry-run] %s", display)
            return Receipt.skip(
                step=step,
                target=target,
                reason=f"[dry-run] {display}",
                required=required,
                metadata={"command": cmd, "dry_run": True},
            )

        env = dict(self._env if self._env is not None else os.environ)
        if env_overrides:
            env.update(env_overrides)

        logger.debug("Executing: %s (timeout=%ss)", display, timeout)
        start = time.monotonic()

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Timed out after %ss: %s", timeout, display)
            return Receipt.failure(
                step=step,
                target=target,
                error=f"Command timed out after {timeout}s",
                required=required,
                duration_ms=int((time.monotonic() - start) * 1000),
                metadata={"command": cmd, "timeout": timeout},
            )
        except OSError as e:
            logger.warning("Cannot start %s: %s", cmd[0], e)
            return Receipt.failure(
                step=step,
                target=target,
                error=f"Cannot execute {cmd[0]}: {e}",
                required=required,
                metadata={"command": cmd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = result.stdout[-_MAX_OUTPUT:] if result.stdout else ""
        stderr = result.stderr[-_MAX_OUTPUT:] if result.stderr else ""

        if result.returncode == 0:
            return Receipt.success(
                step=step,
                target=target,
                output=stdout.strip(),
                required=required,
                duration_ms=elapsed_ms,
                metadata={"command": cmd, "return_code": 0},
            )

        return Receipt.failure(
            step=step,
            target=target,
            error=stderr.strip() or f"Command exited with code {result.returncode}",
            required=required,
            duration_ms=elapsed_ms,
            metadata={
                "command": cmd,
                "return_code": result.returncode,
                "stdout": stdout.strip(),
            },
        )

    def check(self, cmd: list[str], **kwargs) -> Receipt:
        """Like run(), but raise SubprocessFailure when the command fails."""
        receipt = self.run(cmd, **kwargs)
        if receipt.failed:
            raise SubprocessFailure(
                cmd,
                receipt.error or "failed",
                receipt.metadata.get("return_code"),
            )
        return receipt
