"""
Git client: repository checkouts and global config.

Uses the git CLI through the shared CommandRunner. Checkouts are
idempotent: an existing clone is fast-forwarded, a foreign directory
is left alone.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.adapters.shell.command import CommandRunner
from devbox.core.errors import SubprocessFailure
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitClient:
    """Small wrapper over the git CLI."""

    def __init__(self, runner: CommandRunner | None = None, timeout: float = 900):
        self.runner = runner or CommandRunner()
        self.timeout = timeout

    def ensure_checkout(
        self,
        url: str,
        dest: Path,
        *,
        name: str = "checkout",
        required: bool = False,
    ) -> Receipt:
        """Clone ``url`` into ``dest``, or fast-forward an existing clone.

        - ``dest/.git`` exists → ``git pull --ff-only`` (failure is a warning)
        - ``dest`` exists but is not a repository → skipped with a warning
        - otherwise → ``git clone``
        """
        target = f"{name} ({dest})"

        if (dest / ".git").is_dir():
            logger.info("%s already cloned at %s, pulling latest", name, dest)
            receipt = self.runner.run(
                ["git", "-C", str(dest), "pull", "--ff-only"],
                step="checkout",
                target=target,
                required=False,
                timeout=self.timeout,
            )
            if receipt.failed:
                receipt.warnings.append(
                    f"Could not fast-forward {dest}; resolve manually"
                )
            receipt.metadata["action"] = "pull"
            return receipt

        if dest.exists():
            warning = f"{dest} exists but is not a git repository; move it away to clone {name}"
            logger.warning(warning)
            return Receipt.skip(
                step="checkout",
                target=target,
                reason="exists, not a repository",
                required=required,
                warnings=[warning],
            )

        if not self.runner.dry_run:
            dest.parent.mkdir(parents=True, exist_ok=True)

        try:
            receipt = self.runner.check(
                ["git", "clone", url, str(dest)],
                step="checkout",
                target=target,
                required=required,
                timeout=self.timeout,
            )
        except SubprocessFailure as e:
            logger.warning("Clone of %s failed: %s", url, e.error)
            return Receipt.failure(
                step="checkout",
                target=target,
                error=e.error,
                required=required,
                metadata={"action": "clone", "url": url},
            )

        receipt.metadata["action"] = "clone"
        receipt.metadata["url"] = url
        if receipt.ok:
            logger.info("Cloned %s to %s", url, dest)
        return receipt

    def set_global_config(self, key: str, value: str) -> Receipt:
        """``git config --global key value``. Optional step."""
        return self.runner.run(
            ["git", "config", "--global", key, value],
            step="git-config",
            target=key,
            required=False,
        )
