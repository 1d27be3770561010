"""
BootstrapConfig: the explicit configuration struct.

Populated once at startup by ``devbox.core.config.loader`` from
defaults, an optional devbox.yml and environment toggles, then passed
to every component. Nothing downstream reads the environment directly.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from devbox.core.models.managed_file import ManagedFile
from devbox.core.models.package import PackageSpec


class BootstrapConfig(BaseModel):
    """Everything a bootstrap run needs to know up front."""

    model_config = ConfigDict(extra="forbid")

    # ── Locations ────────────────────────────────────────────────
    home: Path
    config_home: Path
    state_dir: Path

    # ── Toggles ─────────────────────────────────────────────────
    install_node: bool = True
    install_homebrew: bool = False
    install_zinit: bool = True
    overwrite_tmux_conf: bool = True
    refresh_stale_blocks: bool = False
    set_git_editor: bool = True
    set_default_shell: bool = True  # chsh to zsh
    install_fzf_bindings: bool = True
    update_index: bool = True       # run the manager's index update before installing

    # ── Editor config checkout ──────────────────────────────────
    nvim_config_repo: str = ""
    nvim_config_dir: Path | None = None

    # ── Host ────────────────────────────────────────────────────
    login_shell: str = ""           # $SHELL at startup

    # ── Execution ───────────────────────────────────────────────
    command_timeout: int = 900      # seconds, package installs and clones
    dry_run: bool = False

    # ── Extensions from devbox.yml ──────────────────────────────
    packages: list[PackageSpec] = Field(default_factory=list)
    files: list[ManagedFile] = Field(default_factory=list)
    skip_packages: list[str] = Field(default_factory=list)
    skip_files: list[str] = Field(default_factory=list)

    source: str | None = None       # path of the devbox.yml that was loaded

    @property
    def effective_nvim_dir(self) -> Path:
        return self.nvim_config_dir or self.config_home / "nvim"

    @property
    def zinit_dir(self) -> Path:
        return self.home / ".local" / "share" / "zinit" / "zinit.git"

    @property
    def run_record_path(self) -> Path:
        return self.state_dir / "last_run.json"

    @property
    def audit_path(self) -> Path:
        return self.state_dir / "audit.ndjson"
