"""
Configuration loader: builds the BootstrapConfig.

Sources, lowest precedence first:
    1. built-in defaults
    2. devbox.yml (``settings:``, ``packages:``, ``files:``, ``skip:``)
    3. environment toggles (INSTALL_NODE=1, OVERWRITE_TMUX_CONF=0, ...)

The environment is read here and only here.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devbox.core.errors import ConfigError
from devbox.core.models.config import BootstrapConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "devbox.yml"

# env var → BootstrapConfig field
BOOL_TOGGLES: dict[str, str] = {
    "INSTALL_NODE": "install_node",
    "INSTALL_HOMEBREW": "install_homebrew",
    "INSTALL_ZINIT": "install_zinit",
    "OVERWRITE_TMUX_CONF": "overwrite_tmux_conf",
    "REFRESH_STALE_BLOCKS": "refresh_stale_blocks",
    "SET_GIT_EDITOR": "set_git_editor",
    "SET_DEFAULT_SHELL": "set_default_shell",
    "INSTALL_FZF_BINDINGS": "install_fzf_bindings",
    "DEVBOX_UPDATE_INDEX": "update_index",
    "DEVBOX_DRY_RUN": "dry_run",
}

STR_TOGGLES: dict[str, str] = {
    "NVIM_CONFIG_REPO": "nvim_config_repo",
    "NVIM_CONFIG_DIR": "nvim_config_dir",
    "SHELL": "login_shell",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_flag(name: str, raw: str) -> bool:
    """Parse a "1"/"0" style toggle.

    Raises:
        ConfigError: The value is not a recognised boolean.
    """
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be 1 or 0, got {raw!r}")


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for devbox.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to devbox.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def default_paths(environ: Mapping[str, str]) -> dict[str, Path]:
    """Home, XDG config and XDG state locations."""
    home = Path(environ.get("DEVBOX_HOME") or environ.get("HOME") or Path.home())
    config_home = Path(environ.get("XDG_CONFIG_HOME") or home / ".config")
    state_home = Path(environ.get("XDG_STATE_HOME") or home / ".local" / "state")
    state_dir = Path(environ.get("DEVBOX_STATE_DIR") or state_home / "devbox")
    return {"home": home, "config_home": config_home, "state_dir": state_dir}


def read_config_file(path: Path) -> dict[str, Any]:
    """Read devbox.yml into plain BootstrapConfig fields.

    Raises:
        ConfigError: Missing, unreadable or malformed file.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading bootstrap config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    unknown = set(data) - {"settings", "packages", "files", "skip"}
    if unknown:
        raise ConfigError(f"Unknown top-level keys in {path}: {', '.join(sorted(unknown))}")

    fields: dict[str, Any] = {}

    settings = data.get("settings") or {}
    if not isinstance(settings, dict):
        raise ConfigError(f"'settings' must be a mapping in {path}")
    fields.update(settings)

    if "packages" in data:
        fields["packages"] = data["packages"] or []
    if "files" in data:
        fields["files"] = data["files"] or []

    skip = data.get("skip") or {}
    if not isinstance(skip, dict):
        raise ConfigError(f"'skip' must be a mapping with 'packages'/'files' lists in {path}")
    if "packages" in skip:
        fields["skip_packages"] = skip["packages"] or []
    if "files" in skip:
        fields["skip_files"] = skip["files"] or []

    fields["source"] = str(path)
    return fields


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> BootstrapConfig:
    """Build the BootstrapConfig for this run.

    Args:
        path: Explicit devbox.yml. If None, DEVBOX_CONFIG or an upward
            search from the cwd is used; no file is fine.
        environ: Environment mapping (default: os.environ).
        **overrides: Final field overrides (CLI flags).

    Raises:
        ConfigError: Invalid file, toggle or field value.
    """
    env = os.environ if environ is None else environ

    fields: dict[str, Any] = dict(default_paths(env))

    if path is None and env.get("DEVBOX_CONFIG"):
        path = Path(env["DEVBOX_CONFIG"])
    if path is None:
        path = find_config_file()
    if path is not None:
        fields.update(read_config_file(path))

    for var, field in BOOL_TOGGLES.items():
        if var in env:
            fields[field] = parse_flag(var, env[var])

    for var, field in STR_TOGGLES.items():
        if env.get(var):
            fields[field] = env[var]

    if env.get("DEVBOX_TIMEOUT"):
        try:
            fields["command_timeout"] = int(env["DEVBOX_TIMEOUT"])
        except ValueError as e:
            raise ConfigError(f"DEVBOX_TIMEOUT must be an integer, got {env['DEVBOX_TIMEOUT']!r}") from e

    fields.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = BootstrapConfig.model_validate(fields)
    except ValidationError as e:
        raise ConfigError(f"Invalid bootstrap configuration: {e}") from e

    if config.command_timeout <= 0:
        raise ConfigError("command_timeout must be positive")

    logger.debug(
        "Config: home=%s, %d extra package(s), %d extra file(s)",
        config.home,
        len(config.packages),
        len(config.files),
    )
    return config
