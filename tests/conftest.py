"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from devbox.core.config.loader import BOOL_TOGGLES, STR_TOGGLES
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A throwaway home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def make_config(home: Path, tmp_state_dir: Path) -> Callable[..., BootstrapConfig]:
    """Factory for configs rooted in the throwaway home."""

    def _make(**kwargs) -> BootstrapConfig:
        fields = {
            "home": home,
            "config_home": home / ".config",
            "state_dir": tmp_state_dir,
            "install_zinit": False,
            "set_default_shell": False,
        }
        fields.update(kwargs)
        return BootstrapConfig(**fields)

    return _make


@pytest.fixture
def make_facts() -> Callable[..., HostFacts]:
    def _make(
        os_family: OsFamily = OsFamily.LINUX,
        managers: tuple[ManagerId, ...] = (ManagerId.APT,),
        binaries: tuple[str, ...] = (),
        is_wsl: bool = False,
    ) -> HostFacts:
        return HostFacts(
            os_family=os_family,
            is_wsl=is_wsl,
            available_managers=frozenset(managers),
            available_binaries=frozenset(binaries),
            system="Darwin" if os_family is OsFamily.MACOS else "Linux",
        )

    return _make


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, home: Path, tmp_state_dir: Path, tmp_path: Path) -> None:
    """Strip devbox toggles from the environment and point HOME at the fixture."""
    for var in [*BOOL_TOGGLES, *STR_TOGGLES, "DEVBOX_CONFIG", "DEVBOX_TIMEOUT", "DEVBOX_HOME",
                "XDG_CONFIG_HOME", "XDG_STATE_HOME", "DEVBOX_LOG_LEVEL", "DEVBOX_LOG_FILE"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("DEVBOX_STATE_DIR", str(tmp_state_dir))
    monkeypatch.chdir(tmp_path)
