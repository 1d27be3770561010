"""
Environment prober: what does this host look like?

No side effects: only reads ``platform``, ``/proc/version`` and PATH.
Produces an immutable HostFacts snapshot once at startup.
"""

from __future__ import annotations

import logging
import platform
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from devbox.adapters.managers.homebrew import BREW_PREFIX_BINARIES
from devbox.core.errors import FatalEnvironmentError
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily

logger = logging.getLogger(__name__)

PROC_VERSION = Path("/proc/version")
OS_RELEASE = Path("/etc/os-release")

_OS_FAMILIES = {
    "Darwin": OsFamily.MACOS,
    "Linux": OsFamily.LINUX,
}

# Binaries whose presence means the manager is installed
MANAGER_BINARIES: dict[ManagerId, tuple[str, ...]] = {
    ManagerId.BREW: ("brew", *BREW_PREFIX_BINARIES),
    ManagerId.PACMAN: ("pacman",),
    ManagerId.APT: ("apt-get",),
}

Which = Callable[[str], str | None]


def detect_os_family(system: str) -> OsFamily:
    """Map ``platform.system()`` to an OsFamily.

    Raises:
        FatalEnvironmentError: Neither macOS nor Linux.
    """
    family = _OS_FAMILIES.get(system)
    if family is None:
        raise FatalEnvironmentError(f"Unsupported OS: {system or 'unknown'}")
    return family


def detect_wsl(proc_version: Path = PROC_VERSION) -> bool:
    """WSL kernels mention Microsoft or WSL in /proc/version."""
    try:
        text = proc_version.read_text(encoding="utf-8", errors="replace").lower()
    except OSError:
        return False
    return "microsoft" in text or "wsl" in text


def detect_distro(os_release: Path = OS_RELEASE) -> str | None:
    """PRETTY_NAME from /etc/os-release, if any."""
    try:
        with open(os_release, encoding="utf-8") as f:
            for line in f:
                if line.startswith("PRETTY_NAME="):
                    return line.split("=", 1)[1].strip().strip('"')
    except OSError:
        return None
    return None


def _present(binary: str, which: Which) -> bool:
    # shutil.which accepts absolute paths and checks they are executable
    return which(binary) is not None


def probe(
    binaries: Iterable[str] = (),
    *,
    system: str | None = None,
    which: Which = shutil.which,
    proc_version: Path = PROC_VERSION,
    os_release: Path = OS_RELEASE,
) -> HostFacts:
    """Inspect the host.

    Args:
        binaries: Command names to look up on PATH.
        system: Override for ``platform.system()``.
        which: PATH lookup function.
        proc_version: Kernel version file used for WSL detection.
        os_release: Distro description file.

    Returns:
        HostFacts snapshot.

    Raises:
        FatalEnvironmentError: The OS is neither macOS nor Linux.
    """
    system = platform.system() if system is None else system
    family = detect_os_family(system)

    is_wsl = family is OsFamily.LINUX and detect_wsl(proc_version)
    distro = detect_distro(os_release) if family is OsFamily.LINUX else None

    managers = frozenset(
        manager
        for manager, candidates in MANAGER_BINARIES.items()
        if any(_present(c, which) for c in candidates)
    )

    wanted = set(binaries)
    for manager in managers:
        wanted.add(MANAGER_BINARIES[manager][0])
    found = frozenset(b for b in wanted if which(b) is not None)

    facts = HostFacts(
        os_family=family,
        is_wsl=is_wsl,
        available_managers=managers,
        available_binaries=found,
        system=system,
        release=platform.release(),
        machine=platform.machine(),
        distro=distro,
    )
    logger.debug(
        "Probed %s (wsl=%s): managers=%s, %d/%d binaries",
        family.value,
        is_wsl,
        sorted(m.value for m in managers),
        len(found),
        len(wanted),
    )
    return facts
