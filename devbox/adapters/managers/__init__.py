"""Concrete package managers."""

from devbox.adapters.managers.apt import AptManager
from devbox.adapters.managers.homebrew import HomebrewManager
from devbox.adapters.managers.pacman import PacmanManager

__all__ = ["AptManager", "HomebrewManager", "PacmanManager"]
