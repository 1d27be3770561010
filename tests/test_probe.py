"""
Tests for the environment prober.
"""

from pathlib import Path

import pytest

from devbox.core.errors import FatalEnvironmentError
from devbox.core.models.facts import ManagerId, OsFamily
from devbox.core.services.probe import detect_distro, detect_os_family, detect_wsl, probe


def fake_which(*present: str):
    found = set(present)
    return lambda name: f"/usr/bin/{name}" if name in found else None


@pytest.fixture
def proc_files(tmp_path: Path) -> tuple[Path, Path]:
    proc = tmp_path / "version"
    proc.write_text("Linux version 6.1.0-13-amd64 (gcc-12) #1 SMP Debian\n")
    release = tmp_path / "os-release"
    release.write_text('NAME="Debian GNU/Linux"\nPRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\n')
    return proc, release


class TestOsFamily:
    def test_known(self):
        assert detect_os_family("Darwin") is OsFamily.MACOS
        assert detect_os_family("Linux") is OsFamily.LINUX

    def test_unknown_is_fatal(self):
        with pytest.raises(FatalEnvironmentError, match="Unsupported OS: Windows"):
            detect_os_family("Windows")

    def test_probe_fails_on_unknown_os(self):
        with pytest.raises(FatalEnvironmentError):
            probe(system="FreeBSD", which=fake_which())


class TestWsl:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Linux version 5.15.90.1-microsoft-standard-WSL2", True),
            ("Linux version 4.4.0-19041-Microsoft", True),
            ("Linux version 6.1.0-13-amd64", False),
        ],
    )
    def test_detect(self, tmp_path: Path, text: str, expected: bool):
        proc = tmp_path / "version"
        proc.write_text(text)
        assert detect_wsl(proc) is expected

    def test_missing_file(self, tmp_path: Path):
        assert detect_wsl(tmp_path / "nope") is False


class TestDistro:
    def test_pretty_name(self, proc_files):
        _, release = proc_files
        assert detect_distro(release) == "Debian GNU/Linux 12 (bookworm)"

    def test_missing(self, tmp_path: Path):
        assert detect_distro(tmp_path / "nope") is None


class TestProbe:
    def test_linux_apt_host(self, proc_files):
        proc, release = proc_files
        facts = probe(
            ["git", "nvim", "rg"],
            system="Linux",
            which=fake_which("apt-get", "git", "rg"),
            proc_version=proc,
            os_release=release,
        )
        assert facts.os_family is OsFamily.LINUX
        assert not facts.is_wsl
        assert facts.available_managers == frozenset({ManagerId.APT})
        assert facts.has("git") and facts.has("rg")
        assert not facts.has("nvim")
        assert facts.has("apt-get")
        assert facts.distro == "Debian GNU/Linux 12 (bookworm)"

    def test_brew_found_in_prefix(self, proc_files):
        proc, release = proc_files
        facts = probe(
            system="Darwin",
            which=fake_which("/opt/homebrew/bin/brew"),
            proc_version=proc,
            os_release=release,
        )
        assert facts.os_family is OsFamily.MACOS
        assert facts.has_manager(ManagerId.BREW)
        assert facts.distro is None

    def test_wsl_only_on_linux(self, tmp_path: Path):
        proc = tmp_path / "version"
        proc.write_text("microsoft-standard-WSL2")
        facts = probe(system="Darwin", which=fake_which(), proc_version=proc)
        assert not facts.is_wsl

    def test_no_managers(self, proc_files):
        proc, release = proc_files
        facts = probe(system="Linux", which=fake_which(), proc_version=proc, os_release=release)
        assert facts.available_managers == frozenset()

    def test_repeatable(self, proc_files):
        proc, release = proc_files
        kwargs = dict(system="Linux", which=fake_which("pacman", "git"), proc_version=proc, os_release=release)
        assert probe(["git", "tmux"], **kwargs) == probe(["tmux", "git"], **kwargs)
