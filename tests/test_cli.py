"""
Tests for CLI commands: run, probe, reconcile, health, status and global options.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from devbox.core.errors import FatalEnvironmentError
from devbox.core.models.facts import HostFacts, ManagerId, OsFamily
from devbox.core.models.health import ToolCheck
from devbox.core.services import healthcheck
from devbox.core.use_cases import bootstrap as bootstrap_uc
from devbox.core.use_cases import detect as detect_uc
from devbox.main import cli

APT_HOST = HostFacts(
    os_family=OsFamily.LINUX,
    available_managers=frozenset({ManagerId.APT}),
    available_binaries=frozenset({"apt-get", "git"}),
    system="Linux",
    release="6.1.0",
    machine="x86_64",
    distro="Debian GNU/Linux 12 (bookworm)",
)


@pytest.fixture
def env(clean_env, monkeypatch: pytest.MonkeyPatch) -> None:
    """Hermetic environment: fake host, no git side effects."""
    monkeypatch.setenv("INSTALL_ZINIT", "0")
    monkeypatch.setenv("SET_GIT_EDITOR", "0")
    monkeypatch.setenv("SET_DEFAULT_SHELL", "0")
    monkeypatch.setattr(bootstrap_uc, "probe", lambda binaries: APT_HOST)
    monkeypatch.setattr(detect_uc, "probe", lambda binaries, which=None: APT_HOST)


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "bootstrap a developer workstation" in result.output
        for command in ("run", "probe", "reconcile", "health", "status"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_toggle_exits_2(self, env, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("INSTALL_NODE", "perhaps")
        result = CliRunner().invoke(cli, ["-q", "probe"])
        assert result.exit_code == 2
        assert "INSTALL_NODE" in result.output

    def test_invalid_config_file_exits_2(self, env, tmp_path: Path):
        bad = tmp_path / "bad.yml"
        bad.write_text("bogus: true\n")
        result = CliRunner().invoke(cli, ["-q", "--config", str(bad), "probe"])
        assert result.exit_code == 2


class TestRunCommand:
    def test_no_subcommand_runs_bootstrap(self, env, home: Path):
        result = CliRunner().invoke(cli, ["-q"], env={"DEVBOX_DRY_RUN": "1"})
        assert result.exit_code == 0
        assert "[dry-run] bootstrap" in result.output
        assert list(home.iterdir()) == []

    def test_mock_run_writes_files(self, env, home: Path, tmp_state_dir: Path):
        result = CliRunner().invoke(cli, ["-q", "run", "--mock"])
        assert result.exit_code == 0, result.output
        assert "[mock] bootstrap" in result.output
        assert (home / ".tmux.conf").is_file()
        assert (tmp_state_dir / "last_run.json").is_file()

    def test_dry_run_json(self, env, home: Path):
        result = CliRunner().invoke(cli, ["-q", "run", "--mock", "--dry-run", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["dry_run"] is True
        assert data["manager"] == "apt"
        assert data["status"] == "ok"
        assert list(home.iterdir()) == []

    def test_fatal_exits_2(self, env, monkeypatch: pytest.MonkeyPatch):
        no_manager = APT_HOST.model_copy(update={"available_managers": frozenset()})
        monkeypatch.setattr(bootstrap_uc, "probe", lambda binaries: no_manager)
        result = CliRunner().invoke(cli, ["-q", "run"])
        assert result.exit_code == 2
        assert "No supported package manager" in result.output


class TestProbeCommand:
    def test_text(self, env):
        result = CliRunner().invoke(cli, ["-q", "probe"])
        assert result.exit_code == 0
        assert "Debian GNU/Linux 12" in result.output
        assert "apt" in result.output

    def test_json(self, env):
        result = CliRunner().invoke(cli, ["-q", "probe", "--json"])
        data = json.loads(result.output)
        assert data["os_family"] == "linux"
        assert data["manager"] == "apt"

    def test_unsupported_os(self, env, monkeypatch: pytest.MonkeyPatch):
        def unsupported(binaries, which=None):
            raise FatalEnvironmentError("Unsupported OS: Windows")

        monkeypatch.setattr(detect_uc, "probe", unsupported)
        result = CliRunner().invoke(cli, ["-q", "probe"])
        assert result.exit_code == 2
        assert "Unsupported OS" in result.output


class TestReconcileCommand:
    def test_reconcile_then_noop(self, env, home: Path):
        runner = CliRunner()
        first = runner.invoke(cli, ["-q", "reconcile", "--json"])
        assert first.exit_code == 0
        second = runner.invoke(cli, ["-q", "reconcile", "--json"])
        data = json.loads(second.output)
        assert data["command"] == "reconcile"
        assert all(r["status"] == "skipped" for r in data["receipts"])

    def test_dry_run(self, env, home: Path):
        result = CliRunner().invoke(cli, ["-q", "reconcile", "--dry-run"])
        assert result.exit_code == 0
        assert "[dry-run] reconcile" in result.output
        assert list(home.iterdir()) == []


class TestHealthCommand:
    @pytest.fixture
    def checks(self, monkeypatch: pytest.MonkeyPatch, home: Path):
        (home / "present.txt").write_text("")
        monkeypatch.setattr(
            healthcheck,
            "HEALTH_CHECKS",
            [
                ToolCheck(label="present", path="~/present.txt"),
                ToolCheck.cmd("devbox-missing-tool-xyz", "Core tools", required=False),
            ],
        )

    def test_healthy(self, env, checks):
        result = CliRunner().invoke(cli, ["-q", "health"])
        assert result.exit_code == 0
        assert "Missing required: 0" in result.output
        assert "Missing optional: 1" in result.output

    def test_missing_required_exits_1(self, env, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(healthcheck, "HEALTH_CHECKS", [ToolCheck.cmd("devbox-missing-tool-xyz", "Core tools")])
        result = CliRunner().invoke(cli, ["-q", "health", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["missing_required"] == 1
        assert data["hints"]


class TestStatusCommand:
    def test_no_runs(self, env):
        result = CliRunner().invoke(cli, ["-q", "status"])
        assert result.exit_code == 0
        assert "No runs recorded yet" in result.output

    def test_after_run(self, env):
        runner = CliRunner()
        runner.invoke(cli, ["-q", "run", "--mock"])
        result = runner.invoke(cli, ["-q", "status", "--json"])
        data = json.loads(result.output)
        assert data["last_run"]["status"] == "ok"
        assert data["history"][0]["command"] == "run"
