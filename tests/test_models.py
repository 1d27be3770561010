"""
Tests for domain models: receipts, packages, managed files, facts.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devbox.core.models import (
    HostFacts,
    ManagedFile,
    ManagerId,
    OsFamily,
    PackageSpec,
    Receipt,
    RunRecord,
    ToolCheck,
    WriteMode,
    block_markers,
)


class TestReceipt:
    def test_success(self):
        r = Receipt.success(step="install", target="git", output="done")
        assert r.ok
        assert not r.failed
        assert r.output == "done"

    def test_failure_is_blocking_when_required(self):
        r = Receipt.failure(step="install", target="git", error="boom")
        assert r.failed
        assert r.blocking

    def test_optional_failure_is_not_blocking(self):
        r = Receipt.failure(step="checkout", error="boom", required=False)
        assert r.failed
        assert not r.blocking

    def test_skip_carries_reason(self):
        r = Receipt.skip(step="file", target="tmux-conf", reason="already current")
        assert r.skipped
        assert r.output == "already current"

    def test_label(self):
        assert Receipt.success(step="install", target="git").label == "install:git"
        assert Receipt.success(step="update").label == "update"

    def test_serialization(self):
        r = Receipt.success(step="install", target="git", metadata={"manager": "apt"})
        data = r.model_dump(mode="json")
        assert data["status"] == "ok"
        assert data["metadata"]["manager"] == "apt"


class TestPackageSpec:
    def test_name_for(self):
        spec = PackageSpec(logical_name="fd", per_manager_names={ManagerId.APT: "fd-find"})
        assert spec.name_for(ManagerId.APT) == "fd-find"
        assert spec.name_for(ManagerId.BREW) is None

    def test_short_aliases(self):
        spec = PackageSpec.model_validate({"name": "htop", "managers": {"apt": "htop"}})
        assert spec.logical_name == "htop"
        assert spec.per_manager_names == {ManagerId.APT: "htop"}

    def test_command_defaults_to_logical_name(self):
        assert PackageSpec(logical_name="git").command == "git"
        assert PackageSpec(logical_name="ripgrep", binary="rg").command == "rg"

    def test_unknown_manager_rejected(self):
        with pytest.raises(ValidationError):
            PackageSpec.model_validate({"name": "x", "managers": {"yum": "x"}})


class TestManagedFile:
    def test_default_markers(self):
        mf = ManagedFile(name="git-aliases", path="~/.zshrc", desired_block="alias g=git\n")
        assert (mf.marker_begin, mf.marker_end) == block_markers("git-aliases")
        assert mf.mode is WriteMode.APPEND_MARKED_BLOCK
        assert not mf.required

    def test_content_alias(self):
        mf = ManagedFile.model_validate({"name": "x", "path": "~/.x", "content": "y"})
        assert mf.desired_block == "y"

    def test_identical_markers_rejected(self):
        with pytest.raises(ValidationError):
            ManagedFile(name="x", path="~/.x", desired_block="y", marker_begin="# m", marker_end="# m")

    def test_multiline_marker_rejected(self):
        with pytest.raises(ValidationError):
            ManagedFile(name="x", path="~/.x", desired_block="y", marker_begin="# a\n# b", marker_end="# c")

    def test_body_containing_marker_rejected(self):
        begin, _ = block_markers("x")
        with pytest.raises(ValidationError):
            ManagedFile(name="x", path="~/.x", desired_block=f"{begin}\n")

    def test_full_overwrite_has_no_markers(self):
        mf = ManagedFile(name="t", path="~/.t", desired_block="z", mode=WriteMode.FULL_OVERWRITE)
        assert mf.marker_begin == ""

    def test_target_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DEVBOX_TEST_DIR", str(tmp_path / "x"))
        mf = ManagedFile(name="a", path="~/.zshrc", desired_block="y")
        assert mf.target(tmp_path) == tmp_path / ".zshrc"
        mf = ManagedFile(name="b", path="$DEVBOX_TEST_DIR/file", desired_block="y")
        assert mf.target(tmp_path) == tmp_path / "x" / "file"

    def test_render_block_normalises_trailing_newlines(self):
        mf = ManagedFile(name="n", path="~/.n", desired_block="line\n\n\n")
        begin, end = block_markers("n")
        assert mf.render_block() == f"{begin}\nline\n{end}\n"

    def test_backup_path(self, tmp_path: Path):
        assert ManagedFile.backup_path(tmp_path / ".tmux.conf") == tmp_path / ".tmux.conf.bak"


class TestHostFacts:
    def test_frozen(self):
        facts = HostFacts(os_family=OsFamily.LINUX)
        with pytest.raises(ValidationError):
            facts.is_wsl = True

    def test_equality_ignores_discovery_order(self):
        a = HostFacts(os_family=OsFamily.LINUX, available_binaries=frozenset(["git", "rg"]))
        b = HostFacts(os_family=OsFamily.LINUX, available_binaries=frozenset(["rg", "git"]))
        assert a == b

    def test_to_dict_is_sorted(self):
        facts = HostFacts(
            os_family=OsFamily.MACOS,
            available_managers=frozenset([ManagerId.BREW]),
            available_binaries=frozenset(["rg", "git"]),
        )
        data = facts.to_dict()
        assert data["os_family"] == "macos"
        assert data["available_managers"] == ["brew"]
        assert data["available_binaries"] == ["git", "rg"]


class TestToolCheck:
    def test_needs_commands_or_path(self):
        with pytest.raises(ValidationError):
            ToolCheck(label="nothing")

    def test_any_of(self):
        check = ToolCheck.any_of("js formatter", ["prettierd", "prettier"], "Formatters")
        assert check.commands == ["prettierd", "prettier"]
        assert check.required


class TestRunRecord:
    def test_defaults(self):
        record = RunRecord()
        assert record.schema_version == 1
        assert record.steps == []

    def test_touch_updates_ended_at(self):
        record = RunRecord(ended_at="2000-01-01T00:00:00+00:00")
        record.touch()
        assert record.ended_at != "2000-01-01T00:00:00+00:00"
