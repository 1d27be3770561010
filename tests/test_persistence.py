"""
Tests for persistence: atomic writes, run record and audit ledger.
"""

import json
import os
import shutil
import stat
from pathlib import Path

import pytest

from devbox.core.models.state import RunRecord, StepRecord
from devbox.core.persistence.atomic import DEFAULT_FILE_MODE, atomic_copy, atomic_write_bytes, atomic_write_text
from devbox.core.persistence.audit import AuditEntry, AuditWriter
from devbox.core.persistence.state_file import load_run_record, save_run_record


class TestAtomicWrite:
    def test_creates_file_and_parents(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "file"
        atomic_write_text(path, "hello")
        assert path.read_text() == "hello"
        assert stat.S_IMODE(path.stat().st_mode) == DEFAULT_FILE_MODE

    def test_keeps_existing_mode(self, tmp_path: Path):
        path = tmp_path / "file"
        path.write_text("old")
        os.chmod(path, 0o600)
        atomic_write_bytes(path, b"new")
        assert path.read_bytes() == b"new"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_explicit_mode(self, tmp_path: Path):
        path = tmp_path / "file"
        atomic_write_bytes(path, b"x", mode=0o640)
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_no_temp_files_left(self, tmp_path: Path):
        atomic_write_text(tmp_path / "file", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["file"]

    def test_failed_write_leaves_original(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = tmp_path / "file"
        path.write_text("original")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError):
            atomic_write_text(path, "new")

        assert path.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file"]


class TestAtomicCopy:
    def test_copies_bytes_and_mode(self, tmp_path: Path):
        src = tmp_path / "src"
        src.write_bytes(b"\x00payload")
        os.chmod(src, 0o600)
        dst = tmp_path / "backups" / "src.bak"

        atomic_copy(src, dst)

        assert dst.read_bytes() == b"\x00payload"
        assert stat.S_IMODE(dst.stat().st_mode) == 0o600

    def test_failed_copy_leaves_nothing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        src = tmp_path / "src"
        src.write_bytes(b"ORIGINAL")

        def partial(s, d, **kwargs):
            Path(d).write_bytes(b"ORIG")
            raise KeyboardInterrupt

        monkeypatch.setattr(shutil, "copy2", partial)
        with pytest.raises(KeyboardInterrupt):
            atomic_copy(src, tmp_path / "src.bak")

        assert [p.name for p in tmp_path.iterdir()] == ["src"]


class TestRunRecord:
    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "state" / "last_run.json"
        record = RunRecord(
            operation_id="op-1",
            command="run",
            status="partial",
            exit_code=1,
            manager="apt",
            steps=[StepRecord(step="install", target="git", status="failed", error="boom")],
        )
        save_run_record(record, path)

        loaded = load_run_record(path)
        assert loaded is not None
        assert loaded.operation_id == "op-1"
        assert loaded.steps[0].error == "boom"

    def test_load_missing(self, tmp_path: Path):
        assert load_run_record(tmp_path / "nope.json") is None

    def test_load_corrupt(self, tmp_path: Path):
        path = tmp_path / "last_run.json"
        path.write_text("not json {{{")
        assert load_run_record(path) is None

    def test_saved_json_is_readable(self, tmp_path: Path):
        path = tmp_path / "last_run.json"
        save_run_record(RunRecord(status="ok"), path)
        data = json.loads(path.read_text())
        assert data["schema_version"] == 1
        assert data["status"] == "ok"


class TestAuditWriter:
    def test_append_and_read(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        writer.write(AuditEntry(operation_id="op-1", command="run", status="ok"))
        writer.write(AuditEntry(operation_id="op-2", command="reconcile", status="failed"))

        entries = writer.read_all()
        assert [e.operation_id for e in entries] == ["op-1", "op-2"]
        assert len((tmp_path / "audit.ndjson").read_text().splitlines()) == 2

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(operation_id=f"op-{i}"))
        assert [e.operation_id for e in writer.read_recent(2)] == ["op-3", "op-4"]
        assert writer.read_recent(0) == []

    def test_skips_malformed_lines(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        path.write_text('{"operation_id": "op-1"}\ngarbage\n\n{"operation_id": "op-2"}\n')
        assert [e.operation_id for e in AuditWriter(path).read_all()] == ["op-1", "op-2"]

    def test_missing_file(self, tmp_path: Path):
        assert AuditWriter(tmp_path / "none.ndjson").read_all() == []
