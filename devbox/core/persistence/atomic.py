"""
Atomic file writes.

Write to a temp file in the target's directory, then rename over the
target. A crash or Ctrl-C leaves either the old file or the new one,
never a half-written file.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

DEFAULT_FILE_MODE = 0o644


def atomic_write_bytes(path: Path, data: bytes, mode: int | None = None) -> None:
    """Atomically replace ``path`` with ``data``.

    Args:
        path: Target file. Parent directories are created.
        data: Full new content.
        mode: Permission bits for the result. Defaults to the existing
            file's mode, or 0o644 for a new file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if mode is None:
        try:
            mode = path.stat().st_mode & 0o7777
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def atomic_write_text(path: Path, text: str, mode: int | None = None) -> None:
    atomic_write_bytes(path, text.encode("utf-8"), mode=mode)


def atomic_copy(src: Path, dst: Path) -> None:
    """Copy ``src`` onto ``dst`` (bytes and permission bits) atomically.

    ``dst`` either does not change or ends up a complete copy.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}.", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copy2(src, tmp)
        os.replace(tmp, dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
