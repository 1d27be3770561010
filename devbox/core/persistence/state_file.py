"""
Run record persistence: atomic read/write of the last run summary.

Stored as JSON in ``<state_dir>/last_run.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from devbox.core.models.state import RunRecord
from devbox.core.persistence.atomic import atomic_write_text

logger = logging.getLogger(__name__)


def load_run_record(path: Path) -> RunRecord | None:
    """Load the last run record.

    Returns:
        The record, or None if the file is missing or unreadable.
    """
    if not path.is_file():
        logger.debug("No run record at %s", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RunRecord.model_validate(data)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt run record %s: %s", path, e)
        return None
    except Exception as e:
        logger.warning("Cannot load run record from %s: %s", path, e)
        return None


def save_run_record(record: RunRecord, path: Path) -> None:
    """Save a run record (atomic write)."""
    record.touch()
    content = json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
    try:
        atomic_write_text(path, content)
        logger.debug("Run record saved to %s", path)
    except OSError as e:
        logger.error("Failed to save run record to %s: %s", path, e)
        raise
