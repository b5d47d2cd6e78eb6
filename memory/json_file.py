"""Atomic JSON file helpers shared by the disk-backed stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


def read_json(path: Path) -> Optional[Any]:
    """Return the decoded contents of *path*, or ``None`` if it does not exist.

    Raises:
        OSError: If the file exists but cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write *payload* to *path* so the file is never partially written.

    Writes to a temporary file in the same directory, then renames it over
    the target (``os.replace`` is atomic on POSIX and Windows).

    Raises:
        OSError: If the directory or file cannot be written.
        TypeError: If *payload* is not JSON-serializable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            suffix=".tmp",
            delete=False,
        ) as tf:
            temp_path = tf.name
            json.dump(payload, tf, ensure_ascii=False, indent=2)
        os.replace(temp_path, path)
    except (OSError, TypeError, ValueError):
        if temp_path is not None and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError as unlink_err:
                logger.error("json_file.temp_cleanup_failed", path=temp_path, error=str(unlink_err))
        raise
