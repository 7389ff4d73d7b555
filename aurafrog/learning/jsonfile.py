"""
JSON file helpers shared by the local stores and caches.

Reads never raise: a missing, unreadable or corrupt file is treated as
empty state. Writes go through a temp file in the same directory and an
atomic rename, so a concurrent reader sees either the old or the new
file, never a truncated one.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Read JSON from path; missing, unreadable, corrupt or wrong-typed -> default."""
    path = Path(path)
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        logger.debug("Treating %s as empty: %s", path, exc)
        return default
    if not isinstance(data, type(default)):
        return default
    return data


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON via temp file + rename. Raises OSError on failure."""
    write_text_atomic(path, json.dumps(data, indent=2))


def write_text_atomic(path: Path, text: str) -> None:
    """Write text via temp file + rename. Raises OSError on failure."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
