from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_text_atomic(path: Path, text: str) -> None:
    ensure_directory(path.parent)
    temp_path = path.parent / f".{path.name}.tmp"
    temp_path.write_text(text, encoding="utf-8")
    os.replace(temp_path, path)


def remove_file_quietly(path: Path | None) -> bool:
    if path is None:
        return False
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", path, exc)
        return False
    return True
