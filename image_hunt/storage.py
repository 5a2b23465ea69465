"""Filesystem helpers for downloaded images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger("image_hunt.storage")


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_stream(path: Path, chunks: Iterable[bytes]) -> Path:
    """Write chunks to ``path``; a partially written file is removed on failure."""
    try:
        with path.open("wb") as handle:
            for chunk in chunks:
                handle.write(chunk)
    except BaseException:
        delete_file(path)
        raise
    return path


def delete_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    logger.debug("Deleted %s", path)
