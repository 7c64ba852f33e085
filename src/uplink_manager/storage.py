"""Filesystem helpers for owner-only configuration files."""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

PRIVATE_FILE_MODE = 0o600


def write_private_file(path: Path, data: bytes) -> None:
    """Atomically replace ``path`` with ``data`` using mode 0600.

    The content is written to a sibling ``.tmp`` file first so a failed
    write never leaves a truncated file in place.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, PRIVATE_FILE_MODE)
        os.replace(tmp_path, path)
    except OSError:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def remove_file(path: Path) -> bool:
    """Remove ``path`` if present and report whether anything was deleted."""

    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


__all__ = ["PRIVATE_FILE_MODE", "remove_file", "write_private_file"]
