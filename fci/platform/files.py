"""Filesystem helpers."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "copy_tree_atomic", "iter_files"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def copy_tree_atomic(src: Path, dest: Path) -> None:
    """Copy a directory tree so that ``dest`` appears complete or not at all.

    Raises:
        FileExistsError: If ``dest`` already exists.
        OSError: On copy failure (the partial copy is removed).
    """
    if dest.exists():
        raise FileExistsError(str(dest))
    dest.parent.mkdir(parents=True, exist_ok=True)

    tmp = Path(tempfile.mkdtemp(prefix=f".{dest.name}.", dir=str(dest.parent)))
    try:
        shutil.copytree(src, tmp, dirs_exist_ok=True)
        try:
            os.rename(tmp, dest)
        except OSError:
            # lost a race against another writer of the same dest
            if dest.exists():
                raise FileExistsError(str(dest)) from None
            raise
    finally:
        if tmp.exists():
            shutil.rmtree(tmp, ignore_errors=True)


def iter_files(root: Path) -> list[Path]:
    """All regular files below root, sorted by relative path."""
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file())
