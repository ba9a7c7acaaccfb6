"""Best-effort dependency cache.

Entries are copies of a cell's Cargo target directory, keyed by runner OS,
toolchain, target and a digest of the lockfile. A hit only saves build
time: Cargo's own fingerprints decide what is rebuilt, so a miss or a
failed restore never changes build output. Every failure here is a
warning, never a cell failure.
"""

from __future__ import annotations

import hashlib
import re
import shutil
from pathlib import Path

from fci.output.console import ConsoleProtocol
from fci.platform.files import copy_tree_atomic

_KEY_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def lockfile_digest(lockfile: Path) -> str:
    try:
        data = lockfile.read_bytes()
    except OSError:
        return "nolock"
    return hashlib.sha256(data).hexdigest()[:16]


class DependencyCache:
    def __init__(self, *, root: Path, console: ConsoleProtocol) -> None:
        self._root = root
        self._console = console

    def key(self, *, os: str, toolchain: str, target: str | None, lockfile: Path) -> str:
        parts = [os, toolchain, target or "host", lockfile_digest(lockfile)]
        return _KEY_UNSAFE_RE.sub("_", "-".join(parts))

    def entry(self, key: str) -> Path:
        return self._root / key

    def restore(self, key: str, dest: Path) -> bool:
        """Copy a cached entry into ``dest``. Returns True on a hit."""
        src = self.entry(key)
        if not src.is_dir():
            return False
        try:
            shutil.copytree(src, dest, dirs_exist_ok=True)
        except OSError as e:
            self._console.warning(f"cache restore failed for {key}: {e}")
            return False
        return True

    def save(self, key: str, src: Path) -> bool:
        """Store ``src`` under ``key`` unless an entry already exists."""
        if not src.is_dir() or self.entry(key).exists():
            return False
        try:
            copy_tree_atomic(src, self.entry(key))
        except FileExistsError:
            # a sibling cell with the same key saved first
            return False
        except OSError as e:
            self._console.warning(f"cache save failed for {key}: {e}")
            return False
        return True
