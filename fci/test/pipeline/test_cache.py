"""Tests for fci.pipeline.cache module."""

from __future__ import annotations

from pathlib import Path

from fci.output.console import MockConsole
from fci.pipeline.cache import DependencyCache, lockfile_digest


def _cache(tmp_path: Path) -> DependencyCache:
    return DependencyCache(root=tmp_path / "cache", console=MockConsole())


class TestKey:
    def test_key_changes_with_lockfile(self, tmp_path: Path) -> None:
        lock = tmp_path / "Cargo.lock"
        lock.write_text("version = 3\n", encoding="utf-8")
        cache = _cache(tmp_path)
        first = cache.key(os="ubuntu", toolchain="stable", target=None, lockfile=lock)
        lock.write_text("version = 3\n# bumped\n", encoding="utf-8")
        second = cache.key(os="ubuntu", toolchain="stable", target=None, lockfile=lock)
        assert first != second
        assert first.startswith("ubuntu-stable-host-")

    def test_missing_lockfile(self, tmp_path: Path) -> None:
        assert lockfile_digest(tmp_path / "Cargo.lock") == "nolock"


class TestRestoreSave:
    def test_miss_then_hit(self, tmp_path: Path) -> None:
        cache = _cache(tmp_path)
        target = tmp_path / "cell" / "target"
        assert cache.restore("k", target) is False

        target.mkdir(parents=True)
        (target / "dep.rlib").write_text("x", encoding="utf-8")
        assert cache.save("k", target) is True

        other = tmp_path / "other" / "target"
        assert cache.restore("k", other) is True
        assert (other / "dep.rlib").read_text(encoding="utf-8") == "x"

    def test_existing_entry_is_not_overwritten(self, tmp_path: Path) -> None:
        cache = _cache(tmp_path)
        src = tmp_path / "target"
        src.mkdir()
        (src / "a").write_text("1", encoding="utf-8")
        assert cache.save("k", src) is True
        (src / "a").write_text("2", encoding="utf-8")
        assert cache.save("k", src) is False
        assert (cache.entry("k") / "a").read_text(encoding="utf-8") == "1"

    def test_save_without_source(self, tmp_path: Path) -> None:
        assert _cache(tmp_path).save("k", tmp_path / "missing") is False
