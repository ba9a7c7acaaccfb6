"""Tests for fci.pipeline.packaging module."""

from __future__ import annotations

import os
from pathlib import Path
from zipfile import ZipFile

from fci.core.result import Err, Ok
from fci.pipeline.packaging import archive_members, package_all, package_directory


def _members(zip_path: Path) -> dict[str, bytes]:
    with ZipFile(zip_path) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


class TestPackageDirectory:
    def test_paths_are_flattened(self, tmp_path: Path) -> None:
        src = tmp_path / "forestry-v1.2.3-x86_64-unknown-linux-gnu"
        (src / "deep" / "er").mkdir(parents=True)
        (src / "deep" / "er" / "forestry").write_bytes(b"ELF")

        result = package_directory(src, tmp_path / "out")
        assert isinstance(result, Ok)
        assert result.value.name == "forestry-v1.2.3-x86_64-unknown-linux-gnu.zip"
        assert _members(result.value) == {"forestry": b"ELF"}

    def test_members_sorted(self, tmp_path: Path) -> None:
        src = tmp_path / "a"
        src.mkdir()
        for name in ("zeta", "alpha", "mid"):
            (src / name).write_text(name, encoding="utf-8")
        result = package_directory(src, tmp_path / "out")
        assert isinstance(result, Ok)
        with ZipFile(result.value) as zf:
            assert zf.namelist() == ["alpha", "mid", "zeta"]

    def test_repackaging_is_stable(self, tmp_path: Path) -> None:
        src = tmp_path / "a"
        src.mkdir()
        (src / "forestry").write_bytes(b"bin")
        first = package_directory(src, tmp_path / "out1")
        second = package_directory(src, tmp_path / "out2")
        assert isinstance(first, Ok) and isinstance(second, Ok)
        assert _members(first.value) == _members(second.value)

    def test_old_timestamps_are_tolerated(self, tmp_path: Path) -> None:
        src = tmp_path / "a"
        src.mkdir()
        f = src / "forestry"
        f.write_bytes(b"bin")
        os.utime(f, (0, 0))
        assert isinstance(package_directory(src, tmp_path / "out"), Ok)

    def test_duplicate_basenames_rejected(self, tmp_path: Path) -> None:
        src = tmp_path / "a"
        (src / "x").mkdir(parents=True)
        (src / "y").mkdir()
        (src / "x" / "forestry").write_bytes(b"1")
        (src / "y" / "forestry").write_bytes(b"2")

        result = package_directory(src, tmp_path / "out")
        assert isinstance(result, Err)
        assert "duplicate" in result.error.message
        assert not (tmp_path / "out" / "a.zip").exists()

    def test_empty_directory_rejected(self, tmp_path: Path) -> None:
        src = tmp_path / "a"
        src.mkdir()
        assert isinstance(archive_members(src), Err)


class TestPackageAll:
    def test_one_zip_per_directory(self, tmp_path: Path) -> None:
        root = tmp_path / "download"
        for name in ("b", "a"):
            (root / name).mkdir(parents=True)
            (root / name / "forestry").write_bytes(name.encode())

        result = package_all(root, tmp_path / "out")
        assert isinstance(result, Ok)
        assert [p.name for p in result.value] == ["a.zip", "b.zip"]

    def test_missing_root(self, tmp_path: Path) -> None:
        assert isinstance(package_all(tmp_path / "missing", tmp_path / "out"), Err)
