"""Tests for fci.pipeline.artifacts module."""

from __future__ import annotations

from pathlib import Path

from fci.core.result import Err, Ok
from fci.pipeline.artifacts import ArtifactStore


def _bin_dir(root: Path, *names: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for name in names:
        (root / name).write_text(f"binary {name}", encoding="utf-8")
    return root


class TestUpload:
    def test_upload_and_list(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        src = _bin_dir(tmp_path / "dist" / "bin", "forestry")

        result = store.upload("run1", "forestry-v1.0.0-x86_64-unknown-linux-gnu", src)
        assert isinstance(result, Ok)
        assert result.value.files == ("forestry",)

        listed = store.list_artifacts("run1")
        assert [a.name for a in listed] == ["forestry-v1.0.0-x86_64-unknown-linux-gnu"]

    def test_empty_source_rejected(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        (tmp_path / "empty").mkdir()
        result = store.upload("run1", "a", tmp_path / "empty")
        assert isinstance(result, Err)
        assert "nothing to upload" in result.error.message

    def test_missing_source_rejected(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        assert isinstance(store.upload("run1", "a", tmp_path / "missing"), Err)

    def test_artifacts_are_immutable(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        src = _bin_dir(tmp_path / "bin", "forestry")
        assert isinstance(store.upload("run1", "a", src), Ok)

        again = store.upload("run1", "a", src)
        assert isinstance(again, Err)
        assert "already exists" in again.error.message

    def test_runs_are_isolated(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        src = _bin_dir(tmp_path / "bin", "forestry")
        assert isinstance(store.upload("run1", "a", src), Ok)
        assert isinstance(store.upload("run2", "a", src), Ok)
        assert store.list_artifacts("run3") == []


class TestDownloadAll:
    def test_one_directory_per_artifact(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        store.upload("run1", "a", _bin_dir(tmp_path / "x", "forestry"))
        store.upload("run1", "b", _bin_dir(tmp_path / "y", "forestry.exe"))

        dest = tmp_path / "download"
        result = store.download_all("run1", dest)
        assert isinstance(result, Ok)
        assert sorted(p.name for p in dest.iterdir()) == ["a", "b"]
        assert (dest / "b" / "forestry.exe").is_file()

    def test_no_artifacts(self, tmp_path: Path) -> None:
        result = ArtifactStore(tmp_path / "store").download_all("run1", tmp_path / "download")
        assert result == Ok([])
