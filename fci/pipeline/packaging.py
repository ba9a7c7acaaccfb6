"""Release archive creation.

Each artifact directory becomes ``<name>.zip`` whose members sit at the
archive root: directory components are dropped, so consumers unzip
straight to the binaries. Members are written in sorted order, which
makes the member set and contents reproducible for identical input.
"""

from __future__ import annotations

from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from fci.core.result import Err, Ok, Result
from fci.pipeline.errors import PackagingError
from fci.platform.files import iter_files


def archive_members(src_dir: Path) -> Result[list[tuple[Path, str]], PackagingError]:
    """(file, archive name) pairs for a directory, with paths junked."""
    files = iter_files(src_dir)
    if not files:
        return Err(PackagingError(message=f"nothing to package in {src_dir.name}"))

    seen: dict[str, Path] = {}
    for path in files:
        previous = seen.get(path.name)
        if previous is not None:
            return Err(
                PackagingError(
                    message=f"{src_dir.name}: duplicate file name '{path.name}'",
                    hint=f"{previous.relative_to(src_dir)} and {path.relative_to(src_dir)}",
                )
            )
        seen[path.name] = path
    return Ok(sorted(((p, name) for name, p in seen.items()), key=lambda item: item[1]))


def package_directory(src_dir: Path, out_dir: Path) -> Result[Path, PackagingError]:
    members = archive_members(src_dir)
    if isinstance(members, Err):
        return members

    zip_path = out_dir / f"{src_dir.name}.zip"
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        # Toolchains sometimes ship files with mtime=0; ZIP cannot represent
        # dates before 1980, so clamp instead of failing.
        with ZipFile(zip_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
            for path, arcname in members.value:
                zf.write(path, arcname=arcname)
    except OSError as e:
        zip_path.unlink(missing_ok=True)
        return Err(PackagingError(message=f"failed to write {zip_path.name}: {e}"))

    return Ok(zip_path)


def package_all(root: Path, out_dir: Path) -> Result[list[Path], PackagingError]:
    """Package every immediate subdirectory of ``root``."""
    if not root.is_dir():
        return Err(PackagingError(message=f"not a directory: {root}"))

    created: list[Path] = []
    for src in sorted(p for p in root.iterdir() if p.is_dir()):
        result = package_directory(src, out_dir)
        if isinstance(result, Err):
            return result
        created.append(result.value)
    return Ok(created)
