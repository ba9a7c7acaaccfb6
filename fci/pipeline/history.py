"""Run records: one JSON file per finished workflow run.

``<state>/runs/<run_id>.json``; run ids start with a UTC timestamp, so
sorting file names sorts runs by start time.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from fci.core.result import Err, Ok, Result
from fci.core.structured import as_str_dict, get_float, get_int, get_list, get_str
from fci.output.console import ConsoleProtocol
from fci.pipeline.errors import (
    BuildError,
    CancelledError,
    ConfigurationError,
    DependencyPolicyError,
    LintError,
    PackagingError,
    PipelineError,
    PublishError,
    TestError,
    ToolchainError,
    error_kind,
)
from fci.pipeline.model import (
    EVENT_KINDS,
    CellResult,
    Event,
    JobResult,
    JobStatus,
    MatrixCell,
    Release,
    StepRecord,
    WorkflowRun,
)
from fci.platform.files import atomic_write_text

RUN_SCHEMA = 1


@dataclass(frozen=True, slots=True)
class HistoryError:
    message: str
    hint: str | None = None


def _error_to_dict(error: PipelineError) -> dict[str, object]:
    return {"kind": error_kind(error), "message": error.message, "hint": error.hint}


def _error_from_dict(data: dict[str, object], cell: str | None) -> PipelineError | None:
    kind = get_str(data, "kind")
    message = get_str(data, "message") or ""
    hint = get_str(data, "hint")
    match kind:
        case "configuration":
            return ConfigurationError(message, hint=hint)
        case "toolchain":
            return ToolchainError(message, hint, cell)
        case "build":
            return BuildError(message, hint, cell)
        case "test":
            return TestError(message, hint, cell)
        case "lint":
            return LintError(message, hint, cell)
        case "format":
            return LintError(message, hint, cell, kind="format")
        case "dependency_policy":
            return DependencyPolicyError(message, hint, cell)
        case "packaging":
            return PackagingError(message, hint, cell)
        case "publish":
            return PublishError(message, hint, cell)
        case "cancelled":
            return CancelledError(message, hint, cell)
        case _:
            return None


def run_to_dict(run: WorkflowRun) -> dict[str, object]:
    return {
        "schema": RUN_SCHEMA,
        "id": run.id,
        "event": {
            "kind": run.event.kind,
            "ref": run.event.ref,
            "base_ref": run.event.base_ref,
        },
        "reason": run.reason,
        "ref": run.ref,
        "status": run.status.value,
        "started_at": run.started_at,
        "finished_at": run.finished_at,
        "jobs": [
            {
                "name": job.name,
                "status": job.status.value,
                "cells": [
                    {
                        "coordinates": dict(c.cell.coordinates),
                        "status": c.status.value,
                        "duration_seconds": round(c.duration_seconds, 3),
                        "error": _error_to_dict(c.error) if c.error else None,
                        "steps": [
                            {
                                "name": s.name,
                                "status": s.status.value,
                                "duration_seconds": round(s.duration_seconds, 3),
                            }
                            for s in c.steps
                        ],
                    }
                    for c in job.cells
                ],
            }
            for job in run.jobs
        ],
        "artifacts": list(run.artifacts),
        "release": (
            {
                "tag": run.release.tag,
                "draft": run.release.draft,
                "files": list(run.release.files),
                "url": run.release.url,
            }
            if run.release
            else None
        ),
    }


def _status(value: str | None) -> JobStatus | None:
    try:
        return JobStatus(value)
    except ValueError:
        return None


def _cell_from_dict(job: str, data: dict[str, object]) -> CellResult | None:
    coords_obj = as_str_dict(data.get("coordinates"))
    status = _status(get_str(data, "status"))
    if coords_obj is None or status is None:
        return None
    coords = tuple((k, v) for k, v in coords_obj.items() if isinstance(v, str))
    cell = MatrixCell(job=job, coordinates=coords)

    error_obj = as_str_dict(data.get("error"))
    error = _error_from_dict(error_obj, cell.cell_id) if error_obj else None

    steps: list[StepRecord] = []
    for item in get_list(data, "steps") or []:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        step_status = _status(get_str(d, "status"))
        if name is None or step_status is None:
            continue
        steps.append(StepRecord(name, step_status, get_float(d, "duration_seconds") or 0.0))

    return CellResult(
        cell=cell,
        status=status,
        error=error,
        duration_seconds=get_float(data, "duration_seconds") or 0.0,
        steps=tuple(steps),
    )


def run_from_dict(data: dict[str, object]) -> Result[WorkflowRun, HistoryError]:
    schema = get_int(data, "schema")
    if schema != RUN_SCHEMA:
        return Err(HistoryError(f"unsupported run schema: {schema}"))

    run_id = get_str(data, "id")
    ref = get_str(data, "ref")
    status = _status(get_str(data, "status"))
    event_obj = as_str_dict(data.get("event"))
    if run_id is None or ref is None or status is None or event_obj is None:
        return Err(HistoryError("run record is missing id, ref, status or event"))

    kind = get_str(event_obj, "kind")
    if kind not in EVENT_KINDS:
        return Err(HistoryError(f"invalid event kind: {kind!r}"))
    event = Event(
        kind=kind,
        ref=get_str(event_obj, "ref") or "",
        base_ref=get_str(event_obj, "base_ref"),
    )

    jobs: list[JobResult] = []
    for item in get_list(data, "jobs") or []:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        job_status = _status(get_str(d, "status"))
        if name is None or job_status is None:
            continue
        cells = []
        for cell_obj in get_list(d, "cells") or []:
            cd = as_str_dict(cell_obj)
            cell = _cell_from_dict(name, cd) if cd is not None else None
            if cell is not None:
                cells.append(cell)
        jobs.append(JobResult(name=name, status=job_status, cells=tuple(cells)))

    release: Release | None = None
    release_obj = as_str_dict(data.get("release"))
    if release_obj is not None:
        tag = get_str(release_obj, "tag")
        if tag is not None:
            files = [f for f in (get_list(release_obj, "files") or []) if isinstance(f, str)]
            release = Release(
                tag=tag,
                draft=release_obj.get("draft") is not False,
                files=tuple(files),
                url=get_str(release_obj, "url"),
            )

    artifacts = [a for a in (get_list(data, "artifacts") or []) if isinstance(a, str)]

    return Ok(
        WorkflowRun(
            id=run_id,
            event=event,
            ref=ref,
            status=status,
            jobs=tuple(jobs),
            started_at=get_str(data, "started_at") or "",
            finished_at=get_str(data, "finished_at"),
            artifacts=tuple(artifacts),
            release=release,
            reason=get_str(data, "reason") or "",
        )
    )


def run_path(runs_dir: Path, run_id: str) -> Path:
    return runs_dir / f"{run_id}.json"


def write_run(runs_dir: Path, run: WorkflowRun) -> Result[Path, HistoryError]:
    path = run_path(runs_dir, run.id)
    try:
        atomic_write_text(path, json.dumps(run_to_dict(run), indent=2) + "\n")
    except OSError as e:
        return Err(HistoryError(f"failed to write run record: {e}", hint=str(path)))
    return Ok(path)


def read_run(runs_dir: Path, run_id: str) -> Result[WorkflowRun, HistoryError]:
    path = run_path(runs_dir, run_id)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(HistoryError(f"no such run: {run_id}", hint=str(runs_dir)))
    except OSError as e:
        return Err(HistoryError(f"failed to read run record: {e}", hint=str(path)))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(HistoryError(f"invalid JSON in run record: {e}", hint=str(path)))

    data = as_str_dict(obj)
    if data is None:
        return Err(HistoryError("run record root must be a JSON object", hint=str(path)))
    result = run_from_dict(data)
    if isinstance(result, Err):
        return Err(HistoryError(result.error.message, hint=str(path)))
    return result


def list_runs(runs_dir: Path, console: ConsoleProtocol | None = None) -> list[WorkflowRun]:
    """All readable runs, newest first. Unreadable records are skipped."""
    if not runs_dir.is_dir():
        return []
    runs: list[WorkflowRun] = []
    for path in sorted(runs_dir.glob("*.json"), reverse=True):
        result = read_run(runs_dir, path.stem)
        if isinstance(result, Err):
            if console is not None:
                console.warning(f"skipping {path.name}: {result.error.message}")
            continue
        runs.append(result.value)
    return runs
