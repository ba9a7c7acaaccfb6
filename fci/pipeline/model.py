"""Data model of a workflow run: events, cells, jobs, artifacts, releases."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from fci.pipeline.errors import PipelineError

# Job names
BUILD_AND_TEST = "build_and_test"
LINT = "lint"
DEPENDENCY_AUDIT = "dependency_audit"
FORMAT = "format"
RELEASE_BUILD = "release_build"
RELEASE_PUBLISH = "release_publish"

QUALITY_GATE_JOBS = (BUILD_AND_TEST, LINT, DEPENDENCY_AUDIT, FORMAT)
RELEASE_JOBS = (RELEASE_BUILD, RELEASE_PUBLISH)

EventKind = Literal["push", "pull_request", "tag", "manual"]
EVENT_KINDS: tuple[EventKind, ...] = ("push", "pull_request", "tag", "manual")

Coordinates = tuple[tuple[str, str], ...]

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    # The job's barrier did not open; none of its steps ran.
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


def short_ref(ref: str) -> str:
    """Strip ``refs/heads/`` / ``refs/tags/`` from a fully qualified ref."""
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


@dataclass(frozen=True, slots=True)
class Event:
    """An external trigger: push, pull request, tag push or manual dispatch.

    ``ref`` is the pushed branch or tag (for pull requests, the head ref);
    ``base_ref`` is the pull request's target branch.
    """

    kind: EventKind
    ref: str
    base_ref: str | None = None

    @classmethod
    def from_github_env(cls, environ: Mapping[str, str]) -> Event | None:
        """Derive an event from GitHub Actions environment variables.

        Returns None when the variables are absent or describe an event
        kind fci does not handle.
        """
        name = environ.get("GITHUB_EVENT_NAME", "")
        full_ref = environ.get("GITHUB_REF", "")
        ref_name = environ.get("GITHUB_REF_NAME") or short_ref(full_ref)

        if name == "push":
            if full_ref.startswith("refs/tags/"):
                return cls(kind="tag", ref=ref_name)
            return cls(kind="push", ref=ref_name)
        if name in ("pull_request", "pull_request_target"):
            head = environ.get("GITHUB_HEAD_REF") or ref_name
            return cls(kind="pull_request", ref=head, base_ref=environ.get("GITHUB_BASE_REF"))
        if name == "workflow_dispatch":
            return cls(kind="manual", ref=ref_name)
        return None

    def __str__(self) -> str:
        if self.base_ref:
            return f"{self.kind} {self.ref} -> {self.base_ref}"
        return f"{self.kind} {self.ref}"


@dataclass(frozen=True, slots=True)
class MatrixCell:
    """One concrete combination of a job's matrix axes."""

    job: str
    coordinates: Coordinates = ()

    def get(self, axis: str) -> str | None:
        for key, value in self.coordinates:
            if key == axis:
                return value
        return None

    @property
    def cell_id(self) -> str:
        """Filesystem-safe identifier, unique within a run."""
        parts = [self.job, *(value for _, value in self.coordinates)]
        return _UNSAFE_RE.sub("_", "-".join(parts))

    @property
    def label(self) -> str:
        if not self.coordinates:
            return self.job
        coords = ", ".join(f"{k}={v}" for k, v in self.coordinates)
        return f"{self.job} ({coords})"


@dataclass(frozen=True, slots=True)
class StepRecord:
    name: str
    status: JobStatus
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class CellResult:
    cell: MatrixCell
    status: JobStatus
    error: PipelineError | None = None
    duration_seconds: float = 0.0
    steps: tuple[StepRecord, ...] = ()


def aggregate_status(statuses: Iterable[JobStatus]) -> JobStatus:
    """Status of a job from its cells (or of a run from its jobs).

    Any failure wins, then cancellation; a skipped unit never counts as
    success. An empty set is a success.
    """
    seen = set(statuses)
    if JobStatus.FAILURE in seen:
        return JobStatus.FAILURE
    if JobStatus.CANCELLED in seen:
        return JobStatus.CANCELLED
    if JobStatus.SKIPPED in seen:
        return JobStatus.FAILURE
    if seen - {JobStatus.SUCCESS}:
        return JobStatus.RUNNING
    return JobStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class JobResult:
    name: str
    status: JobStatus
    cells: tuple[CellResult, ...] = ()

    @classmethod
    def from_cells(cls, name: str, cells: Iterable[CellResult]) -> JobResult:
        cells = tuple(cells)
        return cls(name=name, status=aggregate_status(c.status for c in cells), cells=cells)


def artifact_name(project: str, ref: str, target: str) -> str:
    """``{project}-{ref}-{target}``; slashes in branch refs become dashes."""
    return f"{project}-{short_ref(ref).replace('/', '-')}-{target}"


@dataclass(frozen=True, slots=True)
class Artifact:
    """An uploaded, immutable bundle. ``files`` are paths relative to ``path``."""

    name: str
    path: Path
    files: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Release:
    tag: str
    draft: bool
    files: tuple[str, ...]
    url: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """One execution of the job graph.

    ``reason`` says why these jobs ran: the trigger rule that matched the
    event, or the command that ran a subset of the graph directly.
    """

    id: str
    event: Event
    ref: str
    status: JobStatus
    jobs: tuple[JobResult, ...] = ()
    started_at: str = ""
    finished_at: str | None = None
    artifacts: tuple[str, ...] = ()
    release: Release | None = None
    reason: str = ""

    def job(self, name: str) -> JobResult | None:
        for job in self.jobs:
            if job.name == name:
                return job
        return None
