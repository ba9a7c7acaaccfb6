"""Job scheduling: parallel cells, join barriers and cancellation.

All cells of every ready job go to one thread pool, so independent jobs and
sibling cells run side by side, bounded by ``max_parallel`` (the number of
execution agents). A job with ``needs`` is a barrier: it starts only after
every upstream job is terminal, and only if all of them succeeded. A
failing cell never cancels its siblings.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from fci.output.console import ConsoleProtocol
from fci.pipeline.cells import CancelToken, CellContext, Step, run_cell
from fci.pipeline.errors import CancelledError
from fci.pipeline.model import CellResult, Coordinates, JobResult, JobStatus, MatrixCell


@dataclass(frozen=True, slots=True)
class JobSpec:
    """A job template: its cells, the steps of each cell, and its upstreams."""

    name: str
    cells: tuple[MatrixCell, ...]
    steps: Callable[[MatrixCell], tuple[Step, ...]]
    needs: tuple[str, ...] = ()


# (job, cell, deadline) -> context for that cell
ContextFactory = Callable[[JobSpec, MatrixCell, float], CellContext]


def _check_graph(jobs: Sequence[JobSpec]) -> None:
    names = [j.name for j in jobs]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate job names: {names}")
    known = set(names)
    for job in jobs:
        missing = set(job.needs) - known
        if missing:
            raise ValueError(f"job {job.name} needs unknown jobs: {sorted(missing)}")

    # Kahn's algorithm; anything left over is on a cycle.
    remaining = {j.name: set(j.needs) for j in jobs}
    while remaining:
        ready = [n for n, deps in remaining.items() if not deps]
        if not ready:
            raise ValueError(f"job dependency cycle: {sorted(remaining)}")
        for name in ready:
            del remaining[name]
        for deps in remaining.values():
            deps.difference_update(ready)


class Scheduler:
    def __init__(
        self,
        *,
        max_parallel: int,
        job_timeout: float,
        console: ConsoleProtocol,
        cancel: CancelToken,
        make_context: ContextFactory,
    ) -> None:
        self._max_parallel = max(1, max_parallel)
        self._job_timeout = job_timeout
        self._console = console
        self._cancel = cancel
        self._make_context = make_context

    def _run_one(self, job: JobSpec, cell: MatrixCell, deadline: float) -> CellResult:
        ctx = self._make_context(job, cell, deadline)
        return run_cell(cell, job.steps(cell), ctx)

    def _unstarted(self, job: JobSpec, status: JobStatus, reason: str) -> JobResult:
        cells = tuple(
            CellResult(
                cell=c,
                status=status,
                error=CancelledError(reason, cell=c.cell_id)
                if status == JobStatus.CANCELLED
                else None,
            )
            for c in job.cells
        )
        return JobResult(name=job.name, status=status, cells=cells)

    def run(self, jobs: Sequence[JobSpec]) -> dict[str, JobResult]:
        """Run every job to a terminal status.

        Returns results keyed by job name, in the order jobs were given.

        Raises:
            ValueError: If the job graph has unknown needs, duplicates or cycles.
        """
        _check_graph(jobs)

        results: dict[str, JobResult] = {}
        pending = list(jobs)
        cell_results: dict[str, dict[Coordinates, CellResult]] = {}
        in_flight: dict[Future[CellResult], JobSpec] = {}

        with ThreadPoolExecutor(max_workers=self._max_parallel) as pool:
            while pending or in_flight:
                for job in list(pending):
                    upstream = [results.get(n) for n in job.needs]
                    if any(u is None for u in upstream):
                        continue
                    pending.remove(job)

                    if self._cancel.cancelled:
                        results[job.name] = self._unstarted(
                            job, JobStatus.CANCELLED, "run cancelled"
                        )
                        continue

                    blocked = [u.name for u in upstream if u and u.status != JobStatus.SUCCESS]
                    if blocked:
                        self._console.warning(
                            f"{job.name}: skipped, upstream did not succeed: {', '.join(blocked)}"
                        )
                        results[job.name] = self._unstarted(
                            job, JobStatus.SKIPPED, "upstream did not succeed"
                        )
                        continue

                    if not job.cells:
                        results[job.name] = JobResult(name=job.name, status=JobStatus.SUCCESS)
                        continue

                    self._console.header(f"{job.name} ({len(job.cells)} cell(s))")
                    cell_results[job.name] = {}
                    # One clock per job, started when its cells are queued; cells
                    # still waiting for a worker spend the same budget.
                    deadline = time.monotonic() + self._job_timeout
                    for cell in job.cells:
                        in_flight[pool.submit(self._run_one, job, cell, deadline)] = job

                if not in_flight:
                    continue

                try:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    # Running cells stop before their next step; queued cells
                    # and downstream jobs end up CANCELLED.
                    self._console.warning("interrupted: cancelling run")
                    self._cancel.cancel()
                    continue

                for future in done:
                    job = in_flight.pop(future)
                    result = future.result()
                    collected = cell_results[job.name]
                    collected[result.cell.coordinates] = result
                    if len(collected) == len(job.cells):
                        ordered = (collected[c.coordinates] for c in job.cells)
                        results[job.name] = JobResult.from_cells(job.name, ordered)

        return {j.name: results[j.name] for j in jobs}
