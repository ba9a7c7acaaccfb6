"""Workflow runs: trigger evaluation, job instantiation, scheduling, records.

``WorkflowRunner`` is the one place that knows how the pieces fit: it turns
an event into a plan, the plan into job specs, runs them through the
scheduler and persists the outcome as a run record.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import uuid4

from fci.core.config import Config, ConfigurationError
from fci.core.result import Err, Ok, Result
from fci.core.workspace import Project, StatePaths
from fci.output.console import ConsoleProtocol, Style
from fci.pipeline.artifacts import ArtifactStore
from fci.pipeline.cache import DependencyCache
from fci.pipeline.cells import CancelToken, CellContext, CommandRunner, ProcessRunner
from fci.pipeline.commands import CargoBackend
from fci.pipeline.errors import PublishError
from fci.pipeline.gates import quality_gate_jobs
from fci.pipeline.history import read_run, write_run
from fci.pipeline.model import (
    RELEASE_BUILD,
    RELEASE_PUBLISH,
    Event,
    JobResult,
    JobStatus,
    MatrixCell,
    WorkflowRun,
    aggregate_status,
)
from fci.pipeline.publish import PublishState, release_publish_job
from fci.pipeline.release_build import expected_artifacts, release_build_job
from fci.pipeline.release_host import DirectoryReleaseHost, GhReleaseHost, ReleaseHost
from fci.pipeline.scheduler import ContextFactory, JobSpec, Scheduler
from fci.pipeline.steps import JobTools
from fci.pipeline.triggers import TriggerPlan, evaluate
from fci.platform.detection import (
    Platform,
    detect_platform,
    host_target_triple,
    platform_for_label,
)


def new_run_id() -> str:
    """``<UTC timestamp>-<random suffix>``; sorts by start time."""
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid4().hex[:6]}"


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds")


def default_release_host(config: Config, project: Project, paths: StatePaths) -> ReleaseHost:
    if config.publish.host == "local":
        return DirectoryReleaseHost(paths.releases_dir)
    return GhReleaseHost(project_root=project.root, repo=config.publish.repo)


class WorkflowRunner:
    def __init__(
        self,
        *,
        project: Project,
        config: Config,
        console: ConsoleProtocol,
        runner: CommandRunner | None = None,
        host: ReleaseHost | None = None,
        cancel: CancelToken | None = None,
        use_cache: bool = True,
    ) -> None:
        self._project = project
        self._config = config
        self._console = console
        self._runner = runner or ProcessRunner()
        self._cancel = cancel or CancelToken()
        self.paths = StatePaths.for_project(project, config)
        self._host = host or default_release_host(config, project, self.paths)
        self.store = ArtifactStore(self.paths.artifacts_dir)

        cache = DependencyCache(root=self.paths.cache_dir, console=console) if use_cache else None
        self._tools = JobTools(
            config=config,
            backend=CargoBackend(),
            lockfile=project.lockfile,
            cache=cache,
        )

    @property
    def cancel_token(self) -> CancelToken:
        return self._cancel

    def plan(self, event: Event) -> TriggerPlan:
        return evaluate(event, self._config.project)

    # -----------------------------------------------------------------
    # Job instantiation
    # -----------------------------------------------------------------

    def release_jobs(
        self,
        *,
        ref: str,
        run_id: str,
        state: PublishState,
        targets: Sequence[str] = (),
        publish: bool = True,
    ) -> Result[tuple[JobSpec, ...], ConfigurationError]:
        build = release_build_job(
            self._tools, ref=ref, run_id=run_id, store=self.store, targets=targets
        )
        if isinstance(build, Err):
            return build
        if not publish:
            return Ok((build.value,))

        publish_job = release_publish_job(
            ref=ref,
            run_id=run_id,
            store=self.store,
            host=self._host,
            expected=expected_artifacts(self._config, ref, build.value.cells),
            state=state,
        )
        return Ok((build.value, publish_job))

    def jobs_for(
        self, plan: TriggerPlan, *, run_id: str, state: PublishState
    ) -> Result[tuple[JobSpec, ...], ConfigurationError]:
        if plan.is_empty:
            return Ok(())
        if plan.is_release:
            return self.release_jobs(ref=plan.ref, run_id=run_id, state=state)

        gates = quality_gate_jobs(self._tools)
        if isinstance(gates, Err):
            return gates
        return Ok(tuple(j for j in gates.value if j.name in plan.jobs))

    def gate_job(self, name: str) -> Result[JobSpec, ConfigurationError]:
        gates = quality_gate_jobs(self._tools)
        if isinstance(gates, Err):
            return gates
        for job in gates.value:
            if job.name == name:
                return Ok(job)
        return Err(ConfigurationError(f"unknown quality gate: {name}"))

    # -----------------------------------------------------------------
    # Execution
    # -----------------------------------------------------------------

    def _context_factory(self, run_id: str) -> ContextFactory:
        host = detect_platform()
        host_triple = host_target_triple()

        def make(job: JobSpec, cell: MatrixCell, deadline: float) -> CellContext:
            work_dir = self.paths.work_dir / run_id / job.name / cell.cell_id
            os_label = cell.get("os") or ""
            env = dict(os.environ)
            env.update(
                {
                    "CARGO_TERM_COLOR": "always",
                    "CARGO_TARGET_DIR": str(work_dir / "target"),
                    "FCI_RUNNER_OS": os_label,
                }
            )
            ctx = CellContext(
                cell=cell,
                project_root=self._project.root,
                work_dir=work_dir,
                runner=self._runner,
                console=self._console,
                cancel=self._cancel,
                deadline=deadline,
                step_timeout=self._config.execution.step_timeout_seconds,
                env=env,
            )
            label = platform_for_label(os_label) if os_label else host
            if host != Platform.UNKNOWN and label not in (host, Platform.UNKNOWN):
                ctx.log(f"runner label {os_label} differs from host {host}; running locally")
            target = cell.get("target")
            if target and host_triple and target != host_triple:
                ctx.log(f"cross-compiling for {target} on {host_triple}")
            return ctx

        return make

    def execute(
        self,
        *,
        run_id: str,
        event: Event,
        ref: str,
        jobs: Sequence[JobSpec],
        state: PublishState | None = None,
        reason: str = "",
    ) -> WorkflowRun:
        """Schedule ``jobs`` to completion and persist the run record."""
        started_at = _now()
        scheduler = Scheduler(
            max_parallel=self._config.execution.max_parallel,
            job_timeout=self._config.execution.job_timeout_seconds,
            console=self._console,
            cancel=self._cancel,
            make_context=self._context_factory(run_id),
        )
        results = scheduler.run(jobs)
        job_results = tuple(results.values())

        run = WorkflowRun(
            id=run_id,
            event=event,
            ref=ref,
            status=aggregate_status(j.status for j in job_results),
            jobs=job_results,
            started_at=started_at,
            finished_at=_now(),
            artifacts=tuple(a.name for a in self.store.list_artifacts(run_id)),
            release=state.release if state else None,
            reason=reason,
        )

        written = write_run(self.paths.runs_dir, run)
        if isinstance(written, Err):
            self._console.warning(written.error.message)
        return run

    def run(self, event: Event) -> Result[WorkflowRun, ConfigurationError]:
        """Run every job the event triggers."""
        plan = self.plan(event)
        self._console.info(f"{event}: {plan.reason}")

        run_id = new_run_id()
        state = PublishState()
        jobs = self.jobs_for(plan, run_id=run_id, state=state)
        if isinstance(jobs, Err):
            return jobs
        if plan.is_empty:
            self._console.print("nothing to run", Style.DIM)

        self._console.print(f"run {run_id}", Style.DIM)
        run = self.execute(
            run_id=run_id,
            event=event,
            ref=plan.ref,
            jobs=jobs.value,
            state=state,
            reason=plan.reason,
        )
        return Ok(run)

    def dry_run(self, event: Event) -> Result[TriggerPlan, ConfigurationError]:
        """Print jobs, cells, steps and commands without executing anything."""
        plan = self.plan(event)
        self._console.info(f"{event}: {plan.reason}")

        jobs = self.jobs_for(plan, run_id="<run>", state=PublishState())
        if isinstance(jobs, Err):
            return jobs
        for job in jobs.value:
            needs = f" (needs {', '.join(job.needs)})" if job.needs else ""
            self._console.header(f"{job.name}{needs}")
            for cell in job.cells:
                self._console.print(f"  {cell.label}", Style.INFO)
                for step in job.steps(cell):
                    detail = f": {step.describe}" if step.describe else ""
                    self._console.print(f"    {step.name}{detail}", Style.DIM)
        return Ok(plan)

    def run_gate(
        self, name: str, *, ref: str | None = None
    ) -> Result[WorkflowRun, ConfigurationError]:
        job = self.gate_job(name)
        if isinstance(job, Err):
            return job
        ref = ref or self._config.project.main_branch
        return Ok(
            self.execute(
                run_id=new_run_id(),
                event=Event(kind="manual", ref=ref),
                ref=ref,
                jobs=(job.value,),
                reason=f"single gate: {name}",
            )
        )

    def run_release_build(
        self, *, ref: str, targets: Sequence[str] = ()
    ) -> Result[WorkflowRun, ConfigurationError]:
        run_id = new_run_id()
        jobs = self.release_jobs(
            ref=ref, run_id=run_id, state=PublishState(), targets=targets, publish=False
        )
        if isinstance(jobs, Err):
            return jobs
        return Ok(
            self.execute(
                run_id=run_id,
                event=Event(kind="manual", ref=ref),
                ref=ref,
                jobs=jobs.value,
                reason="release build only (no publish)",
            )
        )

    def publish_existing(self, run_id: str) -> Result[WorkflowRun, PublishError]:
        """Run the publish job against the artifacts of an earlier run.

        The earlier run's Release Build job must have succeeded; its cells
        define the expected artifact set.
        """
        previous = read_run(self.paths.runs_dir, run_id)
        if isinstance(previous, Err):
            return Err(PublishError(previous.error.message, hint=previous.error.hint))
        run = previous.value

        build = run.job(RELEASE_BUILD)
        if build is None or build.status != JobStatus.SUCCESS:
            status = build.status if build else "absent"
            return Err(
                PublishError(
                    f"run {run_id} has no successful {RELEASE_BUILD} job ({status})",
                    hint="publish only runs after every release build cell succeeded",
                )
            )
        if run.release is not None:
            return Err(
                PublishError(
                    f"run {run_id} already created release {run.release.tag}",
                    hint=run.release.url,
                )
            )

        state = PublishState()
        job = release_publish_job(
            ref=run.ref,
            run_id=run_id,
            store=self.store,
            host=self._host,
            expected=expected_artifacts(self._config, run.ref, [c.cell for c in build.cells]),
            state=state,
            needs=(),
        )
        scheduler = Scheduler(
            max_parallel=1,
            job_timeout=self._config.execution.job_timeout_seconds,
            console=self._console,
            cancel=self._cancel,
            make_context=self._context_factory(run_id),
        )
        result = scheduler.run((job,))[RELEASE_PUBLISH]

        jobs: list[JobResult] = [j for j in run.jobs if j.name != RELEASE_PUBLISH]
        jobs.append(result)
        updated = WorkflowRun(
            id=run.id,
            event=run.event,
            ref=run.ref,
            status=aggregate_status(j.status for j in jobs),
            jobs=tuple(jobs),
            started_at=run.started_at,
            finished_at=_now(),
            artifacts=run.artifacts,
            release=state.release,
            reason=run.reason,
        )
        written = write_run(self.paths.runs_dir, updated)
        if isinstance(written, Err):
            self._console.warning(written.error.message)
        return Ok(updated)
