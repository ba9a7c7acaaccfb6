"""Tests for fci.pipeline.gates module."""

from __future__ import annotations

import time
from pathlib import Path

import pytest

from fci.core.config import Config, MatrixConfig, ToolchainConfig
from fci.core.result import Err, Ok, Result
from fci.output.console import MockConsole
from fci.pipeline import gates
from fci.pipeline.cache import DependencyCache
from fci.pipeline.cells import CancelToken, CellContext, Step, run_cell
from fci.pipeline.commands import CargoBackend
from fci.pipeline.errors import DependencyPolicyError, LintError, TestError
from fci.pipeline.model import (
    BUILD_AND_TEST,
    DEPENDENCY_AUDIT,
    FORMAT,
    LINT,
    CellResult,
    JobStatus,
    MatrixCell,
)
from fci.pipeline.steps import JobTools
from fci.platform.process import ProcessError


class FakeRunner:
    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[list[str]] = []
        self._fail_on = fail_on

    def run(
        self, cmd: list[str], *, cwd: Path, env: dict[str, str], timeout: float | None
    ) -> Result[str, ProcessError]:
        self.calls.append(cmd)
        if self._fail_on is not None and self._fail_on in cmd:
            return Err(ProcessError(tuple(cmd), 1, "", "warning: unused variable"))
        return Ok("")


def _tools(tmp_path: Path, config: Config | None = None, *, cache: bool = False) -> JobTools:
    return JobTools(
        config=config or Config(),
        backend=CargoBackend(),
        lockfile=tmp_path / "Cargo.lock",
        cache=DependencyCache(root=tmp_path / "cache", console=MockConsole()) if cache else None,
    )


def _run(
    tmp_path: Path,
    tools: JobTools,
    job_cell: MatrixCell,
    steps: tuple[Step, ...],
    runner: FakeRunner,
) -> CellResult:
    ctx = CellContext(
        cell=job_cell,
        project_root=tmp_path,
        work_dir=tmp_path / "work" / job_cell.cell_id,
        runner=runner,
        console=MockConsole(),
        cancel=CancelToken(),
        deadline=time.monotonic() + 600,
        step_timeout=60,
    )
    return run_cell(job_cell, steps, ctx)


class TestBuildAndTest:
    def test_default_matrix_has_six_cells(self, tmp_path: Path) -> None:
        job = gates.build_and_test_job(_tools(tmp_path))
        assert isinstance(job, Ok)
        assert job.value.name == BUILD_AND_TEST
        assert len(job.value.cells) == 6

    def test_msrv_cell_uses_pinned_version(self, tmp_path: Path) -> None:
        config = Config(
            toolchain=ToolchainConfig(msrv="1.62"),
            build_matrix=MatrixConfig(os=("ubuntu",), toolchain=("msrv",)),
        )
        job = gates.build_and_test_job(_tools(tmp_path, config))
        assert isinstance(job, Ok)
        cell = job.value.cells[0]
        runner = FakeRunner()
        result = _run(tmp_path, _tools(tmp_path, config), cell, job.value.steps(cell), runner)

        assert result.status == JobStatus.SUCCESS
        assert runner.calls[0][:4] == ["rustup", "toolchain", "install", "1.62"]
        assert runner.calls[1][:3] == ["cargo", "+1.62", "build"]
        assert runner.calls[2][:3] == ["cargo", "+1.62", "test"]

    def test_cache_steps_wrap_the_build(self, tmp_path: Path) -> None:
        tools = _tools(tmp_path, cache=True)
        job = gates.build_and_test_job(tools)
        assert isinstance(job, Ok)
        names = [s.name for s in job.value.steps(job.value.cells[0])]
        assert names[1] == "restore dependency cache"
        assert names[-1] == "save dependency cache"

    def test_test_failure_is_test_error(self, tmp_path: Path) -> None:
        tools = _tools(tmp_path)
        job = gates.build_and_test_job(tools)
        assert isinstance(job, Ok)
        cell = job.value.cells[0]
        result = _run(tmp_path, tools, cell, job.value.steps(cell), FakeRunner(fail_on="test"))
        assert isinstance(result.error, TestError)

    def test_provision_off(self, tmp_path: Path) -> None:
        tools = _tools(tmp_path, Config(toolchain=ToolchainConfig(provision=False)))
        job = gates.build_and_test_job(tools)
        assert isinstance(job, Ok)
        names = [s.name for s in job.value.steps(job.value.cells[0])]
        assert names == ["build", "test"]

    def test_invalid_matrix(self, tmp_path: Path) -> None:
        config = Config(build_matrix=MatrixConfig(os=(), toolchain=("stable",)))
        assert isinstance(gates.build_and_test_job(_tools(tmp_path, config)), Err)


class TestSingletonGates:
    def test_lint_failure_is_lint_error(self, tmp_path: Path) -> None:
        tools = _tools(tmp_path)
        job = gates.lint_job(tools)
        assert job.name == LINT
        cell = job.cells[0]
        runner = FakeRunner(fail_on="--deny")
        result = _run(tmp_path, tools, cell, job.steps(cell), runner)

        assert isinstance(result.error, LintError)
        assert result.error.kind == "lint"
        assert runner.calls[0][-2:] == ["--component", "clippy"]

    def test_format_failure_is_format_kind(self, tmp_path: Path) -> None:
        tools = _tools(tmp_path)
        job = gates.format_job(tools)
        assert job.name == FORMAT
        cell = job.cells[0]
        result = _run(tmp_path, tools, cell, job.steps(cell), FakeRunner(fail_on="fmt"))
        assert isinstance(result.error, LintError)
        assert result.error.kind == "format"

    def test_audit_installs_tool_when_missing(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(gates.shutil, "which", lambda name: None)
        tools = _tools(tmp_path)
        job = gates.dependency_audit_job(tools)
        assert job.name == DEPENDENCY_AUDIT
        cell = job.cells[0]
        runner = FakeRunner()
        _run(tmp_path, tools, cell, job.steps(cell), runner)
        assert ["cargo", "install", "--locked", "cargo-deny"] in runner.calls
        assert runner.calls[-1] == ["cargo", "deny", "--all-features", "check"]

    def test_audit_skips_install_when_present(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(gates.shutil, "which", lambda name: f"/usr/bin/{name}")
        tools = _tools(tmp_path)
        job = gates.dependency_audit_job(tools)
        cell = job.cells[0]
        runner = FakeRunner(fail_on="deny")
        result = _run(tmp_path, tools, cell, job.steps(cell), runner)

        assert ["cargo", "install", "--locked", "cargo-deny"] not in runner.calls
        assert isinstance(result.error, DependencyPolicyError)

    def test_quality_gate_jobs(self, tmp_path: Path) -> None:
        jobs = gates.quality_gate_jobs(_tools(tmp_path))
        assert isinstance(jobs, Ok)
        assert [j.name for j in jobs.value] == [BUILD_AND_TEST, LINT, DEPENDENCY_AUDIT, FORMAT]
        assert all(not j.needs for j in jobs.value)
