"""Tests for the fci command line interface."""

from __future__ import annotations

from pathlib import Path
from zipfile import ZipFile

import pytest
from typer.testing import CliRunner

from fci import __version__
from fci.cli.app import app
from fci.core.errors import ErrorCode
from fci.core.result import Err, Ok, Result
from fci.core.workspace import PROJECT_ROOT_ENV
from fci.pipeline import runner as runner_module
from fci.platform.process import ProcessError

cli = CliRunner()


class FakeProcessRunner:
    """Stands in for ProcessRunner; fails any argv containing ``fail_on``."""

    fail_on: str | None = None

    def run(
        self, cmd: list[str], *, cwd: Path, env: dict[str, str], timeout: float | None
    ) -> Result[str, ProcessError]:
        if self.fail_on is not None and self.fail_on in cmd:
            return Err(ProcessError(tuple(cmd), 1, "", "Diff in src/main.rs"))
        return Ok("")


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / ".fci.toml").write_text('[project]\nname = "forestry"\n', encoding="utf-8")
    monkeypatch.setenv(PROJECT_ROOT_ENV, str(tmp_path))
    return tmp_path


class TestApp:
    def test_version(self) -> None:
        result = cli.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_project_option(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(PROJECT_ROOT_ENV, raising=False)
        result = cli.invoke(app, ["--project", str(tmp_path), "plan"])
        assert result.exit_code == int(ErrorCode.ENV_ERROR)

    def test_missing_project(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(PROJECT_ROOT_ENV, str(tmp_path))
        result = cli.invoke(app, ["plan"])
        assert result.exit_code == int(ErrorCode.ENV_ERROR)

    def test_invalid_config(self, project: Path) -> None:
        (project / ".fci.toml").write_text("[execution]\nmax_parallel = 0\n", encoding="utf-8")
        result = cli.invoke(app, ["plan"])
        assert result.exit_code == int(ErrorCode.USER_ERROR)
        assert "max_parallel" in result.output


class TestPlan:
    def test_tag_plans_release(self, project: Path) -> None:
        result = cli.invoke(app, ["plan", "--event", "tag", "--ref", "v1.2.3"])
        assert result.exit_code == 0
        assert "release_build" in result.output
        assert "release_publish" in result.output

    def test_feature_push_plans_nothing(self, project: Path) -> None:
        result = cli.invoke(app, ["plan", "--event", "push", "--ref", "feature/x"])
        assert result.exit_code == 0
        assert "no jobs" in result.output

    def test_unknown_event(self, project: Path) -> None:
        result = cli.invoke(app, ["plan", "--event", "release"])
        assert result.exit_code == int(ErrorCode.USER_ERROR)


class TestRun:
    def test_dry_run_executes_nothing(self, project: Path) -> None:
        result = cli.invoke(app, ["run", "--event", "tag", "--ref", "v1.2.3", "--dry-run"])
        assert result.exit_code == 0
        assert "release_publish" in result.output
        assert not (project / ".fci" / "runs").exists()

    def test_from_env_without_event(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITHUB_EVENT_NAME", raising=False)
        result = cli.invoke(app, ["run", "--from-env"])
        assert result.exit_code == int(ErrorCode.ENV_ERROR)


class TestGate:
    def test_passing_gate(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(runner_module, "ProcessRunner", FakeProcessRunner)
        result = cli.invoke(app, ["gate", "format", "--quiet"])
        assert result.exit_code == 0
        assert "succeeded" in result.output
        assert len(list((project / ".fci" / "runs").glob("*.json"))) == 1

    def test_failing_gate_exits_with_build_error(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        class Failing(FakeProcessRunner):
            fail_on = "--check"

        monkeypatch.setattr(runner_module, "ProcessRunner", Failing)
        result = cli.invoke(app, ["gate", "format"])
        assert result.exit_code == int(ErrorCode.BUILD_ERROR)
        assert "formatting" in result.output or "format" in result.output

    def test_unknown_gate(self, project: Path) -> None:
        result = cli.invoke(app, ["gate", "docs"])
        assert result.exit_code != 0


class TestRuns:
    def test_list_empty(self, project: Path) -> None:
        result = cli.invoke(app, ["runs", "list"])
        assert result.exit_code == 0
        assert "no runs recorded" in result.output

    def test_show_missing(self, project: Path) -> None:
        result = cli.invoke(app, ["runs", "show", "nope"])
        assert result.exit_code == int(ErrorCode.USER_ERROR)
        assert "no such run" in result.output

    def test_release_publish_unknown_run(self, project: Path) -> None:
        result = cli.invoke(app, ["release", "publish", "--run", "nope"])
        assert result.exit_code == int(ErrorCode.NETWORK_ERROR)


class TestPackage:
    def test_zips_with_flat_paths(self, tmp_path: Path) -> None:
        src = tmp_path / "forestry-v1.0.0-x86_64-unknown-linux-gnu"
        (src / "nested").mkdir(parents=True)
        (src / "nested" / "forestry").write_bytes(b"bin")
        out = tmp_path / "out"

        result = cli.invoke(app, ["package", str(src), "--out", str(out)])
        assert result.exit_code == 0
        with ZipFile(out / f"{src.name}.zip") as zf:
            assert zf.namelist() == ["forestry"]

    def test_rejects_files(self, tmp_path: Path) -> None:
        f = tmp_path / "file.txt"
        f.write_text("x", encoding="utf-8")
        result = cli.invoke(app, ["package", str(f)])
        assert result.exit_code == int(ErrorCode.USER_ERROR)
