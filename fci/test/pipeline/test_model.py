"""Tests for fci.pipeline.model module."""

from __future__ import annotations

import pytest

from fci.pipeline.model import (
    CellResult,
    Event,
    JobResult,
    JobStatus,
    MatrixCell,
    aggregate_status,
    artifact_name,
    short_ref,
)


class TestEventFromGithubEnv:
    def test_branch_push(self) -> None:
        env = {"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/heads/main"}
        assert Event.from_github_env(env) == Event(kind="push", ref="main")

    def test_tag_push(self) -> None:
        env = {
            "GITHUB_EVENT_NAME": "push",
            "GITHUB_REF": "refs/tags/v1.2.3",
            "GITHUB_REF_NAME": "v1.2.3",
        }
        assert Event.from_github_env(env) == Event(kind="tag", ref="v1.2.3")

    def test_pull_request(self) -> None:
        env = {
            "GITHUB_EVENT_NAME": "pull_request",
            "GITHUB_REF": "refs/pull/7/merge",
            "GITHUB_HEAD_REF": "feature/x",
            "GITHUB_BASE_REF": "main",
        }
        event = Event.from_github_env(env)
        assert event == Event(kind="pull_request", ref="feature/x", base_ref="main")

    def test_workflow_dispatch(self) -> None:
        env = {"GITHUB_EVENT_NAME": "workflow_dispatch", "GITHUB_REF": "refs/heads/main"}
        assert Event.from_github_env(env) == Event(kind="manual", ref="main")

    @pytest.mark.parametrize("env", [{}, {"GITHUB_EVENT_NAME": "schedule"}])
    def test_unsupported(self, env: dict[str, str]) -> None:
        assert Event.from_github_env(env) is None


class TestMatrixCell:
    def test_get_and_label(self) -> None:
        cell = MatrixCell("build_and_test", (("os", "ubuntu"), ("toolchain", "stable")))
        assert cell.get("os") == "ubuntu"
        assert cell.get("target") is None
        assert cell.label == "build_and_test (os=ubuntu, toolchain=stable)"

    def test_cell_id_is_filesystem_safe(self) -> None:
        cell = MatrixCell("release_build", (("target", "x86_64 pc/windows"),))
        assert cell.cell_id == "release_build-x86_64_pc_windows"

    def test_singleton_label(self) -> None:
        assert MatrixCell("lint").label == "lint"


class TestAggregateStatus:
    @pytest.mark.parametrize(
        ("statuses", "expected"),
        [
            ([], JobStatus.SUCCESS),
            ([JobStatus.SUCCESS, JobStatus.SUCCESS], JobStatus.SUCCESS),
            ([JobStatus.SUCCESS, JobStatus.FAILURE], JobStatus.FAILURE),
            ([JobStatus.CANCELLED, JobStatus.FAILURE], JobStatus.FAILURE),
            ([JobStatus.SUCCESS, JobStatus.CANCELLED], JobStatus.CANCELLED),
            ([JobStatus.SUCCESS, JobStatus.SKIPPED], JobStatus.FAILURE),
            ([JobStatus.SUCCESS, JobStatus.RUNNING], JobStatus.RUNNING),
        ],
    )
    def test_aggregation(self, statuses: list[JobStatus], expected: JobStatus) -> None:
        assert aggregate_status(statuses) == expected

    def test_job_result_from_cells(self) -> None:
        a = MatrixCell("j", (("os", "a"),))
        b = MatrixCell("j", (("os", "b"),))
        job = JobResult.from_cells(
            "j", [CellResult(a, JobStatus.SUCCESS), CellResult(b, JobStatus.FAILURE)]
        )
        assert job.status == JobStatus.FAILURE
        assert [c.status for c in job.cells] == [JobStatus.SUCCESS, JobStatus.FAILURE]


class TestNames:
    def test_artifact_name(self) -> None:
        name = artifact_name("forestry", "v1.2.3", "x86_64-unknown-linux-gnu")
        assert name == "forestry-v1.2.3-x86_64-unknown-linux-gnu"

    def test_artifact_name_for_branch_ref(self) -> None:
        name = artifact_name("forestry", "refs/heads/feature/x", "x86_64-apple-darwin")
        assert name == "forestry-feature-x-x86_64-apple-darwin"

    def test_short_ref(self) -> None:
        assert short_ref("refs/tags/v1.0.0") == "v1.0.0"
        assert short_ref("main") == "main"
