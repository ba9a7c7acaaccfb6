"""Tests for fci.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from fci.core.config import (
    DEFAULT_RELEASE_TARGETS,
    Config,
    ConfigurationError,
    ReleaseTarget,
    ToolchainConfig,
    load_config,
)
from fci.core.result import Err, Ok


class TestDefaults:
    def test_defaults_describe_forestry(self) -> None:
        config = Config()
        assert config.project.name == "forestry"
        assert config.project.main_branch == "main"
        assert config.build_matrix.os == ("macos", "ubuntu", "windows")
        assert config.build_matrix.toolchain == ("msrv", "stable")
        assert [t.target for t in config.release.targets] == [
            "x86_64-unknown-linux-gnu",
            "x86_64-pc-windows-msvc",
            "x86_64-apple-darwin",
        ]
        assert config.publish.host == "github"

    def test_tag_pattern_full_match(self) -> None:
        regex = Config().project.tag_regex
        assert regex.fullmatch("v1.2.3")
        assert regex.fullmatch("v1.2.3-rc.1")
        assert regex.fullmatch("release-1") is None
        assert regex.fullmatch("v1.2") is None

    def test_timeouts_in_seconds(self) -> None:
        execution = Config().execution
        assert execution.job_timeout_seconds == 3600.0
        assert execution.step_timeout_seconds == 1800.0

    def test_frozen(self) -> None:
        config = Config()
        with pytest.raises(AttributeError):
            config.project = None  # type: ignore[misc]


class TestToolchainConfig:
    def test_resolve_aliases(self) -> None:
        tc = ToolchainConfig(msrv="1.70", stable="1.80")
        assert tc.resolve("msrv") == "1.70"
        assert tc.resolve("stable") == "1.80"
        assert tc.resolve("nightly") == "nightly"


class TestFromDict:
    def test_empty_dict_gives_defaults(self) -> None:
        assert Config.from_dict({}) == Config()

    def test_full_dict(self) -> None:
        config = Config.from_dict(
            {
                "project": {"name": "forestry", "main_branch": "trunk"},
                "toolchain": {"msrv": "1.65", "provision": False},
                "gates": {"build_and_test": {"os": ["ubuntu"], "toolchain": ["stable"]}},
                "release": {
                    "targets": [{"os": "ubuntu", "target": "x86_64-unknown-linux-gnu"}]
                },
                "execution": {"max_parallel": 2, "job_timeout_minutes": 5},
                "paths": {"state": "build/ci"},
                "publish": {"host": "local"},
            }
        )
        assert config.project.main_branch == "trunk"
        assert config.toolchain.msrv == "1.65"
        assert config.toolchain.provision is False
        assert config.build_matrix.os == ("ubuntu",)
        assert config.release.targets == (
            ReleaseTarget(os="ubuntu", target="x86_64-unknown-linux-gnu"),
        )
        assert config.execution.max_parallel == 2
        assert config.execution.job_timeout_seconds == 300.0
        assert config.paths.state == "build/ci"
        assert config.publish.host == "local"

    @pytest.mark.parametrize(
        "data",
        [
            {"project": {"tag_pattern": "v(("}},
            {"project": {"name": "bad name"}},
            {"gates": {"build_and_test": {"os": []}}},
            {"gates": {"build_and_test": {"os": ["ubuntu", "ubuntu"]}}},
            {"release": {"targets": []}},
            {
                "release": {
                    "targets": [
                        {"os": "ubuntu", "target": "x"},
                        {"os": "macos", "target": "x"},
                    ]
                }
            },
            {"release": {"targets": [{"os": "ubuntu"}]}},
            {"execution": {"max_parallel": 0}},
            {"toolchain": {"provision": "yes"}},
            {"publish": {"host": "ftp"}},
            {"project": {"tag_pattern": 5}},
            {"project": {"name": 42}},
            {"project": {"main_branch": ""}},
            {"toolchain": {"msrv": 1.62}},
            {"execution": {"max_parallel": "8"}},
            {"execution": {"job_timeout_minutes": True}},
            {"paths": {"state": ["a"]}},
            {"publish": {"host": 3}},
            {"publish": {"repo": 7}},
            {"release": "oops"},
            {"gates": {"build_and_test": "all"}},
            {"project": "forestry"},
        ],
    )
    def test_invalid_values_raise(self, data: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            Config.from_dict(data)

    def test_wrong_type_names_the_key(self) -> None:
        with pytest.raises(ValueError, match=r"project\.tag_pattern must be a non-empty string"):
            Config.from_dict({"project": {"tag_pattern": 5}})
        with pytest.raises(ValueError, match=r"gates\.build_and_test must be a table"):
            Config.from_dict({"gates": {"build_and_test": []}})


class TestLoadConfig:
    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "missing.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / ".fci.toml"
        path.write_text("[project\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigurationError)
        assert result.error.path == path

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / ".fci.toml"
        path.write_text('[publish]\nhost = "ftp"\n', encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "publish.host" in result.error.message

    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / ".fci.toml"
        path.write_text('[project]\nname = "forestry"\n', encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Ok)
        assert result.value.release.targets == DEFAULT_RELEASE_TARGETS
