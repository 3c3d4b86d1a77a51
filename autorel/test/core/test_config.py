"""Tests for autorel.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from autorel.core.config import (
    DEFAULT_VERSION_PATTERN,
    Config,
    ProjectConfig,
    ReasoningConfig,
    load_config,
)
from autorel.core.result import Err, Ok


class TestDefaults:
    def test_project_defaults(self) -> None:
        config = ProjectConfig()
        assert config.trunk_branch == "main"
        assert config.remote == "origin"
        assert config.tag_prefix == ""
        assert config.baseline_version == "0.0.0"

    def test_frozen(self) -> None:
        config = ProjectConfig()
        with pytest.raises(AttributeError):
            config.name = "other"  # type: ignore[misc]

    def test_reasoning_requires_api_key(self) -> None:
        assert ReasoningConfig().available is False
        assert ReasoningConfig(api_key="sk-test").available is True
        assert ReasoningConfig(enabled=False, api_key="sk-test").available is False

    def test_api_key_not_in_repr(self) -> None:
        assert "sk-secret" not in repr(ReasoningConfig(api_key="sk-secret"))


class TestFromDict:
    def test_empty(self) -> None:
        config = Config.from_dict({})
        assert config.project.name == "project"
        assert config.version_file.path is None
        assert config.version_file.pattern == DEFAULT_VERSION_PATTERN
        assert config.stages.build_test == ()
        assert config.notify.webhook_url is None

    def test_full(self) -> None:
        data: dict[str, object] = {
            "project": {
                "name": "LuaKit",
                "repo": "example/luakit",
                "trunk_branch": "trunk",
                "tag_prefix": "v",
                "build_metadata": "lua5.4.8",
                "source_paths": ["Sources/"],
            },
            "version_file": {"path": "README.md", "pattern": r'from: "([^"]+)"'},
            "stages": {
                "build_test": ["swift", "test"],
                "lint": "swiftlint lint --strict",
                "timeout_seconds": 600,
            },
            "assets": {"binary_dir": ".build/release", "platform": "macos"},
            "reasoning": {"model": "claude-test", "timeout_seconds": 5},
            "notify": {"timeout_seconds": 3},
        }
        config = Config.from_dict(data)

        assert config.project.name == "LuaKit"
        assert config.project.repo == "example/luakit"
        assert config.project.trunk_branch == "trunk"
        assert config.project.tag_prefix == "v"
        assert config.project.build_metadata == "lua5.4.8"
        assert config.project.source_paths == ("Sources/",)
        assert config.version_file.path == "README.md"
        assert config.stages.build_test == ("swift", "test")
        assert config.stages.lint == ("swiftlint", "lint", "--strict")
        assert config.stages.timeout_seconds == 600.0
        assert config.assets.platform == "macos"
        assert config.reasoning.model == "claude-test"
        assert config.reasoning.timeout_seconds == 5.0
        assert config.notify.timeout_seconds == 3.0

    def test_secrets_from_env(self) -> None:
        env = {"ANTHROPIC_API_KEY": "sk-test", "SLACK_WEBHOOK": "https://hooks.example/x"}
        config = Config.from_dict({}, env)
        assert config.reasoning.api_key == "sk-test"
        assert config.reasoning.available is True
        assert config.notify.webhook_url == "https://hooks.example/x"

    def test_webhook_env_precedence(self) -> None:
        env = {
            "AUTOREL_WEBHOOK_URL": "https://hooks.example/primary",
            "SLACK_WEBHOOK": "https://hooks.example/legacy",
        }
        assert Config.from_dict({}, env).notify.webhook_url == "https://hooks.example/primary"

    def test_reasoning_can_be_disabled(self) -> None:
        config = Config.from_dict({"reasoning": {"enabled": False}}, {"ANTHROPIC_API_KEY": "k"})
        assert config.reasoning.available is False


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "autorel.toml")
        assert isinstance(result, Ok)
        assert result.value.project.trunk_branch == "main"

    def test_loads_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "autorel.toml"
        path.write_text(
            '[project]\nname = "demo"\ntag_prefix = "v"\n\n[version_file]\npath = "VERSION.txt"\n',
            encoding="utf-8",
        )
        result = load_config(path)
        assert isinstance(result, Ok)
        assert result.value.project.name == "demo"
        assert result.value.version_file.path == "VERSION.txt"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "autorel.toml"
        path.write_text("[project\nname=", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message
        assert result.error.path == path

    def test_pattern_without_group_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "autorel.toml"
        path.write_text("[version_file]\npattern = 'version = .*'\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "group" in result.error.message

    def test_invalid_pattern_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "autorel.toml"
        path.write_text("[version_file]\npattern = '(unclosed'\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)

    def test_bad_repo_slug_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "autorel.toml"
        path.write_text('[project]\nrepo = "just-a-name"\n', encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "owner/name" in result.error.message
