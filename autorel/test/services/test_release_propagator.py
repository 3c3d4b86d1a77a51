from __future__ import annotations

from pathlib import Path

import pytest

from autorel.core.config import Config, ProjectConfig, VersionFileConfig
from autorel.core.result import Err, Ok
from autorel.output.console import MockConsole
from autorel.services.release.model import TagState
from autorel.services.release.propagator import (
    bump_commit_message,
    propagate_version,
    read_embedded_version,
    render_version,
)
from autorel.services.release.semver import SemVer

from ._fakes import FakeRepository

README = '.package(url: "https://example.test/LuaKit", from: "1.2.3")\n'
PATTERN = r'from: "([^"]+)"'


@pytest.fixture
def config() -> Config:
    return Config(
        project=ProjectConfig(trunk_branch="main", remote="origin"),
        version_file=VersionFileConfig(path="README.md", pattern=PATTERN),
    )


def _propagate(repo: FakeRepository, config: Config, version: SemVer, **overrides: object):
    kwargs: dict[str, object] = {
        "branch": "main",
        "state": TagState.RELEASED,
        "dry_run": False,
    }
    kwargs.update(overrides)
    return propagate_version(
        repo=repo,  # type: ignore[arg-type]
        config=config,
        version=version,
        console=MockConsole(),
        **kwargs,  # type: ignore[arg-type]
    )


def test_rewrites_commits_and_pushes(tmp_path: Path, config: Config) -> None:
    (tmp_path / "README.md").write_text(README, encoding="utf-8")
    repo = FakeRepository(tmp_path)

    result = _propagate(repo, config, SemVer(1, 2, 4))

    assert isinstance(result, Ok)
    assert result.value.committed
    assert result.value.previous == "1.2.3"
    assert 'from: "1.2.4"' in (tmp_path / "README.md").read_text(encoding="utf-8")
    assert repo.committed == [(["README.md"], "chore(release): 1.2.4 [skip ci]")]
    assert repo.pushed_heads == [("origin", "main")]


def test_same_version_is_a_no_op(tmp_path: Path, config: Config) -> None:
    (tmp_path / "README.md").write_text(README, encoding="utf-8")
    repo = FakeRepository(tmp_path)

    result = _propagate(repo, config, SemVer(1, 2, 3))

    assert isinstance(result, Ok)
    assert result.value.changed is False
    assert result.value.committed is False
    assert result.value.reason == "unchanged"
    assert repo.committed == []
    assert repo.pushed_heads == []


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"state": TagState.TAGGED_REMOTE}, "release is tagged_remote"),
        ({"branch": "feature/x"}, "not on trunk (feature/x)"),
    ],
)
def test_gated_on_release_and_trunk(
    tmp_path: Path, config: Config, overrides: dict[str, object], reason: str
) -> None:
    (tmp_path / "README.md").write_text(README, encoding="utf-8")
    repo = FakeRepository(tmp_path)

    result = _propagate(repo, config, SemVer(1, 2, 4), **overrides)

    assert isinstance(result, Ok)
    assert result.value.reason == reason
    assert repo.committed == []
    assert (tmp_path / "README.md").read_text(encoding="utf-8") == README


def test_no_version_file_configured(tmp_path: Path) -> None:
    result = _propagate(FakeRepository(tmp_path), Config(), SemVer(1, 2, 4))

    assert isinstance(result, Ok)
    assert result.value.reason == "no version file configured"


def test_dry_run_writes_nothing(tmp_path: Path, config: Config) -> None:
    (tmp_path / "README.md").write_text(README, encoding="utf-8")
    repo = FakeRepository(tmp_path)

    result = _propagate(repo, config, SemVer(1, 2, 4), dry_run=True)

    assert isinstance(result, Ok)
    assert result.value.changed and not result.value.committed
    assert (tmp_path / "README.md").read_text(encoding="utf-8") == README


def test_pattern_missing_is_an_error(tmp_path: Path, config: Config) -> None:
    (tmp_path / "README.md").write_text("no version here\n", encoding="utf-8")

    result = _propagate(FakeRepository(tmp_path), config, SemVer(1, 2, 4))

    assert isinstance(result, Err)
    assert result.error.kind == "version_file_failed"


def test_render_version_replaces_first_match_only() -> None:
    text = 'from: "1.0.0"\nfrom: "1.0.0"\n'
    assert render_version(text, pattern=PATTERN, version="2.0.0") == ('from: "2.0.0"\nfrom: "1.0.0"\n', "1.0.0")
    assert render_version("nothing", pattern=PATTERN, version="2.0.0") is None


def test_read_embedded_version(tmp_path: Path) -> None:
    (tmp_path / "README.md").write_text(README, encoding="utf-8")
    config = VersionFileConfig(path="README.md", pattern=PATTERN)
    assert read_embedded_version(repo_root=tmp_path, config=config) == Ok("1.2.3")
    assert read_embedded_version(repo_root=tmp_path, config=VersionFileConfig()) == Ok(None)


def test_bump_commit_message_skips_ci() -> None:
    assert bump_commit_message(SemVer(2, 0, 0)) == "chore(release): 2.0.0 [skip ci]"
