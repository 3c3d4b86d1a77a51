from __future__ import annotations

from pathlib import Path

from autorel.core.config import Config, ProjectConfig, VersionFileConfig
from autorel.core.result import Err, Ok
from autorel.output.console import MockConsole
from autorel.services.release.changes import (
    collect_changes,
    latest_release_tag,
    parse_log,
    release_tags,
    resolve_current_version,
)
from autorel.services.release.semver import SemVer

from ._fakes import FakeCommit, FakeRepository, render_log


def _commits() -> list[FakeCommit]:
    return [
        FakeCommit("a" * 40, "feat: add table bridging", numstat="120\t4\tSources/LuaKit/LuaTable.swift\n"),
        FakeCommit("b" * 40, "fix: leak in LuaState\n\nCloses #12", author="Grace", numstat="3\t1\tSources/LuaKit/LuaState.swift\n-\t-\tdocs/logo.png\n"),
        FakeCommit("c" * 40, "docs: readme", numstat="2\t2\tREADME.md\n"),
    ]


def test_parse_log_oldest_first_with_stats() -> None:
    commits = parse_log(render_log(_commits()))

    assert [c.subject for c in commits] == ["feat: add table bridging", "fix: leak in LuaState", "docs: readme"]
    fix = commits[1]
    assert fix.author == "Grace"
    assert fix.body == "Closes #12"
    assert [(f.path, f.additions, f.deletions) for f in fix.files] == [
        ("Sources/LuaKit/LuaState.swift", 3, 1),
        ("docs/logo.png", 0, 0),
    ]


def test_parse_log_empty() -> None:
    assert parse_log("") == ()


def test_collect_changes_since_tag(tmp_path: Path) -> None:
    repo = FakeRepository(tmp_path, commits=_commits(), tags={"1.2.3": 1})

    result = collect_changes(repo=repo, base_tag="1.2.3")  # type: ignore[arg-type]

    assert isinstance(result, Ok)
    changes = result.value
    assert changes.base_tag == "1.2.3"
    assert changes.head_sha == "c" * 40
    assert [c.sha[0] for c in changes.commits] == ["b", "c"]
    assert changes.authors == ("Grace", "Ada")


def test_collect_changes_up_to_tag(tmp_path: Path) -> None:
    repo = FakeRepository(tmp_path, commits=_commits(), tags={"1.2.3": 1, "1.2.4": 2})

    result = collect_changes(repo=repo, base_tag="1.2.3", head="1.2.4")  # type: ignore[arg-type]

    assert isinstance(result, Ok)
    assert result.value.head_sha == "b" * 40
    assert [c.sha[0] for c in result.value.commits] == ["b"]


def test_collect_changes_without_tag_is_whole_history(tmp_path: Path) -> None:
    repo = FakeRepository(tmp_path, commits=_commits())

    result = collect_changes(repo=repo, base_tag=None)  # type: ignore[arg-type]

    assert isinstance(result, Ok)
    assert len(result.value.commits) == 3


def test_collect_changes_refuses_shallow_clone(tmp_path: Path) -> None:
    repo = FakeRepository(tmp_path, commits=_commits(), shallow=True)

    result = collect_changes(repo=repo, base_tag=None)  # type: ignore[arg-type]

    assert isinstance(result, Err)
    assert result.error.kind == "history_unavailable"
    assert result.error.fatal
    assert result.error.hint is not None


def test_changeset_file_totals(tmp_path: Path) -> None:
    commits = [
        FakeCommit("a" * 40, "fix: one", numstat="3\t1\tsrc/a.py\n"),
        FakeCommit("b" * 40, "fix: two", numstat="2\t0\tsrc/a.py\n1\t1\tsrc/b.py\n"),
    ]
    result = collect_changes(repo=FakeRepository(tmp_path, commits=commits), base_tag=None)  # type: ignore[arg-type]

    assert isinstance(result, Ok)
    files = {f.path: (f.additions, f.deletions) for f in result.value.files}
    assert files == {"src/a.py": (5, 1), "src/b.py": (1, 1)}
    assert "src/a.py (+5/-1)" in result.value.summary()


def test_latest_release_tag_ignores_foreign_tags(tmp_path: Path) -> None:
    repo = FakeRepository(
        tmp_path,
        tags={"1.2.3": 1, "1.10.0+lua5.4.8": 2, "nightly": 2, "v9.9.9": 2, "1.9.0": 1},
    )

    result = latest_release_tag(repo=repo, prefix="")  # type: ignore[arg-type]

    assert result == Ok(("1.10.0+lua5.4.8", SemVer(1, 10, 0)))


def test_latest_release_tag_none(tmp_path: Path) -> None:
    result = latest_release_tag(repo=FakeRepository(tmp_path), prefix="")  # type: ignore[arg-type]
    assert result == Ok(None)


class TestResolveCurrentVersion:
    def test_prefers_latest_tag(self, tmp_path: Path) -> None:
        result = resolve_current_version(
            latest=("1.2.3", SemVer(1, 2, 3)),
            config=Config(),
            repo_root=tmp_path,
            console=MockConsole(),
        )
        assert result == Ok(SemVer(1, 2, 3))

    def test_embedded_version(self, tmp_path: Path) -> None:
        (tmp_path / "Package.swift").write_text('let version = "0.4.1"\n', encoding="utf-8")
        config = Config(version_file=VersionFileConfig(path="Package.swift"))

        result = resolve_current_version(latest=None, config=config, repo_root=tmp_path, console=MockConsole())

        assert result == Ok(SemVer(0, 4, 1))

    def test_baseline(self, tmp_path: Path) -> None:
        config = Config(project=ProjectConfig(baseline_version="0.1.0"))
        result = resolve_current_version(latest=None, config=config, repo_root=tmp_path, console=MockConsole())
        assert result == Ok(SemVer(0, 1, 0))

    def test_invalid_baseline_is_config_error(self, tmp_path: Path) -> None:
        config = Config(project=ProjectConfig(baseline_version="one"))
        result = resolve_current_version(latest=None, config=config, repo_root=tmp_path, console=MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind == "config_invalid"


def test_release_tags_sorted_by_version(tmp_path: Path) -> None:
    repo = FakeRepository(tmp_path, tags={"1.10.0": 3, "1.9.0": 2, "nightly": 3, "1.2.3": 1})

    result = release_tags(repo=repo, prefix="")  # type: ignore[arg-type]

    assert isinstance(result, Ok)
    assert [tag for tag, _ in result.value] == ["1.2.3", "1.9.0", "1.10.0"]
