"""Change analysis: which commits would go into the next release."""

from __future__ import annotations

from pathlib import Path

from autorel.core.config import Config
from autorel.core.result import Err, Ok, Result
from autorel.git.repository import FIELD_SEP, RECORD_SEP, Repository
from autorel.output.console import ConsoleProtocol, Style
from autorel.services.release.errors import ReleaseError, history_unavailable
from autorel.services.release.model import ChangeSet, CommitRecord, FileStat
from autorel.services.release.propagator import read_embedded_version
from autorel.services.release.semver import SemVer, parse_tag, parse_version


def ensure_full_history(*, repo: Repository) -> Result[None, ReleaseError]:
    shallow = repo.is_shallow()
    if isinstance(shallow, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"cannot inspect repository: {repo.path}",
                hint=shallow.error.message,
            )
        )
    if shallow.value:
        return Err(history_unavailable(f"shallow clone, history is truncated: {repo.path}"))
    return Ok(None)


def release_tags(*, repo: Repository, prefix: str) -> Result[list[tuple[str, SemVer]], ReleaseError]:
    """Semver tags reachable from HEAD, lowest first; tags that don't parse are ignored."""
    tags = repo.merged_tags()
    if isinstance(tags, Err):
        return Err(
            ReleaseError(kind="git_failed", message="failed to list tags", hint=tags.error.message)
        )

    found: list[tuple[str, SemVer]] = []
    for tag in tags.value:
        v = parse_tag(tag, prefix=prefix)
        if v is not None:
            found.append((tag, v))
    found.sort(key=lambda item: item[1])
    return Ok(found)


def latest_release_tag(
    *,
    repo: Repository,
    prefix: str,
) -> Result[tuple[str, SemVer] | None, ReleaseError]:
    """Highest semver tag reachable from HEAD."""
    tags = release_tags(repo=repo, prefix=prefix)
    if isinstance(tags, Err):
        return tags
    return Ok(tags.value[-1] if tags.value else None)


def collect_changes(
    *,
    repo: Repository,
    base_tag: str | None,
    head: str = "HEAD",
) -> Result[ChangeSet, ReleaseError]:
    """Build the ChangeSet for ``base_tag..head`` (whole history if no tag).

    Fails with ``history_unavailable`` on a shallow clone: a truncated log
    would silently under-report changes.
    """
    full = ensure_full_history(repo=repo)
    if isinstance(full, Err):
        return full

    head_sha = repo.resolve_commit(head)
    if isinstance(head_sha, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"cannot resolve {head}",
                hint=head_sha.error.message,
            )
        )

    revision = f"{base_tag}..{head}" if base_tag else head
    log = repo.log_with_numstat(revision)
    if isinstance(log, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"git log failed for {revision}",
                hint=log.error.message,
            )
        )

    return Ok(ChangeSet(base_tag=base_tag, head_sha=head_sha.value, commits=parse_log(log.value)))


def parse_log(output: str) -> tuple[CommitRecord, ...]:
    """Parse ``Repository.log_with_numstat`` output, returning oldest first."""
    commits: list[CommitRecord] = []
    for chunk in output.split(RECORD_SEP):
        if not chunk.strip():
            continue
        parts = chunk.split(FIELD_SEP, 3)
        if len(parts) < 3:
            continue
        sha, author, message = parts[0].strip(), parts[1].strip(), parts[2].strip()
        rest = parts[3] if len(parts) == 4 else ""

        lines = message.splitlines()
        subject = lines[0].strip() if lines else ""
        body = "\n".join(lines[1:]).strip()
        commits.append(
            CommitRecord(
                sha=sha,
                author=author,
                subject=subject,
                body=body,
                files=_parse_numstat(rest),
            )
        )

    commits.reverse()
    return tuple(commits)


def _parse_numstat(text: str) -> tuple[FileStat, ...]:
    out: list[FileStat] = []
    for line in text.splitlines():
        cols = line.split("\t", 2)
        if len(cols) != 3:
            continue
        added, deleted, path = cols
        # Binary files report "-" for both counts.
        out.append(
            FileStat(
                path=path.strip(),
                additions=int(added) if added.isdigit() else 0,
                deletions=int(deleted) if deleted.isdigit() else 0,
            )
        )
    return tuple(out)


def resolve_current_version(
    *,
    latest: tuple[str, SemVer] | None,
    config: Config,
    repo_root: Path,
    console: ConsoleProtocol,
) -> Result[SemVer, ReleaseError]:
    """Latest tag, else the version embedded in the tracked asset, else the baseline."""
    if latest is not None:
        return Ok(latest[1])

    embedded = read_embedded_version(repo_root=repo_root, config=config.version_file)
    if isinstance(embedded, Ok) and embedded.value is not None:
        v = parse_version(embedded.value)
        if v is not None:
            console.print(f"no release tag yet, using embedded version {v}", Style.DIM)
            return Ok(v)

    baseline = parse_version(config.project.baseline_version)
    if baseline is None:
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"invalid baseline_version: {config.project.baseline_version}",
                hint="Expected MAJOR.MINOR.PATCH",
            )
        )
    console.print(f"no release tag yet, using baseline {baseline}", Style.DIM)
    return Ok(baseline)
