"""Version-string propagation into the tracked asset.

After a release, the version embedded in one tracked file (README install
snippet, package manifest, ...) is rewritten and committed back to the trunk.
An unchanged file produces no commit, which keeps the trunk free of empty
commits and avoids re-triggering the pipeline for nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from autorel.core.config import Config, VersionFileConfig
from autorel.core.result import Err, Ok, Result
from autorel.git.repository import Repository
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.files import atomic_write_text, read_text
from autorel.services.release.errors import ReleaseError
from autorel.services.release.model import TagState
from autorel.services.release.semver import SemVer

# Marker honoured by common CI services: the bump commit must not start a new run.
SKIP_CI_MARKER = "[skip ci]"


@dataclass(frozen=True, slots=True)
class PropagateOutcome:
    changed: bool
    committed: bool
    reason: str
    path: Path | None = None
    previous: str | None = None


def bump_commit_message(version: SemVer) -> str:
    return f"chore(release): {version} {SKIP_CI_MARKER}"


def read_embedded_version(
    *,
    repo_root: Path,
    config: VersionFileConfig,
) -> Result[str | None, ReleaseError]:
    """Version string currently embedded in the tracked asset (None if not configured)."""
    if config.path is None:
        return Ok(None)
    path = repo_root / config.path
    text = read_text(path)
    if isinstance(text, Err):
        return Err(ReleaseError(kind="version_file_failed", message=text.error, hint=str(path)))
    m = re.search(config.pattern, text.value)
    if m is None:
        return Ok(None)
    return Ok(m.group(1))


def render_version(text: str, *, pattern: str, version: str) -> tuple[str, str] | None:
    """Replace the first captured version; returns (new_text, previous) or None."""
    m = re.search(pattern, text)
    if m is None:
        return None
    start, end = m.span(1)
    return (text[:start] + version + text[end:], m.group(1))


def propagate_version(
    *,
    repo: Repository,
    config: Config,
    version: SemVer,
    branch: str | None,
    state: TagState,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[PropagateOutcome, ReleaseError]:
    if state is not TagState.RELEASED:
        return Ok(PropagateOutcome(changed=False, committed=False, reason=f"release is {state}"))
    if branch != config.project.trunk_branch:
        return Ok(
            PropagateOutcome(changed=False, committed=False, reason=f"not on trunk ({branch})")
        )
    vf = config.version_file
    if vf.path is None:
        return Ok(
            PropagateOutcome(changed=False, committed=False, reason="no version file configured")
        )

    path = repo.path / vf.path
    text = read_text(path)
    if isinstance(text, Err):
        return Err(ReleaseError(kind="version_file_failed", message=text.error, hint=str(path)))

    rendered = render_version(text.value, pattern=vf.pattern, version=str(version))
    if rendered is None:
        return Err(
            ReleaseError(
                kind="version_file_failed",
                message=f"version pattern not found in {vf.path}",
                hint=vf.pattern,
            )
        )
    new_text, previous = rendered
    if new_text == text.value:
        console.print(f"{vf.path} already at {version}, nothing to commit", Style.DIM)
        return Ok(
            PropagateOutcome(
                changed=False,
                committed=False,
                reason="unchanged",
                path=path,
                previous=previous,
            )
        )

    message = bump_commit_message(version)
    console.print(f"{vf.path}: {previous} -> {version}", Style.DIM)
    console.print(f"git commit -m {message!r}", Style.DIM)
    console.print(f"git push {config.project.remote} HEAD:{branch}", Style.DIM)
    if dry_run:
        return Ok(
            PropagateOutcome(
                changed=True,
                committed=False,
                reason="dry-run",
                path=path,
                previous=previous,
            )
        )

    try:
        atomic_write_text(path, new_text)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="version_file_failed",
                message=f"failed to write {vf.path}: {e}",
                hint=str(path),
            )
        )

    committed = repo.commit_paths([vf.path], message=message)
    if isinstance(committed, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to commit {vf.path}",
                hint=committed.error.message,
            )
        )
    pushed = repo.push_head(config.project.remote, config.project.trunk_branch)
    if isinstance(pushed, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to push version bump to {branch}",
                hint=pushed.error.message,
            )
        )

    return Ok(
        PropagateOutcome(
            changed=True,
            committed=True,
            reason="committed",
            path=path,
            previous=previous,
        )
    )
