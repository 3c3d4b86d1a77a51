"""Hosting API adapter built on the GitHub CLI (`gh`).

Reads are retried on transient network errors; writes are not retried here.
Their idempotency comes from the publisher's existence checks and from
treating "already exists" answers as success.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from time import sleep

from autorel.core.result import Err, Ok, Result
from autorel.core.structured import as_obj_list, as_str_dict, get_str
from autorel.platform.process import ProcessError
from autorel.platform.process import run as run_process
from autorel.services.release.errors import ReleaseError
from autorel.services.release.model import PublishedAsset, ReleaseRecord
from autorel.services.release.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
    GH_UPLOAD_TIMEOUT_SECONDS,
)

_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "tls handshake timeout",
    "network is unreachable",
    "http 429",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = error.output.lower()
    if error.timed_out:
        return True
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def _is_not_found(error: ProcessError) -> bool:
    # Only gh's own answer for a missing release. A wrong --repo or a token
    # without access also mentions "not found" and must stay an error.
    return "release not found" in error.output.lower()


def _is_already_exists(error: ProcessError) -> bool:
    text = error.output.lower()
    return "already exists" in text or "already_exists" in text


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def run_gh_read(
    *,
    cwd: Path,
    cmd: list[str],
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ProcessError]:
    """Run a read-only gh command, retrying transient failures with linear backoff."""
    attempts = max(1, retry_attempts)
    result: Result[str, ProcessError] = Err(
        ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr="not run")
    )
    for attempt in range(attempts):
        result = run_process(cmd, cwd=cwd, timeout=timeout)
        if isinstance(result, Ok):
            return result
        if attempt < attempts - 1 and _is_transient_gh_error(result.error):
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue
        return result
    return result


class GhReleaseHost:
    """Release records and assets of ``repo`` (owner/name) via `gh release`."""

    def __init__(self, *, cwd: Path, repo: str | None) -> None:
        self.cwd = cwd
        self.repo = repo

    def _repo_args(self) -> list[str]:
        # Without --repo, gh resolves the repository from the checkout's remote.
        return ["--repo", self.repo] if self.repo else []

    def release_exists(self, tag: str) -> Result[bool, ReleaseError]:
        result = run_gh_read(
            cwd=self.cwd,
            cmd=["gh", "release", "view", tag, *self._repo_args(), "--json", "tagName"],
        )
        if isinstance(result, Ok):
            return Ok(True)
        if _is_not_found(result.error):
            return Ok(False)
        return Err(
            ReleaseError(
                kind="gh_failed",
                message=f"failed to query release {tag}",
                hint=result.error.stderr.strip() or None,
            )
        )

    def asset_names(self, tag: str) -> Result[tuple[str, ...], ReleaseError]:
        """Names of the assets attached to the release of ``tag``."""
        result = run_gh_read(
            cwd=self.cwd,
            cmd=["gh", "release", "view", tag, *self._repo_args(), "--json", "assets"],
        )
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="gh_failed",
                    message=f"failed to list assets of {tag}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        try:
            data = as_str_dict(json.loads(result.value))
        except json.JSONDecodeError as e:
            return Err(ReleaseError(kind="gh_failed", message=f"unexpected gh output: {e}"))
        assets = as_obj_list(data.get("assets")) if data is not None else None
        if assets is None:
            return Err(ReleaseError(kind="gh_failed", message=f"no asset list in gh output for {tag}"))
        names: list[str] = []
        for item in assets:
            entry = as_str_dict(item)
            name = get_str(entry, "name") if entry is not None else None
            if name:
                names.append(name)
        return Ok(tuple(names))

    def create_release(self, record: ReleaseRecord, *, notes_file: Path) -> Result[bool, ReleaseError]:
        """Create the release; Ok(False) when another run created it first."""
        cmd = [
            "gh",
            "release",
            "create",
            record.tag,
            *self._repo_args(),
            "--title",
            record.title,
            "--notes-file",
            str(notes_file),
            "--verify-tag",
        ]
        if record.latest:
            cmd.append("--latest")
        result = run_process(cmd, cwd=self.cwd, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Ok):
            return Ok(True)
        if _is_already_exists(result.error):
            return Ok(False)
        return Err(
            ReleaseError(
                kind="release_failed",
                message=f"failed to create release {record.tag}",
                hint=result.error.stderr.strip() or None,
            )
        )

    def upload_assets(self, tag: str, assets: tuple[PublishedAsset, ...]) -> Result[int, ReleaseError]:
        """Upload with --clobber: an asset of the same name is replaced."""
        if not assets:
            return Ok(0)
        cmd = [
            "gh",
            "release",
            "upload",
            tag,
            *[str(a.path) for a in assets],
            *self._repo_args(),
            "--clobber",
        ]
        result = run_process(cmd, cwd=self.cwd, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="asset_failed",
                    message=f"failed to upload {len(assets)} asset(s) to {tag}",
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(len(assets))
