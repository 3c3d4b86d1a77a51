"""Tag and release publishing.

Per tag the publisher walks NOT_TAGGED -> TAGGED_LOCAL -> TAGGED_REMOTE ->
RELEASED. Existence is checked at both scopes before any mutation, so a run
picks up wherever a previous (possibly failed or concurrent) run stopped:

- tag on the remote: no local creation and no push;
- tag only local: push it as is;
- no tag anywhere: create an annotated tag at the target, then push.

The release record is only created once the tag is remote and no release
exists yet. Assets are uploaded on every run with overwrite semantics.
Tags are never forced or moved. A tag that already exists (before the run
or because a racing run pushed it first) is only reused when it points at
the same commit; otherwise the run stops without touching that release.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from autorel.core.result import Err, Ok, Result
from autorel.git.repository import GitError
from autorel.output.console import ConsoleProtocol, Style
from autorel.services.release.errors import ReleaseError
from autorel.services.release.model import (
    PublishedAsset,
    PublishOutcome,
    ReleaseRecord,
    TagState,
    VersionDecision,
)


class TagStore(Protocol):
    def local_tag_exists(self, tag: str) -> Result[bool, GitError]: ...

    def remote_tag_exists(self, remote: str, tag: str) -> Result[bool, GitError]: ...

    def resolve_commit(self, ref: str = "HEAD") -> Result[str, GitError]: ...

    def remote_tag_commit(self, remote: str, tag: str) -> Result[str | None, GitError]: ...

    def create_annotated_tag(self, tag: str, *, message: str, target: str) -> Result[None, GitError]: ...

    def push_tag(self, remote: str, tag: str) -> Result[None, GitError]: ...


class ReleaseHost(Protocol):
    def release_exists(self, tag: str) -> Result[bool, ReleaseError]: ...

    def asset_names(self, tag: str) -> Result[tuple[str, ...], ReleaseError]: ...

    def create_release(self, record: ReleaseRecord, *, notes_file: Path) -> Result[bool, ReleaseError]: ...

    def upload_assets(self, tag: str, assets: tuple[PublishedAsset, ...]) -> Result[int, ReleaseError]: ...


@dataclass(frozen=True, slots=True)
class TagSnapshot:
    local: bool
    remote: bool
    released: bool

    @property
    def state(self) -> TagState:
        if self.released:
            return TagState.RELEASED
        if self.remote:
            return TagState.TAGGED_REMOTE
        if self.local:
            return TagState.TAGGED_LOCAL
        return TagState.NOT_TAGGED


def _git_failed(message: str, e: GitError) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=message, hint=e.message)


def inspect_tag_state(
    *,
    tags: TagStore,
    host: ReleaseHost,
    remote: str,
    tag: str,
) -> Result[TagSnapshot, ReleaseError]:
    """Query both scopes and the hosting service; nothing is cached."""
    local = tags.local_tag_exists(tag)
    if isinstance(local, Err):
        return Err(_git_failed(f"failed to check local tag {tag}", local.error))

    on_remote = tags.remote_tag_exists(remote, tag)
    if isinstance(on_remote, Err):
        return Err(_git_failed(f"failed to check tag {tag} on {remote}", on_remote.error))

    released = False
    if on_remote.value:
        exists = host.release_exists(tag)
        if isinstance(exists, Err):
            return exists
        released = exists.value

    return Ok(TagSnapshot(local=local.value, remote=on_remote.value, released=released))


def release_is_complete(
    *,
    tags: TagStore,
    host: ReleaseHost,
    remote: str,
    tag: str,
    asset_names: tuple[str, ...],
) -> Result[bool, ReleaseError]:
    """True when ``tag`` is RELEASED and carries every asset in ``asset_names``."""
    seen = inspect_tag_state(tags=tags, host=host, remote=remote, tag=tag)
    if isinstance(seen, Err):
        return seen
    if not seen.value.released:
        return Ok(False)
    uploaded = host.asset_names(tag)
    if isinstance(uploaded, Err):
        return uploaded
    return Ok(set(asset_names) <= set(uploaded.value))


def _local_tag_commit(tags: TagStore, tag: str) -> Result[str, ReleaseError]:
    commit = tags.resolve_commit(f"refs/tags/{tag}")
    if isinstance(commit, Err):
        return Err(_git_failed(f"failed to resolve tag {tag}", commit.error))
    return commit


def _remote_tag_commit(tags: TagStore, remote: str, tag: str) -> Result[str, ReleaseError]:
    commit = tags.remote_tag_commit(remote, tag)
    if isinstance(commit, Err):
        return Err(_git_failed(f"failed to resolve tag {tag} on {remote}", commit.error))
    if commit.value is None:
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"tag {tag} reported on {remote} but not listed by ls-remote",
            )
        )
    return Ok(commit.value)


def publish_release(
    *,
    tags: TagStore,
    host: ReleaseHost,
    decision: VersionDecision,
    record: ReleaseRecord,
    notes_file: Path,
    target: str,
    remote: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[PublishOutcome, ReleaseError]:
    """Bring ``record.tag`` to RELEASED, skipping every step already done.

    In dry-run mode the state checks still run, but mutations are only
    printed; the returned flags describe the planned steps.

    When a tag of the same name already points at another commit, the outcome
    carries ``superseded_by`` and no release or asset is touched.
    """
    tag = record.tag
    if not decision.should_release:
        return Ok(PublishOutcome(tag=tag, state=TagState.NOT_TAGGED))

    def superseded(state: TagState, commit: str) -> Result[PublishOutcome, ReleaseError]:
        console.warning(
            f"tag {tag} already points at {commit[:12]}, not {target[:12]}: "
            "leaving it to the run that created it"
        )
        return Ok(PublishOutcome(tag=tag, state=state, superseded_by=commit))

    seen = inspect_tag_state(tags=tags, host=host, remote=remote, tag=tag)
    if isinstance(seen, Err):
        return seen
    p = seen.value
    console.print(f"tag {tag}: {p.state}", Style.DIM)

    tag_created = False
    tag_pushed = False

    if p.remote:
        existing = _remote_tag_commit(tags, remote, tag)
        if isinstance(existing, Err):
            return existing
        if existing.value != target:
            return superseded(p.state, existing.value)
        console.print(f"tag {tag} already on {remote}, skipping create/push", Style.DIM)
    else:
        reuse_local = p.local
        if not p.local:
            console.print(f"git tag -a {tag} {target[:12]}", Style.DIM)
            if not dry_run:
                created = tags.create_annotated_tag(tag, message=f"Release {tag}", target=target)
                if isinstance(created, Err):
                    if not created.error.already_exists:
                        return Err(_git_failed(f"failed to create tag {tag}", created.error))
                    console.print(f"tag {tag} created concurrently", Style.DIM)
                    reuse_local = True
                else:
                    tag_created = True
            else:
                tag_created = True

        if reuse_local:
            existing = _local_tag_commit(tags, tag)
            if isinstance(existing, Err):
                return existing
            if existing.value != target:
                return superseded(TagState.TAGGED_LOCAL, existing.value)

        console.print(f"git push {remote} refs/tags/{tag}", Style.DIM)
        if not dry_run:
            pushed = tags.push_tag(remote, tag)
            if isinstance(pushed, Err):
                if not pushed.error.already_exists:
                    return Err(_git_failed(f"failed to push tag {tag}", pushed.error))
                existing = _remote_tag_commit(tags, remote, tag)
                if isinstance(existing, Err):
                    return existing
                if existing.value != target:
                    return superseded(TagState.TAGGED_REMOTE, existing.value)
                console.print(f"tag {tag} pushed concurrently at the same commit", Style.DIM)
            else:
                tag_pushed = True
        else:
            tag_pushed = True

    release_created = False
    if p.released:
        console.print(f"release {tag} already exists, skipping create", Style.DIM)
    else:
        console.print(f"gh release create {tag} --notes-file {notes_file.name}", Style.DIM)
        if not dry_run:
            created_release = host.create_release(record, notes_file=notes_file)
            if isinstance(created_release, Err):
                return created_release
            release_created = created_release.value
            if not release_created:
                console.print(f"release {tag} created concurrently, skipping", Style.DIM)
        else:
            release_created = True

    names = ", ".join(a.name for a in record.assets) or "no assets"
    console.print(f"gh release upload {tag} --clobber ({names})", Style.DIM)
    uploaded = len(record.assets)
    if not dry_run:
        upload = host.upload_assets(tag, record.assets)
        if isinstance(upload, Err):
            return upload
        uploaded = upload.value

    return Ok(
        PublishOutcome(
            tag=tag,
            state=TagState.RELEASED,
            tag_created=tag_created,
            tag_pushed=tag_pushed,
            release_created=release_created,
            assets_uploaded=uploaded,
        )
    )
