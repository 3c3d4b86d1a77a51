"""Pipeline coordinator: gate stages, release stage, notification.

The release stage runs only on the trunk branch and only when every gate
passed. Its steps run strictly in order (changes, decision, notes, assets,
publish, propagate). When the latest release tag was left unfinished by an
earlier run (tag not pushed, release or assets missing) that tag is completed
instead of planning a new one. Fatal errors stop the stage before anything is
mutated; soft failures are absorbed by the step that hit them. A notification
is always attempted last and can never fail the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from autorel.core.config import Config
from autorel.core.errors import ErrorCode
from autorel.core.result import Err, Ok, Result
from autorel.git.repository import Repository
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.http import HttpClient
from autorel.services.release.assets import build_release_assets, release_asset_names
from autorel.services.release.changes import (
    collect_changes,
    ensure_full_history,
    latest_release_tag,
    release_tags,
    resolve_current_version,
)
from autorel.services.release.decider import decide_version
from autorel.services.release.errors import ReleaseError
from autorel.services.release.gh import GhReleaseHost, ensure_gh_available
from autorel.services.release.model import (
    ChangeSet,
    PublishOutcome,
    ReleaseNotes,
    ReleaseRecord,
    VersionDecision,
)
from autorel.services.release.notes import (
    compose_release_notes,
    notes_path_for_tag,
    write_notes_file,
)
from autorel.services.release.notify import send_notification
from autorel.services.release.propagator import PropagateOutcome, propagate_version
from autorel.services.release.publisher import ReleaseHost, publish_release, release_is_complete
from autorel.services.release.reasoning import ReasoningService, build_reasoning_service
from autorel.services.release.semver import SemVer, bump_between
from autorel.services.release.stages import (
    StageResult,
    gate_stages,
    run_coverage,
    run_gate_stages,
)

ReleaseOutcome = Literal["released", "no-release", "skipped", "failed", "error"]


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    changes: ChangeSet
    decision: VersionDecision
    tag: str


@dataclass(slots=True)
class RunReport:
    """What one run did, in order; built up as the run progresses."""

    stages: list[StageResult] = field(default_factory=list)
    outcome: ReleaseOutcome = "skipped"
    detail: str = ""
    plan: ReleasePlan | None = None
    notes: ReleaseNotes | None = None
    publish: PublishOutcome | None = None
    propagate: PropagateOutcome | None = None
    error: ReleaseError | None = None

    @property
    def gates_passed(self) -> bool:
        return all(s.passed for s in self.stages if s.name != "coverage")

    @property
    def succeeded(self) -> bool:
        return self.gates_passed and self.outcome not in ("failed", "error")

    @property
    def exit_code(self) -> ErrorCode:
        if self.outcome == "error":
            return ErrorCode.CONFIG_ERROR
        if not self.gates_passed:
            return ErrorCode.GATE_FAILED
        if self.outcome == "failed":
            return ErrorCode.RELEASE_FAILED
        return ErrorCode.OK

    def summary(self) -> dict[str, str]:
        """``{stage: result}`` mapping for the notification sink."""
        out = {s.name: s.status for s in self.stages}
        release = self.outcome
        if self.plan is not None and self.outcome in ("released", "failed"):
            out["release"] = f"{release} {self.plan.tag}"
        elif self.detail:
            out["release"] = f"{release} ({self.detail})"
        else:
            out["release"] = release
        return out


def plan_release(
    *,
    repo: Repository,
    config: Config,
    service: ReasoningService | None,
    console: ConsoleProtocol,
) -> Result[ReleasePlan, ReleaseError]:
    """Read-only part of the release stage: changes and version decision."""
    project = config.project
    latest = latest_release_tag(repo=repo, prefix=project.tag_prefix)
    if isinstance(latest, Err):
        return latest
    base_tag = latest.value[0] if latest.value is not None else None

    changes = collect_changes(repo=repo, base_tag=base_tag)
    if isinstance(changes, Err):
        return changes

    current = resolve_current_version(
        latest=latest.value,
        config=config,
        repo_root=repo.path,
        console=console,
    )
    if isinstance(current, Err):
        return current

    decision = decide_version(
        changes=changes.value,
        current=current.value,
        service=service,
        project=project,
        console=console,
    )
    tag = decision.next.to_tag(prefix=project.tag_prefix, build_metadata=project.build_metadata)
    return Ok(ReleasePlan(changes=changes.value, decision=decision, tag=tag))


def find_unfinished_release(
    *,
    repo: Repository,
    config: Config,
    host: ReleaseHost,
    tags: list[tuple[str, SemVer]],
) -> Result[ReleasePlan | None, ReleaseError]:
    """Plan that completes the latest release tag, if an earlier run stopped short.

    The latest tag is unfinished when it is not on the remote, has no release
    record, or lacks one of the assets this configuration builds. The plan
    targets that tag's commit, with the window since the tag before it.
    """
    if not tags:
        return Ok(None)
    project = config.project
    tag, version = tags[-1]
    complete = release_is_complete(
        tags=repo,
        host=host,
        remote=project.remote,
        tag=tag,
        asset_names=release_asset_names(config=config, tag=tag),
    )
    if isinstance(complete, Err):
        return complete
    if complete.value:
        return Ok(None)

    previous = tags[-2] if len(tags) > 1 else None
    current = previous[1] if previous is not None else SemVer(0, 0, 0)
    if not version > current:
        return Ok(None)
    changes = collect_changes(
        repo=repo,
        base_tag=previous[0] if previous is not None else None,
        head=tag,
    )
    if isinstance(changes, Err):
        return changes

    decision = VersionDecision(
        current=current,
        bump=bump_between(current, version),
        next=version,
        should_release=True,
        rationale=f"resuming unfinished release {tag}",
    )
    return Ok(ReleasePlan(changes=changes.value, decision=decision, tag=tag))


def _resolve_host(
    host: ReleaseHost | None,
    *,
    repo: Repository,
    config: Config,
) -> Result[ReleaseHost, ReleaseError]:
    if host is not None:
        return Ok(host)
    gh = ensure_gh_available()
    if isinstance(gh, Err):
        return gh
    return Ok(GhReleaseHost(cwd=repo.path, repo=config.project.repo))


def _release_stage(
    *,
    report: RunReport,
    repo: Repository,
    config: Config,
    branch: str | None,
    service: ReasoningService | None,
    host: ReleaseHost | None,
    console: ConsoleProtocol,
    dry_run: bool,
) -> None:
    project = config.project

    def fail(error: ReleaseError) -> None:
        report.error = error
        report.outcome = "error" if error.fatal else "failed"
        report.detail = error.kind
        console.error(error.pretty())

    console.header("Release")
    full = ensure_full_history(repo=repo)
    if isinstance(full, Err):
        fail(full.error)
        return

    tags = release_tags(repo=repo, prefix=project.tag_prefix)
    if isinstance(tags, Err):
        fail(tags.error)
        return

    plan: ReleasePlan | None = None
    if tags.value:
        resolved = _resolve_host(host, repo=repo, config=config)
        if isinstance(resolved, Err):
            fail(resolved.error)
            return
        host = resolved.value
        unfinished = find_unfinished_release(repo=repo, config=config, host=host, tags=tags.value)
        if isinstance(unfinished, Err):
            fail(unfinished.error)
            return
        plan = unfinished.value
        if plan is not None:
            console.warning(f"{plan.tag} was tagged but never fully released, completing it first")

    if plan is None:
        planned = plan_release(repo=repo, config=config, service=service, console=console)
        if isinstance(planned, Err):
            fail(planned.error)
            return
        plan = planned.value
    report.plan = plan
    d = plan.decision
    console.print(f"decision ({d.source}): {d.bump}, {d.current} -> {d.next}: {d.rationale}")

    if not d.should_release:
        report.outcome = "no-release"
        report.detail = d.rationale
        console.success(f"no release: {d.rationale}")
        return

    resolved = _resolve_host(host, repo=repo, config=config)
    if isinstance(resolved, Err):
        fail(resolved.error)
        return
    host = resolved.value

    notes = compose_release_notes(
        decision=d,
        changes=plan.changes,
        tag=plan.tag,
        service=service,
        project=project,
        console=console,
    )
    report.notes = notes
    if dry_run:
        notes_file = repo.path / notes_path_for_tag(notes_dir=project.notes_dir, tag=plan.tag)
    else:
        written = write_notes_file(repo_root=repo.path, notes_dir=project.notes_dir, notes=notes)
        if isinstance(written, Err):
            fail(written.error)
            return
        notes_file = written.value

    assets = build_release_assets(
        repo=repo,
        config=config,
        tag=plan.tag,
        target=plan.changes.head_sha,
        console=console,
        dry_run=dry_run,
    )
    if isinstance(assets, Err):
        fail(assets.error)
        return

    record = ReleaseRecord(
        tag=plan.tag,
        title=f"{project.name} {plan.tag}",
        notes=notes.text,
        assets=assets.value,
    )
    published = publish_release(
        tags=repo,
        host=host,
        decision=d,
        record=record,
        notes_file=notes_file,
        target=plan.changes.head_sha,
        remote=project.remote,
        console=console,
        dry_run=dry_run,
    )
    if isinstance(published, Err):
        fail(published.error)
        return
    report.publish = published.value
    if published.value.superseded_by is not None:
        report.outcome = "skipped"
        report.detail = f"{plan.tag} already points at {published.value.superseded_by[:12]}"
        return

    propagated = propagate_version(
        repo=repo,
        config=config,
        version=d.next,
        branch=branch,
        state=published.value.state,
        console=console,
        dry_run=dry_run,
    )
    if isinstance(propagated, Err):
        fail(propagated.error)
        return
    report.propagate = propagated.value

    report.outcome = "released"
    console.success(f"released {plan.tag}" + (" (dry run)" if dry_run else ""))


def run_pipeline(
    *,
    repo: Repository,
    config: Config,
    console: ConsoleProtocol,
    http: HttpClient,
    branch: str | None = None,
    host: ReleaseHost | None = None,
    service: ReasoningService | None = None,
    skip_gates: bool = False,
    dry_run: bool = False,
) -> RunReport:
    """Run the whole pipeline once.

    ``branch`` defaults to the checked-out branch; CI runners on a detached
    HEAD pass it explicitly. ``service`` defaults to the configured reasoning
    service (None when disabled or no API key is set).
    """
    report = RunReport()
    branch = branch or repo.current_branch()
    if service is None:
        service = build_reasoning_service(config=config.reasoning, http=http, project=config.project.name)

    try:
        if skip_gates:
            console.print("gate stages skipped", Style.DIM)
        else:
            console.header("Gates")
            report.stages.extend(
                run_gate_stages(
                    stages=gate_stages(config.stages),
                    cwd=repo.path,
                    timeout=config.stages.timeout_seconds,
                    console=console,
                )
            )
            report.stages.append(
                run_coverage(
                    config=config.stages,
                    build_test=report.stages[0],
                    cwd=repo.path,
                    console=console,
                )
            )

        if not report.gates_passed:
            report.outcome = "skipped"
            report.detail = "gate failed"
        elif branch != config.project.trunk_branch:
            report.outcome = "skipped"
            report.detail = f"not on {config.project.trunk_branch}"
            console.print(f"branch {branch or '(detached)'}: release stage skipped", Style.DIM)
        else:
            _release_stage(
                report=report,
                repo=repo,
                config=config,
                branch=branch,
                service=service,
                host=host,
                console=console,
                dry_run=dry_run,
            )
    except Exception:
        report.outcome = "error"
        report.detail = "unexpected error"
        raise
    finally:
        send_notification(
            http=http,
            config=config.notify,
            project=config.project.name,
            status="success" if report.succeeded else "failure",
            summary=report.summary(),
            console=console,
        )

    return report
