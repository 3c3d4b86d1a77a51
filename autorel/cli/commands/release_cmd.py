from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from autorel.cli.context import CLIContext, build_context
from autorel.core.errors import ErrorCode
from autorel.core.result import Err
from autorel.output.console import Style
from autorel.platform.files import atomic_write_text
from autorel.services.release.errors import ReleaseError
from autorel.services.release.notes import compose_release_notes
from autorel.services.release.pipeline import RunReport, plan_release, run_pipeline
from autorel.services.release.reasoning import ReasoningService, build_reasoning_service


def release_error_code(error: ReleaseError) -> ErrorCode:
    if error.fatal:
        return ErrorCode.CONFIG_ERROR
    if error.kind in {"git_failed", "version_file_failed"}:
        return ErrorCode.IO_ERROR
    if error.kind == "gh_failed":
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.RELEASE_FAILED


def _exit_release_error(ctx: CLIContext, error: ReleaseError) -> NoReturn:
    ctx.console.error(error.message)
    if error.hint:
        ctx.console.print(f"hint: {error.hint}", Style.DIM)
    raise typer.Exit(code=int(release_error_code(error)))


def _service(ctx: CLIContext, *, offline: bool) -> ReasoningService | None:
    if offline:
        return None
    return build_reasoning_service(
        config=ctx.config.reasoning,
        http=ctx.http,
        project=ctx.config.project.name,
    )


def _print_report(ctx: CLIContext, report: RunReport) -> None:
    ctx.console.header("Summary")
    for stage, result in report.summary().items():
        ctx.console.print(f"{stage}: {result}")
    ctx.console.print(f"exit status: {report.exit_code} ({int(report.exit_code)})", Style.DIM)


def run(
    repo: Path | None = typer.Option(None, "--repo", help="Repository checkout (default: cwd)"),
    config: Path | None = typer.Option(None, "--config", help="Config file (default: autorel.toml)"),
    branch: str | None = typer.Option(
        None,
        "--branch",
        envvar="GITHUB_REF_NAME",
        help="Branch being built (default: checked-out branch)",
    ),
    skip_gates: bool = typer.Option(False, "--skip-gates", help="Do not run gate stages"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print mutations without executing"),
) -> None:
    """Run gates, then decide, tag, publish and notify."""
    ctx = build_context(repo_path=repo, config_path=config)
    report = run_pipeline(
        repo=ctx.repo,
        config=ctx.config,
        console=ctx.console,
        http=ctx.http,
        branch=branch,
        skip_gates=skip_gates,
        dry_run=dry_run,
    )
    _print_report(ctx, report)
    raise typer.Exit(code=int(report.exit_code))


def plan(
    repo: Path | None = typer.Option(None, "--repo", help="Repository checkout (default: cwd)"),
    config: Path | None = typer.Option(None, "--config", help="Config file (default: autorel.toml)"),
    offline: bool = typer.Option(False, "--offline", help="Do not consult the reasoning service"),
) -> None:
    """Show the version decision for the pending changes (read-only)."""
    ctx = build_context(repo_path=repo, config_path=config)
    planned = plan_release(
        repo=ctx.repo,
        config=ctx.config,
        service=_service(ctx, offline=offline),
        console=ctx.console,
    )
    if isinstance(planned, Err):
        _exit_release_error(ctx, planned.error)

    p = planned.value
    d = p.decision
    ctx.console.header("Plan")
    ctx.console.print(f"base tag: {p.changes.base_tag or '(none)'}")
    ctx.console.print(f"commits: {len(p.changes.commits)}")
    ctx.console.print(f"bump: {d.bump} ({d.source})")
    ctx.console.print(f"rationale: {d.rationale}", Style.DIM)
    if d.should_release:
        ctx.console.success(f"next release: {p.tag} ({d.current} -> {d.next})")
    else:
        ctx.console.info(f"no release: current version stays {d.current}")


def notes(
    repo: Path | None = typer.Option(None, "--repo", help="Repository checkout (default: cwd)"),
    config: Path | None = typer.Option(None, "--config", help="Config file (default: autorel.toml)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write notes to this file"),
    offline: bool = typer.Option(False, "--offline", help="Use templated notes only"),
) -> None:
    """Render the release notes the next release would get."""
    ctx = build_context(repo_path=repo, config_path=config)
    service = _service(ctx, offline=offline)
    planned = plan_release(repo=ctx.repo, config=ctx.config, service=service, console=ctx.console)
    if isinstance(planned, Err):
        _exit_release_error(ctx, planned.error)

    p = planned.value
    if not p.decision.should_release:
        ctx.console.info(f"no release pending: {p.decision.rationale}")
        raise typer.Exit(code=int(ErrorCode.OK))

    rendered = compose_release_notes(
        decision=p.decision,
        changes=p.changes,
        tag=p.tag,
        service=service,
        project=ctx.config.project,
        console=ctx.console,
    )
    if output is None:
        typer.echo(rendered.text, nl=False)
        return

    try:
        atomic_write_text(output, rendered.text)
    except OSError as e:
        ctx.console.error(f"failed to write {output}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success(f"notes written: {output}")
