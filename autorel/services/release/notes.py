from __future__ import annotations

from pathlib import Path

from autorel.core.config import ProjectConfig
from autorel.core.result import Err, Ok, Result
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.files import atomic_write_text
from autorel.services.release.errors import ReleaseError
from autorel.services.release.model import ChangeSet, ReleaseNotes, VersionDecision
from autorel.services.release.reasoning import ReasoningService


def notes_path_for_tag(*, notes_dir: str, tag: str) -> str:
    # "+" (build metadata) is legal in tags but awkward in file names.
    return f"{notes_dir}/{tag.replace('+', '_')}.md"


def render_template_notes(
    *,
    project: str,
    tag: str,
    decision: VersionDecision,
    changes: ChangeSet,
) -> str:
    """Minimal notes: the version plus a flat commit list and a few statistics."""
    files = changes.files
    lines: list[str] = []
    lines.append(f"# {project} {tag}")
    lines.append("")
    lines.append(f"{decision.bump.capitalize()} release: {decision.current} -> {decision.next}.")
    lines.append("")

    lines.append("## Changes")
    if changes.commits:
        for c in changes.commits:
            lines.append(f"- `{c.short_sha}` {c.subject} ({c.author})")
    else:
        lines.append("- No commits recorded.")
    lines.append("")

    lines.append("## Statistics")
    lines.append(f"- Commits: {len(changes.commits)}")
    lines.append(f"- Files changed: {len(files)}")
    lines.append(f"- Lines added: {sum(f.additions for f in files)}")
    lines.append(f"- Lines removed: {sum(f.deletions for f in files)}")
    lines.append(f"- Contributors: {len(changes.authors)}")

    return "\n".join(lines).rstrip() + "\n"


def compose_release_notes(
    *,
    decision: VersionDecision,
    changes: ChangeSet,
    tag: str,
    service: ReasoningService | None,
    project: ProjectConfig,
    console: ConsoleProtocol,
) -> ReleaseNotes:
    """Prose notes from the reasoning service, or the template when it can't help.

    Never fails: a release is never blocked on prose.
    """
    if service is not None:
        prose = service.write_notes(
            summary=changes.summary(),
            tag=tag,
            previous_tag=changes.base_tag,
            bump=decision.bump,
        )
        if isinstance(prose, Ok):
            return ReleaseNotes(tag=tag, text=prose.value.rstrip() + "\n", source="service")
        console.warning(
            f"release notes fall back to template ({prose.error.kind}: {prose.error.message})"
        )
    else:
        console.print("reasoning service not configured, using templated notes", Style.DIM)

    text = render_template_notes(project=project.name, tag=tag, decision=decision, changes=changes)
    return ReleaseNotes(tag=tag, text=text, source="template")


def write_notes_file(
    *,
    repo_root: Path,
    notes_dir: str,
    notes: ReleaseNotes,
) -> Result[Path, ReleaseError]:
    """Persist notes so the hosting CLI can read them with --notes-file."""
    path = repo_root / notes_path_for_tag(notes_dir=notes_dir, tag=notes.tag)
    try:
        atomic_write_text(path, notes.text)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="release_failed",
                message=f"failed to write release notes: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
