from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from autorel.services.release.semver import SemVer


BumpKind = Literal["major", "minor", "patch", "none"]
BUMP_RANK: dict[BumpKind, int] = {"none": 0, "patch": 1, "minor": 2, "major": 3}

# Where a version decision came from.
DecisionSource = Literal["local", "service", "fallback"]
NotesSource = Literal["service", "template"]


@dataclass(frozen=True, slots=True)
class FileStat:
    path: str
    additions: int
    deletions: int


@dataclass(frozen=True, slots=True)
class CommitRecord:
    sha: str
    author: str
    subject: str
    body: str
    files: tuple[FileStat, ...] = ()

    @property
    def short_sha(self) -> str:
        return self.sha[:8]

    @property
    def message(self) -> str:
        if self.body:
            return f"{self.subject}\n\n{self.body}"
        return self.subject


@dataclass(frozen=True, slots=True)
class ChangeSet:
    """Commits between the last published tag and HEAD, oldest first."""

    base_tag: str | None
    head_sha: str
    commits: tuple[CommitRecord, ...]

    @property
    def is_empty(self) -> bool:
        return not self.commits

    @property
    def files(self) -> tuple[FileStat, ...]:
        """Per-path totals across the window, in first-seen order."""
        totals: dict[str, list[int]] = {}
        for c in self.commits:
            for f in c.files:
                acc = totals.setdefault(f.path, [0, 0])
                acc[0] += f.additions
                acc[1] += f.deletions
        return tuple(FileStat(path=p, additions=a, deletions=d) for p, (a, d) in totals.items())

    @property
    def authors(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(c.author for c in self.commits))

    def summary(self, *, max_files: int = 50) -> str:
        """Plain-text digest handed to the reasoning service."""
        files = self.files
        lines = [f"Previous tag: {self.base_tag or 'none'}", "", "Commits:"]
        lines.extend(f"- {c.short_sha} {c.subject} ({c.author})" for c in self.commits)
        lines.append("")
        lines.append(f"Changed files ({len(files)}):")
        lines.extend(f"- {f.path} (+{f.additions}/-{f.deletions})" for f in files[:max_files])
        if len(files) > max_files:
            lines.append(f"- ... {len(files) - max_files} more")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class VersionDecision:
    current: SemVer
    bump: BumpKind
    next: SemVer
    should_release: bool
    rationale: str
    source: DecisionSource = "local"

    def __post_init__(self) -> None:
        if self.should_release and not self.next > self.current:
            raise ValueError(f"release requires {self.next} > {self.current}")
        if not self.should_release and self.next != self.current:
            raise ValueError(f"no release requires {self.next} == {self.current}")

    @classmethod
    def decide(
        cls,
        *,
        current: SemVer,
        bump: BumpKind,
        rationale: str,
        source: DecisionSource,
    ) -> VersionDecision:
        """Build a decision from a bump kind; "none" means no release."""
        return cls(
            current=current,
            bump=bump,
            next=current.bump(bump),
            should_release=bump != "none",
            rationale=rationale,
            source=source,
        )


@dataclass(frozen=True, slots=True)
class ReleaseNotes:
    tag: str
    text: str
    source: NotesSource


class TagState(Enum):
    NOT_TAGGED = "not_tagged"
    TAGGED_LOCAL = "tagged_local"
    TAGGED_REMOTE = "tagged_remote"
    RELEASED = "released"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PublishedAsset:
    path: Path
    # Upload name on the release; re-uploading the same name overwrites.
    name: str


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    tag: str
    title: str
    notes: str
    assets: tuple[PublishedAsset, ...]
    latest: bool = True


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    tag: str
    state: TagState
    tag_created: bool = False
    tag_pushed: bool = False
    release_created: bool = False
    assets_uploaded: int = 0
    # Commit of an existing tag of the same name that is not our target.
    # Nothing was created or uploaded when set.
    superseded_by: str | None = None
