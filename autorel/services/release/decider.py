"""Version decision: how far to bump, and whether to release at all.

Commits are classified locally from conventional-commit markers. The local
verdict stands when it is unambiguous: a breaking marker was found (major
outranks anything the service could say), or every commit carries a
recognized type. Otherwise the reasoning service is consulted and its answer
is combined with the local floor.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass

from autorel.core.config import ProjectConfig
from autorel.core.result import Err
from autorel.output.console import ConsoleProtocol, Style
from autorel.services.release.model import BumpKind, ChangeSet, CommitRecord, VersionDecision
from autorel.services.release.propagator import SKIP_CI_MARKER
from autorel.services.release.reasoning import ReasoningService
from autorel.services.release.semver import SemVer, max_bump

_CONVENTIONAL_RE = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:\s*\S"
)
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

FEATURE_TYPES = frozenset({"feat", "feature"})
PATCH_TYPES = frozenset(
    {"fix", "perf", "refactor", "revert", "hotfix", "security", "build", "chore", "deps"}
)
IGNORED_TYPES = frozenset({"docs", "ci", "style", "test", "tests"})

# Keyword fallback for free-form messages, used when the service can't help.
_KW_BREAKING_RE = re.compile(r"\bbreaking\b", re.IGNORECASE)
_KW_FEATURE_RE = re.compile(r"\b(feat(ure)?|add(s|ed)?|new)\b", re.IGNORECASE)
_KW_FIX_RE = re.compile(r"\b(fix(es|ed)?|bug(fix)?)\b", re.IGNORECASE)


def classify_commit(commit: CommitRecord) -> BumpKind | None:
    """Bump implied by one commit, or None when its message has no recognized marker.

    Breaking markers are checked first: a breaking commit that also carries
    ``[skip ci]`` is still major.
    """
    m = _CONVENTIONAL_RE.match(commit.subject)
    if _BREAKING_FOOTER_RE.search(commit.message):
        return "major"
    if m is not None and m.group("bang"):
        return "major"

    if SKIP_CI_MARKER in commit.subject:
        return "none"
    if m is None:
        return None
    kind = m.group("type").lower()
    scope = (m.group("scope") or "").strip().lower()

    if kind == "chore" and scope == "release":
        return "none"
    if kind in FEATURE_TYPES:
        return "minor"
    if kind in PATCH_TYPES:
        return "patch"
    if kind in IGNORED_TYPES:
        return "none"
    return None


@dataclass(frozen=True, slots=True)
class LocalClassification:
    bump: BumpKind
    counts: dict[BumpKind, int]
    unclassified: tuple[CommitRecord, ...]

    @property
    def ambiguous(self) -> bool:
        return self.bump != "major" and bool(self.unclassified)

    def describe(self) -> str:
        parts = [f"{self.counts[k]} {k}" for k in ("major", "minor", "patch") if self.counts[k]]
        if self.counts["none"]:
            parts.append(f"{self.counts['none']} without release impact")
        if self.unclassified:
            parts.append(f"{len(self.unclassified)} unclassified")
        return ", ".join(parts) or "no commits"


def classify_changes(changes: ChangeSet) -> LocalClassification:
    counts: Counter[BumpKind] = Counter()
    unclassified: list[CommitRecord] = []
    for commit in changes.commits:
        kind = classify_commit(commit)
        if kind is None:
            unclassified.append(commit)
        else:
            counts[kind] += 1

    bump = max_bump(*counts.keys())
    return LocalClassification(
        bump=bump,
        counts={k: counts[k] for k in ("major", "minor", "patch", "none")},
        unclassified=tuple(unclassified),
    )


def heuristic_bump(commits: tuple[CommitRecord, ...], *, source_paths: tuple[str, ...]) -> BumpKind:
    """Deterministic keyword classification of free-form commit messages."""
    best: BumpKind = "none"
    for commit in commits:
        text = commit.message
        if _KW_BREAKING_RE.search(text):
            return "major"
        if _KW_FEATURE_RE.search(text):
            best = max_bump(best, "minor")
        elif _KW_FIX_RE.search(text):
            best = max_bump(best, "patch")
        elif any(f.path.startswith(source_paths) for f in commit.files):
            best = max_bump(best, "patch")
    return best


def decide_version(
    *,
    changes: ChangeSet,
    current: SemVer,
    service: ReasoningService | None,
    project: ProjectConfig,
    console: ConsoleProtocol,
) -> VersionDecision:
    """Decide the next version. Never fails: service problems degrade the decision."""
    if changes.is_empty:
        since = changes.base_tag or "the beginning of history"
        return VersionDecision.decide(
            current=current,
            bump="none",
            rationale=f"no commits since {since}",
            source="local",
        )

    local = classify_changes(changes)
    if not local.ambiguous:
        return VersionDecision.decide(
            current=current,
            bump=local.bump,
            rationale=f"conventional commits: {local.describe()}",
            source="local",
        )

    def fallback(reason: str) -> VersionDecision:
        guessed = heuristic_bump(local.unclassified, source_paths=project.source_paths)
        bump = max_bump(local.bump, guessed)
        return VersionDecision.decide(
            current=current,
            bump=bump,
            rationale=f"{reason}; keyword heuristics over {local.describe()}",
            source="fallback",
        )

    if service is None:
        return fallback("reasoning service not configured")

    console.print(
        f"{len(local.unclassified)} commit(s) without conventional markers, asking reasoning service",
        Style.DIM,
    )
    advice = service.advise_bump(summary=changes.summary(), current=current)
    if isinstance(advice, Err):
        failure = advice.error
        if failure.transport:
            console.warning(f"reasoning service {failure.kind}: {failure.message}")
            return fallback(f"reasoning service {failure.kind}")
        console.warning(f"reasoning service answer unusable ({failure.kind}): {failure.message}")
        return VersionDecision.decide(
            current=current,
            bump="none",
            rationale=f"reasoning service {failure.kind}: {failure.message}",
            source="service",
        )

    bump = max_bump(local.bump, advice.value.bump)
    return VersionDecision.decide(
        current=current,
        bump=bump,
        rationale=advice.value.rationale,
        source="service",
    )
