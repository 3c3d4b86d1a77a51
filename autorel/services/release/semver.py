from __future__ import annotations

import re
from dataclasses import dataclass

from autorel.services.release.model import BUMP_RANK, BumpKind


# MAJOR.MINOR.PATCH with optional "+build" metadata; pre-releases are not stable tags.
_VERSION_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:\+([0-9A-Za-z.-]+))?$"
)


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def bump(self, kind: BumpKind) -> "SemVer":
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                return SemVer(self.major, self.minor, self.patch + 1)
            case "none":
                return self
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def to_tag(self, *, prefix: str = "", build_metadata: str | None = None) -> str:
        tag = f"{prefix}{self}"
        if build_metadata:
            tag += f"+{build_metadata}"
        return tag


def parse_version(text: str) -> SemVer | None:
    """Parse "1.2.3" (a leading "v" and "+build" metadata are tolerated)."""
    s = text.strip()
    if s[:1] in ("v", "V"):
        s = s[1:]
    m = _VERSION_RE.match(s)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_tag(tag: str, *, prefix: str = "") -> SemVer | None:
    """Parse a release tag carrying exactly ``prefix`` before the version."""
    if not tag.startswith(prefix):
        return None
    m = _VERSION_RE.match(tag[len(prefix) :])
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def max_bump(*kinds: BumpKind) -> BumpKind:
    """Highest-ranked bump (none < patch < minor < major)."""
    best: BumpKind = "none"
    for kind in kinds:
        if BUMP_RANK[kind] > BUMP_RANK[best]:
            best = kind
    return best


def bump_between(current: SemVer, target: SemVer) -> BumpKind:
    """Most significant component that moved from ``current`` to ``target``."""
    if target <= current:
        return "none"
    if target.major != current.major:
        return "major"
    if target.minor != current.minor:
        return "minor"
    return "patch"
