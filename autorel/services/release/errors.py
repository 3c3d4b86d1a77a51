"""Error types for the release bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "history_unavailable",
    "config_invalid",
    "gh_missing",
    "git_failed",
    "gh_failed",
    "release_failed",
    "asset_failed",
    "version_file_failed",
]

# Configuration errors abort the run before any mutation and are never retried.
FATAL_KINDS: frozenset[str] = frozenset({"history_unavailable", "config_invalid", "gh_missing"})


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Rendered by the CLI and the run report without importing implementation
    details of the step that failed.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_KINDS

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def history_unavailable(message: str) -> ReleaseError:
    return ReleaseError(
        kind="history_unavailable",
        message=message,
        hint="Check out the repository with full history (e.g. fetch-depth: 0).",
    )
