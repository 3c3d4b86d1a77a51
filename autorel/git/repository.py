"""Git repository abstraction.

This module provides the Repository class for the git operations a release
run needs: history inspection, tag probing and creation, archive export and
the version-bump commit. All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/checkout"))

    match repo.remote_tag_exists("origin", "1.2.4"):
        case Ok(True):
            print("already published")
        case Ok(False):
            print("not pushed yet")
        case Err(e):
            print(f"ls-remote failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from autorel.core.result import Err, Ok, Result
from autorel.platform.process import ProcessError
from autorel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

# Field and record separators for machine-readable `git log` output.
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

__all__ = [
    "FIELD_SEP",
    "GitError",
    "RECORD_SEP",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1

    @property
    def already_exists(self) -> bool:
        """True when git refused because the ref is already there."""
        text = self.message.lower()
        return "already exists" in text or "(already exists)" in text


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git checkout (.git dir or worktree file)."""
        return (self.path / ".git").exists()

    def is_shallow(self) -> Result[bool, GitError]:
        """True when the checkout has truncated history."""
        result = self._git(["rev-parse", "--is-shallow-repository"], "rev-parse")
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip() == "true")

    def resolve_commit(self, ref: str = "HEAD") -> Result[str, GitError]:
        """Commit sha ``ref`` points at; annotated tags are peeled."""
        result = self._git(["rev-parse", "--verify", f"{ref}^{{commit}}"], "rev-parse")
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def merged_tags(self) -> Result[list[str], GitError]:
        """Tags reachable from HEAD."""
        result = self._git(["tag", "--merged", "HEAD"], "tag --merged")
        if isinstance(result, Err):
            return result
        return Ok([ln.strip() for ln in result.value.splitlines() if ln.strip()])

    def log_with_numstat(self, revision: str) -> Result[str, GitError]:
        """Non-merge commits of ``revision`` with per-file line counts.

        Each commit starts with RECORD_SEP followed by sha, author and the full
        message separated by FIELD_SEP, then the ``--numstat`` lines.
        """
        fmt = f"{RECORD_SEP}%H{FIELD_SEP}%an{FIELD_SEP}%B{FIELD_SEP}"
        return self._git(
            ["log", "--no-merges", "--numstat", f"--format={fmt}", revision, "--"],
            "log",
        )

    def local_tag_exists(self, tag: str) -> Result[bool, GitError]:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                # -q --verify exits 1 without output for a missing ref.
                return Ok(False)
            case Err(e):
                return Err(self._error("rev-parse --verify", e))

    def remote_tag_exists(self, remote: str, tag: str) -> Result[bool, GitError]:
        result = self._git(["ls-remote", "--tags", remote, f"refs/tags/{tag}"], "ls-remote")
        if isinstance(result, Err):
            return result
        return Ok(bool(result.value.strip()))

    def remote_tag_commit(self, remote: str, tag: str) -> Result[str | None, GitError]:
        """Commit the tag points at on ``remote``, or None when it isn't there."""
        ref = f"refs/tags/{tag}"
        result = self._git(["ls-remote", "--tags", remote, ref, f"{ref}^{{}}"], "ls-remote")
        if isinstance(result, Err):
            return result
        shas: dict[str, str] = {}
        for line in result.value.splitlines():
            sha, _, name = line.strip().partition("\t")
            if sha and name:
                shas[name] = sha
        # Annotated tags list the tag object, then the commit on the peeled line.
        return Ok(shas.get(f"{ref}^{{}}") or shas.get(ref))

    def create_annotated_tag(self, tag: str, *, message: str, target: str) -> Result[None, GitError]:
        """Create an annotated tag. Never forces: an existing tag is an error."""
        result = self._git(["tag", "-a", tag, "-m", message, target], "tag -a")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def push_tag(self, remote: str, tag: str) -> Result[None, GitError]:
        result = self._git(["push", remote, f"refs/tags/{tag}"], "push tag")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def archive(self, *, ref: str, prefix: str, output: Path) -> Result[None, GitError]:
        """Export ``ref`` as a tar.gz archive."""
        output.parent.mkdir(parents=True, exist_ok=True)
        result = self._git(
            ["archive", "--format=tar.gz", f"--prefix={prefix}", "-o", str(output), ref],
            "archive",
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    def commit_paths(self, paths: list[str], *, message: str) -> Result[None, GitError]:
        """Stage ``paths`` and commit them."""
        added = self._git(["add", "--", *paths], "add")
        if isinstance(added, Err):
            return added
        committed = self._git(["commit", "-m", message, "--", *paths], "commit")
        if isinstance(committed, Err):
            return committed
        return Ok(None)

    def push_head(self, remote: str, branch: str) -> Result[None, GitError]:
        result = self._git(["push", remote, f"HEAD:refs/heads/{branch}"], "push")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _git(self, args: list[str], command: str) -> Result[str, GitError]:
        result = self._run(args)
        if isinstance(result, Err):
            return Err(self._error(command, result.error))
        return result

    def _error(self, command: str, e: ProcessError) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or f"git {command} failed",
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)
