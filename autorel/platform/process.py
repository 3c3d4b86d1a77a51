"""The single place where autorel starts external commands.

git, gh and the gate-stage tools all run through :func:`run`. Every call is
bounded by a timeout so no step of a release run can hang; callers with
long-running commands (test suites, asset uploads) pass their own.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from autorel.core.result import Err, Ok, Result

__all__ = ["DEFAULT_TIMEOUT_SECONDS", "ProcessError", "run"]

DEFAULT_TIMEOUT_SECONDS = 10 * 60.0

# returncode used when the process never ran or was killed on timeout
NOT_RUN = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that failed to start, exited non-zero or timed out."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def timed_out(self) -> bool:
        return self.returncode == NOT_RUN and "timed out" in self.stderr

    @property
    def output(self) -> str:
        """stderr and stdout joined, for matching tool messages."""
        return f"{self.stderr}\n{self.stdout}".strip()

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    ``env`` replaces the inherited environment when given.
    """
    argv = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(argv, NOT_RUN, partial, f"Command timed out after {timeout:g}s"))
    except OSError as e:
        return Err(ProcessError(argv, NOT_RUN, "", str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(argv, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
