"""Error codes for CLI exit status.

Each code maps to a process exit status. A run that decides not to release
exits with OK: "no release" is an outcome, not a failure.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable.
    - 0: Success (including an explicit "no release" outcome)
    - 1: User error (bad input, invalid arguments)
    - 2: Configuration error (bad config, shallow clone, missing tools)
    - 3: Gate failure (build/test, lint or security stage failed)
    - 4: Network error (hosting API or remote unreachable)
    - 5: I/O error (file not found, permission denied)
    - 6: Release failure (tag, release or asset step failed)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    GATE_FAILED = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    RELEASE_FAILED = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")
