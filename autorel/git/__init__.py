"""Git operations module.

Usage:
    from autorel.git import Repository

    repo = Repository(Path("/path/to/checkout"))
    match repo.is_shallow():
        case Ok(True):
            print("fetch full history first")
        case Err(error):
            print(error.message)
"""

from autorel.git.repository import FIELD_SEP, RECORD_SEP, GitError, Repository

__all__ = [
    "FIELD_SEP",
    "GitError",
    "RECORD_SEP",
    "Repository",
]
