"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from autorel.core.result import Err, Ok, Result

__all__ = ["atomic_write_text", "read_text"]


def read_text(path: Path, *, encoding: str = "utf-8") -> Result[str, str]:
    """Read a text file; the error is a short human-readable reason."""
    try:
        return Ok(path.read_text(encoding=encoding))
    except FileNotFoundError:
        return Err(f"file not found: {path}")
    except UnicodeDecodeError as e:
        return Err(f"not valid {encoding}: {path} ({e})")
    except OSError as e:
        return Err(f"cannot read {path}: {e}")


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text via a sibling temp file and os.replace.

    Readers never observe a half-written version file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
