"""Ok/Err values returned by every fallible release operation.

Soft failures are absorbed by the step that receives the ``Err``; fatal ones
are carried up to the coordinator. Callers narrow with ``isinstance``::

    changes = collect_changes(repo=repo, base_tag="1.2.3")
    if isinstance(changes, Err):
        return changes
    use(changes.value)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]
