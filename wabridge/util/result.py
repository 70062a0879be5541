"""Validation outcome carried from input parsing to the control plane."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Either a parsed *value* or an *error* message for a 4xx reply.

    Truthy on success; unpacks as ``(value, error)``::

        jid, error = normalize_private_target(body.get("to"))
        if error:
            return _error(error, 400)
    """

    value: T | None = None
    error: str = ""

    @classmethod
    def ok(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def fail(cls, error: str) -> Result[T]:
        return cls(error=error or "invalid input")

    def __bool__(self) -> bool:
        return not self.error

    def __iter__(self):
        yield self.value
        yield self.error
