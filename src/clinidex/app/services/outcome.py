"""Explicit success/failure values for side effects whose errors are discarded."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Outcome(Generic[T]):
    """Result of an operation that must never raise into its caller."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Outcome[Any]":
        return cls(error=error)


async def capture(awaitable: Awaitable[T]) -> Outcome[T]:
    """Await ``awaitable`` and fold any ``Exception`` into an :class:`Outcome`.

    Cancellation is not captured and still propagates.
    """

    try:
        value = await awaitable
    except Exception as exc:
        return Outcome.failure(exc)
    return Outcome.success(value)


__all__ = ["Outcome", "capture"]
