"""Simple result helpers for operations whose failure has a safe default."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, cast


T = TypeVar("T")
E = TypeVar("E")


@dataclass(slots=True)
class Result(Generic[T, E]):
    """Discriminated union capturing either a success value or an error."""

    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        if self.error is not None:
            raise RuntimeError(f"Tried to unwrap error result: {self.error}")
        return cast(T, self.value)

    def unwrap_or_else(self, default: Callable[[E], T]) -> T:
        """Return the value, or map the error to a fallback value."""
        if self.error is not None:
            return default(self.error)
        return cast(T, self.value)


__all__ = ["Result"]
