"""Explicit outcome of a key-value store call."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a single store operation.

    ``ok`` is False only when the backend could not be reached or answered
    with something unusable. A missing key is ``ok`` with ``value=None``.
    """

    ok: bool
    value: T | None = None
    error: str | None = None

    @staticmethod
    def success(value: T | None = None) -> "StoreResult[T]":
        return StoreResult(ok=True, value=value)

    @staticmethod
    def failure(error: str) -> "StoreResult[T]":
        return StoreResult(ok=False, error=error)

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` on failure or miss."""
        if not self.ok or self.value is None:
            return default
        return self.value
