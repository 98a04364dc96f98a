"""
Result wrapper returned by ProgressService operations.

Callers check ``success`` before reading ``data``; failures carry a
ProgressServiceError instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from src.core.errors import ProgressServiceError

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Outcome of a service call."""

    success: bool
    data: T | None = None
    error: ProgressServiceError | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> Result[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ProgressServiceError) -> Result[T]:
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Return the data or raise the carried error."""
        if not self.success:
            raise self.error or ProgressServiceError("Operation failed")
        return self.data  # type: ignore[return-value]
