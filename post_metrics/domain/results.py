from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .errors import MetricsError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """What a tier produced: a value, or the typed error explaining why not."""

    value: Optional[T] = None
    error: Optional[MetricsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: MetricsError) -> "Outcome[T]":
        return cls(error=error)
