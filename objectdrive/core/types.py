"""
Core Type Definitions for the Object Drive

Implements Result/Either monads for zero-exception control flow.
Every store call and drive operation returns a Result so callers
handle failure explicitly instead of relying on exceptions.

Design Principles:
- Never use null for absence (use Optional or Result)
- Exhaustive handling of both variants at every call site
- Errors carry full context (see objectdrive.core.errors)

Complexity: O(1) for all type operations
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        """O(1) success check."""
        return True

    def is_err(self) -> Literal[False]:
        """O(1) error check."""
        return False

    def unwrap(self) -> T:
        """
        Extract value. Safe to call after is_ok() check.

        Returns:
            T: The wrapped success value
        """
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """
        Apply transformation to success value.

        Complexity: O(f) where f is complexity of fn
        """
        return Ok(fn(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error instance for exhaustive handling.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIMESTAMP WITH NANOSECOND PRECISION
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    High-precision timestamp used for error correlation.

    Stores nanoseconds since Unix epoch.
    """

    nanos: int

    NANOS_PER_SECOND: int = 1_000_000_000
    NANOS_PER_MILLI: int = 1_000_000

    @classmethod
    def now(cls) -> Timestamp:
        """Capture current time with nanosecond precision."""
        return cls(nanos=time.time_ns())

    @classmethod
    def from_seconds(cls, seconds: float) -> Timestamp:
        """Convert floating-point seconds to Timestamp."""
        return cls(nanos=int(seconds * cls.NANOS_PER_SECOND))

    @property
    def seconds(self) -> float:
        """Convert to floating-point seconds."""
        return self.nanos / self.NANOS_PER_SECOND

    @property
    def millis(self) -> int:
        """Convert to milliseconds (truncating)."""
        return self.nanos // self.NANOS_PER_MILLI

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC datetime."""
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc)

    def __sub__(self, other: Timestamp) -> int:
        """Subtract timestamps, returning difference in nanos."""
        return self.nanos - other.nanos

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    """ISO-8601 text with a trailing Z, as stored in metadata documents."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
