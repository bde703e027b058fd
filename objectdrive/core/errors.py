"""
Error Hierarchy for the Object Drive

Design Principles:
- Errors travel inside Result values (Err) through the core
- Only async generators (object and archive streaming) raise them
- Never swallow errors or use null for absence
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with request logs

Usage:
    result = await service.restore("trash/docs/")
    if result.is_err():
        match result.error:
            case InvalidArgumentError():
                return Response.error(..., status=400)
            case BackingStoreError():
                return Response.error(..., status=500)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from objectdrive.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Object store errors
    - 3xxx: Request errors
    - 5xxx: Security errors
    - 9xxx: Internal/unknown errors
    """

    # Object store errors (1xxx)
    STORE_UNAVAILABLE = 1001
    STORE_TIMEOUT = 1002
    STORE_CORRUPT_DOCUMENT = 1003
    STORE_PARTIAL_BATCH = 1004

    # Request errors (3xxx)
    REQUEST_INVALID_ARGUMENT = 3001
    REQUEST_NOT_FOUND = 3004

    # Security errors (5xxx)
    SECURITY_ACCESS_DENIED = 5002

    # Internal errors (9xxx)
    INTERNAL_ERROR = 9001


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class DriveError(Exception):
    """
    Base class for all drive errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp for correlation
    - Cause for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error to dictionary for logging/API responses.

        Note: Excludes the cause stack trace to avoid leaking
        implementation details.
        """
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# NOT FOUND
# =============================================================================
@dataclass
class NotFoundError(DriveError):
    """
    Requested key or record is absent.

    Metadata reads turn this into the empty default; file and
    folder operations surface it as a failure.
    """

    @classmethod
    def key(cls, key: str, cause: Optional[BaseException] = None) -> NotFoundError:
        """Object key does not exist in the store."""
        return cls(
            code=ErrorCode.REQUEST_NOT_FOUND,
            message=f"Object '{key}' not found",
            cause=cause,
            context={"key": key},
        )

    @classmethod
    def link(cls, link_id: str) -> NotFoundError:
        """Short link id is not in the link table."""
        return cls(
            code=ErrorCode.REQUEST_NOT_FOUND,
            message=f"Link '{link_id}' not found",
            context={"link_id": link_id},
        )


# =============================================================================
# INVALID ARGUMENT
# =============================================================================
@dataclass
class InvalidArgumentError(DriveError):
    """Caller supplied an argument the operation cannot accept."""

    @classmethod
    def field(cls, name: str, value: Any, reason: str) -> InvalidArgumentError:
        """Validation failed for a named argument."""
        return cls(
            code=ErrorCode.REQUEST_INVALID_ARGUMENT,
            message=f"Invalid '{name}': {reason}",
            context={"field": name, "value": str(value)[:200], "reason": reason},
        )

    @classmethod
    def not_in_trash(cls, key: str) -> InvalidArgumentError:
        """Restore was asked for a key outside the trash prefix."""
        return cls.field("key", key, "item is not in trash")


# =============================================================================
# BACKING STORE
# =============================================================================
@dataclass
class BackingStoreError(DriveError):
    """
    Network or object store failure.

    Not distinguished further at the drive layer: listings, usage
    and lifecycle operations treat it as fatal to the whole call.
    """

    @classmethod
    def unavailable(
        cls,
        operation: str,
        cause: Optional[BaseException] = None,
        key: Optional[str] = None,
    ) -> BackingStoreError:
        """Store call failed."""
        detail = f": {cause}" if cause is not None else ""
        return cls(
            code=ErrorCode.STORE_UNAVAILABLE,
            message=f"Object store '{operation}' failed{detail}",
            cause=cause,
            context={"operation": operation, "key": key},
        )

    @classmethod
    def timeout(
        cls,
        operation: str,
        timeout_seconds: float,
        key: Optional[str] = None,
    ) -> BackingStoreError:
        """Store call exceeded its per-call timeout."""
        return cls(
            code=ErrorCode.STORE_TIMEOUT,
            message=f"Object store '{operation}' timed out after {timeout_seconds}s",
            context={
                "operation": operation,
                "timeout_seconds": timeout_seconds,
                "key": key,
            },
        )

    @classmethod
    def corrupt_document(
        cls,
        key: str,
        cause: Optional[BaseException] = None,
    ) -> BackingStoreError:
        """Metadata document exists but cannot be decoded."""
        return cls(
            code=ErrorCode.STORE_CORRUPT_DOCUMENT,
            message=f"Metadata document '{key}' is not valid JSON",
            cause=cause,
            context={"key": key},
        )

    @classmethod
    def partial_batch(cls, failed_keys: list[str]) -> BackingStoreError:
        """Batch delete reported per-key failures."""
        return cls(
            code=ErrorCode.STORE_PARTIAL_BATCH,
            message=f"Batch delete failed for {len(failed_keys)} key(s)",
            context={"failed_keys": failed_keys[:50]},
        )


# =============================================================================
# ACCESS DENIED
# =============================================================================
@dataclass
class AccessDeniedError(DriveError):
    """Access Resolver rejected the caller."""

    @classmethod
    def read(cls, key: str, identity: Optional[str]) -> AccessDeniedError:
        """Caller may not read the key."""
        return cls(
            code=ErrorCode.SECURITY_ACCESS_DENIED,
            message=f"Access denied to '{key}'",
            context={"key": key, "identity": identity},
        )
