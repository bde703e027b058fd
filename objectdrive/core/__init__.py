"""
Core primitives: Result monad, error hierarchy, constants and configuration.
"""

from objectdrive.core.config import AnonymousAccessPolicy, BackendKind, DriveConfig
from objectdrive.core.errors import (
    AccessDeniedError,
    BackingStoreError,
    DriveError,
    ErrorCode,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.core.types import Err, Ok, Result, Timestamp

__all__ = [
    "Ok",
    "Err",
    "Result",
    "Timestamp",
    "ErrorCode",
    "DriveError",
    "NotFoundError",
    "InvalidArgumentError",
    "BackingStoreError",
    "AccessDeniedError",
    "AnonymousAccessPolicy",
    "BackendKind",
    "DriveConfig",
]
