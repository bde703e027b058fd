"""
Object Drive

A drive-style virtual filesystem over a flat object store:
- Folders as key prefixes with zero-byte markers
- Trash and restore as copy-then-delete transfers under trash/
- Stars, sharing settings and short links in hidden JSON documents
- Direct-access URLs (CDN or presigned) gated by a read-access check
- Streamed ZIP downloads of whole folders
- Usage and dashboard statistics with a short-lived cache

Backends: in-memory (development, tests) and S3-compatible via aioboto3.
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from objectdrive.core.types import Result, Ok, Err, Timestamp
from objectdrive.core.errors import (
    DriveError,
    NotFoundError,
    InvalidArgumentError,
    BackingStoreError,
    AccessDeniedError,
)
from objectdrive.core.config import DriveConfig

from objectdrive.storage import (
    ObjectStoreProtocol,
    InMemoryObjectStore,
    S3Config,
    create_object_store,
)

from objectdrive.drive import DriveService

__all__ = [
    # Core
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "DriveError",
    "NotFoundError",
    "InvalidArgumentError",
    "BackingStoreError",
    "AccessDeniedError",
    "DriveConfig",
    # Storage
    "ObjectStoreProtocol",
    "InMemoryObjectStore",
    "S3Config",
    "create_object_store",
    # Drive
    "DriveService",
]
