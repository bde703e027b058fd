"""
Storage Module: Flat Object Store Abstraction
=============================================

Provides:
- Protocol definition for pluggable object store backends
- In-memory implementation for development/testing
- aioboto3 S3 backend for production
- Factory function for backend selection

Example:
    >>> # Development (in-memory)
    >>> store = create_object_store()

    >>> # Production (configured)
    >>> store = create_object_store(S3Config(bucket_name="drive-prod"))
    >>> await store.connect()
"""

from __future__ import annotations

from typing import Optional, Union, TYPE_CHECKING

from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.storage.config import S3Config
from objectdrive.storage.protocols import (
    ListResult,
    ObjectStoreProtocol,
    ObjectSummary,
    StoredObject,
    StoreMetrics,
)

if TYPE_CHECKING:
    from objectdrive.storage.s3_store import S3ObjectStore


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def create_object_store(
    config: Optional[S3Config] = None,
) -> Union[InMemoryObjectStore, "S3ObjectStore"]:
    """
    Create Object Store.

    Returns the in-memory implementation when no S3 configuration is
    given. The S3 store still needs ``await store.connect()``.
    """
    if config is not None:
        from objectdrive.storage.s3_store import S3ObjectStore
        return S3ObjectStore(config)

    return InMemoryObjectStore()


__all__ = [
    "ObjectStoreProtocol",
    "ObjectSummary",
    "StoredObject",
    "ListResult",
    "StoreMetrics",
    "S3Config",
    "InMemoryObjectStore",
    "create_object_store",
]
