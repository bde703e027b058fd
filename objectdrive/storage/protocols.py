"""
Object Store Protocol Definitions

Structural subtyping protocol (PEP 544) for pluggable flat key/value
object stores with prefix-based, continuation-token listing.

Design Principles:
    - Zero-exception control flow via Result[T, DriveError] monad
    - Streaming reads are async generators and raise DriveError instead
    - "Not found" is NotFoundError, distinguishable from BackingStoreError
    - Memory-efficient: slots on every value type

Complexity Analysis:
    - All protocol methods: O(1) dispatch overhead
    - Actual complexity determined by concrete implementations
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol, runtime_checkable

from objectdrive.core.errors import DriveError
from objectdrive.core.types import Result


# =============================================================================
# VALUE TYPES
# =============================================================================
@dataclass(frozen=True, slots=True)
class ObjectSummary:
    """
    One entry of a listing page, or the metadata of a single object.

    Attributes:
        key: Object key (path in bucket).
        size: Object size in bytes.
        last_modified: Last modification time (UTC).
        etag: Entity tag, quotes stripped.
        content_type: MIME type when known (listings do not carry it).
    """

    key: str
    size: int
    last_modified: datetime
    etag: str = ""
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Object body together with its summary."""

    data: bytes
    summary: ObjectSummary


@dataclass(frozen=True, slots=True)
class ListResult:
    """
    One page of a list call.

    Attributes:
        objects: Keys directly matched by the page.
        common_prefixes: Delimiter groupings (only with a delimiter).
        next_token: Continuation token for the next page.
        is_truncated: True when more pages exist.
    """

    objects: tuple[ObjectSummary, ...] = ()
    common_prefixes: tuple[str, ...] = ()
    next_token: Optional[str] = None
    is_truncated: bool = False


# =============================================================================
# METRICS
# =============================================================================
@dataclass(slots=True)
class StoreMetrics:
    """Operation counters shared by every backend."""

    put_count: int = 0
    get_count: int = 0
    delete_count: int = 0
    batch_delete_count: int = 0
    copy_count: int = 0
    list_count: int = 0
    presign_count: int = 0

    bytes_uploaded: int = 0
    bytes_downloaded: int = 0

    not_found_errors: int = 0
    timeout_errors: int = 0
    connection_errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "put_count": self.put_count,
            "get_count": self.get_count,
            "delete_count": self.delete_count,
            "batch_delete_count": self.batch_delete_count,
            "copy_count": self.copy_count,
            "list_count": self.list_count,
            "presign_count": self.presign_count,
            "bytes_uploaded": self.bytes_uploaded,
            "bytes_downloaded": self.bytes_downloaded,
            "not_found_errors": self.not_found_errors,
            "timeout_errors": self.timeout_errors,
            "connection_errors": self.connection_errors,
        }


# =============================================================================
# OBJECT STORE PROTOCOL
# =============================================================================
@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """
    Flat key/value object store.

    All methods except stream_object return Result[T, DriveError].
    Implementations should be fully async for non-blocking I/O.
    """

    @abstractmethod
    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Result[ObjectSummary, DriveError]:
        """Create or overwrite an object."""
        ...

    @abstractmethod
    async def get_object(self, key: str) -> Result[StoredObject, DriveError]:
        """
        Read a whole object into memory.

        Returns:
            Ok(StoredObject): Object found
            Err(NotFoundError): Key absent
            Err(BackingStoreError): Store failure
        """
        ...

    @abstractmethod
    def stream_object(self, key: str, chunk_size: int) -> AsyncIterator[bytes]:
        """
        Stream an object body in chunks of at most chunk_size bytes.

        Raises:
            NotFoundError: Key absent (on first iteration)
            BackingStoreError: Store failure at any point
        """
        ...

    @abstractmethod
    async def delete_object(self, key: str) -> Result[None, DriveError]:
        """Delete one key. Deleting an absent key succeeds."""
        ...

    @abstractmethod
    async def delete_objects(self, keys: list[str]) -> Result[int, DriveError]:
        """
        Delete up to 1000 keys in one call.

        Returns:
            Ok(count): Number of keys submitted
            Err(InvalidArgumentError): More than 1000 keys
            Err(BackingStoreError): Call or per-key failure
        """
        ...

    @abstractmethod
    async def copy_object(
        self,
        source_key: str,
        dest_key: str,
    ) -> Result[None, DriveError]:
        """Server-side copy. Missing source is NotFoundError."""
        ...

    @abstractmethod
    async def list_objects(
        self,
        prefix: str = "",
        delimiter: Optional[str] = None,
        continuation_token: Optional[str] = None,
        max_keys: int = 1000,
    ) -> Result[ListResult, DriveError]:
        """
        List one page of keys under a prefix, in key order.

        With a delimiter, keys containing the delimiter after the prefix
        are grouped into common prefixes.
        """
        ...

    @abstractmethod
    async def presign_get(
        self,
        key: str,
        expiry_seconds: int,
        download_filename: Optional[str] = None,
    ) -> Result[str, DriveError]:
        """Time-limited GET URL; attachment disposition when a filename is given."""
        ...

    @abstractmethod
    async def presign_put(
        self,
        key: str,
        content_type: str,
        expiry_seconds: int,
    ) -> Result[str, DriveError]:
        """Time-limited PUT URL for direct client uploads."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections; safe to call more than once."""
        ...


__all__ = [
    "ObjectSummary",
    "StoredObject",
    "ListResult",
    "StoreMetrics",
    "ObjectStoreProtocol",
]
