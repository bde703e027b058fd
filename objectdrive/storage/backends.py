"""
In-Memory Object Store: Development and Testing Implementation

S3-compatible flat key/value store honouring the full
ObjectStoreProtocol contract:
    - Lexicographic key order within a listing
    - Delimiter grouping into common prefixes (counted toward max_keys)
    - Opaque continuation tokens
    - Batch delete capped at 1000 keys

Design Principles:
    - Full protocol compliance for seamless production swap
    - Safe for concurrent coroutines via an asyncio lock
    - Injectable clock for deterministic last-modified times
    - Failure injection hook for error-path tests

Performance Characteristics:
    - Put/Get/Delete/Copy: O(1) average case
    - List: O(n log n) over the keys under the prefix
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import json
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from objectdrive.core.constants import MAX_BATCH_DELETE, MAX_LIST_KEYS
from objectdrive.core.errors import (
    BackingStoreError,
    DriveError,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.core.types import Err, Ok, Result, utc_now
from objectdrive.storage.protocols import (
    ListResult,
    ObjectSummary,
    StoredObject,
    StoreMetrics,
)

Clock = Callable[[], datetime]


# =============================================================================
# CONTINUATION TOKENS
# =============================================================================
def _encode_token(after: str) -> str:
    """Opaque cursor: the name of the last item of the previous page."""
    raw = json.dumps({"after": after}).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _decode_token(token: str) -> Optional[str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    after = payload.get("after") if isinstance(payload, dict) else None
    return after if isinstance(after, str) else None


# =============================================================================
# IN-MEMORY OBJECT STORE
# =============================================================================
class InMemoryObjectStore:
    """
    In-memory object store for development and tests.

    Example:
        store = InMemoryObjectStore()

        await store.put_object("docs/report.pdf", data, "application/pdf")
        page = (await store.list_objects(prefix="docs/", delimiter="/")).unwrap()

        # Make the next batch delete fail
        store.fail_next("delete_objects")
    """

    __slots__ = (
        "_objects",
        "_summaries",
        "_lock",
        "_clock",
        "_bucket",
        "_failures",
        "_metrics",
    )

    def __init__(
        self,
        clock: Optional[Clock] = None,
        bucket: str = "local-drive",
    ) -> None:
        self._objects: Dict[str, bytes] = {}
        self._summaries: Dict[str, ObjectSummary] = {}
        self._lock = asyncio.Lock()
        self._clock: Clock = clock or utc_now
        self._bucket = bucket
        self._failures: Dict[str, DriveError] = {}
        self._metrics = StoreMetrics()

    # -------------------------------------------------------------------------
    # FAILURE INJECTION
    # -------------------------------------------------------------------------

    def fail_next(self, operation: str, error: Optional[DriveError] = None) -> None:
        """
        Make the next call of ``operation`` fail.

        Args:
            operation: Method name, e.g. "list_objects" or "stream_object".
            error: Error to return (or raise, for streams). Defaults to
                BackingStoreError.unavailable.
        """
        self._failures[operation] = error or BackingStoreError.unavailable(
            operation, RuntimeError("injected failure")
        )

    def _take_failure(self, operation: str) -> Optional[DriveError]:
        return self._failures.pop(operation, None)

    # -------------------------------------------------------------------------
    # CORE OPERATIONS
    # -------------------------------------------------------------------------

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Result[ObjectSummary, DriveError]:
        """
        Store object.

        Computes ETag (MD5 hash) for content verification.
        """
        failure = self._take_failure("put_object")
        if failure is not None:
            return Err(failure)

        async with self._lock:
            summary = ObjectSummary(
                key=key,
                size=len(data),
                last_modified=self._clock(),
                etag=hashlib.md5(data).hexdigest(),
                content_type=content_type,
            )
            self._objects[key] = bytes(data)
            self._summaries[key] = summary
            self._metrics.put_count += 1
            self._metrics.bytes_uploaded += len(data)
            return Ok(summary)

    async def get_object(self, key: str) -> Result[StoredObject, DriveError]:
        """Retrieve object with its summary."""
        failure = self._take_failure("get_object")
        if failure is not None:
            return Err(failure)

        async with self._lock:
            if key not in self._objects:
                self._metrics.not_found_errors += 1
                return Err(NotFoundError.key(key))
            data = self._objects[key]
            self._metrics.get_count += 1
            self._metrics.bytes_downloaded += len(data)
            return Ok(StoredObject(data=data, summary=self._summaries[key]))

    async def stream_object(self, key: str, chunk_size: int) -> AsyncIterator[bytes]:
        """
        Stream object body in chunks.

        The body is snapshotted when the stream starts, as a GET would.
        """
        failure = self._take_failure("stream_object")
        if failure is not None:
            raise failure

        async with self._lock:
            if key not in self._objects:
                self._metrics.not_found_errors += 1
                raise NotFoundError.key(key)
            data = self._objects[key]
            self._metrics.get_count += 1

        for offset in range(0, len(data), chunk_size):
            chunk = data[offset:offset + chunk_size]
            self._metrics.bytes_downloaded += len(chunk)
            yield chunk
            # Yield control so cancellation can land between chunks
            await asyncio.sleep(0)

    async def delete_object(self, key: str) -> Result[None, DriveError]:
        """Delete object. Absent keys are not an error."""
        failure = self._take_failure("delete_object")
        if failure is not None:
            return Err(failure)

        async with self._lock:
            self._objects.pop(key, None)
            self._summaries.pop(key, None)
            self._metrics.delete_count += 1
            return Ok(None)

    async def delete_objects(self, keys: List[str]) -> Result[int, DriveError]:
        """Delete a batch of at most 1000 keys."""
        if len(keys) > MAX_BATCH_DELETE:
            return Err(
                InvalidArgumentError.field(
                    "keys", len(keys), f"at most {MAX_BATCH_DELETE} keys per batch"
                )
            )
        failure = self._take_failure("delete_objects")
        if failure is not None:
            return Err(failure)

        async with self._lock:
            for key in keys:
                self._objects.pop(key, None)
                self._summaries.pop(key, None)
            self._metrics.batch_delete_count += 1
            return Ok(len(keys))

    async def copy_object(
        self,
        source_key: str,
        dest_key: str,
    ) -> Result[None, DriveError]:
        """Copy object to new key."""
        failure = self._take_failure("copy_object")
        if failure is not None:
            return Err(failure)

        async with self._lock:
            if source_key not in self._objects:
                self._metrics.not_found_errors += 1
                return Err(NotFoundError.key(source_key))

            source = self._summaries[source_key]
            self._objects[dest_key] = self._objects[source_key]
            self._summaries[dest_key] = ObjectSummary(
                key=dest_key,
                size=source.size,
                last_modified=self._clock(),
                etag=source.etag,
                content_type=source.content_type,
            )
            self._metrics.copy_count += 1
            return Ok(None)

    # -------------------------------------------------------------------------
    # LIST OPERATIONS
    # -------------------------------------------------------------------------

    async def list_objects(
        self,
        prefix: str = "",
        delimiter: Optional[str] = None,
        continuation_token: Optional[str] = None,
        max_keys: int = MAX_LIST_KEYS,
    ) -> Result[ListResult, DriveError]:
        """
        List one page of keys under a prefix.

        Objects and common prefixes are merged into one name-ordered
        sequence; a page holds at most max_keys of them.
        """
        if max_keys <= 0 or max_keys > MAX_LIST_KEYS:
            return Err(
                InvalidArgumentError.field(
                    "max_keys", max_keys, f"must be in 1..{MAX_LIST_KEYS}"
                )
            )
        failure = self._take_failure("list_objects")
        if failure is not None:
            return Err(failure)

        after: Optional[str] = None
        if continuation_token:
            after = _decode_token(continuation_token)
            if after is None:
                return Err(
                    InvalidArgumentError.field(
                        "continuation_token", continuation_token, "malformed token"
                    )
                )

        async with self._lock:
            items = self._list_items(prefix, delimiter)
            self._metrics.list_count += 1

        if after is not None:
            items = [item for item in items if item[0] > after]

        page = items[:max_keys]
        truncated = len(items) > max_keys

        objects = tuple(summary for _, summary in page if summary is not None)
        prefixes = tuple(name for name, summary in page if summary is None)
        next_token = _encode_token(page[-1][0]) if truncated else None

        return Ok(
            ListResult(
                objects=objects,
                common_prefixes=prefixes,
                next_token=next_token,
                is_truncated=truncated,
            )
        )

    def _list_items(
        self,
        prefix: str,
        delimiter: Optional[str],
    ) -> List[Tuple[str, Optional[ObjectSummary]]]:
        """Name-ordered (name, summary) pairs; summary is None for a prefix."""
        items: List[Tuple[str, Optional[ObjectSummary]]] = []
        seen_prefixes: set[str] = set()
        for key in sorted(k for k in self._summaries if k.startswith(prefix)):
            if delimiter:
                idx = key.find(delimiter, len(prefix))
                if idx >= 0:
                    common = key[: idx + len(delimiter)]
                    if common not in seen_prefixes:
                        seen_prefixes.add(common)
                        items.append((common, None))
                    continue
            items.append((key, self._summaries[key]))
        items.sort(key=lambda item: item[0])
        return items

    # -------------------------------------------------------------------------
    # PRESIGNED URLS
    # -------------------------------------------------------------------------

    async def presign_get(
        self,
        key: str,
        expiry_seconds: int,
        download_filename: Optional[str] = None,
    ) -> Result[str, DriveError]:
        """Local stand-in URL with the same query shape as an S3 presign."""
        failure = self._take_failure("presign_get")
        if failure is not None:
            return Err(failure)

        params: Dict[str, str] = {"X-Amz-Expires": str(expiry_seconds)}
        if download_filename:
            params["response-content-disposition"] = (
                f'attachment; filename="{download_filename}"'
            )
        self._metrics.presign_count += 1
        return Ok(f"memory://{self._bucket}/{quote(key)}?{urlencode(params)}")

    async def presign_put(
        self,
        key: str,
        content_type: str,
        expiry_seconds: int,
    ) -> Result[str, DriveError]:
        failure = self._take_failure("presign_put")
        if failure is not None:
            return Err(failure)

        params = {"X-Amz-Expires": str(expiry_seconds), "Content-Type": content_type}
        self._metrics.presign_count += 1
        return Ok(f"memory://{self._bucket}/{quote(key)}?{urlencode(params)}")

    # -------------------------------------------------------------------------
    # UTILITY
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Nothing to release; present for parity with the S3 store."""

    def snapshot(self) -> Dict[str, bytes]:
        """Copy of every key and body, for assertions."""
        return dict(self._objects)

    @property
    def metrics(self) -> StoreMetrics:
        """Get current metrics snapshot."""
        return self._metrics


__all__ = ["InMemoryObjectStore"]
