"""
S3-Compatible Object Store
==========================

aioboto3 implementation of ObjectStoreProtocol for AWS S3, MinIO,
Cloudflare R2, and other S3-compatible services.

Design Principles:
------------------
1. **Bounded Calls**: Every request runs under asyncio.wait_for
2. **Retry Logic**: Delegated to botocore's standard retry mode
3. **Result Monad**: No exceptions for control flow (streams excepted)
4. **Presigned URLs**: Direct client uploads/downloads

Algorithmic Complexity:
-----------------------
| Operation       | Time     | Space    | Notes                      |
|-----------------|----------|----------|----------------------------|
| put_object      | O(n)     | O(n)     | n = object size            |
| get_object      | O(n)     | O(n)     | Full download to memory    |
| stream_object   | O(n)     | O(chunk) | Streaming download         |
| list_objects    | O(k)     | O(k)     | k = page size              |
| delete_objects  | O(k)     | O(k)     | k <= 1000                  |
| copy_object     | O(1)     | O(1)     | Server-side                |

Error Mapping:
--------------
- NoSuchKey / 404            -> NotFoundError
- asyncio.TimeoutError       -> BackingStoreError (STORE_TIMEOUT)
- any other client failure   -> BackingStoreError (STORE_UNAVAILABLE)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional, TYPE_CHECKING

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from objectdrive.core.constants import MAX_BATCH_DELETE, MAX_LIST_KEYS
from objectdrive.core.errors import (
    BackingStoreError,
    DriveError,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.core.types import Err, Ok, Result
from objectdrive.storage.config import S3Config
from objectdrive.storage.protocols import (
    ListResult,
    ObjectSummary,
    StoredObject,
    StoreMetrics,
)

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


def _is_not_found(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


# =============================================================================
# S3 OBJECT STORE
# =============================================================================

class S3ObjectStore:
    """
    Production S3-compatible object store.

    Example:
        >>> config = S3Config(bucket_name="my-bucket")
        >>> store = S3ObjectStore(config)
        >>> await store.connect()
        >>> result = await store.put_object("docs/a.txt", b"hello", "text/plain")
        >>> await store.close()

    A pre-built client may be passed for tests; the store then skips
    connect() and never closes it.
    """

    __slots__ = (
        "_config",
        "_client",
        "_session",
        "_metrics",
        "_connected",
        "_owns_client",
    )

    def __init__(self, config: S3Config, client: Optional["S3Client"] = None) -> None:
        self._config = config
        self._client: Optional["S3Client"] = client
        self._session: Any = None
        self._metrics = StoreMetrics()
        self._connected = client is not None
        self._owns_client = client is None

    # -------------------------------------------------------------------------
    # CONNECTION MANAGEMENT
    # -------------------------------------------------------------------------

    async def connect(self) -> Result[None, DriveError]:
        """
        Initialize S3 client with connection pool.

        Creates aioboto3 session and S3 client, then checks the bucket
        is reachable. Must be called before any operations.
        """
        if self._connected:
            return Ok(None)

        client_config = Config(
            max_pool_connections=self._config.max_pool_connections,
            connect_timeout=self._config.connect_timeout_seconds,
            read_timeout=self._config.read_timeout_seconds,
            retries={"max_attempts": self._config.max_retries, "mode": "standard"},
        )

        try:
            self._session = aioboto3.Session()
            self._client = await self._session.client(
                "s3",
                config=client_config,
                **self._config.get_client_kwargs(),
            ).__aenter__()
        except (BotoCoreError, ClientError, OSError) as e:
            self._metrics.connection_errors += 1
            return Err(BackingStoreError.unavailable("connect", e))

        result = await self._call(
            "head_bucket",
            self._client.head_bucket(Bucket=self._config.bucket_name),
        )
        if result.is_err():
            await self.close()
            return result

        self._connected = True
        logger.info(
            "Connected to object store",
            extra={"bucket": self._config.bucket_name, "region": self._config.region},
        )
        return Ok(None)

    async def close(self) -> None:
        """
        Close S3 client and release resources.

        Safe to call multiple times.
        """
        if self._client is not None and self._owns_client:
            await self._client.__aexit__(None, None, None)
            self._client = None
        self._connected = False

    def _require_client(self, operation: str) -> Result["S3Client", DriveError]:
        if not self._connected or self._client is None:
            return Err(
                BackingStoreError.unavailable(operation, RuntimeError("not connected"))
            )
        return Ok(self._client)

    async def _call(
        self,
        operation: str,
        request: Awaitable[Any],
        key: Optional[str] = None,
    ) -> Result[Any, DriveError]:
        """Run one client request under the per-call timeout and map failures."""
        timeout = self._config.request_timeout_seconds
        try:
            return Ok(await asyncio.wait_for(request, timeout=timeout))
        except asyncio.TimeoutError:
            self._metrics.timeout_errors += 1
            error: DriveError = BackingStoreError.timeout(operation, timeout, key=key)
        except ClientError as e:
            if _is_not_found(e):
                self._metrics.not_found_errors += 1
                return Err(NotFoundError.key(key or "", cause=e))
            self._metrics.connection_errors += 1
            error = BackingStoreError.unavailable(operation, e, key=key)
        except (BotoCoreError, OSError) as e:
            self._metrics.connection_errors += 1
            error = BackingStoreError.unavailable(operation, e, key=key)

        logger.error(
            "Object store call failed",
            extra={"operation": operation, "key": key, "error_id": error.error_id},
        )
        return Err(error)

    # -------------------------------------------------------------------------
    # CORE OPERATIONS
    # -------------------------------------------------------------------------

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Result[ObjectSummary, DriveError]:
        """Upload object to S3 with a single PUT."""
        client = self._require_client("put_object")
        if client.is_err():
            return client

        result = await self._call(
            "put_object",
            client.value.put_object(
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            ),
            key=key,
        )
        if result.is_err():
            return result

        self._metrics.put_count += 1
        self._metrics.bytes_uploaded += len(data)
        return Ok(
            ObjectSummary(
                key=key,
                size=len(data),
                last_modified=datetime.now(timezone.utc),
                etag=result.value.get("ETag", "").strip('"'),
                content_type=content_type,
            )
        )

    async def get_object(self, key: str) -> Result[StoredObject, DriveError]:
        """
        Download object from S3.

        Loads entire object into memory. Use `stream_object` for large
        objects.
        """
        client = self._require_client("get_object")
        if client.is_err():
            return client

        result = await self._call(
            "get_object",
            self._read_whole(client.value, key),
            key=key,
        )
        if result.is_err():
            return result

        data, response = result.value
        self._metrics.get_count += 1
        self._metrics.bytes_downloaded += len(data)
        return Ok(
            StoredObject(
                data=data,
                summary=ObjectSummary(
                    key=key,
                    size=response.get("ContentLength", len(data)),
                    last_modified=response.get(
                        "LastModified", datetime.now(timezone.utc)
                    ),
                    etag=response.get("ETag", "").strip('"'),
                    content_type=response.get("ContentType"),
                ),
            )
        )

    async def _read_whole(self, client: "S3Client", key: str) -> tuple[bytes, Dict[str, Any]]:
        response = await client.get_object(Bucket=self._config.bucket_name, Key=key)
        async with response["Body"] as stream:
            data = await stream.read()
        return data, response

    async def stream_object(self, key: str, chunk_size: int) -> AsyncIterator[bytes]:
        """
        Stream object download in chunks.

        Raises:
            NotFoundError: Key absent.
            BackingStoreError: Request or read failure.
        """
        client = self._require_client("stream_object")
        if client.is_err():
            raise client.error

        opened = await self._call(
            "get_object",
            client.value.get_object(Bucket=self._config.bucket_name, Key=key),
            key=key,
        )
        if opened.is_err():
            raise opened.error

        self._metrics.get_count += 1
        async with opened.value["Body"] as stream:
            while True:
                chunk = await self._call("read_body", stream.read(chunk_size), key=key)
                if chunk.is_err():
                    raise chunk.error
                if not chunk.value:
                    break
                self._metrics.bytes_downloaded += len(chunk.value)
                yield chunk.value

    async def delete_object(self, key: str) -> Result[None, DriveError]:
        """Delete object. S3 reports success for absent keys."""
        client = self._require_client("delete_object")
        if client.is_err():
            return client

        result = await self._call(
            "delete_object",
            client.value.delete_object(Bucket=self._config.bucket_name, Key=key),
            key=key,
        )
        if result.is_err():
            return result
        self._metrics.delete_count += 1
        return Ok(None)

    async def delete_objects(self, keys: List[str]) -> Result[int, DriveError]:
        """
        Batch delete up to 1000 keys with DeleteObjects (quiet mode).

        Per-key errors reported by S3 fail the whole call.
        """
        if len(keys) > MAX_BATCH_DELETE:
            return Err(
                InvalidArgumentError.field(
                    "keys", len(keys), f"at most {MAX_BATCH_DELETE} keys per batch"
                )
            )
        if not keys:
            return Ok(0)

        client = self._require_client("delete_objects")
        if client.is_err():
            return client

        result = await self._call(
            "delete_objects",
            client.value.delete_objects(
                Bucket=self._config.bucket_name,
                Delete={"Objects": [{"Key": k} for k in keys], "Quiet": True},
            ),
        )
        if result.is_err():
            return result

        self._metrics.batch_delete_count += 1
        failed = [entry.get("Key", "") for entry in result.value.get("Errors", [])]
        if failed:
            error = BackingStoreError.partial_batch(failed)
            logger.error(
                "Batch delete reported failures",
                extra={"failed": len(failed), "error_id": error.error_id},
            )
            return Err(error)
        return Ok(len(keys))

    async def copy_object(
        self,
        source_key: str,
        dest_key: str,
    ) -> Result[None, DriveError]:
        """
        Server-side copy of object.

        No data transfer through client.
        """
        client = self._require_client("copy_object")
        if client.is_err():
            return client

        result = await self._call(
            "copy_object",
            client.value.copy_object(
                Bucket=self._config.bucket_name,
                Key=dest_key,
                CopySource={"Bucket": self._config.bucket_name, "Key": source_key},
            ),
            key=source_key,
        )
        if result.is_err():
            return result
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
        List one page with ListObjectsV2.

        The store's continuation token is surfaced unchanged.
        """
        client = self._require_client("list_objects")
        if client.is_err():
            return client

        list_kwargs: Dict[str, Any] = {
            "Bucket": self._config.bucket_name,
            "MaxKeys": max_keys,
        }
        if prefix:
            list_kwargs["Prefix"] = prefix
        if delimiter:
            list_kwargs["Delimiter"] = delimiter
        if continuation_token:
            list_kwargs["ContinuationToken"] = continuation_token

        result = await self._call(
            "list_objects",
            client.value.list_objects_v2(**list_kwargs),
            key=prefix,
        )
        if result.is_err():
            return result

        response = result.value
        objects = tuple(
            ObjectSummary(
                key=obj["Key"],
                size=obj.get("Size", 0),
                last_modified=obj.get("LastModified", datetime.now(timezone.utc)),
                etag=obj.get("ETag", "").strip('"'),
            )
            for obj in response.get("Contents", [])
        )
        prefixes = tuple(cp["Prefix"] for cp in response.get("CommonPrefixes", []))

        self._metrics.list_count += 1
        truncated = bool(response.get("IsTruncated", False))
        return Ok(
            ListResult(
                objects=objects,
                common_prefixes=prefixes,
                next_token=response.get("NextContinuationToken") if truncated else None,
                is_truncated=truncated,
            )
        )

    # -------------------------------------------------------------------------
    # PRESIGNED URLS
    # -------------------------------------------------------------------------

    async def presign_get(
        self,
        key: str,
        expiry_seconds: int,
        download_filename: Optional[str] = None,
    ) -> Result[str, DriveError]:
        """Generate presigned GET URL for direct client download."""
        client = self._require_client("presign_get")
        if client.is_err():
            return client

        params: Dict[str, Any] = {"Bucket": self._config.bucket_name, "Key": key}
        if download_filename:
            params["ResponseContentDisposition"] = (
                f'attachment; filename="{download_filename}"'
            )

        result = await self._call(
            "presign_get",
            client.value.generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=expiry_seconds,
            ),
            key=key,
        )
        if result.is_ok():
            self._metrics.presign_count += 1
        return result

    async def presign_put(
        self,
        key: str,
        content_type: str,
        expiry_seconds: int,
    ) -> Result[str, DriveError]:
        """Generate presigned PUT URL for direct client upload."""
        client = self._require_client("presign_put")
        if client.is_err():
            return client

        result = await self._call(
            "presign_put",
            client.value.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self._config.bucket_name,
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=expiry_seconds,
            ),
            key=key,
        )
        if result.is_ok():
            self._metrics.presign_count += 1
        return result

    @property
    def metrics(self) -> StoreMetrics:
        """Get current metrics snapshot."""
        return self._metrics


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = ["S3ObjectStore"]
