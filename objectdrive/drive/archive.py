"""
Archive Streamer

Streams a folder as a ZIP archive without buffering the archive or
any object in memory.

zipfile writes into a sink that has no tell()/seek(), so it switches
to data-descriptor mode: each entry header is written up front and
sizes/CRC follow the entry body. Bytes are drained from the sink
after every chunk and yielded to the consumer.

Guarantees:
    - At most one store read stream is open at a time
    - Pages are listed lazily; closing the generator stops listing
    - Any store error aborts the stream by raising it
"""

from __future__ import annotations

import logging
import zipfile
from contextlib import aclosing
from datetime import datetime
from typing import AsyncIterator

from objectdrive.core.constants import (
    ARCHIVE_CHUNK_BYTES,
    ARCHIVE_DEFAULT_NAME,
    TRASH_PREFIX,
)
from objectdrive.drive import paths
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.protocols import ObjectStoreProtocol, ObjectSummary

logger = logging.getLogger(__name__)

# Earliest timestamp a ZIP header can carry
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def archive_filename(prefix: str) -> str:
    """Suggested download name: "<last segment>.zip", or "download.zip" at the root."""
    return f"{paths.name(prefix) or ARCHIVE_DEFAULT_NAME}.zip"


def _zip_time(value: datetime) -> tuple[int, int, int, int, int, int]:
    stamp = (value.year, value.month, value.day, value.hour, value.minute, value.second)
    return max(stamp, _ZIP_EPOCH)


class _ArchiveSink:
    """Write-only buffer handed to zipfile; drained after every write burst."""

    __slots__ = ("_buffer",)

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


class ArchiveStreamer:
    """
    Usage:
        streamer = ArchiveStreamer(store, walker)
        async for chunk in streamer.stream("photos/2024/"):
            response.write(chunk)
    """

    __slots__ = ("_store", "_walker", "_chunk_bytes")

    def __init__(
        self,
        store: ObjectStoreProtocol,
        walker: PaginationWalker,
        chunk_bytes: int = ARCHIVE_CHUNK_BYTES,
    ) -> None:
        self._store = store
        self._walker = walker
        self._chunk_bytes = chunk_bytes

    @staticmethod
    def _include(obj: ObjectSummary, prefix: str) -> bool:
        if paths.is_folder(obj.key) or paths.is_hidden(obj.key):
            return False
        return prefix.startswith(TRASH_PREFIX) or not paths.is_trashed(obj.key)

    async def stream(self, prefix: str) -> AsyncIterator[bytes]:
        """
        Yield the ZIP archive of every file below prefix.

        Raises:
            NotFoundError: An object vanished between listing and read.
            BackingStoreError: Listing or read failure.
        """
        root = paths.normalize_folder(prefix) if prefix else ""
        sink = _ArchiveSink()
        archive = zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED)
        entries = 0
        total_bytes = 0

        logger.info("Archive stream started", extra={"prefix": root})

        async with aclosing(self._walker.pages(root)) as pages:
            async for page in pages:
                for obj in page.objects:
                    if not self._include(obj, root):
                        continue

                    info = zipfile.ZipInfo(
                        paths.relative_to(obj.key, root),
                        date_time=_zip_time(obj.last_modified),
                    )
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.file_size = obj.size

                    with archive.open(info, mode="w") as entry:
                        async with aclosing(
                            self._store.stream_object(obj.key, self._chunk_bytes)
                        ) as body:
                            async for chunk in body:
                                entry.write(chunk)
                                total_bytes += len(chunk)
                                data = sink.drain()
                                if data:
                                    yield data

                    entries += 1
                    data = sink.drain()
                    if data:
                        yield data

        archive.close()
        data = sink.drain()
        if data:
            yield data

        logger.info(
            "Archive stream finished",
            extra={"prefix": root, "entries": entries, "bytes": total_bytes},
        )
