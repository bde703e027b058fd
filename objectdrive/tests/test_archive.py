"""Tests for streamed folder archives."""

from __future__ import annotations

import asyncio
import io
import zipfile
from datetime import datetime, timezone

import pytest

from objectdrive.core.errors import BackingStoreError, InvalidArgumentError
from objectdrive.drive.archive import ArchiveStreamer, archive_filename, _zip_time
from objectdrive.drive.service import DriveService
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import assert_err, assert_ok

CONTENT = {
    "docs/": b"",
    "docs/a.txt": b"alpha " * 100,
    "docs/sub/b.bin": bytes(range(256)) * 8,
    "docs/.metadata-lookalike": b"kept",
    ".metadata/stars.json": b"[]",
    "trash/docs/old.txt": b"old",
    "top.txt": b"top",
}


async def _seed(store: InMemoryObjectStore) -> None:
    for key, data in CONTENT.items():
        await store.put_object(key, data)


async def _drain(stream) -> bytes:
    return b"".join([chunk async for chunk in stream])


def _read_zip(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.testzip() is None
        return {name: zf.read(name) for name in zf.namelist()}


class TestArchiveStreamer:
    def test_folder_archive_uses_relative_names(self, store: InMemoryObjectStore) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store), chunk_bytes=64)

        async def scenario() -> bytes:
            await _seed(store)
            return await _drain(streamer.stream("docs"))

        entries = _read_zip(asyncio.run(scenario()))
        assert entries == {
            "a.txt": CONTENT["docs/a.txt"],
            "sub/b.bin": CONTENT["docs/sub/b.bin"],
            ".metadata-lookalike": b"kept",
        }

    def test_root_archive_skips_hidden_and_trash(self, store: InMemoryObjectStore) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store))

        async def scenario() -> bytes:
            await _seed(store)
            return await _drain(streamer.stream(""))

        names = set(_read_zip(asyncio.run(scenario())))
        assert names == {"docs/a.txt", "docs/sub/b.bin", "docs/.metadata-lookalike", "top.txt"}

    def test_trash_folder_archive_includes_trashed_files(
        self, store: InMemoryObjectStore
    ) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store))

        async def scenario() -> bytes:
            await _seed(store)
            return await _drain(streamer.stream("trash/"))

        assert _read_zip(asyncio.run(scenario())) == {"docs/old.txt": b"old"}

    def test_empty_folder_is_valid_empty_zip(self, store: InMemoryObjectStore) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store))
        assert _read_zip(asyncio.run(_drain(streamer.stream("nothing/")))) == {}

    def test_read_failure_aborts_stream(self, store: InMemoryObjectStore) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store))

        async def scenario() -> None:
            await _seed(store)
            store.fail_next("stream_object")
            await _drain(streamer.stream("docs/"))

        with pytest.raises(BackingStoreError):
            asyncio.run(scenario())

    def test_listing_failure_aborts_stream(self, store: InMemoryObjectStore) -> None:
        streamer = ArchiveStreamer(store, PaginationWalker(store))
        store.fail_next("list_objects")
        with pytest.raises(BackingStoreError):
            asyncio.run(_drain(streamer.stream("docs/")))

    def test_zip_time_is_clamped_to_dos_epoch(self) -> None:
        old = datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert _zip_time(old) == (1980, 1, 1, 0, 0, 0)


class TestDownloadFolder:
    def test_filename(self) -> None:
        assert archive_filename("photos/2024/") == "2024.zip"
        assert archive_filename("") == "download.zip"

    def test_stream_is_lazy(self, store: InMemoryObjectStore, service: DriveService) -> None:
        filename, stream = assert_ok(service.download_folder("docs/"))
        assert filename == "docs.zip"
        assert store.metrics.list_count == 0

    def test_hidden_prefix_rejected(self, service: DriveService) -> None:
        error = assert_err(service.download_folder(".metadata/"))
        assert isinstance(error, InvalidArgumentError)
