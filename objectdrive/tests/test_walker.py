"""Tests for prefix traversal across pages."""

from __future__ import annotations

import asyncio
from contextlib import aclosing

import pytest

from objectdrive.core.errors import BackingStoreError
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import assert_err, assert_ok, seed


class _FailSecondPage(InMemoryObjectStore):
    """Fails every list call that carries a continuation token."""

    async def list_objects(self, prefix="", delimiter=None, continuation_token=None, max_keys=1000):
        if continuation_token:
            self.fail_next("list_objects")
        return await super().list_objects(prefix, delimiter, continuation_token, max_keys)


class TestWalk:
    def test_walk_spans_pages(self, store: InMemoryObjectStore) -> None:
        async def scenario() -> None:
            await seed(store, [f"docs/{i:03d}.txt" for i in range(25)] + ["other.txt"])
            walker = PaginationWalker(store, page_size=10)
            walked = assert_ok(await walker.walk("docs/"))
            assert len(walked.objects) == 25
            assert walked.pages == 3
            assert walked.keys[0] == "docs/000.txt"

        asyncio.run(scenario())

    def test_walk_with_delimiter_dedupes_prefixes(self, store: InMemoryObjectStore) -> None:
        async def scenario() -> None:
            await seed(store, ["a/1", "a/2", "b/1", "c.txt"])
            walker = PaginationWalker(store, page_size=1)
            walked = assert_ok(await walker.walk("", delimiter="/"))
            assert walked.common_prefixes == ("a/", "b/")
            assert [o.key for o in walked.objects] == ["c.txt"]

        asyncio.run(scenario())

    def test_error_on_later_page_discards_listing(self) -> None:
        async def scenario() -> None:
            store = _FailSecondPage()
            await seed(store, [f"k{i}" for i in range(5)])
            error = assert_err(await PaginationWalker(store, page_size=2).walk(""))
            assert isinstance(error, BackingStoreError)
            assert store.metrics.list_count == 1

        asyncio.run(scenario())


class TestPages:
    def test_pages_raise_store_error(self, store: InMemoryObjectStore) -> None:
        async def scenario() -> None:
            store.fail_next("list_objects")
            walker = PaginationWalker(store)
            async for _ in walker.pages(""):
                pass

        with pytest.raises(BackingStoreError):
            asyncio.run(scenario())

    def test_closing_stops_listing(self, store: InMemoryObjectStore) -> None:
        async def scenario() -> int:
            await seed(store, [f"k{i}" for i in range(10)])
            walker = PaginationWalker(store, page_size=2)
            async with aclosing(walker.pages("")) as pages:
                async for _ in pages:
                    break
            return store.metrics.list_count

        assert asyncio.run(scenario()) == 1
