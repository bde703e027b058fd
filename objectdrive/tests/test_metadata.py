"""Tests for stars, sharing settings and short links."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from itertools import repeat

import pytest

from objectdrive.core.constants import (
    LINKS_DOCUMENT_KEY,
    SHARING_DOCUMENT_KEY,
    STARS_DOCUMENT_KEY,
)
from objectdrive.core.errors import (
    BackingStoreError,
    ErrorCode,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import (
    GeneralAccess,
    Role,
    SharedUser,
    SharingSettings,
    SharingUpdate,
)
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import FakeClock, assert_err, assert_ok

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(5.0, clock=clock)


@pytest.fixture
def metadata(store: InMemoryObjectStore, cache: TTLCache) -> MetadataStore:
    return MetadataStore(store, cache, clock=lambda: NOW)


class TestStars:
    def test_toggle_twice_restores_set(self, metadata: MetadataStore) -> None:
        async def scenario():
            first = assert_ok(await metadata.toggle_star("a.txt"))
            second = assert_ok(await metadata.toggle_star("b.txt"))
            third = assert_ok(await metadata.toggle_star("a.txt"))
            return first, second, third

        assert asyncio.run(scenario()) == (("a.txt",), ("a.txt", "b.txt"), ("b.txt",))

    def test_document_is_json_list(
        self, store: InMemoryObjectStore, metadata: MetadataStore
    ) -> None:
        asyncio.run(metadata.toggle_star("docs/"))
        assert json.loads(store.snapshot()[STARS_DOCUMENT_KEY]) == ["docs/"]

    def test_missing_or_blank_document_is_empty(
        self, store: InMemoryObjectStore, metadata: MetadataStore
    ) -> None:
        assert assert_ok(asyncio.run(metadata.starred_keys())) == ()
        asyncio.run(store.put_object(STARS_DOCUMENT_KEY, b"  \n"))
        assert assert_ok(asyncio.run(metadata.starred_keys())) == ()

    def test_corrupt_document_is_store_error(
        self, store: InMemoryObjectStore, metadata: MetadataStore
    ) -> None:
        asyncio.run(store.put_object(STARS_DOCUMENT_KEY, b"{not json"))
        error = assert_err(asyncio.run(metadata.starred_keys()))
        assert isinstance(error, BackingStoreError)
        assert error.code is ErrorCode.STORE_CORRUPT_DOCUMENT

    @pytest.mark.parametrize("key", ["", ".metadata/stars.json"])
    def test_rejects_reserved_keys(self, metadata: MetadataStore, key: str) -> None:
        error = assert_err(asyncio.run(metadata.toggle_star(key)))
        assert isinstance(error, InvalidArgumentError)

    def test_reads_are_cached_for_ttl(
        self,
        store: InMemoryObjectStore,
        metadata: MetadataStore,
        clock: FakeClock,
    ) -> None:
        async def scenario():
            await metadata.toggle_star("a.txt")
            await metadata.starred_keys()
            # Out-of-band overwrite is not seen until the entry expires
            await store.put_object(STARS_DOCUMENT_KEY, b'["z.txt"]')
            cached = assert_ok(await metadata.starred_keys())
            clock.advance(5.0)
            fresh = assert_ok(await metadata.starred_keys())
            return cached, fresh

        assert asyncio.run(scenario()) == (("a.txt",), ("z.txt",))


class TestSharing:
    def test_default_is_restricted(self, metadata: MetadataStore) -> None:
        settings = assert_ok(asyncio.run(metadata.get_sharing("a.txt")))
        assert settings == SharingSettings()
        assert not settings.is_shared()

    def test_update_merges_present_fields(
        self, store: InMemoryObjectStore, metadata: MetadataStore
    ) -> None:
        async def scenario():
            await metadata.update_sharing(
                "a.txt",
                SharingUpdate(shared_with=(SharedUser("Bob@Example.com", Role.EDITOR),)),
            )
            return assert_ok(
                await metadata.update_sharing(
                    "a.txt", SharingUpdate(general_access=GeneralAccess.PUBLIC)
                )
            )

        merged = asyncio.run(scenario())
        assert merged.general_access is GeneralAccess.PUBLIC
        assert merged.shared_with == (SharedUser("Bob@Example.com", Role.EDITOR),)
        assert merged.grants("bob@example.com")
        assert merged.updated_at == "2024-06-01T09:30:00Z"

        document = json.loads(store.snapshot()[SHARING_DOCUMENT_KEY])
        assert document["a.txt"] == {
            "generalAccess": "public",
            "generalRole": "viewer",
            "sharedWith": [{"email": "Bob@Example.com", "role": "editor"}],
            "updatedAt": "2024-06-01T09:30:00Z",
        }


class TestShortLinks:
    def test_create_and_resolve(self, metadata: MetadataStore) -> None:
        async def scenario():
            link = assert_ok(await metadata.create_short_link("docs/a.txt"))
            resolved = assert_ok(await metadata.resolve_link(link.id))
            return link, resolved

        link, resolved = asyncio.run(scenario())
        assert len(link.id) == 8
        assert resolved == link
        assert link.created_at == "2024-06-01T09:30:00Z"

    def test_existing_link_is_reused(self, metadata: MetadataStore) -> None:
        async def scenario():
            first = assert_ok(await metadata.create_short_link("a.txt"))
            second = assert_ok(await metadata.create_short_link("a.txt"))
            return first, second

        first, second = asyncio.run(scenario())
        assert first.id == second.id

    def test_taken_id_is_redrawn(
        self, store: InMemoryObjectStore, cache: TTLCache
    ) -> None:
        ids = iter(["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"])
        metadata = MetadataStore(store, cache, link_id_factory=lambda: next(ids))

        async def scenario():
            first = assert_ok(await metadata.create_short_link("a.txt"))
            second = assert_ok(await metadata.create_short_link("b.txt"))
            return first.id, second.id

        assert asyncio.run(scenario()) == ("aaaaaaaa", "bbbbbbbb")
        links = json.loads(store.snapshot()[LINKS_DOCUMENT_KEY])
        assert set(links) == {"aaaaaaaa", "bbbbbbbb"}

    def test_exhausted_ids_are_an_internal_error(
        self, store: InMemoryObjectStore, cache: TTLCache
    ) -> None:
        ids = repeat("same")
        metadata = MetadataStore(store, cache, link_id_factory=lambda: next(ids))

        async def scenario():
            assert_ok(await metadata.create_short_link("a.txt"))
            return await metadata.create_short_link("b.txt")

        error = assert_err(asyncio.run(scenario()))
        assert error.code is ErrorCode.INTERNAL_ERROR

    def test_unknown_link(self, metadata: MetadataStore) -> None:
        error = assert_err(asyncio.run(metadata.resolve_link("missing")))
        assert isinstance(error, NotFoundError)
