"""Tests for read-access decisions and URL issuance."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from objectdrive.core.config import AnonymousAccessPolicy, DriveConfig
from objectdrive.core.errors import AccessDeniedError
from objectdrive.drive.access import AccessResolver
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import GeneralAccess, SharedUser, SharingSettings, SharingUpdate
from objectdrive.drive.service import DriveService
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import assert_err, assert_ok

OWNER = "owner@example.com"


@pytest.fixture
def resolver(store: InMemoryObjectStore) -> AccessResolver:
    return AccessResolver(MetadataStore(store, TTLCache()), OWNER)


class TestDecide:
    def test_public_allows_anyone(self, resolver: AccessResolver) -> None:
        settings = SharingSettings(general_access=GeneralAccess.PUBLIC)
        assert resolver.decide(settings, "stranger@example.com")
        assert resolver.decide(settings, None)

    def test_owner_matches_case_insensitively(self, resolver: AccessResolver) -> None:
        assert resolver.decide(SharingSettings(), "Owner@Example.COM")

    def test_grantee_allowed_others_denied(self, resolver: AccessResolver) -> None:
        settings = SharingSettings(shared_with=(SharedUser("amy@example.com"),))
        assert resolver.decide(settings, "AMY@example.com")
        assert not resolver.decide(settings, "bob@example.com")

    def test_anonymous_policy(self, store: InMemoryObjectStore) -> None:
        metadata = MetadataStore(store, TTLCache())
        allow = AccessResolver(metadata, OWNER, AnonymousAccessPolicy.ALLOW)
        deny = AccessResolver(metadata, OWNER, AnonymousAccessPolicy.DENY)
        assert allow.decide(SharingSettings(), None)
        assert not deny.decide(SharingSettings(), None)
        assert not deny.decide(SharingSettings(), "")

    def test_check_read_denied(self, resolver: AccessResolver) -> None:
        error = assert_err(asyncio.run(resolver.check_read("a.txt", "bob@example.com")))
        assert isinstance(error, AccessDeniedError)


class TestFileUrl:
    def test_restricted_file_gets_presigned_url(self, service: DriveService) -> None:
        url = assert_ok(asyncio.run(service.file_url("docs/a.txt", caller=OWNER)))
        assert url.startswith("memory://local-drive/docs/a.txt?")
        assert "response-content-disposition" not in url

    def test_download_forces_presigned_attachment(
        self, make_service: Callable[..., DriveService]
    ) -> None:
        service = make_service(DriveConfig(public_base_url="https://cdn.example.com"))
        url = assert_ok(
            asyncio.run(service.file_url("docs/a.txt", OWNER, is_public=True, download=True))
        )
        assert url.startswith("memory://")
        assert "filename%3D%22a.txt%22" in url

    def test_public_record_uses_cdn(self, make_service: Callable[..., DriveService]) -> None:
        service = make_service(DriveConfig(public_base_url="https://cdn.example.com"))

        async def scenario():
            await service.update_sharing(
                "docs/a.txt", SharingUpdate(general_access=GeneralAccess.PUBLIC)
            )
            return assert_ok(await service.file_url("docs/a.txt", "stranger@example.com"))

        assert asyncio.run(scenario()) == "https://cdn.example.com/docs/a.txt"

    def test_always_public_flag(self, make_service: Callable[..., DriveService]) -> None:
        service = make_service(
            DriveConfig(public_base_url="https://cdn.example.com", always_use_public_url=True)
        )
        url = assert_ok(asyncio.run(service.file_url("a.txt", OWNER)))
        assert url == "https://cdn.example.com/a.txt"

    def test_public_without_base_url_falls_back_to_presign(
        self, service: DriveService
    ) -> None:
        url = assert_ok(asyncio.run(service.file_url("a.txt", OWNER, is_public=True)))
        assert url.startswith("memory://")

    def test_stranger_denied(self, service: DriveService) -> None:
        error = assert_err(asyncio.run(service.file_url("a.txt", "bob@example.com")))
        assert isinstance(error, AccessDeniedError)

    def test_short_link_skips_access_check(
        self, make_service: Callable[..., DriveService]
    ) -> None:
        service = make_service(
            DriveConfig(
                public_base_url="https://cdn.example.com",
                anonymous_policy=AnonymousAccessPolicy.DENY,
            )
        )

        async def scenario():
            link = assert_ok(await service.create_short_link("secret.txt"))
            return assert_ok(await service.resolve_short_link(link.id))

        assert asyncio.run(scenario()) == "https://cdn.example.com/secret.txt"

    def test_upload_url(self, service: DriveService) -> None:
        url = assert_ok(asyncio.run(service.upload_url("in/new.csv", "text/csv")))
        assert "Content-Type=text%2Fcsv" in url
