"""Tests for storage usage and dashboard statistics."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from objectdrive.core.config import DriveConfig
from objectdrive.drive.service import DriveService
from objectdrive.drive.usage import DOCUMENTS, IMAGES, OTHERS, VIDEOS, category_of, percent
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import assert_ok


class TestCategories:
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("pics/a.JPG", IMAGES),
            ("docs/b.pdf", DOCUMENTS),
            ("clip.webm", VIDEOS),
            ("archive.tar.gz", OTHERS),
            ("Makefile", OTHERS),
            ("v1.2/readme", OTHERS),
        ],
    )
    def test_category_of(self, key: str, expected: str) -> None:
        assert category_of(key) == expected

    def test_percent_rounds_half_up(self) -> None:
        assert percent(1, 8) == 13
        assert percent(1, 3) == 33
        assert percent(2, 3) == 67
        assert percent(5, 0) == 0


class TestStorageUsage:
    def test_breakdown(self, store: InMemoryObjectStore, service: DriveService) -> None:
        async def scenario():
            await store.put_object("pics/", b"")
            await store.put_object("pics/a.jpg", b"i" * 200)
            await store.put_object("docs/b.pdf", b"d" * 100)
            await store.put_object(".metadata/sharing.json", b"{}" * 50)
            return assert_ok(await service.storage_usage())

        usage = asyncio.run(scenario())
        assert usage.total_bytes == 300
        assert usage.file_count == 2
        assert usage.folder_count == 1
        assert usage.percent_of(IMAGES) == 67
        assert usage.percent_of(DOCUMENTS) == 33
        assert usage.percent_of(VIDEOS) == 0
        assert [item.label for item in usage.breakdown] == [IMAGES, DOCUMENTS, VIDEOS, OTHERS]
        assert usage.to_dict()["breakdown"][0] == {
            "label": "Images",
            "percent": 67,
            "bytes": 200,
            "color": "#3b82f6",
        }

    def test_empty_store_is_all_zero(self, service: DriveService) -> None:
        usage = assert_ok(asyncio.run(service.storage_usage()))
        assert usage.total_bytes == 0
        assert all(item.percent == 0 for item in usage.breakdown)

    def test_result_is_cached_until_mutation(
        self, store: InMemoryObjectStore, service: DriveService
    ) -> None:
        async def scenario():
            await store.put_object("a.txt", b"12345")
            first = assert_ok(await service.storage_usage())
            await store.put_object("b.txt", b"67890")
            cached = assert_ok(await service.storage_usage())
            await service.upload("c.txt", b"1")
            fresh = assert_ok(await service.storage_usage())
            return first, cached, fresh

        first, cached, fresh = asyncio.run(scenario())
        assert first.total_bytes == cached.total_bytes == 5
        assert fresh.total_bytes == 11


class TestDashboard:
    def test_stats_and_activities(
        self, store: InMemoryObjectStore, service: DriveService
    ) -> None:
        async def scenario():
            await service.upload("docs/a.txt", b"a" * 10)
            await service.create_folder("docs/sub")
            await service.upload("b.txt", b"b" * 5)
            await service.move_to_trash("b.txt")
            return assert_ok(await service.dashboard_stats())

        stats = asyncio.run(scenario()).to_dict()
        assert stats["stats"] == {
            "totalFiles": 2,
            "totalFolders": 1,
            "storageUsed": 15,
            "storageQuota": 1024 ** 3,
            "usedPercentage": 0,
        }
        activities = stats["activities"]
        assert [a["id"] for a in activities] == ["trash/b.txt", "docs/a.txt"]
        assert activities[0]["type"] == "delete"
        assert activities[0]["status"] == "Deleted"
        assert activities[0]["fileName"] == "b.txt"
        assert activities[1]["type"] == "upload"
        assert activities[1]["status"] == "Modified"
        assert activities[1]["userName"] == "S3 Storage"

    def test_used_percentage_is_capped(
        self,
        store: InMemoryObjectStore,
        make_service: Callable[..., DriveService],
    ) -> None:
        service = make_service(DriveConfig(quota_bytes=100))

        async def scenario():
            await service.upload("big.bin", b"x" * 250)
            return assert_ok(await service.dashboard_stats())

        dashboard = asyncio.run(scenario())
        assert dashboard.used_percentage == 100
        assert dashboard.storage_quota == 100
