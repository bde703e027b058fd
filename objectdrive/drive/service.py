"""
Drive Service

Facade wiring the drive components over one object store and one
TTL cache. Every operation returns Result[T, DriveError]; the archive
stream is the only value that raises, and it does so while iterated.

Example:
    service = DriveService.in_memory()
    await service.upload("docs/plan.pdf", b"%PDF...", "application/pdf")
    page = (await service.list_files("docs/")).unwrap()
    await service.close()
"""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator, Callable, Optional, Sequence

from objectdrive.core.config import BackendKind, DriveConfig
from objectdrive.core.constants import DASHBOARD_RECENT_LIMIT, DEFAULT_RECENT_LIMIT
from objectdrive.core.errors import DriveError, InvalidArgumentError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.drive import paths
from objectdrive.drive.access import AccessResolver
from objectdrive.drive.archive import ArchiveStreamer, archive_filename
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.lifecycle import LifecycleManager, UploadReceipt
from objectdrive.drive.listing import ListingEngine
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import (
    Activity,
    DashboardStats,
    GeneralAccess,
    ListPage,
    ShareLink,
    SharingSettings,
    SharingUpdate,
    StorageUsage,
    TransferJob,
)
from objectdrive.drive.urls import UrlIssuer
from objectdrive.drive.usage import UsageAggregator, percent
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.storage.config import S3Config
from objectdrive.storage.protocols import ObjectStoreProtocol

logger = logging.getLogger(__name__)


class DriveService:
    """
    Drive operations over a flat object store.

    The service owns the cache; components receive it so any mutation
    invalidates every namespace at once.
    """

    __slots__ = (
        "_store",
        "_config",
        "_cache",
        "_walker",
        "_metadata",
        "_urls",
        "_listing",
        "_lifecycle",
        "_access",
        "_usage",
        "_archive",
    )

    def __init__(
        self,
        store: ObjectStoreProtocol,
        config: Optional[DriveConfig] = None,
        origin_base_url: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        metadata: Optional[MetadataStore] = None,
    ) -> None:
        self._store = store
        self._config = config or DriveConfig()
        self._cache = TTLCache(self._config.cache_ttl_seconds, clock=clock)
        self._walker = PaginationWalker(store)
        self._metadata = metadata or MetadataStore(store, self._cache)
        self._urls = UrlIssuer(store, self._config, origin_base_url)
        self._listing = ListingEngine(
            self._walker, self._metadata, self._cache, self._urls, self._config
        )
        self._lifecycle = LifecycleManager(store, self._walker, self._cache, self._urls)
        self._access = AccessResolver(
            self._metadata, self._config.owner_email, self._config.anonymous_policy
        )
        self._usage = UsageAggregator(self._walker, self._cache, self._config.quota_bytes)
        self._archive = ArchiveStreamer(
            store, self._walker, self._config.archive_chunk_bytes
        )

    # -------------------------------------------------------------------------
    # CONSTRUCTION
    # -------------------------------------------------------------------------

    @classmethod
    def in_memory(cls, config: Optional[DriveConfig] = None) -> DriveService:
        return cls(InMemoryObjectStore(), config)

    @classmethod
    async def open(
        cls,
        config: DriveConfig,
        s3_config: Optional[S3Config] = None,
    ) -> Result[DriveService, DriveError]:
        """
        Build a service for the configured backend.

        The S3 backend reads S3Config from the environment when none is
        given and connects before returning.
        """
        if config.backend is BackendKind.IN_MEMORY:
            return Ok(cls.in_memory(config))

        from objectdrive.storage.s3_store import S3ObjectStore

        try:
            s3 = s3_config or S3Config.from_env()
        except ValueError as e:
            return Err(InvalidArgumentError.field("s3_config", None, str(e)))

        store = S3ObjectStore(s3)
        connected = await store.connect()
        if connected.is_err():
            return Err(connected.error)
        return Ok(cls(store, config, origin_base_url=s3.origin_url()))

    async def close(self) -> None:
        await self._store.close()

    @property
    def config(self) -> DriveConfig:
        return self._config

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # -------------------------------------------------------------------------
    # LISTING
    # -------------------------------------------------------------------------

    async def list_files(
        self,
        prefix: str = "",
        limit: Optional[int] = None,
        continuation_token: Optional[str] = None,
        recursive: bool = False,
    ) -> Result[ListPage, DriveError]:
        return await self._listing.list_files(prefix, limit, continuation_token, recursive)

    async def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> Result[ListPage, DriveError]:
        return await self._listing.recent(limit)

    async def starred(self) -> Result[ListPage, DriveError]:
        return await self._listing.starred()

    async def shared(self) -> Result[ListPage, DriveError]:
        return await self._listing.shared()

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Result[UploadReceipt, DriveError]:
        return await self._lifecycle.upload(key, data, content_type)

    async def create_folder(self, key: str) -> Result[str, DriveError]:
        return await self._lifecycle.create_folder(key)

    async def delete(self, key: str) -> Result[int, DriveError]:
        return await self._lifecycle.delete(key)

    async def bulk_delete(self, keys: Sequence[str]) -> Result[int, DriveError]:
        return await self._lifecycle.bulk_delete(keys)

    async def move_to_trash(self, key: str) -> Result[str, DriveError]:
        return await self._lifecycle.move_to_trash(key)

    async def restore(self, trash_key: str) -> Result[str, DriveError]:
        return await self._lifecycle.restore(trash_key)

    async def resume(self, job: TransferJob) -> Result[TransferJob, DriveError]:
        return await self._lifecycle.resume(job)

    # -------------------------------------------------------------------------
    # STARS, SHARING, LINKS
    # -------------------------------------------------------------------------

    async def starred_keys(self) -> Result[tuple[str, ...], DriveError]:
        return await self._metadata.starred_keys()

    async def toggle_star(self, key: str) -> Result[tuple[str, ...], DriveError]:
        return await self._metadata.toggle_star(key)

    async def get_sharing(self, key: str) -> Result[SharingSettings, DriveError]:
        return await self._metadata.get_sharing(key)

    async def update_sharing(
        self,
        key: str,
        update: SharingUpdate,
    ) -> Result[SharingSettings, DriveError]:
        return await self._metadata.update_sharing(key, update)

    async def create_short_link(self, key: str) -> Result[ShareLink, DriveError]:
        return await self._metadata.create_short_link(key)

    async def resolve_short_link(self, link_id: str) -> Result[str, DriveError]:
        """
        URL behind a short link.

        Holding the link id is the credential, so no access check runs
        and the public URL is preferred.
        """
        link = await self._metadata.resolve_link(link_id)
        if link.is_err():
            return Err(link.error)
        return await self._urls.file_url(link.value.key, is_public=True)

    # -------------------------------------------------------------------------
    # URLS
    # -------------------------------------------------------------------------

    async def file_url(
        self,
        key: str,
        caller: Optional[str] = None,
        is_public: bool = False,
        download: bool = False,
    ) -> Result[str, DriveError]:
        """Read URL for key after the caller's access is checked."""
        if not key:
            return Err(InvalidArgumentError.field("key", key, "must not be empty"))

        allowed = await self._access.check_read(key, caller)
        if allowed.is_err():
            return Err(allowed.error)

        public = is_public or allowed.value.general_access is GeneralAccess.PUBLIC
        return await self._urls.file_url(key, is_public=public, download=download)

    async def upload_url(self, key: str, content_type: str) -> Result[str, DriveError]:
        return await self._urls.upload_url(key, content_type)

    # -------------------------------------------------------------------------
    # USAGE AND DASHBOARD
    # -------------------------------------------------------------------------

    async def storage_usage(self) -> Result[StorageUsage, DriveError]:
        return await self._usage.storage_usage()

    async def dashboard_stats(self) -> Result[DashboardStats, DriveError]:
        usage = await self._usage.storage_usage()
        if usage.is_err():
            return Err(usage.error)

        recent = await self._listing.recent(DASHBOARD_RECENT_LIMIT)
        if recent.is_err():
            return Err(recent.error)

        activities = tuple(
            Activity(
                type="delete" if paths.is_trashed(entry.key) else "upload",
                file_name=entry.name,
                key=entry.key,
                timestamp=entry.last_modified,
            )
            for entry in recent.value.items
        )
        totals = usage.value
        return Ok(
            DashboardStats(
                total_files=totals.file_count,
                total_folders=totals.folder_count,
                storage_used=totals.total_bytes,
                storage_quota=totals.quota_bytes,
                used_percentage=min(percent(totals.total_bytes, totals.quota_bytes), 100),
                breakdown=totals.breakdown,
                recent_activities=activities,
            )
        )

    # -------------------------------------------------------------------------
    # ARCHIVES
    # -------------------------------------------------------------------------

    def download_folder(
        self,
        prefix: str,
    ) -> Result[tuple[str, AsyncIterator[bytes]], DriveError]:
        """
        Suggested filename and the lazy ZIP stream of prefix.

        Nothing is read until the stream is iterated.
        """
        if paths.is_hidden(prefix):
            return Err(InvalidArgumentError.field("key", prefix, "reserved metadata key"))
        return Ok((archive_filename(prefix), self._archive.stream(prefix)))


__all__ = ["DriveService"]
