"""
Listing Engine

Folder and file views over a flat key namespace.

Modes:
    flat       delimiter "/": common prefixes become folder entries,
               followed by the files directly at the level
    recursive  no delimiter: every key under the prefix

Both modes drop the hidden metadata namespace, the key equal to the
prefix itself, and trash keys unless the prefix is inside the trash.

Views (recent, starred, shared) return a single untruncated page.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from objectdrive.core.config import DriveConfig
from objectdrive.core.constants import (
    CACHE_NS_ACTIVITY,
    DEFAULT_RECENT_LIMIT,
    DELIMITER,
    MAX_LIST_KEYS,
    TRASH_PREFIX,
)
from objectdrive.core.errors import DriveError, InvalidArgumentError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.drive import paths
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import ListPage, ObjectEntry
from objectdrive.drive.urls import UrlIssuer
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.protocols import ObjectSummary

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ListingEngine:
    """
    Builds ListPage values from store listings.

    Example:
        page = (await engine.list_files("docs/")).unwrap()
        for entry in page.items:
            print(entry.name, entry.is_folder)
    """

    __slots__ = ("_walker", "_metadata", "_cache", "_urls", "_config")

    def __init__(
        self,
        walker: PaginationWalker,
        metadata: MetadataStore,
        cache: TTLCache,
        urls: UrlIssuer,
        config: DriveConfig,
    ) -> None:
        self._walker = walker
        self._metadata = metadata
        self._cache = cache
        self._urls = urls
        self._config = config

    # -------------------------------------------------------------------------
    # ENTRY CONSTRUCTION
    # -------------------------------------------------------------------------

    def _entry(self, summary: ObjectSummary) -> ObjectEntry:
        folder = paths.is_folder(summary.key)
        return ObjectEntry(
            key=summary.key,
            is_folder=folder,
            size=summary.size,
            last_modified=summary.last_modified,
            name=paths.name(summary.key),
            url=None if folder else self._urls.public_url(summary.key),
        )

    @staticmethod
    def _folder_entry(prefix: str) -> ObjectEntry:
        return ObjectEntry(
            key=prefix,
            is_folder=True,
            size=None,
            last_modified=None,
            name=paths.name(prefix),
        )

    @staticmethod
    def _visible(key: str, prefix: str) -> bool:
        if key == prefix or paths.is_hidden(key):
            return False
        return prefix.startswith(TRASH_PREFIX) or not paths.is_trashed(key)

    # -------------------------------------------------------------------------
    # FOLDER LISTING
    # -------------------------------------------------------------------------

    async def list_files(
        self,
        prefix: str = "",
        limit: Optional[int] = None,
        continuation_token: Optional[str] = None,
        recursive: bool = False,
    ) -> Result[ListPage, DriveError]:
        """
        One page of the folder at prefix.

        The page holds at most limit store entries before filtering; the
        store's continuation token is passed through unchanged.
        """
        page_size = limit if limit is not None else self._config.default_page_size
        if not 0 < page_size <= MAX_LIST_KEYS:
            return Err(
                InvalidArgumentError.field("limit", limit, f"must be in 1..{MAX_LIST_KEYS}")
            )

        result = await self._walker.page(
            prefix,
            delimiter=None if recursive else DELIMITER,
            continuation_token=continuation_token,
            max_keys=page_size,
        )
        if result.is_err():
            return Err(result.error)
        listing = result.value

        files = [
            self._entry(obj)
            for obj in listing.objects
            if self._visible(obj.key, prefix)
        ]

        if recursive:
            items = files
        else:
            folders = [
                self._folder_entry(common)
                for common in listing.common_prefixes
                if self._visible(common, prefix)
            ]
            items = folders + [entry for entry in files if not entry.is_folder]

        logger.debug(
            "Listed folder",
            extra={
                "prefix": prefix,
                "recursive": recursive,
                "items": len(items),
                "truncated": listing.is_truncated,
            },
        )
        return Ok(
            ListPage(
                items=tuple(items),
                next_continuation_token=listing.next_token,
                is_truncated=listing.is_truncated,
            )
        )

    # -------------------------------------------------------------------------
    # VIEWS
    # -------------------------------------------------------------------------

    async def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> Result[ListPage, DriveError]:
        """
        Most recently modified files, newest first.

        Scans one page of the namespace; folders and hidden keys are
        excluded. The sorted scan is cached under "activity".
        """
        if limit <= 0:
            return Err(InvalidArgumentError.field("limit", limit, "must be positive"))

        ordered: Optional[tuple[ObjectEntry, ...]] = self._cache.get(CACHE_NS_ACTIVITY)
        if ordered is None:
            result = await self._walker.page(
                "", max_keys=self._config.recent_scan_keys
            )
            if result.is_err():
                return Err(result.error)

            entries = [
                self._entry(obj)
                for obj in result.value.objects
                if not paths.is_folder(obj.key) and not paths.is_hidden(obj.key)
            ]
            entries.sort(key=lambda e: e.last_modified or _EPOCH, reverse=True)
            ordered = tuple(entries)
            self._cache.put(CACHE_NS_ACTIVITY, ordered)

        return Ok(ListPage(items=ordered[:limit]))

    async def starred(self) -> Result[ListPage, DriveError]:
        """Every listed key that is in the star set."""
        stars = await self._metadata.starred_keys()
        if stars.is_err():
            return Err(stars.error)
        starred = frozenset(stars.value)
        return await self._filtered_view(lambda key: key in starred)

    async def shared(self) -> Result[ListPage, DriveError]:
        """Every listed key that is public or shared with someone."""
        table = await self._metadata.sharing_table()
        if table.is_err():
            return Err(table.error)
        shared = frozenset(key for key, settings in table.value.items() if settings.is_shared())
        return await self._filtered_view(lambda key: key in shared)

    async def _filtered_view(
        self,
        include: Callable[[str], bool],
    ) -> Result[ListPage, DriveError]:
        walked = await self._walker.walk("")
        if walked.is_err():
            return Err(walked.error)
        items = self._select(walked.value.objects, include)
        return Ok(ListPage(items=tuple(items)))

    def _select(
        self,
        objects: Iterable[ObjectSummary],
        include: Callable[[str], bool],
    ) -> list[ObjectEntry]:
        return [
            self._entry(obj)
            for obj in objects
            if self._visible(obj.key, "") and include(obj.key)
        ]
