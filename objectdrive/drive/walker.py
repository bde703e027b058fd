"""
Pagination Walker

Drives the store's list primitive through its continuation tokens.

Three shapes of traversal:
    walk()   exhaustive, returns everything or the first error
    page()   one bounded call, continuation token surfaced unchanged
    pages()  lazy async generator, stops issuing calls when closed

Bulk mutations drain walk() completely before touching any key; a
partially-read listing is discarded on error, never returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from objectdrive.core.constants import MAX_LIST_KEYS
from objectdrive.core.errors import DriveError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.storage.protocols import ListResult, ObjectStoreProtocol, ObjectSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalkResult:
    """Every object and distinct common prefix under a prefix."""

    objects: tuple[ObjectSummary, ...] = ()
    common_prefixes: tuple[str, ...] = ()
    pages: int = 0

    @property
    def keys(self) -> list[str]:
        return [obj.key for obj in self.objects]


class PaginationWalker:
    """
    Prefix traversal over an ObjectStoreProtocol.

    Example:
        walker = PaginationWalker(store)
        result = await walker.walk("docs/")
        if result.is_ok():
            for obj in result.value.objects:
                ...
    """

    __slots__ = ("_store", "_page_size")

    def __init__(self, store: ObjectStoreProtocol, page_size: int = MAX_LIST_KEYS) -> None:
        self._store = store
        self._page_size = page_size

    async def page(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> Result[ListResult, DriveError]:
        """One list call."""
        return await self._store.list_objects(
            prefix=prefix,
            delimiter=delimiter,
            continuation_token=continuation_token,
            max_keys=max_keys or self._page_size,
        )

    async def walk(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
    ) -> Result[WalkResult, DriveError]:
        """
        Exhaustive traversal.

        Complexity: O(n / page_size) list calls for n keys.
        """
        objects: list[ObjectSummary] = []
        prefixes: list[str] = []
        seen: set[str] = set()
        token: Optional[str] = None
        pages = 0

        while True:
            result = await self.page(prefix, delimiter, token)
            if result.is_err():
                logger.error(
                    "Listing walk aborted",
                    extra={
                        "prefix": prefix,
                        "pages_read": pages,
                        "error_id": result.error.error_id,
                    },
                )
                return Err(result.error)

            listing = result.value
            pages += 1
            objects.extend(listing.objects)
            for common in listing.common_prefixes:
                if common not in seen:
                    seen.add(common)
                    prefixes.append(common)

            if not listing.is_truncated or not listing.next_token:
                break
            token = listing.next_token

        logger.debug(
            "Listing walk complete",
            extra={"prefix": prefix, "pages": pages, "objects": len(objects)},
        )
        return Ok(WalkResult(objects=tuple(objects), common_prefixes=tuple(prefixes), pages=pages))

    async def keys(self, prefix: str) -> Result[list[str], DriveError]:
        """Every key under the prefix, in store order."""
        return (await self.walk(prefix)).map(lambda walked: walked.keys)

    async def pages(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
    ) -> AsyncIterator[ListResult]:
        """
        Lazy page iterator.

        Raises the store error instead of yielding a partial page.
        Closing the generator stops further list calls.
        """
        token: Optional[str] = None
        while True:
            result = await self.page(prefix, delimiter, token)
            if result.is_err():
                raise result.error
            listing = result.value
            yield listing
            if not listing.is_truncated or not listing.next_token:
                return
            token = listing.next_token
