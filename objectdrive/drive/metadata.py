"""
Metadata Store: JSON Documents Kept as Hidden Objects

Documents:
    .metadata/stars.json    JSON list of starred keys
    .metadata/sharing.json  map key -> SharingSettings
    .metadata/links.json    map id  -> ShareLink

Reads go through the TTL cache by namespace. Writes are
read-modify-write followed by an overwrite and a full cache clear.
Concurrent writers are not serialized: the last overwrite wins.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional, TypeVar
from uuid import uuid4

from objectdrive.core.constants import (
    CACHE_NS_LINKS,
    CACHE_NS_SHARING,
    CACHE_NS_STARS,
    LINKS_DOCUMENT_KEY,
    SHARING_DOCUMENT_KEY,
    SHORT_LINK_ID_LENGTH,
    STARS_DOCUMENT_KEY,
)
from objectdrive.core.errors import (
    BackingStoreError,
    DriveError,
    ErrorCode,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.core.types import Err, Ok, Result, isoformat_utc, utc_now
from objectdrive.drive import paths
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.models import ShareLink, SharingSettings, SharingUpdate
from objectdrive.storage.protocols import ObjectStoreProtocol

logger = logging.getLogger(__name__)

D = TypeVar("D")

# Upper bound on id draws per link creation
_MAX_ID_ATTEMPTS = 16


def _default_link_id() -> str:
    return str(uuid4())[:SHORT_LINK_ID_LENGTH]


# =============================================================================
# DOCUMENT CODECS
# =============================================================================
def _decode_stars(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        raise ValueError("stars document must be a JSON list")
    return tuple(str(key) for key in raw)


def _decode_sharing(raw: Any) -> dict[str, SharingSettings]:
    if not isinstance(raw, dict):
        raise ValueError("sharing document must be a JSON object")
    return {key: SharingSettings.from_dict(value) for key, value in raw.items()}


def _decode_links(raw: Any) -> dict[str, ShareLink]:
    if not isinstance(raw, dict):
        raise ValueError("links document must be a JSON object")
    return {link_id: ShareLink.from_dict(value) for link_id, value in raw.items()}


# =============================================================================
# METADATA STORE
# =============================================================================
class MetadataStore:
    """
    Stars, sharing settings and short links.

    Example:
        metadata = MetadataStore(store, cache)
        stars = (await metadata.toggle_star("docs/plan.pdf")).unwrap()
        link = (await metadata.create_short_link("docs/plan.pdf")).unwrap()
    """

    __slots__ = ("_store", "_cache", "_clock", "_new_link_id")

    def __init__(
        self,
        store: ObjectStoreProtocol,
        cache: TTLCache,
        clock: Callable[[], Any] = utc_now,
        link_id_factory: Callable[[], str] = _default_link_id,
    ) -> None:
        self._store = store
        self._cache = cache
        self._clock = clock
        self._new_link_id = link_id_factory

    # -------------------------------------------------------------------------
    # DOCUMENT I/O
    # -------------------------------------------------------------------------

    async def _read(
        self,
        document_key: str,
        namespace: str,
        decode: Callable[[Any], D],
        empty: D,
    ) -> Result[D, DriveError]:
        cached = self._cache.get(namespace)
        if cached is not None:
            return Ok(cached)

        fetched = await self._store.get_object(document_key)
        if fetched.is_err():
            if isinstance(fetched.error, NotFoundError):
                return Ok(empty)
            return Err(fetched.error)

        body = fetched.value.data
        if not body.strip():
            return Ok(empty)

        try:
            value = decode(json.loads(body.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            error = BackingStoreError.corrupt_document(document_key, e)
            logger.error(
                "Metadata document unreadable",
                extra={"document": document_key, "error_id": error.error_id},
            )
            return Err(error)

        self._cache.put(namespace, value)
        return Ok(value)

    async def _write(self, document_key: str, payload: Any) -> Result[None, DriveError]:
        body = json.dumps(payload, indent=2).encode("utf-8")
        result = await self._store.put_object(document_key, body, "application/json")
        if result.is_err():
            return Err(result.error)
        self._cache.invalidate_all()
        return Ok(None)

    # -------------------------------------------------------------------------
    # STARS
    # -------------------------------------------------------------------------

    async def starred_keys(self) -> Result[tuple[str, ...], DriveError]:
        """Starred keys in the order they were starred."""
        return await self._read(STARS_DOCUMENT_KEY, CACHE_NS_STARS, _decode_stars, ())

    async def toggle_star(self, key: str) -> Result[tuple[str, ...], DriveError]:
        """Flip membership of key in the star set; returns the new set."""
        if not key:
            return Err(InvalidArgumentError.field("key", key, "must not be empty"))
        if paths.is_hidden(key):
            return Err(InvalidArgumentError.field("key", key, "reserved metadata key"))

        current = await self.starred_keys()
        if current.is_err():
            return current

        if key in current.value:
            stars = tuple(k for k in current.value if k != key)
        else:
            stars = current.value + (key,)

        written = await self._write(STARS_DOCUMENT_KEY, list(stars))
        if written.is_err():
            return Err(written.error)
        logger.info("Star toggled", extra={"key": key, "starred": key in stars})
        return Ok(stars)

    # -------------------------------------------------------------------------
    # SHARING
    # -------------------------------------------------------------------------

    async def sharing_table(self) -> Result[Mapping[str, SharingSettings], DriveError]:
        return await self._read(
            SHARING_DOCUMENT_KEY, CACHE_NS_SHARING, _decode_sharing, {}
        )

    async def get_sharing(self, key: str) -> Result[SharingSettings, DriveError]:
        """Sharing record of key; restricted and unshared when absent."""
        return (await self.sharing_table()).map(
            lambda table: table.get(key, SharingSettings())
        )

    async def update_sharing(
        self,
        key: str,
        update: SharingUpdate,
    ) -> Result[SharingSettings, DriveError]:
        """Merge the present fields of update into the record of key."""
        if not key:
            return Err(InvalidArgumentError.field("key", key, "must not be empty"))

        table = await self.sharing_table()
        if table.is_err():
            return Err(table.error)

        merged = table.value.get(key, SharingSettings()).merged(update, self._clock())
        updated = dict(table.value)
        updated[key] = merged

        written = await self._write(
            SHARING_DOCUMENT_KEY,
            {k: settings.to_dict() for k, settings in updated.items()},
        )
        if written.is_err():
            return Err(written.error)
        logger.info(
            "Sharing updated",
            extra={
                "key": key,
                "general_access": merged.general_access.value,
                "shared_with": len(merged.shared_with),
            },
        )
        return Ok(merged)

    # -------------------------------------------------------------------------
    # SHORT LINKS
    # -------------------------------------------------------------------------

    async def share_links(self) -> Result[Mapping[str, ShareLink], DriveError]:
        return await self._read(LINKS_DOCUMENT_KEY, CACHE_NS_LINKS, _decode_links, {})

    async def create_short_link(
        self,
        key: str,
        expires_at: Optional[str] = None,
    ) -> Result[ShareLink, DriveError]:
        """Link for key; an existing link for the same key is returned as-is."""
        if not key:
            return Err(InvalidArgumentError.field("key", key, "must not be empty"))

        links = await self.share_links()
        if links.is_err():
            return Err(links.error)

        for link in links.value.values():
            if link.key == key:
                return Ok(link)

        link_id = self._new_link_id()
        attempts = 1
        while link_id in links.value:
            if attempts >= _MAX_ID_ATTEMPTS:
                return Err(
                    DriveError(
                        code=ErrorCode.INTERNAL_ERROR,
                        message="No free short link id after repeated draws",
                        context={"key": key},
                    )
                )
            link_id = self._new_link_id()
            attempts += 1

        link = ShareLink(
            id=link_id,
            key=key,
            created_at=isoformat_utc(self._clock()),
            expires_at=expires_at,
        )
        updated = dict(links.value)
        updated[link_id] = link

        written = await self._write(
            LINKS_DOCUMENT_KEY,
            {k: value.to_dict() for k, value in updated.items()},
        )
        if written.is_err():
            logger.error(
                "Short link not saved",
                extra={"key": key, "error_id": written.error.error_id},
            )
            return Err(written.error)
        logger.info("Short link created", extra={"key": key, "link_id": link_id})
        return Ok(link)

    async def resolve_link(self, link_id: str) -> Result[ShareLink, DriveError]:
        links = await self.share_links()
        if links.is_err():
            return Err(links.error)
        link = links.value.get(link_id)
        if link is None:
            return Err(NotFoundError.link(link_id))
        return Ok(link)
