"""
Direct-Access URL Issuance

Public CDN URLs when a base URL is configured, presigned store URLs
otherwise. Downloads always go through a presigned URL so the
attachment disposition can be attached.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from objectdrive.core.config import DriveConfig
from objectdrive.core.errors import DriveError, InvalidArgumentError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.drive import paths
from objectdrive.storage.protocols import ObjectStoreProtocol


class UrlIssuer:
    """Builds URLs clients use to reach objects without the API."""

    __slots__ = ("_store", "_config", "_origin_base_url")

    def __init__(
        self,
        store: ObjectStoreProtocol,
        config: DriveConfig,
        origin_base_url: Optional[str] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._origin_base_url = origin_base_url.rstrip("/") if origin_base_url else None

    def public_url(self, key: str) -> Optional[str]:
        """CDN URL of key, or None when no public base URL is configured."""
        base = self._config.public_base_url
        if not base:
            return None
        return f"{base.rstrip('/')}/{quote(key, safe='/')}"

    def location(self, key: str) -> str:
        """Where an uploaded object lives: CDN URL, else the store origin."""
        public = self.public_url(key)
        if public is not None:
            return public
        if self._origin_base_url is not None:
            return f"{self._origin_base_url}/{quote(key, safe='/')}"
        return quote(key, safe="/")

    async def file_url(
        self,
        key: str,
        is_public: bool = False,
        download: bool = False,
    ) -> Result[str, DriveError]:
        """
        URL for reading key.

        Public (or always-public) non-download reads get the CDN URL;
        everything else a presigned GET.
        """
        if not key:
            return Err(InvalidArgumentError.field("key", key, "must not be empty"))

        use_public = is_public or self._config.always_use_public_url
        if not download and use_public:
            public = self.public_url(key)
            if public is not None:
                return Ok(public)

        return await self._store.presign_get(
            key,
            self._config.presign_expiry_seconds,
            download_filename=paths.name(key) if download else None,
        )

    async def upload_url(self, key: str, content_type: str) -> Result[str, DriveError]:
        """Presigned PUT for a direct client upload."""
        if not key or paths.is_hidden(key):
            return Err(InvalidArgumentError.field("key", key, "not an uploadable key"))
        return await self._store.presign_put(
            key,
            content_type,
            self._config.presign_expiry_seconds,
        )
