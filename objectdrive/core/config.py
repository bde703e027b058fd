"""
Configuration Management for the Object Drive

Immutable configuration with validation and environment loading.
Values are read from DRIVE_* variables; the S3 backend has its own
S3Config in objectdrive.storage.config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from objectdrive.core.constants import (
    ARCHIVE_CHUNK_BYTES,
    CACHE_TTL_SECONDS,
    DEFAULT_OWNER_EMAIL,
    DEFAULT_PAGE_SIZE,
    KB,
    MAX_LIST_KEYS,
    PRESIGN_EXPIRY_SECONDS,
    QUOTA_BYTES,
    RECENT_SCAN_KEYS,
)
from objectdrive.core.types import Err, Ok, Result


class AnonymousAccessPolicy(Enum):
    """Decision for callers that present no identity."""

    ALLOW = "allow"
    DENY = "deny"


class BackendKind(Enum):
    """Object store backend selection."""

    IN_MEMORY = "in_memory"
    S3 = "s3"


@dataclass(frozen=True, slots=True)
class DriveConfig:
    """
    Drive service configuration.

    Attributes:
        cache_ttl_seconds: Lifetime of cached metadata and usage results.
        quota_bytes: Fixed capacity reported by usage and dashboard stats.
        owner_email: Identity that always has read access.
        anonymous_policy: Read decision when the caller has no identity.
        public_base_url: CDN base URL for direct links (None disables).
        always_use_public_url: Use the public URL even for restricted files.
        presign_expiry_seconds: Lifetime of presigned GET/PUT URLs.
        archive_chunk_bytes: Read/write granularity of archive streaming.
        default_page_size: Listing page size when the caller gives none.
        recent_scan_keys: Keys scanned by the recent view.
        backend: Object store backend.
        log_level: Root log level name.
        log_json: Emit JSON log lines.
    """

    cache_ttl_seconds: float = CACHE_TTL_SECONDS
    quota_bytes: int = QUOTA_BYTES
    owner_email: str = DEFAULT_OWNER_EMAIL
    anonymous_policy: AnonymousAccessPolicy = AnonymousAccessPolicy.ALLOW
    public_base_url: Optional[str] = None
    always_use_public_url: bool = False
    presign_expiry_seconds: int = PRESIGN_EXPIRY_SECONDS
    archive_chunk_bytes: int = ARCHIVE_CHUNK_BYTES
    default_page_size: int = DEFAULT_PAGE_SIZE
    recent_scan_keys: int = RECENT_SCAN_KEYS
    backend: BackendKind = BackendKind.IN_MEMORY
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> Result[DriveConfig, str]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with DRIVE_.
        Example: DRIVE_PUBLIC_BASE_URL, DRIVE_ANONYMOUS_POLICY=deny
        """

        def _get(key: str, default: str = "") -> str:
            return os.environ.get(f"DRIVE_{key}", default)

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        try:
            config = cls(
                cache_ttl_seconds=float(_get("CACHE_TTL_SECONDS", str(CACHE_TTL_SECONDS))),
                quota_bytes=int(_get("QUOTA_BYTES", str(QUOTA_BYTES))),
                owner_email=_get("OWNER_EMAIL", DEFAULT_OWNER_EMAIL),
                anonymous_policy=AnonymousAccessPolicy(
                    _get("ANONYMOUS_POLICY", "allow").lower()
                ),
                public_base_url=_get("PUBLIC_BASE_URL") or None,
                always_use_public_url=_get_bool("ALWAYS_USE_PUBLIC_URL", False),
                presign_expiry_seconds=int(
                    _get("PRESIGN_EXPIRY_SECONDS", str(PRESIGN_EXPIRY_SECONDS))
                ),
                archive_chunk_bytes=int(
                    _get("ARCHIVE_CHUNK_BYTES", str(ARCHIVE_CHUNK_BYTES))
                ),
                default_page_size=int(_get("PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
                recent_scan_keys=int(_get("RECENT_SCAN_KEYS", str(RECENT_SCAN_KEYS))),
                backend=BackendKind(_get("BACKEND", "in_memory").lower()),
                log_level=_get("LOG_LEVEL", "INFO").upper(),
                log_json=_get_bool("LOG_JSON", True),
            )
        except (ValueError, TypeError) as e:
            return Err(f"Configuration error: {e}")
        return config.validate().map(lambda _: config)

    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if self.cache_ttl_seconds < 0:
            return Err("cache_ttl_seconds must be >= 0")
        if self.quota_bytes <= 0:
            return Err("quota_bytes must be > 0")
        if not self.owner_email:
            return Err("owner_email must not be empty")
        if self.presign_expiry_seconds <= 0:
            return Err("presign_expiry_seconds must be > 0")
        if self.archive_chunk_bytes < KB:
            return Err(f"archive_chunk_bytes must be >= {KB}")
        if not 0 < self.default_page_size <= MAX_LIST_KEYS:
            return Err(f"default_page_size must be in (0, {MAX_LIST_KEYS}]")
        if not 0 < self.recent_scan_keys <= MAX_LIST_KEYS:
            return Err(f"recent_scan_keys must be in (0, {MAX_LIST_KEYS}]")
        if self.public_base_url is not None and not self.public_base_url.startswith(
            ("http://", "https://")
        ):
            return Err("public_base_url must be an http(s) URL")
        return Ok(None)
