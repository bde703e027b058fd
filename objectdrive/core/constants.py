"""
System-Wide Constants for the Object Drive

All magic numbers, reserved prefixes and configuration defaults
centralized here.
"""

from typing import Final

# =============================================================================
# SIZE AND TIME UNITS
# =============================================================================
KB: Final[int] = 1024
MB: Final[int] = 1024 * KB
GB: Final[int] = 1024 * MB

SECOND_MS: Final[int] = 1000
MINUTE_S: Final[int] = 60

# =============================================================================
# KEY NAMESPACE
# =============================================================================
DELIMITER: Final[str] = "/"
TRASH_PREFIX: Final[str] = "trash/"
METADATA_PREFIX: Final[str] = ".metadata/"

STARS_DOCUMENT_KEY: Final[str] = METADATA_PREFIX + "stars.json"
SHARING_DOCUMENT_KEY: Final[str] = METADATA_PREFIX + "sharing.json"
LINKS_DOCUMENT_KEY: Final[str] = METADATA_PREFIX + "links.json"

# =============================================================================
# CACHE
# =============================================================================
CACHE_TTL_SECONDS: Final[float] = 5.0

CACHE_NS_STARS: Final[str] = "stars"
CACHE_NS_SHARING: Final[str] = "sharing"
CACHE_NS_LINKS: Final[str] = "shareLinks"
CACHE_NS_ACTIVITY: Final[str] = "activity"
CACHE_NS_STATS: Final[str] = "stats"

# =============================================================================
# OBJECT STORE LIMITS
# =============================================================================
MAX_BATCH_DELETE: Final[int] = 1000
MAX_LIST_KEYS: Final[int] = 1000

# =============================================================================
# LISTING
# =============================================================================
DEFAULT_PAGE_SIZE: Final[int] = 100
DEFAULT_RECENT_LIMIT: Final[int] = 20
DASHBOARD_RECENT_LIMIT: Final[int] = 10
RECENT_SCAN_KEYS: Final[int] = 1000

# =============================================================================
# SHARING
# =============================================================================
SHORT_LINK_ID_LENGTH: Final[int] = 8
DEFAULT_OWNER_EMAIL: Final[str] = "owner@example.com"

# =============================================================================
# URLS
# =============================================================================
PRESIGN_EXPIRY_SECONDS: Final[int] = 60 * MINUTE_S

# =============================================================================
# ARCHIVE
# =============================================================================
ARCHIVE_CHUNK_BYTES: Final[int] = 64 * KB
ARCHIVE_DEFAULT_NAME: Final[str] = "download"

# =============================================================================
# USAGE
# =============================================================================
QUOTA_BYTES: Final[int] = 1 * GB
