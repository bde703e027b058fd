"""
Usage Aggregator

One exhaustive walk of the namespace producing file/folder counts,
the byte total and a per-category breakdown. Hidden metadata keys are
not counted. The result is cached for the TTL under "stats".
"""

from __future__ import annotations

import logging
import math
from typing import Final, Mapping

from objectdrive.core.constants import CACHE_NS_STATS, QUOTA_BYTES
from objectdrive.core.errors import DriveError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.drive import paths
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.models import BreakdownItem, StorageUsage
from objectdrive.drive.walker import PaginationWalker

logger = logging.getLogger(__name__)


# =============================================================================
# CATEGORY TABLE
# =============================================================================
IMAGES: Final[str] = "Images"
DOCUMENTS: Final[str] = "Documents"
VIDEOS: Final[str] = "Videos"
OTHERS: Final[str] = "Others"

CATEGORY_ORDER: Final[tuple[str, ...]] = (IMAGES, DOCUMENTS, VIDEOS, OTHERS)

CATEGORY_COLORS: Final[Mapping[str, str]] = {
    IMAGES: "#3b82f6",
    DOCUMENTS: "#8b5cf6",
    VIDEOS: "#ec4899",
    OTHERS: "#94a3b8",
}

EXTENSION_CATEGORIES: Final[Mapping[str, str]] = {
    **dict.fromkeys(("jpg", "jpeg", "png", "gif", "svg", "webp"), IMAGES),
    **dict.fromkeys(("pdf", "doc", "docx", "txt", "csv", "xlsx", "pptx"), DOCUMENTS),
    **dict.fromkeys(("mp4", "mov", "avi", "mkv", "webm"), VIDEOS),
}


def category_of(key: str) -> str:
    ext = paths.extension(key)
    return EXTENSION_CATEGORIES.get(ext, OTHERS) if ext else OTHERS


def percent(part: int, total: int) -> int:
    """Whole percent of total, rounding halves up; 0 when total is 0."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))


# =============================================================================
# AGGREGATOR
# =============================================================================
class UsageAggregator:
    __slots__ = ("_walker", "_cache", "_quota_bytes")

    def __init__(
        self,
        walker: PaginationWalker,
        cache: TTLCache,
        quota_bytes: int = QUOTA_BYTES,
    ) -> None:
        self._walker = walker
        self._cache = cache
        self._quota_bytes = quota_bytes

    async def storage_usage(self) -> Result[StorageUsage, DriveError]:
        cached = self._cache.get(CACHE_NS_STATS)
        if cached is not None:
            return Ok(cached)

        walked = await self._walker.walk("")
        if walked.is_err():
            return Err(walked.error)

        totals = dict.fromkeys(CATEGORY_ORDER, 0)
        file_count = 0
        folder_count = 0
        total_bytes = 0

        for obj in walked.value.objects:
            if paths.is_hidden(obj.key):
                continue
            if paths.is_folder(obj.key):
                folder_count += 1
                continue
            file_count += 1
            total_bytes += obj.size
            totals[category_of(obj.key)] += obj.size

        usage = StorageUsage(
            total_bytes=total_bytes,
            file_count=file_count,
            folder_count=folder_count,
            breakdown=tuple(
                BreakdownItem(
                    label=label,
                    percent=percent(totals[label], total_bytes),
                    bytes=totals[label],
                    color=CATEGORY_COLORS[label],
                )
                for label in CATEGORY_ORDER
            ),
            quota_bytes=self._quota_bytes,
        )
        self._cache.put(CACHE_NS_STATS, usage)

        logger.info(
            "Storage usage calculated",
            extra={
                "files": file_count,
                "folders": folder_count,
                "total_bytes": total_bytes,
                "pages": walked.value.pages,
            },
        )
        return Ok(usage)
