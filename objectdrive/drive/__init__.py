"""
Drive module: folder semantics, trash, stars, sharing and usage over a
flat object store.
"""

from objectdrive.drive.archive import ArchiveStreamer, archive_filename
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.lifecycle import LifecycleManager, UploadReceipt
from objectdrive.drive.listing import ListingEngine
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import (
    Activity,
    BreakdownItem,
    DashboardStats,
    GeneralAccess,
    ListPage,
    ObjectEntry,
    Role,
    SharedUser,
    ShareLink,
    SharingSettings,
    SharingUpdate,
    StorageUsage,
    TransferJob,
    TransferPhase,
)
from objectdrive.drive.service import DriveService
from objectdrive.drive.walker import PaginationWalker, WalkResult

__all__ = [
    "DriveService",
    "ArchiveStreamer",
    "archive_filename",
    "TTLCache",
    "LifecycleManager",
    "UploadReceipt",
    "ListingEngine",
    "MetadataStore",
    "PaginationWalker",
    "WalkResult",
    "Activity",
    "BreakdownItem",
    "DashboardStats",
    "GeneralAccess",
    "ListPage",
    "ObjectEntry",
    "Role",
    "SharedUser",
    "ShareLink",
    "SharingSettings",
    "SharingUpdate",
    "StorageUsage",
    "TransferJob",
    "TransferPhase",
]
