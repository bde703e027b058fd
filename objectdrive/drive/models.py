"""
Drive Data Model

Value types produced by the drive components and persisted in the
hidden metadata documents. JSON field names are camelCase so the
documents stay compatible with existing buckets.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from objectdrive.core.types import isoformat_utc


# =============================================================================
# LISTING
# =============================================================================
@dataclass(frozen=True, slots=True)
class ObjectEntry:
    """
    One row of a listing. Never persisted.

    Attributes:
        key: Object key.
        is_folder: True when the key ends with "/".
        size: Bytes; None for folders synthesized from common prefixes.
        last_modified: None for synthesized folders.
        name: Last non-empty path segment.
        url: Direct URL when a public base URL is configured.
    """

    key: str
    is_folder: bool
    size: Optional[int]
    last_modified: Optional[datetime]
    name: str
    url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "isFolder": self.is_folder,
            "size": self.size,
            "lastModified": (
                isoformat_utc(self.last_modified) if self.last_modified else None
            ),
            "name": self.name,
            "url": self.url,
        }


@dataclass(frozen=True, slots=True)
class ListPage:
    """A page of entries plus the store's continuation state."""

    items: tuple[ObjectEntry, ...] = ()
    next_continuation_token: Optional[str] = None
    is_truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [entry.to_dict() for entry in self.items],
            "nextContinuationToken": self.next_continuation_token,
            "isTruncated": self.is_truncated,
        }


# =============================================================================
# SHARING
# =============================================================================
class GeneralAccess(Enum):
    PUBLIC = "public"
    RESTRICTED = "restricted"


class Role(Enum):
    VIEWER = "viewer"
    COMMENTER = "commenter"
    EDITOR = "editor"


@dataclass(frozen=True, slots=True)
class SharedUser:
    email: str
    role: Role = Role.VIEWER

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "role": self.role.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharedUser:
        return cls(email=str(data["email"]), role=Role(data.get("role", "viewer")))


@dataclass(frozen=True, slots=True)
class SharingSettings:
    """
    Sharing record of one key.

    Absence of a record means restricted with nobody shared.
    """

    general_access: GeneralAccess = GeneralAccess.RESTRICTED
    general_role: Role = Role.VIEWER
    shared_with: tuple[SharedUser, ...] = ()
    updated_at: Optional[str] = None

    def is_shared(self) -> bool:
        return self.general_access is GeneralAccess.PUBLIC or bool(self.shared_with)

    def grants(self, email: str) -> bool:
        """Case-insensitive membership in shared_with."""
        wanted = email.casefold()
        return any(user.email.casefold() == wanted for user in self.shared_with)

    def merged(self, update: SharingUpdate, updated_at: datetime) -> SharingSettings:
        """Apply only the fields present in the update."""
        changes: dict[str, Any] = {"updated_at": isoformat_utc(updated_at)}
        if update.general_access is not None:
            changes["general_access"] = update.general_access
        if update.general_role is not None:
            changes["general_role"] = update.general_role
        if update.shared_with is not None:
            changes["shared_with"] = update.shared_with
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "generalAccess": self.general_access.value,
            "generalRole": self.general_role.value,
            "sharedWith": [user.to_dict() for user in self.shared_with],
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharingSettings:
        return cls(
            general_access=GeneralAccess(data.get("generalAccess", "restricted")),
            general_role=Role(data.get("generalRole", "viewer")),
            shared_with=tuple(
                SharedUser.from_dict(user) for user in data.get("sharedWith") or []
            ),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True, slots=True)
class SharingUpdate:
    """Partial sharing change; None fields keep the previous value."""

    general_access: Optional[GeneralAccess] = None
    general_role: Optional[Role] = None
    shared_with: Optional[tuple[SharedUser, ...]] = None


@dataclass(frozen=True, slots=True)
class ShareLink:
    id: str
    key: str
    created_at: str
    expires_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "key": self.key,
            "createdAt": self.created_at,
        }
        if self.expires_at is not None:
            data["expiresAt"] = self.expires_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShareLink:
        return cls(
            id=str(data["id"]),
            key=str(data["key"]),
            created_at=str(data.get("createdAt", "")),
            expires_at=data.get("expiresAt"),
        )


# =============================================================================
# USAGE
# =============================================================================
@dataclass(frozen=True, slots=True)
class BreakdownItem:
    label: str
    percent: int
    bytes: int
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "percent": self.percent,
            "bytes": self.bytes,
            "color": self.color,
        }


@dataclass(frozen=True, slots=True)
class StorageUsage:
    total_bytes: int
    file_count: int
    folder_count: int
    breakdown: tuple[BreakdownItem, ...]
    quota_bytes: int

    def percent_of(self, label: str) -> int:
        for item in self.breakdown:
            if item.label == label:
                return item.percent
        return 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalBytes": self.total_bytes,
            "fileCount": self.file_count,
            "folderCount": self.folder_count,
            "breakdown": [item.to_dict() for item in self.breakdown],
            "quotaBytes": self.quota_bytes,
        }


@dataclass(frozen=True, slots=True)
class Activity:
    """One row of the dashboard activity feed."""

    type: str
    file_name: str
    key: str
    timestamp: Optional[datetime]
    user_name: str = "S3 Storage"

    @property
    def status(self) -> str:
        return "Deleted" if self.type == "delete" else "Modified"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.key,
            "type": self.type,
            "fileName": self.file_name,
            "status": self.status,
            "timestamp": isoformat_utc(self.timestamp) if self.timestamp else None,
            "userName": self.user_name,
        }


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_files: int
    total_folders: int
    storage_used: int
    storage_quota: int
    used_percentage: int
    breakdown: tuple[BreakdownItem, ...]
    recent_activities: tuple[Activity, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": {
                "totalFiles": self.total_files,
                "totalFolders": self.total_folders,
                "storageUsed": self.storage_used,
                "storageQuota": self.storage_quota,
                "usedPercentage": self.used_percentage,
            },
            "breakdown": [item.to_dict() for item in self.breakdown],
            "activities": [a.to_dict() for a in self.recent_activities],
        }


# =============================================================================
# TRANSFER JOBS
# =============================================================================
class TransferPhase(Enum):
    COPYING = "copying"
    DELETING = "deleting"
    DONE = "done"


@dataclass(slots=True)
class TransferJob:
    """
    Progress record of a trash or restore move.

    Each phase is idempotent: copying re-copies every source key, and
    deleting removes whatever is left under the source prefix.
    """

    source_prefix: str
    target_prefix: str
    phase: TransferPhase = TransferPhase.COPYING
    copied: int = 0
    deleted: int = 0
    keys: list[str] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.phase is TransferPhase.DONE

    def target_of(self, key: str) -> str:
        return self.target_prefix + key[len(self.source_prefix):]
