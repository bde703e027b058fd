"""
Lifecycle Manager

Mutating file operations composed from flat store primitives:

    upload          put_object
    create_folder   zero-byte marker put
    delete          walk + batched delete_objects + marker delete
    bulk_delete     caller keys in batches of <= 1000
    move_to_trash   walk + copy to trash/<key> + delete source
    restore         walk + copy to de-trashed key + delete trash subtree

Trash and restore run as a TransferJob (COPYING -> DELETING -> DONE).
Each phase is idempotent, so a job that failed midway can be passed
to resume() and continues from its recorded phase. Nothing is rolled
back; re-running a whole operation is safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from objectdrive.core.constants import MAX_BATCH_DELETE
from objectdrive.core.errors import DriveError, InvalidArgumentError
from objectdrive.core.types import Err, Ok, Result
from objectdrive.drive import paths
from objectdrive.drive.cache import TTLCache
from objectdrive.drive.models import TransferJob, TransferPhase
from objectdrive.drive.urls import UrlIssuer
from objectdrive.drive.walker import PaginationWalker
from objectdrive.storage.protocols import ObjectStoreProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UploadReceipt:
    key: str
    location: str
    size: int


def _chunks(keys: Sequence[str], size: int = MAX_BATCH_DELETE) -> list[list[str]]:
    return [list(keys[i:i + size]) for i in range(0, len(keys), size)]


def _check_user_key(key: str) -> Result[str, DriveError]:
    if not key:
        return Err(InvalidArgumentError.field("key", key, "must not be empty"))
    if paths.is_hidden(key):
        return Err(InvalidArgumentError.field("key", key, "reserved metadata key"))
    return Ok(key)


class LifecycleManager:
    """
    Upload, folder, delete, trash and restore operations.

    Example:
        trash_key = (await lifecycle.move_to_trash("docs/")).unwrap()
        restored = (await lifecycle.restore(trash_key)).unwrap()
    """

    __slots__ = ("_store", "_walker", "_cache", "_urls")

    def __init__(
        self,
        store: ObjectStoreProtocol,
        walker: PaginationWalker,
        cache: TTLCache,
        urls: UrlIssuer,
    ) -> None:
        self._store = store
        self._walker = walker
        self._cache = cache
        self._urls = urls

    # -------------------------------------------------------------------------
    # WRITES
    # -------------------------------------------------------------------------

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Result[UploadReceipt, DriveError]:
        checked = _check_user_key(key)
        if checked.is_err():
            return Err(checked.error)
        if paths.is_folder(key):
            return Err(InvalidArgumentError.field("key", key, "file key must not end with '/'"))

        put = await self._store.put_object(key, data, content_type)
        if put.is_err():
            return Err(put.error)

        self._cache.invalidate_all()
        logger.info("Uploaded object", extra={"key": key, "size": len(data)})
        return Ok(UploadReceipt(key=key, location=self._urls.location(key), size=len(data)))

    async def create_folder(self, key: str) -> Result[str, DriveError]:
        """Write the zero-byte marker; creating an existing folder is a no-op overwrite."""
        checked = _check_user_key(key)
        if checked.is_err():
            return Err(checked.error)

        folder = paths.normalize_folder(key)
        put = await self._store.put_object(folder, b"", "application/x-directory")
        if put.is_err():
            return Err(put.error)

        self._cache.invalidate_all()
        logger.info("Created folder", extra={"key": folder})
        return Ok(folder)

    # -------------------------------------------------------------------------
    # DELETES
    # -------------------------------------------------------------------------

    async def delete(self, key: str) -> Result[int, DriveError]:
        """
        Permanently delete a file, or a folder with everything below it.

        Returns the number of keys submitted for deletion.
        """
        checked = _check_user_key(key)
        if checked.is_err():
            return Err(checked.error)

        if not paths.is_folder(key):
            deleted = await self._store.delete_object(key)
            self._cache.invalidate_all()
            if deleted.is_err():
                return Err(deleted.error)
            logger.info("Deleted object", extra={"key": key})
            return Ok(1)

        logger.info("Deleting folder", extra={"key": key})
        keys = await self._walker.keys(key)
        if keys.is_err():
            return Err(keys.error)

        batches = await self._delete_batches(keys.value)
        if batches.is_err():
            return batches

        # Explicit marker delete; a missing marker is not an error
        marker = await self._store.delete_object(key)
        self._cache.invalidate_all()
        if marker.is_err():
            return Err(marker.error)

        logger.info(
            "Deleted folder",
            extra={"key": key, "objects": len(keys.value)},
        )
        return Ok(len(keys.value))

    async def bulk_delete(self, keys: Sequence[str]) -> Result[int, DriveError]:
        """
        Delete caller-supplied keys, one batch call per 1000 keys.

        The first failing batch aborts; earlier batches stay deleted.
        """
        if not keys:
            return Ok(0)
        for key in keys:
            checked = _check_user_key(key)
            if checked.is_err():
                return Err(checked.error)

        logger.info("Bulk deleting", extra={"count": len(keys)})
        return await self._delete_batches(list(keys))

    async def _delete_batches(self, keys: list[str]) -> Result[int, DriveError]:
        deleted = 0
        try:
            for batch in _chunks(keys):
                result = await self._store.delete_objects(batch)
                if result.is_err():
                    logger.error(
                        "Batch delete failed",
                        extra={
                            "deleted_before_failure": deleted,
                            "error_id": result.error.error_id,
                        },
                    )
                    return Err(result.error)
                deleted += len(batch)
        finally:
            if keys:
                self._cache.invalidate_all()
        return Ok(deleted)

    # -------------------------------------------------------------------------
    # TRASH AND RESTORE
    # -------------------------------------------------------------------------

    def plan_trash(self, key: str) -> Result[TransferJob, DriveError]:
        checked = _check_user_key(key)
        if checked.is_err():
            return Err(checked.error)
        if paths.is_trashed(key):
            return Err(InvalidArgumentError.field("key", key, "item is already in trash"))
        return Ok(TransferJob(source_prefix=key, target_prefix=paths.trash_key_of(key)))

    def plan_restore(self, trash_key: str) -> Result[TransferJob, DriveError]:
        restored = paths.restored_key_of(trash_key)
        if restored.is_err():
            return Err(restored.error)
        return Ok(TransferJob(source_prefix=trash_key, target_prefix=restored.value))

    async def move_to_trash(self, key: str) -> Result[str, DriveError]:
        """Move a file or folder under trash/; returns the trash key."""
        job = self.plan_trash(key)
        if job.is_err():
            return Err(job.error)
        logger.info("Moving to trash", extra={"key": key})
        return (await self.resume(job.value)).map(lambda done: done.target_prefix)

    async def restore(self, trash_key: str) -> Result[str, DriveError]:
        """Move a trashed file or folder back; returns the restored key."""
        job = self.plan_restore(trash_key)
        if job.is_err():
            return Err(job.error)
        logger.info("Restoring from trash", extra={"key": trash_key})
        return (await self.resume(job.value)).map(lambda done: done.target_prefix)

    async def resume(self, job: TransferJob) -> Result[TransferJob, DriveError]:
        """
        Run a transfer job from its recorded phase to DONE.

        On error the job keeps the phase it failed in.
        """
        if job.phase is TransferPhase.COPYING:
            copied = await self._copy_phase(job)
            if copied.is_err():
                return Err(copied.error)
            job.phase = TransferPhase.DELETING

        if job.phase is TransferPhase.DELETING:
            deleted = await self.delete(job.source_prefix)
            if deleted.is_err():
                return Err(deleted.error)
            job.deleted = deleted.value
            job.phase = TransferPhase.DONE

        self._cache.invalidate_all()
        logger.info(
            "Transfer complete",
            extra={
                "source": job.source_prefix,
                "target": job.target_prefix,
                "copied": job.copied,
                "deleted": job.deleted,
            },
        )
        return Ok(job)

    async def _copy_phase(self, job: TransferJob) -> Result[None, DriveError]:
        if paths.is_folder(job.source_prefix):
            listed = await self._walker.keys(job.source_prefix)
            if listed.is_err():
                return Err(listed.error)
            job.keys = listed.value
        else:
            job.keys = [job.source_prefix]

        job.copied = 0
        try:
            for key in job.keys:
                copied = await self._store.copy_object(key, job.target_of(key))
                if copied.is_err():
                    logger.error(
                        "Copy failed during transfer",
                        extra={
                            "key": key,
                            "copied": job.copied,
                            "error_id": copied.error.error_id,
                        },
                    )
                    return Err(copied.error)
                job.copied += 1
        finally:
            if job.copied:
                self._cache.invalidate_all()
        return Ok(None)


__all__ = ["LifecycleManager", "UploadReceipt"]
