"""
Access Resolver

Read-access decision for one key and one (optional) caller identity:

    1. public sharing record            -> allow
    2. caller is the configured owner   -> allow
    3. caller in shared_with            -> allow (email case-insensitive)
    4. no caller identity               -> anonymous policy
    5. otherwise                        -> AccessDeniedError
"""

from __future__ import annotations

import logging
from typing import Optional

from objectdrive.core.config import AnonymousAccessPolicy
from objectdrive.core.errors import AccessDeniedError, DriveError
from objectdrive.core.types import Err, Result
from objectdrive.drive.metadata import MetadataStore
from objectdrive.drive.models import GeneralAccess, SharingSettings

logger = logging.getLogger(__name__)


class AccessResolver:
    __slots__ = ("_metadata", "_owner_email", "_anonymous_policy")

    def __init__(
        self,
        metadata: MetadataStore,
        owner_email: str,
        anonymous_policy: AnonymousAccessPolicy = AnonymousAccessPolicy.ALLOW,
    ) -> None:
        self._metadata = metadata
        self._owner_email = owner_email.casefold()
        self._anonymous_policy = anonymous_policy

    def decide(self, settings: SharingSettings, caller: Optional[str]) -> bool:
        """Pure decision over an already-loaded sharing record."""
        if settings.general_access is GeneralAccess.PUBLIC:
            return True
        if not caller:
            return self._anonymous_policy is AnonymousAccessPolicy.ALLOW
        if caller.casefold() == self._owner_email:
            return True
        return settings.grants(caller)

    async def check_read(
        self,
        key: str,
        caller: Optional[str],
    ) -> Result[SharingSettings, DriveError]:
        """
        Ok with the key's sharing record when the caller may read it.

        The record is returned so callers can pick a public or
        presigned URL without a second lookup.
        """
        settings = await self._metadata.get_sharing(key)
        if settings.is_err():
            return settings

        if self.decide(settings.value, caller):
            return settings

        logger.warning("Read access denied", extra={"key": key, "caller": caller})
        return Err(AccessDeniedError.read(key, caller))


__all__ = ["AccessResolver"]
