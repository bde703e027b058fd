"""
Key/Path Model

Pure functions reading flat object keys as slash-delimited paths.
A key ending in "/" is a folder (its marker object is zero bytes).
"""

from __future__ import annotations

from typing import Optional

from objectdrive.core.constants import DELIMITER, METADATA_PREFIX, TRASH_PREFIX
from objectdrive.core.errors import InvalidArgumentError
from objectdrive.core.types import Err, Ok, Result


def is_folder(key: str) -> bool:
    return key.endswith(DELIMITER)


def name(key: str) -> str:
    """Last non-empty segment: name("a/b/") == "b", name("a/c.txt") == "c.txt"."""
    segments = [segment for segment in key.split(DELIMITER) if segment]
    return segments[-1] if segments else ""


def is_hidden(key: str) -> bool:
    return key.startswith(METADATA_PREFIX)


def is_trashed(key: str) -> bool:
    return key.startswith(TRASH_PREFIX)


def trash_key_of(key: str) -> str:
    return TRASH_PREFIX + key


def restored_key_of(trash_key: str) -> Result[str, InvalidArgumentError]:
    """Strip the trash prefix; keys outside the trash are rejected."""
    if not is_trashed(trash_key) or trash_key == TRASH_PREFIX:
        return Err(InvalidArgumentError.not_in_trash(trash_key))
    return Ok(trash_key[len(TRASH_PREFIX):])


def normalize_folder(key: str) -> str:
    return key if is_folder(key) else key + DELIMITER


def extension(key: str) -> Optional[str]:
    """
    Lower-cased text after the last dot of the final segment.

    Dotfiles (".env") and names without a dot have no extension.
    """
    base = name(key)
    idx = base.rfind(".")
    if idx <= 0 or idx == len(base) - 1:
        return None
    return base[idx + 1:].lower()


def relative_to(key: str, prefix: str) -> str:
    """Key with the prefix removed; keys outside the prefix are returned as-is."""
    return key[len(prefix):] if prefix and key.startswith(prefix) else key


def parent_of(key: str) -> str:
    """Folder containing the key ("" for top-level keys)."""
    trimmed = key[:-1] if is_folder(key) else key
    idx = trimmed.rfind(DELIMITER)
    return trimmed[: idx + 1] if idx >= 0 else ""
