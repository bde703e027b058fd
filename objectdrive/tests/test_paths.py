"""Tests for the key/path model."""

from __future__ import annotations

import pytest

from objectdrive.core.errors import InvalidArgumentError
from objectdrive.drive import paths


class TestNames:
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("a/b/", "b"),
            ("a/c.txt", "c.txt"),
            ("top.txt", "top.txt"),
            ("", ""),
        ],
    )
    def test_name_is_last_non_empty_segment(self, key: str, expected: str) -> None:
        assert paths.name(key) == expected

    def test_folder_is_trailing_slash(self) -> None:
        assert paths.is_folder("docs/")
        assert not paths.is_folder("docs")

    def test_parent_of(self) -> None:
        assert paths.parent_of("a/b/c.txt") == "a/b/"
        assert paths.parent_of("a/b/") == "a/"
        assert paths.parent_of("top.txt") == ""


class TestExtension:
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("photo.JPG", "jpg"),
            ("archive.tar.gz", "gz"),
            ("v1.2/readme", None),
            (".env", None),
            ("trailing.", None),
            ("docs/", None),
        ],
    )
    def test_extension_of_final_segment(self, key: str, expected: object) -> None:
        assert paths.extension(key) == expected


class TestTrashKeys:
    def test_trash_round_trip(self) -> None:
        trashed = paths.trash_key_of("docs/plan.pdf")
        assert trashed == "trash/docs/plan.pdf"
        assert paths.is_trashed(trashed)
        assert paths.restored_key_of(trashed).unwrap() == "docs/plan.pdf"

    def test_restore_rejects_keys_outside_trash(self) -> None:
        result = paths.restored_key_of("docs/plan.pdf")
        assert isinstance(result.error, InvalidArgumentError)

    def test_restore_rejects_trash_root(self) -> None:
        assert paths.restored_key_of("trash/").is_err()

    def test_hidden_namespace(self) -> None:
        assert paths.is_hidden(".metadata/stars.json")
        assert not paths.is_hidden("docs/.metadata/x")

    def test_relative_to(self) -> None:
        assert paths.relative_to("a/b/c.txt", "a/") == "b/c.txt"
        assert paths.relative_to("a/b/c.txt", "") == "a/b/c.txt"
        assert paths.relative_to("x/y", "a/") == "x/y"

    def test_normalize_folder(self) -> None:
        assert paths.normalize_folder("docs") == "docs/"
        assert paths.normalize_folder("docs/") == "docs/"
