"""Tests for the HTTP surface: routing, envelopes and status codes."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import zipfile
from typing import Any, Optional

import pytest

from objectdrive.api import create_router
from objectdrive.api.router import DriveRouter, Request, Response, Route
from objectdrive.drive.service import DriveService
from objectdrive.storage.backends import InMemoryObjectStore
from objectdrive.tests.support import seed


@pytest.fixture
def router(service: DriveService) -> DriveRouter:
    return create_router(service)


def call(
    router: DriveRouter,
    method: str,
    url: str,
    body: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> Response:
    raw = body if isinstance(body, bytes) else (json.dumps(body).encode() if body is not None else b"")
    return asyncio.run(router.dispatch(Request.from_raw(method, url, headers or {}, raw)))


class TestRouter:
    def test_catch_all_matches_slashes(self) -> None:
        async def handler(request: Request) -> Response:
            return Response.json(request.path_params)

        route = Route.create("GET", "/api/s3/share/{*key}", handler)
        assert route.match("GET", "/api/s3/share/docs/a%20b.txt") == {"key": "docs/a b.txt"}
        assert route.match("GET", "/api/s3/share/") == {"key": ""}
        assert route.match("POST", "/api/s3/share/x") is None

    def test_unknown_path_and_wrong_method(self, router: DriveRouter) -> None:
        assert call(router, "GET", "/api/s3/nowhere").status == 404
        assert call(router, "PUT", "/api/s3/list").status == 405

    def test_preflight_gets_cors_headers(self, router: DriveRouter) -> None:
        response = call(router, "OPTIONS", "/api/s3/list", headers={"Origin": "https://app"})
        assert response.status == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_request_id_is_echoed(self, router: DriveRouter) -> None:
        response = call(router, "GET", "/api/s3/starred-keys", headers={"X-Request-ID": "abc"})
        assert response.headers["x-request-id"] == "abc"

    def test_request_log_level_follows_status(
        self, router: DriveRouter, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="objectdrive.api"):
            call(router, "GET", "/api/s3/starred-keys")
            call(router, "GET", "/api/s3/share/link/nope1234")

        handled = [r for r in caplog.records if r.getMessage() == "Request handled"]
        assert [(r.levelno, r.status) for r in handled] == [
            (logging.INFO, 200),
            (logging.WARNING, 404),
        ]


class TestFileEndpoints:
    def test_upload_then_list(self, router: DriveRouter) -> None:
        uploaded = call(
            router,
            "POST",
            "/api/s3/direct-upload?prefix=docs/&fileName=a.txt",
            b"hello",
            {"Content-Type": "text/plain"},
        )
        assert uploaded.status == 200
        assert uploaded.json_body()["data"]["key"] == "docs/a.txt"

        listed = call(router, "GET", "/api/s3/list?prefix=docs/").json_body()
        assert listed["success"] is True
        assert [item["key"] for item in listed["data"]["items"]] == ["docs/a.txt"]
        assert listed["data"]["isTruncated"] is False

    def test_upload_requires_file_name(self, router: DriveRouter) -> None:
        response = call(router, "POST", "/api/s3/direct-upload", b"x")
        assert response.status == 400
        assert response.json_body()["success"] is False

    def test_list_invalid_limit(self, router: DriveRouter) -> None:
        assert call(router, "GET", "/api/s3/list?limit=abc").status == 400
        assert call(router, "GET", "/api/s3/list?limit=5000").status == 400

    def test_recent_view(self, store: InMemoryObjectStore, router: DriveRouter) -> None:
        asyncio.run(seed(store, ["a.txt", "b.txt", "c.txt"]))
        body = call(router, "GET", "/api/s3/list?viewType=recent&limit=2").json_body()
        assert [item["key"] for item in body["data"]["items"]] == ["c.txt", "b.txt"]

    def test_upload_url(self, router: DriveRouter) -> None:
        body = call(
            router,
            "POST",
            "/api/s3/upload-url",
            {"fileName": "x.csv", "contentType": "text/csv", "prefix": "in/"},
        ).json_body()
        assert body["data"]["key"] == "in/x.csv"
        assert body["data"]["url"].startswith("memory://")

    def test_file_url_requires_key(self, router: DriveRouter) -> None:
        response = call(router, "GET", "/api/s3/file-url/")
        assert response.status == 400
        assert response.json_body()["message"] == "Key is required"

    def test_file_url_key_from_query(self, router: DriveRouter) -> None:
        response = call(router, "GET", "/api/s3/file-url/?key=/docs/a.txt")
        assert response.status == 200
        assert "docs/a.txt" in response.json_body()["data"]["url"]

    def test_file_url_access_denied(self, router: DriveRouter) -> None:
        response = call(
            router,
            "GET",
            "/api/s3/file-url/docs/a.txt",
            headers={"X-User-Email": "stranger@example.com"},
        )
        assert response.status == 403
        assert response.json_body()["message"] == "Access Denied"

    def test_delete_and_bulk_delete(self, store: InMemoryObjectStore, router: DriveRouter) -> None:
        asyncio.run(seed(store, ["a", "b", "c"]))
        deleted = call(router, "DELETE", "/api/s3/files/a").json_body()
        assert deleted["message"] == "File deleted successfully"
        bulk = call(router, "POST", "/api/s3/bulk-delete", ["b", "c"]).json_body()
        assert bulk["message"] == "Items deleted successfully"
        assert store.snapshot() == {}

    def test_bulk_delete_rejects_non_list(self, router: DriveRouter) -> None:
        assert call(router, "POST", "/api/s3/bulk-delete", {"keys": []}).status == 400
        assert call(router, "POST", "/api/s3/bulk-delete", b"{oops").status == 400

    def test_folder_trash_restore(self, router: DriveRouter) -> None:
        created = call(router, "POST", "/api/s3/create-folder", {"folderName": "docs"})
        assert created.json_body()["data"] == {"success": True, "key": "docs/"}

        trashed = call(router, "POST", "/api/s3/move-to-trash", {"key": "docs/"})
        assert trashed.json_body()["data"] == {"success": True, "trashKey": "trash/docs/"}

        restored = call(router, "POST", "/api/s3/restore", {"key": "trash/docs/"})
        assert restored.json_body()["data"] == {"success": True, "originalKey": "docs/"}

    def test_restore_outside_trash_is_bad_request(self, router: DriveRouter) -> None:
        response = call(router, "POST", "/api/s3/restore", {"key": "docs/"})
        assert response.status == 400
        body = response.json_body()
        assert body["message"] == "Failed to restore"
        assert "trash" in body["error"]

    def test_download_folder_streams_zip(
        self, store: InMemoryObjectStore, router: DriveRouter
    ) -> None:
        asyncio.run(store.put_object("docs/a.txt", b"alpha"))
        response = call(router, "GET", "/api/s3/download-folder/docs/")
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == 'attachment; filename="docs.zip"'
        data = asyncio.run(response.read_stream())
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.read("a.txt") == b"alpha"


class TestMetadataEndpoints:
    def test_star_toggle(self, router: DriveRouter) -> None:
        body = call(router, "POST", "/api/s3/toggle-star", {"key": "a.txt"}).json_body()
        assert body["data"] == ["a.txt"]
        assert call(router, "GET", "/api/s3/starred-keys").json_body()["data"] == ["a.txt"]

    def test_share_legacy_access_field(self, router: DriveRouter) -> None:
        updated = call(
            router,
            "POST",
            "/api/s3/share",
            {"key": "docs/a.txt", "access": "public"},
        ).json_body()["data"]
        assert updated["generalAccess"] == "public"
        assert updated["generalRole"] == "viewer"

        fetched = call(router, "GET", "/api/s3/share/docs/a.txt").json_body()["data"]
        assert fetched["generalAccess"] == "public"

    def test_share_update_keeps_omitted_fields(self, router: DriveRouter) -> None:
        call(
            router,
            "POST",
            "/api/s3/share",
            {"key": "a.txt", "generalAccess": "public", "generalRole": "editor"},
        )
        updated = call(
            router,
            "POST",
            "/api/s3/share",
            {"key": "a.txt", "sharedWith": [{"email": "b@x.com", "role": "editor"}]},
        ).json_body()["data"]

        assert updated["generalAccess"] == "public"
        assert updated["generalRole"] == "editor"
        assert updated["sharedWith"] == [{"email": "b@x.com", "role": "editor"}]

    def test_share_rejects_unknown_access(self, router: DriveRouter) -> None:
        response = call(router, "POST", "/api/s3/share", {"key": "a", "generalAccess": "world"})
        assert response.status == 400

    def test_short_link_round_trip(self, router: DriveRouter) -> None:
        link = call(router, "POST", "/api/s3/share/link", {"key": "docs/a.txt"}).json_body()
        link_id = link["data"]["id"]
        assert link["data"]["key"] == "docs/a.txt"

        resolved = call(router, "GET", f"/api/s3/share/link/{link_id}")
        assert resolved.status == 200
        assert "docs/a.txt" in resolved.json_body()["data"]["url"]

    def test_short_link_requires_key(self, router: DriveRouter) -> None:
        response = call(router, "POST", "/api/s3/share/link", {})
        assert response.json_body()["message"] == "Key is required"

    def test_unknown_short_link(self, router: DriveRouter) -> None:
        response = call(router, "GET", "/api/s3/share/link/nope1234")
        assert response.status == 404
        assert response.json_body()["message"] == "Link not found"


class TestStatsEndpoints:
    def test_storage_usage(self, store: InMemoryObjectStore, router: DriveRouter) -> None:
        asyncio.run(seed(store, ["a.png"], b"1234"))
        data = call(router, "GET", "/api/s3/storage-usage").json_body()["data"]
        assert data["totalBytes"] == 4
        assert data["fileCount"] == 1

    def test_dashboard(self, store: InMemoryObjectStore, router: DriveRouter) -> None:
        asyncio.run(seed(store, ["a.png"]))
        data = call(router, "GET", "/api/dashboard/stats").json_body()["data"]
        assert data["stats"]["totalFiles"] == 1
        assert data["activities"][0]["fileName"] == "a.png"

    def test_store_failure_is_500(self, store: InMemoryObjectStore, router: DriveRouter) -> None:
        store.fail_next("list_objects")
        response = call(router, "GET", "/api/s3/storage-usage")
        assert response.status == 500
        assert response.json_body()["message"] == "Failed to calculate storage usage"
