"""
API Handlers: Request Processing Logic

Implements DriveHandlers, the HTTP surface of DriveService.

Every JSON response uses one envelope:

    {"success": true, "data": ..., "message"?: "..."}
    {"success": false, "message": "<what failed>", "error": "<detail>"}

Error status follows the error type: invalid argument 400, access
denied 403, not found 404, anything else 500. The caller identity is
the X-User-Email header.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from objectdrive.api.middleware import USER_EMAIL_HEADER
from objectdrive.api.router import DriveRouter, Request, Response
from objectdrive.core.constants import DEFAULT_RECENT_LIMIT
from objectdrive.core.errors import (
    AccessDeniedError,
    DriveError,
    InvalidArgumentError,
    NotFoundError,
)
from objectdrive.drive.models import GeneralAccess, Role, SharedUser, SharingUpdate
from objectdrive.drive.service import DriveService

logger = logging.getLogger(__name__)

S3_PREFIX = "/api/s3"
DASHBOARD_PREFIX = "/api/dashboard"


def _ok(data: Any = None, message: Optional[str] = None, status: int = 200) -> Response:
    payload: dict[str, Any] = {"success": True}
    if data is not None:
        payload["data"] = data
    if message is not None:
        payload["message"] = message
    return Response.json(payload, status=status)


def _fail(message: str, status: int, detail: Optional[str] = None) -> Response:
    payload: dict[str, Any] = {"success": False, "message": message}
    if detail is not None:
        payload["error"] = detail
    return Response.json(payload, status=status)


def _status_of(error: DriveError) -> int:
    if isinstance(error, InvalidArgumentError):
        return 400
    if isinstance(error, AccessDeniedError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    return 500


def _error_response(message: str, error: DriveError) -> Response:
    status = _status_of(error)
    if status >= 500:
        logger.error(
            message,
            extra={"error_id": error.error_id, "code": error.code.name},
        )
    return _fail(message, status, error.message)


def _json_body(request: Request) -> Any:
    """Decoded body; raises ValueError on malformed JSON."""
    try:
        return request.json()
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON body: {e.msg}") from e


def _body_field(data: Any, name: str) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    value = data.get(name)
    return value if isinstance(value, str) and value else None


class DriveHandlers:
    """
    Handler for drive requests.

    Endpoints under /api/s3:
    - POST   /direct-upload?prefix=&fileName=   raw body upload
    - POST   /upload-url                        presigned PUT
    - GET    /file-url/{*key}                   read URL, access checked
    - GET    /list                              folder page or view
    - DELETE /files/{*key}                      permanent delete
    - POST   /bulk-delete                       JSON list of keys
    - POST   /create-folder
    - POST   /move-to-trash
    - POST   /restore
    - GET    /starred-keys
    - POST   /toggle-star
    - GET    /share/link/{id}                   resolve short link
    - GET    /share/{*key}
    - POST   /share
    - POST   /share/link
    - GET    /storage-usage
    - GET    /download-folder/{*key}            streamed ZIP

    And GET /api/dashboard/stats.
    """

    __slots__ = ("_service",)

    def __init__(self, service: DriveService) -> None:
        self._service = service

    def register(self, router: DriveRouter) -> None:
        """Attach every endpoint; the short-link route precedes the share catch-all."""
        routes = (
            ("POST", f"{S3_PREFIX}/direct-upload", self.direct_upload),
            ("POST", f"{S3_PREFIX}/upload-url", self.upload_url),
            ("GET", f"{S3_PREFIX}/file-url/{{*key}}", self.file_url),
            ("GET", f"{S3_PREFIX}/list", self.list_files),
            ("DELETE", f"{S3_PREFIX}/files/{{*key}}", self.delete_file),
            ("POST", f"{S3_PREFIX}/bulk-delete", self.bulk_delete),
            ("POST", f"{S3_PREFIX}/create-folder", self.create_folder),
            ("POST", f"{S3_PREFIX}/move-to-trash", self.move_to_trash),
            ("POST", f"{S3_PREFIX}/restore", self.restore),
            ("GET", f"{S3_PREFIX}/starred-keys", self.starred_keys),
            ("POST", f"{S3_PREFIX}/toggle-star", self.toggle_star),
            ("GET", f"{S3_PREFIX}/share/link/{{id}}", self.resolve_link),
            ("GET", f"{S3_PREFIX}/share/{{*key}}", self.get_sharing),
            ("POST", f"{S3_PREFIX}/share", self.update_sharing),
            ("POST", f"{S3_PREFIX}/share/link", self.create_link),
            ("GET", f"{S3_PREFIX}/storage-usage", self.storage_usage),
            ("GET", f"{S3_PREFIX}/download-folder/{{*key}}", self.download_folder),
            ("GET", f"{DASHBOARD_PREFIX}/stats", self.dashboard_stats),
        )
        for method, path, handler in routes:
            router.add(method, path, handler)

    # -------------------------------------------------------------------------
    # UPLOADS
    # -------------------------------------------------------------------------

    async def direct_upload(self, request: Request) -> Response:
        """Store the raw request body at prefix + fileName."""
        file_name = request.query("fileName")
        if not file_name:
            return _fail("File is required", 400)

        key = (request.query("prefix") or "") + file_name
        content_type = request.header("content-type") or "application/octet-stream"

        result = await self._service.upload(key, request.body, content_type)
        if result.is_err():
            return _error_response("Failed to upload file", result.error)

        receipt = result.value
        return _ok(
            {"key": receipt.key, "location": receipt.location, "size": receipt.size},
            message="File uploaded successfully",
        )

    async def upload_url(self, request: Request) -> Response:
        """
        Presigned PUT URL.

        Request:
            {"fileName": "report.pdf", "contentType": "application/pdf", "prefix": "docs/"}
        """
        try:
            data = _json_body(request)
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))

        file_name = _body_field(data, "fileName")
        if file_name is None:
            return _fail("fileName is required", 400)
        key = (_body_field(data, "prefix") or "") + file_name
        content_type = _body_field(data, "contentType") or "application/octet-stream"

        result = await self._service.upload_url(key, content_type)
        if result.is_err():
            return _error_response("Failed to generate upload URL", result.error)
        return _ok({"url": result.value, "key": key})

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    async def file_url(self, request: Request) -> Response:
        """Read URL for the key in the path (or ?key=), after the access check."""
        key = request.path_params.get("key") or request.query("key") or ""
        key = key.removeprefix("/")
        if not key:
            return _fail("Key is required", 400)

        result = await self._service.file_url(
            key,
            caller=request.header(USER_EMAIL_HEADER),
            is_public=request.query_bool("isPublic"),
            download=request.query_bool("download"),
        )
        if result.is_err():
            if isinstance(result.error, AccessDeniedError):
                return _fail("Access Denied", 403, result.error.message)
            return _error_response("Failed to generate file URL", result.error)
        return _ok({"url": result.value})

    async def list_files(self, request: Request) -> Response:
        """
        Folder page, or one of the recent/starred/shared views.

        Query: prefix, limit, continuationToken, recursive, viewType
        """
        raw_limit = request.query("limit")
        try:
            limit = int(raw_limit) if raw_limit else None
        except ValueError:
            return _fail("Invalid request", 400, f"limit must be an integer: {raw_limit!r}")

        view = request.query("viewType")
        if view == "recent":
            result = await self._service.recent(limit or DEFAULT_RECENT_LIMIT)
        elif view == "starred":
            result = await self._service.starred()
        elif view == "shared":
            result = await self._service.shared()
        else:
            result = await self._service.list_files(
                prefix=request.query("prefix") or "",
                limit=limit,
                continuation_token=request.query("continuationToken") or None,
                recursive=request.query_bool("recursive"),
            )

        if result.is_err():
            return _error_response("Failed to list files", result.error)
        return _ok(result.value.to_dict())

    # -------------------------------------------------------------------------
    # MUTATIONS
    # -------------------------------------------------------------------------

    async def delete_file(self, request: Request) -> Response:
        key = request.path_params.get("key", "")
        if not key:
            return _fail("Key is required", 400)

        result = await self._service.delete(key)
        if result.is_err():
            return _error_response("Failed to delete file", result.error)
        return _ok(message="File deleted successfully")

    async def bulk_delete(self, request: Request) -> Response:
        """Request: ["a.txt", "docs/"]"""
        try:
            data = _json_body(request)
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))

        if not isinstance(data, list) or not all(isinstance(k, str) for k in data):
            return _fail("Invalid request", 400, "body must be a JSON list of keys")

        result = await self._service.bulk_delete(data)
        if result.is_err():
            return _error_response("Failed to delete items", result.error)
        return _ok(message="Items deleted successfully")

    async def create_folder(self, request: Request) -> Response:
        """Request: {"folderName": "docs/reports"}"""
        try:
            data = _json_body(request)
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))

        folder_name = _body_field(data, "folderName")
        if folder_name is None:
            return _fail("folderName is required", 400)

        result = await self._service.create_folder(folder_name)
        if result.is_err():
            return _error_response("Failed to create folder", result.error)
        return _ok({"success": True, "key": result.value})

    async def move_to_trash(self, request: Request) -> Response:
        """Request: {"key": "docs/"}"""
        try:
            key = _body_field(_json_body(request), "key")
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))
        if key is None:
            return _fail("Key is required", 400)

        result = await self._service.move_to_trash(key)
        if result.is_err():
            return _error_response("Failed to move to trash", result.error)
        return _ok({"success": True, "trashKey": result.value})

    async def restore(self, request: Request) -> Response:
        """Request: {"key": "trash/docs/"}"""
        try:
            key = _body_field(_json_body(request), "key")
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))
        if key is None:
            return _fail("Key is required", 400)

        result = await self._service.restore(key)
        if result.is_err():
            return _error_response("Failed to restore", result.error)
        return _ok({"success": True, "originalKey": result.value})

    # -------------------------------------------------------------------------
    # STARS
    # -------------------------------------------------------------------------

    async def starred_keys(self, request: Request) -> Response:
        result = await self._service.starred_keys()
        if result.is_err():
            return _error_response("Failed to read starred keys", result.error)
        return _ok(list(result.value))

    async def toggle_star(self, request: Request) -> Response:
        try:
            key = _body_field(_json_body(request), "key")
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))
        if key is None:
            return _fail("Key is required", 400)

        result = await self._service.toggle_star(key)
        if result.is_err():
            return _error_response("Failed to toggle star", result.error)
        return _ok(list(result.value))

    # -------------------------------------------------------------------------
    # SHARING
    # -------------------------------------------------------------------------

    async def get_sharing(self, request: Request) -> Response:
        key = request.path_params.get("key", "")
        if not key:
            return _fail("Key is required", 400)

        result = await self._service.get_sharing(key)
        if result.is_err():
            return _error_response("Failed to read sharing settings", result.error)
        return _ok(result.value.to_dict())

    async def update_sharing(self, request: Request) -> Response:
        """
        Request:
            {
                "key": "docs/plan.pdf",
                "generalAccess": "public",      # or legacy "access"
                "generalRole": "viewer",
                "sharedWith": [{"email": "a@example.com", "role": "editor"}]
            }

        Omitted fields keep their current value.
        """
        try:
            data = _json_body(request)
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))

        key = _body_field(data, "key")
        if key is None:
            return _fail("Key is required", 400)

        try:
            access = _body_field(data, "generalAccess") or _body_field(data, "access")
            role = _body_field(data, "generalRole")
            shared_with = data.get("sharedWith")
            update = SharingUpdate(
                general_access=GeneralAccess(access) if access is not None else None,
                general_role=Role(role) if role is not None else None,
                shared_with=(
                    tuple(SharedUser.from_dict(user) for user in shared_with)
                    if shared_with is not None
                    else None
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            return _fail("Invalid request", 400, f"invalid sharing settings: {e}")

        result = await self._service.update_sharing(key, update)
        if result.is_err():
            return _error_response("Failed to update sharing settings", result.error)
        return _ok(result.value.to_dict())

    async def create_link(self, request: Request) -> Response:
        try:
            key = _body_field(_json_body(request), "key")
        except ValueError as e:
            return _fail("Invalid request", 400, str(e))
        if key is None:
            return _fail("Key is required", 400)

        result = await self._service.create_short_link(key)
        if result.is_err():
            return _error_response("Failed to create share link", result.error)
        return _ok(result.value.to_dict())

    async def resolve_link(self, request: Request) -> Response:
        link_id = request.path_params.get("id", "")
        result = await self._service.resolve_short_link(link_id)
        if result.is_err():
            if isinstance(result.error, NotFoundError):
                return _fail("Link not found", 404)
            return _error_response("Failed to resolve share link", result.error)
        return _ok({"url": result.value})

    # -------------------------------------------------------------------------
    # USAGE AND ARCHIVES
    # -------------------------------------------------------------------------

    async def storage_usage(self, request: Request) -> Response:
        result = await self._service.storage_usage()
        if result.is_err():
            return _error_response("Failed to calculate storage usage", result.error)
        return _ok(result.value.to_dict())

    async def dashboard_stats(self, request: Request) -> Response:
        result = await self._service.dashboard_stats()
        if result.is_err():
            return _error_response("Failed to load dashboard stats", result.error)
        return _ok(result.value.to_dict())

    async def download_folder(self, request: Request) -> Response:
        """
        ZIP of the folder in the path; the root when the path is empty.

        Errors after the first byte abort the stream; the status is
        already sent by then.
        """
        prefix = request.path_params.get("key", "")
        result = self._service.download_folder(prefix)
        if result.is_err():
            return _error_response("Failed to download folder", result.error)

        filename, stream = result.value
        return Response.streaming(
            stream,
            "application/zip",
            headers={"content-disposition": f'attachment; filename="{filename}"'},
        )


__all__ = ["DriveHandlers", "S3_PREFIX", "DASHBOARD_PREFIX"]
