"""
API module: HTTP interface for drive operations.
"""

from objectdrive.api.handlers import DriveHandlers
from objectdrive.api.middleware import CorsMiddleware, RequestContextMiddleware
from objectdrive.api.router import DriveRouter, Request, Response
from objectdrive.drive.service import DriveService


def create_router(service: DriveService) -> DriveRouter:
    """Router with every drive endpoint, request logging and CORS."""
    router = DriveRouter()
    router.use(RequestContextMiddleware())
    router.use(CorsMiddleware())
    DriveHandlers(service).register(router)
    return router


__all__ = [
    "DriveRouter",
    "Request",
    "Response",
    "DriveHandlers",
    "RequestContextMiddleware",
    "CorsMiddleware",
    "create_router",
]
