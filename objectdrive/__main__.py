#!/usr/bin/env python3
"""
Object Drive

Main entry point demonstrating the drive against the in-memory store.

Usage:
    python -m objectdrive

    # Or with custom config
    DRIVE_PUBLIC_BASE_URL=https://cdn.example.com python -m objectdrive
"""

from __future__ import annotations

import asyncio
import io
import json
import sys
import zipfile

from objectdrive.api import Request, create_router
from objectdrive.core.config import DriveConfig
from objectdrive.drive.models import GeneralAccess, SharingUpdate
from objectdrive.drive.service import DriveService
from objectdrive.observability.logging import LogLevel, setup_logging


async def demo_local_mode() -> None:
    """
    Demonstrate the drive with the in-memory store (no external deps).
    """
    print("\n" + "=" * 60)
    print("Object Drive - Local Demo")
    print("=" * 60 + "\n")

    config_result = DriveConfig.from_env()
    if config_result.is_err():
        print(f"Configuration error: {config_result.error}")
        sys.exit(1)

    config = config_result.unwrap()
    print("✓ Configuration loaded and validated")
    print(f"  Backend: {config.backend.value}")
    print(f"  Public base URL: {config.public_base_url or '(presigned only)'}")

    setup_logging(LogLevel.from_name(config.log_level), json_output=config.log_json)

    service = DriveService.in_memory(config)
    print("✓ In-memory drive initialized")

    print("\n--- Demo Operations ---\n")

    # 1. Upload a few files
    files = {
        "docs/plan.pdf": b"%PDF-1.7 quarterly plan",
        "docs/notes.txt": b"remember the milk",
        "photos/cat.jpg": b"\xff\xd8\xff" + b"\x00" * 512,
        "README": b"object drive demo",
    }
    for key, data in files.items():
        await service.upload(key, data)
    await service.create_folder("empty")
    print(f"1. Uploaded {len(files)} files and created folder 'empty/'")

    # 2. List the root
    page = (await service.list_files("")).unwrap()
    print("2. Root listing:")
    for entry in page.items:
        kind = "dir " if entry.is_folder else "file"
        print(f"   {kind} {entry.key}")

    # 3. Trash and restore a folder
    trash_key = (await service.move_to_trash("docs/")).unwrap()
    trashed = (await service.list_files(trash_key, recursive=True)).unwrap()
    print(f"3. Moved docs/ to {trash_key} ({len(trashed.items)} objects)")
    restored = (await service.restore(trash_key)).unwrap()
    print(f"   Restored to {restored}")

    # 4. Star, share and link
    await service.toggle_star("docs/plan.pdf")
    await service.update_sharing(
        "docs/plan.pdf",
        SharingUpdate(general_access=GeneralAccess.PUBLIC),
    )
    link = (await service.create_short_link("docs/plan.pdf")).unwrap()
    url = (await service.resolve_short_link(link.id)).unwrap()
    print(f"4. Starred and shared docs/plan.pdf; link {link.id} -> {url}")

    # 5. Usage
    usage = (await service.storage_usage()).unwrap()
    print(f"5. Usage: {usage.file_count} files, {usage.total_bytes} bytes")
    for item in usage.breakdown:
        print(f"   {item.label:<10} {item.percent:>3}%  {item.bytes} bytes")

    # 6. Archive through the HTTP router
    router = create_router(service)
    response = await router.dispatch(
        Request.from_raw("GET", "/api/s3/download-folder/docs/")
    )
    archive = await response.read_stream()
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        names = zf.namelist()
    print(f"6. {response.headers['content-disposition']}: {names}")

    # 7. Dashboard
    response = await router.dispatch(Request.from_raw("GET", "/api/dashboard/stats"))
    stats = response.json_body()["data"]["stats"]
    print(f"7. Dashboard stats: {json.dumps(stats)}")

    await service.close()

    print("\n✓ Demo complete")
    print("=" * 60 + "\n")


async def main() -> None:
    """Main entry point."""
    try:
        await demo_local_mode()
    except KeyboardInterrupt:
        print("\nInterrupted")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
