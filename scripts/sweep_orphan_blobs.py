#!/usr/bin/env python3
"""Delete attachment blobs that no doctor or patient row references.

Meant for a cron job or a one-off cleanup after failed uploads. Blobs newer
than the grace period are left alone, so uploads still in flight are safe.

Usage
-----
# Use BLOB_ORPHAN_GRACE_SECONDS from settings:
    python scripts/sweep_orphan_blobs.py

# Override the grace period:
    python scripts/sweep_orphan_blobs.py --grace-seconds 600
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from src.medrecords.core.config import get_settings  # noqa: E402
from src.medrecords.db.session import close_db, get_db_manager  # noqa: E402
from src.medrecords.main import configure_logging  # noqa: E402
from src.medrecords.services.attachment_service import AttachmentService  # noqa: E402
from src.medrecords.services.blob_storage_service import get_blob_storage_service  # noqa: E402


async def _sweep(grace_seconds: int | None) -> dict:
    settings = get_settings()
    try:
        async with get_db_manager().session() as session:
            service = AttachmentService(session, get_blob_storage_service(), settings)
            return await service.sweep_orphans(grace_seconds=grace_seconds)
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(prog="sweep_orphan_blobs.py", description=__doc__.splitlines()[0])
    parser.add_argument("--grace-seconds", type=int, default=None, metavar="N")
    args = parser.parse_args()
    if args.grace_seconds is not None and args.grace_seconds < 0:
        parser.error("--grace-seconds must be >= 0")

    configure_logging()
    report = asyncio.run(_sweep(args.grace_seconds))
    print(json.dumps(report))
    return 1 if report["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
