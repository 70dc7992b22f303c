#!/usr/bin/env python3
"""
Expire document uploads that were never completed.

Runs one sweep of the pending upload reaper: pending documents whose upload
URL expired more than the grace period ago have any stored object deleted
and are marked failed with ``upload_expired``. The API runs the same sweep
periodically when PENDING_SWEEP_ENABLED is set; use this script from cron
when it is not.

Usage:
    python scripts/sweep_pending_uploads.py
    python scripts/sweep_pending_uploads.py --dry-run
    python scripts/sweep_pending_uploads.py --grace-minutes 60 --batch-size 500

    # With environment file
    ENV_FILE=.env.production python scripts/sweep_pending_uploads.py
"""

import asyncio
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Configure logging for CLI output
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv

env_file = os.environ.get("ENV_FILE", ".env")
env_path = project_root / env_file
if env_path.exists():
    load_dotenv(env_path)
    logger.info(f"Loaded environment from: {env_path}")
else:
    logger.info("Using system environment variables")


async def sweep(dry_run: bool, grace_minutes, batch_size) -> int:
    """Run sweeps until no stale pending uploads remain."""
    from bookshelf.core.db_client import db
    from bookshelf.services.document.pending_upload_reaper import PendingUploadReaper

    if not await db.test_connection():
        logger.error("Could not connect to database")
        return 1

    reaper = PendingUploadReaper(grace_minutes=grace_minutes, batch_size=batch_size)
    logger.info(f"Expiring pending uploads last updated before {reaper.cutoff(datetime.now(timezone.utc)).isoformat()}")

    total_expired = 0
    total_cleanup_failures = 0
    try:
        while True:
            result = await reaper.sweep(dry_run=dry_run)
            if dry_run:
                for document_id in result.expired_ids:
                    logger.info(f"  - would expire document {document_id}")
                total_expired += len(result.expired_ids)
                break

            total_expired += result.expired
            total_cleanup_failures += result.cleanup_failures
            if result.examined < reaper.batch_size or result.expired == 0:
                break
    finally:
        await db.close()

    verb = "Would expire" if dry_run else "Expired"
    logger.info(f"{verb} {total_expired} pending upload(s)")
    if total_cleanup_failures:
        logger.warning(f"{total_cleanup_failures} stored object(s) could not be deleted")
    return 0


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Expire abandoned document uploads for the Bookshelf API"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the documents that would be expired without changing anything",
    )
    parser.add_argument(
        "--grace-minutes",
        type=int,
        default=None,
        help="Minutes past upload URL expiry before a pending upload is expired",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Documents examined per sweep",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(sweep(args.dry_run, args.grace_minutes, args.batch_size)))


if __name__ == "__main__":
    main()
