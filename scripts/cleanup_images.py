"""Reclaim orphan images from the command line.

Usage:
    python -m scripts.cleanup_images [--hours 24] [--batch-size 100]

Same sweep as the `/api/cron/cleanup-images` trigger, for hosts that run it
from cron directly.
"""

import argparse
import sys
from datetime import timedelta

from kiosk.config import get_settings
from kiosk.database import SessionLocal
from kiosk.errors import UpstreamError
from kiosk.images import sweep_orphans
from kiosk.logger import get_logger, setup_logging
from kiosk.storage import get_storage

logger = get_logger("scripts.cleanup_images")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Delete orphan images older than the retention window.")
    parser.add_argument("--hours", type=int, default=settings.orphan_retention_hours)
    parser.add_argument("--batch-size", type=int, default=settings.sweep_batch_size)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = parse_args(argv)
    db = SessionLocal()
    try:
        report = sweep_orphans(db, get_storage(), retention=timedelta(hours=args.hours), batch_size=args.batch_size)
    except UpstreamError as exc:
        logger.error("cleanup_aborted", error=exc.message)
        return 1
    finally:
        db.close()
    return 1 if report.failed_batches else 0


if __name__ == "__main__":
    sys.exit(main())
