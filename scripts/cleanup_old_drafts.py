#!/usr/bin/env python3
"""Delete empty draft playlists that have been inactive for too long.

Meant to be run from cron or a platform scheduler, e.g.::

    DATABASE_URL=... python scripts/cleanup_old_drafts.py --days 7
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in os.sys.path:
    os.sys.path.insert(0, str(ROOT_DIR))

from app.core.config import DRAFT_CLEANUP_DAYS  # noqa: E402
from app.core.db import SessionLocal  # noqa: E402
from app.services.draft_cleanup import cleanup_old_drafts  # noqa: E402

logger = logging.getLogger("cleanup_old_drafts")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--days",
        type=int,
        default=DRAFT_CLEANUP_DAYS,
        help=f"inactivity threshold in days (default: {DRAFT_CLEANUP_DAYS})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="report the drafts that would be deleted without deleting them",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.days < 0:
        logger.error("--days must not be negative (got %s)", args.days)
        return 2
    if SessionLocal is None:
        logger.error("DATABASE_URL not configured")
        return 1

    db = SessionLocal()
    try:
        result = cleanup_old_drafts(db, args.days, dry_run=args.dry_run)
    except Exception:
        logger.exception("Draft cleanup failed")
        return 1
    finally:
        db.close()

    summary = {
        "cutoff": result.cutoff.isoformat(),
        "deleted_count": result.deleted_count,
        "deleted_ids": [str(playlist_id) for playlist_id in result.deleted_ids],
        "dry_run": result.dry_run,
    }
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
