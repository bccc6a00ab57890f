#!/usr/bin/env python3
"""Recompute track_count and total_duration for every stored playlist.

One-off maintenance for rows written before the flush hook existed, or after
track durations were corrected in bulk.
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

from app.core.db import SessionLocal  # noqa: E402
from app.services.aggregate_backfill import backfill_playlist_aggregates  # noqa: E402

logger = logging.getLogger("backfill_playlist_aggregates")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--batch-size", type=int, default=200)
    args = parser.parse_args(argv)

    if SessionLocal is None:
        logger.error("DATABASE_URL not configured")
        return 1

    db = SessionLocal()
    try:
        summary = backfill_playlist_aggregates(db, batch_size=args.batch_size)
    except Exception:
        db.rollback()
        logger.exception("Backfill failed")
        return 1
    finally:
        db.close()

    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
