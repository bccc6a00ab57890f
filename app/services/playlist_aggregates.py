"""Keeps a playlist's derived fields consistent with its track list.

``track_count`` and ``total_duration`` are derived from ``tracks``;
``last_activity`` marks the most recent change to anything but itself.
Both steps operate on the in-flight playlist and the names of the fields that
changed since the last committed version, so they can run inside a flush
(see ``app.services.playlist_hooks``) or be called directly.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Collection, Mapping
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.track import Track

logger = logging.getLogger(__name__)

ACTIVITY_FIELD = "last_activity"
# Written by the stamper alongside last_activity; never counts as activity.
BOOKKEEPING_FIELDS = frozenset({ACTIVITY_FIELD, "last_modified", "updated_at", "version"})


class TrackDurationLookup(Protocol):
    def __call__(self, track_ids: Collection[str]) -> Mapping[str, int | None]:
        """Return the duration in seconds (or None) of every known track id."""


class SessionTrackDurationLookup:
    """Batched duration lookup against the ``tracks`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def __call__(self, track_ids: Collection[str]) -> Mapping[str, int | None]:
        if not track_ids:
            return {}
        keys = _parse_track_ids(track_ids)
        if not keys:
            return {}
        rows = self.db.execute(
            select(Track.id, Track.duration).where(Track.id.in_(list(keys.values())))
        ).all()
        durations = {track_id: duration for track_id, duration in rows}
        return {
            track_id: durations[key] for track_id, key in keys.items() if key in durations
        }


def _parse_track_ids(track_ids: Collection[str]) -> dict[str, uuid.UUID]:
    keys: dict[str, uuid.UUID] = {}
    for track_id in track_ids:
        try:
            keys[track_id] = uuid.UUID(str(track_id))
        except ValueError:
            # Malformed ids cannot match a stored track.
            continue
    return keys


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def recalculate_aggregates(
    playlist,
    changed_fields: Collection[str],
    lookup: TrackDurationLookup,
) -> set[str]:
    """Re-derive ``track_count`` and ``total_duration`` when ``tracks`` changed.

    Issues at most one lookup, and none for an empty track list. Tracks with
    no recorded duration, or ids the lookup does not know, contribute 0.
    Lookup errors propagate so the surrounding save fails.

    Returns the aggregate fields whose values were rewritten.
    """
    if "tracks" not in changed_fields:
        return set()

    track_ids = [str(track_id) for track_id in (playlist.tracks or [])]
    track_count = len(track_ids)

    if track_ids:
        durations = lookup(list(dict.fromkeys(track_ids)))
        missing = [track_id for track_id in track_ids if track_id not in durations]
        if missing:
            logger.warning(
                "Playlist references unknown tracks playlist_id=%s missing=%s",
                getattr(playlist, "id", None),
                sorted(set(missing)),
            )
        total_duration = sum(durations.get(track_id) or 0 for track_id in track_ids)
    else:
        total_duration = 0

    written: set[str] = set()
    if playlist.track_count != track_count:
        playlist.track_count = track_count
        written.add("track_count")
    if playlist.total_duration != total_duration:
        playlist.total_duration = total_duration
        written.add("total_duration")
    return written


def is_activity(changed_fields: Collection[str]) -> bool:
    return bool(set(changed_fields) - BOOKKEEPING_FIELDS)


def stamp_activity(
    playlist,
    changed_fields: Collection[str],
    *,
    now: datetime | None = None,
) -> bool:
    """Move ``last_activity`` forward if anything besides it changed."""
    if not is_activity(changed_fields):
        return False

    stamped_at = ensure_utc(now) or datetime.now(timezone.utc)
    previous = ensure_utc(playlist.last_activity)
    if previous is not None and previous > stamped_at:
        stamped_at = previous

    playlist.last_activity = stamped_at
    playlist.last_modified = stamped_at
    return True


def reconcile_playlist_aggregates(
    playlist,
    changed_fields: Collection[str],
    lookup: TrackDurationLookup,
    *,
    now: datetime | None = None,
) -> set[str]:
    """Run the aggregate recalculation followed by the activity stamp.

    Returns every field name that is now pending on ``playlist``.
    """
    pending = set(changed_fields)
    pending |= recalculate_aggregates(playlist, pending, lookup)
    if stamp_activity(playlist, pending, now=now):
        pending |= {ACTIVITY_FIELD, "last_modified"}
    return pending
