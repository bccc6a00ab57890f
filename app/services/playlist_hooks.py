"""Runs the playlist aggregate reconciliation as part of every session flush."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import Session

from app.models.playlist import AGGREGATE_FIELDS, Playlist
from app.services.playlist_aggregates import (
    ACTIVITY_FIELD,
    SessionTrackDurationLookup,
    ensure_utc,
    recalculate_aggregates,
    reconcile_playlist_aggregates,
)

logger = logging.getLogger(__name__)

ACTIVITY_TIMESTAMPS = (ACTIVITY_FIELD, "last_modified")

# Set on Session.info for maintenance writes that must not count as activity.
PRESERVE_ACTIVITY = "playlist_hooks.preserve_activity"


def _changed_fields(state) -> set[str]:
    if state.pending or state.transient:
        return {attr.key for attr in state.mapper.column_attrs}
    return {
        attr.key
        for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    }


def _discard_direct_aggregate_writes(playlist: Playlist, state, changed: set[str]) -> None:
    if "tracks" in changed:
        return
    for key in AGGREGATE_FIELDS:
        if key not in changed:
            continue
        history = state.attrs[key].history
        if history.deleted:
            logger.warning(
                "Ignoring direct write to derived field playlist_id=%s field=%s",
                playlist.id,
                key,
            )
            setattr(playlist, key, history.deleted[0])
            changed.discard(key)
        else:
            # Committed value unknown; recompute from the track list instead.
            changed.add("tracks")


def _committed_value(session: Session, playlist: Playlist, key: str, history):
    if history.deleted:
        return history.deleted[0]
    # Overwritten before it was loaded; read what the row holds.
    column = getattr(Playlist, key)
    return session.execute(select(column).where(Playlist.id == playlist.id)).scalar_one_or_none()


def _discard_activity_regressions(
    session: Session, playlist: Playlist, state, changed: set[str]
) -> None:
    for key in ACTIVITY_TIMESTAMPS:
        if key not in changed:
            continue
        history = state.attrs[key].history
        committed = _committed_value(session, playlist, key, history)
        written = ensure_utc(getattr(playlist, key))
        if committed is None or (written is not None and written >= ensure_utc(committed)):
            continue
        logger.warning(
            "Ignoring backwards write to activity field playlist_id=%s field=%s",
            playlist.id,
            key,
        )
        setattr(playlist, key, committed)
        changed.discard(key)


def reconcile_pending_playlists(session: Session, flush_context=None, instances=None) -> None:
    lookup = SessionTrackDurationLookup(session)
    now = datetime.now(timezone.utc)
    for obj in [*session.new, *session.dirty]:
        if not isinstance(obj, Playlist) or obj in session.deleted:
            continue
        state = inspect(obj)
        changed = _changed_fields(state)
        if not state.pending:
            _discard_direct_aggregate_writes(obj, state, changed)
            _discard_activity_regressions(session, obj, state, changed)
        if not changed:
            continue
        if session.info.get(PRESERVE_ACTIVITY):
            recalculate_aggregates(obj, changed, lookup)
        else:
            reconcile_playlist_aggregates(obj, changed, lookup, now=now)


def install_playlist_hooks(target) -> None:
    """Attach the reconciliation to a ``Session`` class or ``sessionmaker``."""
    if not event.contains(target, "before_flush", reconcile_pending_playlists):
        event.listen(target, "before_flush", reconcile_pending_playlists)
