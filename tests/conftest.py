from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, update

from app.core.db import make_session_factory
from app.models import Base, Playlist, Track, User


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'playlists.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    factory = make_session_factory(engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def owner(db) -> User:
    user = User(name="Owner", email="owner@example.com", status="USER")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db) -> User:
    user = User(name="Admin", email="admin@example.com", status="ADMIN")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_track(db):
    def _make_track(name: str, duration: int | None) -> Track:
        track = Track(name=name, duration=duration)
        db.add(track)
        db.commit()
        return track

    return _make_track


@pytest.fixture
def make_playlist(db, owner):
    def _make_playlist(name: str = "Road trip", *, tracks=(), **fields) -> Playlist:
        playlist = Playlist(
            name=name,
            owner_id=fields.pop("owner_id", owner.id),
            tracks=[str(track.id) for track in tracks],
            **fields,
        )
        db.add(playlist)
        db.commit()
        return playlist

    return _make_playlist


@pytest.fixture
def backdate_activity(db):
    """Backdate last_activity with a bulk UPDATE, which skips the flush hook."""

    def _backdate(playlist: Playlist, *, days_ago: float) -> datetime:
        stamped = datetime.now(timezone.utc) - timedelta(days=days_ago)
        db.execute(
            update(Playlist)
            .where(Playlist.id == playlist.id)
            .values(last_activity=stamped)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(playlist)
        return stamped

    return _backdate
