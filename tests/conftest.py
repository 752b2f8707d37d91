"""Test configuration and fixtures"""

import random
import threading
import time

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from rbsync.core.exceptions import SpotifyError
from rbsync.rekordbox.catalog import RekordboxCatalog
from rbsync.rekordbox.models import PlaylistRow, Track
from rbsync.spotify.models import RemotePlaylist, RemoteTrack, ResolvedTrack


# =============================================================================
# Spotify fakes
# =============================================================================

class FakeSearchClient:
    """
    Search collaborator returning canned candidates per query.

    Queries not in `results` return no candidates; queries in `errors`
    raise SpotifyError. With `jitter`, every call sleeps a random time so
    searches finish out of order.
    """

    def __init__(self, results=None, errors=(), jitter=0.0, seed=0):
        self.results = results or {}
        self.errors = set(errors)
        self.jitter = jitter
        self.queries = []
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def search_tracks(self, query, limit=1):
        with self._lock:
            self.queries.append(query)
            delay = self._random.uniform(0, self.jitter) if self.jitter else 0
        if delay:
            time.sleep(delay)
        if query in self.errors:
            raise SpotifyError(f"search failed for {query}", details={"http_status": 500})
        return list(self.results.get(query, []))[:limit]


class FakeSpotify(FakeSearchClient):
    """
    Search plus playlist mutation, modelling Spotify's playlist state.

    Adding a track that is already in the playlist is a no-op. Batches
    whose 1-based call number is in `failing_calls` raise SpotifyError.
    """

    def __init__(self, user_id="dj", playlists=None, failing_calls=(), **kwargs):
        super().__init__(**kwargs)
        self.user_id = user_id
        self.playlists = dict(playlists or {})
        self.members = {playlist_id: [] for playlist_id in self.playlists}
        self.failing_calls = set(failing_calls)
        self.add_calls = []
        self.created = []

    def current_user(self):
        return self.user_id

    def owner_playlists(self, owner_id):
        return [playlist for playlist in self.playlists.values() if playlist.owner_id == owner_id]

    def create_playlist(self, owner_id, name, description="", public=False):
        playlist_id = f"pl{len(self.playlists) + 1}"
        self.playlists[playlist_id] = RemotePlaylist(playlist_id, name, owner_id)
        self.members[playlist_id] = []
        self.created.append((owner_id, name, description, public))
        return playlist_id

    def add_tracks(self, playlist_id, track_ids):
        if len(track_ids) > 100:
            raise ValueError("too many tracks")
        self.add_calls.append(list(track_ids))
        if len(self.add_calls) in self.failing_calls:
            raise SpotifyError("Spotify API error while adding tracks", details={"http_status": 502})
        members = self.members[playlist_id]
        for track_id in track_ids:
            if track_id not in members:
                members.append(track_id)


@pytest.fixture
def remote_track():
    """Factory for RemoteTrack candidates"""
    def make(spotify_id, name="Song", artists=("Artist",)):
        return RemoteTrack(spotify_id=spotify_id, name=name, artists=tuple(artists))
    return make


@pytest.fixture
def resolved_slots():
    """Factory for matcher output: ids, with "" for unresolved slots"""
    def make(remote_ids):
        slots = []
        for index, remote_id in enumerate(remote_ids):
            if remote_id:
                candidate = RemoteTrack(remote_id, f"Title {index}", (f"Artist {index}",))
                slots.append(ResolvedTrack.resolved(index, candidate, query=f"q{index}"))
            else:
                slots.append(ResolvedTrack.unresolved(index, query=f"q{index}", reason="no search results"))
        return slots
    return make


@pytest.fixture
def sample_tracks():
    return [
        Track("Artist (feat. X)", "Midnight (Original Mix)"),
        Track("Second", "Spaced Title"),
        Track("", "No Artist"),
    ]


# =============================================================================
# Rekordbox fixtures
# =============================================================================

@pytest.fixture
def row():
    """Factory for PlaylistRow objects"""
    def make(id, name, parent_id="", sequence=0, attribute=0):
        return PlaylistRow(id=id, name=name, parent_id=parent_id, sequence=sequence, attribute=attribute)
    return make


CATALOG_SCHEMA = [
    """CREATE TABLE djmdPlaylist (
        ID VARCHAR(255) PRIMARY KEY, Seq INTEGER, Name VARCHAR(255),
        Attribute INTEGER, ParentID VARCHAR(255), created_at TEXT,
        rb_local_deleted INTEGER DEFAULT 0
    )""",
    """CREATE TABLE djmdContent (
        ID VARCHAR(255) PRIMARY KEY, Title VARCHAR(255), ArtistID VARCHAR(255),
        rb_local_deleted INTEGER DEFAULT 0
    )""",
    """CREATE TABLE djmdArtist (
        ID VARCHAR(255) PRIMARY KEY, Name VARCHAR(255),
        rb_local_deleted INTEGER DEFAULT 0
    )""",
    """CREATE TABLE djmdSongPlaylist (
        ID VARCHAR(255) PRIMARY KEY, PlaylistID VARCHAR(255), ContentID VARCHAR(255),
        TrackNo INTEGER, rb_local_deleted INTEGER DEFAULT 0
    )""",
    "CREATE INDEX djmdSongPlaylist_PlaylistID ON djmdSongPlaylist (PlaylistID)",
]

CATALOG_PLAYLISTS = [
    # ID, Seq, Name, Attribute, ParentID, created_at, deleted
    ("1", 1, "Club", 1, "root", "2023-04-01 18:22:07.123 +00:00", 0),
    ("2", 1, "Techno", 0, "1", "2023-04-02 10:00:00.000 +00:00", 0),
    ("3", 2, "House", 0, "1", None, 0),
    ("4", 2, "Warmup", 0, "root", None, 0),
    ("5", 3, "Deleted", 0, "root", None, 1),
]

CATALOG_ARTISTS = [
    ("a1", "Artist (feat. X)"),
    ("a2", " Second "),
]

CATALOG_CONTENT = [
    # ID, Title, ArtistID, deleted
    ("c1", "Midnight (Original Mix)", "a1", 0),
    ("c2", "  Spaced Title  ", "a2", 0),
    ("c3", "No Artist", None, 0),
    ("c4", "Gone", "a1", 1),
]

CATALOG_SONGS = [
    # ID, PlaylistID, ContentID, TrackNo, deleted
    ("s1", "2", "c2", 2, 0),
    ("s2", "2", "c1", 1, 0),
    ("s3", "2", "c3", 3, 0),
    ("s4", "2", "c4", 4, 0),
    ("s5", "3", "c1", 1, 0),
    ("s6", "3", "c2", 2, 1),
]


def build_catalog_engine():
    engine = create_engine("sqlite://", poolclass=StaticPool)
    with engine.begin() as connection:
        for statement in CATALOG_SCHEMA:
            connection.execute(text(statement))
        connection.execute(
            text(
                "INSERT INTO djmdPlaylist (ID, Seq, Name, Attribute, ParentID, created_at, rb_local_deleted) "
                "VALUES (:id, :seq, :name, :attribute, :parent, :created, :deleted)"
            ),
            [
                {"id": i, "seq": s, "name": n, "attribute": a, "parent": p, "created": c, "deleted": d}
                for i, s, n, a, p, c, d in CATALOG_PLAYLISTS
            ],
        )
        connection.execute(
            text("INSERT INTO djmdArtist (ID, Name) VALUES (:id, :name)"),
            [{"id": i, "name": n} for i, n in CATALOG_ARTISTS],
        )
        connection.execute(
            text(
                "INSERT INTO djmdContent (ID, Title, ArtistID, rb_local_deleted) "
                "VALUES (:id, :title, :artist, :deleted)"
            ),
            [{"id": i, "title": t, "artist": a, "deleted": d} for i, t, a, d in CATALOG_CONTENT],
        )
        connection.execute(
            text(
                "INSERT INTO djmdSongPlaylist (ID, PlaylistID, ContentID, TrackNo, rb_local_deleted) "
                "VALUES (:id, :playlist, :content, :track_no, :deleted)"
            ),
            [
                {"id": i, "playlist": p, "content": c, "track_no": n, "deleted": d}
                for i, p, c, n, d in CATALOG_SONGS
            ],
        )
    return engine


@pytest.fixture
def catalog():
    """RekordboxCatalog over an in-memory copy of the Rekordbox tables"""
    engine = build_catalog_engine()
    session = Session(engine)
    yield RekordboxCatalog(session)
    session.close()
    engine.dispose()


@pytest.fixture
def catalog_opener():
    """Stand-in for RekordboxCatalog.open that serves the in-memory catalog"""
    engine = build_catalog_engine()
    sessions = []

    def open_catalog(path, key=None):
        session = Session(engine)
        sessions.append(session)
        return RekordboxCatalog(session)

    yield open_catalog
    for session in sessions:
        session.close()
    engine.dispose()


# =============================================================================
# Environment
# =============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep real credentials, .env files and config.yaml out of the tests"""
    for name in ("SPOTIFY_ID", "SPOTIFY_SECRET", "REKORDBOX_DB"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_search():
    """The FakeSearchClient class, for tests that build their own"""
    return FakeSearchClient


@pytest.fixture
def fake_spotify():
    """The FakeSpotify class, for tests that build their own"""
    return FakeSpotify
