"""
Read-only access to the Rekordbox 6 catalog (master.db).

Opening and decrypting the SQLCipher database is delegated to pyrekordbox;
this module only issues parameter-bound SELECT statements through the
SQLAlchemy session pyrekordbox exposes. Nothing here ever writes.

Tables used:
    djmdPlaylist:       Folders and playlists (ID, Name, ParentID, Seq, Attribute)
    djmdSongPlaylist:   Playlist membership (PlaylistID, ContentID, TrackNo)
    djmdContent:        Tracks (ID, Title, ArtistID)
    djmdArtist:         Artists (ID, Name)

Every table has an rb_local_deleted flag; rows with it set are ignored.

Usage:
    with RekordboxCatalog.open(config.rekordbox.database) as catalog:
        rows = catalog.playlist_rows()
        tracks = catalog.playlist_tracks("1234")
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rbsync.core.exceptions import CatalogError
from rbsync.core.logger import get_logger
from rbsync.rekordbox.models import ATTRIBUTE_PLAYLIST, PlaylistRow


logger = get_logger(__name__)


_PLAYLIST_ROWS_SQL = """
    SELECT
        p.ID,
        p.Name,
        COALESCE(p.ParentID, '') AS ParentID,
        COALESCE(p.Seq, 0) AS Seq,
        COALESCE(p.Attribute, 0) AS Attribute,
        p.created_at
    FROM djmdPlaylist p
    WHERE COALESCE(p.rb_local_deleted, 0) = 0
"""

_PLAYLIST_TRACKS_SQL = """
    SELECT
        COALESCE(a.Name, '') AS Artist,
        COALESCE(c.Title, '') AS Title
    FROM djmdSongPlaylist sp
    JOIN djmdContent c ON sp.ContentID = c.ID
    LEFT JOIN djmdArtist a ON c.ArtistID = a.ID
    WHERE sp.PlaylistID = :playlist_id
      AND COALESCE(sp.rb_local_deleted, 0) = 0
      AND COALESCE(c.rb_local_deleted, 0) = 0
    ORDER BY sp.TrackNo
"""

_TRACK_COUNTS_SQL = """
    SELECT
        sp.PlaylistID,
        COUNT(*) AS TrackCount
    FROM djmdSongPlaylist sp
    JOIN djmdContent c ON sp.ContentID = c.ID
    WHERE COALESCE(sp.rb_local_deleted, 0) = 0
      AND COALESCE(c.rb_local_deleted, 0) = 0
    GROUP BY sp.PlaylistID
"""

_PLAYLISTS_BY_NAME_SQL = """
    SELECT
        p.ID,
        p.Name,
        COALESCE(p.ParentID, '') AS ParentID,
        COALESCE(p.Seq, 0) AS Seq,
        COALESCE(p.Attribute, 0) AS Attribute,
        p.created_at
    FROM djmdPlaylist p
    WHERE p.Name = :name AND COALESCE(p.rb_local_deleted, 0) = 0
    ORDER BY p.ParentID DESC, p.Seq DESC
"""

_SCHEMA_SQL = """
    SELECT type, name, sql
    FROM sqlite_master
    WHERE type IN ('table', 'index', 'view', 'trigger')
"""

# Rekordbox writes e.g. "2023-04-01 18:22:07.123 +00:00"; the first 19
# characters are always the local date and time
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_created_at(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value)[:19], _DATE_FORMAT)
    except ValueError:
        return None


def _row_from_record(record: Any) -> PlaylistRow:
    playlist_id, name, parent_id, seq, attribute, created_at = record
    return PlaylistRow(
        id=str(playlist_id),
        name=name,
        parent_id=str(parent_id) if parent_id is not None else "",
        sequence=int(seq) if seq is not None else 0,
        attribute=int(attribute) if attribute is not None else ATTRIBUTE_PLAYLIST,
        created_at=_parse_created_at(created_at),
    )


class RekordboxCatalog:
    """
    Read-only query interface over the Rekordbox catalog.

    Attributes:
        _session: SQLAlchemy session (or connection) used for queries.
        _database: The pyrekordbox database that owns the session, when the
                   catalog was created with open(); closed by close().

    Thread Safety:
        Not thread-safe. All catalog reads happen on the main thread before
        any Spotify work starts.
    """

    def __init__(self, session: Any, database: Any = None) -> None:
        """
        Wrap an existing session.

        Args:
            session: Anything with SQLAlchemy's execute(statement, params).
            database: Optional owner object to close together with the catalog.
        """
        self._session = session
        self._database = database

    @classmethod
    def open(cls, path: Path, key: str | None = None) -> "RekordboxCatalog":
        """
        Open and unlock master.db with pyrekordbox.

        Args:
            path: Location of master.db.
            key: SQLCipher key. If None, pyrekordbox locates it itself.

        Raises:
            CatalogError: If the file is missing or cannot be unlocked.
        """
        if not path.exists():
            raise CatalogError(
                f"Rekordbox database not found: {path}",
                details={"path": str(path)}
            )

        # Imported lazily: pyrekordbox reads Rekordbox settings on import
        from pyrekordbox import Rekordbox6Database

        logger.info(f"Opening Rekordbox database {path}")
        try:
            database = Rekordbox6Database(path=str(path), key=key or "")
        except Exception as e:
            raise CatalogError(
                f"Failed to open Rekordbox database: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e

        logger.debug("Rekordbox database unlocked")
        return cls(database.session, database=database)

    def __enter__(self) -> "RekordboxCatalog":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None

    def _query(self, sql: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Run a SELECT and return all rows, wrapping driver errors."""
        try:
            result = self._session.execute(text(sql), params or {})
            return list(result)
        except SQLAlchemyError as e:
            raise CatalogError(
                f"Rekordbox query failed: {e}",
                details={"params": params or {}, "original_error": str(e)}
            ) from e

    # =========================================================================
    # Playlists
    # =========================================================================

    def playlist_rows(self) -> list[PlaylistRow]:
        """All live folder and playlist rows, unordered."""
        rows = [_row_from_record(record) for record in self._query(_PLAYLIST_ROWS_SQL)]
        logger.debug(f"Read {len(rows)} playlist rows")
        return rows

    def find_playlists_by_name(self, name: str) -> list[PlaylistRow]:
        """Rows whose name matches exactly, deepest folders first."""
        records = self._query(_PLAYLISTS_BY_NAME_SQL, {"name": name})
        return [_row_from_record(record) for record in records]

    def track_counts(self) -> dict[str, int]:
        """Number of live tracks per playlist ID."""
        return {
            str(playlist_id): int(count)
            for playlist_id, count in self._query(_TRACK_COUNTS_SQL)
        }

    # =========================================================================
    # Tracks
    # =========================================================================

    def playlist_tracks(self, playlist_id: str) -> list[tuple[str, str]]:
        """
        (artist, title) pairs of a playlist, in playlist order.

        Tracks without an artist get an empty artist string.
        """
        records = self._query(_PLAYLIST_TRACKS_SQL, {"playlist_id": playlist_id})
        return [(artist, title) for artist, title in records]

    # =========================================================================
    # Schema
    # =========================================================================

    def schema(self) -> list[tuple[str, str, str]]:
        """(type, name, sql) for every table, index, view and trigger."""
        return [
            (obj_type, name, sql)
            for obj_type, name, sql in self._query(_SCHEMA_SQL)
            if obj_type and name and sql
        ]
