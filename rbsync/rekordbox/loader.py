"""
Track loading for rbsync.

Tracks can come from two places:
    - The Rekordbox catalog, by playlist ID (load_playlist_tracks)
    - A file written by Rekordbox's "Export playlist to a file (.txt)"
      command (load_exported_tracks)

Both return Track objects in playlist order with surrounding whitespace
stripped from artist and title.

Export File Format:
    UTF-16 with BOM, tab separated. The first line is a header naming the
    columns, e.g.:

        #   Artwork   Track Title   Artist   Album   Genre   BPM ...

    Column positions vary with the user's column settings, so they are
    located by header name.
"""

import csv
from pathlib import Path

from rbsync.core.exceptions import CatalogError
from rbsync.core.logger import get_logger
from rbsync.rekordbox.catalog import RekordboxCatalog
from rbsync.rekordbox.models import Track


logger = get_logger(__name__)


ARTIST_COLUMN = "Artist"
TITLE_COLUMN = "Track Title"

# Rows shorter than this are blank or truncated lines
MIN_EXPORT_FIELDS = 4


def load_playlist_tracks(catalog: RekordboxCatalog, playlist_id: str) -> list[Track]:
    """
    Load a playlist's tracks from the catalog.

    Args:
        catalog: Open catalog.
        playlist_id: ID of the playlist (not a folder).

    Returns:
        Tracks ordered by their position in the playlist.

    Raises:
        CatalogError: If the catalog cannot be queried.
    """
    tracks = [
        Track(artist=(artist or "").strip(), title=(title or "").strip())
        for artist, title in catalog.playlist_tracks(playlist_id)
    ]
    logger.debug(f"Loaded {len(tracks)} tracks from playlist {playlist_id}")
    return tracks


def load_exported_tracks(path: Path) -> list[Track]:
    """
    Load tracks from a Rekordbox playlist export file.

    Raises:
        CatalogError: If the file cannot be read or lacks the Artist and
                      Track Title columns.
    """
    try:
        with open(path, "r", encoding="utf-16", newline="") as f:
            rows = list(csv.reader(f, delimiter="\t", quoting=csv.QUOTE_NONE))
    except (OSError, UnicodeError) as e:
        raise CatalogError(
            f"Failed to read playlist export: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e

    if not rows:
        raise CatalogError(
            f"Playlist export is empty: {path}",
            details={"path": str(path)}
        )

    header = [column.strip() for column in rows[0]]
    try:
        artist_index = header.index(ARTIST_COLUMN)
        title_index = header.index(TITLE_COLUMN)
    except ValueError as e:
        raise CatalogError(
            f"Playlist export has no '{ARTIST_COLUMN}' or '{TITLE_COLUMN}' column",
            details={"path": str(path), "header": header}
        ) from e

    tracks: list[Track] = []
    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) < MIN_EXPORT_FIELDS or len(row) <= max(artist_index, title_index):
            logger.debug(f"Skipping short line {line_number} in {path.name}")
            continue
        tracks.append(Track(artist=row[artist_index].strip(), title=row[title_index].strip()))

    logger.debug(f"Loaded {len(tracks)} tracks from {path}")
    return tracks
