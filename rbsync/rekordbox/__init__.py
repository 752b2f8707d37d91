"""
Rekordbox side of rbsync: catalog access, hierarchy and track loading.

Usage:
    from rbsync.rekordbox import RekordboxCatalog, build_hierarchy, load_playlist_tracks

    with RekordboxCatalog.open(path) as catalog:
        root = build_hierarchy(catalog.playlist_rows())
"""

from rbsync.rekordbox.catalog import RekordboxCatalog
from rbsync.rekordbox.hierarchy import build_hierarchy, find_playlist
from rbsync.rekordbox.loader import load_exported_tracks, load_playlist_tracks
from rbsync.rekordbox.models import PlaylistNode, PlaylistRow, Track

__all__ = [
    "RekordboxCatalog",
    "build_hierarchy",
    "find_playlist",
    "load_playlist_tracks",
    "load_exported_tracks",
    "PlaylistRow",
    "PlaylistNode",
    "Track",
]
