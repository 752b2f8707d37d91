"""
Spotify side of rbsync: API client, normalization, matching and syncing.

Usage:
    from rbsync.spotify import SpotifyClient, TrackMatcher, PlaylistSyncer
"""

from rbsync.spotify.client import SpotifyClient
from rbsync.spotify.matcher import (
    LOW_SIMILARITY_THRESHOLD,
    TrackMatcher,
    match_tracks,
    unresolved_tracks,
)
from rbsync.spotify.models import (
    MatchState,
    MatchSummary,
    RemotePlaylist,
    RemoteTrack,
    ResolvedTrack,
)
from rbsync.spotify.normalize import build_query, normalize_artist, normalize_title
from rbsync.spotify.syncer import PlaylistSyncer, SyncPlan, SyncReport

__all__ = [
    "SpotifyClient",
    "TrackMatcher",
    "match_tracks",
    "unresolved_tracks",
    "LOW_SIMILARITY_THRESHOLD",
    "MatchState",
    "MatchSummary",
    "RemotePlaylist",
    "RemoteTrack",
    "ResolvedTrack",
    "normalize_title",
    "normalize_artist",
    "build_query",
    "PlaylistSyncer",
    "SyncPlan",
    "SyncReport",
]
