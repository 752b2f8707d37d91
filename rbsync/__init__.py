"""
rbsync: copy Rekordbox playlists to Spotify.

Pipeline:
    1. Rebuild the Rekordbox folder/playlist tree (rbsync.rekordbox.hierarchy)
    2. Load the tracks of the chosen playlist (rbsync.rekordbox.loader)
    3. Search Spotify for every track concurrently (rbsync.spotify.matcher)
    4. Add the matches to a Spotify playlist in batches (rbsync.spotify.syncer)

Usage:
    rbsync sync "Peak Time" "Club/Techno/Peak Time"
"""

__version__ = "0.3.0"
