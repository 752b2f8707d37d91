"""
Spotify API client for rbsync.

SpotifyClient wraps spotipy.Spotify and is the only place that talks to the
Spotify Web API. It is created once per run and passed explicitly to the
matcher and the syncer; there is no global instance.

Authentication:
    Playlist creation needs a user token, so the client always uses the
    OAuth authorization code flow (SpotifyOAuth). The first run opens a
    browser; later runs reuse spotipy's token cache.

Thread Safety:
    spotipy shares one requests.Session per client by default, which is not
    safe across threads. from_oauth() disables it (requests_session=False),
    so every request uses its own connection and concurrent searches from
    the matcher's worker threads are safe.

Errors:
    Every spotipy.SpotifyException is converted to SpotifyError, with
    is_rate_limit set for HTTP 429 and is_auth_error for HTTP 401.
    Connection errors and timeouts from requests, which spotipy does not
    wrap, become SpotifyError as well.

Usage:
    client = SpotifyClient.from_oauth(client_id, client_secret, redirect_uri)
    user_id = client.current_user()
    candidates = client.search_tracks("daft punk around the world", limit=1)
"""

from typing import Any, Sequence

import requests
import spotipy
from spotipy.oauth2 import SpotifyOAuth

from rbsync.core.config import SPOTIFY_MAX_BATCH_SIZE
from rbsync.core.exceptions import SpotifyError
from rbsync.core.logger import get_logger
from rbsync.spotify.models import RemotePlaylist, RemoteTrack


logger = get_logger(__name__)


SPOTIFY_SCOPES = "playlist-modify-private playlist-modify-public playlist-read-private"

# Page size of the current user's playlist listing (API maximum)
PLAYLIST_PAGE_SIZE = 50


def _wrap_spotify_exception(e: spotipy.SpotifyException, action: str, **details: Any) -> SpotifyError:
    """Build a SpotifyError from a spotipy exception."""
    status = e.http_status
    details = {**details, "http_status": status, "original_error": str(e)}
    if status == 429:
        return SpotifyError(f"Rate limited while {action}", details=details, is_rate_limit=True)
    if status == 401:
        return SpotifyError(
            f"Spotify rejected the access token while {action}",
            details=details,
            is_auth_error=True
        )
    return SpotifyError(f"Spotify API error while {action}: {e.msg}", details=details)


def _wrap_transport_error(e: requests.RequestException, action: str, **details: Any) -> SpotifyError:
    """Build a SpotifyError from a connection problem spotipy let through."""
    details = {**details, "original_error": str(e)}
    return SpotifyError(f"Could not reach Spotify while {action}: {e}", details=details)


class SpotifyClient:
    """
    Search and playlist operations on the Spotify Web API.

    Attributes:
        _spotify: The underlying spotipy.Spotify instance.
    """

    def __init__(self, spotify_instance: spotipy.Spotify) -> None:
        self._spotify = spotify_instance

    @classmethod
    def from_oauth(
        cls,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        open_browser: bool = True
    ) -> "SpotifyClient":
        """
        Create a client authenticated through the OAuth flow.

        Raises:
            SpotifyError: If the auth manager cannot be created.
        """
        try:
            auth_manager = SpotifyOAuth(
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=redirect_uri,
                scope=SPOTIFY_SCOPES,
                open_browser=open_browser
            )
            spotify_instance = spotipy.Spotify(
                auth_manager=auth_manager,
                requests_session=False
            )
        except spotipy.SpotifyException as e:
            raise SpotifyError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e
        except Exception as e:
            raise SpotifyError(
                f"Failed to initialize Spotify client: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

        return cls(spotify_instance)

    # =========================================================================
    # User
    # =========================================================================

    def current_user(self) -> str:
        """
        Return the Spotify user ID of the authenticated user.

        The first call triggers the OAuth handshake when no cached token
        exists.

        Raises:
            SpotifyError: If the user cannot be fetched. Always is_auth_error
                          unless Spotify rate limited the request.
        """
        try:
            user = self._spotify.current_user()
        except spotipy.SpotifyException as e:
            error = _wrap_spotify_exception(e, "fetching the current user")
            if not error.is_rate_limit:
                error.is_auth_error = True
            raise error from e
        except Exception as e:
            # OAuth handshake problems surface as plain exceptions
            raise SpotifyError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

        if not user or not user.get("id"):
            raise SpotifyError("Spotify returned no user profile", is_auth_error=True)
        return user["id"]

    # =========================================================================
    # Search
    # =========================================================================

    def search_tracks(self, query: str, limit: int = 1) -> list[RemoteTrack]:
        """
        Search Spotify tracks with a free-text query.

        Args:
            query: Search text, e.g. "artist title".
            limit: Maximum number of candidates (first page only).

        Returns:
            Candidates in Spotify's ranking order; may be empty.

        Raises:
            SpotifyError: If the request fails.
        """
        try:
            response = self._spotify.search(q=query, type="track", limit=limit)
        except spotipy.SpotifyException as e:
            raise _wrap_spotify_exception(e, "searching tracks", query=query) from e
        except requests.RequestException as e:
            raise _wrap_transport_error(e, "searching tracks", query=query) from e

        items = ((response or {}).get("tracks") or {}).get("items") or []
        return [RemoteTrack.from_spotify_api(item) for item in items if item and item.get("id")]

    # =========================================================================
    # Playlists
    # =========================================================================

    def owner_playlists(self, owner_id: str) -> list[RemotePlaylist]:
        """
        All playlists of the authenticated user that owner_id owns.

        Walks every page of the listing; followed playlists owned by other
        users are left out.

        Raises:
            SpotifyError: If a page cannot be fetched.
        """
        playlists: list[RemotePlaylist] = []
        offset = 0

        while True:
            try:
                page = self._spotify.current_user_playlists(limit=PLAYLIST_PAGE_SIZE, offset=offset)
            except spotipy.SpotifyException as e:
                raise _wrap_spotify_exception(
                    e, "listing playlists", owner_id=owner_id, offset=offset
                ) from e
            except requests.RequestException as e:
                raise _wrap_transport_error(
                    e, "listing playlists", owner_id=owner_id, offset=offset
                ) from e

            items = (page or {}).get("items") or []
            for item in items:
                if not item:
                    continue
                playlist = RemotePlaylist.from_spotify_api(item)
                if playlist.owner_id == owner_id:
                    playlists.append(playlist)

            if not items or not (page or {}).get("next"):
                break
            offset += len(items)

        logger.debug(f"User {owner_id} owns {len(playlists)} playlists")
        return playlists

    def create_playlist(
        self,
        owner_id: str,
        name: str,
        description: str = "",
        public: bool = False
    ) -> str:
        """
        Create an empty playlist and return its ID.

        Raises:
            SpotifyError: If Spotify refuses to create it.
        """
        try:
            playlist = self._spotify.user_playlist_create(
                owner_id,
                name,
                public=public,
                description=description
            )
        except spotipy.SpotifyException as e:
            raise _wrap_spotify_exception(e, f"creating playlist '{name}'", owner_id=owner_id) from e
        except requests.RequestException as e:
            raise _wrap_transport_error(e, f"creating playlist '{name}'", owner_id=owner_id) from e

        if not playlist or not playlist.get("id"):
            raise SpotifyError(
                f"Spotify did not return an ID for new playlist '{name}'",
                details={"owner_id": owner_id, "name": name}
            )

        logger.info(f"Created Spotify playlist '{name}' ({playlist['id']})")
        return playlist["id"]

    def add_tracks(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        """
        Append tracks to a playlist in a single request.

        Args:
            playlist_id: Target playlist ID.
            track_ids: At most 100 Spotify track IDs.

        Raises:
            ValueError: If more than 100 IDs are passed.
            SpotifyError: If the request fails.
        """
        if len(track_ids) > SPOTIFY_MAX_BATCH_SIZE:
            raise ValueError(
                f"Spotify accepts at most {SPOTIFY_MAX_BATCH_SIZE} tracks per request, "
                f"got {len(track_ids)}"
            )
        if not track_ids:
            return

        try:
            self._spotify.playlist_add_items(playlist_id, list(track_ids))
        except spotipy.SpotifyException as e:
            raise _wrap_spotify_exception(
                e, "adding tracks", playlist_id=playlist_id, count=len(track_ids)
            ) from e
        except requests.RequestException as e:
            raise _wrap_transport_error(
                e, "adding tracks", playlist_id=playlist_id, count=len(track_ids)
            ) from e
