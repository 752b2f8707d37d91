"""Test the Spotify client wrapper"""

from unittest.mock import Mock, patch

import pytest
import requests
import spotipy

from rbsync.core.exceptions import SpotifyError
from rbsync.spotify.client import SPOTIFY_SCOPES, SpotifyClient
from rbsync.spotify.models import RemotePlaylist, RemoteTrack


def _spotify_exception(status, msg="error"):
    return spotipy.SpotifyException(status, -1, msg)


@pytest.fixture
def spotify():
    return Mock(spec=spotipy.Spotify)


@pytest.fixture
def client(spotify):
    return SpotifyClient(spotify)


class TestFromOAuth:
    """Test SpotifyClient.from_oauth()"""

    def test_builds_thread_safe_spotipy_client(self):
        with patch("rbsync.spotify.client.SpotifyOAuth") as oauth, \
                patch("rbsync.spotify.client.spotipy.Spotify") as spotify_class:
            SpotifyClient.from_oauth("id", "secret", "http://127.0.0.1:8666/callback")

        oauth.assert_called_once()
        assert oauth.call_args.kwargs["scope"] == SPOTIFY_SCOPES
        spotify_class.assert_called_once_with(auth_manager=oauth.return_value, requests_session=False)

    def test_failure_is_auth_error(self):
        with patch("rbsync.spotify.client.SpotifyOAuth", side_effect=RuntimeError("bad redirect")):
            with pytest.raises(SpotifyError) as exc_info:
                SpotifyClient.from_oauth("id", "secret", "nope")
        assert exc_info.value.is_auth_error


class TestCurrentUser:
    """Test SpotifyClient.current_user()"""

    def test_returns_id(self, client, spotify):
        spotify.current_user.return_value = {"id": "dj", "display_name": "DJ"}
        assert client.current_user() == "dj"

    def test_api_error_is_auth_error(self, client, spotify):
        spotify.current_user.side_effect = _spotify_exception(403, "forbidden")

        with pytest.raises(SpotifyError) as exc_info:
            client.current_user()
        assert exc_info.value.is_auth_error

    def test_rate_limit(self, client, spotify):
        spotify.current_user.side_effect = _spotify_exception(429)

        with pytest.raises(SpotifyError) as exc_info:
            client.current_user()
        assert exc_info.value.is_rate_limit
        assert not exc_info.value.is_auth_error


class TestSearchTracks:
    """Test SpotifyClient.search_tracks()"""

    def test_converts_items(self, client, spotify):
        spotify.search.return_value = {"tracks": {"items": [
            {"id": "abc", "name": "Around The World", "artists": [{"name": "Daft Punk"}]},
            None,
        ]}}

        results = client.search_tracks("daft punk around the world", limit=1)

        spotify.search.assert_called_once_with(q="daft punk around the world", type="track", limit=1)
        assert results == [RemoteTrack("abc", "Around The World", ("Daft Punk",))]
        assert results[0].display_name == "Daft Punk - Around The World"

    def test_no_results(self, client, spotify):
        spotify.search.return_value = {"tracks": {"items": []}}
        assert client.search_tracks("nothing") == []

    @pytest.mark.parametrize("status, rate_limit, auth", [(429, True, False), (401, False, True), (500, False, False)])
    def test_errors(self, client, spotify, status, rate_limit, auth):
        spotify.search.side_effect = _spotify_exception(status)

        with pytest.raises(SpotifyError) as exc_info:
            client.search_tracks("q")
        assert exc_info.value.is_rate_limit is rate_limit
        assert exc_info.value.is_auth_error is auth
        assert exc_info.value.details["http_status"] == status


class TestPlaylists:
    """Test playlist operations"""

    def test_owner_playlists_walks_pages(self, client, spotify):
        spotify.current_user_playlists.side_effect = [
            {
                "items": [
                    {"id": "p1", "name": "Mine", "owner": {"id": "dj"}},
                    {"id": "p2", "name": "Followed", "owner": {"id": "someone"}},
                ],
                "next": "page-2",
            },
            {
                "items": [{"id": "p3", "name": "Also Mine", "owner": {"id": "dj"}}],
                "next": None,
            },
        ]

        playlists = client.owner_playlists("dj")

        assert playlists == [RemotePlaylist("p1", "Mine", "dj"), RemotePlaylist("p3", "Also Mine", "dj")]
        offsets = [call.kwargs["offset"] for call in spotify.current_user_playlists.call_args_list]
        assert offsets == [0, 2]

    def test_create_playlist(self, client, spotify):
        spotify.user_playlist_create.return_value = {"id": "new"}

        assert client.create_playlist("dj", "Peak Time", "exported from rekordbox", public=False) == "new"
        spotify.user_playlist_create.assert_called_once_with(
            "dj", "Peak Time", public=False, description="exported from rekordbox"
        )

    def test_create_playlist_failure(self, client, spotify):
        spotify.user_playlist_create.side_effect = _spotify_exception(403)

        with pytest.raises(SpotifyError):
            client.create_playlist("dj", "Peak Time")

    def test_add_tracks(self, client, spotify):
        client.add_tracks("pl", ["a", "b"])
        spotify.playlist_add_items.assert_called_once_with("pl", ["a", "b"])

    def test_add_tracks_rejects_more_than_100(self, client, spotify):
        with pytest.raises(ValueError):
            client.add_tracks("pl", [str(i) for i in range(101)])
        spotify.playlist_add_items.assert_not_called()

    def test_add_nothing(self, client, spotify):
        client.add_tracks("pl", [])
        spotify.playlist_add_items.assert_not_called()

    def test_add_tracks_failure(self, client, spotify):
        spotify.playlist_add_items.side_effect = _spotify_exception(502)

        with pytest.raises(SpotifyError) as exc_info:
            client.add_tracks("pl", ["a"])
        assert exc_info.value.details["count"] == 1

    @pytest.mark.parametrize("error", [
        requests.exceptions.ConnectionError("connection reset"),
        requests.exceptions.Timeout("read timed out"),
    ])
    def test_connection_errors_become_spotify_errors(self, client, spotify, error):
        spotify.playlist_add_items.side_effect = error
        spotify.search.side_effect = error
        spotify.user_playlist_create.side_effect = error
        spotify.current_user_playlists.side_effect = error

        for call in (
            lambda: client.add_tracks("pl", ["a"]),
            lambda: client.search_tracks("q"),
            lambda: client.create_playlist("dj", "Peak Time"),
            lambda: client.owner_playlists("dj"),
        ):
            with pytest.raises(SpotifyError) as exc_info:
                call()
            assert exc_info.value.__cause__ is error
