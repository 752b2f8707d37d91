"""Test track loading"""

import pytest

from rbsync.core.exceptions import CatalogError
from rbsync.rekordbox.loader import load_exported_tracks, load_playlist_tracks
from rbsync.rekordbox.models import Track


EXPORT_HEADER = "#\tArtwork\tTrack Title\tArtist\tAlbum\tBPM"


def _write_export(path, lines):
    path.write_text("\r\n".join(lines) + "\r\n", encoding="utf-16")
    return path


class TestLoadPlaylistTracks:
    """Test loading from the catalog"""

    def test_tracks_are_trimmed_and_ordered(self, catalog):
        assert load_playlist_tracks(catalog, "2") == [
            Track("Artist (feat. X)", "Midnight (Original Mix)"),
            Track("Second", "Spaced Title"),
            Track("", "No Artist"),
        ]

    def test_unknown_playlist_is_empty(self, catalog):
        assert load_playlist_tracks(catalog, "999") == []


class TestLoadExportedTracks:
    """Test loading a Rekordbox playlist export"""

    def test_reads_columns_by_header(self, tmp_path):
        path = _write_export(tmp_path / "export.txt", [
            EXPORT_HEADER,
            "1\t\t Midnight (Original Mix) \tArtist\tAlbum\t124.00",
            "2\t\tSecond Song\tOther Artist\tAlbum\t128.00",
        ])

        assert load_exported_tracks(path) == [
            Track("Artist", "Midnight (Original Mix)"),
            Track("Other Artist", "Second Song"),
        ]

    def test_short_rows_are_skipped(self, tmp_path):
        path = _write_export(tmp_path / "export.txt", [
            EXPORT_HEADER,
            "",
            "1\t\tTitle",
            "2\t\tKept\tArtist\tAlbum\t120.00",
        ])

        assert load_exported_tracks(path) == [Track("Artist", "Kept")]

    def test_quotes_are_literal(self, tmp_path):
        path = _write_export(tmp_path / "export.txt", [
            EXPORT_HEADER,
            '1\t\t"Heroes" (Extended)\tArtist\tAlbum\t120.00',
        ])

        assert load_exported_tracks(path) == [Track("Artist", '"Heroes" (Extended)')]

    def test_missing_columns(self, tmp_path):
        path = _write_export(tmp_path / "export.txt", ["#\tName\tBPM\tKey", "1\tx\t120\t8A"])

        with pytest.raises(CatalogError):
            load_exported_tracks(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "export.txt"
        path.write_text("", encoding="utf-16")

        with pytest.raises(CatalogError):
            load_exported_tracks(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_exported_tracks(tmp_path / "nope.txt")
