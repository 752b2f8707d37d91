"""
Search-string normalization for Rekordbox tracks.

Rekordbox titles often carry DJ-oriented suffixes ("Original Mix", featured
artists in brackets) that hurt Spotify search recall. These functions strip
them before the query is built.

All functions are pure and idempotent:
    normalize_title(normalize_title(x)) == normalize_title(x)

Examples:
    normalize_title("Midnight (Original Mix)")   # "midnight "
    normalize_artist("Artist (feat. X)")         # "Artist "
    build_query("Artist", "Midnight")            # "Artist midnight"
"""

from rbsync.rekordbox.models import Track


# Removed from lower-cased titles, in this order
TITLE_NOISE = ("original mix", "(", ")", "feat.")


def normalize_title(title: str) -> str:
    """
    Lower-case a title and drop "original mix", parentheses and "feat.".

    Removal repeats until nothing changes, since deleting one fragment can
    join the pieces of another (e.g. "original (mix)").
    """
    result = title.lower()
    while True:
        previous = result
        for noise in TITLE_NOISE:
            result = result.replace(noise, "")
        if result == previous:
            return result


def normalize_artist(artist: str) -> str:
    """
    Drop everything from the first "(" onward.

    A parenthesis at position 0 (or none at all) leaves the artist unchanged.
    """
    index = artist.find("(")
    if index > 0:
        return artist[:index]
    return artist


def build_query(artist: str, title: str) -> str:
    """Spotify search query: '<normalized artist> <normalized title>'."""
    return f"{normalize_artist(artist)} {normalize_title(title)}"


def track_query(track: Track) -> str:
    return build_query(track.artist, track.title)
