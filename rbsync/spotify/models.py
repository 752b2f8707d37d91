"""
Data models for the Spotify side of rbsync.

Design Decisions:
    - All dataclasses are frozen (immutable)
    - RemoteTrack and RemotePlaylist are built from Spotify API dicts with
      from_spotify_api(), so the rest of the code never touches raw JSON
    - ResolvedTrack is joined to its source Track by index only; an empty
      remote_id marks an unresolved slot

Usage:
    from rbsync.spotify.models import ResolvedTrack, MatchState

    slot = ResolvedTrack.unresolved(3, query="artist title", reason="no results")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence


@dataclass(frozen=True)
class RemoteTrack:
    """
    A Spotify search candidate.

    Attributes:
        spotify_id: Spotify track ID. Example: "4cOdK2wGLETKBW3PvgPWqT"
        name: Track title as Spotify shows it.
        artists: All credited artist names, in Spotify's order.
    """
    spotify_id: str
    name: str
    artists: tuple[str, ...] = ()

    @classmethod
    def from_spotify_api(cls, track_data: dict[str, Any]) -> "RemoteTrack":
        """Build from a track object of a search response."""
        return cls(
            spotify_id=track_data["id"],
            name=track_data.get("name", ""),
            artists=tuple(a["name"] for a in track_data.get("artists", []) if a.get("name")),
        )

    @property
    def artist(self) -> str:
        """Primary artist, or an empty string."""
        return self.artists[0] if self.artists else ""

    @property
    def display_name(self) -> str:
        """'Artist - Title', used in logs and failure reports."""
        if not self.artists:
            return self.name
        return f"{', '.join(self.artists)} - {self.name}"


@dataclass(frozen=True)
class RemotePlaylist:
    """A playlist as returned by the list-playlists endpoints."""
    spotify_id: str
    name: str
    owner_id: str

    @classmethod
    def from_spotify_api(cls, playlist_data: dict[str, Any]) -> "RemotePlaylist":
        return cls(
            spotify_id=playlist_data["id"],
            name=playlist_data.get("name", ""),
            owner_id=(playlist_data.get("owner") or {}).get("id", ""),
        )


class MatchState(Enum):
    """Terminal states of one resolution task."""
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ResolvedTrack:
    """
    Outcome of resolving one Rekordbox track on Spotify.

    Attributes:
        source_index: Position of the source track in the input list.
        remote_id: Spotify track ID, or "" when unresolved.
        remote_display_name: 'Artist - Title' of the selected candidate.
        state: RESOLVED or UNRESOLVED.
        query: The search query that was issued.
        reason: Why the slot is unresolved (empty when resolved).
        similarity: 0-100 similarity between query and candidate. Purely
                    informational; it never changes which candidate is kept.
    """
    source_index: int
    remote_id: str = ""
    remote_display_name: str = ""
    state: MatchState = MatchState.UNRESOLVED
    query: str = ""
    reason: str = ""
    similarity: float | None = None

    @classmethod
    def resolved(
        cls,
        source_index: int,
        candidate: RemoteTrack,
        query: str,
        similarity: float | None = None
    ) -> "ResolvedTrack":
        return cls(
            source_index=source_index,
            remote_id=candidate.spotify_id,
            remote_display_name=candidate.display_name,
            state=MatchState.RESOLVED,
            query=query,
            similarity=similarity,
        )

    @classmethod
    def unresolved(cls, source_index: int, query: str, reason: str) -> "ResolvedTrack":
        return cls(
            source_index=source_index,
            state=MatchState.UNRESOLVED,
            query=query,
            reason=reason,
        )

    @property
    def is_resolved(self) -> bool:
        return self.remote_id != ""


@dataclass(frozen=True)
class MatchSummary:
    """Resolved/unresolved tally of one match run."""
    total: int
    resolved: int
    unresolved: int

    @classmethod
    def from_results(cls, results: Sequence[ResolvedTrack]) -> "MatchSummary":
        resolved = sum(1 for r in results if r.is_resolved)
        return cls(total=len(results), resolved=resolved, unresolved=len(results) - resolved)
