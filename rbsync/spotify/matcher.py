"""
Concurrent Spotify matching of Rekordbox tracks.

Each track is resolved independently:
    1. Build the query "<normalized artist> <normalized title>"
    2. Search Spotify once, first page only
    3. Keep the first candidate; no candidates or a failed request leave
       the slot unresolved

One worker thread runs per track unless max_workers caps the pool. Results
are written into a list preallocated with one slot per input track, and
each task only ever writes the slot at its own index, so output[i] always
belongs to tracks[i] whatever order the searches finish in.

Similarity:
    A rapidfuzz token-set ratio between query and candidate is stored on
    every resolved slot, and candidates scoring below
    LOW_SIMILARITY_THRESHOLD are written to match_review.log. The score is
    never used to pick or reject a candidate.

Usage:
    matcher = TrackMatcher(client, max_workers=config.sync.max_workers)
    resolved = matcher.match_tracks(tracks)
    assert len(resolved) == len(tracks)
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Protocol, Sequence

from rapidfuzz import fuzz

from rbsync.core.exceptions import SpotifyError
from rbsync.core.logger import (
    format_resolved_message,
    get_logger,
    log_match_failure,
    log_match_review,
)
from rbsync.rekordbox.models import Track
from rbsync.spotify.models import MatchState, MatchSummary, RemoteTrack, ResolvedTrack
from rbsync.spotify.normalize import normalize_title, track_query


logger = get_logger(__name__)


# Below this token-set ratio (0-100) a match is flagged for review
LOW_SIMILARITY_THRESHOLD = 50.0

REASON_NO_RESULTS = "no search results"


class SearchClient(Protocol):
    """Anything that can run a Spotify track search."""

    def search_tracks(self, query: str, limit: int = 1) -> list[RemoteTrack]:
        ...


def candidate_similarity(query: str, candidate: RemoteTrack) -> float:
    """Token-set ratio between a query and 'artist title' of a candidate."""
    candidate_text = f"{candidate.artist} {normalize_title(candidate.name)}"
    return float(fuzz.token_set_ratio(query.lower(), candidate_text.lower()))


class TrackMatcher:
    """
    Resolves an ordered list of tracks to Spotify IDs.

    Attributes:
        client: Search collaborator shared by all worker threads. It must
                be safe for concurrent use.
        max_workers: Upper bound on worker threads, or None for one thread
                     per track.
    """

    def __init__(self, client: SearchClient, max_workers: int | None = None) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.client = client
        self.max_workers = max_workers

    def match_tracks(
        self,
        tracks: Sequence[Track],
        on_result: Callable[[ResolvedTrack], None] | None = None
    ) -> list[ResolvedTrack]:
        """
        Resolve every track, preserving input order.

        Args:
            tracks: Tracks in playlist order.
            on_result: Called on the calling thread as each track finishes,
                       in completion order. Used for progress display.

        Returns:
            Exactly len(tracks) results; result[i].source_index == i.
            Unresolved slots stay in place with remote_id "".
        """
        if not tracks:
            return []

        results: list[ResolvedTrack | None] = [None] * len(tracks)
        workers = min(self.max_workers or len(tracks), len(tracks))

        def resolve_into_slot(index: int) -> ResolvedTrack:
            resolved = self.resolve(index, tracks[index])
            results[index] = resolved
            return resolved

        logger.info(f"Searching Spotify for {len(tracks)} tracks ({workers} workers)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="match") as executor:
            futures = [executor.submit(resolve_into_slot, index) for index in range(len(tracks))]
            for future in as_completed(futures):
                resolved = future.result()
                if on_result is not None:
                    on_result(resolved)

        summary = MatchSummary.from_results(results)
        logger.info(f"Matched {summary.resolved}/{summary.total} tracks ({summary.unresolved} not found)")
        return results

    def resolve(self, index: int, track: Track) -> ResolvedTrack:
        """
        Resolve one track. Never raises for search problems.

        State: searching -> resolved | unresolved. Terminal states are not
        retried.
        """
        query = track_query(track)

        try:
            candidates = self.client.search_tracks(query, limit=1)
        except SpotifyError as e:
            return self._unresolved(index, track, query, f"search failed: {e.message}")
        except Exception as e:
            logger.debug(f"Unexpected search error for '{query}'", exc_info=True)
            return self._unresolved(index, track, query, f"search failed: {e}")

        if not candidates:
            return self._unresolved(index, track, query, REASON_NO_RESULTS)

        candidate = candidates[0]
        similarity = candidate_similarity(query, candidate)
        logger.debug(format_resolved_message(
            track.artist, track.title, candidate.display_name, candidate.spotify_id
        ))
        if similarity < LOW_SIMILARITY_THRESHOLD:
            log_match_review(logger, str(track), candidate.display_name, candidate.spotify_id, similarity)

        return ResolvedTrack.resolved(index, candidate, query, similarity)

    def _unresolved(self, index: int, track: Track, query: str, reason: str) -> ResolvedTrack:
        log_match_failure(logger, track.artist, track.title, query, reason)
        return ResolvedTrack.unresolved(index, query, reason)


def match_tracks(
    client: SearchClient,
    tracks: Sequence[Track],
    max_workers: int | None = None,
    on_result: Callable[[ResolvedTrack], None] | None = None
) -> list[ResolvedTrack]:
    """Shortcut for TrackMatcher(client, max_workers).match_tracks(tracks)."""
    return TrackMatcher(client, max_workers=max_workers).match_tracks(tracks, on_result=on_result)


def unresolved_tracks(
    tracks: Sequence[Track],
    resolved: Sequence[ResolvedTrack]
) -> list[tuple[Track, ResolvedTrack]]:
    """Pair every unresolved slot with its source track, in input order."""
    return [
        (tracks[slot.source_index], slot)
        for slot in resolved
        if slot.state is MatchState.UNRESOLVED
    ]
