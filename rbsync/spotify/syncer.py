"""
Playlist synchronization for rbsync.

Takes the matcher's output and adds every resolved track to a Spotify
playlist, creating the playlist first when the user has none with that name.

Batching:
    Spotify accepts at most 100 track IDs per add request. Resolved IDs are
    split into consecutive batches of batch_size (1..100) in playlist order
    and sent one request per batch. A failed batch is logged with its
    tracks' display names and the next batch is still sent.

Duplicates:
    IDs are sent as they are; nothing is de-duplicated locally. Re-running a
    sync against the same playlist relies on Spotify's handling of repeated
    adds.

Usage:
    syncer = PlaylistSyncer(client, batch_size=config.sync.batch_size)
    playlist_id = syncer.find_or_create_target(user_id, "Peak Time")
    report = syncer.sync(playlist_id, resolved)
    print(f"{report.added} added, {report.failed} failed")
"""

from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

from rbsync.core.config import SPOTIFY_MAX_BATCH_SIZE, validate_batch_size
from rbsync.core.exceptions import SpotifyError
from rbsync.core.logger import get_logger, log_add_failure
from rbsync.spotify.models import RemotePlaylist, ResolvedTrack
from rbsync.utils import chunked


logger = get_logger(__name__)


class PlaylistClient(Protocol):
    """The playlist operations the syncer needs."""

    def owner_playlists(self, owner_id: str) -> list[RemotePlaylist]:
        ...

    def create_playlist(self, owner_id: str, name: str, description: str = "", public: bool = False) -> str:
        ...

    def add_tracks(self, playlist_id: str, track_ids: Sequence[str]) -> None:
        ...


@dataclass(frozen=True)
class SyncPlan:
    """
    Resolved tracks split into add requests.

    Attributes:
        batches: Consecutive batches of resolved slots, in input order.
        skipped: Unresolved slots, which are never sent.
    """
    batches: tuple[tuple[ResolvedTrack, ...], ...]
    skipped: tuple[ResolvedTrack, ...] = ()

    @classmethod
    def from_resolved(
        cls,
        resolved: Sequence[ResolvedTrack],
        batch_size: int = SPOTIFY_MAX_BATCH_SIZE
    ) -> "SyncPlan":
        """
        Build a plan from matcher output.

        Raises:
            ConfigError: If batch_size is outside 1..100.
        """
        validate_batch_size(batch_size)
        to_add = [slot for slot in resolved if slot.is_resolved]
        skipped = tuple(slot for slot in resolved if not slot.is_resolved)
        return cls(
            batches=tuple(tuple(batch) for batch in chunked(to_add, batch_size)),
            skipped=skipped,
        )

    @property
    def track_ids(self) -> list[str]:
        """All IDs to add, in order."""
        return [slot.remote_id for batch in self.batches for slot in batch]

    @property
    def track_count(self) -> int:
        return sum(len(batch) for batch in self.batches)


@dataclass
class SyncReport:
    """Outcome of one sync run."""
    playlist_id: str
    added: int = 0
    failed: int = 0
    skipped: int = 0
    batches_sent: int = 0
    batches_failed: int = 0
    dry_run: bool = False
    failed_tracks: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.batches_failed == 0


class PlaylistSyncer:
    """
    Applies resolved tracks to a Spotify playlist.

    Runs sequentially on the calling thread.
    """

    def __init__(
        self,
        client: PlaylistClient,
        batch_size: int = SPOTIFY_MAX_BATCH_SIZE,
        dry_run: bool = False
    ) -> None:
        self.client = client
        self.batch_size = validate_batch_size(batch_size)
        self.dry_run = dry_run

    def find_or_create_target(
        self,
        owner_id: str,
        name: str,
        description: str = "",
        public: bool = False
    ) -> str:
        """
        Return the ID of the owner's playlist called `name`, creating it if
        none exists.

        The first owned playlist with exactly that name is reused. In dry-run
        mode nothing is created and an empty ID is returned when no playlist
        exists yet.

        Raises:
            SpotifyError: If the listing or the creation fails. Both are fatal.
        """
        for playlist in self.client.owner_playlists(owner_id):
            if playlist.name == name:
                logger.info(f"Using existing Spotify playlist '{name}' ({playlist.spotify_id})")
                return playlist.spotify_id

        if self.dry_run:
            logger.info(f"[dry run] Would create Spotify playlist '{name}'")
            return ""

        return self.client.create_playlist(owner_id, name, description=description, public=public)

    def plan(self, resolved: Sequence[ResolvedTrack]) -> SyncPlan:
        return SyncPlan.from_resolved(resolved, self.batch_size)

    def sync(
        self,
        playlist_id: str,
        resolved: Sequence[ResolvedTrack],
        on_batch: Callable[[int, bool], None] | None = None
    ) -> SyncReport:
        """
        Add every resolved track to the playlist.

        Args:
            playlist_id: Target playlist.
            resolved: Matcher output; unresolved slots are skipped.
            on_batch: Optional callback(batch_size, success) after each batch.

        Returns:
            Counts of added, failed and skipped tracks.
        """
        plan = self.plan(resolved)
        report = SyncReport(playlist_id=playlist_id, skipped=len(plan.skipped), dry_run=self.dry_run)

        if plan.skipped:
            logger.info(f"{len(plan.skipped)} unresolved tracks will not be added")

        if self.dry_run:
            logger.info(
                f"[dry run] Would add {plan.track_count} tracks in "
                f"{len(plan.batches)} batches"
            )
            return report

        for number, batch in enumerate(plan.batches, start=1):
            track_ids = [slot.remote_id for slot in batch]
            report.batches_sent += 1
            try:
                self.client.add_tracks(playlist_id, track_ids)
            except (SpotifyError, ValueError) as e:
                names = [slot.remote_display_name or slot.remote_id for slot in batch]
                log_add_failure(logger, number, names, str(e))
                report.batches_failed += 1
                report.failed += len(batch)
                report.failed_tracks.extend(names)
                if on_batch is not None:
                    on_batch(len(batch), False)
                continue

            report.added += len(batch)
            logger.debug(f"Added batch {number}/{len(plan.batches)} ({len(batch)} tracks)")
            if on_batch is not None:
                on_batch(len(batch), True)

        logger.info(
            f"Added {report.added} tracks to playlist {playlist_id}"
            + (f", {report.failed} failed" if report.failed else "")
        )
        return report
