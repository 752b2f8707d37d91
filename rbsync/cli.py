"""
Command-line interface for rbsync.

This module implements the CLI using Click, providing commands for browsing
the Rekordbox library and copying a playlist to Spotify.
rich-click is used for the output colors.

Commands:
    rbsync tree [--counts]                  Print the folder/playlist hierarchy
    rbsync tracks <source>                  Print a playlist's tracks
    rbsync schema                           Dump the Rekordbox database schema
    rbsync sync <name> [<source>]           Copy a playlist to Spotify

Usage:
    # Pick the Rekordbox playlist interactively
    rbsync sync "Peak Time"

    # Name the source by path, ID or unique name
    rbsync sync "Peak Time" "Club/Techno/Peak Time"

    # Use a playlist exported from Rekordbox instead of the database
    rbsync sync "Peak Time" --file peak_time.txt

    # Search only, change nothing on Spotify
    rbsync sync "Peak Time" "Peak Time" --dry-run

Configuration:
    Settings are read from config.yaml in the current directory (or the
    file given with --config). Spotify credentials may also come from the
    SPOTIFY_ID and SPOTIFY_SECRET environment variables; if neither is set,
    they are prompted for.

Exit Codes:
    0   Success (unresolved tracks and failed batches are reported, not fatal)
    1   Fatal error: configuration, catalog, hierarchy, selection or Spotify
        authentication
    130 Interrupted
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import rich_click as click
from rich import get_console
from rich.text import Text
from rich.tree import Tree

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli sync": [
        {
            "name": "Source",
            "options": ["--file"],
        },
        {
            "name": "Sync Options",
            "options": ["--dry-run", "--batch-size", "--workers"],
        },
        {
            "name": "Settings",
            "options": ["--db", "--config", "--verbose"],
        },
    ],
}

from rbsync import __version__
from rbsync.core import (
    Config,
    ConfigError,
    RbSyncError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from rbsync.core.progress import AddingProgressBar, MatchingProgressBar
from rbsync.rekordbox import (
    PlaylistNode,
    RekordboxCatalog,
    Track,
    build_hierarchy,
    find_playlist,
    load_exported_tracks,
    load_playlist_tracks,
)
from rbsync.spotify import (
    LOW_SIMILARITY_THRESHOLD,
    MatchSummary,
    PlaylistSyncer,
    ResolvedTrack,
    SpotifyClient,
    SyncReport,
    TrackMatcher,
    unresolved_tracks,
)

logger = get_logger(__name__)


def _config_option(func):
    return click.option(
        "--config", "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        metavar="<config.yaml>",
        help="Configuration file (default: ./config.yaml)"
    )(func)


def _db_option(func):
    return click.option(
        "--db", "database",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        metavar="<master.db>",
        help="Rekordbox database location"
    )(func)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """
    rbsync: Copy Rekordbox playlists to Spotify.

    Reads the Rekordbox library, searches Spotify for every track of the
    chosen playlist and adds the matches to a Spotify playlist.

    \b
    BASIC USAGE:
        rbsync tree                              # Show folders and playlists
        rbsync sync "Peak Time"                  # Choose a playlist and copy it
        rbsync sync "Peak Time" "Club/Peak Time" # Copy a playlist by path
    """
    if version:
        click.echo(f"rbsync {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# =============================================================================
# Browsing commands
# =============================================================================

@cli.command()
@click.option("--counts", is_flag=True, help="Show the number of tracks per playlist")
@_db_option
@_config_option
def tree(counts: bool, database: Optional[Path], config_path: Optional[Path]) -> None:
    """Print the Rekordbox folder and playlist hierarchy."""
    with _handle_errors():
        config = _load_configuration(config_path, database=database)

    with _logging_session(config), _handle_errors():
        with _open_catalog(config) as catalog:
            root = build_hierarchy(catalog.playlist_rows())
            track_counts = catalog.track_counts() if counts else None
        get_console().print(_render_tree(root, track_counts))


@cli.command()
@click.argument("source")
@_db_option
@_config_option
def tracks(source: str, database: Optional[Path], config_path: Optional[Path]) -> None:
    """Print the tracks of SOURCE (playlist ID, path or name)."""
    with _handle_errors():
        config = _load_configuration(config_path, database=database)

    with _logging_session(config), _handle_errors():
        with _open_catalog(config) as catalog:
            node = find_playlist(build_hierarchy(catalog.playlist_rows()), source)
            playlist_tracks = load_playlist_tracks(catalog, node.id)

        click.echo(f"{node.display_path} ({len(playlist_tracks)} tracks)")
        for position, track in enumerate(playlist_tracks, start=1):
            click.echo(f"{position:4d}. {track}")


@cli.command()
@_db_option
@_config_option
def schema(database: Optional[Path], config_path: Optional[Path]) -> None:
    """Dump the Rekordbox database schema."""
    with _handle_errors():
        config = _load_configuration(config_path, database=database)

    with _logging_session(config), _handle_errors():
        with _open_catalog(config) as catalog:
            entries = catalog.schema()
        for obj_type, name, sql in entries:
            click.echo(f"-- {obj_type} {name}")
            click.echo(f"{sql};")
            click.echo()


# =============================================================================
# Sync command
# =============================================================================

@cli.command()
@click.argument("name")
@click.argument("source", required=False)
@click.option(
    "--file", "export_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<playlist.txt>",
    help="Read tracks from a Rekordbox playlist export instead of the database"
)
@click.option("--dry-run", is_flag=True, help="Search only; do not change Spotify")
@click.option(
    "--batch-size",
    type=int,
    default=None,
    help="Tracks per add request (1-100)"
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Maximum concurrent searches (default: one per track)"
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@_db_option
@_config_option
def sync(
    name: str,
    source: Optional[str],
    export_file: Optional[Path],
    dry_run: bool,
    batch_size: Optional[int],
    workers: Optional[int],
    verbose: bool,
    database: Optional[Path],
    config_path: Optional[Path]
) -> None:
    """
    Copy a Rekordbox playlist to the Spotify playlist NAME.

    SOURCE is a Rekordbox playlist ID, path ("Folder/Sub/Playlist") or
    unique name. Without SOURCE or --file, a list of playlists is shown to
    choose from. The Spotify playlist is created if you have none called
    NAME; otherwise tracks are added to the existing one.
    """
    if source and export_file:
        raise click.UsageError("Cannot use both SOURCE and --file")

    with _handle_errors():
        config = _load_configuration(
            config_path,
            database=database,
            dry_run=dry_run or None,
            batch_size=batch_size,
            max_workers=workers,
        )

    with _logging_session(config, verbose=verbose), _handle_errors():
        _run_sync(config, name, source, export_file)


def _run_sync(
    config: Config,
    name: str,
    source: Optional[str],
    export_file: Optional[Path]
) -> None:
    """
    Execute the sync workflow.

    1. Load the source tracks (export file or Rekordbox playlist)
    2. Authenticate with Spotify
    3. Search Spotify for every track
    4. Find or create the target playlist and add the matches
    5. Print the final tally
    """
    logger.info(f"rbsync {__version__} starting")

    if export_file is not None:
        source_tracks = load_exported_tracks(export_file)
        source_label = export_file.name
    else:
        with _open_catalog(config) as catalog:
            root = build_hierarchy(catalog.playlist_rows())
            node = find_playlist(root, source) if source else _prompt_for_playlist(root)
            source_tracks = load_playlist_tracks(catalog, node.id)
        source_label = node.display_path

    logger.info(f"Loaded {len(source_tracks)} tracks from '{source_label}'")
    if not source_tracks:
        logger.warning("Nothing to sync: the source playlist is empty")
        return

    config = _resolve_credentials(config)
    client = SpotifyClient.from_oauth(
        config.spotify.client_id,
        config.spotify.client_secret,
        config.spotify.redirect_uri
    )
    user_id = client.current_user()
    logger.info(f"Logged in to Spotify as {user_id}")

    resolved = _match(client, source_tracks, config)

    syncer = PlaylistSyncer(client, batch_size=config.sync.batch_size, dry_run=config.sync.dry_run)
    playlist_id = syncer.find_or_create_target(
        user_id,
        name,
        description=config.sync.description,
        public=config.sync.public
    )

    plan = syncer.plan(resolved)
    if config.sync.dry_run or plan.track_count == 0:
        report = syncer.sync(playlist_id, resolved)
    else:
        with AddingProgressBar(total=plan.track_count) as progress:
            report = syncer.sync(playlist_id, resolved, on_batch=progress.update)

    _print_final_stats(name, MatchSummary.from_results(resolved), report)
    _print_not_found(source_tracks, resolved)


def _match(client: SpotifyClient, source_tracks: list[Track], config: Config) -> list[ResolvedTrack]:
    matcher = TrackMatcher(client, max_workers=config.sync.max_workers)

    with MatchingProgressBar(total=len(source_tracks)) as progress:
        def on_result(resolved: ResolvedTrack) -> None:
            low = resolved.similarity is not None and resolved.similarity < LOW_SIMILARITY_THRESHOLD
            progress.update(resolved.is_resolved, low_similarity=low)

        return matcher.match_tracks(source_tracks, on_result=on_result)


# =============================================================================
# Helpers
# =============================================================================

@contextmanager
def _handle_errors() -> Iterator[None]:
    """Turn rbsync errors into a message and exit code 1."""
    try:
        yield

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your Spotify client ID, secret and redirect URI", err=True)
        logger.debug(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(1)

    except RbSyncError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.debug(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)


@contextmanager
def _logging_session(config: Config, verbose: bool = False) -> Iterator[None]:
    """Log to the console and the output directory for one command."""
    try:
        setup_logging(config.output.directory, verbose=verbose)
        yield
    finally:
        shutdown_logging()


def _load_configuration(
    config_path: Optional[Path],
    database: Optional[Path] = None,
    dry_run: Optional[bool] = None,
    batch_size: Optional[int] = None,
    max_workers: Optional[int] = None
) -> Config:
    """Load config.yaml and apply command-line overrides."""
    return load_config(config_path).with_overrides(
        dry_run=dry_run,
        database=database,
        batch_size=batch_size,
        max_workers=max_workers,
    )


def _open_catalog(config: Config) -> RekordboxCatalog:
    return RekordboxCatalog.open(config.rekordbox.database, key=config.rekordbox.key)


def _resolve_credentials(config: Config) -> Config:
    """Prompt for Spotify credentials missing from config and environment."""
    if config.spotify.has_credentials:
        return config

    client_id = config.spotify.client_id or click.prompt("Spotify client ID")
    client_secret = config.spotify.client_secret or click.prompt(
        "Spotify client secret", hide_input=True
    )
    return config.with_overrides(client_id=client_id.strip(), client_secret=client_secret.strip())


def _prompt_for_playlist(root: PlaylistNode) -> PlaylistNode:
    """Show numbered playlists and let the user pick one."""
    playlists = root.playlists()
    if not playlists:
        raise RbSyncError("The Rekordbox library has no playlists")

    for number, node in enumerate(playlists, start=1):
        click.echo(f"{number:4d}. {node.display_path}")

    choice = click.prompt(
        "Select a playlist",
        type=click.IntRange(1, len(playlists))
    )
    return playlists[choice - 1]


def _render_tree(root: PlaylistNode, track_counts: Optional[dict[str, int]] = None) -> Tree:
    """Build a rich Tree mirroring the playlist hierarchy."""
    rendered = Tree(Text("Rekordbox", style="bold"))
    stack = [(child, rendered) for child in reversed(root.children)]

    while stack:
        node, parent_branch = stack.pop()
        if node.is_folder:
            label = Text(node.name, style="bold blue")
        else:
            label = Text(node.name)
            if track_counts is not None:
                label.append(f" ({track_counts.get(node.id, 0)})", style="dim")
        branch = parent_branch.add(label)
        stack.extend((child, branch) for child in reversed(node.children))

    return rendered


def _print_final_stats(name: str, summary: MatchSummary, report: SyncReport) -> None:
    """
    Print the final tally.

    Output:
        Resolved vs unresolved tracks, then added vs failed-to-add tracks.
    """
    lines = [
        "=" * 60,
        f"SYNC SUMMARY: {name}" + (" (dry run)" if report.dry_run else ""),
        "=" * 60,
        f"Source tracks:     {summary.total}",
        f"Found on Spotify:  {summary.resolved}",
        f"Not found:         {summary.unresolved}",
    ]
    if report.dry_run:
        lines.append(f"Would add:         {summary.resolved}")
    else:
        lines.append(f"Added:             {report.added}")
        lines.append(f"Failed to add:     {report.failed}")
    lines.append("=" * 60)

    for line in lines:
        click.echo(line)
    logger.debug(
        f"Summary: {summary.resolved} resolved, {summary.unresolved} unresolved, "
        f"{report.added} added, {report.failed} failed"
    )


def _print_not_found(source_tracks: list[Track], resolved: list[ResolvedTrack]) -> None:
    """List the source tracks that found no Spotify match, with the reason."""
    missing = unresolved_tracks(source_tracks, resolved)
    if not missing:
        return

    click.echo("Not found on Spotify:")
    for track, slot in missing:
        line = f"  {slot.source_index + 1:4d}. {track}"
        if slot.reason:
            line += f" ({slot.reason})"
        click.echo(line)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `rbsync` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
