"""
Logging configuration for rbsync.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible, colored formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - match_failures.log: Tracks that could not be found on Spotify
    - match_review.log: Matches whose first search result looks dissimilar
    - add_failures.log: Add-to-playlist batches Spotify rejected

Everything printed to screen is also saved to file, then filtered into the
specialized report files so an operator can follow up on what was missed.

Log File Locations:
    All log files are created in <output directory>/logs with a timestamp
    in their name, one set per run.

Usage:
    from rbsync.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Searching Spotify")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm

from rbsync.utils import ensure_directory


# Log file name prefixes (timestamp and .log are appended)
LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
MATCH_FAILURES_PREFIX = "match_failures"
MATCH_REVIEW_PREFIX = "match_review"
ADD_FAILURES_PREFIX = "add_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    tearing through it.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream or sys.stderr)
        except Exception:
            self.handleError(record)


class ReportHandler(logging.Handler):
    """
    Base class for handlers that turn tagged records into a report file.

    A record is written only when it carries the subclass's marker
    attribute (passed through the `extra` argument of a logging call).
    Everything else is ignored, so these handlers can sit on the root
    logger next to the regular handlers.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle, or None before open()/after close().
    """

    marker: str = ""

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, self.marker) or self.report_file is None:
            return

        try:
            self.report_file.write(self.render(record))
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def render(self, record: logging.LogRecord) -> str:
        raise NotImplementedError

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


class MatchFailureHandler(ReportHandler):
    """
    Writes tracks that could not be resolved on Spotify.

    Format:
        Artist Name - Song Title (Original Mix)
        Query: Artist Name  song title
        Reason: no results

    Looks for these extra fields:
        - 'match_failed_artist'
        - 'match_failed_title'
        - 'match_failed_query'
        - 'match_failed_reason'
    """

    marker = "match_failed_title"

    def render(self, record: logging.LogRecord) -> str:
        artist = getattr(record, "match_failed_artist", "")
        title = getattr(record, "match_failed_title", "")
        query = getattr(record, "match_failed_query", "")
        reason = getattr(record, "match_failed_reason", "")
        return f"{artist} - {title}\nQuery: {query}\nReason: {reason}\n\n"


class MatchReviewHandler(ReportHandler):
    """
    Writes matches whose first result is textually far from the query.

    The first search result is always taken; this report only lists the
    ones worth a second look.

    Looks for these extra fields:
        - 'match_review_source': "artist - title" from Rekordbox
        - 'match_review_selected': display name of the Spotify track
        - 'match_review_uri': Spotify track ID
        - 'match_review_similarity': similarity score (0-100)
    """

    marker = "match_review_source"

    def render(self, record: logging.LogRecord) -> str:
        source = getattr(record, "match_review_source", "")
        selected = getattr(record, "match_review_selected", "")
        remote_id = getattr(record, "match_review_uri", "")
        similarity = getattr(record, "match_review_similarity", 0.0)
        return (
            f"Rekordbox: {source}\n"
            f"Selected: {selected} spotify:track:{remote_id} "
            f"(similarity: {similarity:.1f})\n"
            "Low similarity. Verify if correct.\n\n"
        )


class AddFailureHandler(ReportHandler):
    """
    Writes add-to-playlist batches that Spotify rejected.

    Format:
        Batch 2 (3 tracks): Spotify API error ...
          - Artist - Title
          - Artist - Title

    Looks for these extra fields:
        - 'add_failed_batch': 1-based batch number
        - 'add_failed_tracks': list of display names in the batch
        - 'add_failed_reason': error message
    """

    marker = "add_failed_batch"

    def render(self, record: logging.LogRecord) -> str:
        batch = getattr(record, "add_failed_batch", 0)
        tracks = getattr(record, "add_failed_tracks", [])
        reason = getattr(record, "add_failed_reason", "")
        lines = [f"Batch {batch} ({len(tracks)} tracks): {reason}"]
        lines.extend(f"  - {name}" for name in tracks)
        return "\n".join(lines) + "\n\n"


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, verbose: bool = False) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any worker threads start.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        verbose: If True, the console also shows DEBUG messages.

    Returns:
        The logs directory that was used.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG, dropping old handlers
        3. Console handler (TqdmLoggingHandler), INFO or DEBUG
        4. Full log and error-only log file handlers
        5. Report handlers for match failures, match review, add failures
    """
    logs_dir = ensure_directory(output_dir / "logs")

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        logs_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    for handler_class, prefix in (
        (MatchFailureHandler, MATCH_FAILURES_PREFIX),
        (MatchReviewHandler, MATCH_REVIEW_PREFIX),
        (AddFailureHandler, ADD_FAILURES_PREFIX),
    ):
        report_handler = handler_class(logs_dir / f"{prefix}_{timestamp}.log")
        report_handler.open()
        root_logger.addHandler(report_handler)

    # spotipy and urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("spotipy").setLevel(logging.INFO)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Note:
        Loggers obtained before setup_logging() is called have no
        handlers of their own and propagate to the root logger.
    """
    return logging.getLogger(name)


def format_resolved_message(artist: str, title: str, display_name: str, remote_id: str) -> str:
    """Format a 'Found' message with colors."""
    return (
        f"{Colors.GREEN}Found{Colors.RESET}: "
        f"{artist} - {title} -> "
        f"{display_name} {Colors.CYAN}{remote_id}{Colors.RESET}"
    )


def log_match_failure(
    logger: logging.Logger,
    artist: str,
    title: str,
    query: str,
    reason: str
) -> None:
    """
    Log a track that could not be resolved on Spotify.

    Logs a WARNING and attaches the extra fields MatchFailureHandler
    writes to match_failures.log.
    """
    logger.warning(
        f"Could not find '{artist} - {title}': {reason}",
        extra={
            "match_failed_artist": artist,
            "match_failed_title": title,
            "match_failed_query": query,
            "match_failed_reason": reason,
        }
    )


def log_match_review(
    logger: logging.Logger,
    source: str,
    selected: str,
    remote_id: str,
    similarity: float
) -> None:
    """
    Log a resolved track whose first search result looks dissimilar.

    Logs a WARNING and attaches the extra fields MatchReviewHandler
    writes to match_review.log.
    """
    logger.warning(
        f"Low similarity match for '{source}': '{selected}' ({similarity:.1f})",
        extra={
            "match_review_source": source,
            "match_review_selected": selected,
            "match_review_uri": remote_id,
            "match_review_similarity": similarity,
        }
    )


def log_add_failure(
    logger: logging.Logger,
    batch_number: int,
    track_names: list[str],
    reason: str
) -> None:
    """
    Log an add-to-playlist batch that failed.

    Logs an ERROR naming every track in the batch, and attaches the extra
    fields AddFailureHandler writes to add_failures.log.

    Example:
        log_add_failure(
            logger,
            batch_number=2,
            track_names=["Artist - Title", "Other - Song"],
            reason="Spotify API error 502"
        )
    """
    logger.error(
        f"Could not add batch {batch_number} ({len(track_names)} tracks) to playlist: "
        f"{reason}. Tracks: {', '.join(track_names)}",
        extra={
            "add_failed_batch": batch_number,
            "add_failed_tracks": list(track_names),
            "add_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove all root handlers.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
