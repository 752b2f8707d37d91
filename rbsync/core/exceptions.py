"""
Exception classes for rbsync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional dictionary
of details, so callers can log context without parsing strings.

Exception Hierarchy:
    RbSyncError (base)
        ConfigError - Configuration file issues
        CatalogError - Rekordbox database cannot be opened or queried
        HierarchyError - Malformed playlist hierarchy (duplicates, cycles)
        SelectionError - Source playlist cannot be found or is ambiguous
        SpotifyError - Spotify API issues

Fatal vs. non-fatal:
    ConfigError, CatalogError, HierarchyError and SelectionError always end
    the run. SpotifyError is absorbed per track by the matcher and per batch
    by the syncer; it is only fatal during authentication and target
    playlist creation.
"""


class RbSyncError(Exception):
    """
    Base exception for all rbsync errors.
    
    All custom exceptions in this project inherit from this class,
    allowing callers to catch every rbsync error with a single except
    clause.
    
    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (ids, paths).
    
    Example:
        try:
            root = build_hierarchy(rows)
        except RbSyncError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """
    
    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.
        
        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context.
                     Common keys include:
                     - 'playlist_id': Rekordbox playlist ID involved
                     - 'path': File path that caused the error
                     - 'original_error': The wrapped exception as a string
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(RbSyncError):
    """
    Raised when there's an issue with the configuration.
    
    This is a CRITICAL error that should stop program execution.
    
    Common causes:
        - An explicit config file path does not exist
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., batch_size above the Spotify limit)
    
    Example:
        raise ConfigError(
            "'sync.batch_size' must be between 1 and 100",
            details={'field': 'sync.batch_size', 'value': 250}
        )
    """
    pass


class CatalogError(RbSyncError):
    """
    Raised when the local Rekordbox catalog cannot be read.
    
    This is a CRITICAL error: without the catalog there is nothing to
    synchronize.
    
    Common causes:
        - master.db not found at the configured location
        - Decryption key missing or wrong
        - Query failure (schema differs from Rekordbox 6)
        - Exported playlist file without Artist / Track Title columns
    """
    pass


class HierarchyError(RbSyncError):
    """
    Raised when playlist rows cannot form a valid tree.
    
    This is fatal for the hierarchy build; the caller decides whether to
    abort the whole run.
    
    Common causes:
        - Two rows share the same ID
        - A row has no ID or no name
        - A parent chain loops back on itself (including self-reference)
    
    Example:
        raise HierarchyError(
            "Cyclic parent reference in playlist hierarchy",
            details={'cycle': ['12', '34']}
        )
    """
    pass


class SelectionError(RbSyncError):
    """
    Raised when a requested source playlist cannot be resolved.
    
    Common causes:
        - No playlist with the given ID, path or name
        - A bare name matches several playlists in different folders
    """
    pass


class SpotifyError(RbSyncError):
    """
    Raised when there's an issue with the Spotify API.
    
    Can be CRITICAL (auth failure, playlist creation) or NON-CRITICAL
    (single search, single add batch).
    
    Attributes:
        is_auth_error: True if this is an authentication error (CRITICAL).
        is_rate_limit: True if this is a rate limit error.
    
    Example:
        raise SpotifyError(
            "Failed to add tracks to playlist",
            details={'playlist_id': playlist_id, 'http_status': 400}
        )
    """
    
    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.
        
        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True for authentication failures.
            is_rate_limit: Set to True when Spotify answered 429.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit
