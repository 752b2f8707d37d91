"""
Core module for rbsync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with console, file and report outputs
    - progress: Rich progress bars for searching and adding

Usage:
    from rbsync.core import (
        Config, load_config,
        setup_logging, get_logger,
        RbSyncError, ConfigError, CatalogError
    )
"""

from rbsync.core.config import (
    Config,
    OutputConfig,
    RekordboxConfig,
    SPOTIFY_MAX_BATCH_SIZE,
    SpotifyConfig,
    SyncConfig,
    load_config,
)
from rbsync.core.exceptions import (
    CatalogError,
    ConfigError,
    HierarchyError,
    RbSyncError,
    SelectionError,
    SpotifyError,
)
from rbsync.core.logger import (
    get_logger,
    log_add_failure,
    log_match_failure,
    log_match_review,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "RekordboxConfig",
    "SyncConfig",
    "OutputConfig",
    "SPOTIFY_MAX_BATCH_SIZE",
    "load_config",
    # Exceptions
    "RbSyncError",
    "ConfigError",
    "CatalogError",
    "HierarchyError",
    "SelectionError",
    "SpotifyError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_match_failure",
    "log_match_review",
    "log_add_failure",
    "shutdown_logging",
]
