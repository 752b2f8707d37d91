"""
Configuration management for rbsync.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify API credentials and OAuth redirect URI
    - Location (and optional key) of the Rekordbox master.db
    - Sync behavior: add batch size, worker cap, playlist description/visibility
    - Output directory for log files

Every section is optional. Credentials that are missing from the file are
taken from the environment (SPOTIFY_ID / SPOTIFY_SECRET, REKORDBOX_DB) and,
as a last resort, prompted for by the CLI.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://127.0.0.1:8666/callback"

    rekordbox:
      database: "~/Library/Pioneer/rekordbox/master.db"
      key: null

    sync:
      batch_size: 100
      max_workers: null
      description: "exported from rekordbox"
      public: false

    output:
      directory: "~/.rbsync"
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from rbsync.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

# Spotify rejects more than 100 items per "add items to playlist" request
SPOTIFY_MAX_BATCH_SIZE = 100

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8666/callback"
DEFAULT_DATABASE_PATH = "~/Library/Pioneer/rekordbox/master.db"
DEFAULT_DESCRIPTION = "exported from rekordbox"
DEFAULT_OUTPUT_DIRECTORY = "~/.rbsync"

ENV_CLIENT_ID = "SPOTIFY_ID"
ENV_CLIENT_SECRET = "SPOTIFY_SECRET"
ENV_DATABASE = "REKORDBOX_DB"


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials configuration.

    Attributes:
        client_id: Spotify application client ID. Empty if not configured.
        client_secret: Spotify application client secret. Empty if not configured.
        redirect_uri: OAuth redirect URI registered for the application.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI

    @property
    def has_credentials(self) -> bool:
        """True when both client_id and client_secret are known."""
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class RekordboxConfig:
    """
    Rekordbox catalog location.

    Attributes:
        database: Absolute path to master.db (~ expanded).
        key: Optional SQLCipher key. When None, pyrekordbox finds it.
    """
    database: Path
    key: str | None = None


@dataclass(frozen=True)
class SyncConfig:
    """
    Sync behavior configuration.

    Attributes:
        batch_size: Identifiers per add-tracks call (1..100).
        max_workers: Concurrent search cap. None means one worker per track.
        description: Description given to newly created Spotify playlists.
        public: Visibility of newly created Spotify playlists.
        dry_run: Resolve tracks only, never touch Spotify playlists.
    """
    batch_size: int = SPOTIFY_MAX_BATCH_SIZE
    max_workers: int | None = None
    description: str = DEFAULT_DESCRIPTION
    public: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Directory holding the logs/ subdirectory.
    """
    directory: Path


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created once by load_config() and passed explicitly to every component.
    Command-line overrides produce a new value through with_overrides();
    nothing is ever changed in place.

    Example:
        config = load_config()
        config = config.with_overrides(dry_run=True, batch_size=50)
        print(f"Reading {config.rekordbox.database}")
    """
    spotify: SpotifyConfig
    rekordbox: RekordboxConfig
    sync: SyncConfig
    output: OutputConfig

    def with_overrides(
        self,
        dry_run: bool | None = None,
        database: Path | None = None,
        batch_size: int | None = None,
        max_workers: int | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> "Config":
        """
        Return a copy of this configuration with CLI overrides applied.

        Arguments left as None keep the current value. Overrides are
        validated with the same rules as the config file.

        Raises:
            ConfigError: If an override is out of range.
        """
        spotify = self.spotify
        if client_id is not None or client_secret is not None:
            spotify = replace(
                spotify,
                client_id=client_id if client_id is not None else spotify.client_id,
                client_secret=client_secret if client_secret is not None else spotify.client_secret,
            )

        rekordbox = self.rekordbox
        if database is not None:
            rekordbox = replace(rekordbox, database=Path(database).expanduser().resolve())

        sync = self.sync
        if batch_size is not None:
            sync = replace(sync, batch_size=validate_batch_size(batch_size))
        if max_workers is not None:
            sync = replace(sync, max_workers=_validate_max_workers(max_workers))
        if dry_run is not None:
            sync = replace(sync, dry_run=dry_run)

        return replace(self, spotify=spotify, rekordbox=rekordbox, sync=sync)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in the current working
                     directory and falls back to defaults when it is absent.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is not found, the YAML is
                     invalid, or a field has an invalid value.

    Behavior:
        1. Load .env into the environment (existing variables win)
        2. Locate and parse the YAML file, if any
        3. Parse each section, applying defaults and environment fallbacks
        4. Return a frozen Config object
    """
    load_dotenv()

    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    return Config(
        spotify=_parse_spotify_config(_section(raw_config, "spotify")),
        rekordbox=_parse_rekordbox_config(_section(raw_config, "rekordbox")),
        sync=_parse_sync_config(_section(raw_config, "sync")),
        output=_parse_output_config(_section(raw_config, "output")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    """Read the YAML file and check it holds a dictionary."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is a valid "all defaults" configuration
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a section of the raw config, or {} if it is absent."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _optional_string(section: dict[str, Any], key: str, field: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(
            f"'{field}' must be a string",
            details={"field": field}
        )
    return value.strip()


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse the Spotify section.

    Missing credentials fall back to the SPOTIFY_ID / SPOTIFY_SECRET
    environment variables, then to the empty string.
    """
    client_id = _optional_string(spotify_section, "client_id", "spotify.client_id")
    client_secret = _optional_string(spotify_section, "client_secret", "spotify.client_secret")
    redirect_uri = _optional_string(spotify_section, "redirect_uri", "spotify.redirect_uri")

    return SpotifyConfig(
        client_id=client_id or os.environ.get(ENV_CLIENT_ID, "").strip(),
        client_secret=client_secret or os.environ.get(ENV_CLIENT_SECRET, "").strip(),
        redirect_uri=redirect_uri or DEFAULT_REDIRECT_URI,
    )


def _parse_rekordbox_config(rekordbox_section: dict[str, Any]) -> RekordboxConfig:
    """
    Parse the Rekordbox section.

    The REKORDBOX_DB environment variable takes precedence over the file.
    """
    database = os.environ.get(ENV_DATABASE, "").strip()
    if not database:
        database = _optional_string(rekordbox_section, "database", "rekordbox.database")
    if not database:
        database = DEFAULT_DATABASE_PATH

    key = _optional_string(rekordbox_section, "key", "rekordbox.key")

    return RekordboxConfig(
        database=Path(database).expanduser().resolve(),
        key=key or None,
    )


def _parse_sync_config(sync_section: dict[str, Any]) -> SyncConfig:
    """
    Parse the sync section, applying defaults.

    Raises:
        ConfigError: If batch_size is outside 1..100, max_workers is not a
                     positive integer, or public is not a boolean.
    """
    batch_size = SPOTIFY_MAX_BATCH_SIZE
    raw_batch = sync_section.get("batch_size")
    if raw_batch is not None:
        batch_size = validate_batch_size(raw_batch)

    max_workers = None
    raw_workers = sync_section.get("max_workers")
    if raw_workers is not None:
        max_workers = _validate_max_workers(raw_workers)

    description = _optional_string(sync_section, "description", "sync.description")

    public = sync_section.get("public", False)
    if not isinstance(public, bool):
        raise ConfigError(
            "'sync.public' must be true or false",
            details={"field": "sync.public", "value": public}
        )

    return SyncConfig(
        batch_size=batch_size,
        max_workers=max_workers,
        description=description if description is not None else DEFAULT_DESCRIPTION,
        public=public,
    )


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """Parse the output section. Expands ~ and makes the path absolute."""
    directory = _optional_string(output_section, "directory", "output.directory")
    if not directory:
        directory = DEFAULT_OUTPUT_DIRECTORY
    return OutputConfig(directory=Path(directory).expanduser().resolve())


def validate_batch_size(value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(
            "'sync.batch_size' must be an integer",
            details={"field": "sync.batch_size", "value": value}
        )
    if not 1 <= value <= SPOTIFY_MAX_BATCH_SIZE:
        raise ConfigError(
            f"'sync.batch_size' must be between 1 and {SPOTIFY_MAX_BATCH_SIZE}",
            details={"field": "sync.batch_size", "value": value}
        )
    return value


def _validate_max_workers(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            "'sync.max_workers' must be a positive integer or null",
            details={"field": "sync.max_workers", "value": value}
        )
    return value
