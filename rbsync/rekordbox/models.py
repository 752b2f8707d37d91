"""
Data models for Rekordbox catalog entities.

Design Decisions:
    - Rows read from the catalog (PlaylistRow, Track) are frozen dataclasses
    - PlaylistNode is mutable only while the hierarchy builder assembles the
      tree; callers treat the finished tree as read-only
    - The synthetic root node has no row; every other node owns exactly one

Usage:
    from rbsync.rekordbox.models import PlaylistRow, PlaylistNode, Track

    row = PlaylistRow(id="12", name="Techno", parent_id="root", sequence=1)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator


# ParentID value Rekordbox uses for top-level folders and playlists
ROOT_PARENT_ID = "root"

# djmdPlaylist.Attribute values
ATTRIBUTE_PLAYLIST = 0
ATTRIBUTE_FOLDER = 1
ATTRIBUTE_SMART_PLAYLIST = 4

PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class PlaylistRow:
    """
    One djmdPlaylist row, as read from the catalog.

    Attributes:
        id: Opaque, unique playlist ID (Rekordbox stores it as text).
        name: Display name of the folder or playlist.
        parent_id: ID of the containing folder. Empty or "root" means top level.
        sequence: Ordering among siblings (not guaranteed unique).
        attribute: 0 playlist, 1 folder, 4 smart playlist.
        created_at: Creation timestamp, when Rekordbox recorded one.
    """
    id: str
    name: str
    parent_id: str = ""
    sequence: int = 0
    attribute: int = ATTRIBUTE_PLAYLIST
    created_at: datetime | None = None

    @property
    def is_root_level(self) -> bool:
        """True if the row has no parent folder."""
        return not self.parent_id or self.parent_id == ROOT_PARENT_ID

    @property
    def is_folder(self) -> bool:
        return self.attribute == ATTRIBUTE_FOLDER


@dataclass
class PlaylistNode:
    """
    A folder or playlist in the reconstructed hierarchy.

    Attributes:
        row: The catalog row, or None for the synthetic root.
        children: Child nodes ordered by (sequence, name).
        path: Names of the ancestors from the root's direct child down to,
              but excluding, this node. Empty for top-level nodes and root.
    """
    row: PlaylistRow | None = None
    children: list["PlaylistNode"] = field(default_factory=list)
    path: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.row is None

    @property
    def id(self) -> str:
        return self.row.id if self.row is not None else ""

    @property
    def name(self) -> str:
        return self.row.name if self.row is not None else ""

    @property
    def is_folder(self) -> bool:
        return self.row is not None and self.row.is_folder

    @property
    def depth(self) -> int:
        """Distance from the synthetic root (top-level nodes have depth 1)."""
        return 0 if self.is_root else len(self.path) + 1

    @property
    def full_path(self) -> tuple[str, ...]:
        """Ancestor names followed by this node's own name."""
        if self.is_root:
            return ()
        return self.path + (self.name,)

    @property
    def display_path(self) -> str:
        """Full path joined with '/', e.g. 'Club/Techno/Peak Time'."""
        return PATH_SEPARATOR.join(self.full_path)

    def walk(self) -> Iterator["PlaylistNode"]:
        """
        Yield every node below this one, depth-first in child order.

        The node itself is not yielded. Uses an explicit stack, so deep
        folder structures cannot exhaust the recursion limit.
        """
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def playlists(self) -> list["PlaylistNode"]:
        """All non-folder descendants, in tree order."""
        return [node for node in self.walk() if not node.is_folder]


@dataclass(frozen=True)
class Track:
    """
    A Rekordbox track reduced to what Spotify search needs.

    Both fields are stripped of surrounding whitespace when loaded.
    """
    artist: str
    title: str

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"
