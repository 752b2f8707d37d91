"""
Playlist hierarchy reconstruction for rbsync.

Rekordbox stores folders and playlists as flat djmdPlaylist rows, each
pointing at its parent through ParentID. This module rebuilds the tree
and computes every node's path.

Algorithm:
    1. Index rows by ID (duplicate or empty IDs are fatal)
    2. Create one node per row plus a synthetic root without a row
    3. Attach each node to its parent; top-level rows ("" or "root") and
       rows whose parent does not exist go under the synthetic root
    4. Order siblings by (sequence, name)
    5. Walk depth-first from the root assigning path = parent path + parent name
    6. Any node the walk never reached sits on (or under) a parent cycle,
       which is fatal

Usage:
    from rbsync.rekordbox.hierarchy import build_hierarchy, find_playlist

    root = build_hierarchy(catalog.playlist_rows())
    node = find_playlist(root, "Club/Techno/Peak Time")
    print(node.path)  # ('Club', 'Techno')
"""

from typing import Iterable

from rbsync.core.exceptions import HierarchyError, SelectionError
from rbsync.core.logger import get_logger
from rbsync.rekordbox.models import PATH_SEPARATOR, PlaylistNode, PlaylistRow


logger = get_logger(__name__)


def build_hierarchy(rows: Iterable[PlaylistRow]) -> PlaylistNode:
    """
    Build the playlist tree from flat catalog rows.

    Args:
        rows: All playlist and folder rows, in any order.

    Returns:
        The synthetic root node. Its children are the top-level folders and
        playlists; it has no row itself.

    Raises:
        HierarchyError: If a row lacks an ID or name, two rows share an ID,
                        or a parent chain forms a cycle.

    Note:
        A row whose parent ID matches no row is attached to the root with a
        warning instead of failing the build.
    """
    rows_by_id = _index_rows(rows)

    root = PlaylistNode()
    nodes = {row_id: PlaylistNode(row=row) for row_id, row in rows_by_id.items()}

    for row_id, row in rows_by_id.items():
        node = nodes[row_id]
        if row.is_root_level:
            root.children.append(node)
        elif row.parent_id in nodes:
            nodes[row.parent_id].children.append(node)
        else:
            logger.warning(
                f"Playlist '{row.name}' ({row_id}) points at missing parent "
                f"{row.parent_id}; placing it at the top level"
            )
            root.children.append(node)

    root.children.sort(key=_sibling_order)
    for node in nodes.values():
        node.children.sort(key=_sibling_order)

    reached = _assign_paths(root)

    unreached = set(nodes) - reached
    if unreached:
        cycles = _find_cycle_members(rows_by_id, unreached)
        raise HierarchyError(
            f"Cyclic parent reference in playlist hierarchy: "
            f"{len(unreached)} playlist(s) cannot be reached from the root",
            details={"cycle": sorted(cycles), "unreachable": sorted(unreached)}
        )

    logger.debug(f"Built playlist hierarchy with {len(nodes)} nodes")
    return root


def _index_rows(rows: Iterable[PlaylistRow]) -> dict[str, PlaylistRow]:
    """Map rows by ID, rejecting rows without ID/name and duplicate IDs."""
    rows_by_id: dict[str, PlaylistRow] = {}

    for row in rows:
        if not row.id:
            raise HierarchyError(
                "Playlist row without an ID",
                details={"name": row.name}
            )
        if row.name is None:
            raise HierarchyError(
                f"Playlist row {row.id} has no name",
                details={"playlist_id": row.id}
            )
        if row.id in rows_by_id:
            raise HierarchyError(
                f"Duplicate playlist ID: {row.id}",
                details={"playlist_id": row.id, "names": [rows_by_id[row.id].name, row.name]}
            )
        rows_by_id[row.id] = row

    return rows_by_id


def _sibling_order(node: PlaylistNode) -> tuple[int, str, str]:
    # Seq is not unique in Rekordbox; name (then ID) keeps the order stable
    return (node.row.sequence, node.row.name, node.row.id)


def _assign_paths(root: PlaylistNode) -> set[str]:
    """
    Assign paths depth-first from the root and return the IDs reached.

    Raises:
        HierarchyError: If a node is reached twice, which would mean the
                        tree was corrupted after it was built.
    """
    visited: set[str] = set()
    stack = [root]

    while stack:
        parent = stack.pop()
        child_path = parent.full_path
        for child in parent.children:
            if child.id in visited:
                raise HierarchyError(
                    f"Playlist {child.id} appears more than once in the hierarchy",
                    details={"cycle": [child.id]}
                )
            visited.add(child.id)
            child.path = child_path
            stack.append(child)

    return visited


def _find_cycle_members(
    rows_by_id: dict[str, PlaylistRow],
    unreached: set[str]
) -> set[str]:
    """
    Return the IDs that lie on a parent cycle.

    Nodes hanging below a cycle are unreachable too, but are not part of it.
    """
    members: set[str] = set()

    for start in unreached:
        chain: list[str] = []
        seen: set[str] = set()
        current = start
        while current in rows_by_id and current not in seen:
            seen.add(current)
            chain.append(current)
            current = rows_by_id[current].parent_id
        if current in seen:
            members.update(chain[chain.index(current):])

    return members


def find_playlist(
    root: PlaylistNode,
    reference: str,
    playlists_only: bool = True
) -> PlaylistNode:
    """
    Resolve a user-supplied playlist reference to a node.

    The reference is tried, in order, as:
        1. An exact playlist ID
        2. A full path, e.g. "Club/Techno/Peak Time"
        3. A bare name, which must be unique

    Args:
        root: Root returned by build_hierarchy().
        reference: ID, path or name.
        playlists_only: If True, folders are never returned.

    Raises:
        SelectionError: If nothing matches, or a bare name is ambiguous.
    """
    reference = reference.strip()
    candidates = [
        node for node in root.walk()
        if not (playlists_only and node.is_folder)
    ]

    for node in candidates:
        if node.id == reference:
            return node

    wanted_path = reference.strip(PATH_SEPARATOR)
    for node in candidates:
        if node.display_path == wanted_path:
            return node

    by_name = [node for node in candidates if node.name == reference]
    if len(by_name) == 1:
        return by_name[0]
    if len(by_name) > 1:
        raise SelectionError(
            f"Playlist name '{reference}' is ambiguous; use one of: "
            + ", ".join(node.display_path for node in by_name),
            details={"reference": reference, "paths": [node.display_path for node in by_name]}
        )

    raise SelectionError(
        f"No playlist matches '{reference}'",
        details={"reference": reference}
    )
