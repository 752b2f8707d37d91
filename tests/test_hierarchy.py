"""Test playlist hierarchy reconstruction"""

import random

import pytest

from rbsync.core.exceptions import HierarchyError, SelectionError
from rbsync.rekordbox.hierarchy import build_hierarchy, find_playlist
from rbsync.rekordbox.models import ATTRIBUTE_FOLDER, PlaylistRow


def _by_id(root):
    return {node.id: node for node in root.walk()}


class TestBuildHierarchy:
    """Test build_hierarchy()"""

    def test_folder_with_playlist(self, row):
        """Root Folder -> Techno"""
        root = build_hierarchy([
            row("1", "Root Folder", parent_id=""),
            row("2", "Techno", parent_id="1"),
        ])

        assert root.row is None
        assert [child.id for child in root.children] == ["1"]
        assert [child.id for child in root.children[0].children] == ["2"]
        assert root.children[0].children[0].path == ("Root Folder",)

    def test_paths_follow_ancestors(self, row):
        root = build_hierarchy([
            row("c", "C", parent_id="b"),
            row("a", "A", parent_id="root"),
            row("b", "B", parent_id="a"),
        ])
        nodes = _by_id(root)

        assert nodes["a"].path == ()
        assert nodes["b"].path == ("A",)
        assert nodes["c"].path == ("A", "B")
        assert nodes["c"].display_path == "A/B/C"
        assert nodes["c"].depth == 3

    def test_node_count_matches_rows(self, row):
        """A random acyclic forest of N rows gives N nodes"""
        rng = random.Random(7)
        rows = []
        for index in range(200):
            parent = str(rng.randrange(index)) if index and rng.random() < 0.8 else ""
            rows.append(row(str(index), f"Node {index}", parent_id=parent, sequence=rng.randrange(5)))
        rng.shuffle(rows)

        root = build_hierarchy(rows)
        nodes = list(root.walk())

        assert len(nodes) == 200
        assert len({node.id for node in nodes}) == 200
        assert root.row is None
        for node in nodes:
            assert len(node.path) == node.depth - 1

    def test_dangling_parent_goes_to_root(self, row, caplog):
        root = build_hierarchy([
            row("1", "Orphan", parent_id="999"),
            row("2", "Top", parent_id="root"),
        ])

        assert {child.id for child in root.children} == {"1", "2"}
        assert _by_id(root)["1"].path == ()
        assert "missing parent" in caplog.text

    def test_siblings_ordered_by_sequence_then_name(self, row):
        root = build_hierarchy([
            row("1", "Zeta", sequence=1),
            row("2", "Alpha", sequence=2),
            row("3", "Beta", sequence=1),
            row("4", "Gamma", sequence=0),
        ])

        assert [child.name for child in root.children] == ["Gamma", "Beta", "Zeta", "Alpha"]

    def test_walk_is_depth_first_in_child_order(self, row):
        root = build_hierarchy([
            row("1", "A", sequence=1),
            row("2", "A1", parent_id="1", sequence=1),
            row("3", "A2", parent_id="1", sequence=2),
            row("4", "B", sequence=2),
        ])

        assert [node.name for node in root.walk()] == ["A", "A1", "A2", "B"]

    def test_duplicate_id_is_fatal(self, row):
        with pytest.raises(HierarchyError) as exc_info:
            build_hierarchy([row("1", "One"), row("1", "Again")])
        assert exc_info.value.details["playlist_id"] == "1"

    def test_missing_id_is_fatal(self, row):
        with pytest.raises(HierarchyError):
            build_hierarchy([row("", "Nameless")])

    def test_missing_name_is_fatal(self):
        with pytest.raises(HierarchyError):
            build_hierarchy([PlaylistRow(id="1", name=None)])

    def test_self_reference_is_fatal(self, row):
        with pytest.raises(HierarchyError) as exc_info:
            build_hierarchy([row("1", "Loop", parent_id="1")])
        assert exc_info.value.details["cycle"] == ["1"]

    def test_cycle_is_reported(self, row):
        with pytest.raises(HierarchyError) as exc_info:
            build_hierarchy([
                row("1", "Fine"),
                row("2", "X", parent_id="3"),
                row("3", "Y", parent_id="2"),
                row("4", "Below cycle", parent_id="3"),
            ])
        details = exc_info.value.details
        assert details["cycle"] == ["2", "3"]
        assert details["unreachable"] == ["2", "3", "4"]

    def test_empty_input(self):
        root = build_hierarchy([])
        assert root.children == []
        assert list(root.walk()) == []


class TestFindPlaylist:
    """Test find_playlist()"""

    @pytest.fixture
    def root(self, row):
        return build_hierarchy([
            PlaylistRow(id="1", name="Club", parent_id="root", attribute=ATTRIBUTE_FOLDER),
            row("2", "Peak Time", parent_id="1", sequence=1),
            PlaylistRow(id="3", name="Home", parent_id="root", sequence=2, attribute=ATTRIBUTE_FOLDER),
            row("4", "Peak Time", parent_id="3"),
            row("5", "Warmup", parent_id="root", sequence=3),
        ])

    def test_by_id(self, root):
        assert find_playlist(root, "4").display_path == "Home/Peak Time"

    def test_by_path(self, root):
        assert find_playlist(root, "Club/Peak Time").id == "2"

    def test_by_unique_name(self, root):
        assert find_playlist(root, " Warmup ").id == "5"

    def test_ambiguous_name(self, root):
        with pytest.raises(SelectionError) as exc_info:
            find_playlist(root, "Peak Time")
        assert exc_info.value.details["paths"] == ["Club/Peak Time", "Home/Peak Time"]

    def test_folders_excluded_by_default(self, root):
        with pytest.raises(SelectionError):
            find_playlist(root, "Club")
        assert find_playlist(root, "Club", playlists_only=False).id == "1"

    def test_not_found(self, root):
        with pytest.raises(SelectionError):
            find_playlist(root, "Nope")
