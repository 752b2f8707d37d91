# tests/test_utils.py
"""Test utilities and helpers"""

import pytest

from rbsync.utils import chunked, ensure_directory


class TestHelpers:
    """Test helper functions"""

    def test_chunked(self):
        """Test splitting into batches"""
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([1, 2], 5)) == [[1, 2]]
        assert list(chunked([], 3)) == []

    def test_chunked_keeps_every_item_once(self):
        """Test that concatenated chunks equal the input"""
        items = list(range(250))
        chunks = list(chunked(items, 100))
        assert [len(chunk) for chunk in chunks] == [100, 100, 50]
        assert [item for chunk in chunks for item in chunk] == items

    @pytest.mark.parametrize("size", [0, -1])
    def test_chunked_rejects_non_positive_size(self, size):
        with pytest.raises(ValueError):
            list(chunked([1], size))

    def test_ensure_directory(self, tmp_path):
        """Test nested directory creation"""
        target = tmp_path / "a" / "b"
        assert ensure_directory(target) == target
        assert target.is_dir()
        # Existing directories are fine
        assert ensure_directory(target) == target
