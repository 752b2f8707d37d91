"""Test progress bar tallies"""

from rbsync.core.progress import AddingProgressBar, MatchingProgressBar


class TestMatchingProgressBar:
    """Test MatchingProgressBar"""

    def test_counts(self):
        with MatchingProgressBar(total=4) as progress:
            progress.update(True)
            progress.update(True, low_similarity=True)
            progress.update(False)
            progress.update(False, low_similarity=True)

        assert progress.completed == 4
        assert (progress.resolved, progress.unresolved, progress.low_similarity) == (2, 2, 1)
        assert "⚠ 1" in progress.status()


class TestAddingProgressBar:
    """Test AddingProgressBar"""

    def test_counts_tracks_not_batches(self):
        with AddingProgressBar(total=250) as progress:
            progress.update(100, True)
            progress.update(100, False)
            progress.update(50, True)

        assert progress.completed == 250
        assert (progress.added, progress.failed) == (150, 100)
