"""
Tests for utils.py: frontier URL normalization and progress stats.
"""

import pytest

from webrecon.utils import ProgressTracker, URLNormalizer


class TestURLNormalizer:

    @pytest.mark.parametrize("a,b", [
        ("https://App.Example.com/data/", "https://app.example.com/data"),
        ("https://app.example.com/data#top", "https://app.example.com/data"),
        ("https://app.example.com/x?b=2&a=1", "https://app.example.com/x?a=1&b=2"),
        ("https://app.example.com/x?utm_source=mail&a=1", "https://app.example.com/x?a=1"),
        ("https://app.example.com//double//slash", "https://app.example.com/double/slash"),
    ])
    def test_equivalent_urls(self, a, b):
        n = URLNormalizer()
        assert n.normalize(a) == n.normalize(b)

    @pytest.mark.parametrize("url", [
        "", "mailto:team@example.com", "javascript:void(0)",
        "ftp://example.com/file", "https://app.example.com/report.pdf",
    ])
    def test_not_crawlable(self, url):
        assert URLNormalizer().normalize(url) is None

    def test_relative_url_not_crawlable(self):
        assert URLNormalizer().normalize("../prices") is None

    def test_root_keeps_slash(self):
        assert URLNormalizer().normalize("https://app.example.com") == "https://app.example.com/"


class TestProgressTracker:

    def test_stats(self):
        tracker = ProgressTracker()
        assert tracker.elapsed_time == 0
        tracker.start()
        tracker.pages_visited = 3
        tracker.pages_failed = 1
        tracker.finish()
        stats = tracker.get_stats()
        assert stats["pages_visited"] == 3
        assert stats["pages_failed"] == 1
        assert stats["elapsed_time"] >= 0
