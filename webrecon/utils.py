"""
Utility Functions
URL normalization for the frontier and crawl progress tracking.
"""

import logging
import re
import time
from typing import Optional
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

logger = logging.getLogger(__name__)


class URLNormalizer:
    """
    Normalizes URLs so the frontier never schedules the same page twice.
    Removes fragments, normalizes trailing slashes, sorts query params, etc.
    """

    # Common tracking parameters to remove
    TRACKING_PARAMS = {
        'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
        'fbclid', 'gclid', 'mc_cid', 'mc_eid', '_ga', '_gid',
    }

    # File extensions that are never pages
    SKIP_EXTENSIONS = {
        '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp', '.ico',
        '.pdf', '.zip', '.gz', '.mp4', '.mp3',
        '.css', '.js', '.woff', '.woff2', '.ttf',
    }

    def normalize(self, url: str) -> Optional[str]:
        """
        Normalize a URL for consistent comparison.

        Args:
            url: Absolute URL to normalize

        Returns:
            Normalized URL string or None if not crawlable
        """
        if not url:
            return None

        url = url.strip()

        # Skip javascript:, mailto:, tel:, data: URLs
        if url.lower().startswith(('javascript:', 'mailto:', 'tel:', 'data:')):
            return None

        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            return None

        path = re.sub(r'/+', '/', parsed.path or '/')
        if path != '/' and path.endswith('/'):
            path = path.rstrip('/')

        lower_path = path.lower()
        if any(lower_path.endswith(ext) for ext in self.SKIP_EXTENSIONS):
            return None

        query = ''
        if parsed.query:
            params = [
                (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)
                if k.lower() not in self.TRACKING_PARAMS
            ]
            query = urlencode(sorted(params))

        return urlunparse((
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            path,
            parsed.params,
            query,
            '',
        ))


class ProgressTracker:
    """
    Tracks crawling progress for reporting.
    """

    def __init__(self):
        self.pages_visited = 0
        self.pages_failed = 0
        self.links_discovered = 0
        self.links_enqueued = 0
        self.start_time = None
        self.end_time = None

    def start(self) -> None:
        self.start_time = time.time()

    def finish(self) -> None:
        self.end_time = time.time()

    @property
    def elapsed_time(self) -> float:
        """Elapsed time in seconds."""
        if self.start_time is None:
            return 0
        end = self.end_time or time.time()
        return end - self.start_time

    def get_stats(self) -> dict:
        return {
            'pages_visited': self.pages_visited,
            'pages_failed': self.pages_failed,
            'links_discovered': self.links_discovered,
            'links_enqueued': self.links_enqueued,
            'elapsed_time': round(self.elapsed_time, 2),
        }
