"""
Link Discovery
==============
Finds navigation links worth following from a loaded page.

Only navigation-like regions are scanned (nav bars, menus, sidebars).  A
link is *discovered* if it has a usable target; it is *followed* only when
its text mentions one of the relevance keywords.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from .inspector import PageInspector
from .keywords import RELEVANCE_KEYWORDS
from .models import DiscoveredLink

logger = logging.getLogger(__name__)

NAVIGATION_SELECTORS: Sequence[str] = (
    'nav a', '.menu a', '.sidebar a', '[role="navigation"] a',
)

# Targets containing any of these are never collected
_EXCLUDED_MARKERS = ('logout', '#')


def discover_links(inspector: PageInspector) -> List[DiscoveredLink]:
    """Anchors inside navigation regions, in selector then document order.

    The same anchor may be returned more than once when it sits inside
    several regions; the frontier takes care of uniqueness.
    """
    links: List[DiscoveredLink] = []
    for selector in NAVIGATION_SELECTORS:
        for anchor in inspector.query_all(selector):
            href = inspector.resolve(anchor.attribute('href'))
            if not href or any(m in href for m in _EXCLUDED_MARKERS):
                continue
            links.append(DiscoveredLink(
                url=href, text=anchor.text.strip(), page_url=inspector.url,
            ))
    return links


def is_relevant(link: DiscoveredLink, keywords: Iterable[str] = RELEVANCE_KEYWORDS) -> bool:
    text = link.text.lower()
    return any(k in text for k in keywords)


def relevant_links(
    links: Iterable[DiscoveredLink],
    keywords: Iterable[str] = RELEVANCE_KEYWORDS,
) -> List[DiscoveredLink]:
    """Links whose text makes them worth crawling."""
    keywords = tuple(keywords)
    return [link for link in links if is_relevant(link, keywords)]
