"""
Page Inspection
===============
Read-only view of a loaded page used by every extraction pass.

The passes never talk to the browser directly.  After the settle delay the
crawler captures a :class:`DomSnapshot` (serialized DOM + the browser's
``document.body.innerText``) and the passes run against that snapshot.  The
same snapshot type is built from static HTML, which keeps extraction
unit-testable without a browser.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

logger = logging.getLogger(__name__)

_BS_PARSER = "lxml"

# Tags whose raw text must not be whitespace-collapsed
_RAW_TEXT_TAGS = frozenset(["script", "style"])

# Elements that start a new line in the rendered text (innerText semantics)
_BLOCK_TAGS = frozenset([
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5",
    "h6", "header", "hr", "li", "main", "nav", "ol", "option", "p", "pre",
    "section", "select", "table", "td", "th", "tr", "ul",
])

_WHITESPACE_RE = re.compile(r"\s+")

_INNER_TEXT_JS = "() => document.body ? document.body.innerText : ''"


# ---------------------------------------------------------------------------
# Capability interfaces
# ---------------------------------------------------------------------------

class ElementHandle(ABC):
    """A single element of an inspected page."""

    @property
    @abstractmethod
    def text(self) -> str:
        """Visible text of the element (raw body for ``<script>``)."""
        ...

    @abstractmethod
    def attribute(self, name: str) -> Optional[str]:
        """Attribute value, or None if absent."""
        ...

    @abstractmethod
    def query_all(self, selector: str) -> List["ElementHandle"]:
        """Descendants matching a CSS selector, in document order."""
        ...


class PageInspector(ABC):
    """A loaded page, as seen by the extraction passes."""

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    def extract_text(self) -> str:
        """Flattened visible text of the whole page."""
        ...

    @abstractmethod
    def query_all(self, selector: str) -> List[ElementHandle]:
        ...

    def resolve(self, href: Optional[str]) -> str:
        """Absolute form of *href* relative to the page URL ('' if empty)."""
        if not href:
            return ""
        return urljoin(self.url, href.strip())


# ---------------------------------------------------------------------------
# BeautifulSoup implementation
# ---------------------------------------------------------------------------

class SoupElement(ElementHandle):
    """ElementHandle backed by a BeautifulSoup tag."""

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def text(self) -> str:
        if self._tag.name in _RAW_TEXT_TAGS:
            return self._tag.get_text()
        return self._tag.get_text(" ", strip=True)

    def attribute(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if value is None:
            return None
        # bs4 returns multi-valued attributes (class, rel) as lists
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def query_all(self, selector: str) -> List[ElementHandle]:
        return [SoupElement(t) for t in self._tag.select(selector)]


class DomSnapshot(PageInspector):
    """Frozen DOM of one page.

    Args:
        html:       Serialized DOM (``page.content()`` or a static fetch).
        url:        Page URL; used to resolve relative ``href`` / ``src``.
        inner_text: The browser's ``document.body.innerText``.  When omitted
                    the text is flattened from the HTML with scripts and
                    styles removed.
    """

    def __init__(self, html: str, url: str = "", inner_text: Optional[str] = None):
        self._url = url
        self._soup = BeautifulSoup(html or "", _BS_PARSER)
        self._inner_text = inner_text

    @property
    def url(self) -> str:
        return self._url

    def extract_text(self) -> str:
        if self._inner_text is not None:
            return self._inner_text
        body = self._soup.body or self._soup
        # Work on a copy so script bodies stay available to query_all
        clone = BeautifulSoup(str(body), _BS_PARSER)
        for tag in clone(["script", "style", "noscript", "template"]):
            tag.decompose()
        # Source whitespace collapses to one space; only block boundaries
        # and <br> break lines
        for node in clone.find_all(string=True):
            if type(node) is NavigableString:
                node.replace_with(_WHITESPACE_RE.sub(" ", str(node)))
        for tag in clone.find_all(sorted(_BLOCK_TAGS)):
            tag.insert_before("\n")
            tag.append("\n")
        for br in clone.find_all("br"):
            br.replace_with("\n")
        lines = (re.sub(r" {2,}", " ", line).strip() for line in clone.get_text().split("\n"))
        self._inner_text = "\n".join(line for line in lines if line)
        return self._inner_text

    def query_all(self, selector: str) -> List[ElementHandle]:
        try:
            return [SoupElement(t) for t in self._soup.select(selector)]
        except Exception as e:
            # soupsieve rejects a few browser-only pseudo-classes
            logger.debug(f"[INSPECT] Unsupported selector {selector!r}: {e}")
            return []


async def capture_snapshot(page) -> DomSnapshot:
    """Snapshot a loaded Playwright page (DOM + innerText)."""
    html = await page.content()
    try:
        inner_text = await page.evaluate(_INNER_TEXT_JS)
    except Exception as e:
        logger.debug(f"[INSPECT] innerText unavailable, flattening HTML: {e}")
        inner_text = None
    return DomSnapshot(html, url=page.url, inner_text=inner_text)
