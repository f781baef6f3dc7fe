"""
Page Extractor
==============
Classification passes run against a loaded page.

Each pass is a plain generator over a :class:`PageInspector` and yields
immutable records tagged with the page URL.  Passes never modify the page
and are independent of each other, so any of them can be unit-tested
against a static HTML snapshot.

Matching rules (kept deliberately simple, outputs depend on them):
    - case-insensitive *substring* matches, no tokenization
    - a keyword inside a longer word still counts ("india" in "indiana")
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence

from .inspector import PageInspector
from .keywords import DEFAULT_TAXONOMY, METHODOLOGY_MARKERS, KeywordTaxonomy
from .models import (
    ApiHintRecord,
    DataTableSummary,
    ExtractionRecord,
    ImageHintRecord,
    KeywordContext,
    MarketMatch,
    MethodologyLink,
    VisualizationCount,
)

logger = logging.getLogger(__name__)

# Characters of context captured on each side of a keyword
CONTEXT_WINDOW = 50

# Market text is truncated to this many characters
MARKET_TEXT_LIMIT = 100

# api/endpoint/feed/source ... url/uri/path ... "quoted string"
_API_HINT_RE = re.compile(
    r"""(?:api|endpoint|feed|source).*?(?:url|uri|path).*?['"](.*?)['"]""",
    re.IGNORECASE,
)

# Elements that usually hold market / region choices
MARKET_SELECTORS: Sequence[str] = (
    'select', 'dropdown', '.market', '.region', '.country',
    '[data-market]', '[data-region]', '[data-country]',
)

# Chart / graph-like elements
CHART_SELECTOR = 'canvas, svg, .chart, .graph, [class*="chart"], [id*="chart"]'


# ---------------------------------------------------------------------------
# Individual passes
# ---------------------------------------------------------------------------

def keyword_contexts(
    inspector: PageInspector, keywords: Iterable[str]
) -> Iterator[KeywordContext]:
    """One record per keyword *occurrence*, with its surrounding text."""
    text = inspector.extract_text().lower()
    for keyword in keywords:
        if keyword not in text:
            continue
        pattern = re.compile(
            rf".{{0,{CONTEXT_WINDOW}}}{re.escape(keyword)}.{{0,{CONTEXT_WINDOW}}}",
            re.IGNORECASE,
        )
        for match in pattern.finditer(text):
            yield KeywordContext(
                source=keyword,
                context=match.group(0).strip(),
                url=inspector.url,
            )


def api_hints(inspector: PageInspector) -> Iterator[ApiHintRecord]:
    """Endpoint-looking fragments inside inline ``<script>`` bodies."""
    for script in inspector.query_all('script'):
        content = script.text
        if not content:
            continue
        for match in _API_HINT_RE.finditer(content):
            yield ApiHintRecord(endpoint=match.group(0), url=inspector.url)


def image_hints(
    inspector: PageInspector, keywords: Iterable[str]
) -> Iterator[ImageHintRecord]:
    """One record per (image, keyword) where src, alt or title mentions the keyword."""
    keywords = list(keywords)
    for img in inspector.query_all('img'):
        src = inspector.resolve(img.attribute('src'))
        fields = (
            src.lower(),
            (img.attribute('alt') or '').lower(),
            (img.attribute('title') or '').lower(),
        )
        for keyword in keywords:
            if any(keyword in value for value in fields):
                yield ImageHintRecord(
                    source=keyword, image_src=src, url=inspector.url
                )


def market_matches(
    inspector: PageInspector, keywords: Iterable[str]
) -> Iterator[MarketMatch]:
    """Market keywords found inside market/region/country-like elements."""
    keywords = list(keywords)
    for selector in MARKET_SELECTORS:
        for el in inspector.query_all(selector):
            text = el.text or el.attribute('value') or ''
            lowered = text.lower()
            for keyword in keywords:
                if keyword in lowered:
                    yield MarketMatch(
                        market=keyword,
                        element=selector,
                        text=text[:MARKET_TEXT_LIMIT],
                        url=inspector.url,
                    )


def visualization_count(inspector: PageInspector) -> Iterator[VisualizationCount]:
    """At most one record: the number of chart/graph elements, if any."""
    count = len(inspector.query_all(CHART_SELECTOR))
    if count > 0:
        yield VisualizationCount(count=count, url=inspector.url)


def methodology_links(inspector: PageInspector) -> Iterator[MethodologyLink]:
    """Anchors whose text or target mentions methodology / about pages."""
    for anchor in inspector.query_all('a'):
        href = inspector.resolve(anchor.attribute('href'))
        text = anchor.text
        haystacks = (text.lower(), href.lower())
        if any(marker in h for marker in METHODOLOGY_MARKERS for h in haystacks):
            yield MethodologyLink(href=href, text=text, url=inspector.url)


def data_tables(inspector: PageInspector) -> Iterator[DataTableSummary]:
    """Header texts and row count of every table with any structure."""
    for index, table in enumerate(inspector.query_all('table')):
        headers = tuple(th.text.strip() for th in table.query_all('th'))
        rows = len(table.query_all('tbody tr')) or len(table.query_all('tr'))
        if headers or rows > 0:
            yield DataTableSummary(
                index=index, headers=headers, row_count=rows, url=inspector.url
            )


def domain_keyword_hits(
    inspector: PageInspector, keywords: Iterable[str]
) -> List[str]:
    """Domain keywords present anywhere in the page text."""
    text = inspector.extract_text().lower()
    return [k for k in keywords if k in text]


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

@dataclass
class ExtractionBatch:
    """Records produced by one run of :meth:`PageExtractor.extract`."""
    data_sources: List[ExtractionRecord] = field(default_factory=list)
    markets: List[ExtractionRecord] = field(default_factory=list)
    methodology: List[ExtractionRecord] = field(default_factory=list)
    domain_hits: List[str] = field(default_factory=list)


class PageExtractor:
    """Runs the toggled extraction passes for one page."""

    def __init__(self, taxonomy: KeywordTaxonomy = DEFAULT_TAXONOMY):
        self.taxonomy = taxonomy

    def extract(
        self,
        inspector: PageInspector,
        *,
        data_sources: bool = True,
        markets: bool = True,
        methodology: bool = True,
    ) -> ExtractionBatch:
        batch = ExtractionBatch()
        url = inspector.url

        if data_sources:
            batch.data_sources.extend(
                keyword_contexts(inspector, self.taxonomy.data_source)
            )
            batch.data_sources.extend(api_hints(inspector))
            batch.data_sources.extend(
                image_hints(inspector, self.taxonomy.data_source)
            )
            if batch.data_sources:
                logger.info(
                    f"[EXTRACT] {len(batch.data_sources)} data source references "
                    f"on {url[:70]}"
                )

        if markets:
            batch.markets.extend(market_matches(inspector, self.taxonomy.market))
            batch.markets.extend(visualization_count(inspector))
            if batch.markets:
                logger.info(
                    f"[EXTRACT] {len(batch.markets)} market references on {url[:70]}"
                )

        if methodology:
            batch.methodology.extend(methodology_links(inspector))

        tables = list(data_tables(inspector))
        if tables:
            logger.info(f"[EXTRACT] {len(tables)} data tables on {url[:70]}")
            batch.methodology.extend(tables)

        batch.domain_hits = domain_keyword_hits(inspector, self.taxonomy.domain)
        if batch.domain_hits:
            logger.info(
                f"[EXTRACT] Domain content on {url[:70]}: "
                f"{', '.join(batch.domain_hits)}"
            )

        return batch
