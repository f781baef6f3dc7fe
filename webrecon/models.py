"""
Data Model
==========
Value records produced during a crawl and the terminal report.

Every record carries ``url`` (the page that produced it) so findings can
always be traced back to their source page.  Records are frozen: the
aggregator fingerprints them by full structural value (``to_dict()``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Extraction records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeywordContext:
    """A data-source keyword with up to 50 chars of text on either side."""
    source: str
    context: str
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'source': self.source, 'context': self.context,
            'found': True, 'url': self.url,
        }


@dataclass(frozen=True)
class ApiHintRecord:
    """Raw inline-script fragment that looks like an endpoint definition."""
    endpoint: str
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'type': 'api', 'endpoint': self.endpoint,
            'found': True, 'url': self.url,
        }


@dataclass(frozen=True)
class ImageHintRecord:
    """An image whose src/alt/title mentions a data-source keyword."""
    source: str
    image_src: str
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'type': 'logo/image', 'source': self.source,
            'imageSrc': self.image_src, 'found': True, 'url': self.url,
        }


@dataclass(frozen=True)
class MarketMatch:
    """A market keyword found inside a market/region-like element."""
    market: str
    element: str
    text: str
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'market': self.market, 'element': self.element,
            'text': self.text, 'found': True, 'url': self.url,
        }


@dataclass(frozen=True)
class VisualizationCount:
    """Number of chart/graph-like elements on a page."""
    count: int
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'type': 'visualization', 'count': self.count,
            'message': f"Found {self.count} chart/graph elements",
            'url': self.url,
        }


@dataclass(frozen=True)
class MethodologyLink:
    """Anchor pointing at a methodology / about / data-source page.

    ``href`` is the link target, ``url`` the page the anchor was found on.
    """
    href: str
    text: str
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'url': self.href, 'text': self.text,
            'type': 'methodology_link', 'pageUrl': self.url,
        }


@dataclass(frozen=True)
class DataTableSummary:
    """Structural summary of one ``<table>``."""
    index: int
    headers: Tuple[str, ...]
    row_count: int
    url: str = ""

    def to_dict(self) -> dict:
        return {
            'index': self.index, 'headers': list(self.headers),
            'rowCount': self.row_count, 'url': self.url,
            'type': 'data_table',
        }


ExtractionRecord = Union[
    KeywordContext, ApiHintRecord, ImageHintRecord, MarketMatch,
    VisualizationCount, MethodologyLink, DataTableSummary,
]


# ---------------------------------------------------------------------------
# Network events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RequestEvent:
    url: str
    method: str
    resource_type: str
    timestamp: str
    page_url: str = ""

    def to_dict(self) -> dict:
        return {
            'url': self.url, 'method': self.method,
            'type': self.resource_type, 'timestamp': self.timestamp,
            'pageUrl': self.page_url,
        }


@dataclass(frozen=True)
class ResponseEvent:
    url: str
    status: int
    timestamp: str
    page_url: str = ""

    def to_dict(self) -> dict:
        return {
            'url': self.url, 'status': self.status,
            'timestamp': self.timestamp, 'pageUrl': self.page_url,
        }


@dataclass(frozen=True)
class DiscoveredLink:
    url: str
    text: str
    page_url: str = ""


# ---------------------------------------------------------------------------
# Per-visit and per-crawl containers
# ---------------------------------------------------------------------------

class VisitOutcome(str, Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass
class VisitRecord:
    """Everything one page visit produced, merged only if the visit succeeds."""
    url: str
    outcome: VisitOutcome = VisitOutcome.OK
    data_sources: List[ExtractionRecord] = field(default_factory=list)
    markets: List[ExtractionRecord] = field(default_factory=list)
    methodology: List[ExtractionRecord] = field(default_factory=list)
    requests: List[RequestEvent] = field(default_factory=list)
    responses: List[ResponseEvent] = field(default_factory=list)
    links: List[DiscoveredLink] = field(default_factory=list)
    domain_hits: List[str] = field(default_factory=list)
    error: str = ""


@dataclass
class CrawlAccumulator:
    """Crawl-wide collections fed by successful page visits."""
    data_sources: List[ExtractionRecord] = field(default_factory=list)
    markets: List[ExtractionRecord] = field(default_factory=list)
    methodology: List[ExtractionRecord] = field(default_factory=list)
    api_endpoints: List[ResponseEvent] = field(default_factory=list)
    network_requests: List[RequestEvent] = field(default_factory=list)

    def merge(self, visit: VisitRecord) -> None:
        """Merge a finished visit.  Failed visits contribute nothing."""
        if visit.outcome is not VisitOutcome.OK:
            return
        self.data_sources.extend(visit.data_sources)
        self.markets.extend(visit.markets)
        self.methodology.extend(visit.methodology)
        self.api_endpoints.extend(visit.responses)
        self.network_requests.extend(visit.requests)


# ---------------------------------------------------------------------------
# Terminal report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AggregateReport:
    """Deduplicated findings of one crawl run."""
    analysis_date: str
    platform: str
    url: str
    authenticated: bool
    providers: Tuple[str, ...] = ()
    data_sources_total: int = 0
    data_source_details: Tuple[dict, ...] = ()
    api_endpoints: Tuple[dict, ...] = ()
    markets: Tuple[str, ...] = ()
    markets_total: int = 0
    market_details: Tuple[dict, ...] = ()
    methodology_links: Tuple[dict, ...] = ()
    data_tables: Tuple[dict, ...] = ()
    has_shrimp_content: bool = False
    shrimp_keywords_found: Tuple[str, ...] = ()
    data_types: Tuple[str, ...] = ()
    update_frequency: str = "Unknown - requires authenticated access"
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'analysisDate': self.analysis_date,
            'platform': self.platform,
            'url': self.url,
            'authenticated': self.authenticated,
            'dataSources': {
                'identified': list(self.providers),
                'total': self.data_sources_total,
                'details': [dict(d) for d in self.data_source_details],
                'apiEndpoints': [dict(a) for a in self.api_endpoints],
            },
            'markets': {
                'identified': list(self.markets),
                'total': self.markets_total,
                'details': [dict(m) for m in self.market_details],
            },
            'methodology': {
                'links': [dict(l) for l in self.methodology_links],
                'dataTables': [dict(t) for t in self.data_tables],
            },
            'shrimpSpecific': {
                'hasShrimpContent': self.has_shrimp_content,
                'shrimpKeywordsFound': list(self.shrimp_keywords_found),
            },
            'summary': {
                'likelyDataProviders': list(self.providers),
                'marketsCovered': list(self.markets),
                'dataTypes': list(self.data_types),
                'updateFrequency': self.update_frequency,
            },
            'recommendations': list(self.recommendations),
        }


@dataclass
class CrawlResult:
    """Outcome of :meth:`CrawlQueueManager.run`."""
    report: Optional[AggregateReport] = None
    accumulator: CrawlAccumulator = field(default_factory=CrawlAccumulator)
    authenticated: bool = False
    visited: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    errors: List[Dict[str, Any]] = field(default_factory=list)
