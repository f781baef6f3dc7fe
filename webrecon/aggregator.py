"""
Result Aggregator
=================
Turns everything a crawl accumulated into one :class:`AggregateReport`.

Pure: no I/O, no driver access.  Runs exactly once, after the frontier
drains.

Dedup rules:
    - data-source and market records: full structural equality (the
      record's canonical JSON is its fingerprint), first occurrence kept
    - API endpoints: by URL only, first captured response kept
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, TypeVar

from .keywords import DEFAULT_TAXONOMY, KeywordTaxonomy
from .models import (
    AggregateReport,
    CrawlAccumulator,
    DataTableSummary,
    ExtractionRecord,
    KeywordContext,
    MethodologyLink,
    ResponseEvent,
)

logger = logging.getLogger(__name__)

# Detail lists are truncated for readability
DATA_SOURCE_DETAIL_LIMIT = 50
MARKET_DETAIL_LIMIT = 30
RECOMMENDED_MARKETS_SHOWN = 5

UPDATE_FREQUENCY_UNKNOWN = "Unknown - requires authenticated access"

CLOSING_TIP = (
    "To get complete data source information, look for: Settings > Data Sources, "
    "About > Methodology, or API Documentation sections when logged in."
)

R = TypeVar("R")


def fingerprint(record: ExtractionRecord) -> str:
    """Full structural value of a record, usable as a set key."""
    return json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False)


def dedupe_records(records: Iterable[R]) -> List[R]:
    """Drop structural duplicates, preserving first-seen order."""
    seen = set()
    unique: List[R] = []
    for record in records:
        key = fingerprint(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def dedupe_endpoints(events: Iterable[ResponseEvent]) -> List[ResponseEvent]:
    """One response per URL: the first one captured."""
    seen = set()
    unique: List[ResponseEvent] = []
    for event in events:
        if event.url in seen:
            continue
        seen.add(event.url)
        unique.append(event)
    return unique


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


def identify_providers(records: Sequence[ExtractionRecord]) -> List[str]:
    return _distinct(getattr(r, 'source', None) for r in records)


def identify_markets(records: Sequence[ExtractionRecord]) -> List[str]:
    return _distinct(getattr(r, 'market', None) for r in records)


def domain_keywords_in_contexts(
    records: Sequence[ExtractionRecord], keywords: Iterable[str]
) -> List[str]:
    contexts = [r.context for r in records if isinstance(r, KeywordContext)]
    return [k for k in keywords if any(k in c for c in contexts)]


def build_recommendations(
    providers: Sequence[str],
    markets: Sequence[str],
    endpoint_count: int,
    has_domain_content: bool,
    has_credentials: bool,
) -> List[str]:
    """Heuristic hints, in a fixed order, closing tip always last."""
    recs: List[str] = []
    if providers:
        recs.append(
            f"Identified {len(providers)} potential data providers: "
            f"{', '.join(providers)}"
        )
    if markets:
        recs.append(
            f"Platform covers {len(markets)} markets including: "
            f"{', '.join(markets[:RECOMMENDED_MARKETS_SHOWN])}"
        )
    if endpoint_count > 0:
        recs.append(
            f"Found {endpoint_count} API endpoints that may be fetching real-time data"
        )
    if not has_domain_content:
        recs.append(
            "Limited shrimp-specific content found. May need authenticated access "
            "to view shrimp forecasting features."
        )
    if not has_credentials:
        recs.append(
            "Analysis was limited to public areas. Provide credentials for "
            "comprehensive data source analysis."
        )
    recs.append(CLOSING_TIP)
    return recs


def aggregate(
    accumulator: CrawlAccumulator,
    *,
    platform: str,
    start_url: str,
    authenticated: bool,
    has_credentials: bool,
    taxonomy: KeywordTaxonomy = DEFAULT_TAXONOMY,
    analysis_date: Optional[str] = None,
) -> AggregateReport:
    """Build the final report from a crawl's accumulated records."""
    data_sources = dedupe_records(accumulator.data_sources)
    markets_found = dedupe_records(accumulator.markets)
    endpoints = dedupe_endpoints(accumulator.api_endpoints)

    providers = identify_providers(data_sources)
    markets = identify_markets(markets_found)
    domain_found = domain_keywords_in_contexts(data_sources, taxonomy.domain)
    data_types = _distinct(
        r.to_dict().get('type') for r in data_sources
        if not isinstance(r, KeywordContext)
    )

    links = [r for r in accumulator.methodology if isinstance(r, MethodologyLink)]
    tables = [r for r in accumulator.methodology if isinstance(r, DataTableSummary)]

    recommendations = build_recommendations(
        providers, markets, len(endpoints), bool(domain_found), has_credentials,
    )

    logger.info(
        f"[AGGREGATE] data_sources={len(accumulator.data_sources)}→{len(data_sources)} "
        f"markets={len(accumulator.markets)}→{len(markets_found)} "
        f"endpoints={len(accumulator.api_endpoints)}→{len(endpoints)} "
        f"providers={len(providers)}"
    )

    return AggregateReport(
        analysis_date=analysis_date or datetime.now(timezone.utc).isoformat(),
        platform=platform,
        url=start_url,
        authenticated=authenticated,
        providers=tuple(providers),
        data_sources_total=len(data_sources),
        data_source_details=tuple(
            r.to_dict() for r in data_sources[:DATA_SOURCE_DETAIL_LIMIT]
        ),
        api_endpoints=tuple(e.to_dict() for e in endpoints),
        markets=tuple(markets),
        markets_total=len(markets_found),
        market_details=tuple(r.to_dict() for r in markets_found[:MARKET_DETAIL_LIMIT]),
        methodology_links=tuple(r.to_dict() for r in links),
        data_tables=tuple(r.to_dict() for r in tables),
        has_shrimp_content=bool(domain_found),
        shrimp_keywords_found=tuple(domain_found),
        data_types=tuple(data_types),
        update_frequency=UPDATE_FREQUENCY_UNKNOWN,
        recommendations=tuple(recommendations),
    )
