"""
Tests for aggregator.py: dedup, classification and recommendations.
"""

import pytest

from webrecon.aggregator import (
    CLOSING_TIP,
    DATA_SOURCE_DETAIL_LIMIT,
    MARKET_DETAIL_LIMIT,
    aggregate,
    build_recommendations,
    dedupe_endpoints,
    dedupe_records,
    fingerprint,
)
from webrecon.models import (
    ApiHintRecord,
    CrawlAccumulator,
    DataTableSummary,
    ImageHintRecord,
    KeywordContext,
    MarketMatch,
    MethodologyLink,
    ResponseEvent,
    VisitOutcome,
    VisitRecord,
)

URL = "https://app.example.com/"
DATE = "2026-01-01T00:00:00+00:00"


def run(acc, **kwargs):
    defaults = dict(
        platform="Example", start_url=URL, authenticated=False,
        has_credentials=False, analysis_date=DATE,
    )
    defaults.update(kwargs)
    return aggregate(acc, **defaults)


# ====================================================================
# Dedup
# ====================================================================

class TestDedup:

    def test_structural_duplicates_collapse(self):
        a = KeywordContext(source="usda", context="usda weekly", url=URL)
        b = KeywordContext(source="usda", context="usda weekly", url=URL)
        c = KeywordContext(source="usda", context="usda weekly", url=URL + "other")
        assert fingerprint(a) == fingerprint(b)
        assert dedupe_records([a, b, c]) == [a, c]

    def test_idempotent(self):
        records = [
            KeywordContext(source="fao", context="fao data"),
            ApiHintRecord(endpoint="apiUrl='x'"),
            KeywordContext(source="fao", context="fao data"),
            ImageHintRecord(source="fao", image_src="https://x/fao.png"),
        ]
        once = dedupe_records(records)
        assert dedupe_records(once) == once
        assert dedupe_records(records + records) == once

    def test_endpoint_first_capture_wins(self):
        first = ResponseEvent(url="https://app.example.com/api/x", status=200, timestamp="t1")
        second = ResponseEvent(url="https://app.example.com/api/x", status=200, timestamp="t2")
        other = ResponseEvent(url="https://app.example.com/api/y", status=200, timestamp="t3")
        assert dedupe_endpoints([first, second, other]) == [first, other]


# ====================================================================
# Report
# ====================================================================

def _accumulator():
    acc = CrawlAccumulator()
    acc.data_sources.extend([
        KeywordContext(source="usda", context="usda shrimp imports", url=URL),
        KeywordContext(source="usda", context="usda shrimp imports", url=URL),
        KeywordContext(source="reuters", context="reuters wire", url=URL),
        ApiHintRecord(endpoint="apiUrl = '/v1'", url=URL),
        ImageHintRecord(source="noaa", image_src="https://x/noaa.png", url=URL),
    ])
    acc.markets.extend([
        MarketMatch(market="ecuador", element="select", text="Ecuador", url=URL),
        MarketMatch(market="ecuador", element="select", text="Ecuador", url=URL),
        MarketMatch(market="india", element=".region", text="India", url=URL),
    ])
    acc.methodology.extend([
        MethodologyLink(href="https://app.example.com/about", text="About", url=URL),
        DataTableSummary(index=0, headers=("A", "B"), row_count=5, url=URL),
    ])
    acc.api_endpoints.extend([
        ResponseEvent(url="https://app.example.com/api/prices", status=200, timestamp="t1"),
        ResponseEvent(url="https://app.example.com/api/prices", status=200, timestamp="t2"),
    ])
    return acc


class TestAggregate:

    def test_report_shape(self):
        report = run(_accumulator())
        data = report.to_dict()
        assert data["analysisDate"] == DATE
        assert data["platform"] == "Example"
        assert data["url"] == URL
        assert data["authenticated"] is False
        assert data["dataSources"]["identified"] == ["usda", "reuters", "noaa"]
        assert data["dataSources"]["total"] == 4
        assert len(data["dataSources"]["apiEndpoints"]) == 1
        assert data["dataSources"]["apiEndpoints"][0]["timestamp"] == "t1"
        assert data["markets"]["identified"] == ["ecuador", "india"]
        assert data["markets"]["total"] == 2
        assert data["methodology"]["links"][0]["url"] == "https://app.example.com/about"
        assert data["methodology"]["dataTables"][0]["rowCount"] == 5
        assert data["summary"]["likelyDataProviders"] == data["dataSources"]["identified"]
        assert data["summary"]["dataTypes"] == ["api", "logo/image"]
        assert data["summary"]["updateFrequency"].startswith("Unknown")

    def test_providers_subset_of_raw_sources(self):
        acc = _accumulator()
        report = run(acc)
        raw = {getattr(r, "source", None) for r in acc.data_sources}
        assert set(report.providers) <= raw

    def test_domain_flag_from_contexts(self):
        report = run(_accumulator())
        assert report.has_shrimp_content is True
        assert report.shrimp_keywords_found == ("shrimp",)

    def test_domain_flag_ignores_non_context_records(self):
        acc = CrawlAccumulator()
        acc.data_sources.append(ImageHintRecord(source="fao", image_src="https://x/shrimp.png"))
        assert run(acc).has_shrimp_content is False

    def test_details_truncated(self):
        acc = CrawlAccumulator()
        acc.data_sources.extend(
            KeywordContext(source="api", context=f"api {i}") for i in range(80)
        )
        acc.markets.extend(
            MarketMatch(market="usa", element=".market", text=f"usa {i}") for i in range(40)
        )
        report = run(acc)
        assert report.data_sources_total == 80
        assert len(report.data_source_details) == DATA_SOURCE_DETAIL_LIMIT
        assert report.markets_total == 40
        assert len(report.market_details) == MARKET_DETAIL_LIMIT

    def test_failed_visits_contribute_nothing(self):
        acc = CrawlAccumulator()
        visit = VisitRecord(url=URL, outcome=VisitOutcome.FAILED)
        visit.data_sources.append(KeywordContext(source="usda", context="usda"))
        acc.merge(visit)
        report = run(acc)
        assert report.providers == ()
        assert report.data_sources_total == 0

    def test_empty_accumulator(self):
        report = run(CrawlAccumulator())
        assert report.providers == ()
        assert report.markets == ()
        assert report.api_endpoints == ()
        assert report.recommendations[-1] == CLOSING_TIP


# ====================================================================
# Recommendations
# ====================================================================

class TestRecommendations:

    def test_full_order(self):
        recs = build_recommendations(
            ["usda", "fao"], ["usa", "china", "japan", "india", "ecuador", "vietnam"],
            3, has_domain_content=False, has_credentials=False,
        )
        assert len(recs) == 6
        assert recs[0] == "Identified 2 potential data providers: usda, fao"
        assert recs[1] == "Platform covers 6 markets including: usa, china, japan, india, ecuador"
        assert recs[2] == "Found 3 API endpoints that may be fetching real-time data"
        assert "shrimp" in recs[3]
        assert "credentials" in recs[4]
        assert recs[5] == CLOSING_TIP

    def test_only_closing_tip(self):
        recs = build_recommendations([], [], 0, has_domain_content=True, has_credentials=True)
        assert recs == [CLOSING_TIP]

    @pytest.mark.parametrize("has_credentials,expected", [(True, 2), (False, 3)])
    def test_credential_hint(self, has_credentials, expected):
        recs = build_recommendations([], [], 0, False, has_credentials)
        assert len(recs) == expected
