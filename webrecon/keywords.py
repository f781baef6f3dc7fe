"""
Keyword Taxonomy
================
Static keyword sets used by the extraction passes and link discovery.

All matching against these lists is a case-insensitive *substring* test:
no stemming, no word boundaries.  ``"india"`` matches inside ``"indiana"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

# ---------------------------------------------------------------------------
# Default keyword banks
# ---------------------------------------------------------------------------

# Domain terms (shrimp / aquaculture)
DOMAIN_KEYWORDS: Tuple[str, ...] = (
    'shrimp', 'prawn', 'vannamei', 'whiteleg', 'black tiger', 'monodon',
    'aquaculture', 'seafood', 'marine', 'farming', 'pond', 'harvest',
)

# Data-source / provider terms
DATA_SOURCE_KEYWORDS: Tuple[str, ...] = (
    'bloomberg', 'reuters', 'usda', 'fao', 'noaa', 'globefish',
    'undercurrent', 'seafood source', 'infofish', 'vietnam customs',
    'india export', 'ecuador export', 'thailand', 'indonesia',
    'weather', 'satellite', 'commodity', 'futures', 'exchange rate',
    'api', 'data provider', 'source', 'feed', 'integration',
)

# Market / region terms
MARKET_KEYWORDS: Tuple[str, ...] = (
    'usa', 'europe', 'china', 'japan', 'vietnam', 'india', 'ecuador',
    'thailand', 'indonesia', 'wholesale', 'retail', 'import', 'export',
    'price', 'forecast', 'prediction', 'trend', 'market', 'analysis',
)

# Link text that makes a navigation link worth following
RELEVANCE_KEYWORDS: Tuple[str, ...] = (
    'data', 'source', 'market', 'price', 'forecast',
    'shrimp', 'seafood', 'analysis', 'report', 'insight',
)

# Anchor text / href markers for methodology and about pages
METHODOLOGY_MARKERS: Tuple[str, ...] = (
    'methodology', 'about', 'how it works', 'data source',
)


@dataclass(frozen=True)
class KeywordTaxonomy:
    """The three keyword sets consulted during extraction."""
    domain: Tuple[str, ...] = DOMAIN_KEYWORDS
    data_source: Tuple[str, ...] = DATA_SOURCE_KEYWORDS
    market: Tuple[str, ...] = MARKET_KEYWORDS
    relevance: Tuple[str, ...] = field(default=RELEVANCE_KEYWORDS)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "KeywordTaxonomy":
        """Build a taxonomy from an input mapping, keeping defaults for missing keys.

        Accepted keys: ``domainKeywords``, ``dataSourceKeywords``,
        ``marketKeywords``, ``relevanceKeywords``.  Values are lower-cased.
        """
        if not data:
            return cls()

        def _pick(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
            values = data.get(key)
            if not values:
                return default
            return tuple(str(v).lower() for v in values if str(v).strip())

        return cls(
            domain=_pick('domainKeywords', DOMAIN_KEYWORDS),
            data_source=_pick('dataSourceKeywords', DATA_SOURCE_KEYWORDS),
            market=_pick('marketKeywords', MARKET_KEYWORDS),
            relevance=_pick('relevanceKeywords', RELEVANCE_KEYWORDS),
        )


DEFAULT_TAXONOMY = KeywordTaxonomy()
