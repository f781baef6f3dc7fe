"""
Run Configuration
=================
Single source of truth for crawl defaults.

The config is built once (from CLI flags or an input JSON object) and is
read-only for the rest of the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .auth.authenticator import Credentials
from .keywords import DEFAULT_TAXONOMY, KeywordTaxonomy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults, the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "start_url": "https://app.datapred.com/",
    "login_url": "https://app.datapred.com/login",
    "platform": "DataPred",
    "max_pages": 20,
    "wait_for_timeout_ms": 5000,        # settle delay after every navigation
    "screenshot_enabled": True,
    "extract_data_sources": True,
    "extract_markets": True,
    "extract_methodology": True,
    "headless": True,
    "navigation_timeout_ms": 60_000,    # bound on every goto / wait
    "login_form_timeout_ms": 10_000,
    "post_login_wait_ms": 3000,
    "viewport_width": 1920,
    "viewport_height": 1080,
    "static_fallback": False,
    "storage_dir": "./storage",
    "user_agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
}

# camelCase input keys → field names
_INPUT_KEYS = {
    "startUrl": "start_url",
    "loginUrl": "login_url",
    "username": "username",
    "password": "password",
    "maxPages": "max_pages",
    "waitForTimeout": "wait_for_timeout_ms",
    "screenshotEnabled": "screenshot_enabled",
    "extractDataSources": "extract_data_sources",
    "extractMarkets": "extract_markets",
    "extractMethodology": "extract_methodology",
    "platform": "platform",
    "headless": "headless",
    "navigationTimeout": "navigation_timeout_ms",
    "successSelector": "success_selector",
    "staticFallback": "static_fallback",
}


@dataclass(frozen=True)
class CrawlConfig:
    """
    Immutable crawl configuration.

    Populate via:
      - ``CrawlConfig()``                       → all defaults
      - ``CrawlConfig(max_pages=5)``             → override one value
      - ``CrawlConfig.from_input({...})``        → camelCase input object
      - ``CrawlConfig.from_cli_args(ns)``        → argparse Namespace
    """

    # ---- Target ----
    start_url: str = _DEFAULTS["start_url"]
    login_url: str = _DEFAULTS["login_url"]
    platform: str = _DEFAULTS["platform"]

    # ---- Authentication (empty ⇒ anonymous) ----
    username: str = ""
    password: str = field(default="", repr=False)
    success_selector: Optional[str] = None

    # ---- Crawl limits ----
    max_pages: int = _DEFAULTS["max_pages"]
    wait_for_timeout_ms: int = _DEFAULTS["wait_for_timeout_ms"]
    navigation_timeout_ms: int = _DEFAULTS["navigation_timeout_ms"]
    login_form_timeout_ms: int = _DEFAULTS["login_form_timeout_ms"]
    post_login_wait_ms: int = _DEFAULTS["post_login_wait_ms"]

    # ---- Feature toggles ----
    screenshot_enabled: bool = _DEFAULTS["screenshot_enabled"]
    extract_data_sources: bool = _DEFAULTS["extract_data_sources"]
    extract_markets: bool = _DEFAULTS["extract_markets"]
    extract_methodology: bool = _DEFAULTS["extract_methodology"]
    static_fallback: bool = _DEFAULTS["static_fallback"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    viewport_width: int = _DEFAULTS["viewport_width"]
    viewport_height: int = _DEFAULTS["viewport_height"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Output ----
    storage_dir: str = _DEFAULTS["storage_dir"]
    output_docx: Optional[str] = None

    # ---- Keywords ----
    taxonomy: KeywordTaxonomy = DEFAULT_TAXONOMY

    def __post_init__(self):
        if not isinstance(self.max_pages, int) or self.max_pages < 1:
            raise ValueError(f"max_pages must be a positive integer, got {self.max_pages!r}")
        if self.wait_for_timeout_ms < 0:
            raise ValueError("wait_for_timeout_ms must be >= 0")
        if not self.start_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid start URL: {self.start_url}")

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password)

    @property
    def has_credentials(self) -> bool:
        return self.credentials.is_complete

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_input(cls, data: Optional[Dict[str, Any]], **overrides) -> "CrawlConfig":
        """Build config from a camelCase input object.

        Unknown keys are ignored.  Missing credentials are resolved from
        ``RECON_USERNAME`` / ``RECON_PASSWORD``.
        """
        data = data or {}
        kwargs: Dict[str, Any] = {}
        for key, name in _INPUT_KEYS.items():
            if key in data and data[key] is not None:
                kwargs[name] = data[key]
        kwargs["taxonomy"] = KeywordTaxonomy.from_dict(data.get("keywords"))
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        for name in ("max_pages", "wait_for_timeout_ms", "navigation_timeout_ms"):
            if name in kwargs:
                kwargs[name] = int(kwargs[name])

        creds = Credentials.resolve(kwargs.get("username"), kwargs.get("password"))
        kwargs["username"] = creds.username
        kwargs["password"] = creds.password
        return cls(**kwargs)

    @classmethod
    def from_cli_args(cls, args, data: Optional[Dict[str, Any]] = None) -> "CrawlConfig":
        """Build config from an argparse Namespace (``__main__.py``).

        Flags take priority over the optional input object *data*.
        """
        overrides = dict(
            start_url=getattr(args, "url", None),
            login_url=getattr(args, "login_url", None),
            username=getattr(args, "username", None),
            password=getattr(args, "password", None),
            max_pages=getattr(args, "pages", None),
            wait_for_timeout_ms=getattr(args, "wait", None),
            storage_dir=getattr(args, "storage_dir", None),
            output_docx=getattr(args, "output_docx", None),
            success_selector=getattr(args, "success_selector", None),
        )
        if getattr(args, "no_screenshots", False):
            overrides["screenshot_enabled"] = False
        if getattr(args, "no_data_sources", False):
            overrides["extract_data_sources"] = False
        if getattr(args, "no_markets", False):
            overrides["extract_markets"] = False
        if getattr(args, "no_methodology", False):
            overrides["extract_methodology"] = False
        if getattr(args, "headed", False):
            overrides["headless"] = False
        if getattr(args, "static_fallback", False):
            overrides["static_fallback"] = True

        cfg = cls.from_input(data, **overrides)
        if cfg.start_url != _DEFAULTS["start_url"] and "platform" not in (data or {}):
            host = urlparse(cfg.start_url).netloc
            cfg = replace(cfg, platform=host or cfg.platform)
        return cfg

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger (never the password)."""
        logger.info("=" * 60)
        logger.info("RECON RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Platform:         {self.platform}")
        logger.info(f"  Start URL:        {self.start_url}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Settle Delay:     {self.wait_for_timeout_ms}ms")
        logger.info(f"  Nav Timeout:      {self.navigation_timeout_ms}ms")
        logger.info(f"  Screenshots:      {self.screenshot_enabled}")
        logger.info(
            f"  Extract:          data_sources={self.extract_data_sources} "
            f"markets={self.extract_markets} methodology={self.extract_methodology}"
        )
        if self.has_credentials:
            logger.info(f"  Auth:             Enabled (login_url={self.login_url})")
        else:
            logger.info("  Auth:             Anonymous")
        if self.static_fallback:
            logger.info("  Static Fallback:  Enabled")
        logger.info("=" * 60)
