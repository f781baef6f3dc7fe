"""
Crawl Queue Manager
===================
Bounded, single-session crawl loop.

Architecture:
- One browser, one BrowserContext (shared cookies / login session)
- FIFO frontier with URL uniqueness (normalized URLs)
- Exactly one in-flight page visit: two concurrent sessions could
  diverge or repeat the login
- Page budget: visits never exceed ``max_pages``; links are only enqueued
  while ``visits + frontier < max_pages``

Per visit:
    authenticate (first visit, credentials present)
    → navigate (re-navigate after login) → settle delay
    → optional screenshot → snapshot → extraction passes
    → drain network events → link discovery → enqueue relevant links

A failing visit is logged and recorded, its partial records discarded, and
the loop moves on.  Only a dead browser (``DriverFatalFailure``) ends the run
early.

States: IDLE → RUNNING → DRAINED (frontier empty / budget spent)
                       → STOPPED (``stop()`` called)
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional, Set

import requests
from playwright.async_api import BrowserContext, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .aggregator import aggregate
from .auth.authenticator import AuthOutcome, Authenticator, is_fatal_driver_error
from .errors import DriverFatalFailure, PageVisitFailure
from .extractor import PageExtractor
from .inspector import DomSnapshot, PageInspector, capture_snapshot
from .links import discover_links, relevant_links
from .models import (
    CrawlAccumulator,
    CrawlResult,
    DiscoveredLink,
    VisitOutcome,
    VisitRecord,
)
from .network import NetworkObserver
from .run_config import CrawlConfig
from .storage import REPORT_KEY, BlobStore, RecordSink
from .utils import ProgressTracker, URLNormalizer

logger = logging.getLogger(__name__)

_BROWSER_ARGS = ['--no-sandbox', '--disable-setuid-sandbox', '--disable-dev-shm-usage']


class CrawlState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINED = "drained"
    STOPPED = "stopped"


class CrawlQueueManager:
    """
    Owns the frontier and runs the per-page pipeline.

    Usage::

        config = CrawlConfig(start_url="https://app.example.com/", max_pages=10)
        manager = CrawlQueueManager(config, record_sink=sink, blob_store=store)
        result = await manager.crawl()          # launches Chromium

        # Or against an existing BrowserContext:
        result = await manager.run(context)
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        record_sink: Optional[RecordSink] = None,
        blob_store: Optional[BlobStore] = None,
        extractor: Optional[PageExtractor] = None,
        authenticator: Optional[Authenticator] = None,
    ):
        self.config = config
        self.record_sink = record_sink
        self.blob_store = blob_store
        self.extractor = extractor or PageExtractor(config.taxonomy)
        self.authenticator = authenticator or Authenticator(
            form_timeout_ms=config.login_form_timeout_ms,
            navigation_timeout_ms=config.navigation_timeout_ms,
            post_login_wait_ms=config.post_login_wait_ms,
            success_selector=config.success_selector,
        )
        self.url_normalizer = URLNormalizer()

        # State (reset per run)
        self.state = CrawlState.IDLE
        self._frontier: Deque[str] = deque()
        self._seen: Set[str] = set()
        self._visited: List[str] = []
        self._errors: List[dict] = []
        self._accumulator = CrawlAccumulator()
        self._auth_outcome: Optional[AuthOutcome] = None
        self._progress = ProgressTracker()
        self._stop_requested = False

        self._progress_callback: Optional[Callable] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_progress_callback(self, callback: Callable) -> None:
        """Set callback: callback(pages_visited, current_url, stats_dict)"""
        self._progress_callback = callback

    def stop(self) -> None:
        """Request a graceful stop after the current visit."""
        self._stop_requested = True
        logger.info("Stop requested")

    @property
    def visits(self) -> int:
        return len(self._visited)

    @property
    def authenticated(self) -> bool:
        return self._auth_outcome is AuthOutcome.AUTHENTICATED

    async def crawl(self) -> CrawlResult:
        """Launch Chromium, run the crawl, always close the browser."""
        playwright = await async_playwright().start()
        browser = None
        try:
            try:
                browser = await playwright.chromium.launch(
                    headless=self.config.headless, args=_BROWSER_ARGS,
                )
                context = await browser.new_context(
                    user_agent=self.config.user_agent,
                    viewport={
                        'width': self.config.viewport_width,
                        'height': self.config.viewport_height,
                    },
                )
            except Exception as e:
                raise DriverFatalFailure(f"Browser launch failed: {e}") from e
            logger.info(f"Playwright browser initialized (headless={self.config.headless})")
            return await self.run(context)
        finally:
            if browser:
                try:
                    await browser.close()
                except Exception as e:
                    logger.debug(f"Error closing browser: {e}")
            await playwright.stop()

    async def run(self, context: BrowserContext) -> CrawlResult:
        """Crawl from ``config.start_url`` using *context*, then aggregate."""
        self._reset()
        cfg = self.config

        logger.info("=" * 65)
        logger.info("RECON CRAWL STARTED")
        logger.info(f"Start URL: {cfg.start_url}")
        logger.info(f"Limits: max_pages={cfg.max_pages}, settle={cfg.wait_for_timeout_ms}ms")
        logger.info("=" * 65)

        if not self._schedule(cfg.start_url):
            logger.warning(f"[FRONTIER] Start URL is not a crawlable page: {cfg.start_url}")
        self.state = CrawlState.RUNNING
        self._progress.start()

        try:
            while self._frontier and not self._stop_requested:
                if self.visits >= cfg.max_pages:
                    logger.info(f"Reached max pages limit: {cfg.max_pages}")
                    break

                url = self._frontier.popleft()
                logger.info(
                    f"[VISIT {self.visits + 1}/{cfg.max_pages}] "
                    f"Queue:{len(self._frontier)} | {url[:80]}"
                )
                visit = await self._visit(context, url, first=not self._visited)
                self._visited.append(url)
                self._record(visit)
        except DriverFatalFailure as e:
            self.state = CrawlState.STOPPED
            logger.error(f"Crawl aborted after {self.visits} pages: {e}")
            raise
        else:
            self.state = CrawlState.STOPPED if self._stop_requested else CrawlState.DRAINED
        finally:
            self._progress.finish()

        stop_reason = self._stop_reason()
        logger.info(f"Crawl finished ({self.state.value}): {stop_reason}")

        report = aggregate(
            self._accumulator,
            platform=cfg.platform,
            start_url=cfg.start_url,
            authenticated=self.authenticated,
            has_credentials=cfg.has_credentials,
            taxonomy=cfg.taxonomy,
        )
        self._publish(report)

        stats = self._progress.get_stats()
        stats.update({
            'stop_reason': stop_reason,
            'state': self.state.value,
            'auth_outcome': self._auth_outcome.value if self._auth_outcome else None,
            'network_requests': len(self._accumulator.network_requests),
        })
        return CrawlResult(
            report=report,
            accumulator=self._accumulator,
            authenticated=self.authenticated,
            visited=list(self._visited),
            stats=stats,
            errors=list(self._errors),
        )

    # ------------------------------------------------------------------
    # Frontier
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self.state = CrawlState.IDLE
        self._frontier.clear()
        self._seen.clear()
        self._visited.clear()
        self._errors.clear()
        self._accumulator = CrawlAccumulator()
        self._auth_outcome = None
        self._progress = ProgressTracker()
        self._stop_requested = False

    def _schedule(self, url: str) -> bool:
        key = self.url_normalizer.normalize(url)
        if not key or key in self._seen:
            return False
        self._seen.add(key)
        self._frontier.append(url)
        return True

    def _remaining_budget(self) -> int:
        return self.config.max_pages - self.visits - len(self._frontier)

    def _enqueue(self, links: List[DiscoveredLink]) -> int:
        """Enqueue relevant links while page budget remains."""
        enqueued = 0
        for link in relevant_links(links, self.config.taxonomy.relevance):
            if self._remaining_budget() <= 0:
                logger.debug("[FRONTIER] Page budget reached — not enqueueing more")
                break
            if self._schedule(link.url):
                enqueued += 1
        return enqueued

    def _stop_reason(self) -> str:
        if self._stop_requested:
            return "User requested stop"
        if self.visits >= self.config.max_pages:
            return f"MAX_PAGES limit reached ({self.config.max_pages})"
        return f"Queue exhausted after {self.visits} pages"

    # ------------------------------------------------------------------
    # Page visit
    # ------------------------------------------------------------------

    async def _visit(self, context: BrowserContext, url: str, first: bool) -> VisitRecord:
        """One full navigate → extract → observe → discover cycle."""
        cfg = self.config
        visit = VisitRecord(url=url)
        page: Optional[Page] = None
        observer = NetworkObserver(page_url=url)
        try:
            page = await context.new_page()
            observer.attach(page)

            if first and cfg.has_credentials:
                self._auth_outcome = await self.authenticator.authenticate(
                    page, cfg.login_url, cfg.credentials
                )

            await self._navigate(page, url)

            # Unconditional settle delay for client-side rendering
            if cfg.wait_for_timeout_ms > 0:
                await asyncio.sleep(cfg.wait_for_timeout_ms / 1000)

            if cfg.screenshot_enabled and self.blob_store is not None:
                await self._capture_screenshot(page)

            snapshot = await capture_snapshot(page)
            self._inspect(visit, snapshot)

        except DriverFatalFailure:
            raise
        except Exception as e:
            if is_fatal_driver_error(e):
                raise DriverFatalFailure(f"Browser died while visiting {url}: {e}") from e
            failure = e if isinstance(e, PageVisitFailure) else PageVisitFailure(url, str(e))
            if cfg.static_fallback:
                await self._visit_static(visit, failure)
            else:
                self._fail(visit, failure)
        finally:
            if page is not None:
                observer.detach(page)
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Error closing page: {e}")

        requests_seen, responses = observer.drain()
        if visit.outcome is VisitOutcome.OK:
            visit.requests = requests_seen
            visit.responses = responses
        return visit

    async def _navigate(self, page: Page, url: str) -> None:
        response = await page.goto(
            url, wait_until='load', timeout=self.config.navigation_timeout_ms,
        )
        if response is not None and response.status >= 400:
            raise PageVisitFailure(url, f"HTTP {response.status}")
        try:
            await page.wait_for_load_state(
                'networkidle', timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightTimeout:
            logger.debug(f"[VISIT] Network never went idle: {url[:80]}")

    async def _capture_screenshot(self, page: Page) -> None:
        image = await page.screenshot(full_page=True)
        key = f"screenshot_{int(time.time() * 1000)}.png"
        self.blob_store.put(key, image, content_type="image/png")

    def _inspect(self, visit: VisitRecord, inspector: PageInspector) -> None:
        """Run extraction and link discovery into *visit*."""
        cfg = self.config
        batch = self.extractor.extract(
            inspector,
            data_sources=cfg.extract_data_sources,
            markets=cfg.extract_markets,
            methodology=cfg.extract_methodology,
        )
        visit.data_sources = batch.data_sources
        visit.markets = batch.markets
        visit.methodology = batch.methodology
        visit.domain_hits = batch.domain_hits
        visit.links = discover_links(inspector)

    async def _visit_static(self, visit: VisitRecord, failure: PageVisitFailure) -> None:
        """Static fallback: fetch with requests, extract from plain HTML."""
        logger.info(f"[STATIC-FALLBACK] {visit.url[:70]} ({failure.reason[:60]})")
        loop = asyncio.get_running_loop()

        def _sync_fetch():
            headers = {
                'User-Agent': self.config.user_agent,
                'Accept': 'text/html,application/xhtml+xml',
                'Accept-Language': 'en-US,en;q=0.9',
            }
            resp = requests.get(
                visit.url, headers=headers,
                timeout=self.config.navigation_timeout_ms / 1000,
            )
            resp.raise_for_status()
            return resp

        try:
            response = await loop.run_in_executor(None, _sync_fetch)
            self._inspect(visit, DomSnapshot(response.text, url=response.url))
        except Exception as e:
            self._fail(visit, PageVisitFailure(visit.url, f"{failure.reason}; static fallback: {e}"))

    def _fail(self, visit: VisitRecord, failure: PageVisitFailure) -> None:
        logger.error(f"[VISIT] Request {visit.url} failed: {failure.reason}")
        visit.outcome = VisitOutcome.FAILED
        visit.error = failure.reason
        visit.data_sources, visit.markets, visit.methodology = [], [], []
        visit.links, visit.domain_hits = [], []

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record(self, visit: VisitRecord) -> None:
        self._accumulator.merge(visit)
        self._progress.pages_visited += 1

        if visit.outcome is VisitOutcome.FAILED:
            self._progress.pages_failed += 1
            self._errors.append({'url': visit.url, 'error': visit.error})
        else:
            self._progress.links_discovered += len(visit.links)
            enqueued = self._enqueue(visit.links)
            self._progress.links_enqueued += enqueued
            logger.info(
                f"[FRONTIER] {visit.url[:60]} → links={len(visit.links)} "
                f"enqueued={enqueued} queue_size={len(self._frontier)}"
            )

        if self._progress_callback:
            try:
                self._progress_callback(
                    self.visits, visit.url, self._progress.get_stats()
                )
            except Exception as e:
                logger.debug(f"Progress callback error: {e}")

    def _publish(self, report) -> None:
        data = report.to_dict()
        if self.record_sink is not None:
            self.record_sink.append(data)
        if self.blob_store is not None:
            self.blob_store.put(
                REPORT_KEY,
                json.dumps(data, indent=2, ensure_ascii=False),
                content_type="application/json",
            )
