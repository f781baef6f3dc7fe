"""
Fake Playwright objects for driving the crawler without a browser.

A ``FakeSite`` maps URLs to ``FakeRoute`` definitions.  ``FakeContext``
hands out ``FakePage`` objects that serve those routes, fire the configured
network events during ``goto`` and record every navigation on the site.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeout

from webrecon.inspector import DomSnapshot


class TargetClosedError(Exception):
    """Stand-in for Playwright's TargetClosedError (matched by name)."""


@dataclass
class FakeRequest:
    url: str
    method: str = "GET"
    resource_type: str = "xhr"


@dataclass
class FakeResponse:
    url: str
    status: int = 200


@dataclass
class FakeRoute:
    html: str = "<html><body></body></html>"
    status: int = 200
    inner_text: Optional[str] = None
    requests: List[Tuple[str, str, str]] = field(default_factory=list)
    responses: List[Tuple[str, int]] = field(default_factory=list)
    error: Optional[BaseException] = None


NOT_FOUND = FakeRoute(html="<html><body>Not found</body></html>", status=404)


class FakeSite:
    """In-memory website shared by every page of a FakeContext."""

    def __init__(self, routes: Dict[str, FakeRoute], post_login_url: Optional[str] = None):
        self.routes = routes
        self.post_login_url = post_login_url
        self.navigations: List[str] = []
        self.fills: List[Tuple[str, str]] = []
        self.clicks: List[str] = []

    def route(self, url: str) -> FakeRoute:
        return self.routes.get(url, NOT_FOUND)


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url = "about:blank"
        self.closed = False
        self._html = "<html><body></body></html>"
        self._inner_text: Optional[str] = None
        self._handlers: Dict[str, List[Callable]] = {}
        self.screenshots = 0

    # -- events ----------------------------------------------------------

    def on(self, event: str, handler: Callable) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self._handlers.get(event, []).remove(handler)

    def _emit(self, event: str, payload) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(payload)

    def listener_count(self) -> int:
        return sum(len(h) for h in self._handlers.values())

    # -- navigation ------------------------------------------------------

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 30000):
        self.site.navigations.append(url)
        route = self.site.route(url)
        for req_url, method, resource_type in route.requests:
            self._emit("request", FakeRequest(req_url, method, resource_type))
        for resp_url, status in route.responses:
            self._emit("response", FakeResponse(resp_url, status))
        if route.error is not None:
            raise route.error
        self.url = url
        self._html = route.html
        self._inner_text = route.inner_text
        return FakeResponse(url, route.status)

    async def wait_for_load_state(self, state: str = "load", timeout: int = 30000) -> None:
        return None

    async def wait_for_selector(self, selector: str, timeout: int = 30000):
        found = await self.query_selector(selector)
        if not found:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return found

    async def query_selector(self, selector: str):
        matches = DomSnapshot(self._html, url=self.url).query_all(selector)
        return matches[0] if matches else None

    # -- interaction -----------------------------------------------------

    async def fill(self, selector: str, value: str) -> None:
        self.site.fills.append((selector, value))

    async def click(self, selector: str, timeout: int = 30000, no_wait_after: bool = False) -> None:
        self.site.clicks.append(selector)
        if self.site.post_login_url:
            self.url = self.site.post_login_url
            route = self.site.route(self.url)
            self._html = route.html
            self._inner_text = route.inner_text

    # -- content ---------------------------------------------------------

    async def content(self) -> str:
        return self._html

    async def evaluate(self, script: str):
        if self._inner_text is None:
            raise RuntimeError("innerText not configured")
        return self._inner_text

    async def screenshot(self, full_page: bool = False) -> bytes:
        self.screenshots += 1
        return b"\x89PNG fake"

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, site: FakeSite):
        self.site = site
        self.pages: List[FakePage] = []

    async def new_page(self) -> FakePage:
        page = FakePage(self.site)
        self.pages.append(page)
        return page


def nav_page(*links: Tuple[str, str], body: str = "") -> str:
    """HTML page with the given (href, text) pairs inside a <nav>."""
    anchors = "".join(f'<a href="{href}">{text}</a>' for href, text in links)
    return f"<html><body><nav>{anchors}</nav>{body}</body></html>"
