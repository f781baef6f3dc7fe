"""
Network Observer
================
Captures data-fetching traffic during a single page visit.

Playwright fires ``request`` / ``response`` events at any time while the page
is open.  The observer filters them by URL substring and pushes the matches
into a bounded channel.  The crawler drains the channel once, at the end of
the visit, so the captured set is deterministic from the caller's side.

A full channel drops the event.  Lost events are acceptable: observation is
best-effort and never fails a visit.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from .models import RequestEvent, ResponseEvent

logger = logging.getLogger(__name__)

# Request URLs containing any of these are recorded
REQUEST_MARKERS = ('api', 'data', 'forecast', 'price', 'shrimp')

# Successful responses containing any of these are API endpoints
RESPONSE_MARKERS = ('api', 'data')

_DEFAULT_CAPACITY = 5000


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_relevant_request(url: str) -> bool:
    return any(marker in url for marker in REQUEST_MARKERS)


def is_api_response(url: str, status: int) -> bool:
    return status == 200 and any(marker in url for marker in RESPONSE_MARKERS)


class NetworkObserver:
    """Per-visit subscriber to a Playwright page's network events.

    Usage::

        observer = NetworkObserver(page_url=url)
        observer.attach(page)
        await page.goto(url)
        ...
        observer.detach(page)
        requests, responses = observer.drain()
    """

    def __init__(self, page_url: str = "", capacity: int = _DEFAULT_CAPACITY):
        self.page_url = page_url
        self._channel: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    # -- subscription --------------------------------------------------

    def attach(self, page) -> None:
        page.on('request', self.on_request)
        page.on('response', self.on_response)

    def detach(self, page) -> None:
        for event, handler in (('request', self.on_request),
                               ('response', self.on_response)):
            try:
                page.remove_listener(event, handler)
            except Exception as e:
                logger.debug(f"[NETWORK] Could not remove {event} listener: {e}")

    # -- event handlers (called by the driver) -------------------------

    def on_request(self, request) -> None:
        url = request.url
        if not is_relevant_request(url):
            return
        self._offer(RequestEvent(
            url=url,
            method=request.method,
            resource_type=request.resource_type,
            timestamp=_now(),
            page_url=self.page_url,
        ))

    def on_response(self, response) -> None:
        url = response.url
        status = response.status
        if not is_api_response(url, status):
            return
        self._offer(ResponseEvent(
            url=url, status=status, timestamp=_now(), page_url=self.page_url,
        ))

    def _offer(self, event: Union[RequestEvent, ResponseEvent]) -> None:
        try:
            self._channel.put_nowait(event)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.debug(f"[NETWORK] Channel full — dropped {event.url[:80]}")

    # -- end of visit --------------------------------------------------

    def drain(self) -> Tuple[List[RequestEvent], List[ResponseEvent]]:
        """Empty the channel, returning events in arrival order."""
        requests: List[RequestEvent] = []
        responses: List[ResponseEvent] = []
        while True:
            try:
                event = self._channel.get_nowait()
            except asyncio.QueueEmpty:
                break
            if isinstance(event, RequestEvent):
                requests.append(event)
            else:
                responses.append(event)
        if requests or responses:
            logger.info(
                f"[NETWORK] {self.page_url[:60]}: {len(requests)} data requests, "
                f"{len(responses)} API responses"
                + (f" ({self._dropped} dropped)" if self._dropped else "")
            )
        return requests, responses
