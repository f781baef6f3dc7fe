"""
Authenticator
=============
Form-based login against the target application.

Flow:
    1. Skip entirely (no navigation) when a credential is missing
    2. Navigate to the login URL and wait for network idle
    3. Wait for any username-like field to appear
    4. Fill the first present username field, then password field
    5. Click the first present submit control and wait for network idle
    6. Judge success from the resulting URL

Success detection is a best-effort heuristic: the post-login URL must contain
a success marker (``dashboard``, ``app``) or must not contain ``login``.  A
redirect to e.g. ``/user/login-settings`` is reported as a failure, and any
host containing ``app`` is always reported as a success.  Configure
``success_selector`` to additionally require a known post-login element.

Security:
    - Credentials are never logged.
    - Login errors never abort a crawl; the crawl continues anonymously.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ..errors import DriverFatalFailure, LoginFormNotFound

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Selector banks (tried in order, first present element wins)
# ---------------------------------------------------------------------------

LOGIN_FORM_SELECTOR = (
    'input[type="email"], input[type="text"], '
    'input[name="username"], input[name="email"]'
)

USERNAME_SELECTORS: List[str] = [
    'input[type="email"]',
    'input[name="username"]',
    'input[name="email"]',
    'input[type="text"]:first-of-type',
]

PASSWORD_SELECTORS: List[str] = [
    'input[type="password"]',
    'input[name="password"]',
    'input[name="pwd"]',
]

SUBMIT_SELECTORS: List[str] = [
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Login")',
    'button:has-text("Sign in")',
]

SUCCESS_URL_MARKERS = ('dashboard', 'app')
LOGIN_URL_MARKER = 'login'

# Substrings of driver errors meaning the browser itself is gone
_FATAL_MARKERS = ('Target page, context or browser has been closed', 'Browser has been closed')


def is_fatal_driver_error(exc: BaseException) -> bool:
    """True if *exc* means the browser/context died (not just one page)."""
    if isinstance(exc, DriverFatalFailure):
        return True
    if 'TargetClosedError' in type(exc).__name__:
        return True
    message = str(exc)
    return any(marker in message for marker in _FATAL_MARKERS)


# ---------------------------------------------------------------------------
# Credentials + outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Credentials:
    """Plain credential container."""
    username: str = ""
    password: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.password)

    @classmethod
    def resolve(
        cls,
        username: Optional[str] = None,
        password: Optional[str] = None,
        env_prefixes: Sequence[str] = ("RECON",),
    ) -> "Credentials":
        """Explicit values first, then ``{PREFIX}_USERNAME`` / ``{PREFIX}_PASSWORD``."""
        username = username or ""
        password = password or ""
        for prefix in env_prefixes:
            if not username:
                username = os.environ.get(f"{prefix}_USERNAME", "")
            if not password:
                password = os.environ.get(f"{prefix}_PASSWORD", "")
        return cls(username=username, password=password)

    def __repr__(self) -> str:
        return f"Credentials(username={'***' if self.username else ''!r}, password=***)"


class AuthOutcome(str, Enum):
    AUTHENTICATED = "authenticated"
    SKIPPED_NO_CREDENTIALS = "skipped_no_credentials"
    FAILED_LOGIN = "failed_login"


# ---------------------------------------------------------------------------
# Authenticator
# ---------------------------------------------------------------------------

class Authenticator:
    """Drives the login form of the target application.

    Usage::

        auth = Authenticator()
        outcome = await auth.authenticate(page, login_url, creds)
    """

    def __init__(
        self,
        *,
        form_timeout_ms: int = 10_000,
        navigation_timeout_ms: int = 60_000,
        post_login_wait_ms: int = 3_000,
        success_selector: Optional[str] = None,
    ):
        self.form_timeout_ms = form_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.post_login_wait_ms = post_login_wait_ms
        self.success_selector = success_selector

    async def authenticate(
        self, page: Page, login_url: str, credentials: Credentials
    ) -> AuthOutcome:
        """Run the login sequence.  Never raises except on a dead browser."""
        if not credentials.is_complete:
            logger.warning(
                "[AUTH] No credentials provided — analysing public areas only"
            )
            return AuthOutcome.SKIPPED_NO_CREDENTIALS

        logger.info(f"[AUTH] Attempting login at {login_url[:80]}")
        try:
            success = await self._login(page, login_url, credentials)
        except LoginFormNotFound as e:
            logger.error(f"[AUTH] Login form not found: {e}")
            return AuthOutcome.FAILED_LOGIN
        except Exception as e:
            if is_fatal_driver_error(e):
                raise DriverFatalFailure(str(e)) from e
            logger.error(f"[AUTH] Login error: {e}")
            return AuthOutcome.FAILED_LOGIN

        if success:
            logger.info("[AUTH] Login successful")
            return AuthOutcome.AUTHENTICATED

        logger.warning("[AUTH] Login might have failed — continuing with limited access")
        return AuthOutcome.FAILED_LOGIN

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _login(self, page: Page, login_url: str, credentials: Credentials) -> bool:
        await page.goto(
            login_url,
            wait_until="networkidle",
            timeout=self.navigation_timeout_ms,
        )

        try:
            await page.wait_for_selector(LOGIN_FORM_SELECTOR, timeout=self.form_timeout_ms)
        except PlaywrightTimeout as e:
            raise LoginFormNotFound(
                f"no username field within {self.form_timeout_ms}ms"
            ) from e

        username_sel = await self._first_present(page, USERNAME_SELECTORS)
        if username_sel:
            await page.fill(username_sel, credentials.username)
            logger.info("[AUTH] Username filled")

        password_sel = await self._first_present(page, PASSWORD_SELECTORS)
        if password_sel:
            await page.fill(password_sel, credentials.password)
            logger.info("[AUTH] Password filled")

        submit_sel = await self._first_present(page, SUBMIT_SELECTORS)
        if submit_sel:
            await page.click(
                submit_sel, timeout=self.navigation_timeout_ms, no_wait_after=True
            )
            logger.info("[AUTH] Submit clicked")
            try:
                await page.wait_for_load_state(
                    "networkidle", timeout=self.navigation_timeout_ms
                )
            except PlaywrightTimeout:
                logger.warning("[AUTH] Post-submit navigation did not settle")

        if self.post_login_wait_ms > 0:
            await asyncio.sleep(self.post_login_wait_ms / 1000)

        current_url = page.url
        logger.info(f"[AUTH] Post-login URL: {current_url[:120]}")

        if not self.is_success_url(current_url):
            return False
        if self.success_selector:
            return await self._confirm_marker(page)
        return True

    @staticmethod
    def is_success_url(url: str) -> bool:
        """URL heuristic for a completed login (see module docstring)."""
        return (
            any(marker in url for marker in SUCCESS_URL_MARKERS)
            or LOGIN_URL_MARKER not in url
        )

    @staticmethod
    async def _first_present(page: Page, selectors: Sequence[str]) -> Optional[str]:
        for sel in selectors:
            if await page.query_selector(sel):
                return sel
        return None

    async def _confirm_marker(self, page: Page) -> bool:
        try:
            await page.wait_for_selector(
                self.success_selector, timeout=self.form_timeout_ms
            )
        except PlaywrightTimeout:
            logger.warning(
                f"[AUTH] Post-login marker not found: {self.success_selector}"
            )
            return False
        return True
