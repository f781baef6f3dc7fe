"""
Error taxonomy.

Only :class:`DriverFatalFailure` is allowed to escape a crawl; everything
else is contained at the login step or at the page-visit boundary.
"""


class ReconError(Exception):
    """Base class for crawl errors."""


class LoginFormNotFound(ReconError):
    """No username field appeared on the login page within the timeout."""


class PageVisitFailure(ReconError):
    """A single page visit failed (navigation, extraction, driver error)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DriverFatalFailure(ReconError):
    """The browser process or context is gone; the run cannot continue."""
