"""
Authentication
==============
Form-based login used on the first page visit of a credentialed crawl.

Usage::

    from webrecon.auth import Authenticator, Credentials

    auth = Authenticator(form_timeout_ms=10_000)
    outcome = await auth.authenticate(page, login_url, Credentials("me", "secret"))
"""

from .authenticator import (
    AuthOutcome,
    Authenticator,
    Credentials,
    is_fatal_driver_error,
)

__all__ = [
    "AuthOutcome",
    "Authenticator",
    "Credentials",
    "is_fatal_driver_error",
]
