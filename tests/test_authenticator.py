"""
Tests for auth/authenticator.py against fake Playwright pages.
"""

import asyncio

import pytest

from fakes import FakePage, FakeRoute, FakeSite, TargetClosedError

from webrecon.auth import AuthOutcome, Authenticator, Credentials, is_fatal_driver_error
from webrecon.errors import DriverFatalFailure

LOGIN_URL = "https://portal.example.com/login"
LOGIN_FORM = (
    '<html><body><form>'
    '<input type="email" name="email">'
    '<input type="password" name="password">'
    '<button type="submit">Sign in</button>'
    '</form></body></html>'
)
CREDS = Credentials(username="analyst@example.com", password="s3cret")


def make_authenticator(**kwargs):
    kwargs.setdefault("post_login_wait_ms", 0)
    return Authenticator(**kwargs)


def login(site, creds=CREDS, **kwargs):
    page = FakePage(site)
    outcome = asyncio.run(make_authenticator(**kwargs).authenticate(page, LOGIN_URL, creds))
    return outcome, page


class TestCredentials:

    def test_completeness(self):
        assert CREDS.is_complete
        assert not Credentials(username="a").is_complete
        assert not Credentials(password="b").is_complete

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("RECON_USERNAME", "env-user")
        monkeypatch.setenv("RECON_PASSWORD", "env-pass")
        creds = Credentials.resolve(username="cli-user")
        assert creds.username == "cli-user"
        assert creds.password == "env-pass"

    def test_repr_masks_values(self):
        text = repr(CREDS)
        assert "s3cret" not in text
        assert "analyst" not in text


class TestAuthenticate:

    def test_no_credentials_skips_navigation(self):
        site = FakeSite({LOGIN_URL: FakeRoute(html=LOGIN_FORM)})
        outcome, _ = login(site, creds=Credentials(username="only-user"))
        assert outcome is AuthOutcome.SKIPPED_NO_CREDENTIALS
        assert site.navigations == []

    def test_successful_login(self):
        site = FakeSite(
            {LOGIN_URL: FakeRoute(html=LOGIN_FORM)},
            post_login_url="https://portal.example.com/dashboard",
        )
        outcome, _ = login(site)
        assert outcome is AuthOutcome.AUTHENTICATED
        assert site.navigations == [LOGIN_URL]
        assert site.fills == [
            ('input[type="email"]', "analyst@example.com"),
            ('input[type="password"]', "s3cret"),
        ]
        assert site.clicks == ['button[type="submit"]']

    def test_still_on_login_page_fails(self):
        site = FakeSite({LOGIN_URL: FakeRoute(html=LOGIN_FORM)}, post_login_url=LOGIN_URL + "?error=1")
        outcome, _ = login(site)
        assert outcome is AuthOutcome.FAILED_LOGIN

    def test_missing_form_fails(self):
        site = FakeSite({LOGIN_URL: FakeRoute(html="<html><body><p>Maintenance</p></body></html>")})
        outcome, _ = login(site, form_timeout_ms=10)
        assert outcome is AuthOutcome.FAILED_LOGIN
        assert site.fills == []

    def test_navigation_error_is_not_fatal(self):
        site = FakeSite({LOGIN_URL: FakeRoute(error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))})
        outcome, _ = login(site)
        assert outcome is AuthOutcome.FAILED_LOGIN

    def test_dead_browser_is_fatal(self):
        site = FakeSite({LOGIN_URL: FakeRoute(error=TargetClosedError("closed"))})
        with pytest.raises(DriverFatalFailure):
            login(site)

    def test_success_selector_gate(self):
        site = FakeSite(
            {
                LOGIN_URL: FakeRoute(html=LOGIN_FORM),
                "https://portal.example.com/home": FakeRoute(html="<html><body>Welcome</body></html>"),
            },
            post_login_url="https://portal.example.com/home",
        )
        outcome, _ = login(site, success_selector="#user-menu", form_timeout_ms=10)
        assert outcome is AuthOutcome.FAILED_LOGIN


class TestHeuristics:

    @pytest.mark.parametrize("url,expected", [
        ("https://portal.example.com/dashboard", True),
        ("https://portal.example.com/home", True),
        ("https://portal.example.com/login", False),
        ("https://portal.example.com/user/login-settings", False),
        # any "app" substring counts as success
        ("https://app.example.com/login", True),
    ])
    def test_success_url(self, url, expected):
        assert Authenticator.is_success_url(url) is expected

    def test_fatal_error_detection(self):
        assert is_fatal_driver_error(TargetClosedError("x"))
        assert is_fatal_driver_error(RuntimeError("Browser has been closed"))
        assert not is_fatal_driver_error(RuntimeError("Timeout 30000ms exceeded"))
