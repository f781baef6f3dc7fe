"""
Tests for run_config.py and the CLI argument wiring.
"""

import pytest

from webrecon.__main__ import build_parser
from webrecon.keywords import DATA_SOURCE_KEYWORDS
from webrecon.run_config import CrawlConfig


@pytest.fixture(autouse=True)
def _no_env_credentials(monkeypatch):
    monkeypatch.delenv("RECON_USERNAME", raising=False)
    monkeypatch.delenv("RECON_PASSWORD", raising=False)


class TestDefaults:

    def test_defaults(self):
        cfg = CrawlConfig()
        assert cfg.start_url == "https://app.datapred.com/"
        assert cfg.login_url == "https://app.datapred.com/login"
        assert cfg.max_pages == 20
        assert cfg.wait_for_timeout_ms == 5000
        assert cfg.screenshot_enabled is True
        assert cfg.extract_data_sources and cfg.extract_markets and cfg.extract_methodology
        assert cfg.static_fallback is False
        assert cfg.has_credentials is False

    @pytest.mark.parametrize("kwargs", [
        {"max_pages": 0},
        {"max_pages": -3},
        {"wait_for_timeout_ms": -1},
        {"start_url": "ftp://example.com"},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            CrawlConfig(**kwargs)

    def test_password_not_in_repr(self):
        assert "hunter2" not in repr(CrawlConfig(username="u", password="hunter2"))


class TestFromInput:

    def test_camel_case_keys(self):
        cfg = CrawlConfig.from_input({
            "startUrl": "https://app.example.com/",
            "loginUrl": "https://app.example.com/signin",
            "maxPages": "7",
            "waitForTimeout": 100,
            "screenshotEnabled": False,
            "extractMarkets": False,
            "unknownKey": "ignored",
        })
        assert cfg.start_url == "https://app.example.com/"
        assert cfg.login_url == "https://app.example.com/signin"
        assert cfg.max_pages == 7
        assert cfg.wait_for_timeout_ms == 100
        assert cfg.screenshot_enabled is False
        assert cfg.extract_markets is False
        assert cfg.extract_data_sources is True

    def test_empty_input_uses_defaults(self):
        assert CrawlConfig.from_input(None) == CrawlConfig()

    def test_credentials_from_environment(self, monkeypatch):
        monkeypatch.setenv("RECON_USERNAME", "env-user")
        monkeypatch.setenv("RECON_PASSWORD", "env-pass")
        cfg = CrawlConfig.from_input({})
        assert cfg.has_credentials
        assert cfg.credentials.username == "env-user"

    def test_custom_keywords(self):
        cfg = CrawlConfig.from_input({"keywords": {"marketKeywords": ["Mars", "Venus"]}})
        assert cfg.taxonomy.market == ("mars", "venus")
        assert cfg.taxonomy.data_source == DATA_SOURCE_KEYWORDS


class TestFromCliArgs:

    def parse(self, *argv):
        return build_parser().parse_args(list(argv))

    def test_flags_override_input(self):
        args = self.parse("https://app.example.com/", "--pages", "3", "--no-screenshots", "--headed")
        cfg = CrawlConfig.from_cli_args(args, {"maxPages": 50, "platform": "Acme"})
        assert cfg.max_pages == 3
        assert cfg.screenshot_enabled is False
        assert cfg.headless is False
        assert cfg.platform == "Acme"

    def test_platform_derived_from_host(self):
        cfg = CrawlConfig.from_cli_args(self.parse("https://insights.example.org/start"))
        assert cfg.platform == "insights.example.org"

    def test_extraction_toggles(self):
        cfg = CrawlConfig.from_cli_args(self.parse(
            "--no-data-sources", "--no-markets", "--no-methodology", "--static-fallback",
        ))
        assert not cfg.extract_data_sources
        assert not cfg.extract_markets
        assert not cfg.extract_methodology
        assert cfg.static_fallback
        assert cfg.platform == "DataPred"

    def test_credentials_and_outputs(self):
        cfg = CrawlConfig.from_cli_args(self.parse(
            "--username", "u", "--password", "p", "--login-url", "https://app.datapred.com/sso",
            "--storage-dir", "out", "--output-docx", "report.docx", "--wait", "250",
        ))
        assert cfg.has_credentials
        assert cfg.login_url == "https://app.datapred.com/sso"
        assert cfg.storage_dir == "out"
        assert cfg.output_docx == "report.docx"
        assert cfg.wait_for_timeout_ms == 250
