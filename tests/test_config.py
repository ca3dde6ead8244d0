"""Tests for configuration loading."""

import pytest

from asset_cdn.config import (
    DEFAULT_EXCLUDED_PATH_FRAGMENTS,
    CdnConfig,
    RewritePolicy,
    parse_url_list,
)

ENV_VARS = (
    "ASSET_CDN_ENABLED",
    "ASSET_CDN_BASE_URL",
    "ASSET_CDN_SITE_URL",
    "ASSET_CDN_SECURE_SITE_URL",
    "ASSET_CDN_CUSTOM_URLS",
    "ASSET_CDN_DEBUG",
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_BRANCH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestParseUrlList:
    def test_json_array(self):
        assert parse_url_list('["/static/a.js", " /media/b.png "]') == ["/static/a.js", "/media/b.png"]

    def test_lines_and_commas(self):
        assert parse_url_list("/static/a.js\n/static/b.css, /media/c.png\n\n") == [
            "/static/a.js",
            "/static/b.css",
            "/media/c.png",
        ]

    def test_empty(self):
        assert parse_url_list(None) == []
        assert parse_url_list("   ") == []


class TestCdnConfig:
    def test_defaults_from_empty_env(self, clean_env):
        config = CdnConfig.from_env()
        assert config.enabled
        assert config.cdn_base_url == ""
        assert config.custom_urls == []
        assert config.github is None
        assert config.fetch_timeout == 30.0
        assert config.max_redirects == 5

    def test_values_from_env(self, clean_env):
        clean_env.setenv("ASSET_CDN_ENABLED", "no")
        clean_env.setenv("ASSET_CDN_BASE_URL", "https://cdn.jsdelivr.net/gh/acme/cdn@main")
        clean_env.setenv("ASSET_CDN_CUSTOM_URLS", '["/static/a.js"]')
        clean_env.setenv("ASSET_CDN_DEBUG", "true")
        clean_env.setenv("GITHUB_TOKEN", "secret")
        clean_env.setenv("GITHUB_REPOSITORY", "acme/cdn")

        config = CdnConfig.from_env()
        assert not config.enabled
        assert config.debug
        assert config.custom_urls == ["/static/a.js"]
        assert config.github.repository == "acme/cdn"
        assert config.github.branch == "main"

    def test_build_policy(self):
        config = CdnConfig(
            cdn_base_url="https://cdn.example.com",
            site_base_url="https://shop.example.com/",
            custom_urls=["/static/a.js"],
        )
        policy = config.build_policy()
        assert policy.site_base_url == "https://shop.example.com"
        assert policy.custom_urls == ["/static/a.js"]
        assert policy.custom_urls is not config.custom_urls
        assert policy.excluded_path_fragments == DEFAULT_EXCLUDED_PATH_FRAGMENTS


class TestRewritePolicy:
    def test_extensions_normalized(self):
        policy = RewritePolicy(cdn_base_url="https://cdn.example.com", safe_extensions={".JS", "css"})
        assert policy.safe_extensions == frozenset({"js", "css"})
