"""Configuration objects and constants for CDN rewriting and uploads."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

DEFAULT_SAFE_EXTENSIONS: FrozenSet[str] = frozenset(
    {"css", "png", "jpg", "jpeg", "gif", "svg", "js", "woff", "woff2", "ttf", "eot"}
)

# Loader scripts that must stay same-origin.
DEFAULT_EXCLUDED_PATH_FRAGMENTS: tuple = (
    "requirejs/require.js",
    "requirejs-config.js",
    "mage/requirejs/mixins.js",
    "mage/polyfill.js",
    "mage/bootstrap.js",
    "jquery.js",
    "jquery.min.js",
    "jquery-migrate.js",
    "jquery-migrate.min.js",
    "jquery-ui.js",
    "jquery-ui.min.js",
    "require.js",
    "underscore.js",
    "knockout.js",
)

DEFAULT_FETCH_TIMEOUT = 30.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_GITHUB_BRANCH = "main"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_url_list(raw: Optional[str]) -> List[str]:
    """Parse a JSON array or newline/comma separated list of URLs."""
    if not raw:
        return []
    text = raw.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
        except json.JSONDecodeError:
            values = None
        if isinstance(values, list):
            return [str(value).strip() for value in values if str(value).strip()]
    parts = text.replace(",", "\n").splitlines()
    return [part.strip() for part in parts if part.strip()]


@dataclass
class RewritePolicy:
    """Settings that decide which asset URLs move to the CDN and where."""

    cdn_base_url: str
    site_base_url: str = ""
    site_secure_base_url: str = ""
    safe_extensions: FrozenSet[str] = DEFAULT_SAFE_EXTENSIONS
    excluded_path_fragments: tuple = DEFAULT_EXCLUDED_PATH_FRAGMENTS
    custom_urls: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.site_base_url = (self.site_base_url or "").rstrip("/")
        self.site_secure_base_url = (self.site_secure_base_url or "").rstrip("/")
        self.safe_extensions = frozenset(ext.lower().lstrip(".") for ext in self.safe_extensions)
        self.excluded_path_fragments = tuple(self.excluded_path_fragments)


@dataclass
class GithubConfig:
    """Credentials and target repository for the GitHub CDN origin."""

    token: str
    repository: str
    branch: str = DEFAULT_GITHUB_BRANCH
    api_url: str = "https://api.github.com"
    timeout: float = DEFAULT_FETCH_TIMEOUT
    commit_message: str = "Upload {path} via asset-cdn"


@dataclass
class CdnConfig:
    """Top-level settings shared by the analyze, upload and rewrite flows."""

    enabled: bool = True
    cdn_base_url: str = ""
    site_base_url: str = ""
    site_secure_base_url: str = ""
    custom_urls: List[str] = field(default_factory=list)
    debug: bool = False
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    github: Optional[GithubConfig] = None

    def build_policy(self) -> RewritePolicy:
        """Create the per-response rewrite policy from this configuration."""
        return RewritePolicy(
            cdn_base_url=self.cdn_base_url,
            site_base_url=self.site_base_url,
            site_secure_base_url=self.site_secure_base_url,
            custom_urls=list(self.custom_urls),
        )

    @classmethod
    def from_env(cls) -> "CdnConfig":
        """Build a configuration from ``ASSET_CDN_*`` and ``GITHUB_*`` variables."""
        github: Optional[GithubConfig] = None
        token = os.getenv("GITHUB_TOKEN")
        repository = os.getenv("GITHUB_REPOSITORY")
        if token and repository:
            github = GithubConfig(
                token=token,
                repository=repository,
                branch=os.getenv("GITHUB_BRANCH") or DEFAULT_GITHUB_BRANCH,
            )
        return cls(
            enabled=_env_flag("ASSET_CDN_ENABLED", default=True),
            cdn_base_url=os.getenv("ASSET_CDN_BASE_URL", ""),
            site_base_url=os.getenv("ASSET_CDN_SITE_URL", ""),
            site_secure_base_url=os.getenv("ASSET_CDN_SECURE_SITE_URL", ""),
            custom_urls=parse_url_list(os.getenv("ASSET_CDN_CUSTOM_URLS")),
            debug=_env_flag("ASSET_CDN_DEBUG"),
            github=github,
        )
