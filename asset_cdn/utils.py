"""Utility helpers for asset path normalization and CDN URL building."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

ASSET_PREFIXES = ("/static/", "/media/")


def normalize_url(value: str) -> str:
    """Reduce a matched URL to its server-relative path without a query string."""
    url = value.strip()
    if url.startswith("http"):
        parsed = urlparse(url)
        url = parsed.path or url
    return url.split("?", 1)[0]


def is_asset_path(url: str) -> bool:
    """Return True for non-empty paths under ``/static/`` or ``/media/``."""
    return bool(url) and url.startswith(ASSET_PREFIXES)


def strip_asset_prefix(url: str) -> Optional[str]:
    """Drop the ``/static/`` or ``/media/`` prefix; None for other paths."""
    for prefix in ASSET_PREFIXES:
        if url.startswith(prefix):
            return url[len(prefix):]
    return None


def build_cdn_url(cdn_base_url: str, url: str) -> Optional[str]:
    """Join an asset path onto the CDN base with exactly one separating slash."""
    path = strip_asset_prefix(url)
    if not path or not path.lstrip("/"):
        return None
    return cdn_base_url.rstrip("/") + "/" + path.lstrip("/")


def file_extension(url: str) -> str:
    """Lowercase extension of the last path segment, without the dot."""
    name = url.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()
