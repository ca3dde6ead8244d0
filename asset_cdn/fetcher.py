"""Retrieval of storefront pages for asset analysis."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import DEFAULT_FETCH_TIMEOUT, DEFAULT_MAX_REDIRECTS, DEFAULT_USER_AGENT

logger = logging.getLogger("asset_cdn")


def build_session(max_redirects: int = DEFAULT_MAX_REDIRECTS) -> requests.Session:
    """Create a session that identifies as a desktop browser."""
    session = requests.Session()
    session.max_redirects = max_redirects
    session.headers.update(
        {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept-Encoding": "gzip, deflate",
        }
    )
    return session


def fetch_page(
    url: str,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    session: Optional[requests.Session] = None,
) -> str:
    """GET a page following redirects; returns an empty string on failure."""
    session = session or build_session(max_redirects)
    try:
        logger.info("Loading %s", url)
        resp = session.get(url, timeout=timeout, allow_redirects=True)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Failed to fetch %s: %s", url, exc)
        return ""
    return resp.text


async def render_page(
    url: str,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    wait_after_load: float = 1.0,
) -> str:
    """Render a page in headless Chromium so client-side injected tags are present."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        page = await browser.new_page(user_agent=DEFAULT_USER_AGENT)
        page.set_default_navigation_timeout(timeout * 1000)
        try:
            logger.info("Rendering %s", url)
            await page.goto(url, wait_until="networkidle")
            if wait_after_load:
                await page.wait_for_timeout(int(wait_after_load * 1000))
            return await page.content()
        except PlaywrightTimeoutError as exc:
            logger.error("Timeout while loading %s: %s", url, exc)
            return ""
        finally:
            await browser.close()
