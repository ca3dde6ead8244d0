"""Analyze, upload and response-rewrite flows built on the core components."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .config import CdnConfig
from .extractor import UrlExtractor
from .fetcher import fetch_page
from .models import AnalyzeResponse, RewriteLedger, RewriteResult, UploadResponse, UploadResults
from .rewriter import UrlRewriter

logger = logging.getLogger("asset_cdn")

DISABLED_MESSAGE = "CDN Integration is disabled."
ADMIN_PATH_MARKER = "/admin/"

Fetcher = Callable[[str], str]


def analyze_store(
    store_url: str,
    config: CdnConfig,
    fetch: Optional[Fetcher] = None,
    extractor: Optional[UrlExtractor] = None,
) -> AnalyzeResponse:
    """Fetch a storefront page and list the asset URLs it references."""
    if not config.enabled:
        return AnalyzeResponse(success=False, message=DISABLED_MESSAGE)
    if not store_url:
        return AnalyzeResponse(success=False, message="Store URL is required.")

    if fetch is None:
        def fetch(url: str) -> str:
            return fetch_page(url, timeout=config.fetch_timeout, max_redirects=config.max_redirects)

    try:
        content = fetch(store_url)
        if not content:
            return AnalyzeResponse(
                success=False,
                message="Failed to fetch store homepage. Please check the URL.",
            )
        urls = (extractor or UrlExtractor()).extract(content)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error while analyzing %s", store_url)
        return AnalyzeResponse(success=False, message=str(exc))

    if not urls:
        return AnalyzeResponse(success=False, message="No suitable URLs found to analyze.")
    logger.info("Found %d URLs to analyze.", len(urls))
    return AnalyzeResponse(success=True, urls=urls, message="URL analysis completed.")


def _decode_urls(urls: Union[str, Sequence[str], None]) -> Optional[List[str]]:
    if isinstance(urls, str):
        try:
            decoded = json.loads(urls)
        except json.JSONDecodeError:
            return None
        if not isinstance(decoded, list):
            return None
        return [str(url) for url in decoded]
    return [str(url) for url in urls or []]


def _resolve_local_path(url: str, static_dir: Path, media_dir: Path):
    if url.startswith("/static/"):
        remote_path = url[len("/static/"):]
        return static_dir / remote_path, remote_path
    if url.startswith("/media/"):
        remote_path = url[len("/media/"):]
        return media_dir / remote_path, remote_path
    return None, None


def upload_assets(
    urls: Union[str, Sequence[str], None],
    config: CdnConfig,
    uploader,
    static_dir: Path,
    media_dir: Path,
) -> UploadResponse:
    """Upload each asset URL's local file, reporting per-URL outcomes."""
    if not config.enabled:
        return UploadResponse(success=False, message=DISABLED_MESSAGE)
    if uploader is None:
        logger.error("GitHub uploader is not configured")
        return UploadResponse(
            success=False,
            message="GitHub API service is not available. Please check your module configuration.",
        )
    if not urls:
        return UploadResponse(success=False, message="No URLs provided for upload.")

    decoded = _decode_urls(urls)
    if decoded is None:
        return UploadResponse(success=False, message="Invalid URL format.")

    static_dir = Path(static_dir)
    media_dir = Path(media_dir)
    logger.debug("Static directory: %s", static_dir)
    logger.debug("Media directory: %s", media_dir)

    results = UploadResults(total=len(decoded))
    for url in decoded:
        logger.debug("Processing URL: %s", url)
        local_path, remote_path = _resolve_local_path(url, static_dir, media_dir)
        if local_path is None:
            results.record(url, False, "Unsupported URL format.")
            continue
        if not local_path.exists():
            logger.error("File not found: %s", local_path)
            results.record(url, False, f"File not found: {local_path}")
            continue
        try:
            uploaded = uploader.upload_file(local_path, remote_path)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Exception processing URL %s", url)
            results.record(url, False, str(exc))
            continue
        if uploaded:
            logger.info("Successfully uploaded %s to GitHub", url)
            results.record(url, True, "Successfully uploaded to GitHub")
        else:
            logger.error("Failed to upload %s to GitHub", url)
            results.record(url, False, "Failed to upload to GitHub")

    if results.failed:
        message = (
            f"Upload completed with issues: {results.success} successful, "
            f"{results.failed} failed, {results.total} total."
        )
    else:
        message = f"All {results.success} files were successfully uploaded to GitHub."
    return UploadResponse(success=True, results=results, message=message)


def rewrite_response(
    html: str,
    config: CdnConfig,
    request_path: str = "",
    rewriter: Optional[UrlRewriter] = None,
) -> RewriteResult:
    """Rewrite one outgoing storefront response according to ``config``."""
    unchanged = RewriteResult(html, RewriteLedger())
    if not config.enabled:
        return unchanged
    if not config.custom_urls:
        logger.debug("No custom URLs defined. Skipping replacement.")
        return unchanged
    if ADMIN_PATH_MARKER in (request_path or ""):
        logger.debug("Skipping admin path: %s", request_path)
        return unchanged
    if not html:
        return unchanged
    if not config.cdn_base_url:
        logger.warning("CDN base URL is empty")
        return unchanged

    result = (rewriter or UrlRewriter()).rewrite(html, config.build_policy())
    ledger = result.ledger
    if ledger.replacement_count:
        logger.info("Replaced %d URLs with CDN URLs", ledger.replacement_count)
        if config.debug:
            logger.debug("Replaced URLs: %s", json.dumps(ledger.rewritten))
            if ledger.failed:
                logger.debug("Failed to replace URLs: %s", json.dumps(ledger.failed))
    return result
