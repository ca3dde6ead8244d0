"""Rewriting of local asset URLs in HTML documents to their CDN equivalents."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Tuple

from .config import RewritePolicy
from .models import REWRITTEN, RewriteLedger, RewriteResult
from .utils import build_cdn_url, file_extension, is_asset_path, normalize_url

logger = logging.getLogger("asset_cdn")

BUNDLE_MARKERS = ("/_cache/merged/", "/_cache/minified/")
NOT_FOUND_REASON = "not found in document"

_ATTRIBUTE_ASSET = re.compile(
    r"""(?P<attr>href|src)=(?P<quote>['"])(?P<path>/[^"'?]+\.(?:js|css))(?P<query>\?[^'"]*)?(?P=quote)"""
)
_QUOTED_ASSET = re.compile(r"""(['"])(/[^"'?]+\.(?:js|css)(?:\?[^'"]*)?)\1""")
# Characters that would continue a path, so a match is only a prefix of a longer URL.
_PATH_CONTINUES = r"(?![\w.\-/])"


def _excluded_fragment(url: str, policy: RewritePolicy) -> Optional[str]:
    for fragment in policy.excluded_path_fragments:
        if fragment and fragment in url:
            return fragment
    return None


def is_bundle(url: str) -> bool:
    """Return True for merged or minified bundles produced by the storefront."""
    return any(marker in url for marker in BUNDLE_MARKERS)


class UrlRewriter:
    """Three-phase rewrite of asset URLs in one HTML document.

    Every call to :meth:`rewrite` starts a new :class:`RewriteLedger`, so one
    instance can serve many responses without sharing skip or replace state.
    """

    def rewrite(self, html: str, policy: RewritePolicy) -> RewriteResult:
        ledger = RewriteLedger()
        if not html or not policy.cdn_base_url:
            return RewriteResult(html, ledger)

        html = self._sweep_attributes(html, policy, ledger)
        html = self._rewrite_urls(html, policy.custom_urls, policy, ledger)
        html = self._rewrite_urls(html, self._residual_paths(html, ledger), policy, ledger)
        return RewriteResult(html, ledger)

    # Phase 1
    def _sweep_attributes(self, html: str, policy: RewritePolicy, ledger: RewriteLedger) -> str:
        def replace(match: re.Match[str]) -> str:
            path = match.group("path")
            if not is_asset_path(path):
                return match.group(0)
            entry = ledger.get(path)
            if entry is not None and entry.status == REWRITTEN:
                ledger.replacement_count += 1
                return self._swap_url(match, entry.cdn_url or "")
            if ledger.is_resolved(path):
                return match.group(0)

            fragment = _excluded_fragment(path, policy)
            if fragment:
                ledger.mark_skipped(path, f"excluded path fragment: {fragment}")
                return match.group(0)

            if file_extension(path) not in policy.safe_extensions and not is_bundle(path):
                ledger.mark_skipped(path, "unsupported file type")
                return match.group(0)

            cdn_url = build_cdn_url(policy.cdn_base_url, path)
            if not cdn_url:
                ledger.mark_failed(path, "empty CDN path")
                return match.group(0)

            ledger.mark_rewritten(path, cdn_url)
            logger.debug("Replaced URL: %s with %s", path, cdn_url)
            return self._swap_url(match, cdn_url)

        return _ATTRIBUTE_ASSET.sub(replace, html)

    @staticmethod
    def _swap_url(match: re.Match[str], cdn_url: str) -> str:
        quote = match.group("quote")
        query = match.group("query") or ""
        return f"{match.group('attr')}={quote}{cdn_url}{query}{quote}"

    # Phase 3 input
    @staticmethod
    def _residual_paths(html: str, ledger: RewriteLedger) -> Iterable[str]:
        seen = []
        for match in _QUOTED_ASSET.finditer(html):
            url = normalize_url(match.group(2))
            if url in ledger or url in seen:
                continue
            seen.append(url)
        return seen

    # Phases 2 and 3
    def _rewrite_urls(
        self,
        html: str,
        urls: Iterable[str],
        policy: RewritePolicy,
        ledger: RewriteLedger,
    ) -> str:
        for url in urls:
            html = self.rewrite_url(html, url, policy, ledger)
        return html

    def rewrite_url(
        self,
        html: str,
        url: str,
        policy: RewritePolicy,
        ledger: RewriteLedger,
    ) -> str:
        """Rewrite every occurrence of one asset URL, recording the outcome."""
        if not url:
            return html
        normalized = url
        try:
            normalized = normalize_url(url)
            if not normalized.startswith("/"):
                normalized = "/" + normalized
            if not is_asset_path(normalized) or ledger.is_resolved(normalized):
                return html

            if file_extension(normalized) not in policy.safe_extensions and not is_bundle(normalized):
                ledger.mark_skipped(normalized, "unsupported file type")
                return html

            fragment = _excluded_fragment(normalized, policy)
            if fragment:
                ledger.mark_skipped(normalized, f"excluded path fragment: {fragment}")
                return html

            cdn_url = build_cdn_url(policy.cdn_base_url, normalized)
            if not cdn_url:
                ledger.mark_skipped(normalized, "empty CDN path")
                return html

            updated, count = self._apply_replacements(html, normalized, cdn_url, policy)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error processing URL %s", url)
            ledger.mark_failed(normalized, "error while rewriting")
            return html

        if updated != html:
            logger.debug("Replaced URL: %s with %s", normalized, cdn_url)
            ledger.mark_rewritten(normalized, cdn_url, occurrences=count)
        else:
            ledger.mark_skipped(normalized, NOT_FOUND_REASON)
        return updated

    def _apply_replacements(
        self,
        html: str,
        url: str,
        cdn_url: str,
        policy: RewritePolicy,
    ) -> Tuple[str, int]:
        escaped = re.escape(url)
        total = 0

        for base in (policy.site_base_url, policy.site_secure_base_url):
            if base and base + url in html:
                html, count = re.subn(re.escape(base + url) + _PATH_CONTINUES, lambda _m: cdn_url, html)
                total += count

        for attr in ("href", "src"):
            html, count = re.subn(
                rf"""(\s{attr}=)(['"]){escaped}(\?[^'"]*)?\2""",
                lambda m: f"{m.group(1)}{m.group(2)}{cdn_url}{m.group(3) or ''}{m.group(2)}",
                html,
            )
            total += count

        html, count = re.subn(
            rf"""url\((['"]?){escaped}(\?[^'")]*)?\1\)""",
            lambda m: f"url({m.group(1)}{cdn_url}{m.group(2) or ''}{m.group(1)})",
            html,
        )
        total += count

        html, count = re.subn(
            rf"""(['"]){escaped}(\?[^'"]*)?\1""",
            lambda m: f"{m.group(1)}{cdn_url}{m.group(2) or ''}{m.group(1)}",
            html,
        )
        total += count
        return html, total


def rewrite_html(html: str, policy: RewritePolicy) -> RewriteResult:
    """Convenience wrapper creating a fresh rewriter for one document."""
    return UrlRewriter().rewrite(html, policy)
