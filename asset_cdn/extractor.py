"""Discovery of local static and media asset URLs referenced by a page."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .utils import is_asset_path, normalize_url

logger = logging.getLogger("asset_cdn")

IMAGE_EXTENSIONS = "png|jpg|jpeg|gif|svg|webp"
FONT_EXTENSIONS = "woff|woff2|ttf|eot|otf"
JSON_SCRIPT_TYPES = ("text/x-magento-init", "application/json", "application/ld+json")

_UNSET = object()


@dataclass
class PatternMatcher:
    """A single regular expression targeting one markup context."""

    name: str
    pattern: str
    flags: int = re.IGNORECASE
    group: Optional[int] = 1

    def __post_init__(self) -> None:
        self._compiled: object = _UNSET

    def _compile(self) -> Optional[re.Pattern[str]]:
        if self._compiled is _UNSET:
            try:
                self._compiled = re.compile(self.pattern, self.flags)
            except re.error as exc:
                logger.error("Pattern %s failed to compile: %s", self.name, exc)
                self._compiled = None
        return self._compiled  # type: ignore[return-value]

    def matches(self, text: str) -> Iterator[str]:
        """Yield the raw URL captured by every match in ``text``."""
        compiled = self._compile()
        if compiled is None:
            return
        for match in compiled.finditer(text):
            group = self.group if self.group is not None and compiled.groups >= self.group else 0
            value = match.group(group)
            if value:
                yield value


class EmbeddedJsonMatcher:
    """Find asset paths in JSON configuration embedded in the page.

    Script blocks declared as JSON (``text/x-magento-init`` and friends) are
    parsed and walked. Everything that could not be parsed, including inline
    object literals in ordinary scripts, is searched with a brace-span
    heuristic instead.
    """

    name = "embedded-json"
    _BRACE_SPAN = re.compile(r"\{[^}]+\}", re.MULTILINE)
    _QUOTED_ASSET = re.compile(r'"(/(?:static|media)/[^"]+)"', re.IGNORECASE)

    def matches(self, text: str) -> Iterator[str]:
        remainder = text
        soup = BeautifulSoup(text, "html.parser")
        for script in soup.find_all("script", attrs={"type": list(JSON_SCRIPT_TYPES)}):
            body = script.string
            if not body or not body.strip():
                continue
            try:
                data = json.loads(body)
            except ValueError:
                logger.debug("Embedded JSON block is malformed; using heuristic scan")
                continue
            yield from self._walk(data)
            remainder = remainder.replace(body, "", 1)
        yield from self._heuristic(remainder)

    def _walk(self, data: object) -> Iterator[str]:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(key, str) and self._looks_like_asset(key):
                    yield key
                yield from self._walk(value)
        elif isinstance(data, list):
            for item in data:
                yield from self._walk(item)
        elif isinstance(data, str) and self._looks_like_asset(data):
            yield data

    @staticmethod
    def _looks_like_asset(value: str) -> bool:
        if value.startswith(("/static/", "/media/")):
            return True
        return value.startswith("http") and is_asset_path(normalize_url(value))

    def _heuristic(self, text: str) -> Iterator[str]:
        for span in self._BRACE_SPAN.finditer(text):
            for match in self._QUOTED_ASSET.finditer(span.group(0)):
                yield match.group(1)


DEFAULT_MATCHERS: Tuple[object, ...] = (
    PatternMatcher(
        "css-link",
        r"""<link[^>]*href=['"]((?:[^'"]+\.css)(?:\?[^'"]*)?)['"][^>]*>""",
    ),
    PatternMatcher(
        "script-src",
        r"""<script[^>]*src=['"]((?:[^'"]+\.js)(?:\?[^'"]*)?)['"][^>]*>""",
    ),
    PatternMatcher(
        "img-src",
        rf"""<img[^>]*src=['"]((?:[^'"]+\.(?:{IMAGE_EXTENSIONS}))(?:\?[^'"]*)?)['"][^>]*>""",
    ),
    PatternMatcher(
        "product-image",
        r"""<img[^>]*class=['"]*(?:product-image|catalog-image)[^'"]*['"]?\s+src=['"]"""
        rf"""((?:[^'"]+\.(?:{IMAGE_EXTENSIONS}))(?:\?[^'"]*)?)['"][^>]*>""",
    ),
    PatternMatcher(
        "font-url",
        rf"""url\(['"]?((?:[^'"()]+\.(?:{FONT_EXTENSIONS}))(?:\?[^'"()]*)?)['"]?\)""",
    ),
    PatternMatcher(
        "svg-ref",
        r"""<[^>]*(?:href|src)=['"]((?:[^'"]+\.svg)(?:\?[^'"]*)?)['"][^>]*>""",
    ),
    PatternMatcher(
        "inline-background",
        r"""style=['"][^"']*background(?:-image)?:\s*url\(['"]?([^'")+\s]+)['"]?\)""",
        flags=0,
    ),
    PatternMatcher(
        "font-face",
        rf"""@font-face\s*\{{[^}}]*src:\s*url\(['"]?((?:[^'"()]+\.(?:{FONT_EXTENSIONS}))(?:\?[^'"()]*)?)['"]?\)""",
        flags=re.IGNORECASE | re.MULTILINE,
    ),
    PatternMatcher(
        "font-src",
        rf"""src:\s*url\(['"]?((?:[^'"()]+\.(?:{FONT_EXTENSIONS}))(?:\?[^'"()]*)?)['"]?\)""",
    ),
    PatternMatcher("merged-bundle", r"""/static/_cache/merged/[^"'\s)><]+""", group=None),
    PatternMatcher("minified-bundle", r"""/static/_cache/minified/[^"'\s)><]+""", group=None),
    PatternMatcher("requirejs-text", r"""text!(/static/[^!'"\s]+)"""),
    PatternMatcher("quoted-static", r'''"(/static/[^"]+)"'''),
    PatternMatcher(
        "requirejs-resource",
        r"""["']((?:/static|/media)/[^"']+\.(?:js|css|svg|png|jpg|jpeg|gif|woff|woff2|ttf|eot)(?:\?[^'"]*)?)["']""",
        flags=0,
    ),
    EmbeddedJsonMatcher(),
)


class UrlExtractor:
    """Collect the distinct local asset URLs referenced by an HTML document."""

    def __init__(self, matchers: Optional[Sequence[object]] = None) -> None:
        self.matchers: List[object] = list(DEFAULT_MATCHERS if matchers is None else matchers)

    def _raw_matches(self, html: str) -> Iterable[str]:
        for matcher in self.matchers:
            name = getattr(matcher, "name", type(matcher).__name__)
            logger.debug("Processing pattern: %s", name)
            try:
                yield from matcher.matches(html)  # type: ignore[attr-defined]
            except Exception:  # pylint: disable=broad-except
                logger.exception("Matcher %s failed; continuing without it", name)

    def extract(self, html: str) -> List[str]:
        """Return asset URLs sorted ascending with duplicates removed."""
        if not html:
            return []
        urls = set()
        for raw in self._raw_matches(html):
            url = normalize_url(raw)
            if is_asset_path(url):
                urls.add(url)
        return sorted(urls)


def extract_urls(html: str) -> List[str]:
    """Convenience wrapper using the default matcher pipeline."""
    return UrlExtractor().extract(html)
