"""Data models returned by the extraction, rewrite and upload flows."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, NamedTuple, Optional

REWRITTEN = "rewritten"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class LedgerEntry:
    """Outcome recorded for one normalized asset URL."""

    status: str
    cdn_url: Optional[str] = None
    reason: Optional[str] = None


class RewriteLedger:
    """Per-document record of which asset URLs were rewritten or skipped."""

    def __init__(self) -> None:
        self._entries: Dict[str, LedgerEntry] = {}
        self.replacement_count = 0

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, url: str) -> Optional[LedgerEntry]:
        return self._entries.get(url)

    def is_resolved(self, url: str) -> bool:
        """Return True once the URL has been rewritten or skipped."""
        entry = self._entries.get(url)
        return entry is not None and entry.status in (REWRITTEN, SKIPPED)

    def mark_rewritten(self, url: str, cdn_url: str, occurrences: int = 1) -> None:
        self._entries[url] = LedgerEntry(status=REWRITTEN, cdn_url=cdn_url)
        self.replacement_count += occurrences

    def mark_skipped(self, url: str, reason: str) -> None:
        self._entries[url] = LedgerEntry(status=SKIPPED, reason=reason)

    def mark_failed(self, url: str, reason: str) -> None:
        # A rewritten entry is never downgraded by a later failed occurrence.
        if self.is_resolved(url):
            return
        self._entries[url] = LedgerEntry(status=FAILED, reason=reason)

    def _with_status(self, status: str) -> Dict[str, LedgerEntry]:
        return {url: entry for url, entry in self._entries.items() if entry.status == status}

    @property
    def rewritten(self) -> Dict[str, str]:
        return {url: entry.cdn_url or "" for url, entry in self._with_status(REWRITTEN).items()}

    @property
    def skipped(self) -> Dict[str, str]:
        return {url: entry.reason or "" for url, entry in self._with_status(SKIPPED).items()}

    @property
    def failed(self) -> Dict[str, str]:
        return {url: entry.reason or "" for url, entry in self._with_status(FAILED).items()}

    def as_dict(self) -> Dict[str, dict]:
        return {url: asdict(entry) for url, entry in self._entries.items()}


class RewriteResult(NamedTuple):
    """Rewritten document together with the ledger of its pass."""

    html: str
    ledger: RewriteLedger


@dataclass
class UploadDetail:
    """Outcome of uploading a single asset URL."""

    url: str
    success: bool
    message: str


@dataclass
class UploadResults:
    """Aggregate counters for an upload batch."""

    total: int = 0
    success: int = 0
    failed: int = 0
    details: List[UploadDetail] = field(default_factory=list)

    def record(self, url: str, success: bool, message: str) -> None:
        if success:
            self.success += 1
        else:
            self.failed += 1
        self.details.append(UploadDetail(url=url, success=success, message=message))


@dataclass
class AnalyzeResponse:
    """Payload returned by the analyze use case."""

    success: bool
    message: str
    urls: Optional[List[str]] = None

    def to_dict(self) -> dict:
        payload: dict = {"success": self.success, "message": self.message}
        if self.urls is not None:
            payload["urls"] = list(self.urls)
        return payload


@dataclass
class UploadResponse:
    """Payload returned by the upload use case."""

    success: bool
    message: str
    results: Optional[UploadResults] = None

    def to_dict(self) -> dict:
        payload: dict = {"success": self.success, "message": self.message}
        if self.results is not None:
            payload["results"] = asdict(self.results)
        return payload
