"""Batch conversion of manifest URLs into CSL-JSON items.

Each URL yields a `ConversionOutcome` (success with a record, or failure with
a reason). The records list and the success/failure tally are both derived
from the ordered outcomes, so one failed URL never aborts or reorders the
rest of the batch.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import requests
from tqdm import tqdm

from .catalog import citations_to_catalog_items
from .citation import manifest_to_citation
from .config_manager import get_config_manager
from .fetch import ManifestFetchError, fetch_manifest
from .logger import get_logger
from .models import CatalogItem, CitationRecord
from .sniffer import SniffResult, sniff_page

logger = get_logger(__name__)

ManifestFetcher = Callable[[str], dict[str, Any]]


@dataclass(frozen=True)
class ConversionOutcome:
    """Result of converting one manifest URL."""

    url: str
    record: CitationRecord | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass
class BatchResult:
    """Ordered per-URL outcomes of a conversion batch."""

    outcomes: list[ConversionOutcome] = field(default_factory=list)

    @property
    def records(self) -> list[CitationRecord]:
        return [o.record for o in self.outcomes if o.record is not None]

    @property
    def failures(self) -> list[ConversionOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return len(self.records)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def summary(self) -> str:
        """Human-readable tally, e.g. ``2 of 3 URL(s) converted successfully.``"""
        if self.succeeded == 0:
            return "No valid IIIF manifests were processed."
        if self.failed == 0:
            return f"{self.succeeded} of {self.total} URL(s) converted successfully."
        return f"Warning: {self.failed} of {self.total} URL(s) failed to convert. ({self.succeeded} succeeded)"


def _validate_urls(urls: Any) -> list[Any]:
    if isinstance(urls, (str, bytes)) or not isinstance(urls, Iterable):
        raise TypeError("manifest urls must be an iterable of URL strings")
    return list(urls)


def convert_one(url: str, fetcher: ManifestFetcher) -> ConversionOutcome:
    """Fetch and convert a single URL, capturing any failure as an outcome."""
    try:
        manifest = fetcher(url)
    except ManifestFetchError as exc:
        logger.debug("Skipping %s: %s", url, exc.reason)
        return ConversionOutcome(url=url, error=exc.reason)
    except Exception as exc:
        logger.error("Retrieval failed for %s: %s", url, exc, exc_info=True)
        return ConversionOutcome(url=url, error=f"Retrieval failed: {exc}")

    try:
        record = manifest_to_citation(manifest, url)
    except Exception as exc:
        logger.error("Mapping failed for %s: %s", url, exc, exc_info=True)
        return ConversionOutcome(url=url, error=f"Mapping failed: {exc}")

    logger.debug("Converted %s -> %r", url, record.get("title"))
    return ConversionOutcome(url=url, record=record)


def run_batch(
    urls: Iterable[str],
    *,
    fetcher: ManifestFetcher | None = None,
    progress: bool = False,
) -> BatchResult:
    """Convert `urls` sequentially; falsy entries are skipped and not counted."""
    targets = [url for url in _validate_urls(urls) if url]
    fetch = fetcher or fetch_manifest

    iterator: Iterable[str] = targets
    if progress:
        iterator = tqdm(targets, desc="Manifests", unit="url", file=sys.stderr)

    result = BatchResult(outcomes=[convert_one(url, fetch) for url in iterator])
    logger.debug(result.summary())
    return result


def convert_manifest_urls(urls: Iterable[str], *, fetcher: ManifestFetcher | None = None) -> list[CitationRecord]:
    """Convert manifest URLs to CSL-JSON items, keeping only the successes."""
    return run_batch(urls, fetcher=fetcher).records


class ManifestConverter:
    """Handle bundling retrieval settings with the conversion entry points."""

    def __init__(self, timeout: float | None = None, session: requests.Session | None = None):
        """Initialize with a per-request timeout and an optional shared HTTP session."""
        self.timeout = timeout if timeout is not None else get_config_manager().get_request_timeout()
        self.session = session

    def fetch(self, url: str) -> dict[str, Any]:
        return fetch_manifest(url, timeout=self.timeout, session=self.session)

    def run_batch(self, urls: Iterable[str], *, progress: bool = False) -> BatchResult:
        return run_batch(urls, fetcher=self.fetch, progress=progress)

    def from_manifest_urls(self, urls: Iterable[str]) -> list[CitationRecord]:
        """Convert many manifest URLs; failures are logged and dropped."""
        return self.run_batch(urls).records

    def from_manifest_url(self, url: str) -> list[CitationRecord]:
        """Convert one manifest URL; the result has zero or one item."""
        if not url or not isinstance(url, str):
            raise TypeError("manifest url must be a non-empty string")
        return self.from_manifest_urls([url])

    def to_catalog_items(self, records: Iterable[Any]) -> list[CatalogItem]:
        return citations_to_catalog_items(records)

    def sniff_page(self, page_url: str) -> SniffResult:
        """Discover manifest URLs linked from an HTML page."""
        return sniff_page(page_url, timeout=self.timeout, session=self.session)


def init_converter(timeout: float | None = None, session: requests.Session | None = None) -> ManifestConverter:
    """Create a converter handle; nothing is registered globally."""
    return ManifestConverter(timeout=timeout, session=session)


__all__ = [
    "BatchResult",
    "ConversionOutcome",
    "ManifestConverter",
    "convert_manifest_urls",
    "convert_one",
    "init_converter",
    "run_batch",
]
