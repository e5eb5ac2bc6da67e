"""Discover IIIF manifest URLs linked from an HTML page.

Only the link's human label (text, else `title`, else `aria-label`) is
matched against "IIIF manifest"; the href itself is never inspected. This is
a fixed-pattern sniffer, not a general scraper.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup, Tag

from .config_manager import get_config_manager
from .logger import get_logger
from .utils import HTML_HEADERS

logger = get_logger(__name__)

MANIFEST_TEXT_RE: Final = re.compile(r"iiif[\s_-]*manifest", flags=re.IGNORECASE)
REFERRER_SELECTOR: Final = "a, [role='link']"


@dataclass(frozen=True)
class ManifestCandidate:
    label: str
    href: str | None
    resolved_href: str | None


@dataclass
class SniffResult:
    candidates: list[ManifestCandidate] = field(default_factory=list)
    unique: list[ManifestCandidate] = field(default_factory=list)

    @property
    def manifest_urls(self) -> list[str]:
        return [c.resolved_href for c in self.unique if c.resolved_href]


def node_label(node: Tag) -> str:
    """Return the visible text of a node, else its `title`, else `aria-label`."""
    for value in (node.get_text(), node.get("title"), node.get("aria-label")):
        text = str(value or "").strip()
        if text:
            return text
    return ""


def resolve_href(href: str | None, base_url: str | None = None) -> str | None:
    """Resolve `href` against `base_url`; None when no absolute URL results."""
    if not href:
        return None
    try:
        resolved = urljoin(base_url, href) if base_url else href
        parts = urlsplit(resolved)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return resolved


def find_manifest_candidates(html: str, base_url: str | None = None) -> list[ManifestCandidate]:
    """List every link-like element whose label reads like "IIIF manifest"."""
    soup = BeautifulSoup(html or "", "html.parser")
    results: list[ManifestCandidate] = []

    for node in soup.select(REFERRER_SELECTOR):
        label = node_label(node)
        if not label or not MANIFEST_TEXT_RE.search(label):
            continue
        href = (node.name == "a" and node.get("href")) or node.get("data-href") or None
        results.append(ManifestCandidate(label=label, href=href, resolved_href=resolve_href(href, base_url)))

    return results


def dedupe_candidates(candidates: list[ManifestCandidate]) -> list[ManifestCandidate]:
    """Keep one candidate per resolved URL, preferring the shorter label."""
    by_url: dict[str, ManifestCandidate] = {}
    for candidate in candidates:
        if not candidate.resolved_href:
            continue
        existing = by_url.get(candidate.resolved_href)
        if existing is None or len(candidate.label) < len(existing.label):
            by_url[candidate.resolved_href] = candidate
    return list(by_url.values())


def sniff_manifest_urls(html: str, base_url: str | None = None) -> SniffResult:
    """Sniff an HTML document for manifest links."""
    candidates = find_manifest_candidates(html, base_url)
    return SniffResult(candidates=candidates, unique=dedupe_candidates(candidates))


def fetch_page_html(
    page_url: str,
    *,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> str:
    """Download an HTML page. Network and status errors propagate."""
    if timeout is None:
        timeout = get_config_manager().get_request_timeout()
    getter = session.get if session is not None else requests.get
    response = getter(page_url, headers=HTML_HEADERS, timeout=timeout)
    response.raise_for_status()
    return response.text


def sniff_page(
    page_url: str,
    *,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> SniffResult:
    """Fetch `page_url` and sniff it, resolving relative links against it."""
    html = fetch_page_html(page_url, timeout=timeout, session=session)
    result = sniff_manifest_urls(html, base_url=page_url)
    if result.manifest_urls:
        logger.info("Found %d manifest URL(s) on %s", len(result.manifest_urls), page_url)
    else:
        logger.warning("No IIIF manifest links matched %r on %s", MANIFEST_TEXT_RE.pattern, page_url)
    return result


__all__ = [
    "MANIFEST_TEXT_RE",
    "ManifestCandidate",
    "SniffResult",
    "dedupe_candidates",
    "fetch_page_html",
    "find_manifest_candidates",
    "node_label",
    "resolve_href",
    "sniff_manifest_urls",
    "sniff_page",
]
