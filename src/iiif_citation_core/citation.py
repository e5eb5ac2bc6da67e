"""Manifest → CSL-JSON citation record."""

from __future__ import annotations

from typing import Any, Final

from .extractors import (
    build_note,
    extract_authors,
    extract_date,
    extract_homepage_url,
    extract_identifier,
    extract_publisher,
    infer_type,
    trim_manifest_directory,
)
from .labels import normalize_label
from .models import CitationRecord, Manifest

UNTITLED_MANIFEST: Final = "[untitled IIIF manifest]"


def manifest_to_citation(manifest: Manifest | dict[str, Any], source_url: str = "") -> CitationRecord:
    """Convert one IIIF manifest into a CSL-JSON item.

    `title` and `id` are always non-empty. Optional fields (`author`,
    `issued`, `publisher`, `note`) are only present when something was
    extracted, so key presence means "known".
    """
    view = Manifest.from_json(manifest)
    source_url = source_url or ""

    identifier = extract_identifier(view, source_url)
    title = normalize_label(view.label) or identifier or UNTITLED_MANIFEST

    record: CitationRecord = {
        "id": identifier or title,
        "type": infer_type(view),
        "title": title,
        "URL": _landing_url(view, source_url),
    }

    if authors := extract_authors(view):
        record["author"] = authors
    if issued := extract_date(view):
        record["issued"] = {"date-parts": [[issued]]}
    if publisher := extract_publisher(view):
        record["publisher"] = publisher
    if note := build_note(view, source_url):
        record["note"] = note

    return record


def _landing_url(view: Manifest, source_url: str) -> str:
    """Homepage, then manifest ids, then the manifest's parent directory."""
    return (
        extract_homepage_url(view)
        or _as_text(view.at_id)
        or _as_text(view.id)
        or trim_manifest_directory(source_url)
        or ""
    )


def _as_text(value: Any) -> str:
    return str(value) if value else ""


__all__ = ["UNTITLED_MANIFEST", "manifest_to_citation"]
