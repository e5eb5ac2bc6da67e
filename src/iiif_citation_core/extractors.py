"""Heuristic extraction of bibliographic fields from IIIF manifests.

Every extractor is a pure function of a `Manifest` (plus the manifest's
source URL where needed) and tolerates any missing field. The classification
heuristics are exposed as named predicates over plain strings so they can be
tested without building manifests.
"""

from __future__ import annotations

import re
from typing import Any, Final
from urllib.parse import urlsplit, urlunsplit

from .labels import first_metadata_value, normalize_label
from .models import CitationName, CitationType, Manifest

IIIF_CONTEXT_MARKER: Final = "iiif.io"

AUTHOR_LABELS: Final = ("Author", "Authors", "Creator", "Creators")
DATE_LABELS: Final = ("Date", "Publication Date", "Issued")
PUBLISHER_LABELS: Final = ("Publisher", "Institution", "Holding Institution", "Repository")
TYPE_LABELS: Final = ("Type",)

# First match wins; "ms" only needs a trailing word boundary.
_TYPE_RULES: Final[tuple[tuple[CitationType, re.Pattern[str]], ...]] = (
    ("manuscript", re.compile(r"manuscript|codex|ms\b")),
    ("article-journal", re.compile(r"article|journal|periodical")),
)
_DEFAULT_TYPE: Final[CitationType] = "book"

# "Created", "Published", "Created/published", "Published - created",
# but not "Created by", "Published by" or "Published for".
_CREATED_PUBLISHED_LABEL_RE: Final = re.compile(
    r"^(created(?!\s*by)|published(?!\s*(?:by|for)))"
    r"([-/\s]+(created(?!\s*by)|published(?!\s*(?:by|for))))?$",
    flags=re.IGNORECASE,
)
# A standalone 4-digit run: "1600s" or "16234" do not yield a year.
_YEAR_RE: Final = re.compile(r"\b(1[0-9]{3}|20[0-9]{2})\b")
_NAME_SEPARATOR_RE: Final = re.compile(r"[;\n]+")

NOTE_HEADING: Final = "IIIF manifest metadata"


def looks_like_iiif_manifest(text: str | None) -> bool:
    """Cheap pre-filter: IIIF manifests declare an iiif.io `@context`."""
    if not text:
        return False
    return IIIF_CONTEXT_MARKER in text


def classify_type_text(text: str) -> CitationType:
    """Map free text (label, description, type) to a CSL type."""
    haystack = (text or "").lower()
    for csl_type, pattern in _TYPE_RULES:
        if pattern.search(haystack):
            return csl_type
    return _DEFAULT_TYPE


def is_created_published_label(label: str) -> bool:
    """Return True for date-bearing labels such as ``Created/published``."""
    return bool(_CREATED_PUBLISHED_LABEL_RE.match((label or "").strip()))


def infer_type(manifest: Manifest) -> CitationType:
    """Infer a CSL type from the label, description and `Type` metadata."""
    label = normalize_label(manifest.label)
    hints = [
        chunk
        for chunk in (
            normalize_label(manifest.description),
            first_metadata_value(manifest, TYPE_LABELS),
        )
        if chunk
    ]
    return classify_type_text(f"{label} {' '.join(hints)}")


def parse_person_name(name: str) -> CitationName:
    """Split one name on whitespace: last token is the family name.

    ``"Last, First"`` order is not detected.
    """
    tokens = name.split()
    if len(tokens) == 1:
        return {"family": tokens[0]}
    return {"given": " ".join(tokens[:-1]), "family": tokens[-1]}


def extract_authors(manifest: Manifest) -> list[CitationName]:
    """Extract CSL names from the first author/creator metadata entry."""
    raw = first_metadata_value(manifest, AUTHOR_LABELS)
    if not raw:
        return []
    names = [part.strip() for part in _NAME_SEPARATOR_RE.split(raw)]
    return [parse_person_name(name) for name in names if name]


def extract_year(value: str) -> str:
    """Return the first plausible year in `value`, else `value` trimmed."""
    if match := _YEAR_RE.search(value or ""):
        return match.group(1)
    return (value or "").strip()


def extract_date(manifest: Manifest) -> str:
    """Extract a date string: a 4-digit year when one is present."""
    date_str = first_metadata_value(manifest, DATE_LABELS)

    if not date_str:
        for entry in manifest.metadata:
            if is_created_published_label(normalize_label(entry.label)):
                date_str = normalize_label(entry.value)
                if date_str:
                    break

    if not date_str:
        return ""
    return extract_year(date_str)


def extract_publisher(manifest: Manifest) -> str:
    return first_metadata_value(manifest, PUBLISHER_LABELS)


def _pick_link_id(obj: Any) -> str:
    if not isinstance(obj, dict):
        return ""
    for key in ("id", "@id", "href"):
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return ""


def _link_from_value(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        first = value[0]
        if isinstance(first, str):
            return first
        return _pick_link_id(first)
    return _pick_link_id(value)


def extract_homepage_url(manifest: Manifest) -> str:
    """Find a human-facing landing page: v3 `homepage`, then v2 `related`.

    The manifest URL itself is never used here; the citation mapper owns
    that fallback.
    """
    return _link_from_value(manifest.homepage) or _link_from_value(manifest.related)


def trim_manifest_directory(manifest_url: str) -> str:
    """Drop query, fragment and the last path segment of a manifest URL.

    Relative or unparsable URLs are returned unchanged.
    """
    if not manifest_url:
        return ""
    try:
        parts = urlsplit(manifest_url)
        if not parts.scheme or not parts.netloc:
            return manifest_url
        # Raises ValueError on an invalid port.
        _ = parts.port
    except ValueError:
        return manifest_url

    segments = parts.path.split("/")
    if len(segments) > 1 and segments[-1] == "":
        segments.pop()
    if len(segments) > 1:
        segments.pop()
    path = "/".join(segments)
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def _context_to_text(context: Any) -> str:
    if isinstance(context, list):
        return ",".join(str(item) for item in context)
    return str(context)


def build_note(manifest: Manifest, manifest_url: str) -> str:
    """Render the manifest's identity and metadata as a free-text note."""
    lines = [NOTE_HEADING, "=" * len(NOTE_HEADING), ""]

    if manifest_url:
        lines.append(f"Manifest URL: {manifest_url}")
    if manifest.at_id:
        lines.append(f"@id: {manifest.at_id}")
    if manifest.context:
        lines.append(f"@context: {_context_to_text(manifest.context)}")

    if manifest.metadata:
        lines.extend(["", "IIIF metadata:"])
        for entry in manifest.metadata:
            key = normalize_label(entry.label)
            value = normalize_label(entry.value)
            if key or value:
                lines.append(f"{key or '?'}: {value}")

    return "\n".join(lines).strip()


def extract_identifier(manifest: Manifest, manifest_url: str) -> str:
    """Pick a citekey-like identifier: `@id`, `id`, source URL, then label."""
    if manifest.at_id:
        return str(manifest.at_id)
    if manifest.id:
        return str(manifest.id)
    if manifest_url:
        return str(manifest_url)
    return normalize_label(manifest.label)


__all__ = [
    "AUTHOR_LABELS",
    "DATE_LABELS",
    "PUBLISHER_LABELS",
    "build_note",
    "classify_type_text",
    "extract_authors",
    "extract_date",
    "extract_homepage_url",
    "extract_identifier",
    "extract_publisher",
    "extract_year",
    "infer_type",
    "is_created_published_label",
    "looks_like_iiif_manifest",
    "parse_person_name",
    "trim_manifest_directory",
]
