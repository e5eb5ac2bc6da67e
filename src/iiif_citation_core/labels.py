"""Flatten IIIF label encodings and look up metadata values.

A IIIF label (or metadata value) can arrive as:

- a plain string (v2): ``"Foo"``
- an array of strings or ``{"@value": ...}`` objects (v2): ``[{"@value": "Foo"}]``
- a language map (v3): ``{"en": ["Foo", "Bar"], "fr": ["Truc"]}``

Language maps are flattened in the map's own iteration order. For JSON parsed
with the stdlib that is document order, but the order of languages is not part
of the contract and callers must not rely on it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Manifest


def normalize_label(value: Any) -> str:
    """Collapse any IIIF label encoding into one display string. Never raises."""
    if not value:
        return ""

    if isinstance(value, Mapping):
        pieces = []
        for values in value.values():
            if isinstance(values, list):
                pieces.extend(str(v) for v in values if v)
        return " ".join(pieces).strip()

    if isinstance(value, (list, tuple)):
        pieces = []
        for item in value:
            if isinstance(item, Mapping) and "@value" in item:
                pieces.append(str(item["@value"]))
            elif item is not None:
                pieces.append(str(item))
        return " ".join(pieces).strip()

    if isinstance(value, str):
        return value.strip()

    return str(value).strip()


def first_metadata_value(manifest: Manifest, candidate_names: Iterable[str]) -> str:
    """Return the first non-empty metadata value whose label matches a candidate.

    Entries are scanned in document order and, within an entry, candidates in
    the caller's priority order. Label comparison is case-insensitive.
    """
    candidates = [name.lower() for name in candidate_names]
    for entry in manifest.metadata:
        label = normalize_label(entry.label).lower()
        for name in candidates:
            if label == name:
                value = normalize_label(entry.value)
                if value:
                    return value
    return ""


__all__ = ["first_metadata_value", "normalize_label"]
