"""Record shapes shared by the conversion pipeline.

`Manifest` is a permissive view over raw IIIF JSON: every field is optional
and anything that is not a JSON object parses to an empty manifest. The
`CitationRecord` and `CatalogItem` dicts keep the exact key names of CSL-JSON
and of the Zotero item JSON, so they serialize without any renaming step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

CitationType = Literal["book", "article-journal", "manuscript"]


@dataclass(frozen=True)
class MetadataEntry:
    """One `{label, value}` pair from a manifest `metadata` list."""

    label: Any = None
    value: Any = None


@dataclass(frozen=True)
class Manifest:
    """Optional-field view of a IIIF v2/v3 manifest."""

    at_id: Any = None
    id: Any = None
    context: Any = None
    label: Any = None
    description: Any = None
    metadata: tuple[MetadataEntry, ...] = field(default_factory=tuple)
    homepage: Any = None
    related: Any = None

    @classmethod
    def from_json(cls, data: Any) -> Manifest:
        """Build a manifest view from parsed JSON, tolerating any shape."""
        if isinstance(data, Manifest):
            return data
        if not isinstance(data, dict):
            return cls()

        raw_metadata = data.get("metadata")
        entries: list[MetadataEntry] = []
        if isinstance(raw_metadata, list):
            for entry in raw_metadata:
                if isinstance(entry, dict):
                    entries.append(MetadataEntry(label=entry.get("label"), value=entry.get("value")))

        return cls(
            at_id=data.get("@id"),
            id=data.get("id"),
            context=data.get("@context"),
            label=data.get("label"),
            description=data.get("description"),
            metadata=tuple(entries),
            homepage=data.get("homepage"),
            related=data.get("related"),
        )


class CitationName(TypedDict, total=False):
    given: str
    family: str
    literal: str


# Functional syntax: CSL keys such as "date-parts" and "collection-title"
# are not valid identifiers. date-parts holds [[year, month?, day?]].
CitationIssued = TypedDict("CitationIssued", {"date-parts": list[list[Any]]}, total=False)

CitationRecord = TypedDict(
    "CitationRecord",
    {
        "id": str,
        "type": str,
        "title": str,
        "URL": str,
        "author": list[CitationName],
        "issued": CitationIssued,
        "publisher": str,
        "note": str,
        "archive": str,
        "archive_location": str,
        "collection-title": str,
    },
    total=False,
)


class CatalogCreator(TypedDict):
    creatorType: str
    firstName: str
    lastName: str


class CatalogItem(TypedDict, total=False):
    itemType: str
    title: str
    creators: list[CatalogCreator]
    date: str
    publisher: str
    archive: str
    archiveLocation: str
    libraryCatalog: str
    url: str
    extra: str


__all__ = [
    "CatalogCreator",
    "CatalogItem",
    "CitationIssued",
    "CitationName",
    "CitationRecord",
    "CitationType",
    "Manifest",
    "MetadataEntry",
]
