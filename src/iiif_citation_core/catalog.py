"""CSL-JSON citation record → Zotero item JSON."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Final

from .logger import get_logger
from .models import CatalogCreator, CatalogItem

logger = get_logger(__name__)

ITEM_TYPE_MAP: Final[dict[str, str]] = {
    "book": "book",
    "article-journal": "journalArticle",
    "manuscript": "manuscript",
}
DEFAULT_ITEM_TYPE: Final = "book"
UNTITLED_ITEM: Final = "[untitled]"

# CSL key -> Zotero key, copied only when truthy on the source record.
_PASS_THROUGH_FIELDS: Final = (
    ("publisher", "publisher"),
    ("archive", "archive"),
    ("archive_location", "archiveLocation"),
    ("collection-title", "libraryCatalog"),
    ("URL", "url"),
    ("note", "extra"),
)


def map_item_type(csl_type: str | None) -> str:
    """Map a CSL type to a Zotero itemType, defaulting to `book`."""
    return ITEM_TYPE_MAP.get(str(csl_type or "").lower(), DEFAULT_ITEM_TYPE)


def _clean(value: Any) -> str:
    return str(value or "").strip()


def map_creators(authors: Any) -> list[CatalogCreator]:
    """Convert CSL names into Zotero author creators.

    An author with a given name but no family name gets the given name as
    `lastName` too, so no creator is emitted with an empty surname.
    """
    if not isinstance(authors, list):
        return []

    creators: list[CatalogCreator] = []
    for author in authors:
        if not isinstance(author, Mapping):
            continue
        given = _clean(author.get("given"))
        family = _clean(author.get("family"))
        literal = _clean(author.get("literal"))

        if given or family:
            first_name, last_name = given, family or given
        elif literal:
            first_name, last_name = "", literal
        else:
            continue

        creators.append({"creatorType": "author", "firstName": first_name, "lastName": last_name})
    return creators


def flatten_issued(issued: Any) -> str:
    """Flatten CSL `{"date-parts": [[Y, M, D]]}` into `YYYY[-MM[-DD]]`."""
    if not isinstance(issued, Mapping):
        return ""
    date_parts = issued.get("date-parts")
    if not isinstance(date_parts, list) or not date_parts:
        return ""
    parts = date_parts[0]
    if not isinstance(parts, list) or not parts:
        return ""

    year = parts[0]
    if not year:
        return ""
    month = parts[1] if len(parts) > 1 else None
    day = parts[2] if len(parts) > 2 else None

    out = str(year)
    if month is not None:
        out += "-" + str(month).rjust(2, "0")
        if day is not None:
            out += "-" + str(day).rjust(2, "0")
    return out


def citation_to_catalog_item(record: Mapping[str, Any]) -> CatalogItem:
    """Convert one CSL-JSON item into a Zotero item."""
    item: CatalogItem = {
        "itemType": map_item_type(record.get("type")),
        "title": record.get("title") or UNTITLED_ITEM,
        "creators": map_creators(record.get("author")),
    }

    if date := flatten_issued(record.get("issued")):
        item["date"] = date

    for csl_key, zotero_key in _PASS_THROUGH_FIELDS:
        if value := record.get(csl_key):
            item[zotero_key] = value

    return item


def citations_to_catalog_items(records: Iterable[Any]) -> list[CatalogItem]:
    """Convert a batch, skipping (and logging) records that cannot be mapped."""
    items: list[CatalogItem] = []
    for index, record in enumerate(records):
        try:
            items.append(citation_to_catalog_item(record))
        except Exception as exc:
            logger.error("Skipping CSL item #%d: %s", index, exc, exc_info=True)
    return items


__all__ = [
    "DEFAULT_ITEM_TYPE",
    "ITEM_TYPE_MAP",
    "citation_to_catalog_item",
    "citations_to_catalog_items",
    "flatten_issued",
    "map_creators",
    "map_item_type",
]
