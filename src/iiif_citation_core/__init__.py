"""Convert IIIF Presentation manifests into CSL-JSON and Zotero items."""

__version__ = "1.1.0"

from .catalog import citation_to_catalog_item, citations_to_catalog_items
from .citation import manifest_to_citation
from .labels import first_metadata_value, normalize_label
from .pipeline import BatchResult, ConversionOutcome, ManifestConverter, convert_manifest_urls, init_converter, run_batch

__all__ = [
    "BatchResult",
    "ConversionOutcome",
    "ManifestConverter",
    "__version__",
    "citation_to_catalog_item",
    "citations_to_catalog_items",
    "convert_manifest_urls",
    "first_metadata_value",
    "init_converter",
    "manifest_to_citation",
    "normalize_label",
    "run_batch",
]
