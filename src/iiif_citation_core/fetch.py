"""Retrieve IIIF manifests over HTTP.

Only "parsed JSON object" or `ManifestFetchError` leave this module; the
pipeline never sees `requests` exceptions.
"""

from __future__ import annotations

import json
from typing import Any

import requests

from .config_manager import get_config_manager
from .extractors import looks_like_iiif_manifest
from .logger import get_logger, summarize_for_debug
from .utils import DEFAULT_HEADERS

logger = get_logger(__name__)


class ManifestFetchError(Exception):
    """A manifest URL could not be turned into manifest JSON."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


def fetch_manifest(
    url: str,
    *,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """Fetch `url` and return the manifest JSON object.

    Raises `ManifestFetchError` on network errors and timeouts, non-success
    status codes, bodies that do not look like IIIF, malformed JSON, and JSON
    that is not an object.
    """
    if timeout is None:
        timeout = get_config_manager().get_request_timeout()
    getter = session.get if session is not None else requests.get

    response = None
    try:
        response = getter(url, headers=DEFAULT_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.Timeout as exc:
        raise ManifestFetchError(url, f"Timed out after {timeout}s") from exc
    except requests.HTTPError as exc:
        status = getattr(exc.response, "status_code", None) or getattr(response, "status_code", "?")
        raise ManifestFetchError(url, f"HTTP {status}") from exc
    except requests.RequestException as exc:
        raise ManifestFetchError(url, f"Request failed: {exc}") from exc

    text = response.text
    if not looks_like_iiif_manifest(text):
        logger.debug("Body of %s did not look like IIIF: %s", url, summarize_for_debug(text or "", 500))
        raise ManifestFetchError(url, "Not a IIIF Presentation manifest")

    # Very deep nesting raises RecursionError, not JSONDecodeError.
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestFetchError(url, f"Malformed JSON: {exc.msg} at line {exc.lineno}") from exc
    except (ValueError, RecursionError) as exc:
        raise ManifestFetchError(url, f"Malformed JSON: {type(exc).__name__}") from exc

    if not isinstance(payload, dict):
        raise ManifestFetchError(url, f"Manifest JSON is a {type(payload).__name__}, not an object")
    return payload


__all__ = ["ManifestFetchError", "fetch_manifest"]
