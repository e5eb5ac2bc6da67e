"""Upload Zotero items through the Zotero Web API."""

from __future__ import annotations

from typing import Any

import requests

from .config_manager import get_config_manager
from .logger import get_logger, summarize_for_debug
from .models import CatalogItem

logger = get_logger(__name__)


class CatalogUploadError(Exception):
    """The Web API rejected the upload or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def items_endpoint(user_id: str, api_base: str | None = None) -> str:
    base = api_base or get_config_manager().get_setting("upload.api_base", "https://api.zotero.org")
    return f"{str(base).rstrip('/')}/users/{user_id}/items"


def upload_catalog_items(
    user_id: str,
    api_key: str,
    items: list[CatalogItem],
    *,
    api_base: str | None = None,
    timeout: float | None = None,
) -> Any:
    """POST `items` as one JSON array to the user's library.

    Returns the decoded API response, or None when there is nothing to send.
    Raises `CatalogUploadError` on network errors and non-success responses.
    """
    if not items:
        logger.warning("No items to upload; skipping Web API call.")
        return None
    if not user_id or not api_key:
        raise CatalogUploadError("Web API upload requires both a user id and an API key")

    cm = get_config_manager()
    if timeout is None:
        timeout = float(cm.get_setting("upload.timeout", 30))
    endpoint = items_endpoint(user_id, api_base)
    headers = {
        "Zotero-API-Key": api_key,
        "Content-Type": "application/json",
        "If-Unmodified-Since-Version": "0",
    }

    try:
        response = requests.post(endpoint, json=items, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise CatalogUploadError(f"Zotero API request failed: {exc}") from exc

    if not response.ok:
        body = response.text or ""
        logger.debug("Zotero API error body: %s", summarize_for_debug(body))
        raise CatalogUploadError(
            f"Zotero API error {response.status_code}: {body}", status_code=response.status_code, body=body
        )

    logger.debug("Uploaded %d item(s) to Zotero Web API (user %s).", len(items), user_id)
    return response.json() if response.content else None


__all__ = ["CatalogUploadError", "items_endpoint", "upload_catalog_items"]
