from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .config_manager import get_config_manager


def _user_agent() -> str:
    return str(get_config_manager().get_setting("network.user_agent", "") or "iiif-citation")


DEFAULT_HEADERS = {
    "User-Agent": _user_agent(),
    "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
HTML_HEADERS = {
    **DEFAULT_HEADERS,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def dump_json(data: Any, indent: int = 2) -> str:
    """Serialize a batch the way it is written to stdout or `--out` files."""
    return json.dumps(data, indent=indent, ensure_ascii=False)


def save_json(path: str | Path, data: Any, indent: int = 2) -> None:
    """Write `data` as UTF-8 JSON, creating parent folders when needed."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(dump_json(data, indent=indent), encoding="utf-8")


def load_json(path: str | Path) -> Any:
    """Read a UTF-8 JSON document from disk."""
    return json.loads(Path(path).read_text(encoding="utf-8"))
