"""Test bootstrap.

Ensures `src/` is importable and keeps log files out of the working tree.
"""

from __future__ import annotations

import contextlib
import json
import sys
import tempfile
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def _config_manager():
    from iiif_citation_core.config_manager import get_config_manager

    return get_config_manager()


def _drop_log_handlers(logger_mod) -> None:
    for handler in list(logger_mod.app_logger.handlers):
        logger_mod.app_logger.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()


def pytest_configure():
    """Redirect session logging to a temporary folder before test collection."""
    cm = _config_manager()
    session_logs_dir = Path(tempfile.mkdtemp(prefix="iiif-citation-pytest-logs-")) / "logs"
    cm.set_logs_dir(str(session_logs_dir))

    from iiif_citation_core import logger as logger_mod

    session_logs_dir.mkdir(parents=True, exist_ok=True)
    logger_mod.LOG_BASE_DIR = session_logs_dir
    _drop_log_handlers(logger_mod)


@pytest.fixture(autouse=True)
def _redirect_test_logging(monkeypatch, tmp_path):
    """Give every test its own log directory and fresh handlers."""
    from iiif_citation_core import logger as logger_mod

    test_logs_dir = tmp_path / "fixture-logs"
    test_logs_dir.mkdir(parents=True, exist_ok=True)
    _drop_log_handlers(logger_mod)
    monkeypatch.setattr(logger_mod, "LOG_BASE_DIR", test_logs_dir)
    logger_mod.setup_logging()
    yield
    _drop_log_handlers(logger_mod)


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, text: str = "", status_code: int = 200, payload=None):
        self.text = text
        self.status_code = status_code
        self.content = text.encode("utf-8")
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)
        return None

    def json(self):
        if self._payload is not None:
            return self._payload
        return json.loads(self.text)


@pytest.fixture
def fake_response():
    return FakeResponse
