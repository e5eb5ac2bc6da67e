import json
import logging

import pytest
import requests

from iiif_citation_core import fetch, pipeline
from iiif_citation_core.fetch import ManifestFetchError

URL_A = "https://iiif.example.org/a/manifest.json"
URL_B = "https://iiif.example.org/b/manifest.json"
URL_C = "https://iiif.example.org/c/manifest.json"


def _manifest_body(label: str) -> str:
    return json.dumps(
        {
            "@context": "http://iiif.io/api/presentation/3/context.json",
            "id": f"https://iiif.example.org/{label}",
            "label": {"en": [label]},
        }
    )


@pytest.fixture
def fake_web(monkeypatch, fake_response):
    """Serve canned responses per URL through `requests.get`."""
    routes = {}
    calls = []

    def _get(url, *args, **kwargs):
        calls.append(url)
        handler = routes.get(url)
        if handler is None:
            return fake_response("Not found", status_code=404)
        if isinstance(handler, Exception):
            raise handler
        return handler

    monkeypatch.setattr(fetch.requests, "get", _get)
    return routes, calls


def test_run_batch_keeps_order_and_counts_failures(fake_web, fake_response):
    """A 404 in the middle is reported and skipped without reordering."""
    routes, calls = fake_web
    routes[URL_A] = fake_response(_manifest_body("Alpha"))
    routes[URL_C] = fake_response(_manifest_body("Gamma"))

    result = pipeline.run_batch([URL_A, URL_B, URL_C])

    assert [r["title"] for r in result.records] == ["Alpha", "Gamma"]
    assert result.total == 3
    assert result.succeeded == 2
    assert result.failed == 1
    assert result.failures[0].url == URL_B
    assert result.failures[0].error == "HTTP 404"
    assert result.summary() == "Warning: 1 of 3 URL(s) failed to convert. (2 succeeded)"
    assert calls == [URL_A, URL_B, URL_C]


def test_convert_manifest_urls_returns_only_successes(fake_web, fake_response):
    """The plain entry point returns the successful records in input order."""
    routes, _ = fake_web
    routes[URL_A] = fake_response(_manifest_body("Alpha"))
    routes[URL_C] = fake_response(_manifest_body("Gamma"))

    records = pipeline.convert_manifest_urls([URL_A, URL_B, URL_C])
    assert [r["id"] for r in records] == ["https://iiif.example.org/Alpha", "https://iiif.example.org/Gamma"]


def test_run_batch_skips_falsy_entries(fake_web, fake_response):
    """Empty entries are neither fetched nor counted."""
    routes, calls = fake_web
    routes[URL_A] = fake_response(_manifest_body("Alpha"))

    result = pipeline.run_batch(["", None, URL_A])
    assert result.total == 1
    assert result.summary() == "1 of 1 URL(s) converted successfully."
    assert calls == [URL_A]


@pytest.mark.parametrize(
    ("response_factory", "reason_prefix"),
    [
        (lambda fr: fr("<html>A catalog page</html>"), "Not a IIIF Presentation manifest"),
        (lambda fr: fr('{"@context": "http://iiif.io/api/presentation/2/context.json",'), "Malformed JSON"),
        (lambda fr: fr('["http://iiif.io/api/presentation/2/context.json"]'), "Manifest JSON is a list"),
        (lambda fr: fr("Server error", status_code=500), "HTTP 500"),
        (lambda fr: requests.Timeout("slow"), "Timed out"),
        (lambda fr: requests.ConnectionError("refused"), "Request failed"),
    ],
)
def test_run_batch_records_each_failure_kind(fake_web, fake_response, response_factory, reason_prefix):
    """Every retrieval failure kind becomes a failure outcome."""
    routes, _ = fake_web
    routes[URL_A] = response_factory(fake_response)

    result = pipeline.run_batch([URL_A])
    assert result.records == []
    assert result.failures[0].error.startswith(reason_prefix)
    assert result.summary() == "No valid IIIF manifests were processed."


def test_run_batch_mapping_failure_does_not_abort(monkeypatch):
    """A record that fails to map is reported and the batch continues."""

    def _fetcher(url):
        return {"label": url}

    def _broken_mapper(manifest, url):
        if url == URL_B:
            raise RuntimeError("boom")
        return {"id": url, "title": url}

    monkeypatch.setattr(pipeline, "manifest_to_citation", _broken_mapper)
    result = pipeline.run_batch([URL_A, URL_B, URL_C], fetcher=_fetcher)

    assert [r["id"] for r in result.records] == [URL_A, URL_C]
    assert result.failures[0].error == "Mapping failed: boom"


@pytest.mark.parametrize("bad_input", ["https://iiif.example.org/a/manifest.json", 42, None])
def test_run_batch_rejects_non_list_input(bad_input):
    """A bare string or a non-iterable is a caller error, raised immediately."""
    with pytest.raises(TypeError):
        pipeline.run_batch(bad_input)


def test_fetch_manifest_passes_timeout(monkeypatch, fake_response):
    """The configured timeout is forwarded to requests."""
    seen = {}

    def _get(url, headers=None, timeout=None):
        seen["timeout"] = timeout
        seen["accept"] = headers["Accept"]
        return fake_response(_manifest_body("Alpha"))

    monkeypatch.setattr(fetch.requests, "get", _get)
    manifest = fetch.fetch_manifest(URL_A, timeout=3)
    assert manifest["label"] == {"en": ["Alpha"]}
    assert seen["timeout"] == 3
    assert seen["accept"].startswith("application/json")


def test_fetch_manifest_error_carries_url_and_reason(fake_web):
    """ManifestFetchError exposes the URL and the short reason."""
    with pytest.raises(ManifestFetchError) as excinfo:
        fetch.fetch_manifest(URL_B, timeout=1)
    assert excinfo.value.url == URL_B
    assert excinfo.value.reason == "HTTP 404"


def test_converter_handle_uses_its_session(fake_response):
    """A converter handle routes requests through its own session."""

    class _Session:
        def __init__(self):
            self.urls = []

        def get(self, url, headers=None, timeout=None):
            self.urls.append((url, timeout))
            return fake_response(_manifest_body("Alpha"))

    session = _Session()
    converter = pipeline.init_converter(timeout=7, session=session)

    records = converter.from_manifest_url(URL_A)
    assert [r["title"] for r in records] == ["Alpha"]
    assert session.urls == [(URL_A, 7)]

    items = converter.to_catalog_items(records)
    assert items[0]["title"] == "Alpha"
    assert items[0]["itemType"] == "book"


def test_converter_handles_are_independent():
    """Handles carry their own settings; nothing is shared globally."""
    first = pipeline.init_converter(timeout=5)
    second = pipeline.init_converter(timeout=9)
    assert first is not second
    assert (first.timeout, second.timeout) == (5, 9)


def test_converter_from_manifest_url_rejects_empty():
    """An empty single URL is a caller error."""
    with pytest.raises(TypeError):
        pipeline.init_converter(timeout=1).from_manifest_url("")


def test_run_batch_survives_deeply_nested_body(fake_web, fake_response):
    """A body too deeply nested to decode fails its URL only."""
    routes, _ = fake_web
    routes[URL_A] = fake_response(_manifest_body("Alpha"))
    routes[URL_B] = fake_response('{"@context":"http://iiif.io/","x":' + "[" * 200000 + "]" * 200000 + "}")
    routes[URL_C] = fake_response(_manifest_body("Gamma"))

    result = pipeline.run_batch([URL_A, URL_B, URL_C])

    assert [r["title"] for r in result.records] == ["Alpha", "Gamma"]
    assert result.failed == 1
    assert result.failures[0].url == URL_B
    assert result.failures[0].error.startswith("Malformed JSON")


def test_run_batch_survives_unexpected_fetcher_errors():
    """Any exception from a custom fetcher becomes a failure outcome."""

    def _fetcher(url):
        if url == URL_B:
            raise requests.ConnectionError("refused")
        return {"label": url}

    result = pipeline.run_batch([URL_A, URL_B, URL_C], fetcher=_fetcher)

    assert [r["title"] for r in result.records] == [URL_A, URL_C]
    assert result.failures[0].url == URL_B
    assert result.failures[0].error == "Retrieval failed: refused"
    assert result.summary() == "Warning: 1 of 3 URL(s) failed to convert. (2 succeeded)"


def test_run_batch_leaves_reporting_to_the_caller(fake_web, fake_response, caplog):
    """Ordinary fetch failures and the tally are only logged at debug level."""
    routes, _ = fake_web
    routes[URL_A] = fake_response(_manifest_body("Alpha"))

    with caplog.at_level(logging.DEBUG, logger="iiif_citation"):
        pipeline.run_batch([URL_A, URL_B])

    messages = [r.getMessage() for r in caplog.records]
    assert any(URL_B in m and "HTTP 404" in m for m in messages)
    assert any("1 of 2 URL(s) failed" in m for m in messages)
    assert [r.getMessage() for r in caplog.records if r.levelno >= logging.INFO] == []
