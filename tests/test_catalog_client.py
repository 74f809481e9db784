"""Tests for quiver.catalog.client module."""

import json

import httpx
import pytest

from quiver.catalog.client import CatalogClient
from quiver.catalog.exceptions import ManifestFetchError, ManifestParseError
from quiver.utils.errors import TransportFailure

MANIFEST = {"categories": {"core": ["sdlc-enforcer"]}}


def make_client(handler) -> CatalogClient:
    return CatalogClient(http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestFetchManifest:
    """Tests for CatalogClient.fetch_manifest."""

    def test_fetches_remote_manifest(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://example.org/catalog/manifest.json"
            return httpx.Response(200, json=MANIFEST)

        with make_client(handler) as client:
            manifest = client.fetch_manifest("https://example.org/catalog/manifest.json")

        assert manifest.names() == frozenset({"sdlc-enforcer"})
        assert (
            manifest.location_for("sdlc-enforcer")
            == "https://example.org/catalog/core/sdlc-enforcer.md"
        )

    def test_http_error_is_fetch_error(self):
        with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(ManifestFetchError) as exc_info:
                client.fetch_manifest("https://example.org/manifest.json")

        assert exc_info.value.location == "https://example.org/manifest.json"

    def test_connection_error_is_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(handler) as client:
            with pytest.raises(ManifestFetchError, match="connection refused"):
                client.fetch_manifest("https://example.org/manifest.json")

    def test_invalid_document_is_parse_error(self):
        with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(ManifestParseError):
                client.fetch_manifest("https://example.org/manifest.json")

    def test_reads_local_path(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps(MANIFEST))

        manifest = CatalogClient().fetch_manifest(str(path))

        assert manifest.location_for("sdlc-enforcer") == str(tmp_path / "core" / "sdlc-enforcer.md")

    def test_reads_file_url(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps(MANIFEST))

        manifest = CatalogClient().fetch_manifest(path.as_uri())

        assert "sdlc-enforcer" in manifest

    def test_missing_local_file_is_fetch_error(self, tmp_path):
        with pytest.raises(ManifestFetchError):
            CatalogClient().fetch_manifest(str(tmp_path / "missing.json"))


class TestFetchPayload:
    """Tests for CatalogClient.fetch_payload."""

    def test_returns_bytes_unchanged(self):
        with make_client(lambda request: httpx.Response(200, content=b"")) as client:
            assert client.fetch_payload("https://example.org/a.md") == b""

    def test_server_error_is_transport_failure(self):
        with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(TransportFailure) as exc_info:
                client.fetch_payload("https://example.org/a.md")

        assert exc_info.value.location == "https://example.org/a.md"

    def test_timeout_is_transport_failure(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with make_client(handler) as client:
            with pytest.raises(TransportFailure, match="timed out"):
                client.fetch_payload("https://example.org/a.md")

    def test_missing_local_payload_is_transport_failure(self, tmp_path):
        with pytest.raises(TransportFailure):
            CatalogClient().fetch_payload(str(tmp_path / "a.md"))


class TestClientLifecycle:
    """Tests for HTTP client ownership."""

    def test_injected_client_is_not_closed(self):
        http_client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with CatalogClient(http_client=http_client):
            pass

        assert not http_client.is_closed
        http_client.close()

    def test_owned_client_is_closed(self):
        client = CatalogClient()
        http_client = client._get_http_client()

        client.close()

        assert http_client.is_closed
