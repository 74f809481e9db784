"""Transport for catalog manifests and artifact payloads.

Remote locations (``http://``, ``https://``) are retrieved with a shared
httpx client so that parallel payload downloads benefit from connection
pooling. ``file://`` URLs and plain paths are read from disk, which makes
local mirrors and checked-out catalogs work the same way as remote ones.
"""

from __future__ import annotations

import threading
from pathlib import Path
from types import TracebackType
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from quiver import __version__
from quiver.catalog.exceptions import ManifestFetchError, TransportFailure
from quiver.catalog.manifest import Manifest, parse_manifest
from quiver.utils.logging import log_message, log_transfer

DEFAULT_TIMEOUT_SECONDS = 30.0

_HTTP_SCHEMES = frozenset({"http", "https"})


class CatalogClient:
    """Retrieve catalog documents from HTTP(S) or the local filesystem.

    HTTP Client Sharing:
        A single ``httpx.Client`` is used for every request made through
        this instance. It is thread-safe, so installer workers share it.
        An injected client (e.g. one built on ``httpx.MockTransport`` in
        tests) is never closed by this class.

    Usage:
        with CatalogClient(timeout_seconds=10) as client:
            manifest = client.fetch_manifest(url)
            payload = client.fetch_payload(manifest.location_for("sdlc-enforcer"))
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._owns_client = http_client is None
        self._http_client = http_client
        self._client_lock = threading.Lock()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _get_http_client(self) -> httpx.Client:
        with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.Client(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    follow_redirects=True,
                    headers={"User-Agent": f"quiver/{__version__}"},
                )
            return self._http_client

    def _read(self, location: str) -> bytes:
        """Read raw bytes from a URL or path.

        Raises:
            httpx.HTTPError: For HTTP-level failures (status, timeout, connection)
            OSError: For filesystem failures
        """
        parsed = urlparse(location)
        if parsed.scheme in _HTTP_SCHEMES:
            response = self._get_http_client().get(
                location, timeout=httpx.Timeout(self.timeout_seconds)
            )
            response.raise_for_status()
            return response.content
        if parsed.scheme == "file":
            return Path(url2pathname(parsed.path)).read_bytes()
        return Path(location).read_bytes()

    def fetch_manifest(self, location: str) -> Manifest:
        """Retrieve and parse the catalog manifest.

        Args:
            location: URL or path of the manifest document

        Returns:
            Parsed manifest

        Raises:
            ManifestFetchError: If the document cannot be retrieved at all
            ManifestParseError: If the document is structurally invalid
        """
        try:
            raw = self._read(location)
        except (httpx.HTTPError, OSError) as e:
            log_transfer(location, "error")
            raise ManifestFetchError(location, str(e) or type(e).__name__) from e

        log_transfer(location, "ok", len(raw))
        return parse_manifest(raw, location=location)

    def fetch_payload(self, location: str) -> bytes:
        """Retrieve an artifact payload.

        Content is returned as-is; validity checks belong to the installer.

        Raises:
            TransportFailure: If the payload cannot be retrieved
        """
        try:
            payload = self._read(location)
        except (httpx.HTTPError, OSError) as e:
            log_transfer(location, "error")
            log_message(f"Payload retrieval failed for {location}: {e}")
            raise TransportFailure(
                f"Failed to retrieve {location}: {str(e) or type(e).__name__}",
                location=location,
            ) from e

        log_transfer(location, "ok", len(payload))
        return payload


__all__ = [
    "CatalogClient",
    "DEFAULT_TIMEOUT_SECONDS",
]
