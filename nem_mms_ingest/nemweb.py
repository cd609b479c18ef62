"""
Minimal HTTP client for NEMWEB directory listings and report zips.

NEMWEB serves plain HTML directory indexes, e.g.
``/Reports/Current/TradingIS_Reports/``, whose anchors point at the report
zips. The client fetches an index, pulls the ``.zip`` hrefs out of it,
downloads a zip (refusing anything not served as a zip) and hands it to
``archive.parse_zip``.

All HTTP goes through one ``requests.Session`` with the configured user
agent and timeout; every transport or status failure is re-raised as
``FetchError``.
"""

from __future__ import annotations

import logging
import re

import requests

from nem_mms_ingest.archive import parse_zip
from nem_mms_ingest.batch import ParseResultCollection
from nem_mms_ingest.config import IngestConfig, NemwebConfig
from nem_mms_ingest.exceptions import FetchError
from nem_mms_ingest.schema_registry import SchemaRegistry

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPES = ("application/zip", "application/x-zip-compressed")

_ZIP_LINK_RE = re.compile(r'HREF="([^"]*\.zip)"', re.IGNORECASE)


def extract_zip_links(html: str) -> list[str]:
    """Return every ``.zip`` href in *html*, in document order."""
    return _ZIP_LINK_RE.findall(html)


class NemwebClient:
    """Fetches NEMWEB pages and archives relative to ``base_url``.

    Args:
        settings: Base URL, user agent and timeout.
        session: Optional pre-built session (tests pass a stub).
    """

    def __init__(
        self,
        settings: NemwebConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings or NemwebConfig()
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self.settings.user_agent})

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, path: str) -> requests.Response:
        url = self.url_for(path)
        try:
            response = self._session.get(url, timeout=self.settings.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        logger.debug("GET %s -> %s (%d bytes)", url, response.status_code, len(response.content))
        return response

    def fetch_html(self, path: str) -> str:
        """GET a directory index page and return its text."""
        return self._get(path).text

    def list_zip_links(self, path: str) -> list[str]:
        """GET a directory index and return the ``.zip`` hrefs it lists."""
        links = extract_zip_links(self.fetch_html(path))
        logger.info("Found %d zip links at %s", len(links), path)
        return links

    def fetch_zip(self, path: str) -> bytes:
        """GET a report zip and return its bytes.

        Raises:
            FetchError: On transport/status errors, or when the response is
                not served with a zip content type.
        """
        response = self._get(path)
        content_type = response.headers.get("Content-Type", "")
        if not content_type.lower().startswith(ZIP_CONTENT_TYPES):
            raise FetchError(
                f"Expected a zip from {self.url_for(path)}, got Content-Type {content_type!r}"
            )
        logger.info("Downloaded %s (%s bytes)", path, f"{len(response.content):,}")
        return response.content

    def fetch_and_parse(
        self,
        path: str,
        registry: SchemaRegistry | None = None,
        config: IngestConfig | None = None,
    ) -> ParseResultCollection:
        """Download one report zip and parse all of its entries."""
        data = self.fetch_zip(path)
        return parse_zip(data, registry=registry, config=config, source_name=path)
