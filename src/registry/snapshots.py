"""Remote snapshot index scanning.

Snapshot repositories expose plain HTML directory listings. The scanner reads
the listing of the mtags group directory, e.g.::

    mtags_3.2.2-RC1-bin-20221009-2052fc2-NIGHTLY/
    mtags_3.2.2-RC1-bin-20221012-a1b2c3d-NIGHTLY/

and the listing of a single entry, which holds one directory per runtime
version that published artifacts for that compiler build.
"""
from __future__ import annotations

import logging
import threading
import urllib.parse
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from constants import Constants
from common import http_client
from common.logging_utils import extra_context, is_debug_enabled, safe_url

from .errors import IndexScanError

logger = logging.getLogger(__name__)


class RemoteIndexScanner(ABC):
    """Port used by the resolver to discover nightly snapshot builds."""

    @abstractmethod
    def list_entries(self, prefix: str) -> List[str]:
        """Names of the index entries containing ``prefix``, in index order."""

    @abstractmethod
    def entry_contains(self, entry: str, marker: str) -> bool:
        """Whether the index of ``entry`` lists an item named ``marker``."""


def parse_anchors(html: str) -> List[Tuple[str, str]]:
    """Return (text, href) for every link of an HTML listing, in document order."""
    soup = BeautifulSoup(html, "html.parser")
    return [(a.get_text(strip=True), a.get("href") or "") for a in soup.find_all("a")]


class SnapshotIndexScanner(RemoteIndexScanner):
    """Scanner over a Maven snapshot repository's HTML directory listings."""

    def __init__(self, index_url: Optional[str] = None):
        url = index_url or Constants.SNAPSHOT_INDEX_URL
        self.index_url = url if url.endswith("/") else url + "/"
        self._hrefs: Dict[str, str] = {}
        self._lock = threading.Lock()

    def _read_listing(self, url: str) -> List[Tuple[str, str]]:
        status, _, text = http_client.get_text(url)
        if status != 200:
            raise IndexScanError(f"Could not read snapshot index {safe_url(url)} (status {status})")
        try:
            return parse_anchors(text)
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise IndexScanError(f"Could not parse snapshot index {safe_url(url)}: {e}") from e

    def list_entries(self, prefix: str) -> List[str]:
        anchors = self._read_listing(self.index_url)
        names: List[str] = []
        with self._lock:
            for text, href in anchors:
                if prefix and prefix not in text:
                    continue
                names.append(text)
                self._hrefs[text] = urllib.parse.urljoin(self.index_url, href or text)
        if is_debug_enabled(logger):
            logger.debug("Listed snapshot entries", extra=extra_context(
                event="function_exit", component="snapshot_scanner", action="list_entries",
                outcome="success", count=len(names), target=safe_url(self.index_url)
            ))
        return names

    def _entry_url(self, entry: str) -> str:
        with self._lock:
            href = self._hrefs.get(entry)
        if href is None:
            href = urllib.parse.urljoin(self.index_url, urllib.parse.quote(entry))
        return href if href.endswith("/") else href + "/"

    def entry_contains(self, entry: str, marker: str) -> bool:
        return any(text == marker for text, _ in self._read_listing(self._entry_url(entry)))
