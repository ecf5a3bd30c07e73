# src/irdkit/redump.py
from __future__ import annotations

import logging
import re
from typing import List, Optional

import requests

from .constants import (
    REDUMP, REQUEST_TIMEOUT, RedumpEndpoints,
    REDUMP_NO_RESULTS, REDUMP_SINGLE_DISC_MARKER,
)
from .errors import LookupFailed

log = logging.getLogger(__name__)

_DISC_LINK_RE = re.compile(r'<a href="/disc/(\d+)/">')
_SINGLE_DISC_RE = re.compile(r"/disc/(\d+)/(?:sfv|md5|sha1|key|cue)?")
_DISC_URL_RE = re.compile(r"/disc/(\d+)/?$")


def parse_disc_ids(page: str, final_url: str = "") -> List[int]:
    """
    Disc ids on a redump.org quicksearch result page.

    A search with exactly one hit redirects straight to the disc page, so the
    id comes from the final URL or the disc page's download links.
    """
    if not page or REDUMP_NO_RESULTS in page:
        return []

    m = _DISC_URL_RE.search(final_url)
    if m:
        return [int(m.group(1))]

    if REDUMP_SINGLE_DISC_MARKER in page:
        m = _SINGLE_DISC_RE.search(page)
        return [int(m.group(1))] if m else []

    ids: List[int] = []
    for value in _DISC_LINK_RE.findall(page):
        disc_id = int(value)
        if disc_id not in ids:
            ids.append(disc_id)
    return ids


class RedumpClient:
    """Blocking redump.org client. No retries: a failed request is a failed lookup."""

    def __init__(
        self,
        endpoints: RedumpEndpoints = REDUMP,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.endpoints = endpoints
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, url: str) -> requests.Response:
        log.debug("GET %s", url)
        try:
            r = self.session.get(url, timeout=self.timeout, allow_redirects=True)
            r.raise_for_status()
        except requests.RequestException as exc:
            raise LookupFailed(f"GET {url} failed: {exc}") from exc
        return r

    def query_by_hash(self, hash_hex: str) -> List[int]:
        r = self._get(self.endpoints.quicksearch_url(hash_hex.lower()))
        ids = parse_disc_ids(r.text, r.url or "")
        log.info("redump.org: %d disc(s) match %s", len(ids), hash_hex)
        return ids

    def fetch_key(self, disc_id: int) -> bytes:
        r = self._get(self.endpoints.key_url(disc_id))
        log.info("Downloaded key for redump disc %d (%d bytes)", disc_id, len(r.content))
        return r.content

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RedumpClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
