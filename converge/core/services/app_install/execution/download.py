"""
L4 Execution — HTTP fetches and file downloads.

One synchronous client for every network call a run makes: release
metadata, release pages, redirect probes and installer downloads.
Every call is bounded by a timeout; nothing is retried.  Failures are
raised as ``NetworkUnreachable`` so resolvers can tell "could not
reach the page" apart from "reached it, found nothing".
"""

from __future__ import annotations

import json
import logging
import shutil
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from converge import __version__
from converge.core.errors import NetworkUnreachable

logger = logging.getLogger(__name__)

USER_AGENT = f"converge/{__version__}"
_CHUNK = 64 * 1024


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Stop at the first hop so the Location header can be inspected."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


class HttpClient:
    """Thin urllib wrapper with the run's timeout discipline."""

    def __init__(self, timeout: int = 10, probe_timeout: int = 5):
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self._probe_opener = urllib.request.build_opener(_NoRedirect)

    def _request(self, url: str, method: str = "GET",
                 headers: dict[str, str] | None = None) -> urllib.request.Request:
        merged = {"User-Agent": USER_AGENT}
        merged.update(headers or {})
        return urllib.request.Request(url, method=method, headers=merged)

    def fetch_text(self, url: str, headers: dict[str, str] | None = None) -> str:
        """GET ``url`` and return the decoded body.

        Raises:
            NetworkUnreachable: On timeout, HTTP/URL error, or empty body.
        """
        logger.debug("Fetching %s", url)
        try:
            with urllib.request.urlopen(self._request(url, headers=headers),
                                        timeout=self.timeout) as resp:
                raw = resp.read()
                charset = resp.headers.get_content_charset() or "utf-8"
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
            raise NetworkUnreachable(f"Failed to fetch {url}: {e}") from e

        body = raw.decode(charset, errors="replace")
        if not body.strip():
            raise NetworkUnreachable(f"Failed to fetch {url} (empty response)")
        return body

    def fetch_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """GET ``url`` and decode it as JSON.

        Raises:
            NetworkUnreachable: On any fetch failure or undecodable body.
        """
        body = self.fetch_text(url, headers=headers)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise NetworkUnreachable(f"Invalid JSON from {url}: {e}") from e

    def probe_location(self, url: str) -> str | None:
        """HEAD ``url`` without following redirects.

        Returns:
            The ``Location`` header of a redirect response, or None.

        Raises:
            NetworkUnreachable: If the request itself fails.
        """
        try:
            with self._probe_opener.open(self._request(url, method="HEAD"),
                                         timeout=self.probe_timeout) as resp:
                return resp.headers.get("Location")
        except urllib.error.HTTPError as e:
            # 3xx surfaces as HTTPError once redirects are disabled
            if 300 <= e.code < 400:
                return e.headers.get("Location")
            raise NetworkUnreachable(f"HEAD {url} returned {e.code}") from e
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
            raise NetworkUnreachable(f"HEAD {url} failed: {e}") from e

    def download(self, url: str, dest: Path) -> Path:
        """Stream ``url`` to ``dest`` (redirects followed).

        Raises:
            NetworkUnreachable: If the download fails; a partial file is removed.
        """
        logger.debug("Downloading %s from %s", dest.name, url)
        try:
            with urllib.request.urlopen(self._request(url), timeout=self.timeout) as resp, \
                    open(dest, "wb") as fh:
                shutil.copyfileobj(resp, fh, _CHUNK)
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
            dest.unlink(missing_ok=True)
            raise NetworkUnreachable(f"Failed to download {dest.name}: {e}") from e
        return dest
