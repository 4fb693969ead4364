# pricematch/providers/browser_session.py

"""Explicitly owned, lazily created browser-impersonating HTTP session.

Page scrapers borrow the session through ``lease()``; the first lease
creates it and ``close()`` tears it down. Lifecycle transitions share
one lock so concurrent scrapers never create two sessions or close a
session someone else is still using.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from pricematch.config.settings import Settings

logger = logging.getLogger("pricematch.browser")


class BrowserSession:
    """Reference-counted handle around a curl_cffi impersonating session."""

    def __init__(
        self,
        impersonate: str | None = None,
        timeout: int | None = None,
        close_when_idle: bool = False,
    ) -> None:
        self.impersonate = impersonate or Settings.IMPERSONATE_BROWSER
        self.timeout = timeout or Settings.REQUEST_TIMEOUT
        self.close_when_idle = close_when_idle
        self._session: Any | None = None
        self._fallback: Any | None = None
        self._refcount = 0
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._session is not None

    @property
    def refcount(self) -> int:
        return self._refcount

    def acquire(self) -> Any:
        """Take a reference, creating the session on first use."""
        with self._lock:
            if self._session is None:
                logger.info(
                    "Launching browser session (impersonate=%s)",
                    self.impersonate,
                )
                self._session = curl_requests.Session(
                    impersonate=self.impersonate
                )
            self._refcount += 1
            return self._session

    def release(self) -> None:
        """Drop a reference; optionally close once nobody holds one."""
        with self._lock:
            if self._refcount == 0:
                return
            self._refcount -= 1
            if self._refcount == 0 and self.close_when_idle:
                self._close_locked()

    @contextmanager
    def lease(self) -> Iterator[Any]:
        """Context manager pairing ``acquire`` with ``release``."""
        session = self.acquire()
        try:
            yield session
        finally:
            self.release()

    def close(self) -> None:
        """Close the session regardless of outstanding references."""
        with self._lock:
            if self._refcount:
                logger.warning(
                    "Closing browser session with %d active lease(s)",
                    self._refcount,
                )
            self._refcount = 0
            self._close_locked()

    def _close_locked(self) -> None:
        if self._session is not None:
            try:
                self._session.close()
            except Exception as exc:
                logger.warning(
                    "Error while closing browser session: %s", exc
                )
            self._session = None
            logger.info("Browser session closed")
        self._fallback = None

    def _challenge_detected(self, text: str) -> bool:
        lower = text.lower()
        return any(m in lower for m in Settings.CHALLENGE_MARKERS)

    def fetch_html(self, url: str, headers: dict[str, str]) -> str | None:
        """GET *url*, falling back to cloudscraper on challenge pages.

        Returns the page HTML, or ``None`` when both paths fail.
        """
        with self.lease() as session:
            try:
                resp = session.get(
                    url, headers=headers, timeout=self.timeout
                )
                if resp.status_code == 200 and not self._challenge_detected(
                    resp.text
                ):
                    return str(resp.text)
                logger.warning(
                    "Browser fetch got HTTP %d for %s",
                    resp.status_code,
                    url,
                )
            except Exception as exc:
                logger.warning(
                    "Browser fetch error for %s: %s", url, exc,
                    exc_info=True,
                )

        logger.info("Falling back to cloudscraper for %s", url)
        try:
            if self._fallback is None:
                _cs: Any = cloudscraper
                self._fallback = _cs.create_scraper()
            fallback_resp: Any = self._fallback.get(
                url, headers=headers, timeout=self.timeout
            )
            if fallback_resp.status_code == 200:
                return str(fallback_resp.text)
        except Exception as exc:
            logger.error(
                "cloudscraper fallback also failed: %s", exc,
                exc_info=True,
            )
        return None
