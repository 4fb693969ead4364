# pricematch/providers/base_provider.py

"""Abstract base class for all price source providers."""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any

from curl_cffi import requests as curl_requests
from curl_cffi.requests.exceptions import Timeout as CurlTimeout

from pricematch.config.settings import Settings
from pricematch.errors import (
    ProviderError,
    ProviderParseError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
)
from pricematch.models.product import RawCandidate
from pricematch.services.rate_limiter import RateLimiter
from pricematch.storage.result_cache import ResultCache


class SourceProvider(ABC):
    """Cache lookup, rate limiting and circuit breaking around one source.

    Subclasses only build request params, fetch a payload and parse it
    into :class:`RawCandidate` values. Payloads are cached raw, so a
    parser fix applies to cached data too.
    """

    provider_id: str = ""
    label: str = ""
    # Whether a bare GTIN is a meaningful query for this source
    supports_barcode: bool = False

    def __init__(
        self,
        cache: ResultCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.logger = logging.getLogger(
            f"pricematch.providers.{self.provider_id}"
        )
        self.settings = Settings()
        self.cache = cache or ResultCache()
        self.rate_limiter = rate_limiter or RateLimiter(
            name=self.provider_id
        )
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._consecutive_failures: int = 0
        self._circuit_open: bool = False
        self._circuit_opened_at: float = 0.0
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    # ── Contract ─────────────────────────────────────────

    def is_configured(self) -> bool:
        """Whether credentials and toggles allow this provider to run."""
        return True

    @abstractmethod
    def health_url(self) -> str:
        """URL probed by the health checker."""
        ...

    @abstractmethod
    def _request_params(self, variant: str, limit: int) -> dict[str, Any]:
        """Params identifying the request; also the cache key input."""
        ...

    @abstractmethod
    def _fetch_payload(self, variant: str, limit: int) -> Any | None:
        """Perform the outbound call(s). ``None`` means nothing to cache."""
        ...

    @abstractmethod
    def _parse_payload(self, payload: Any, limit: int) -> list[RawCandidate]:
        """Turn a raw payload into candidates or raise ProviderParseError."""
        ...

    def search(self, variant: str, limit: int) -> list[RawCandidate]:
        """Return up to *limit* candidates for a query *variant*."""
        candidates, _ = self.search_with_status(variant, limit)
        return candidates

    def search_with_status(
        self, variant: str, limit: int,
    ) -> tuple[list[RawCandidate], bool]:
        """Like :meth:`search`, also reporting whether the cache answered.

        A fetched payload is stored only after it parsed cleanly, so an
        error body never shadows a later good response.
        """
        if not self.is_configured():
            raise ProviderUnavailable(
                f"{self.provider_id} is not configured", self.provider_id
            )

        key = ResultCache.build_key(
            self.provider_id, self._request_params(variant, limit)
        )
        payload = self.cache.get(key)
        cached = payload is not None

        if payload is None:
            if self._check_circuit():
                raise ProviderUnavailable(
                    f"{self.provider_id} circuit breaker is open",
                    self.provider_id,
                )
            self.rate_limiter.acquire()
            payload = self._fetch_payload(variant, limit)
            if payload is None:
                return [], False

        candidates = self._parse_payload(payload, limit)
        if not cached:
            self.cache.set(key, payload, provider_id=self.provider_id)
        self.logger.info(
            "[%s] %d candidates for '%s'%s",
            self.provider_id,
            len(candidates),
            variant,
            " (cached)" if cached else "",
        )
        return candidates[:limit], cached

    # ── Circuit breaker ──────────────────────────────────

    def _check_circuit(self) -> bool:
        """Return True if the circuit breaker blocks this request.

        After CIRCUIT_BREAKER_COOLDOWN seconds the breaker goes
        half-open and lets a single probe request through.
        """
        if not self._circuit_open:
            return False
        elapsed = time.time() - self._circuit_opened_at
        if elapsed >= self.settings.CIRCUIT_BREAKER_COOLDOWN:
            self.logger.info(
                "[%s] Circuit breaker half-open after %.0fs",
                self.provider_id,
                elapsed,
            )
            self._circuit_open = False
            return False
        return True

    def _record_success(self) -> None:
        self._consecutive_failures = 0
        self._circuit_open = False
        self._circuit_opened_at = 0.0

    def _record_failure(self) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.settings.CIRCUIT_BREAKER_THRESHOLD:
            self._circuit_open = True
            self._circuit_opened_at = time.time()
            self.logger.error(
                "[%s] Circuit breaker opened after %d consecutive failures",
                self.provider_id,
                self._consecutive_failures,
            )

    # ── HTTP helpers ─────────────────────────────────────

    def _get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET with retries on transient errors; maps failures to errors."""
        last_error = ""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self._request_timeout,
                )
            except (CurlTimeout, TimeoutError) as exc:
                self._record_failure()
                raise ProviderTimeout(
                    f"{self.provider_id} timed out: {exc}",
                    self.provider_id,
                ) from exc
            except Exception as exc:
                last_error = str(exc)
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.provider_id,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self.settings.MIN_REQUEST_INTERVAL * (attempt + 1))
                continue

            if resp.status_code == 200:
                self._record_success()
                return resp
            if resp.status_code == 429:
                self._record_failure()
                raise ProviderRateLimited(
                    f"{self.provider_id} is rate limited (HTTP 429)",
                    self.provider_id,
                )
            if resp.status_code in (401, 403):
                raise ProviderUnavailable(
                    f"{self.provider_id} rejected credentials "
                    f"(HTTP {resp.status_code})",
                    self.provider_id,
                )
            last_error = f"HTTP {resp.status_code}"
            self.logger.warning(
                "[%s] HTTP %d on attempt %d",
                self.provider_id,
                resp.status_code,
                attempt + 1,
            )

        self._record_failure()
        raise ProviderError(
            f"{self.provider_id} failed after "
            f"{self.settings.MAX_RETRIES} attempts: {last_error}",
            self.provider_id,
        )

    def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """GET and decode a JSON object body."""
        resp = self._get(url, params=params, headers=headers)
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderParseError(
                f"{self.provider_id} returned invalid JSON",
                self.provider_id,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderParseError(
                f"{self.provider_id} returned a non-object payload",
                self.provider_id,
            )
        return data

    @staticmethod
    def extract_price(value: Any) -> float:
        """Extract a number from values like ``"$1,199.00"`` or ``12.5``.

        A range such as ``"$10-20"`` yields its lower bound.
        """
        if isinstance(value, bool) or value is None:
            return 0.0
        if isinstance(value, (int, float)):
            return float(value)
        cleaned = str(value).replace(",", "")
        numbers = re.findall(r"\d+(?:\.\d+)?", cleaned)
        return float(numbers[0]) if numbers else 0.0
