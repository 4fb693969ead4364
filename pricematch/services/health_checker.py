# pricematch/services/health_checker.py

"""Provider connectivity health checker."""

import asyncio
import importlib
import logging
import time
from dataclasses import dataclass

from pricematch.config.settings import Settings

logger = logging.getLogger("pricematch.health")

_HEALTH_TIMEOUT = 10  # seconds per provider
_SLOW_THRESHOLD_MS = 5000


@dataclass
class HealthResult:
    """Result of a single provider health check."""

    provider_id: str
    status: str  # "ok", "slow", "disabled", "down"
    latency_ms: float
    message: str


def probe_provider(config: dict[str, str]) -> HealthResult:
    """Probe a single provider for credentials and connectivity."""
    provider_id = config["id"]
    dotted_path = config["provider"]

    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
        module = importlib.import_module(module_path)
        provider = getattr(module, class_name)()
    except Exception as exc:
        return HealthResult(
            provider_id=provider_id,
            status="down",
            latency_ms=0.0,
            message=f"Failed to load provider: {exc}",
        )

    if not provider.is_configured():
        return HealthResult(
            provider_id=provider_id,
            status="disabled",
            latency_ms=0.0,
            message="Missing credentials or disabled",
        )

    start = time.monotonic()
    try:
        resp = provider.session.get(
            provider.health_url(),
            headers=dict(Settings.DEFAULT_HEADERS),
            timeout=_HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            provider_id=provider_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )

    if resp.status_code >= 400:
        return HealthResult(
            provider_id=provider_id,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    if elapsed_ms > _SLOW_THRESHOLD_MS:
        return HealthResult(
            provider_id=provider_id,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )
    return HealthResult(
        provider_id=provider_id,
        status="ok",
        latency_ms=elapsed_ms,
        message="",
    )


class HealthChecker:
    """Runs concurrent health probes against all providers."""

    def __init__(self, providers: list[dict[str, str]] | None = None) -> None:
        self.providers = providers or Settings.AVAILABLE_PROVIDERS

    async def check_all(self) -> list[HealthResult]:
        """Probe every registered provider concurrently."""
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(asyncio.to_thread(probe_provider, p) for p in self.providers)
            )
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.provider_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
