# pricematch/config/settings.py

"""Central configuration for the pricematch engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean toggle such as ``ENABLE_MAPS_PROVIDER=1``."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the pricematch engine."""

    # --- Outbound requests ---
    REQUEST_TIMEOUT: int = 15           # Seconds before an HTTP call times out
    MAX_RETRIES: int = 2                # Retry count on transient failures
    PROVIDER_TIMEOUT: float = 30.0      # Wall clock budget per provider call

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 300.0
    CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "unusual traffic",
        "cf-turnstile",
    ]

    # --- Rate limiting (per provider) ---
    RATE_LIMIT_PER_MINUTE: int = 30
    MIN_REQUEST_INTERVAL: float = 2.0   # Seconds between calls
    REQUEST_JITTER: float = 2.0         # Extra random delay, 0..JITTER

    # --- Result cache ---
    CACHE_TTL_HOURS: float = float(os.getenv("CACHE_TTL_HOURS", "24"))
    CACHE_TTL_SECONDS: float = CACHE_TTL_HOURS * 3600
    CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "memory")

    # --- Comparison ---
    MIN_VIABLE_STORES: int = 3          # Stop relaxing the query at this count
    MARKETPLACE_LISTING_CAP: int = 15   # Listings kept per marketplace store
    PROVIDER_RESULT_LIMIT: int = 20     # Candidates requested per provider

    # --- Credentials & toggles ---
    SERPAPI_KEY: str = os.getenv("SERPAPI_KEY", "")
    PRICESAPI_KEY: str = os.getenv("PRICESAPI_KEY", "")
    ENABLE_SHOPPING_SCRAPER: bool = _env_flag("ENABLE_SHOPPING_SCRAPER", True)
    ENABLE_MAPS_PROVIDER: bool = _env_flag("ENABLE_MAPS_PROVIDER", False)

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    LOGS_DIR: Path = BASE_DIR / "logs"
    DATA_DIR: Path = BASE_DIR / "data"
    CACHE_DB_PATH: Path = Path(
        os.getenv("CACHE_DB_PATH", str(DATA_DIR / "result_cache.db"))
    )

    # --- Providers (registry, loaded by dotted path) ---
    AVAILABLE_PROVIDERS: list[dict[str, str]] = [
        {
            "id": "serpapi_shopping",
            "label": "SerpAPI Shopping",
            "provider": (
                "pricematch.providers.serpapi_shopping"
                ".SerpApiShoppingProvider"
            ),
        },
        {
            "id": "pricesapi",
            "label": "PricesAPI",
            "provider": "pricematch.providers.pricesapi.PricesApiProvider",
        },
        {
            "id": "serpapi_maps",
            "label": "SerpAPI Maps",
            "provider": (
                "pricematch.providers.serpapi_maps.SerpApiMapsProvider"
            ),
        },
        {
            "id": "shopping_scraper",
            "label": "Shopping Page Scraper",
            "provider": (
                "pricematch.providers.shopping_scraper"
                ".ShoppingPageScraper"
            ),
        },
    ]
