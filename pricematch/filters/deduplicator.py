# pricematch/filters/deduplicator.py

"""Store-level deduplication of accepted prices."""

import logging
import re

from pricematch.config.settings import Settings
from pricematch.filters.store_normalizer import StoreNormalizer
from pricematch.models.comparison import StorePrice

logger = logging.getLogger("pricematch.filters")


class StorePriceDeduplicator:
    """Keep one price per store, or a capped set for marketplaces."""

    # Query params and fragments don't affect listing identity
    _STRIP_PARAMS_RE = re.compile(r"[?#].*$")

    @staticmethod
    def _normalise_url(url: str) -> str:
        """Strip query, fragment and trailing slash, then lowercase."""
        if not url:
            return ""
        cleaned = StorePriceDeduplicator._STRIP_PARAMS_RE.sub("", url)
        return cleaned.rstrip("/").lower()

    @staticmethod
    def _normalise_title(title: str) -> str:
        """Lowercase, drop punctuation, collapse whitespace."""
        alpha_only = re.sub(r"[^a-z0-9\s]", "", title.lower())
        return " ".join(alpha_only.split())

    @staticmethod
    def _listing_key(price: StorePrice) -> str:
        url = StorePriceDeduplicator._normalise_url(price.url)
        if url:
            return f"url:{url}"
        return f"title:{StorePriceDeduplicator._normalise_title(price.title)}"

    @staticmethod
    def deduplicate(
        prices: list[StorePrice],
        cap: int | None = None,
    ) -> tuple[list[StorePrice], int]:
        """Collapse duplicate store entries, keeping the cheapest.

        Single-listing stores keep exactly one entry. Marketplace
        stores keep up to *cap* distinct listings (by URL, else by
        title), cheapest first.

        Returns the kept prices (ascending by price) and the count of
        removed entries.
        """
        if not prices:
            return [], 0
        limit = cap if cap is not None else Settings.MARKETPLACE_LISTING_CAP

        ordered = sorted(
            prices, key=lambda p: (p.price, -p.confidence)
        )
        kept: list[StorePrice] = []
        single_seen: set[str] = set()
        listing_seen: dict[str, set[str]] = {}

        for price in ordered:
            if not StoreNormalizer.is_multi_listing(price.store_id):
                if price.store_id in single_seen:
                    continue
                single_seen.add(price.store_id)
                kept.append(price)
                continue

            listings = listing_seen.setdefault(price.store_id, set())
            key = StorePriceDeduplicator._listing_key(price)
            if key in listings or len(listings) >= limit:
                continue
            listings.add(key)
            kept.append(price)

        removed = len(prices) - len(kept)
        if removed:
            logger.info(
                "Deduplication removed %d store entries", removed
            )
        return kept, removed
