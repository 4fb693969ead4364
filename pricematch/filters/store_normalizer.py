# pricematch/filters/store_normalizer.py

"""Map free-form seller labels onto canonical store identities."""

import logging
import re

from pricematch.models.comparison import StoreIdentity

logger = logging.getLogger("pricematch.filters")

# Ordered: first match wins. Display names must match their own pattern.
STORE_PATTERNS: list[tuple[re.Pattern[str], str, str]] = [
    (re.compile(pattern, re.IGNORECASE), store_id, name)
    for pattern, store_id, name in (
        (r"amazon", "amazon", "Amazon"),
        (r"walmart", "walmart", "Walmart"),
        (r"\btarget\b", "target", "Target"),
        (r"best\s*buy|bestbuy", "bestbuy", "Best Buy"),
        (r"costco", "costco", "Costco"),
        (r"ebay", "ebay", "eBay"),
        (r"newegg", "newegg", "Newegg"),
        (r"b\s*&\s*h|bh\s*photo", "bh", "B&H Photo"),
        (r"home\s*depot", "homedepot", "Home Depot"),
        (r"office\s*depot", "officedepot", "Office Depot"),
        (r"kroger", "kroger", "Kroger"),
        (r"safeway", "safeway", "Safeway"),
        (r"whole\s*foods", "wholefoods", "Whole Foods"),
        (r"\baldi\b", "aldi", "Aldi"),
        (r"trader\s*joe'?s", "traderjoes", "Trader Joe's"),
        (r"instacart", "instacart", "Instacart"),
        (r"kohl'?s", "kohls", "Kohl's"),
        (r"macy'?s", "macys", "Macy's"),
        (r"\bnike\b", "nike", "Nike"),
        (r"foot\s*locker", "footlocker", "Foot Locker"),
        (r"dick'?s\s*sporting\s*goods", "dicks", "DICK'S Sporting Goods"),
        (r"swappa", "swappa", "Swappa"),
        (r"poshmark", "poshmark", "Poshmark"),
        (r"mercari", "mercari", "Mercari"),
    )
]

# Stores that legitimately list many sellers for one product
MULTI_LISTING_STORES: frozenset[str] = frozenset({
    "ebay", "amazon", "swappa", "poshmark", "mercari",
})

_SLUG_RE = re.compile(r"[^a-z0-9]+")

UNKNOWN_STORE = StoreIdentity(store_id="unknown", name="Unknown")


class StoreNormalizer:
    """Ordered pattern table with a slug fallback for unknown sellers.

    ``normalize`` is idempotent: feeding a result's display name back
    in yields the same identity.
    """

    @staticmethod
    def normalize(label: str) -> StoreIdentity:
        """Return the canonical identity for a seller *label*."""
        display = " ".join((label or "").split())
        if not display:
            return UNKNOWN_STORE

        for pattern, store_id, name in STORE_PATTERNS:
            if pattern.search(display):
                return StoreIdentity(store_id=store_id, name=name)

        slug = _SLUG_RE.sub("-", display.lower()).strip("-")
        if not slug:
            return UNKNOWN_STORE
        return StoreIdentity(store_id=slug, name=display)

    @staticmethod
    def is_multi_listing(store_id: str) -> bool:
        """True for marketplaces where several listings per store are kept."""
        return store_id in MULTI_LISTING_STORES
