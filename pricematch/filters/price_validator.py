# pricematch/filters/price_validator.py

"""Price plausibility checks: reject prices too low for the product.

A listing at $19 for a flagship phone is an accessory or a scam, not a
deal. Validation only vetoes; it never changes a price.
"""

import re

ABSURD_PRICE_CEILING = 100_000.0

# Ordered: the first matching rule sets the floor
PRICE_FLOORS: list[tuple[re.Pattern[str], float]] = [
    (re.compile(pattern, re.IGNORECASE), floor)
    for pattern, floor in (
        (r"\biphone\b.*\bpro\s*max\b", 600.0),
        (r"\biphone\b.*\bpro\b", 500.0),
        (r"\bgalaxy\s+s\d+\s*ultra\b", 500.0),
        (r"\biphone\b", 300.0),
        (r"\bmacbook\s+pro\b|\bipad\s+pro\b|\bmac\s+pro\b", 300.0),
        (r"\bipad\b|\bmacbook\b|\blaptop\b", 50.0),
        (r"\bapple\s+watch\b|\bairpods\s+pro\b", 50.0),
        (
            r"\bplaystation\s*5\b|\bps5\b|\bxbox\s+series\b"
            r"|\bgaming\s+console\b",
            50.0,
        ),
        (
            r"\b(?:oled|qled|4k|8k)\b.*\btv\b"
            r"|\btv\b.*\b(?:oled|qled|4k|8k)\b",
            50.0,
        ),
        (r"\b(?:canon|nikon|sony)\b.*\bcamera\b", 50.0),
    )
]


class PriceValidator:
    """Category price floors applied after a candidate is matched."""

    @staticmethod
    def minimum_price(product_name: str) -> float:
        """Return the lowest plausible price for *product_name*."""
        for pattern, floor in PRICE_FLOORS:
            if pattern.search(product_name):
                return floor
        return 0.0

    @staticmethod
    def is_plausible(price: float, product_name: str) -> bool:
        """True when *price* is positive, sane and above the floor."""
        if price <= 0 or price > ABSURD_PRICE_CEILING:
            return False
        return price >= PriceValidator.minimum_price(product_name)
