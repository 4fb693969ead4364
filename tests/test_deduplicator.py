# tests/test_deduplicator.py

"""Tests for store-level price deduplication."""

import unittest

from pricematch.filters.deduplicator import StorePriceDeduplicator
from pricematch.models.comparison import StorePrice


def _price(
    store_id: str,
    price: float,
    url: str = "",
    title: str = "Widget",
) -> StorePrice:
    """Create a minimal StorePrice."""
    return StorePrice(
        store_id=store_id,
        store_name=store_id.title(),
        price=price,
        url=url,
        title=title,
    )


class TestDeduplicate(unittest.TestCase):
    """StorePriceDeduplicator.deduplicate behaviour."""

    def test_empty_list(self) -> None:
        """Empty input returns empty output."""
        kept, removed = StorePriceDeduplicator.deduplicate([])
        self.assertEqual(kept, [])
        self.assertEqual(removed, 0)

    def test_single_listing_store_keeps_cheapest(self) -> None:
        """Regular stores keep exactly one, cheapest entry."""
        prices = [
            _price("bestbuy", 1199.0, "https://bestbuy.com/a"),
            _price("bestbuy", 1099.0, "https://bestbuy.com/b"),
            _price("walmart", 1150.0, "https://walmart.com/a"),
        ]
        kept, removed = StorePriceDeduplicator.deduplicate(prices)
        self.assertEqual(removed, 1)
        by_store = {p.store_id: p.price for p in kept}
        self.assertEqual(by_store, {"bestbuy": 1099.0, "walmart": 1150.0})

    def test_marketplace_keeps_distinct_listings(self) -> None:
        """Marketplaces keep one entry per distinct listing URL."""
        prices = [
            _price("ebay", 900.0, "https://ebay.com/itm/1?hash=x"),
            _price("ebay", 850.0, "https://ebay.com/itm/1"),
            _price("ebay", 950.0, "https://ebay.com/itm/2"),
        ]
        kept, removed = StorePriceDeduplicator.deduplicate(prices)
        self.assertEqual(len(kept), 2)
        self.assertEqual(removed, 1)
        self.assertEqual([p.price for p in kept], [850.0, 950.0])

    def test_marketplace_without_urls_uses_titles(self) -> None:
        """Listings without URLs are told apart by title."""
        prices = [
            _price("amazon", 10.0, title="Widget Blue"),
            _price("amazon", 11.0, title="widget  blue!"),
            _price("amazon", 12.0, title="Widget Red"),
        ]
        kept, _ = StorePriceDeduplicator.deduplicate(prices)
        self.assertEqual(len(kept), 2)

    def test_marketplace_cap_of_fifteen(self) -> None:
        """At most fifteen listings per marketplace, cheapest first."""
        prices = [
            _price("ebay", 100.0 + i, f"https://ebay.com/itm/{i}")
            for i in range(20)
        ]
        kept, removed = StorePriceDeduplicator.deduplicate(prices)
        self.assertEqual(len(kept), 15)
        self.assertEqual(removed, 5)
        self.assertEqual(max(p.price for p in kept), 114.0)

    def test_explicit_cap(self) -> None:
        """A caller-provided cap overrides the configured one."""
        prices = [
            _price("mercari", 10.0 + i, f"https://mercari.com/{i}")
            for i in range(5)
        ]
        kept, _ = StorePriceDeduplicator.deduplicate(prices, cap=2)
        self.assertEqual(len(kept), 2)

    def test_output_sorted_by_price(self) -> None:
        """Kept entries come back cheapest first."""
        prices = [
            _price("target", 30.0),
            _price("walmart", 10.0),
            _price("costco", 20.0),
        ]
        kept, _ = StorePriceDeduplicator.deduplicate(prices)
        self.assertEqual([p.price for p in kept], [10.0, 20.0, 30.0])


if __name__ == "__main__":
    unittest.main()
