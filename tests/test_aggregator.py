# tests/test_aggregator.py

"""Tests for ranking and summarising store prices."""

import unittest

from pricematch.models.comparison import StorePrice
from pricematch.services.aggregator import Aggregator, rank_store_prices


def _price(store_id: str, price: float, image: str = "") -> StorePrice:
    return StorePrice(
        store_id=store_id,
        store_name=store_id.title(),
        price=price,
        image_url=image,
    )


class TestRank(unittest.TestCase):
    """rank_store_prices ordering."""

    def test_ascending_with_store_tiebreak(self) -> None:
        """Equal prices are ordered by store id."""
        ranked = rank_store_prices([
            _price("walmart", 10.0),
            _price("amazon", 10.0),
            _price("bestbuy", 5.0),
        ])
        self.assertEqual(
            [p.store_id for p in ranked], ["bestbuy", "amazon", "walmart"]
        )


class TestBuild(unittest.TestCase):
    """Aggregator.build summary fields."""

    def test_summary(self) -> None:
        """Best price, store count and savings spread."""
        result = Aggregator.build(
            "PS5 Slim",
            [
                _price("target", 499.99),
                _price("walmart", 449.0, image="https://img/w.jpg"),
                _price("ebay", 420.5),
                _price("ebay", 430.0),
            ],
            attempted_variants=["PS5 Slim"],
        )
        self.assertEqual(result.best_price, 420.5)
        self.assertEqual(result.best_store_id, "ebay")
        self.assertEqual(result.best_store_name, "Ebay")
        self.assertEqual(result.total_stores, 3)
        self.assertEqual(result.max_savings, 79.49)
        self.assertEqual(result.representative_image, "https://img/w.jpg")
        self.assertEqual(result.attempted_variants, ["PS5 Slim"])
        prices = [p.price for p in result.store_prices]
        self.assertEqual(prices, sorted(prices))

    def test_empty(self) -> None:
        """No prices gives an empty summary."""
        result = Aggregator.build("Nothing", [])
        self.assertEqual(result.store_prices, [])
        self.assertEqual(result.total_stores, 0)
        self.assertEqual(result.best_store_name, "")

    def test_to_dict(self) -> None:
        """JSON output carries the summary and each store price."""
        result = Aggregator.build("Widget", [_price("target", 9.99)])
        data = result.to_dict()
        self.assertEqual(data["best_store_name"], "Target")
        self.assertEqual(data["store_prices"][0]["price"], 9.99)
        self.assertIsInstance(data["store_prices"][0]["observed_at"], str)
        self.assertNotIn("events", data)


if __name__ == "__main__":
    unittest.main()
