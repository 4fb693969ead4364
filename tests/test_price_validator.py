# tests/test_price_validator.py

"""Tests for category price floors."""

import unittest

from pricematch.filters.price_validator import PriceValidator


class TestMinimumPrice(unittest.TestCase):
    """PriceValidator.minimum_price floor selection."""

    def test_iphone_tiers(self) -> None:
        """Pro Max, Pro and base iPhones have descending floors."""
        self.assertEqual(
            PriceValidator.minimum_price("iPhone 15 Pro Max"), 600.0
        )
        self.assertEqual(PriceValidator.minimum_price("iPhone 15 Pro"), 500.0)
        self.assertEqual(PriceValidator.minimum_price("iPhone 15"), 300.0)

    def test_expensive_classes(self) -> None:
        """Premium categories get a floor, ordinary goods do not."""
        self.assertEqual(
            PriceValidator.minimum_price("MacBook Pro 14 M3"), 300.0
        )
        self.assertEqual(PriceValidator.minimum_price("PS5 Slim"), 50.0)
        self.assertEqual(
            PriceValidator.minimum_price("LG 65 inch OLED TV"), 50.0
        )
        self.assertEqual(
            PriceValidator.minimum_price("Organic Bananas 2lb"), 0.0
        )


class TestIsPlausible(unittest.TestCase):
    """PriceValidator.is_plausible decisions."""

    def test_phone_case_price_rejected(self) -> None:
        """$19 is not a plausible iPhone 15 Pro Max price."""
        self.assertFalse(
            PriceValidator.is_plausible(19.0, "iPhone 15 Pro Max")
        )
        self.assertTrue(
            PriceValidator.is_plausible(1199.0, "iPhone 15 Pro Max")
        )

    def test_non_positive_and_absurd_rejected(self) -> None:
        """Zero, negative and absurd prices are always rejected."""
        for price in (0.0, -5.0, 1_000_000.0):
            with self.subTest(price=price):
                self.assertFalse(
                    PriceValidator.is_plausible(price, "Bananas")
                )


if __name__ == "__main__":
    unittest.main()
