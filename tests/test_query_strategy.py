# tests/test_query_strategy.py

"""Tests for query variant generation."""

import unittest

from pricematch.filters.query_strategy import QueryStrategyGenerator
from pricematch.models.product import ProductQuery


def _variants(
    description: str,
    expected: str | None = None,
    category: str | None = None,
) -> list[str]:
    return QueryStrategyGenerator.generate(
        ProductQuery(description, expected, category)
    )


class TestGenerate(unittest.TestCase):
    """QueryStrategyGenerator.generate ordering and content."""

    def test_exact_text_first(self) -> None:
        """The first variant is always the unmodified query."""
        variants = _variants("Playstation 5 Console Ghost Of Yotei Bundle")
        self.assertEqual(
            variants[0], "Playstation 5 Console Ghost Of Yotei Bundle"
        )

    def test_expected_name_preferred_over_description(self) -> None:
        """An expected-name hint replaces the raw description."""
        variants = _variants("some ui text", expected="Apple iPhone 15")
        self.assertEqual(variants[0], "Apple iPhone 15")

    def test_truncations_and_family_shorthand(self) -> None:
        """Long console names yield 3-word, 2-word and PS5 variants."""
        variants = _variants("Playstation 5 Console Ghost Of Yotei Bundle")
        self.assertIn("Playstation 5 Console", variants)
        self.assertIn("Playstation 5", variants)
        self.assertIn("PS5", variants)
        self.assertLess(
            variants.index("Playstation 5 Console"),
            variants.index("Playstation 5"),
        )

    def test_iphone_shorthand(self) -> None:
        """iPhone model names collapse to 'iPhone N'."""
        variants = _variants("iPhone 15 Pro Max")
        self.assertIn("iPhone 15", variants)

    def test_canonical_casing_variant(self) -> None:
        """Tech abbreviations get a canonical-casing alternate spelling."""
        variants = _variants("Full Hd 1080p Led Smart Tv")
        self.assertIn("Full HD 1080p LED Smart TV", variants)

    def test_no_duplicates_or_empties(self) -> None:
        """Output is deduplicated and has no blank entries."""
        variants = _variants("Apple iPhone 15 Pro")
        self.assertEqual(len(variants), len(set(variants)))
        self.assertTrue(all(v.strip() for v in variants))

    def test_empty_query_yields_nothing(self) -> None:
        """Whitespace-only input produces no variants."""
        self.assertEqual(_variants("   "), [])

    def test_non_tv_may_end_with_bare_brand(self) -> None:
        """Non-television products may fall back to the brand alone."""
        variants = _variants("Vizio Soundbar Elevate")
        self.assertEqual(variants[-1], "Vizio")

    def test_xbox_shorthand_keeps_model_letter(self) -> None:
        """Series S never relaxes into a Series X search."""
        variants = _variants("Xbox Series S 512GB Robot White")
        self.assertIn("Xbox Series S", variants)
        self.assertNotIn("Xbox Series X", variants)
        self.assertIn("Xbox Series X", _variants("Microsoft Xbox Series X 1TB"))

    def test_screen_size_on_non_tv_category(self) -> None:
        """Laptop and tablet sizes do not trigger television variants."""
        for name, brand in (
            ("MacBook Pro 14 inch M3", "MacBook"),
            ("Galaxy Tab S9 11 inch", "Galaxy"),
        ):
            with self.subTest(name=name):
                variants = _variants(name)
                self.assertFalse(any("TV" in v for v in variants))
                self.assertEqual(variants[-1], brand)


class TestTelevisionVariants(unittest.TestCase):
    """Television-specific relaxation rules."""

    def test_never_bare_brand(self) -> None:
        """The brand alone is never emitted for televisions."""
        variants = _variants("Samsung 65 Class QLED 4K Smart TV")
        self.assertNotIn("Samsung", variants)

    def test_model_variants_come_first(self) -> None:
        """Brand+size+model outranks the generic truncations."""
        variants = _variants("Samsung Class Crystal UHD U7900F 43 inch TV")
        self.assertEqual(variants[1], "Samsung 43 U7900F TV")
        self.assertIn("Samsung U7900F", variants)
        self.assertLess(
            variants.index("Samsung U7900F"),
            variants.index("Samsung Class Crystal"),
        )

    def test_brand_size_variants(self) -> None:
        """Without a model code, brand+size variants are emitted."""
        variants = _variants("Samsung 65 Class QLED 4K Smart TV")
        self.assertIn("Samsung 65 TV", variants)
        self.assertIn("Samsung 65 Class TV", variants)

    def test_category_hint_flags_television(self) -> None:
        """A 'tv' hint enables television rules for plain names."""
        variants = _variants("Hisense U75N Mini LED", category="tv")
        self.assertNotIn("Hisense", variants)
        self.assertIn("Hisense U75N", variants)


if __name__ == "__main__":
    unittest.main()
