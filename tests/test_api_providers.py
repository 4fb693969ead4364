# tests/test_api_providers.py

"""Tests for the JSON API providers: SerpAPI Shopping, PricesAPI, Maps."""

import unittest
from unittest.mock import MagicMock, patch

from pricematch.config.settings import Settings
from pricematch.errors import ProviderParseError, ProviderUnavailable
from pricematch.providers.pricesapi import PricesApiProvider
from pricematch.providers.serpapi_maps import SerpApiMapsProvider
from pricematch.providers.serpapi_shopping import SerpApiShoppingProvider
from pricematch.services.comparison_orchestrator import (
    ComparisonOrchestrator,
    compare_product,
)
from pricematch.storage.result_cache import ResultCache

_SESSION = "pricematch.providers.base_provider.curl_requests.Session"


def _json_response(body: dict) -> MagicMock:
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    return resp


_SHOPPING_PAYLOAD = {
    "shopping_results": [
        {
            "title": "Apple iPhone 15 Pro Max 256GB",
            "extracted_price": 1199.0,
            "price": "$1,199.00",
            "source": "Best Buy",
            "link": "https://bestbuy.com/iphone",
            "thumbnail": "https://img/1.jpg",
        },
        {
            "title": "iPhone 15 Pro Max Case",
            "price": "$19.99",
            "source": "Amazon.com",
            "product_link": "https://google.com/shopping/product/1",
        },
        {"title": "", "price": "$5"},
        {"title": "No price", "price": "see site"},
    ]
}


@patch(_SESSION)
class TestSerpApiShopping(unittest.TestCase):
    """SerpApiShoppingProvider parsing and configuration."""

    def _provider(self) -> SerpApiShoppingProvider:
        return SerpApiShoppingProvider(
            cache=ResultCache(), rate_limiter=MagicMock()
        )

    def test_parse_results(self, mock_session_cls: MagicMock) -> None:
        """Valid items become candidates, incomplete ones are skipped."""
        candidates = self._provider()._parse_payload(_SHOPPING_PAYLOAD, 20)
        self.assertEqual(len(candidates), 2)
        first, second = candidates
        self.assertEqual(first.price, 1199.0)
        self.assertEqual(first.source_label, "Best Buy")
        self.assertEqual(first.image_url, "https://img/1.jpg")
        self.assertEqual(second.price, 19.99)
        self.assertEqual(
            second.url, "https://google.com/shopping/product/1"
        )

    def test_no_results_error_is_empty(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """SerpAPI's no-results error is an empty result, not a failure."""
        payload = {"error": "Google hasn't returned any results for this query."}
        self.assertEqual(self._provider()._parse_payload(payload, 20), [])

    def test_other_error_raises(self, mock_session_cls: MagicMock) -> None:
        """Any other error string is a parse error."""
        with self.assertRaises(ProviderParseError):
            self._provider()._parse_payload({"error": "Invalid API key."}, 20)

    def test_unconfigured_without_key(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Without SERPAPI_KEY the provider refuses to search."""
        with patch.object(Settings, "SERPAPI_KEY", ""):
            with self.assertRaises(ProviderUnavailable):
                self._provider().search("iphone", 5)

    def test_search_sends_api_key(self, mock_session_cls: MagicMock) -> None:
        """The key is sent on the wire but not part of the cache key."""
        session = mock_session_cls.return_value
        session.get.return_value = _json_response(_SHOPPING_PAYLOAD)
        with patch.object(Settings, "SERPAPI_KEY", "secret"):
            provider = self._provider()
            results = provider.search("iPhone 15 Pro Max", 20)
        self.assertEqual(len(results), 2)
        params = session.get.call_args.kwargs["params"]
        self.assertEqual(params["api_key"], "secret")
        self.assertEqual(params["engine"], "google_shopping")
        self.assertNotIn(
            "api_key", provider._request_params("iPhone 15 Pro Max", 20)
        )


@patch(_SESSION)
class TestPricesApi(unittest.TestCase):
    """PricesApiProvider two-step fetch and offer parsing."""

    def _provider(self) -> PricesApiProvider:
        return PricesApiProvider(cache=ResultCache(), rate_limiter=MagicMock())

    def test_search_then_offers(self, mock_session_cls: MagicMock) -> None:
        """Offers inherit the catalog title and keep their seller."""
        session = mock_session_cls.return_value
        session.get.side_effect = [
            _json_response({
                "data": {
                    "results": [
                        {"id": 42, "title": "Sony WH-1000XM5 Headphones"}
                    ]
                }
            }),
            _json_response({
                "data": {
                    "image": "https://img/xm5.jpg",
                    "offers": [
                        {
                            "seller": "Best Buy",
                            "price": 329.99,
                            "currency": "USD",
                            "url": "https://bestbuy.com/xm5",
                            "stock": "In stock",
                        },
                        {
                            "seller": "Walmart",
                            "price": "$299.00",
                            "seller_url": "https://walmart.com/xm5",
                            "stock": "Out of stock",
                        },
                        {"seller": "Target", "price": None},
                    ],
                }
            }),
        ]
        with patch.object(Settings, "PRICESAPI_KEY", "k"):
            results = self._provider().search("Sony WH-1000XM5", 20)

        self.assertEqual(len(results), 2)
        self.assertTrue(
            all(c.title == "Sony WH-1000XM5 Headphones" for c in results)
        )
        self.assertEqual(results[0].source_label, "Best Buy")
        self.assertTrue(results[0].in_stock)
        self.assertEqual(results[1].url, "https://walmart.com/xm5")
        self.assertFalse(results[1].in_stock)
        self.assertEqual(results[1].image_url, "https://img/xm5.jpg")
        offers_url = session.get.call_args_list[1].args[0]
        self.assertTrue(offers_url.endswith("/products/42/offers"))
        headers = session.get.call_args_list[0].kwargs["headers"]
        self.assertEqual(headers["x-api-key"], "k")

    def test_no_catalog_match(self, mock_session_cls: MagicMock) -> None:
        """An empty catalog search yields no candidates and one request."""
        session = mock_session_cls.return_value
        session.get.return_value = _json_response({"data": {"results": []}})
        with patch.object(Settings, "PRICESAPI_KEY", "k"):
            self.assertEqual(self._provider().search("nothing", 20), [])
        self.assertEqual(session.get.call_count, 1)

    def test_barcode_lookup_uses_digits(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """A formatted barcode is searched as bare digits."""
        session = mock_session_cls.return_value
        session.get.side_effect = [
            _json_response({
                "data": {"results": [{"id": 7, "title": "PS5 Slim Console"}]}
            }),
            _json_response({
                "data": {
                    "offers": [
                        {"seller": "Target", "price": 449.0},
                        {"seller": "Walmart", "price": 459.0},
                        {"seller": "Costco", "price": 469.0},
                    ]
                }
            }),
        ]
        config = {
            "id": "pricesapi",
            "label": "PricesAPI",
            "provider": "pricematch.providers.pricesapi.PricesApiProvider",
        }
        with patch.object(Settings, "PRICESAPI_KEY", "k"):
            orchestrator = ComparisonOrchestrator(
                providers=[config], cache=ResultCache(), browser=MagicMock()
            )
            result = compare_product(
                "PS5 Slim",
                orchestrator=orchestrator,
                barcode="0 711719 57729-4",
            )

        self.assertEqual(result.attempted_variants, ["0711719577294"])
        self.assertEqual(result.total_stores, 3)
        params = session.get.call_args_list[0].kwargs["params"]
        self.assertEqual(params["q"], "0711719577294")
        self.assertEqual(session.get.call_count, 2)

    def test_missing_stock_is_unknown(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Offers without a stock field have unknown availability."""
        payload = {
            "product": {"title": "Widget"},
            "offers": [{"store": "Shop", "price": 5}],
        }
        (candidate,) = self._provider()._parse_payload(payload, 20)
        self.assertIsNone(candidate.in_stock)
        self.assertEqual(candidate.source_label, "Shop")

    def test_unknown_shape_raises(self, mock_session_cls: MagicMock) -> None:
        with self.assertRaises(ProviderParseError):
            self._provider()._parse_payload({"unexpected": True}, 20)


@patch(_SESSION)
class TestSerpApiMaps(unittest.TestCase):
    """SerpApiMapsProvider place price handling."""

    def _provider(self) -> SerpApiMapsProvider:
        return SerpApiMapsProvider(cache=ResultCache(), rate_limiter=MagicMock())

    def test_parse_place_price(self, mock_session_cls: MagicMock) -> None:
        """Numeric prices parse; price-level markers do not."""
        parse = SerpApiMapsProvider.parse_place_price
        self.assertEqual(parse("$25"), 25.0)
        self.assertEqual(parse("$10-20"), 10.0)
        self.assertEqual(parse("$$"), 0.0)
        self.assertEqual(parse(None), 0.0)
        self.assertEqual(parse(12), 12.0)

    def test_only_priced_places_kept(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """Places without a numeric price are dropped."""
        payload = {
            "local_results": [
                {"title": "Joe's Pizza", "price": "$10-20", "website": "https://joes"},
                {"title": "Fancy Place", "price": "$$$"},
            ]
        }
        candidates = self._provider()._parse_payload(payload, 20)
        self.assertEqual(len(candidates), 1)
        self.assertEqual(candidates[0].source_label, "Joe's Pizza")
        self.assertEqual(candidates[0].price, 10.0)

    def test_places_dict_shape(self, mock_session_cls: MagicMock) -> None:
        """local_results may wrap places in a dict."""
        payload = {"local_results": {"places": [{"title": "A", "price": "$5"}]}}
        self.assertEqual(len(self._provider()._parse_payload(payload, 20)), 1)

    def test_disabled_by_default(self, mock_session_cls: MagicMock) -> None:
        """The maps provider needs both a key and the toggle."""
        with patch.object(Settings, "SERPAPI_KEY", "k"), patch.object(
            Settings, "ENABLE_MAPS_PROVIDER", False
        ):
            self.assertFalse(self._provider().is_configured())
        with patch.object(Settings, "SERPAPI_KEY", "k"), patch.object(
            Settings, "ENABLE_MAPS_PROVIDER", True
        ):
            self.assertTrue(self._provider().is_configured())


if __name__ == "__main__":
    unittest.main()
