# pricematch/providers/serpapi_shopping.py

"""Google Shopping results through the SerpAPI JSON endpoint."""

from typing import Any

from pricematch.errors import ProviderParseError
from pricematch.models.product import RawCandidate
from pricematch.providers.base_provider import SourceProvider


class SerpApiShoppingProvider(SourceProvider):
    """Structured catalog provider backed by SerpAPI's shopping engine.

    Each ``shopping_results`` item already carries the seller name in
    ``source``, so no per-offer follow-up request is needed.
    """

    provider_id = "serpapi_shopping"
    label = "SerpAPI Shopping"
    SEARCH_URL = "https://serpapi.com/search.json"
    ENGINE = "google_shopping"

    # SerpAPI answers "no results" with an error string, not an empty list
    _NO_RESULTS_MARKERS = ("hasn't returned any results", "no results")

    def is_configured(self) -> bool:
        return bool(self.settings.SERPAPI_KEY)

    def health_url(self) -> str:
        return "https://serpapi.com/"

    def _request_params(self, variant: str, limit: int) -> dict[str, Any]:
        return {
            "engine": self.ENGINE,
            "q": variant,
            "gl": "us",
            "hl": "en",
            "num": limit,
        }

    def _fetch_payload(self, variant: str, limit: int) -> Any | None:
        params = {
            **self._request_params(variant, limit),
            "api_key": self.settings.SERPAPI_KEY,
        }
        return self._get_json(self.SEARCH_URL, params=params)

    def _parse_payload(self, payload: Any, limit: int) -> list[RawCandidate]:
        if not isinstance(payload, dict):
            raise ProviderParseError(
                "Shopping payload is not an object", self.provider_id
            )
        error = payload.get("error")
        if error:
            if any(m in str(error).lower() for m in self._NO_RESULTS_MARKERS):
                return []
            raise ProviderParseError(
                f"SerpAPI error: {error}", self.provider_id
            )

        results = payload.get("shopping_results", [])
        if not isinstance(results, list):
            raise ProviderParseError(
                "shopping_results is not a list", self.provider_id
            )

        candidates: list[RawCandidate] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            candidate = self._parse_item(item)
            if candidate is not None:
                candidates.append(candidate)
            if len(candidates) >= limit:
                break
        return candidates

    def _parse_item(self, item: dict[str, Any]) -> RawCandidate | None:
        title = str(item.get("title") or "").strip()
        price = self.extract_price(
            item.get("extracted_price", item.get("price"))
        )
        if not title or price <= 0:
            return None
        return RawCandidate(
            title=title,
            price=price,
            source_label=str(item.get("source") or ""),
            url=str(item.get("link") or item.get("product_link") or ""),
            image_url=str(item.get("thumbnail") or ""),
            in_stock=None,
            provider_id=self.provider_id,
        )
