# pricematch/providers/serpapi_maps.py

"""Local store results through SerpAPI's Google Maps engine."""

import re
from typing import Any

from pricematch.errors import ProviderParseError
from pricematch.models.product import RawCandidate
from pricematch.providers.base_provider import SourceProvider

# "$25", "$10-20", "$10–20"; the "$$" price-level marker has no digits
_NUMERIC_PRICE_RE = re.compile(r"\$\s*(\d+(?:\.\d+)?)")


class SerpApiMapsProvider(SourceProvider):
    """Places search; only places with a numeric price become candidates.

    A place's title is both the candidate title and the store label, so
    in practice this provider contributes mostly when the query names a
    store-branded product.
    """

    provider_id = "serpapi_maps"
    label = "SerpAPI Maps"
    SEARCH_URL = "https://serpapi.com/search.json"
    ENGINE = "google_maps"

    def is_configured(self) -> bool:
        return bool(
            self.settings.SERPAPI_KEY and self.settings.ENABLE_MAPS_PROVIDER
        )

    def health_url(self) -> str:
        return "https://serpapi.com/"

    def _request_params(self, variant: str, limit: int) -> dict[str, Any]:
        return {"engine": self.ENGINE, "q": variant, "type": "search"}

    def _fetch_payload(self, variant: str, limit: int) -> Any | None:
        params = {
            **self._request_params(variant, limit),
            "api_key": self.settings.SERPAPI_KEY,
        }
        return self._get_json(self.SEARCH_URL, params=params)

    @staticmethod
    def parse_place_price(value: Any) -> float:
        """Numeric price of a place, lower bound of a range, else 0."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        match = _NUMERIC_PRICE_RE.search(str(value or ""))
        return float(match.group(1)) if match else 0.0

    def _parse_payload(self, payload: Any, limit: int) -> list[RawCandidate]:
        if not isinstance(payload, dict):
            raise ProviderParseError(
                "Maps payload is not an object", self.provider_id
            )
        places = payload.get("local_results", [])
        if isinstance(places, dict):
            places = places.get("places", [])
        if not isinstance(places, list):
            raise ProviderParseError(
                "local_results has an unknown shape", self.provider_id
            )

        candidates: list[RawCandidate] = []
        for place in places:
            if not isinstance(place, dict):
                continue
            title = str(place.get("title") or "").strip()
            price = self.parse_place_price(place.get("price"))
            if not title or price <= 0:
                continue
            candidates.append(
                RawCandidate(
                    title=title,
                    price=price,
                    source_label=title,
                    url=str(place.get("website") or place.get("link") or ""),
                    image_url=str(place.get("thumbnail") or ""),
                    provider_id=self.provider_id,
                )
            )
            if len(candidates) >= limit:
                break
        return candidates
