# pricematch/providers/pricesapi.py

"""PricesAPI (pricesapi.io): product search, then live offers per store."""

from typing import Any

from pricematch.errors import ProviderParseError
from pricematch.models.product import RawCandidate
from pricematch.providers.base_provider import SourceProvider


class PricesApiProvider(SourceProvider):
    """Two-step catalog provider.

    1. ``/products/search`` resolves the query, or a GTIN barcode in
       digits-only form, to a catalog product.
    2. ``/products/{id}/offers`` lists that product's offers per seller.

    Every offer inherits the catalog product's title, so the matcher
    judges the product once while each seller becomes its own store.
    """

    provider_id = "pricesapi"
    label = "PricesAPI"
    supports_barcode = True
    BASE_URL = "https://api.pricesapi.io/api/v1"
    COUNTRY = "us"
    MAX_SEARCH_LIMIT = 100

    def is_configured(self) -> bool:
        return bool(self.settings.PRICESAPI_KEY)

    def health_url(self) -> str:
        return "https://pricesapi.io/"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.settings.PRICESAPI_KEY,
            "Accept": "application/json",
        }

    def _request_params(self, variant: str, limit: int) -> dict[str, Any]:
        return {
            "q": variant,
            "limit": min(limit, self.MAX_SEARCH_LIMIT),
            "country": self.COUNTRY,
        }

    def _fetch_payload(self, variant: str, limit: int) -> Any | None:
        search = self._get_json(
            f"{self.BASE_URL}/products/search",
            params={"q": variant, "limit": min(limit, self.MAX_SEARCH_LIMIT)},
            headers=self._headers(),
        )
        data = search.get("data")
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results:
            self.logger.warning(
                "[%s] No catalog results for '%s'", self.provider_id, variant
            )
            return {"product": None, "offers": []}

        product = results[0]
        product_id = product.get("id") if isinstance(product, dict) else None
        if product_id is None:
            raise ProviderParseError(
                "Catalog search result has no id", self.provider_id
            )

        offers_data = self._get_json(
            f"{self.BASE_URL}/products/{product_id}/offers",
            params={"country": self.COUNTRY},
            headers=self._headers(),
        )
        body = offers_data.get("data", offers_data)
        if not isinstance(body, dict):
            raise ProviderParseError(
                "Offers payload is not an object", self.provider_id
            )
        return {
            "product": product,
            "image": body.get("image"),
            "offers": body.get("offers", []),
        }

    def _parse_payload(self, payload: Any, limit: int) -> list[RawCandidate]:
        if not isinstance(payload, dict) or "offers" not in payload:
            raise ProviderParseError(
                "Cached PricesAPI payload has an unknown shape",
                self.provider_id,
            )
        product = payload.get("product") or {}
        offers = payload.get("offers") or []
        if not isinstance(offers, list):
            raise ProviderParseError("offers is not a list", self.provider_id)

        title = str(product.get("title") or product.get("name") or "").strip()
        product_image = str(payload.get("image") or product.get("image") or "")

        candidates: list[RawCandidate] = []
        for offer in offers:
            if not isinstance(offer, dict):
                continue
            price = self.extract_price(offer.get("price"))
            if price <= 0 or not title:
                continue
            stock = offer.get("stock")
            candidates.append(
                RawCandidate(
                    title=title,
                    price=price,
                    source_label=str(
                        offer.get("seller") or offer.get("store") or ""
                    ),
                    url=str(offer.get("url") or offer.get("seller_url") or ""),
                    currency=str(offer.get("currency") or "USD"),
                    image_url=product_image or str(offer.get("image") or ""),
                    in_stock=(
                        str(stock).strip().lower() != "out of stock"
                        if stock is not None
                        else None
                    ),
                    provider_id=self.provider_id,
                )
            )
        return candidates[:limit]
