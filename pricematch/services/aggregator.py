# pricematch/services/aggregator.py

"""Rank accepted store prices and summarise them."""

import logging

from pricematch.models.comparison import (
    AggregatedResult,
    ComparisonState,
    StorePrice,
)
from pricematch.models.events import ComparisonEvent

logger = logging.getLogger("pricematch.aggregator")


def rank_store_prices(prices: list[StorePrice]) -> list[StorePrice]:
    """Ascending by price; equal prices ordered by store id."""
    return sorted(prices, key=lambda p: (p.price, p.store_id))


class Aggregator:
    """Build the final :class:`AggregatedResult` from deduplicated prices."""

    @staticmethod
    def build(
        product_name: str,
        prices: list[StorePrice],
        attempted_variants: list[str] | None = None,
        events: list[ComparisonEvent] | None = None,
        state: ComparisonState = ComparisonState.SUCCESS,
    ) -> AggregatedResult:
        """Sort, pick the best offer and compute the savings spread."""
        ranked = rank_store_prices(prices)
        result = AggregatedResult(
            product_name=product_name,
            store_prices=ranked,
            attempted_variants=list(attempted_variants or []),
            events=list(events or []),
            state=state,
        )
        if not ranked:
            return result

        best, worst = ranked[0], ranked[-1]
        result.best_price = best.price
        result.best_store_id = best.store_id
        result.total_stores = len({p.store_id for p in ranked})
        result.max_savings = round(worst.price - best.price, 2)
        result.representative_image = next(
            (p.image_url for p in ranked if p.image_url), ""
        )
        logger.info(
            "Aggregated %d prices across %d stores for '%s' "
            "(best %.2f at %s)",
            len(ranked),
            result.total_stores,
            product_name,
            result.best_price,
            result.best_store_id,
        )
        return result
