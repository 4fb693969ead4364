# pricematch/models/comparison.py

"""Match decisions, normalised store prices and the final result."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pricematch.models.events import ComparisonEvent
from pricematch.models.product import RawCandidate


class ComparisonState(str, Enum):
    """Lifecycle of a single comparison request."""

    NOT_STARTED = "not_started"
    TRYING_VARIANT = "trying_variant"
    SUCCESS = "success"
    EXHAUSTED_VARIANTS = "exhausted_variants"


@dataclass(frozen=True)
class MatchDecision:
    """Outcome of checking one candidate against the expected product."""

    candidate: RawCandidate
    accepted: bool
    confidence: float = 0.0
    reject_reason: str | None = None


@dataclass(frozen=True)
class StoreIdentity:
    """Canonical store id plus its display name."""

    store_id: str
    name: str


@dataclass(frozen=True)
class StorePrice:
    """An accepted, validated offer attributed to a canonical store."""

    store_id: str
    store_name: str
    price: float
    currency: str = "USD"
    in_stock: bool | None = None
    url: str = ""
    image_url: str = ""
    title: str = ""
    provider_id: str = ""
    confidence: float = 0.0
    observed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON output."""
        data = asdict(self)
        data["observed_at"] = self.observed_at.isoformat()
        return data


@dataclass
class AggregatedResult:
    """Ranked, store-deduplicated prices for one product."""

    product_name: str
    store_prices: list[StorePrice] = field(
        default_factory=lambda: list[StorePrice]()
    )
    representative_image: str = ""
    best_price: float = 0.0
    best_store_id: str = ""
    total_stores: int = 0
    max_savings: float = 0.0
    attempted_variants: list[str] = field(
        default_factory=lambda: list[str]()
    )
    events: list[ComparisonEvent] = field(
        default_factory=lambda: list[ComparisonEvent]()
    )
    state: ComparisonState = ComparisonState.NOT_STARTED

    @property
    def best_store_name(self) -> str:
        """Display name of the cheapest store."""
        for sp in self.store_prices:
            if sp.store_id == self.best_store_id:
                return sp.store_name
        return ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise the public part of the result for JSON output."""
        return {
            "product_name": self.product_name,
            "representative_image": self.representative_image,
            "best_price": self.best_price,
            "best_store_id": self.best_store_id,
            "best_store_name": self.best_store_name,
            "total_stores": self.total_stores,
            "max_savings": self.max_savings,
            "attempted_variants": list(self.attempted_variants),
            "state": self.state.value,
            "store_prices": [sp.to_dict() for sp in self.store_prices],
        }
