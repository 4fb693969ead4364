# pricematch/services/comparison_orchestrator.py

"""Orchestrates one price comparison across all configured providers."""

import asyncio
import importlib
import logging
from typing import Any

from pricematch.config.settings import Settings
from pricematch.errors import (
    AmbiguousCategoryMismatch,
    NoMatchFound,
    ProviderTimeout,
    ProviderUnavailable,
)
from pricematch.filters.candidate_matcher import (
    REASON_CATEGORY_MISMATCH,
    CandidateMatcher,
)
from pricematch.filters.category_signals import (
    detect_category,
    resolve_category,
)
from pricematch.filters.deduplicator import StorePriceDeduplicator
from pricematch.filters.price_validator import PriceValidator
from pricematch.filters.query_strategy import QueryStrategyGenerator
from pricematch.filters.store_normalizer import StoreNormalizer
from pricematch.models.comparison import (
    AggregatedResult,
    ComparisonState,
    MatchDecision,
    StorePrice,
)
from pricematch.models.events import EventKind, EventLog
from pricematch.models.product import ProductQuery, RawCandidate
from pricematch.providers.base_provider import SourceProvider
from pricematch.providers.browser_session import BrowserSession
from pricematch.services.aggregator import Aggregator
from pricematch.services.rate_limiter import RateLimiterRegistry
from pricematch.storage.result_cache import ResultCache, build_cache

logger = logging.getLogger("pricematch.orchestrator")

REASON_PRICE_IMPLAUSIBLE = "price_implausible"


def _load_provider_class(dotted_path: str) -> type[Any]:
    """Dynamically import a provider class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class ComparisonOrchestrator:
    """Fans each query variant out to every provider and merges the results.

    Variants are tried one round at a time, most specific first. Within
    a round all providers run concurrently with their own timeout and
    the round waits for every one of them to settle. The next variant
    fires only while fewer than ``MIN_VIABLE_STORES`` distinct stores
    have been accepted.
    """

    def __init__(
        self,
        providers: list[dict[str, str]] | None = None,
        cache: ResultCache | None = None,
        browser: BrowserSession | None = None,
    ) -> None:
        self.settings = Settings()
        self.cache = cache or build_cache()
        self.browser = browser or BrowserSession()
        self.rate_limiters = RateLimiterRegistry()
        self._unavailable_logged: set[str] = set()
        self.providers: list[SourceProvider] = self._build_providers(
            providers or Settings.AVAILABLE_PROVIDERS
        )
        self.cache.purge_expired()

    def _build_providers(
        self, configs: list[dict[str, str]],
    ) -> list[SourceProvider]:
        built: list[SourceProvider] = []
        for config in configs:
            cls = _load_provider_class(config["provider"])
            kwargs: dict[str, Any] = {
                "cache": self.cache,
                "rate_limiter": self.rate_limiters.get(config["id"]),
            }
            if getattr(cls, "needs_browser", False):
                kwargs["browser"] = self.browser
            built.append(cls(**kwargs))
        return built

    def close(self) -> None:
        """Release the shared browser session."""
        self.browser.close()

    # ── Private helpers ──────────────────────────────────

    def _active_providers(self, events: EventLog) -> list[SourceProvider]:
        active: list[SourceProvider] = []
        for provider in self.providers:
            if provider.is_configured():
                active.append(provider)
                continue
            if provider.provider_id not in self._unavailable_logged:
                self._unavailable_logged.add(provider.provider_id)
                logger.warning(
                    "Provider %s is not configured, skipping",
                    provider.provider_id,
                )
            events.emit(
                EventKind.PROVIDER_FAILED,
                provider=provider.provider_id,
                reason="unavailable",
            )
        return active

    async def _run_providers(
        self,
        variant: str,
        providers: list[SourceProvider],
        events: EventLog,
    ) -> list[RawCandidate]:
        """Query every provider concurrently and collect their candidates.

        A failing or slow provider contributes nothing to this round;
        its error is recorded and the others are unaffected.
        """
        limit = self.settings.PROVIDER_RESULT_LIMIT
        timeout = self.settings.PROVIDER_TIMEOUT

        async def run_one(
            provider: SourceProvider,
        ) -> tuple[list[RawCandidate], bool]:
            events.emit(
                EventKind.PROVIDER_ATTEMPTED,
                provider=provider.provider_id,
                variant=variant,
            )
            outcome: tuple[list[RawCandidate], bool] = await asyncio.wait_for(
                asyncio.to_thread(provider.search_with_status, variant, limit),
                timeout=timeout,
            )
            return outcome

        batches = await asyncio.gather(
            *(run_one(p) for p in providers), return_exceptions=True
        )

        candidates: list[RawCandidate] = []
        for provider, batch in zip(providers, batches):
            pid = provider.provider_id
            if isinstance(batch, tuple):
                found, cached = batch
                if cached:
                    events.emit(
                        EventKind.CACHE_HIT, provider=pid, variant=variant
                    )
                candidates.extend(found)
            elif isinstance(batch, (asyncio.TimeoutError, ProviderTimeout)):
                events.emit(
                    EventKind.PROVIDER_FAILED,
                    logging.WARNING,
                    provider=pid,
                    variant=variant,
                    reason="timeout",
                )
            elif isinstance(batch, ProviderUnavailable):
                level = logging.DEBUG
                if pid not in self._unavailable_logged:
                    self._unavailable_logged.add(pid)
                    level = logging.WARNING
                events.emit(
                    EventKind.PROVIDER_FAILED,
                    level,
                    provider=pid,
                    variant=variant,
                    reason="unavailable",
                    error=str(batch),
                )
            elif isinstance(batch, Exception):
                logger.error(
                    "Provider %s failed for '%s': %s",
                    pid,
                    variant,
                    batch,
                    exc_info=batch,
                )
                events.emit(
                    EventKind.PROVIDER_FAILED,
                    logging.WARNING,
                    provider=pid,
                    variant=variant,
                    reason=type(batch).__name__,
                    error=str(batch),
                )
        return candidates

    def _accept(
        self,
        candidate: RawCandidate,
        query: ProductQuery,
        events: EventLog,
        identified: bool = False,
    ) -> tuple[MatchDecision, StorePrice | None]:
        """Matcher, then price validator, then store normalisation.

        Offers *identified* by barcode skip the matcher: the catalog
        already resolved the exact product.
        """
        expected = query.search_text
        if identified:
            decision = MatchDecision(candidate, True, 1.0, None)
        else:
            decision = CandidateMatcher.evaluate(
                candidate, expected, query.category_hint
            )
        if not decision.accepted:
            events.emit(
                EventKind.CANDIDATE_REJECTED,
                title=candidate.title,
                provider=candidate.provider_id,
                reason=decision.reject_reason,
            )
            return decision, None

        if not PriceValidator.is_plausible(candidate.price, expected):
            events.emit(
                EventKind.CANDIDATE_REJECTED,
                title=candidate.title,
                provider=candidate.provider_id,
                price=candidate.price,
                reason=REASON_PRICE_IMPLAUSIBLE,
            )
            return decision, None

        store = StoreNormalizer.normalize(candidate.source_label)
        return decision, StorePrice(
            store_id=store.store_id,
            store_name=store.name,
            price=candidate.price,
            currency=candidate.currency,
            in_stock=candidate.in_stock,
            url=candidate.url,
            image_url=candidate.image_url,
            title=candidate.title,
            provider_id=candidate.provider_id,
            confidence=decision.confidence,
        )

    async def _barcode_round(
        self,
        query: ProductQuery,
        providers: list[SourceProvider],
        events: EventLog,
        attempted: list[str],
    ) -> list[StorePrice]:
        """Look the barcode up on every provider that understands GTINs."""
        digits = query.barcode_digits
        if digits is None:
            if query.barcode:
                logger.warning("Ignoring malformed barcode '%s'", query.barcode)
            return []
        scanners = [p for p in providers if p.supports_barcode]
        if not scanners:
            return []

        attempted.append(digits)
        accepted: list[StorePrice] = []
        for candidate in await self._run_providers(digits, scanners, events):
            _, store_price = self._accept(
                candidate, query, events, identified=True
            )
            if store_price is not None:
                accepted.append(store_price)
        return accepted

    # ── Public entry point ───────────────────────────────

    async def compare_product(
        self,
        description: str,
        expected_name: str | None = None,
        category_hint: str | None = None,
        barcode: str | None = None,
    ) -> AggregatedResult:
        """Find, verify and rank prices for one product.

        A valid *barcode* is looked up first on providers that support
        it; text variants then run only while stores are still short.

        Raises:
            NoMatchFound: every variant was tried and nothing passed.
            AmbiguousCategoryMismatch: nothing passed and the top
                candidate was vetoed as a different product category.
        """
        query = ProductQuery(description, expected_name, category_hint, barcode)
        events = EventLog()
        state = ComparisonState.NOT_STARTED
        attempted: list[str] = []
        top_decision: MatchDecision | None = None
        min_stores = self.settings.MIN_VIABLE_STORES

        providers = self._active_providers(events)
        accepted = await self._barcode_round(
            query, providers, events, attempted
        )
        accepted, _ = StorePriceDeduplicator.deduplicate(accepted)
        store_count = len({p.store_id for p in accepted})

        if store_count >= min_stores:
            state = ComparisonState.SUCCESS
            events.emit(
                EventKind.VARIANT_SUCCEEDED,
                logging.INFO,
                variant=query.barcode_digits,
                stores=store_count,
            )
            variants: list[str] = []
        else:
            variants = QueryStrategyGenerator.generate(query)

        for index, variant in enumerate(variants):
            state = ComparisonState.TRYING_VARIANT
            attempted.append(variant)
            candidates = await self._run_providers(variant, providers, events)

            for candidate in candidates:
                decision, store_price = self._accept(candidate, query, events)
                if top_decision is None:
                    top_decision = decision
                if store_price is not None:
                    accepted.append(store_price)

            accepted, _ = StorePriceDeduplicator.deduplicate(accepted)
            store_count = len({p.store_id for p in accepted})
            if store_count >= min_stores:
                state = ComparisonState.SUCCESS
                events.emit(
                    EventKind.VARIANT_SUCCEEDED,
                    logging.INFO,
                    variant=variant,
                    stores=store_count,
                )
                break
            if index < len(variants) - 1:
                events.emit(
                    EventKind.VARIANT_ADVANCED,
                    logging.INFO,
                    variant=variant,
                    next_variant=variants[index + 1],
                    stores=store_count,
                )

        if state is not ComparisonState.SUCCESS:
            state = ComparisonState.EXHAUSTED_VARIANTS

        if not accepted:
            if (
                top_decision is not None
                and top_decision.reject_reason == REASON_CATEGORY_MISMATCH
            ):
                raise AmbiguousCategoryMismatch(
                    expected_category=str(
                        resolve_category(query.search_text, category_hint)
                    ),
                    found_category=str(
                        detect_category(top_decision.candidate.title)
                    ),
                    title=top_decision.candidate.title,
                    context={"attempted_variants": attempted},
                )
            raise NoMatchFound(query.search_text or description, attempted)

        return Aggregator.build(
            query.search_text, accepted, attempted, events.events, state
        )


def compare_product(
    description: str,
    expected_name: str | None = None,
    category_hint: str | None = None,
    orchestrator: ComparisonOrchestrator | None = None,
    barcode: str | None = None,
) -> AggregatedResult:
    """Synchronous wrapper around :meth:`ComparisonOrchestrator.compare_product`."""
    owner = orchestrator or ComparisonOrchestrator()
    try:
        return asyncio.run(
            owner.compare_product(
                description, expected_name, category_hint, barcode
            )
        )
    finally:
        if orchestrator is None:
            owner.close()
