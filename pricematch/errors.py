# pricematch/errors.py

"""Exception hierarchy for pricematch.

Provider errors never leave the orchestrator; they are recorded as
events and the round carries on. Only the two comparison errors reach
callers of ``compare_product``.
"""

from typing import Any


class PriceMatchError(Exception):
    """Base exception for pricematch."""

    def __init__(
        self, message: str, context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


# ── Provider errors ──────────────────────────────────


class ProviderError(PriceMatchError):
    """A single source provider failed to produce candidates."""

    def __init__(
        self,
        message: str,
        provider_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.provider_id = provider_id


class ProviderUnavailable(ProviderError):
    """Credentials missing, provider disabled or circuit open."""


class ProviderRateLimited(ProviderError):
    """The upstream answered with a throttling response."""


class ProviderTimeout(ProviderError):
    """The upstream did not answer within the configured timeout."""


class ProviderParseError(ProviderError):
    """The upstream payload did not have a recognised shape."""


# ── Comparison errors ────────────────────────────────


class ComparisonError(PriceMatchError):
    """A comparison finished without a usable result."""


class NoMatchFound(ComparisonError):
    """Every query variant was tried and nothing was accepted."""

    def __init__(
        self,
        query: str,
        attempted_variants: list[str],
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"No matching offers found for '{query}' "
            f"after {len(attempted_variants)} variant(s)",
            context,
        )
        self.query = query
        self.attempted_variants = list(attempted_variants)


class AmbiguousCategoryMismatch(ComparisonError):
    """The best candidate belonged to a different product category."""

    def __init__(
        self,
        expected_category: str,
        found_category: str,
        title: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"Top result '{title}' looks like a {found_category}, "
            f"expected a {expected_category}",
            context,
        )
        self.expected_category = expected_category
        self.found_category = found_category
        self.title = title
