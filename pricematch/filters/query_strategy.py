# pricematch/filters/query_strategy.py

"""Query relaxation: from the exact product name to broader variants."""

import logging
import re

from pricematch.filters.category_signals import (
    SCREEN_SIZE_RE,
    TELEVISION,
    find_model_code,
    resolve_category,
)
from pricematch.models.product import ProductQuery

logger = logging.getLogger("pricematch.filters")

# Canonical casing for tech abbreviations, e.g. "Led Tv" -> "LED TV"
_CANONICAL_TERMS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(rf"\b{term}\b", re.IGNORECASE), canonical)
    for term, canonical in (
        ("hd", "HD"),
        ("uhd", "UHD"),
        ("led", "LED"),
        ("oled", "OLED"),
        ("qled", "QLED"),
        ("tv", "TV"),
        ("4k", "4K"),
        ("8k", "8K"),
        ("usb", "USB"),
        ("hdmi", "HDMI"),
        ("wifi", "WiFi"),
    )
]

_IPHONE_RE = re.compile(r"\biphone\s*(\d+)", re.IGNORECASE)
_GALAXY_RE = re.compile(r"\bgalaxy\s+(s\d+)", re.IGNORECASE)
_XBOX_RE = re.compile(r"\bxbox\s+series\s+([xs])\b", re.IGNORECASE)


class QueryStrategyGenerator:
    """Produce ordered search variants, most specific first."""

    @staticmethod
    def canonical_casing(text: str) -> str:
        """Apply canonical casing to known tech abbreviations."""
        result = text
        for pattern, canonical in _CANONICAL_TERMS:
            result = pattern.sub(canonical, result)
        return result

    @staticmethod
    def _family_shorthands(text: str) -> list[str]:
        """Well-known short names for popular product families."""
        lower = text.lower()
        shorthands: list[str] = []
        if "playstation" in lower and re.search(r"\b5\b", lower):
            shorthands.append("PS5")
        if "playstation" in lower and re.search(r"\b4\b", lower):
            shorthands.append("PS4")
        xbox = _XBOX_RE.search(text)
        if xbox:
            shorthands.append(f"Xbox Series {xbox.group(1).upper()}")
        iphone = _IPHONE_RE.search(text)
        if iphone:
            shorthands.append(f"iPhone {iphone.group(1)}")
        galaxy = _GALAXY_RE.search(text)
        if galaxy:
            shorthands.append(f"Galaxy {galaxy.group(1).upper()}")
        return shorthands

    @staticmethod
    def _television_variants(
        words: list[str], text: str,
    ) -> tuple[list[str], list[str]]:
        """Brand+size/model variants for televisions.

        Returns ``(front, back)``: *front* goes ahead of the generic
        truncations, *back* after them. The bare brand is never emitted.
        """
        brand = words[0]
        front: list[str] = []
        back: list[str] = []
        model = find_model_code(text)
        size_match = SCREEN_SIZE_RE.search(text)
        size = size_match.group(1) if size_match else None

        if model:
            if size:
                front += [
                    f"{brand} {size} {model} TV",
                    f"{brand} {size} {model}",
                ]
            front += [f"{brand} {model} TV", f"{brand} {model}"]
            descriptors = " ".join(words[:3])
            if model not in descriptors:
                back.append(f"{descriptors} {model}")
        elif len(words) >= 3:
            back.append(" ".join(words[:3]))
            if len(words) >= 4:
                back.append(" ".join(words[:4]))

        if size:
            back += [f"{brand} {size} TV", f"{brand} {size} Class TV"]
        return front, back

    @staticmethod
    def generate(query: ProductQuery) -> list[str]:
        """Return deduplicated, non-empty variants, exact text first.

        Variants after the first are meant to be tried only while the
        comparison has not yet found enough distinct stores.
        """
        text = " ".join(query.search_text.split())
        if not text:
            return []
        words = text.split(" ")
        category = resolve_category(text, query.category_hint)
        is_tv = category == TELEVISION or (
            category is None and bool(SCREEN_SIZE_RE.search(text))
        )

        front: list[str] = []
        back: list[str] = []
        if is_tv:
            front, back = QueryStrategyGenerator._television_variants(
                words, text
            )

        generic: list[str] = []
        if len(words) > 3:
            generic.append(" ".join(words[:3]))
        if len(words) > 2:
            generic.append(" ".join(words[:2]))

        cased = QueryStrategyGenerator.canonical_casing(text)
        if cased != text:
            generic.append(cased)
        generic.extend(QueryStrategyGenerator._family_shorthands(text))

        tail: list[str] = []
        if not is_tv and len(words) > 1:
            tail.append(words[0])

        variants: list[str] = []
        seen: set[str] = set()
        for candidate in [text, *front, *generic, *back, *tail]:
            candidate = candidate.strip()
            if not candidate or candidate in seen:
                continue
            seen.add(candidate)
            variants.append(candidate)

        logger.debug(
            "Generated %d query variants for '%s': %s",
            len(variants),
            text,
            variants,
        )
        return variants
