# pricematch/filters/candidate_matcher.py

"""Decide whether a provider candidate is the product the user asked for."""

import logging
import math

from pricematch.filters.category_signals import (
    TELEVISION,
    TV_SIGNIFICANT_WORDS,
    categories_incompatible,
    detect_category,
    extract_model_code,
    extract_screen_size,
    resolve_category,
    tokenize,
)
from pricematch.models.comparison import MatchDecision
from pricematch.models.product import RawCandidate

logger = logging.getLogger("pricematch.filters")

REASON_CATEGORY_MISMATCH = "category_mismatch"
REASON_INSUFFICIENT_SPECIFICITY = "insufficient_specificity"
REASON_LOW_OVERLAP = "low_overlap"
REASON_EMPTY_TITLE = "empty_title"

# Confidence weights, strongest evidence first
_CONTAINMENT_SCORE = 1.0
_MODEL_CODE_SCORE = 0.85
_SCREEN_SIZE_SCORE = 0.7
_OVERLAP_SCALE = 0.6


def _normalise(text: str) -> str:
    return " ".join(tokenize(text))


class CandidateMatcher:
    """Category veto first, then containment or token overlap.

    Television expectations additionally need a size, a model code or
    two shared descriptors, because a brand alone ("Samsung") matches
    far too many unrelated products.
    """

    @staticmethod
    def evaluate(
        candidate: RawCandidate,
        expected_name: str,
        category_hint: str | None = None,
    ) -> MatchDecision:
        """Return an accept/reject decision with a confidence score."""
        title = candidate.title.strip()
        if not tokenize(title):
            return MatchDecision(
                candidate, False, 0.0, REASON_EMPTY_TITLE
            )

        expected_category = resolve_category(expected_name, category_hint)
        found_category = detect_category(title)
        if categories_incompatible(expected_category, found_category):
            logger.debug(
                "Category veto: expected %s, got %s for '%s'",
                expected_category,
                found_category,
                title,
            )
            return MatchDecision(
                candidate, False, 0.0, REASON_CATEGORY_MISMATCH
            )

        expected_norm = _normalise(expected_name)
        title_norm = _normalise(title)
        contained = bool(expected_norm and title_norm) and (
            expected_norm in title_norm or title_norm in expected_norm
        )

        expected_tokens = list(dict.fromkeys(tokenize(expected_name)))
        title_tokens = set(tokenize(title))
        shared = [t for t in expected_tokens if t in title_tokens]

        expected_model = extract_model_code(expected_name)
        model_match = (
            expected_model is not None
            and expected_model in title_norm.split()
        )
        expected_size = extract_screen_size(expected_name)
        size_match = expected_size is not None and (
            extract_screen_size(title) == expected_size
            or expected_size in title_tokens
        )

        if expected_category == TELEVISION:
            shared_significant = [
                t for t in shared if t in TV_SIGNIFICANT_WORDS
            ]
            if not (
                size_match or model_match or len(shared_significant) >= 2
            ):
                return MatchDecision(
                    candidate, False, 0.0, REASON_INSUFFICIENT_SPECIFICITY
                )

        required = min(2, math.ceil(len(expected_tokens) / 2))
        overlap_ok = bool(expected_tokens) and len(shared) >= required
        if not (contained or overlap_ok):
            return MatchDecision(candidate, False, 0.0, REASON_LOW_OVERLAP)

        if contained:
            confidence = _CONTAINMENT_SCORE
        else:
            ratio = len(shared) / len(expected_tokens)
            confidence = max(
                _MODEL_CODE_SCORE if model_match else 0.0,
                _SCREEN_SIZE_SCORE if size_match else 0.0,
                round(ratio * _OVERLAP_SCALE, 4),
            )
        return MatchDecision(candidate, True, confidence, None)
