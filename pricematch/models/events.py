# pricematch/models/events.py

"""Structured diagnostic events emitted during a comparison."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger("pricematch.events")


class EventKind(str, Enum):
    """Kinds of events a comparison can emit."""

    PROVIDER_ATTEMPTED = "provider_attempted"
    PROVIDER_FAILED = "provider_failed"
    CANDIDATE_REJECTED = "candidate_rejected"
    VARIANT_ADVANCED = "variant_advanced"
    VARIANT_SUCCEEDED = "variant_succeeded"
    CACHE_HIT = "cache_hit"


@dataclass(frozen=True)
class ComparisonEvent:
    """One observable step of a comparison run."""

    kind: EventKind
    level: int = logging.DEBUG
    data: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )


class EventLog:
    """Collects events for one request and mirrors them to the logger."""

    def __init__(self) -> None:
        self.events: list[ComparisonEvent] = []

    def emit(
        self,
        kind: EventKind,
        level: int = logging.DEBUG,
        **data: Any,
    ) -> ComparisonEvent:
        """Record an event and log it at *level*."""
        event = ComparisonEvent(kind=kind, level=level, data=data)
        self.events.append(event)
        logger.log(level, "%s %s", kind.value, data)
        return event

    def of_kind(self, kind: EventKind) -> list[ComparisonEvent]:
        """Return all recorded events of one kind, in order."""
        return [e for e in self.events if e.kind == kind]
