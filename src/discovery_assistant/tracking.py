"""Interaction telemetry split into a personalization channel and a discovery channel.

Personalized interactions feed the personalization model's training events.
Interactions on inspiration items are kept in a separate table that is only
used for discovery statistics, so variety items never bias what the model
learns about the shopper.
"""

from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Protocol

from discovery_assistant.db import AssistantDB
from discovery_assistant.models import InspirationReason, ProductWithContext


_LOGGER = logging.getLogger(__name__)

# Engagement weights for personalization training events.
_EVENT_WEIGHTS: dict[str, float] = {
    "view": 0.3,
    "click": 0.5,
}
_TIME_SPENT_WEIGHT = 0.1  # per 10 seconds of view time


class InteractionKind(str, Enum):
    VIEW = "view"
    CLICK = "click"


class InteractionSource(str, Enum):
    PERSONALIZED = "personalized"
    DISCOVERY = "discovery"


@dataclass(frozen=True)
class InteractionEvent:
    product_id: str
    kind: InteractionKind
    source: InteractionSource
    reason: InspirationReason | None = None
    session_id: str | None = None
    time_spent: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class MixComposition:
    query: str | None
    discovery_percentage: int
    personalized_count: int
    inspiration_count: int
    requested_outliers: int


class InteractionTracker(Protocol):
    def record(self, event: InteractionEvent) -> None: ...

    def record_mix_composition(self, composition: MixComposition) -> None: ...


def event_for(
    item: ProductWithContext,
    kind: InteractionKind | str,
    *,
    time_spent: float | None = None,
) -> InteractionEvent:
    """Build the telemetry event for an interaction with a displayed item.

    The source is derived from the item's display type, never passed in, so an
    inspiration item always reports ``discovery``.
    """
    return InteractionEvent(
        product_id=item.product.id,
        kind=InteractionKind(kind),
        source=InteractionSource(item.interaction_source),
        reason=item.inspiration_reason,
        session_id=item.session_id,
        time_spent=time_spent,
    )


def event_weight(event: InteractionEvent) -> float:
    weight = _EVENT_WEIGHTS.get(event.kind.value, 0.0)
    if event.kind is InteractionKind.VIEW and event.time_spent:
        weight += (max(0.0, float(event.time_spent)) / 10.0) * _TIME_SPENT_WEIGHT
    return weight


class SQLiteInteractionTracker:
    def __init__(self, db: AssistantDB) -> None:
        self.db = db

    def record(self, event: InteractionEvent) -> None:
        if event.source is InteractionSource.DISCOVERY:
            self.db.record_discovery_interaction(
                product_id=event.product_id,
                interaction_type=event.kind.value,
                inspiration_reason=event.reason.value if event.reason else None,
                session_id=event.session_id,
            )
            return

        context: dict[str, Any] = {"timestamp": event.timestamp.isoformat()}
        if event.time_spent is not None:
            context["time_spent"] = event.time_spent
        self.db.record_personalization_event(
            product_id=event.product_id,
            event_type=event.kind.value,
            weight=event_weight(event),
            session_id=event.session_id,
            context=context,
        )

    def record_mix_composition(self, composition: MixComposition) -> None:
        self.db.record_mix_composition(
            query_text=composition.query,
            discovery_percentage=composition.discovery_percentage,
            personalized_count=composition.personalized_count,
            inspiration_count=composition.inspiration_count,
            requested_outliers=composition.requested_outliers,
        )


def discovery_stats(db: AssistantDB) -> dict[str, Any]:
    counts = db.discovery_interaction_counts()
    by_type = counts["by_type"]
    return {
        "total_discovery_views": int(by_type.get(InteractionKind.VIEW.value, 0)),
        "total_discovery_clicks": int(by_type.get(InteractionKind.CLICK.value, 0)),
        "preferred_inspiration_types": counts["by_reason"],
    }


class FireAndForgetTracker:
    """Submits tracker calls to an executor; failures are logged, never raised."""

    def __init__(self, inner: InteractionTracker, executor: Executor) -> None:
        self.inner = inner
        self.executor = executor

    def _submit(self, operation: str, fn, payload) -> None:
        def run() -> None:
            try:
                fn(payload)
            except Exception as exc:
                _LOGGER.warning("%s failed: %s", operation, exc)

        try:
            self.executor.submit(run)
        except RuntimeError as exc:
            # Executor already shut down.
            _LOGGER.warning("%s was dropped: %s", operation, exc)

    def record(self, event: InteractionEvent) -> None:
        self._submit("Interaction tracking", self.inner.record, event)

    def record_mix_composition(self, composition: MixComposition) -> None:
        self._submit("Mix composition tracking", self.inner.record_mix_composition, composition)
