from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import json

import pytest

from conftest import RecordingTracker, make_product
from discovery_assistant.models import InspirationReason, ProductWithContext
from discovery_assistant.tracking import (
    FireAndForgetTracker,
    InteractionKind,
    InteractionSource,
    MixComposition,
    SQLiteInteractionTracker,
    discovery_stats,
    event_for,
    event_weight,
)


def test_event_for_inspiration_item_is_discovery():
    item = ProductWithContext.inspiration(make_product("d1"), InspirationReason.DIFFERENT_STYLE).with_session("s1")

    event = event_for(item, "click")

    assert event.source is InteractionSource.DISCOVERY
    assert event.kind is InteractionKind.CLICK
    assert event.reason is InspirationReason.DIFFERENT_STYLE
    assert event.session_id == "s1"
    assert event.product_id == "d1"


def test_event_for_personalized_item():
    event = event_for(ProductWithContext.personalized(make_product("p1")), InteractionKind.VIEW, time_spent=20)

    assert event.source is InteractionSource.PERSONALIZED
    assert event.reason is None
    assert event_weight(event) == pytest.approx(0.3 + 0.2)


def test_event_for_rejects_unknown_kind():
    with pytest.raises(ValueError):
        event_for(ProductWithContext.personalized(make_product("p1")), "purchase")


def test_sqlite_tracker_keeps_channels_separate(db):
    tracker = SQLiteInteractionTracker(db)
    personalized = ProductWithContext.personalized(make_product("p1")).with_session("s1")
    inspiration = ProductWithContext.inspiration(make_product("d1"), InspirationReason.TRENDING).with_session("s1")

    tracker.record(event_for(personalized, "click"))
    tracker.record(event_for(inspiration, "click"))
    tracker.record(event_for(inspiration, "view"))

    training = db.list_personalization_events()
    assert [row["product_id"] for row in training] == ["p1"]
    assert training[0]["weight"] == pytest.approx(0.5)
    assert "timestamp" in json.loads(training[0]["context"])

    discovery = db.list_discovery_interactions()
    assert sorted(row["interaction_type"] for row in discovery) == ["click", "view"]
    assert {row["product_id"] for row in discovery} == {"d1"}
    assert {row["inspiration_reason"] for row in discovery} == {"trending"}


def test_discovery_stats_counts_by_kind_and_reason(db):
    tracker = SQLiteInteractionTracker(db)
    for reason, kind in [
        (InspirationReason.TRENDING, "view"),
        (InspirationReason.TRENDING, "click"),
        (InspirationReason.VISUAL_APPEAL, "view"),
    ]:
        tracker.record(event_for(ProductWithContext.inspiration(make_product("d1"), reason), kind))

    stats = discovery_stats(db)

    assert stats["total_discovery_views"] == 2
    assert stats["total_discovery_clicks"] == 1
    assert stats["preferred_inspiration_types"] == {"trending": 2, "visual_appeal": 1}


def test_mix_composition_is_persisted(db):
    SQLiteInteractionTracker(db).record_mix_composition(
        MixComposition(
            query="lamp",
            discovery_percentage=10,
            personalized_count=18,
            inspiration_count=2,
            requested_outliers=2,
        )
    )
    assert db.stats()["mix_count"] == 1


def test_fire_and_forget_swallows_failures():
    inner = RecordingTracker(error=RuntimeError("disk full"))
    executor = ThreadPoolExecutor(max_workers=1)
    tracker = FireAndForgetTracker(inner, executor)

    tracker.record(event_for(ProductWithContext.personalized(make_product("p1")), "view"))
    executor.shutdown(wait=True)

    # Submitting after shutdown is dropped, not raised.
    tracker.record(event_for(ProductWithContext.personalized(make_product("p1")), "view"))


def test_fire_and_forget_delivers_events():
    inner = RecordingTracker()
    executor = ThreadPoolExecutor(max_workers=1)
    tracker = FireAndForgetTracker(inner, executor)

    tracker.record(event_for(ProductWithContext.personalized(make_product("p1")), "view"))
    executor.shutdown(wait=True)

    assert [event.product_id for event in inner.events] == ["p1"]
