from __future__ import annotations

from pathlib import Path
import threading

import pytest

from discovery_assistant.db import AssistantDB
from discovery_assistant.models import Product
from discovery_assistant.settings import AssistantConfig


def make_product(product_id: str, name: str | None = None, price: float = 50.0, **extra) -> Product:
    return Product(
        id=product_id,
        name=name or f"Product {product_id}",
        price=price,
        image=f"https://example.com/{product_id}.jpg",
        **extra,
    )


def make_products(count: int, *, prefix: str = "p", price: float = 50.0) -> list[Product]:
    return [make_product(f"{prefix}{index}", price=price) for index in range(count)]


class FakePool:
    def __init__(self, candidates: list[Product] | None = None, error: Exception | None = None) -> None:
        self.candidates = list(candidates or [])
        self.error = error
        self.calls: list[tuple[int, frozenset[str], str | None]] = []

    def fetch(self, count, exclude_ids, context_query=None):
        self.calls.append((count, frozenset(exclude_ids), context_query))
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class BlockingPool:
    def __init__(self) -> None:
        self.release = threading.Event()

    def fetch(self, count, exclude_ids, context_query=None):
        self.release.wait(timeout=5)
        return [make_product("late-1"), make_product("late-2")]


class RecordingTracker:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.events = []
        self.compositions = []

    def record(self, event) -> None:
        if self.error is not None:
            raise self.error
        self.events.append(event)

    def record_mix_composition(self, composition) -> None:
        if self.error is not None:
            raise self.error
        self.compositions.append(composition)


@pytest.fixture
def db(tmp_path: Path) -> AssistantDB:
    return AssistantDB(tmp_path / "assistant.db")


@pytest.fixture
def config(tmp_path: Path) -> AssistantConfig:
    return AssistantConfig(
        db_path=tmp_path / "service.db",
        pool_timeout_seconds=2.0,
        default_top_k=20,
        worker_threads=2,
    )


@pytest.fixture
def seeded_db(db: AssistantDB) -> AssistantDB:
    lamps = [make_product(f"lamp-{index:02d}", name=f"Modern Lamp {index}", price=40.0) for index in range(25)]
    chairs = [make_product(f"chair-{index:02d}", name=f"Oak Chair {index}", price=120.0) for index in range(10)]
    db.upsert_products(lamps + chairs)
    return db
