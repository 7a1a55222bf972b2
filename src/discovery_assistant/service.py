"""Composition root wiring search, discovery mixing, sessions and interaction tracking."""

from __future__ import annotations

from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
import logging
from pathlib import Path
import random
import threading
from typing import Any, Iterable

from discovery_assistant.db import AssistantDB
from discovery_assistant.mixer import DiscoveryMixer
from discovery_assistant.models import (
    DiscoveryPercentage,
    ProductWithContext,
    SearchSession,
    SearchType,
)
from discovery_assistant.pool import CatalogDiscoveryPool, DiscoveryPool
from discovery_assistant.search import CatalogSearchProvider, SearchProvider
from discovery_assistant.sessions import SessionTracker
from discovery_assistant.settings import AssistantConfig, DiscoverySettingsStore
from discovery_assistant.tracking import (
    FireAndForgetTracker,
    InteractionKind,
    InteractionTracker,
    SQLiteInteractionTracker,
    discovery_stats,
    event_for,
)


_LOGGER = logging.getLogger(__name__)
_MAX_TOP_K = 50


class DiscoveryAssistantService:
    def __init__(
        self,
        root_dir: Path | None = None,
        *,
        config: AssistantConfig | None = None,
        db: AssistantDB | None = None,
        search_provider: SearchProvider | None = None,
        pool: DiscoveryPool | None = None,
        tracker: InteractionTracker | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.root_dir = root_dir or Path(__file__).resolve().parents[2]
        self.cfg = config or AssistantConfig.from_env(self.root_dir)
        self.db = db or AssistantDB(self.cfg.db_path)

        self.settings = DiscoverySettingsStore(self.db)
        self.search_provider = search_provider or CatalogSearchProvider(self.db)
        self.pool = pool or CatalogDiscoveryPool(self.db)
        self.interaction_store = tracker or SQLiteInteractionTracker(self.db)
        self.sessions = SessionTracker(max_sessions=self.cfg.max_sessions)

        self._executor = ThreadPoolExecutor(
            max_workers=max(2, self.cfg.worker_threads),
            thread_name_prefix="discovery-assistant",
        )
        self.tracker = FireAndForgetTracker(self.interaction_store, self._executor)
        self.mixer = DiscoveryMixer(
            self.pool,
            tracker=self.interaction_store,
            rng=rng,
            pool_timeout_seconds=self.cfg.pool_timeout_seconds,
            executor=self._executor,
        )

        self._session_results: OrderedDict[str, list[ProductWithContext]] = OrderedDict()
        self._lock = threading.Lock()

    def close(self) -> None:
        """Wait for pending telemetry and release worker threads."""
        self._executor.shutdown(wait=True)

    @staticmethod
    def _dedupe(values: Iterable[str]) -> list[str]:
        out: list[str] = []
        seen: set[str] = set()
        for value in values:
            cleaned = str(value or "").strip()
            if not cleaned:
                continue
            key = cleaned.casefold()
            if key in seen:
                continue
            seen.add(key)
            out.append(cleaned)
        return out

    @staticmethod
    def _composition(items: list[ProductWithContext]) -> dict[str, int]:
        inspiration = sum(1 for item in items if item.is_inspiration)
        return {"personalized": len(items) - inspiration, "inspiration": inspiration}

    def _session_payload(self, session: SearchSession, items: list[ProductWithContext]) -> dict[str, Any]:
        return {
            "session": session.to_dict(),
            "results": [item.to_dict() for item in items],
            "composition": self._composition(items),
        }

    def search(
        self,
        query: str | None,
        *,
        image_keywords: Iterable[str] | None = None,
        top_k: int | None = None,
    ) -> dict[str, Any]:
        cleaned = (query or "").strip()
        keywords = self._dedupe(image_keywords or [])
        if not cleaned and not keywords:
            raise ValueError("Please enter a search query or provide an image.")

        if cleaned and keywords:
            search_type = SearchType.MIXED
        elif cleaned:
            search_type = SearchType.TEXT
        else:
            search_type = SearchType.IMAGE
        safe_top_k = max(1, min(int(top_k or self.cfg.default_top_k), _MAX_TOP_K))

        try:
            personalized = self.search_provider.search(
                cleaned,
                image_keywords=keywords or None,
                top_k=safe_top_k,
            )
        except Exception as exc:
            raise RuntimeError(f"Product search failed: {exc}") from exc

        percentage = self.settings.get()
        context_query = cleaned or " ".join(keywords)
        items = self.mixer.mix(personalized, percentage, context_query)

        session = self.sessions.create_session(
            context_query,
            search_type,
            image_keywords=keywords or None,
            result_count=len(items),
        )
        stamped = self.sessions.stamp(session, items)
        self.db.store_session(session)
        with self._lock:
            self._session_results[session.session_id] = stamped
            while len(self._session_results) > self.sessions.max_sessions:
                self._session_results.popitem(last=False)

        payload = self._session_payload(session, stamped)
        payload["discovery_percentage"] = int(percentage)
        return payload

    def get_session(self, session_id: str) -> dict[str, Any]:
        session = self.sessions.get(session_id)
        with self._lock:
            items = self._session_results.get(session_id)
        if session is None or items is None:
            raise KeyError("Search session not found.")
        return self._session_payload(session, items)

    def record_interaction(
        self,
        *,
        session_id: str,
        product_id: str,
        kind: str,
        time_spent: float | None = None,
    ) -> dict[str, Any]:
        try:
            safe_kind = InteractionKind(str(kind).strip().lower())
        except ValueError as exc:
            raise ValueError("kind must be one of: view, click") from exc

        with self._lock:
            items = self._session_results.get(session_id)
        if items is None:
            raise KeyError("Search session not found.")
        item = next((value for value in items if value.product.id == str(product_id)), None)
        if item is None:
            raise KeyError("Product is not part of this search session.")

        event = event_for(item, safe_kind, time_spent=time_spent)
        self.tracker.record(event)
        return {
            "status": "ok",
            "kind": event.kind.value,
            "source": event.source.value,
            "inspiration_reason": event.reason.value if event.reason else None,
        }

    def get_discovery_settings(self) -> dict[str, Any]:
        percentage = self.settings.get()
        return {
            "discovery_percentage": int(percentage),
            "options": [int(member) for member in DiscoveryPercentage],
            **percentage.explanation(),
        }

    def update_discovery_settings(self, value: int | str) -> dict[str, Any]:
        percentage = self.settings.save(value)
        _LOGGER.info("Discovery percentage set to %d.", int(percentage))
        return self.get_discovery_settings()

    def discovery_stats(self) -> dict[str, Any]:
        return discovery_stats(self.db)

    def reset_learning_data(self) -> dict[str, Any]:
        self.db.reset_learning_data()
        return {"status": "ok"}

    def stats(self) -> dict[str, Any]:
        details = self.db.stats()
        details["discovery_percentage"] = int(self.settings.get())
        details["active_sessions"] = len(self.sessions.sessions())
        return details
