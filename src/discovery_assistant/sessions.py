"""Per-query search sessions used to group displayed results and correlate telemetry."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timezone
import logging
import threading
from typing import Callable, Iterable
import uuid

from discovery_assistant.models import ProductWithContext, SearchSession, SearchType


_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 500


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_session_id() -> str:
    return uuid.uuid4().hex


class SessionTracker:
    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_session_id
        self.max_sessions = max(1, int(max_sessions))
        self._sessions: OrderedDict[str, SearchSession] = OrderedDict()
        self._lock = threading.Lock()

    def create_session(
        self,
        query: str,
        search_type: SearchType | str,
        *,
        image_keywords: Iterable[str] | None = None,
        result_count: int = 0,
    ) -> SearchSession:
        session = SearchSession(
            session_id=self._id_factory(),
            search_query=query,
            search_type=SearchType(search_type),
            timestamp=self._clock(),
            image_analysis_keywords=tuple(image_keywords) if image_keywords is not None else None,
            result_count=max(0, int(result_count)),
        )
        with self._lock:
            self._sessions[session.session_id] = session
            while len(self._sessions) > self.max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                _LOGGER.debug("Evicted search session %s.", evicted_id)
        return session

    @staticmethod
    def stamp(session: SearchSession, items: Iterable[ProductWithContext]) -> list[ProductWithContext]:
        return [item.with_session(session.session_id) for item in items]

    def get(self, session_id: str) -> SearchSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def sessions(self) -> list[SearchSession]:
        with self._lock:
            return list(self._sessions.values())
