"""Environment configuration and the persisted discovery percentage."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path

from discovery_assistant.db import AssistantDB
from discovery_assistant.models import DiscoveryPercentage


_LOGGER = logging.getLogger(__name__)

DISCOVERY_SETTING_KEY = "outlier_percentage"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class AssistantConfig:
    db_path: Path
    pool_timeout_seconds: float
    default_top_k: int
    worker_threads: int
    max_sessions: int = 500

    @classmethod
    def from_env(cls, root_dir: Path) -> "AssistantConfig":
        raw_db_path = os.getenv("DA_DB_PATH", "").strip()
        return cls(
            db_path=Path(raw_db_path) if raw_db_path else root_dir / "data" / "discovery_assistant.db",
            pool_timeout_seconds=_env_float("DA_POOL_TIMEOUT_SECONDS", 3.0),
            default_top_k=_env_int("DA_DEFAULT_TOP_K", 20),
            worker_threads=_env_int("DA_WORKER_THREADS", 4),
            max_sessions=_env_int("DA_MAX_SESSIONS", 500),
        )


class DiscoverySettingsStore:
    def __init__(self, db: AssistantDB) -> None:
        self.db = db

    def get(self) -> DiscoveryPercentage:
        raw = self.db.get_setting(DISCOVERY_SETTING_KEY)
        if raw is None:
            return DiscoveryPercentage.OFF
        try:
            return DiscoveryPercentage.parse(raw)
        except ValueError:
            _LOGGER.warning("Ignoring invalid stored discovery percentage %r.", raw)
            return DiscoveryPercentage.OFF

    def save(self, value: DiscoveryPercentage | int | str) -> DiscoveryPercentage:
        percentage = DiscoveryPercentage.parse(value)
        self.db.set_setting(DISCOVERY_SETTING_KEY, str(int(percentage)))
        return percentage

    def reset(self) -> DiscoveryPercentage:
        return self.save(DiscoveryPercentage.OFF)
