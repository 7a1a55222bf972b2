from __future__ import annotations

from pathlib import Path

import pytest

from discovery_assistant.models import DiscoveryPercentage
from discovery_assistant.settings import DISCOVERY_SETTING_KEY, AssistantConfig, DiscoverySettingsStore


def test_default_is_off(db):
    assert DiscoverySettingsStore(db).get() is DiscoveryPercentage.OFF


def test_save_and_read_back(db):
    store = DiscoverySettingsStore(db)

    assert store.save(10) is DiscoveryPercentage.MODERATE
    assert store.get() is DiscoveryPercentage.MODERATE
    assert db.get_setting(DISCOVERY_SETTING_KEY) == "10"

    assert store.reset() is DiscoveryPercentage.OFF
    assert store.get() is DiscoveryPercentage.OFF


def test_save_rejects_values_outside_enumeration(db):
    store = DiscoverySettingsStore(db)
    with pytest.raises(ValueError):
        store.save(25)
    assert store.get() is DiscoveryPercentage.OFF


def test_corrupt_stored_value_reads_as_off(db):
    db.set_setting(DISCOVERY_SETTING_KEY, "lots")
    assert DiscoverySettingsStore(db).get() is DiscoveryPercentage.OFF


def test_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DA_DB_PATH", str(tmp_path / "custom.db"))
    monkeypatch.setenv("DA_POOL_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("DA_DEFAULT_TOP_K", "not-a-number")
    monkeypatch.delenv("DA_WORKER_THREADS", raising=False)

    cfg = AssistantConfig.from_env(Path("/srv/app"))

    assert cfg.db_path == tmp_path / "custom.db"
    assert cfg.pool_timeout_seconds == 1.5
    assert cfg.default_top_k == 20
    assert cfg.worker_threads == 4


def test_config_default_db_path(monkeypatch):
    monkeypatch.delenv("DA_DB_PATH", raising=False)
    cfg = AssistantConfig.from_env(Path("/srv/app"))
    assert cfg.db_path == Path("/srv/app/data/discovery_assistant.db")


def test_config_max_sessions(monkeypatch):
    monkeypatch.setenv("DA_MAX_SESSIONS", "25")
    assert AssistantConfig.from_env(Path("/srv/app")).max_sessions == 25

    monkeypatch.setenv("DA_MAX_SESSIONS", "0")
    assert AssistantConfig.from_env(Path("/srv/app")).max_sessions == 500
