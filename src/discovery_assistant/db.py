"""SQLite access layer for the catalog, settings, search sessions and interaction channels."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from discovery_assistant.models import Product, SearchSession


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


_PRODUCT_COLUMNS = "id, name, description, price, image, categories, brand, url, source_index"


class AssistantDB:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS catalog_products (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    price REAL NOT NULL DEFAULT 0,
                    image TEXT NOT NULL DEFAULT '',
                    categories TEXT NOT NULL DEFAULT '[]',
                    brand TEXT,
                    url TEXT,
                    source_index TEXT,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS user_settings (
                    setting_key TEXT PRIMARY KEY,
                    setting_value TEXT,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS search_sessions (
                    session_id TEXT PRIMARY KEY,
                    search_query TEXT NOT NULL,
                    search_type TEXT NOT NULL,
                    image_keywords TEXT,
                    result_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                -- Training signal for the personalization model. Discovery items never land here.
                CREATE TABLE IF NOT EXISTS personalization_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    weight REAL NOT NULL,
                    session_id TEXT,
                    context TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_personalization_events_product
                    ON personalization_events(product_id);

                CREATE TABLE IF NOT EXISTS discovery_interactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id TEXT NOT NULL,
                    interaction_type TEXT NOT NULL,
                    inspiration_reason TEXT,
                    session_id TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS mix_compositions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    query_text TEXT,
                    discovery_percentage INTEGER NOT NULL,
                    personalized_count INTEGER NOT NULL,
                    inspiration_count INTEGER NOT NULL,
                    requested_outliers INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )

    @staticmethod
    def _row_to_product(row: sqlite3.Row) -> Product:
        raw = dict(row)
        raw["categories"] = json.loads(raw.get("categories") or "[]")
        return Product.from_dict(raw)

    def upsert_products(self, products: Iterable[Product]) -> int:
        timestamp = _utc_now()
        payload = [
            (
                product.id,
                product.name,
                product.description,
                float(product.price),
                product.image,
                json.dumps(list(product.categories)),
                product.brand,
                product.url,
                product.source_index,
                timestamp,
            )
            for product in products
        ]
        with self._connect() as conn:
            conn.executemany(
                f"""
                INSERT INTO catalog_products ({_PRODUCT_COLUMNS}, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    description=excluded.description,
                    price=excluded.price,
                    image=excluded.image,
                    categories=excluded.categories,
                    brand=excluded.brand,
                    url=excluded.url,
                    source_index=excluded.source_index,
                    updated_at=excluded.updated_at
                """,
                payload,
            )
        return len(payload)

    def get_product(self, product_id: str) -> Product | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_PRODUCT_COLUMNS} FROM catalog_products WHERE id = ?",
                (product_id,),
            ).fetchone()
        return self._row_to_product(row) if row else None

    def list_products(self) -> list[Product]:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT {_PRODUCT_COLUMNS} FROM catalog_products ORDER BY id").fetchall()
        return [self._row_to_product(row) for row in rows]

    def list_random_products(self, limit: int, *, exclude_ids: Iterable[str] = ()) -> list[Product]:
        excluded = sorted({str(value) for value in exclude_ids})
        with self._connect() as conn:
            if excluded:
                placeholders = ", ".join(["?"] * len(excluded))
                rows = conn.execute(
                    f"""
                    SELECT {_PRODUCT_COLUMNS}
                    FROM catalog_products
                    WHERE id NOT IN ({placeholders})
                    ORDER BY RANDOM()
                    LIMIT ?
                    """,
                    (*excluded, max(0, int(limit))),
                ).fetchall()
            else:
                rows = conn.execute(
                    f"""
                    SELECT {_PRODUCT_COLUMNS}
                    FROM catalog_products
                    ORDER BY RANDOM()
                    LIMIT ?
                    """,
                    (max(0, int(limit)),),
                ).fetchall()
        return [self._row_to_product(row) for row in rows]

    def get_setting(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT setting_value FROM user_settings WHERE setting_key = ?",
                (key,),
            ).fetchone()
        return row["setting_value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_settings (setting_key, setting_value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(setting_key) DO UPDATE SET
                    setting_value=excluded.setting_value,
                    updated_at=excluded.updated_at
                """,
                (key, value, _utc_now()),
            )

    def store_session(self, session: SearchSession) -> None:
        keywords = session.image_analysis_keywords
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO search_sessions
                    (session_id, search_query, search_type, image_keywords, result_count, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session.session_id,
                    session.search_query,
                    session.search_type.value,
                    json.dumps(list(keywords)) if keywords is not None else None,
                    session.result_count,
                    session.timestamp.isoformat(),
                ),
            )

    def record_personalization_event(
        self,
        *,
        product_id: str,
        event_type: str,
        weight: float,
        session_id: str | None,
        context: dict[str, Any] | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO personalization_events
                    (product_id, event_type, weight, session_id, context, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    product_id,
                    event_type,
                    float(weight),
                    session_id,
                    json.dumps(context) if context else None,
                    _utc_now(),
                ),
            )

    def record_discovery_interaction(
        self,
        *,
        product_id: str,
        interaction_type: str,
        inspiration_reason: str | None,
        session_id: str | None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO discovery_interactions
                    (product_id, interaction_type, inspiration_reason, session_id, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (product_id, interaction_type, inspiration_reason, session_id, _utc_now()),
            )

    def record_mix_composition(
        self,
        *,
        query_text: str | None,
        discovery_percentage: int,
        personalized_count: int,
        inspiration_count: int,
        requested_outliers: int,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO mix_compositions (
                    query_text, discovery_percentage, personalized_count,
                    inspiration_count, requested_outliers, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    query_text,
                    int(discovery_percentage),
                    int(personalized_count),
                    int(inspiration_count),
                    int(requested_outliers),
                    _utc_now(),
                ),
            )

    def list_personalization_events(self, *, limit: int = 100) -> list[dict[str, Any]]:
        safe_limit = max(1, min(int(limit), 1000))
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT product_id, event_type, weight, session_id, context, created_at
                FROM personalization_events
                ORDER BY id DESC
                LIMIT ?
                """,
                (safe_limit,),
            ).fetchall()
        return [dict(row) for row in rows]

    def list_discovery_interactions(self, *, limit: int = 100) -> list[dict[str, Any]]:
        safe_limit = max(1, min(int(limit), 1000))
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT product_id, interaction_type, inspiration_reason, session_id, created_at
                FROM discovery_interactions
                ORDER BY id DESC
                LIMIT ?
                """,
                (safe_limit,),
            ).fetchall()
        return [dict(row) for row in rows]

    def discovery_interaction_counts(self) -> dict[str, Any]:
        with self._connect() as conn:
            by_type = conn.execute(
                """
                SELECT interaction_type, COUNT(*) AS total
                FROM discovery_interactions
                GROUP BY interaction_type
                """
            ).fetchall()
            by_reason = conn.execute(
                """
                SELECT inspiration_reason, COUNT(*) AS total
                FROM discovery_interactions
                WHERE inspiration_reason IS NOT NULL
                GROUP BY inspiration_reason
                """
            ).fetchall()
        return {
            "by_type": {str(row["interaction_type"]): int(row["total"]) for row in by_type},
            "by_reason": {str(row["inspiration_reason"]): int(row["total"]) for row in by_reason},
        }

    def reset_learning_data(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                DELETE FROM personalization_events;
                DELETE FROM discovery_interactions;
                DELETE FROM mix_compositions;
                """
            )

    def stats(self) -> dict[str, Any]:
        with self._connect() as conn:
            counts = conn.execute(
                """
                SELECT
                  (SELECT COUNT(*) FROM catalog_products) AS product_count,
                  (SELECT COUNT(*) FROM search_sessions) AS session_count,
                  (SELECT COUNT(*) FROM personalization_events) AS personalization_event_count,
                  (SELECT COUNT(*) FROM discovery_interactions) AS discovery_interaction_count,
                  (SELECT COUNT(*) FROM mix_compositions) AS mix_count
                """
            ).fetchone()
        return (
            dict(counts)
            if counts
            else {
                "product_count": 0,
                "session_count": 0,
                "personalization_event_count": 0,
                "discovery_interaction_count": 0,
                "mix_count": 0,
            }
        )
