"""Sources of non-personalized inspiration candidates."""

from __future__ import annotations

from typing import Iterable, Protocol

from discovery_assistant.db import AssistantDB
from discovery_assistant.models import Product


class DiscoveryPool(Protocol):
    def fetch(
        self,
        count: int,
        exclude_ids: Iterable[str],
        context_query: str | None = None,
    ) -> list[Product]: ...


class CatalogDiscoveryPool:
    """Random catalog sample disjoint from the excluded ids.

    With a context query, products sharing no name token with the query are
    returned first so the sample leans towards something different.
    """

    def __init__(self, db: AssistantDB, *, oversample: int = 3) -> None:
        self.db = db
        self.oversample = max(1, int(oversample))

    def fetch(
        self,
        count: int,
        exclude_ids: Iterable[str],
        context_query: str | None = None,
    ) -> list[Product]:
        if count <= 0:
            return []
        excluded = {str(value) for value in exclude_ids}
        rows = self.db.list_random_products(max(count * self.oversample, count + 4), exclude_ids=excluded)

        query_tokens = set((context_query or "").lower().split())
        if query_tokens:
            rows.sort(key=lambda product: bool(set(product.name.lower().split()) & query_tokens))
        return rows[:count]
