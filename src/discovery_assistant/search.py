"""Personalized search providers feeding the discovery mixer."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from discovery_assistant.db import AssistantDB
from discovery_assistant.models import Product


_GENERIC_KEYWORDS = {
    "a",
    "an",
    "and",
    "for",
    "from",
    "i",
    "in",
    "is",
    "item",
    "looking",
    "my",
    "need",
    "of",
    "on",
    "please",
    "search",
    "show",
    "some",
    "the",
    "this",
    "to",
    "want",
    "with",
}


class SearchProvider(Protocol):
    def search(
        self,
        query: str,
        *,
        image_keywords: Iterable[str] | None = None,
        top_k: int = 20,
    ) -> list[Product]: ...


def normalize_text(value: Any) -> str:
    text = str(value or "").strip().lower()
    chars = [ch if ch.isalnum() or ch.isspace() else " " for ch in text]
    return " ".join("".join(chars).split())


def _search_document(product: Product) -> str:
    return normalize_text(
        " ".join(
            [
                product.name,
                product.description or "",
                product.brand or "",
                " ".join(product.categories),
            ]
        )
    )


class CatalogSearchProvider:
    """Lexical ranking over the local catalog.

    A full phrase hit scores 4, each non-generic query token found in the
    product document scores 1; ties keep catalog order.
    """

    def __init__(self, db: AssistantDB) -> None:
        self.db = db

    def search(
        self,
        query: str,
        *,
        image_keywords: Iterable[str] | None = None,
        top_k: int = 20,
    ) -> list[Product]:
        parts = [query] + [str(value) for value in (image_keywords or [])]
        normalized_query = normalize_text(" ".join(part for part in parts if part))
        tokens = [
            token
            for token in normalized_query.split()
            if len(token) >= 2 and token not in _GENERIC_KEYWORDS
        ]
        if not tokens:
            return []
        query_blob = f" {normalize_text(query)} "

        scored: list[tuple[Product, float]] = []
        for product in self.db.list_products():
            doc = f" {_search_document(product)} "
            score = 0.0
            if query_blob.strip() and query_blob in doc:
                score += 4.0
            for token in set(tokens):
                if f" {token} " in doc:
                    score += 1.0
            if score > 0:
                scored.append((product, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        return [product for product, _score in scored[: max(1, int(top_k))]]
