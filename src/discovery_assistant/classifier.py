"""Reason labels for inspiration items."""

from __future__ import annotations

from discovery_assistant.models import InspirationReason, Product


VISUAL_APPEAL_PRICE = 500


def _token_set(value: str | None) -> set[str]:
    return set(str(value or "").lower().split())


def classify_inspiration(product: Product, query: str | None = None) -> InspirationReason:
    """First matching rule wins: price above the threshold, then no shared name/query token."""
    if product.price > VISUAL_APPEAL_PRICE:
        return InspirationReason.VISUAL_APPEAL

    query_tokens = _token_set(query)
    if query_tokens and not (_token_set(product.name) & query_tokens):
        return InspirationReason.DIFFERENT_STYLE

    return InspirationReason.TRENDING
