"""Blends personalized results with a controlled share of inspiration items."""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import logging
import random
from typing import Callable, Iterable, Sequence

from discovery_assistant.classifier import classify_inspiration
from discovery_assistant.errors import DiscoveryError, InsufficientCandidates, PoolUnavailable
from discovery_assistant.models import (
    DiscoveryPercentage,
    InspirationReason,
    Product,
    ProductWithContext,
)
from discovery_assistant.pool import DiscoveryPool
from discovery_assistant.tracking import FireAndForgetTracker, InteractionTracker, MixComposition


_LOGGER = logging.getLogger(__name__)
_DISCOVERY_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="discovery-call")

DEFAULT_POOL_TIMEOUT_SECONDS = 3.0
# Candidates requested per outlier slot; the surplus absorbs duplicates and feeds the shuffle.
OVERFETCH_FACTOR = 2

Classifier = Callable[[Product, str | None], InspirationReason]


def interleave(
    main: Sequence[ProductWithContext],
    outliers: Sequence[ProductWithContext],
) -> list[ProductWithContext]:
    """Spread ``outliers`` evenly through ``main``.

    Position ``i`` takes the next outlier once ``(i + 1) * outliers`` reaches
    ``(outlier_index + 1) * total``, or as soon as ``main`` is exhausted.
    """
    total = len(main) + len(outliers)
    outlier_count = len(outliers)
    out: list[ProductWithContext] = []
    main_index = 0
    outlier_index = 0

    for i in range(total):
        take_outlier = outlier_index < outlier_count and (
            main_index >= len(main) or (i + 1) * outlier_count >= (outlier_index + 1) * total
        )
        if take_outlier:
            out.append(outliers[outlier_index])
            outlier_index += 1
        else:
            out.append(main[main_index])
            main_index += 1
    return out


def _unique_by_id(products: Iterable[Product]) -> list[Product]:
    seen: set[str] = set()
    out: list[Product] = []
    for product in products:
        if product.id in seen:
            continue
        seen.add(product.id)
        out.append(product)
    return out


class DiscoveryMixer:
    def __init__(
        self,
        pool: DiscoveryPool,
        *,
        tracker: InteractionTracker | None = None,
        classifier: Classifier = classify_inspiration,
        rng: random.Random | None = None,
        pool_timeout_seconds: float = DEFAULT_POOL_TIMEOUT_SECONDS,
        executor: Executor | None = None,
    ) -> None:
        self.pool = pool
        self.classifier = classifier
        self.rng = rng or random.Random()
        self.pool_timeout_seconds = max(0.1, float(pool_timeout_seconds))
        self.executor = executor or _DISCOVERY_EXECUTOR
        self.tracker = FireAndForgetTracker(tracker, self.executor) if tracker is not None else None

    def mix(
        self,
        personalized: Sequence[Product],
        pct: DiscoveryPercentage | int,
        query: str | None = None,
    ) -> list[ProductWithContext]:
        products = _unique_by_id(personalized)
        if not products:
            return []

        total = len(products)
        outlier_count = total * int(pct) // 100
        if outlier_count == 0:
            return [ProductWithContext.personalized(product) for product in products]

        personalized_count = total - outlier_count
        main = [ProductWithContext.personalized(product) for product in products[:personalized_count]]

        try:
            outliers = self._select_outliers(products, outlier_count, query)
        except DiscoveryError as exc:
            _LOGGER.warning("Discovery mixing degraded to personalized-only results: %s", exc)
            fallback = [ProductWithContext.personalized(product) for product in products]
            self._notify(query, pct, fallback, [], outlier_count)
            return fallback

        mixed = interleave(main, outliers)
        self._notify(query, pct, main, outliers, outlier_count)
        return mixed

    def tag_flagged(
        self,
        results: Iterable[tuple[Product, bool]],
        query: str | None = None,
    ) -> list[ProductWithContext]:
        """Tag results whose discovery split was already made upstream.

        Order is preserved; a repeated product id keeps only its first occurrence.
        """
        seen: set[str] = set()
        out: list[ProductWithContext] = []
        for product, is_discovery in results:
            if product.id in seen:
                continue
            seen.add(product.id)
            if is_discovery:
                out.append(ProductWithContext.inspiration(product, self._classify(product, query)))
            else:
                out.append(ProductWithContext.personalized(product))
        return out

    def _select_outliers(
        self,
        products: list[Product],
        outlier_count: int,
        query: str | None,
    ) -> list[ProductWithContext]:
        exclude_ids = {product.id for product in products}
        requested = outlier_count * OVERFETCH_FACTOR
        candidates = self._fetch_candidates(requested, exclude_ids, query)

        usable: list[Product] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, Product):
                continue
            if candidate.id in exclude_ids or candidate.id in seen:
                continue
            seen.add(candidate.id)
            usable.append(candidate)

        if not usable:
            raise InsufficientCandidates(requested, 0)
        if len(usable) < outlier_count:
            _LOGGER.info("Discovery pool under-delivered: %d usable of %d outlier slots.", len(usable), outlier_count)

        self.rng.shuffle(usable)
        return [
            ProductWithContext.inspiration(product, self._classify(product, query))
            for product in usable[:outlier_count]
        ]

    def _fetch_candidates(self, count: int, exclude_ids: set[str], query: str | None) -> list[Product]:
        def fetch() -> list[Product]:
            return list(self.pool.fetch(count, frozenset(exclude_ids), query) or [])

        try:
            future = self.executor.submit(fetch)
        except RuntimeError as exc:
            raise PoolUnavailable(f"Discovery pool call could not be scheduled: {exc}") from exc
        try:
            return future.result(timeout=self.pool_timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise PoolUnavailable(f"Discovery pool timed out after {self.pool_timeout_seconds:g}s.") from exc
        except Exception as exc:
            raise PoolUnavailable(f"Discovery pool failed: {exc}") from exc

    def _classify(self, product: Product, query: str | None) -> InspirationReason:
        try:
            return self.classifier(product, query)
        except Exception:
            _LOGGER.warning("Inspiration classifier failed for product %s; using trending.", product.id)
            return InspirationReason.TRENDING

    def _notify(
        self,
        query: str | None,
        pct: DiscoveryPercentage | int,
        main: list[ProductWithContext],
        outliers: list[ProductWithContext],
        requested_outliers: int,
    ) -> None:
        if self.tracker is None:
            return
        composition = MixComposition(
            query=query,
            discovery_percentage=int(pct),
            personalized_count=len(main),
            inspiration_count=len(outliers),
            requested_outliers=requested_outliers,
        )
        _LOGGER.debug("Mix composition: %s", composition)
        self.tracker.record_mix_composition(composition)
