"""Value types shared by the search, mixing, session and tracking layers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class DiscoveryPercentage(IntEnum):
    OFF = 0
    LIGHT = 5
    MODERATE = 10

    @classmethod
    def parse(cls, value: Any) -> "DiscoveryPercentage":
        try:
            return cls(int(value))
        except (TypeError, ValueError) as exc:
            allowed = ", ".join(str(member.value) for member in cls)
            raise ValueError(f"discovery percentage must be one of: {allowed}") from exc

    def explanation(self) -> dict[str, str]:
        return dict(zip(("title", "description", "impact"), _EXPLANATIONS[self]))


_EXPLANATIONS: dict[DiscoveryPercentage, tuple[str, str, str]] = {
    DiscoveryPercentage.OFF: (
        "Discovery Off",
        "Only personalized recommendations based on your preferences",
        "Most relevant results, focused on your style",
    ),
    DiscoveryPercentage.LIGHT: (
        "Light Discovery",
        "5% of results will be inspiration items to broaden your horizons",
        "Mostly personalized with occasional new ideas",
    ),
    DiscoveryPercentage.MODERATE: (
        "Moderate Discovery",
        "10% of results will be inspiration items for exploration",
        "Good balance of personalized and discovery items",
    ),
}


class DisplayType(str, Enum):
    PERSONALIZED = "personalized"
    INSPIRATION = "inspiration"


class InspirationReason(str, Enum):
    TRENDING = "trending"
    DIFFERENT_STYLE = "different_style"
    VISUAL_APPEAL = "visual_appeal"


class SearchType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    MIXED = "mixed"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    image: str
    description: str | None = None
    categories: tuple[str, ...] = ()
    brand: str | None = None
    url: str | None = None
    source_index: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Product":
        categories = raw.get("categories") or ()
        if isinstance(categories, str):
            categories = categories.split(",")
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or "").strip(),
            price=float(raw.get("price") or 0.0),
            image=str(raw.get("image") or ""),
            description=raw.get("description") or None,
            categories=tuple(str(value).strip() for value in categories if str(value).strip()),
            brand=raw.get("brand") or None,
            url=raw.get("url") or None,
            source_index=raw.get("source_index") or raw.get("sourceIndex") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "image": self.image,
            "categories": list(self.categories),
            "brand": self.brand,
            "url": self.url,
            "source_index": self.source_index,
        }


@dataclass(frozen=True)
class ProductWithContext:
    """A product as displayed in one search response, tagged with its provenance.

    Build instances through :meth:`personalized` or :meth:`inspiration`; the
    display type is fixed at construction and the reason is present exactly
    when the item is an inspiration item.
    """

    product: Product
    display_type: DisplayType
    inspiration_reason: InspirationReason | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        if self.display_type is DisplayType.INSPIRATION and self.inspiration_reason is None:
            raise ValueError("Inspiration items require an inspiration reason.")
        if self.display_type is DisplayType.PERSONALIZED and self.inspiration_reason is not None:
            raise ValueError("Personalized items cannot carry an inspiration reason.")

    @classmethod
    def personalized(cls, product: Product) -> "ProductWithContext":
        return cls(product=product, display_type=DisplayType.PERSONALIZED)

    @classmethod
    def inspiration(cls, product: Product, reason: InspirationReason) -> "ProductWithContext":
        return cls(product=product, display_type=DisplayType.INSPIRATION, inspiration_reason=reason)

    @property
    def is_inspiration(self) -> bool:
        return self.display_type is DisplayType.INSPIRATION

    @property
    def interaction_source(self) -> str:
        return "discovery" if self.is_inspiration else "personalized"

    def with_session(self, session_id: str) -> "ProductWithContext":
        return replace(self, session_id=session_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "display_type": self.display_type.value,
            "inspiration_reason": self.inspiration_reason.value if self.inspiration_reason else None,
            "session_id": self.session_id,
        }


@dataclass(frozen=True)
class SearchSession:
    session_id: str
    search_query: str
    search_type: SearchType
    timestamp: datetime
    image_analysis_keywords: tuple[str, ...] | None = None
    result_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "search_query": self.search_query,
            "search_type": self.search_type.value,
            "timestamp": self.timestamp.isoformat(),
            "image_analysis_keywords": (
                list(self.image_analysis_keywords) if self.image_analysis_keywords is not None else None
            ),
            "result_count": self.result_count,
        }
