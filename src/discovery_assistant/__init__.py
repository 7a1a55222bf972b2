"""Discovery-mixing shopping assistant: personalized results blended with inspiration items."""

from discovery_assistant.classifier import classify_inspiration
from discovery_assistant.mixer import DiscoveryMixer, interleave
from discovery_assistant.models import (
    DiscoveryPercentage,
    DisplayType,
    InspirationReason,
    Product,
    ProductWithContext,
    SearchSession,
    SearchType,
)
from discovery_assistant.sessions import SessionTracker

__all__ = [
    "DiscoveryMixer",
    "DiscoveryPercentage",
    "DisplayType",
    "InspirationReason",
    "Product",
    "ProductWithContext",
    "SearchSession",
    "SearchType",
    "SessionTracker",
    "classify_inspiration",
    "interleave",
]
