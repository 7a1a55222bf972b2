"""Failure modes of the discovery pool, recovered inside the mixer."""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for discovery mixing degradations."""


class PoolUnavailable(DiscoveryError):
    """The discovery pool failed outright or did not answer in time."""


class InsufficientCandidates(DiscoveryError):
    def __init__(self, requested: int, usable: int) -> None:
        super().__init__(f"Discovery pool returned {usable} usable candidates, {requested} requested.")
        self.requested = requested
        self.usable = usable
