"""Shared types: storage tiers, search hits and the error hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "Tier",
    "TomeError",
    "OtherError",
    "StorageError",
    "NotFoundError",
    "SearchHit",
]


class Tier(Enum):
    """Where an article's content lives."""

    HOT = "hot"
    WARM = "warm"
    COLD = "cold"
    EVICTED = "evicted"

    def as_str(self) -> str:
        """Return the canonical lower-case name used on disk and in indexes."""
        return self.value

    def __str__(self) -> str:
        return self.value


class TomeError(Exception):
    """Base class for every error raised by this package."""


class OtherError(TomeError):
    """A failure that fits no more specific category (parse, validation, ...)."""


class StorageError(TomeError):
    """A failure in a persistent store."""


class NotFoundError(TomeError):
    """The requested item does not exist."""


@dataclass(frozen=True)
class SearchHit:
    """A single ranked result from a search."""

    page_id: int
    title: str
    tier: Tier
    score: float