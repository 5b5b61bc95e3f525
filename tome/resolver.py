"""Category resolver interface used when installing modules."""

from __future__ import annotations

from abc import ABC, abstractmethod

__all__ = ["CategoryResolver", "NoopResolver"]


class CategoryResolver(ABC):
    """Expands a category into the article titles it contains."""

    @abstractmethod
    async def resolve(self, category: str, depth: int) -> list[str]:
        """Return all article titles in ``category``, recursing to ``depth``.

        Depth 0 means the exact category only.
        """


class NoopResolver(CategoryResolver):
    """A resolver that always returns an empty list."""

    async def resolve(self, category: str, depth: int) -> list[str]:
        return []