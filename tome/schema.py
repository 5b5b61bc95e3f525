"""Search index schema: field definitions shared by the writer and the searcher."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["TomeSchema", "tokenize"]

_TOKEN_RE = re.compile(r"[^\W_]+")
# Tokens this many UTF-8 bytes long or longer are dropped, as with the
# default full-text analyzer.
_MAX_TOKEN_BYTES = 40


def tokenize(text: str) -> list[str]:
    """Split text into lower-cased alphanumeric tokens.

    Anything that is not a letter or digit separates tokens; overly long
    tokens are discarded before lower-casing.
    """
    return [
        token.lower()
        for token in _TOKEN_RE.findall(text)
        if len(token.encode("utf-8")) < _MAX_TOKEN_BYTES
    ]


@dataclass(frozen=True)
class TomeSchema:
    """Names and properties of the fields in the article index.

    ``page_id`` is a stored numeric key, ``title`` is stored and tokenized,
    ``body`` is tokenized but not stored, and ``tier`` is a stored string
    matched exactly.
    """

    page_id: str
    title: str
    body: str
    tier: str
    stored: frozenset[str]
    tokenized: frozenset[str]

    @classmethod
    def build(cls) -> TomeSchema:
        """Return the schema used by every index."""
        return cls(
            page_id="page_id",
            title="title",
            body="body",
            tier="tier",
            stored=frozenset({"page_id", "title", "tier"}),
            tokenized=frozenset({"title", "body"}),
        )