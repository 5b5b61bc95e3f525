"""BM25 full-text index over articles with tier filtering."""

from __future__ import annotations

import heapq
import json
import math
import os
import re
import tempfile
import threading
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from os import PathLike
from pathlib import Path

from tome.core import OtherError, SearchHit, Tier
from tome.schema import TomeSchema, tokenize

__all__ = [
    "DEFAULT_WRITER_BUFFER_BYTES",
    "MIN_WRITER_BUFFER_BYTES",
    "Index",
    "Writer",
]

DEFAULT_WRITER_BUFFER_BYTES = 50 * 1024 * 1024
MIN_WRITER_BUFFER_BYTES = 15_000_000

_INDEX_FILE = "tome-index.json"
_FORMAT_VERSION = 1
_K1 = 1.2
_B = 0.75
_FIELD_PREFIX_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*):")
_U64_MAX = 2**64 - 1


class _QueryError(Exception):
    pass


class _Occur(Enum):
    SHOULD = auto()
    MUST = auto()
    MUST_NOT = auto()


@dataclass(frozen=True)
class _Clause:
    occur: _Occur
    fields: tuple[str, ...]
    terms: tuple[str, ...]


@dataclass(frozen=True, eq=False)
class _Doc:
    page_id: int
    title: str
    tier: str
    tokens: dict[str, tuple[str, ...]]


class Index:
    """An article index that can be written to and queried."""

    def __init__(self, schema: TomeSchema, path: Path | None = None) -> None:
        self._schema = schema
        self._path = path
        self._lock = threading.Lock()
        self._docs: list[_Doc] = []
        self._doc_freq: dict[str, Counter[str]] = {f: Counter() for f in schema.tokenized}
        self._total_len: dict[str, int] = {f: 0 for f in schema.tokenized}
        self._raw_freq: dict[str, Counter[str]] = {
            schema.tier: Counter(),
            schema.page_id: Counter(),
        }

    @classmethod
    def create_in_ram(cls) -> Index:
        """Create a fresh index that lives only in memory."""
        return cls(TomeSchema.build())

    @classmethod
    def create_in_dir(cls, path: str | PathLike[str]) -> Index:
        """Create a fresh index in an existing directory holding no index."""
        directory = Path(path)
        if not directory.is_dir():
            raise OtherError(f"create index: directory {str(directory)!r} does not exist")
        if (directory / _INDEX_FILE).exists():
            raise OtherError(f"create index: an index already exists in {str(directory)!r}")
        index = cls(TomeSchema.build(), directory)
        index._persist([])
        return index

    @classmethod
    def open_dir(cls, path: str | PathLike[str]) -> Index:
        """Open the index in ``path``, creating an empty one if there is none."""
        directory = Path(path)
        if not directory.is_dir():
            raise OtherError(f"open mmap dir: directory {str(directory)!r} does not exist")
        index = cls(TomeSchema.build(), directory)
        file = directory / _INDEX_FILE
        if not file.exists():
            index._persist([])
            return index
        try:
            data = json.loads(file.read_text(encoding="utf-8"))
            docs = [index._doc_from_json(item) for item in data["docs"]]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise OtherError(f"open index: {exc}") from exc
        index._append(docs)
        return index

    @property
    def schema(self) -> TomeSchema:
        """The field layout of this index."""
        return self._schema

    def writer(self, buffer_bytes: int) -> Writer:
        """Return a writer that batches added documents until committed."""
        if buffer_bytes < MIN_WRITER_BUFFER_BYTES:
            raise OtherError(
                f"writer init: memory budget {buffer_bytes} is below "
                f"the minimum of {MIN_WRITER_BUFFER_BYTES}"
            )
        return Writer(self)

    def name(self) -> str:
        """Name of the ranking this searcher uses."""
        return "bm25"

    def search(
        self, query_str: str, limit: int, tier_filter: Iterable[Tier]
    ) -> list[SearchHit]:
        """Run a query, returning at most ``limit`` hits, best first.

        ``tier_filter`` restricts results to those tiers; an empty filter
        matches every tier. A query the parser rejects yields no hits.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        try:
            clauses = _parse_query(query_str, self._schema)
        except _QueryError:
            return []
        wanted = {tier.as_str() for tier in tier_filter}

        with self._lock:
            scored: list[tuple[float, int, _Doc]] = []
            for position, doc in enumerate(self._docs):
                if wanted and doc.tier not in wanted:
                    continue
                score = self._score(clauses, doc)
                if score is None:
                    continue
                if wanted:
                    score += self._raw_score(self._schema.tier, doc.tier)
                scored.append((score, position, doc))

        best = heapq.nsmallest(limit, scored, key=lambda item: (-item[0], item[1]))
        return [
            SearchHit(page_id=doc.page_id, title=doc.title, tier=_parse_tier(doc.tier), score=score)
            for score, _, doc in best
        ]

    def _commit(self, docs: Sequence[_Doc]) -> None:
        with self._lock:
            if self._path is not None:
                self._persist([*self._docs, *docs])
            self._append(docs)

    def _append(self, docs: Iterable[_Doc]) -> None:
        for doc in docs:
            self._docs.append(doc)
            for field, tokens in doc.tokens.items():
                self._doc_freq[field].update(set(tokens))
                self._total_len[field] += len(tokens)
            self._raw_freq[self._schema.tier][doc.tier] += 1
            self._raw_freq[self._schema.page_id][str(doc.page_id)] += 1

    def _persist(self, docs: Sequence[_Doc]) -> None:
        assert self._path is not None
        payload = {
            "version": _FORMAT_VERSION,
            "docs": [
                {
                    "page_id": doc.page_id,
                    "title": doc.title,
                    "tier": doc.tier,
                    "body": list(doc.tokens[self._schema.body]),
                }
                for doc in docs
            ],
        }
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._path, prefix=".tome-index-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle)
                os.replace(tmp_name, self._path / _INDEX_FILE)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise OtherError(f"commit: {exc}") from exc

    def _doc_from_json(self, item: dict) -> _Doc:
        title = item["title"]
        if not isinstance(title, str) or not isinstance(item["tier"], str):
            raise TypeError("stored document has malformed fields")
        return _Doc(
            page_id=int(item["page_id"]),
            title=title,
            tier=item["tier"],
            tokens={
                self._schema.title: tuple(tokenize(title)),
                self._schema.body: tuple(str(t) for t in item["body"]),
            },
        )

    def _score(self, clauses: Sequence[_Clause], doc: _Doc) -> float | None:
        total = 0.0
        matched = False
        for clause in clauses:
            score = self._clause_score(clause, doc)
            if clause.occur is _Occur.MUST_NOT:
                if score is not None:
                    return None
                continue
            if score is None:
                if clause.occur is _Occur.MUST:
                    return None
                continue
            total += score
            matched = True
        return total if matched else None

    def _clause_score(self, clause: _Clause, doc: _Doc) -> float | None:
        scores = [
            s
            for s in (self._field_score(field, clause.terms, doc) for field in clause.fields)
            if s is not None
        ]
        return sum(scores) if scores else None

    def _field_score(self, field: str, terms: tuple[str, ...], doc: _Doc) -> float | None:
        if field in self._schema.tokenized:
            tokens = doc.tokens[field]
            tf = _occurrences(tokens, terms)
            if tf == 0:
                return None
            idf = sum(self._idf(self._doc_freq[field][term]) for term in terms)
            avgdl = self._total_len[field] / len(self._docs)
            return idf * _bm25_tf(tf, len(tokens), avgdl)
        value = doc.tier if field == self._schema.tier else str(doc.page_id)
        if value != terms[0]:
            return None
        return self._raw_score(field, value)

    def _raw_score(self, field: str, value: str) -> float:
        # Single-token exact fields: tf is 1 and length equals the average.
        return self._idf(self._raw_freq[field][value])

    def _idf(self, doc_freq: int) -> float:
        total = len(self._docs)
        return math.log(1.0 + (total - doc_freq + 0.5) / (doc_freq + 0.5))


class Writer:
    """Batches documents for an index; nothing is visible until commit."""

    def __init__(self, index: Index) -> None:
        self._index = index
        self._pending: list[_Doc] = []
        self._lock = threading.Lock()

    def add(self, page_id: int, title: str, body: str, tier: Tier) -> None:
        """Queue one article for indexing."""
        if isinstance(page_id, bool) or not isinstance(page_id, int) or not 0 <= page_id <= _U64_MAX:
            raise OtherError(f"add document: page_id {page_id!r} is not an unsigned 64-bit integer")
        schema = self._index.schema
        doc = _Doc(
            page_id=page_id,
            title=title,
            tier=tier.as_str(),
            tokens={schema.title: tuple(tokenize(title)), schema.body: tuple(tokenize(body))},
        )
        with self._lock:
            self._pending.append(doc)

    def commit(self) -> None:
        """Make every queued document durable and searchable."""
        with self._lock:
            pending, self._pending = self._pending, []
        try:
            self._index._commit(pending)
        except OtherError:
            with self._lock:
                self._pending[:0] = pending
            raise


def _parse_tier(value: str) -> Tier:
    try:
        return Tier(value)
    except ValueError:
        raise OtherError(f"unknown tier in index: {value}") from None


def _bm25_tf(tf: int, length: int, avgdl: float) -> float:
    norm = 1.0 - _B + (_B * length / avgdl if avgdl else 0.0)
    return tf * (_K1 + 1.0) / (tf + _K1 * norm)


def _occurrences(tokens: tuple[str, ...], terms: tuple[str, ...]) -> int:
    width = len(terms)
    if width == 1:
        return tokens.count(terms[0])
    return sum(1 for start in range(len(tokens) - width + 1) if tokens[start : start + width] == terms)


def _parse_query(text: str, schema: TomeSchema) -> list[_Clause]:
    """Parse a query: words, "phrases", field:value, and +/- prefixes."""
    known_fields = {schema.page_id, schema.title, schema.body, schema.tier}
    default_fields = (schema.title, schema.body)
    clauses: list[_Clause] = []
    pos = 0
    length = len(text)
    while pos < length:
        if text[pos].isspace():
            pos += 1
            continue
        occur = _Occur.SHOULD
        if text[pos] in "+-":
            occur = _Occur.MUST if text[pos] == "+" else _Occur.MUST_NOT
            pos += 1
            if pos >= length or text[pos].isspace():
                raise _QueryError("dangling operator")
        field = None
        match = _FIELD_PREFIX_RE.match(text, pos)
        if match:
            field = match.group(1)
            if field not in known_fields:
                raise _QueryError(f"unknown field {field}")
            pos = match.end()
        if pos < length and text[pos] == '"':
            end = text.find('"', pos + 1)
            if end < 0:
                raise _QueryError("unbalanced quote")
            value = text[pos + 1 : end]
            pos = end + 1
        else:
            end = pos
            while end < length and not text[end].isspace():
                end += 1
            value = text[pos:end]
            pos = end
            if not value or ":" in value or '"' in value:
                raise _QueryError(f"malformed term {value!r}")

        if field is None or field in schema.tokenized:
            terms = tuple(tokenize(value))
            if terms:
                clauses.append(_Clause(occur, default_fields if field is None else (field,), terms))
        elif field == schema.page_id:
            if not value.isdigit():
                raise _QueryError(f"page_id value {value!r} is not a number")
            clauses.append(_Clause(occur, (field,), (str(int(value)),)))
        else:
            clauses.append(_Clause(occur, (field,), (value,)))
    return clauses