"""Tuple extraction from MySQL ``INSERT ... VALUES`` dump files."""

from __future__ import annotations

import gzip
import re
import zlib
from collections.abc import Iterator
from os import PathLike

from tome.core import OtherError

__all__ = ["iter_tuples", "parse_tuple", "read_gzip_text"]

_PIECE_RE = re.compile(r"'((?:[^'\\]|\\.)*)'|([^',)]+)|([,)])", re.DOTALL)
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_NEXT_RE = re.compile(r"[(;]")


def parse_tuple(text: str, start: int) -> tuple[list[str], int]:
    """Parse the fields of one tuple whose opening '(' precedes ``start``.

    Single-quoted strings are unquoted, with backslash escapes taking the
    next character literally; every field is trimmed. Returns the fields and
    the index just past the closing ')'.
    """
    fields: list[str] = []
    current: list[str] = []
    pos = start
    while True:
        match = _PIECE_RE.match(text, pos)
        if match is None:
            raise OtherError("unterminated tuple")
        pos = match.end()
        quoted, bare, separator = match.groups()
        if separator is not None:
            fields.append("".join(current).strip())
            current = []
            if separator == ")":
                return fields, pos
        elif bare is not None:
            current.append(bare)
        else:
            current.append(_ESCAPE_RE.sub(r"\1", quoted))


def iter_tuples(content: str, table: str) -> Iterator[list[str]]:
    """Yield the field lists of every tuple inserted into ``table``.

    Statements for other tables are ignored; each statement ends at ';'.
    """
    prefix = f"INSERT INTO `{table}` VALUES "
    pos = content.find(prefix)
    while pos >= 0:
        cursor = pos + len(prefix)
        while True:
            match = _NEXT_RE.search(content, cursor)
            if match is None or match.group() == ";":
                break
            try:
                fields, cursor = parse_tuple(content, match.end())
            except OtherError:
                raise OtherError(f"unterminated {table} tuple") from None
            yield fields
        pos = content.find(prefix, pos + len(prefix))


def read_gzip_text(path: str | PathLike[str], what: str) -> str:
    """Read and decompress a gzipped UTF-8 dump, opening it read-only."""
    try:
        handle = open(path, "rb")
    except OSError as exc:
        raise OtherError(f"open {what} dump {str(path)!r}: {exc}") from exc
    with handle:
        try:
            with gzip.GzipFile(fileobj=handle, mode="rb") as stream:
                return stream.read().decode("utf-8")
        except (OSError, EOFError, zlib.error, UnicodeDecodeError) as exc:
            raise OtherError(f"decompress {what} dump: {exc}") from exc