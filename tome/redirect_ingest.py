"""Parser for the ``redirect`` SQL dump.

Columns: rd_from, rd_namespace, rd_title, rd_interwiki, rd_fragment. Only
main-namespace, local redirects are kept; underscores in target titles
become spaces.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from os import PathLike

from tome.sqldump import iter_tuples, read_gzip_text

__all__ = ["Redirect", "parse_str", "parse_file"]

_TABLE = "redirect"
_U64_RE = re.compile(r"\+?[0-9]+")
_I64_RE = re.compile(r"[+-]?[0-9]+")
_U64_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


@dataclass(frozen=True)
class Redirect:
    """A redirect page and the title it points to."""

    from_page_id: int
    target_title: str


def parse_str(content: str, on_redirect: Callable[[Redirect], object]) -> int:
    """Call ``on_redirect`` for each local main-namespace redirect; return the count."""
    count = 0
    for fields in iter_tuples(content, _TABLE):
        redirect = _fields_to_redirect(fields)
        if redirect is not None:
            on_redirect(redirect)
            count += 1
    return count


def parse_file(path: str | PathLike[str], on_redirect: Callable[[Redirect], object]) -> int:
    """Parse a gzipped ``redirect`` dump without modifying it."""
    return parse_str(read_gzip_text(path, "redirect"), on_redirect)


def _parse_u64(text: str) -> int | None:
    if not _U64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def _parse_i64(text: str) -> int | None:
    if not _I64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if _I64_MIN <= value <= _I64_MAX else None


def _fields_to_redirect(fields: list[str]) -> Redirect | None:
    if len(fields) < 4:
        return None
    from_page_id = _parse_u64(fields[0])
    if from_page_id is None:
        return None
    if _parse_i64(fields[1]) != 0:
        return None
    if fields[3]:
        return None
    target_title = fields[2].replace("_", " ").strip()
    if not target_title:
        return None
    return Redirect(from_page_id=from_page_id, target_title=target_title)