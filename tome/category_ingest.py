"""Parser for the ``categorylinks`` SQL dump.

Columns: cl_from, cl_to, cl_sortkey, cl_timestamp, cl_sortkey_prefix,
cl_collation, cl_type. Only cl_from, cl_to and cl_type are kept.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from os import PathLike

from tome.sqldump import iter_tuples, read_gzip_text

__all__ = ["CategoryMemberKind", "CategoryLink", "parse_str", "parse_file"]

_TABLE = "categorylinks"
_U64_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1


class CategoryMemberKind(Enum):
    """What kind of page belongs to a category."""

    PAGE = "page"
    SUBCAT = "subcat"
    FILE = "file"


@dataclass(frozen=True)
class CategoryLink:
    """A page's membership in a category."""

    from_page_id: int
    category: str
    kind: CategoryMemberKind


def parse_str(content: str, on_link: Callable[[CategoryLink], object]) -> int:
    """Call ``on_link`` for each valid link in the dump text; return the count."""
    count = 0
    for fields in iter_tuples(content, _TABLE):
        link = _fields_to_link(fields)
        if link is not None:
            on_link(link)
            count += 1
    return count


def parse_file(path: str | PathLike[str], on_link: Callable[[CategoryLink], object]) -> int:
    """Parse a gzipped ``categorylinks`` dump without modifying it."""
    return parse_str(read_gzip_text(path, "categorylinks"), on_link)


def _parse_u64(text: str) -> int | None:
    if not _U64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def _fields_to_link(fields: list[str]) -> CategoryLink | None:
    if len(fields) < 7:
        return None
    from_page_id = _parse_u64(fields[0])
    if from_page_id is None:
        return None
    category = fields[1]
    if not category or category == "NULL":
        return None
    try:
        kind = CategoryMemberKind(fields[6])
    except ValueError:
        return None
    return CategoryLink(from_page_id=from_page_id, category=category, kind=kind)