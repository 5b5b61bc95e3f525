"""Parser for the ``geo_tags`` SQL dump.

Columns: gt_id, gt_page_id, gt_globe, gt_primary, gt_lat, gt_lon, gt_dim,
gt_type, gt_name, gt_country, gt_region. Only gt_page_id, gt_primary,
gt_lat, gt_lon and gt_type (as ``kind``) are kept.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from os import PathLike

from tome.sqldump import iter_tuples, read_gzip_text

__all__ = ["Geotag", "parse_str", "parse_file"]

_TABLE = "geo_tags"
_U64_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1
_FLOAT_RE = re.compile(
    r"[+-]?(?:inf(?:inity)?|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Geotag:
    """A geographic coordinate attached to an article."""

    page_id: int
    lat: float
    lon: float
    primary: bool
    kind: str | None = None


def parse_str(content: str, on_geotag: Callable[[Geotag], object]) -> int:
    """Call ``on_geotag`` for each valid row in the dump text; return the count."""
    count = 0
    for fields in iter_tuples(content, _TABLE):
        geotag = _fields_to_geotag(fields)
        if geotag is not None:
            on_geotag(geotag)
            count += 1
    return count


def parse_file(path: str | PathLike[str], on_geotag: Callable[[Geotag], object]) -> int:
    """Parse a gzipped ``geo_tags`` dump without modifying it."""
    return parse_str(read_gzip_text(path, "geotag"), on_geotag)


def _parse_u64(text: str) -> int | None:
    if not _U64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def _parse_float(text: str) -> float | None:
    if not _FLOAT_RE.fullmatch(text):
        return None
    return float(text)


def _fields_to_geotag(fields: list[str]) -> Geotag | None:
    if len(fields) < 6:
        return None
    page_id = _parse_u64(fields[1])
    if page_id is None:
        return None
    primary = fields[3] == "1"
    lat = _parse_float(fields[4])
    lon = _parse_float(fields[5])
    if lat is None or lon is None:
        return None
    if not math.isfinite(lat) or not math.isfinite(lon):
        return None
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        return None
    kind = fields[7] if len(fields) > 7 and fields[7] not in ("NULL", "") else None
    return Geotag(page_id=page_id, lat=lat, lon=lon, primary=primary, kind=kind)