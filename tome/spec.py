"""Module definition format: a portable TOML description of a module."""

from __future__ import annotations

import string
import tomllib
from dataclasses import dataclass, field
from typing import Any

import tomli_w

from tome.core import OtherError, Tier

__all__ = ["CategorySpec", "ModuleSpec"]

_ID_CHARS = frozenset(string.ascii_lowercase + string.digits + "-")
_MAX_DEPTH = 10
_U8_MAX = 255


@dataclass
class CategorySpec:
    """A Wikipedia category and how deep to recurse into its subcategories.

    Depth 0 is the exact category only; 1 adds immediate subcategories.
    """

    name: str
    depth: int


@dataclass
class ModuleSpec:
    """A named collection of articles defined by categories and/or titles."""

    id: str
    name: str
    default_tier: Tier
    description: str | None = None
    categories: list[CategorySpec] = field(default_factory=list)
    explicit_titles: list[str] = field(default_factory=list)

    @classmethod
    def from_toml(cls, text: str) -> ModuleSpec:
        """Parse a module definition from TOML text."""
        try:
            data = tomllib.loads(text)
            return cls.from_dict(data)
        except (tomllib.TOMLDecodeError, OtherError) as exc:
            raise OtherError(f"module toml parse: {exc}") from exc

    def to_toml(self) -> str:
        """Serialize to TOML; the result parses back to an equal spec."""
        data = self.to_dict()
        if data["description"] is None:
            del data["description"]
        try:
            return tomli_w.dumps(data)
        except (TypeError, ValueError) as exc:
            raise OtherError(f"module toml serialize: {exc}") from exc

    @classmethod
    def from_dict(cls, data: Any) -> ModuleSpec:
        """Build a spec from plain data (as decoded from TOML or JSON)."""
        if not isinstance(data, dict):
            raise OtherError("module spec must be a table")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise OtherError("field 'description' must be a string")
        tier_text = _require_str(data, "default_tier")
        try:
            tier = Tier(tier_text)
        except ValueError:
            raise OtherError(f"unknown tier '{tier_text}'") from None
        return cls(
            id=_require_str(data, "id"),
            name=_require_str(data, "name"),
            default_tier=tier,
            description=description,
            categories=[_category_from(item) for item in _list_field(data, "categories")],
            explicit_titles=[_title_from(item) for item in _list_field(data, "explicit_titles")],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return plain data suitable for TOML or JSON encoding."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "default_tier": self.default_tier.as_str(),
            "categories": [{"name": c.name, "depth": c.depth} for c in self.categories],
            "explicit_titles": list(self.explicit_titles),
        }

    def validate(self) -> None:
        """Raise OtherError if the spec is not well formed."""
        if not self.id:
            raise OtherError("module id is empty")
        if not set(self.id) <= _ID_CHARS:
            raise OtherError(f"module id '{self.id}' must be ascii kebab-case")
        if not self.name.strip():
            raise OtherError("module name is empty")
        if not self.categories and not self.explicit_titles:
            raise OtherError(
                f"module '{self.id}' defines neither categories nor explicit_titles"
            )
        for cat in self.categories:
            if cat.depth > _MAX_DEPTH:
                raise OtherError(
                    f"category '{cat.name}' depth {cat.depth} exceeds safe limit ({_MAX_DEPTH})"
                )


def _require_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise OtherError(f"missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise OtherError(f"field '{key}' must be a string")
    return value


def _list_field(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise OtherError(f"field '{key}' must be an array")
    return value


def _category_from(item: Any) -> CategorySpec:
    if not isinstance(item, dict):
        raise OtherError("category entry must be a table")
    name = _require_str(item, "name")
    if "depth" not in item:
        raise OtherError("missing field 'depth'")
    depth = item["depth"]
    if isinstance(depth, bool) or not isinstance(depth, int) or not 0 <= depth <= _U8_MAX:
        raise OtherError(f"category '{name}' depth must be an integer in 0..={_U8_MAX}")
    return CategorySpec(name=name, depth=depth)


def _title_from(item: Any) -> str:
    if not isinstance(item, str):
        raise OtherError("explicit_titles entries must be strings")
    return item