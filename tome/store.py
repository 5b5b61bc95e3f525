"""SQLite-backed tracker of installed modules and their member titles."""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from dataclasses import dataclass
from os import PathLike

from tome.core import NotFoundError, StorageError, TomeError
from tome.spec import ModuleSpec

__all__ = ["InstalledModule", "ModuleStore"]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS modules (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL,
    description   TEXT,
    default_tier  TEXT NOT NULL,
    spec_json     TEXT NOT NULL,
    installed_at  INTEGER NOT NULL,
    updated_at    INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS module_members (
    module_id  TEXT NOT NULL REFERENCES modules(id) ON DELETE CASCADE,
    title      TEXT NOT NULL,
    PRIMARY KEY (module_id, title)
);

CREATE INDEX IF NOT EXISTS idx_module_members_title ON module_members(title);
"""

_UPSERT_MODULE = """
INSERT INTO modules
    (id, name, description, default_tier, spec_json, installed_at, updated_at)
VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?6)
ON CONFLICT(id) DO UPDATE SET
    name         = excluded.name,
    description  = excluded.description,
    default_tier = excluded.default_tier,
    spec_json    = excluded.spec_json,
    updated_at   = excluded.updated_at
"""


@dataclass
class InstalledModule:
    """A module as recorded in the store."""

    spec: ModuleSpec
    member_count: int
    installed_at: int
    updated_at: int


class ModuleStore:
    """Persistent record of which modules are installed and their members."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        try:
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise StorageError(f"enable foreign keys: {exc}") from exc
        try:
            conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageError(f"apply schema: {exc}") from exc

    @classmethod
    def open(cls, path: str | PathLike[str]) -> ModuleStore:
        """Open (creating if needed) a store in the file at ``path``."""
        try:
            conn = sqlite3.connect(path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"open module store at {path!r}: {exc}") from exc
        return cls(conn)

    @classmethod
    def open_in_memory(cls) -> ModuleStore:
        """Open a fresh, private in-memory store."""
        try:
            conn = sqlite3.connect(":memory:", check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"open in-memory module store: {exc}") from exc
        return cls(conn)

    def close(self) -> None:
        """Close the underlying database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> ModuleStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def install(self, spec: ModuleSpec, members: list[str]) -> None:
        """Install or replace a module along with its resolved member titles.

        ``members`` should already hold both explicit and category-derived
        titles; no resolver is called here.
        """
        spec.validate()
        spec_json = json.dumps(spec.to_dict())
        now = int(time.time())
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(
                        _UPSERT_MODULE,
                        (
                            spec.id,
                            spec.name,
                            spec.description,
                            spec.default_tier.as_str(),
                            spec_json,
                            now,
                        ),
                    )
                    self._conn.execute(
                        "DELETE FROM module_members WHERE module_id = ?", (spec.id,)
                    )
                    self._conn.executemany(
                        "INSERT INTO module_members (module_id, title) VALUES (?, ?) "
                        "ON CONFLICT DO NOTHING",
                        ((spec.id, title) for title in members),
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"install module: {exc}") from exc

    def uninstall(self, id: str) -> None:
        """Remove a module and its members; NotFoundError if it is unknown."""
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute("DELETE FROM modules WHERE id = ?", (id,))
            except sqlite3.Error as exc:
                raise StorageError(f"delete module: {exc}") from exc
        if cursor.rowcount == 0:
            raise NotFoundError(f"module {id}")

    def get(self, id: str) -> InstalledModule | None:
        """Return the installed module with this id, or None."""
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT spec_json, installed_at, updated_at, "
                    "(SELECT COUNT(*) FROM module_members WHERE module_id = ?1) "
                    "FROM modules WHERE id = ?1",
                    (id,),
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"get module: {exc}") from exc
        return None if row is None else _installed_from_row(*row)

    def list(self) -> list[InstalledModule]:
        """Return every installed module, ordered by name."""
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT m.spec_json, m.installed_at, m.updated_at, "
                    "(SELECT COUNT(*) FROM module_members WHERE module_id = m.id) "
                    "FROM modules m ORDER BY m.name"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"list modules: {exc}") from exc
        return [_installed_from_row(*row) for row in rows]

    def members(self, id: str) -> list[str]:
        """Return the member titles of a module, sorted."""
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT title FROM module_members WHERE module_id = ? ORDER BY title",
                    (id,),
                ).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"query members: {exc}") from exc
        return [title for (title,) in rows]

    def modules_for_title(self, title: str) -> list[str]:
        """Return the ids of every module that lists ``title`` as a member."""
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT module_id FROM module_members WHERE title = ?", (title,)
                ).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"query modules_for_title: {exc}") from exc
        return [module_id for (module_id,) in rows]


def _installed_from_row(
    spec_json: str, installed_at: int, updated_at: int, count: int
) -> InstalledModule:
    try:
        spec = ModuleSpec.from_dict(json.loads(spec_json))
    except (json.JSONDecodeError, TomeError) as exc:
        raise StorageError(f"deserialize spec: {exc}") from exc
    return InstalledModule(
        spec=spec,
        member_count=count,
        installed_at=installed_at,
        updated_at=updated_at,
    )