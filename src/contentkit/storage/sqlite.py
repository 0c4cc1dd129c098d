"""
SQLite storage backend.

Persists bundles, field definitions, entities, path aliases and taxonomy
terms in a single SQLite file. Field types are stored as canonical grammar
strings and parsed back on read. Entity field values are stored as one JSON
document per entity.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from contentkit.core.errors import GrammarError, StorageError
from contentkit.core.grammar import parse_field_type
from contentkit.core.ir import BundleInfo, EntityRef, FieldDefinition
from contentkit.core.naming import BODY_DEFINITION, BODY_FIELD, base_fields

from .base import REVISIONED_KINDS, TERM_KIND
from .memory import normalize_alias

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS bundles (
    kind TEXT NOT NULL,
    bundle TEXT NOT NULL,
    label TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (kind, bundle)
);
CREATE TABLE IF NOT EXISTS fields (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    bundle TEXT NOT NULL,
    name TEXT NOT NULL,
    label TEXT NOT NULL,
    type TEXT NOT NULL,
    UNIQUE (kind, bundle, name),
    FOREIGN KEY (kind, bundle) REFERENCES bundles (kind, bundle)
);
CREATE TABLE IF NOT EXISTS entities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    bundle TEXT NOT NULL,
    revision_id INTEGER,
    data TEXT NOT NULL DEFAULT '{}'
);
CREATE TABLE IF NOT EXISTS aliases (
    path TEXT PRIMARY KEY,
    entity_id INTEGER NOT NULL REFERENCES entities (id)
);
CREATE TABLE IF NOT EXISTS terms (
    vocabulary TEXT NOT NULL,
    name TEXT NOT NULL,
    entity_id INTEGER NOT NULL REFERENCES entities (id),
    PRIMARY KEY (vocabulary, name)
);
"""


class SQLiteStorage:
    """
    ``ContentStorage`` implementation on a SQLite database file.

    Every method opens a short-lived connection and commits on success, so a
    failing operation leaves nothing half-written.

    Example:
        storage = SQLiteStorage(".contentkit/content.db")
        result = import_content(document, storage)
    """

    def __init__(self, db_path: str | Path = ".contentkit/content.db"):
        """
        Initialize the storage and create its tables if needed.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Yields:
            SQLite connection
        """
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def get_bundle(self, kind: str, bundle: str) -> BundleInfo | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT kind, bundle, label, description FROM bundles WHERE kind = ? AND bundle = ?",
                (kind, bundle),
            ).fetchone()
        if row is None:
            return None
        return BundleInfo(
            kind=row["kind"], bundle=row["bundle"], label=row["label"], description=row["description"]
        )

    def list_bundles(self) -> list[BundleInfo]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT kind, bundle, label, description FROM bundles ORDER BY kind, bundle"
            ).fetchall()
        return [
            BundleInfo(
                kind=row["kind"], bundle=row["bundle"], label=row["label"], description=row["description"]
            )
            for row in rows
        ]

    def create_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        try:
            with self.connection() as conn:
                conn.execute(
                    "INSERT INTO bundles (kind, bundle, label, description) VALUES (?, ?, ?, ?)",
                    (kind, bundle, label, description),
                )
        except sqlite3.IntegrityError:
            raise StorageError(f"Bundle {kind}.{bundle} already exists") from None

    def update_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        with self.connection() as conn:
            cursor = conn.execute(
                "UPDATE bundles SET label = ?, description = ? WHERE kind = ? AND bundle = ?",
                (label, description, kind, bundle),
            )
            if cursor.rowcount == 0:
                raise StorageError(f"Bundle {kind}.{bundle} does not exist")

    def list_fields(self, kind: str, bundle: str) -> list[FieldDefinition]:
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT name, label, type FROM fields WHERE kind = ? AND bundle = ? ORDER BY position",
                (kind, bundle),
            ).fetchall()

        definitions: list[FieldDefinition] = []
        for row in rows:
            try:
                parsed = parse_field_type(row["type"])
            except GrammarError as e:
                raise StorageError(
                    f"Stored type of field '{row['name']}' on {kind}.{bundle} is unreadable: {e.message}"
                ) from e
            definitions.append(FieldDefinition(name=row["name"], label=row["label"], type=parsed))
        return definitions

    def create_field(self, kind: str, bundle: str, field: FieldDefinition) -> None:
        if self.get_bundle(kind, bundle) is None:
            raise StorageError(f"Bundle {kind}.{bundle} does not exist")
        if field.name in base_fields(kind):
            raise StorageError(f"Field '{field.name}' already exists on {kind}.{bundle}")
        try:
            with self.connection() as conn:
                conn.execute(
                    "INSERT INTO fields (kind, bundle, name, label, type) VALUES (?, ?, ?, ?, ?)",
                    (kind, bundle, field.name, field.label, field.type.to_grammar()),
                )
        except sqlite3.IntegrityError:
            raise StorageError(f"Field '{field.name}' already exists on {kind}.{bundle}") from None

    def attach_body_field(self, kind: str, bundle: str) -> None:
        if self.get_bundle(kind, bundle) is None:
            raise StorageError(f"Bundle {kind}.{bundle} does not exist")
        with self.connection() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO fields (kind, bundle, name, label, type) VALUES (?, ?, ?, ?, ?)",
                (kind, bundle, BODY_FIELD, BODY_DEFINITION.label, BODY_DEFINITION.type.to_grammar()),
            )

    def _check_fields(self, kind: str, bundle: str, values: dict[str, Any]) -> None:
        if self.get_bundle(kind, bundle) is None:
            raise StorageError(f"Bundle {kind}.{bundle} does not exist")
        allowed = {f.name for f in self.list_fields(kind, bundle)} | set(base_fields(kind))
        unknown = sorted(set(values) - allowed)
        if unknown:
            raise StorageError(f"{kind}.{bundle} has no field(s) {', '.join(unknown)}")

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def create_entity(self, kind: str, bundle: str, values: dict[str, Any]) -> EntityRef:
        self._check_fields(kind, bundle, values)
        with self.connection() as conn:
            cursor = conn.execute(
                "INSERT INTO entities (kind, bundle, data) VALUES (?, ?, ?)",
                (kind, bundle, json.dumps(values)),
            )
            entity_id = int(cursor.lastrowid or 0)
            revision_id = None
            if kind in REVISIONED_KINDS:
                revision_id = entity_id
                conn.execute("UPDATE entities SET revision_id = ? WHERE id = ?", (revision_id, entity_id))
        logger.debug("Created %s.%s entity %d", kind, bundle, entity_id)
        return EntityRef(kind=kind, bundle=bundle, id=entity_id, revision_id=revision_id)

    def _row(self, conn: sqlite3.Connection, ref: EntityRef) -> sqlite3.Row:
        if ref.placeholder or not isinstance(ref.id, int):
            raise StorageError(f"{ref.render()} is not a persisted entity")
        row = conn.execute(
            "SELECT id, kind, bundle, revision_id, data FROM entities WHERE id = ? AND kind = ?",
            (ref.id, ref.kind),
        ).fetchone()
        if row is None:
            raise StorageError(f"Entity {ref.render()} does not exist")
        return row

    def set_fields(self, ref: EntityRef, values: dict[str, Any]) -> None:
        self._check_fields(ref.kind, ref.bundle, values)
        with self.connection() as conn:
            row = self._row(conn, ref)
            data = json.loads(row["data"])
            data.update(values)
            conn.execute("UPDATE entities SET data = ? WHERE id = ?", (json.dumps(data), ref.id))

    def set_alias(self, ref: EntityRef, path: str) -> None:
        alias = normalize_alias(path)
        with self.connection() as conn:
            self._row(conn, ref)
            current = conn.execute("SELECT entity_id FROM aliases WHERE path = ?", (alias,)).fetchone()
            if current is not None and current["entity_id"] != ref.id:
                raise StorageError(f"Path alias '{alias}' is already used by entity {current['entity_id']}")
            conn.execute(
                "INSERT OR REPLACE INTO aliases (path, entity_id) VALUES (?, ?)", (alias, ref.id)
            )

    def ensure_term(self, vocabulary: str, name: str) -> EntityRef:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT entity_id FROM terms WHERE vocabulary = ? AND name = ?", (vocabulary, name)
            ).fetchone()
            if row is not None:
                return EntityRef(kind=TERM_KIND, bundle=vocabulary, id=int(row["entity_id"]))
            cursor = conn.execute(
                "INSERT INTO entities (kind, bundle, data) VALUES (?, ?, ?)",
                (TERM_KIND, vocabulary, json.dumps({"name": name})),
            )
            entity_id = int(cursor.lastrowid or 0)
            conn.execute(
                "INSERT INTO terms (vocabulary, name, entity_id) VALUES (?, ?, ?)",
                (vocabulary, name, entity_id),
            )
        return EntityRef(kind=TERM_KIND, bundle=vocabulary, id=entity_id)

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def get_values(self, ref: EntityRef) -> dict[str, Any]:
        """Stored field values of an entity."""
        with self.connection() as conn:
            row = self._row(conn, ref)
        return json.loads(row["data"])

    def find_entities(self, kind: str, bundle: str | None = None) -> list[EntityRef]:
        """Persisted entities of a kind (and bundle), in creation order."""
        sql = "SELECT id, bundle, revision_id FROM entities WHERE kind = ?"
        params: list[Any] = [kind]
        if bundle is not None:
            sql += " AND bundle = ?"
            params.append(bundle)
        with self.connection() as conn:
            rows = conn.execute(sql + " ORDER BY id", params).fetchall()
        return [
            EntityRef(kind=kind, bundle=row["bundle"], id=int(row["id"]), revision_id=row["revision_id"])
            for row in rows
        ]

    def resolve_alias(self, path: str) -> EntityRef | None:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT e.id, e.kind, e.bundle, e.revision_id FROM aliases a "
                "JOIN entities e ON e.id = a.entity_id WHERE a.path = ?",
                (normalize_alias(path),),
            ).fetchone()
        if row is None:
            return None
        return EntityRef(
            kind=row["kind"], bundle=row["bundle"], id=int(row["id"]), revision_id=row["revision_id"]
        )
