"""
In-memory storage backend.

Keeps bundles, fields, entities, aliases and taxonomy terms in dictionaries.
Used for previews against a throwaway store and throughout the tests; it
enforces the same rules as the SQLite backend.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from contentkit.core.errors import StorageError
from contentkit.core.ir import BundleInfo, EntityRef, FieldDefinition
from contentkit.core.naming import BODY_DEFINITION, BODY_FIELD, base_fields

from .base import REVISIONED_KINDS, TERM_KIND


def normalize_alias(path: str) -> str:
    """Aliases are stored with exactly one leading slash and no trailing one."""
    path = path.strip()
    if not path or path == "/":
        raise StorageError(f"'{path}' is not a usable path alias")
    return "/" + path.strip("/")


@dataclass
class StoredEntity:
    """An entity as held by the in-memory backend."""

    ref: EntityRef
    values: dict[str, Any] = field(default_factory=dict)


class InMemoryStorage:
    """
    Dictionary-backed ``ContentStorage`` implementation.

    Example:
        storage = InMemoryStorage()
        storage.create_bundle("node", "event", "Event")
        ref = storage.create_entity("node", "event", {"title": "Launch"})
    """

    def __init__(self) -> None:
        self.bundles: dict[tuple[str, str], BundleInfo] = {}
        self.fields: dict[tuple[str, str], dict[str, FieldDefinition]] = {}
        self.entities: dict[tuple[str, int], StoredEntity] = {}
        self.aliases: dict[str, EntityRef] = {}
        self.terms: dict[tuple[str, str], EntityRef] = {}
        self._next_id: dict[str, int] = {}
        self._next_revision = 0

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def get_bundle(self, kind: str, bundle: str) -> BundleInfo | None:
        return self.bundles.get((kind, bundle))

    def create_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        if (kind, bundle) in self.bundles:
            raise StorageError(f"Bundle {kind}.{bundle} already exists")
        self.bundles[(kind, bundle)] = BundleInfo(
            kind=kind, bundle=bundle, label=label, description=description
        )
        self.fields[(kind, bundle)] = {}

    def update_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        self._require_bundle(kind, bundle)
        self.bundles[(kind, bundle)] = BundleInfo(
            kind=kind, bundle=bundle, label=label, description=description
        )

    def list_fields(self, kind: str, bundle: str) -> list[FieldDefinition]:
        self._require_bundle(kind, bundle)
        return list(self.fields[(kind, bundle)].values())

    def create_field(self, kind: str, bundle: str, field: FieldDefinition) -> None:
        self._require_bundle(kind, bundle)
        existing = self.fields[(kind, bundle)]
        if field.name in existing or field.name in base_fields(kind):
            raise StorageError(f"Field '{field.name}' already exists on {kind}.{bundle}")
        existing[field.name] = field

    def attach_body_field(self, kind: str, bundle: str) -> None:
        self._require_bundle(kind, bundle)
        self.fields[(kind, bundle)].setdefault(BODY_FIELD, BODY_DEFINITION)

    def _require_bundle(self, kind: str, bundle: str) -> None:
        if (kind, bundle) not in self.bundles:
            raise StorageError(f"Bundle {kind}.{bundle} does not exist")

    def _check_fields(self, kind: str, bundle: str, values: dict[str, Any]) -> None:
        allowed = set(self.fields.get((kind, bundle), {})) | set(base_fields(kind))
        unknown = sorted(set(values) - allowed)
        if unknown:
            raise StorageError(f"{kind}.{bundle} has no field(s) {', '.join(unknown)}")

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def _allocate(self, kind: str) -> int:
        self._next_id[kind] = self._next_id.get(kind, 0) + 1
        return self._next_id[kind]

    def create_entity(self, kind: str, bundle: str, values: dict[str, Any]) -> EntityRef:
        self._require_bundle(kind, bundle)
        self._check_fields(kind, bundle, values)
        revision_id = None
        if kind in REVISIONED_KINDS:
            self._next_revision += 1
            revision_id = self._next_revision
        ref = EntityRef(kind=kind, bundle=bundle, id=self._allocate(kind), revision_id=revision_id)
        self.entities[(kind, int(ref.id))] = StoredEntity(ref=ref, values=copy.deepcopy(values))
        return ref

    def _stored(self, ref: EntityRef) -> StoredEntity:
        if ref.placeholder or not isinstance(ref.id, int):
            raise StorageError(f"{ref.render()} is not a persisted entity")
        stored = self.entities.get((ref.kind, ref.id))
        if stored is None:
            raise StorageError(f"Entity {ref.render()} does not exist")
        return stored

    def set_fields(self, ref: EntityRef, values: dict[str, Any]) -> None:
        stored = self._stored(ref)
        self._check_fields(ref.kind, ref.bundle, values)
        stored.values.update(copy.deepcopy(values))

    def set_alias(self, ref: EntityRef, path: str) -> None:
        self._stored(ref)
        alias = normalize_alias(path)
        current = self.aliases.get(alias)
        if current is not None and (current.kind, current.id) != (ref.kind, ref.id):
            raise StorageError(f"Path alias '{alias}' is already used by {current.render()}")
        self.aliases[alias] = ref

    def ensure_term(self, vocabulary: str, name: str) -> EntityRef:
        key = (vocabulary, name)
        if key not in self.terms:
            ref = EntityRef(kind=TERM_KIND, bundle=vocabulary, id=self._allocate(TERM_KIND))
            self.terms[key] = ref
            self.entities[(TERM_KIND, int(ref.id))] = StoredEntity(ref=ref, values={"name": name})
        return self.terms[key]

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def get_values(self, ref: EntityRef) -> dict[str, Any]:
        """Copy of the stored field values of an entity."""
        return copy.deepcopy(self._stored(ref).values)

    def find_entities(self, kind: str, bundle: str | None = None) -> list[EntityRef]:
        """Persisted entities of a kind (and bundle), in creation order."""
        return [
            stored.ref
            for (stored_kind, _), stored in self.entities.items()
            if stored_kind == kind and (bundle is None or stored.ref.bundle == bundle)
        ]

    def resolve_alias(self, path: str) -> EntityRef | None:
        return self.aliases.get(normalize_alias(path))
