"""
Storage collaborator interface.

The import engine only talks to storage through this protocol. Backends
raise ``StorageError`` (or any other exception) when an operation fails;
the executor turns failures into warnings and carries on.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from contentkit.core.ir import BundleInfo, EntityRef, FieldDefinition

TERM_KIND = "taxonomy_term"

# Entity kinds whose references carry a revision id
REVISIONED_KINDS = frozenset({"paragraph"})


@runtime_checkable
class ContentStorage(Protocol):
    """Schema and content operations required by the import engine."""

    def get_bundle(self, kind: str, bundle: str) -> BundleInfo | None:
        """Look up a bundle, returning None if it does not exist."""
        ...

    def create_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        ...

    def update_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        ...

    def list_fields(self, kind: str, bundle: str) -> list[FieldDefinition]:
        """Current field definitions of a bundle, in creation order."""
        ...

    def create_field(self, kind: str, bundle: str, field: FieldDefinition) -> None:
        ...

    def attach_body_field(self, kind: str, bundle: str) -> None:
        """Add the standard rich-text ``body`` field to a bundle."""
        ...

    def create_entity(self, kind: str, bundle: str, values: dict[str, Any]) -> EntityRef:
        """Create a content entity and return its persisted reference."""
        ...

    def set_alias(self, ref: EntityRef, path: str) -> None:
        """Assign a URL alias to an entity."""
        ...

    def set_fields(self, ref: EntityRef, values: dict[str, Any]) -> None:
        """Overwrite a subset of fields on an existing entity."""
        ...

    def ensure_term(self, vocabulary: str, name: str) -> EntityRef:
        """Return the term named ``name`` in ``vocabulary``, creating it if needed."""
        ...
