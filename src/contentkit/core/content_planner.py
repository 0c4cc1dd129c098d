"""
Content planner.

Builds content operations in two passes:

1. ``plan_creation``: one create operation per content entry, with every
   non-reference value coerced against the bundle's effective schema.
   Reference-typed fields are left unset.
2. ``plan_references``: once every entry exists, one set-references
   operation per reference-typed field, with ``@id`` tokens resolved
   against the symbol table.

Reference fields may also hold whole content objects instead of ``@id``
tokens. ``expand`` lifts those out into entries of their own before the
first pass, so they are created, registered and resolved like any other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pydantic

from .coercion import coerce_value, split_items
from .context import ImportContext
from .errors import (
    ImportWarning,
    WarningKind,
    invalid_value_warning,
    missing_required_warning,
    storage_warning,
    unknown_field_warning,
)
from .ir import (
    BundleSchema,
    CoercedValue,
    ContentEntry,
    CreateContentOperation,
    EntityKind,
    EntityRef,
    FieldDefinition,
    FieldKind,
    SetReferencesOperation,
    TextValue,
)
from .loader import format_problems
from .naming import DEFAULT_TITLE, TITLE_FIELD, machine_name
from .resolver import REFERENCE_PREFIX, ReferenceResolver, is_reference_token
from .schema_planner import EffectiveSchema

logger = logging.getLogger(__name__)

_EMBEDDED_KEYS = frozenset({"id", "type"})


def _is_empty(raw: Any) -> bool:
    return raw is None or raw == "" or raw == []


def is_embedded_entry(value: Any) -> bool:
    """True for an inline content object (``{"id", "type", "values"}``)."""
    return isinstance(value, dict) and _EMBEDDED_KEYS <= value.keys()


@dataclass
class QueuedEntry:
    """
    A content entry in creation order.

    Attributes:
        entry: The entry, with embedded objects replaced by ``@id`` tokens
        embedded_in: Symbolic id of the entry that held it inline, if any
    """

    entry: ContentEntry
    embedded_in: str | None = None


class ContentPlanner:
    """Plans create and set-references operations for content entries."""

    def __init__(self, schema: EffectiveSchema, ctx: ImportContext):
        self.schema = schema
        self.ctx = ctx
        self.resolver = ReferenceResolver(ctx.symbols)

    def _bundle_schema(self, entry: ContentEntry) -> BundleSchema | None:
        try:
            bundle_schema = self.schema.get(entry.entity_kind, entry.bundle)
        except Exception as e:
            self.ctx.warn(storage_warning(f"look up bundle {entry.type}", e, entry.id))
            return None
        if bundle_schema is None:
            self.ctx.warn(
                ImportWarning(
                    WarningKind.UNKNOWN_BUNDLE,
                    f"{entry.type} does not exist, content '{entry.id}' skipped",
                    subject=entry.id,
                )
            )
        return bundle_schema

    def _fields(
        self, entry: ContentEntry, bundle_schema: BundleSchema, *, warn: bool
    ) -> list[tuple[FieldDefinition, Any]]:
        """Pair each raw value with its field definition, in document order."""
        pairs: list[tuple[FieldDefinition, Any]] = []
        for raw_name, raw in entry.values.items():
            definition = bundle_schema.get_field(machine_name(raw_name))
            if definition is None:
                if warn:
                    self.ctx.warn(unknown_field_warning(entry.id, raw_name, entry.type))
                continue
            pairs.append((definition, raw))
        return pairs

    # -------------------------------------------------------------------------
    # Embedded content
    # -------------------------------------------------------------------------

    def expand(self, entries: list[ContentEntry]) -> list[QueuedEntry]:
        """
        Lift embedded content objects out of reference fields.

        Each inline object becomes an entry of its own, queued right after
        the entry holding it, and is replaced there by an ``@id`` token.
        Objects nest to any depth. An embedded id that another entry already
        uses is linked as a plain reference to that entry.

        Args:
            entries: Top-level content entries, document order

        Returns:
            Every entry to create, parents before the items they embed
        """
        seen = {entry.id for entry in entries}
        queue: list[QueuedEntry] = []
        for entry in entries:
            self._expand_entry(entry, None, seen, queue)
        return queue

    def _expand_entry(
        self,
        entry: ContentEntry,
        embedded_in: str | None,
        seen: set[str],
        queue: list[QueuedEntry],
    ) -> None:
        try:
            bundle_schema = self.schema.get(entry.entity_kind, entry.bundle)
        except Exception:
            # plan_creation reports the lookup failure
            bundle_schema = None
        if bundle_schema is None:
            queue.append(QueuedEntry(entry, embedded_in))
            return

        children: list[ContentEntry] = []
        values: dict[str, Any] = {}
        for raw_name, raw in entry.values.items():
            definition = bundle_schema.get_field(machine_name(raw_name))
            if (
                definition is None
                or not definition.type.is_reference
                or definition.type.base_kind == FieldKind.TAXONOMY_REFERENCE
            ):
                values[raw_name] = raw
            elif isinstance(raw, list):
                values[raw_name] = [self._lift(entry, definition.name, item, seen, children) for item in raw]
            else:
                values[raw_name] = self._lift(entry, definition.name, raw, seen, children)

        queue.append(QueuedEntry(entry.model_copy(update={"values": values}), embedded_in))
        for child in children:
            self._expand_entry(child, entry.id, seen, queue)

    def _lift(
        self, entry: ContentEntry, field: str, item: Any, seen: set[str], children: list[ContentEntry]
    ) -> Any:
        if not is_embedded_entry(item):
            return item
        try:
            child = ContentEntry.model_validate(item)
        except pydantic.ValidationError as e:
            problems = "; ".join(format_problems(e, item))
            self.ctx.warn(invalid_value_warning(entry.id, field, f"embedded content is not valid: {problems}"))
            return None

        if child.id in seen:
            logger.info(
                "Embedded content '%s' in '%s' reuses an existing id, linked as a reference",
                child.id,
                entry.id,
            )
        else:
            seen.add(child.id)
            children.append(child)
        return f"{REFERENCE_PREFIX}{child.id}"

    # -------------------------------------------------------------------------
    # Pass 1
    # -------------------------------------------------------------------------

    def plan_creation(
        self, entry: ContentEntry, embedded_in: str | None = None
    ) -> CreateContentOperation | None:
        """
        Plan the creation of one content entry without its references.

        Args:
            entry: The content entry
            embedded_in: Symbolic id of the entry that held it inline

        Returns:
            The operation, or None when the target bundle does not exist
        """
        bundle_schema = self._bundle_schema(entry)
        if bundle_schema is None:
            return None

        values: dict[str, CoercedValue] = {}
        provided: set[str] = set()
        for definition, raw in self._fields(entry, bundle_schema, warn=True):
            if not _is_empty(raw):
                provided.add(definition.name)
            if definition.type.is_reference:
                continue
            coercion = coerce_value(definition.type, raw)
            for problem in coercion.problems:
                self.ctx.warn(invalid_value_warning(entry.id, definition.name, problem))
            if coercion.value is not None:
                values[definition.name] = coercion.value

        for definition in bundle_schema.fields.values():
            if definition.is_required and definition.name not in provided:
                self.ctx.warn(missing_required_warning(entry.id, definition.name))

        if entry.entity_kind == EntityKind.NODE and TITLE_FIELD not in values:
            values[TITLE_FIELD] = TextValue(value=DEFAULT_TITLE)

        path = entry.path.strip() if entry.path else None
        if path and entry.entity_kind != EntityKind.NODE:
            self.ctx.warn(
                invalid_value_warning(entry.id, "path", f"path aliases apply to nodes only, '{path}' ignored")
            )
            path = None

        return CreateContentOperation(
            content_id=entry.id,
            entity_kind=entry.entity_kind,
            bundle=entry.bundle,
            values=values,
            path=path,
            embedded_in=embedded_in,
        )

    # -------------------------------------------------------------------------
    # Pass 2
    # -------------------------------------------------------------------------

    def plan_references(self, entry: ContentEntry, target: EntityRef) -> list[SetReferencesOperation]:
        """
        Plan reference writes for an entry created in the first pass.

        Args:
            entry: The content entry
            target: Entity created for it

        Returns:
            One operation per reference-typed field that has something to write
        """
        bundle_schema = self.schema.get(entry.entity_kind, entry.bundle)
        if bundle_schema is None:
            return []

        operations: list[SetReferencesOperation] = []
        for definition, raw in self._fields(entry, bundle_schema, warn=False):
            if not definition.type.is_reference:
                continue
            op = self._plan_field(entry, target, definition, raw)
            if op is not None:
                operations.append(op)
        return operations

    def _plan_field(
        self, entry: ContentEntry, target: EntityRef, definition: FieldDefinition, raw: Any
    ) -> SetReferencesOperation | None:
        ft = definition.type
        is_taxonomy = ft.base_kind == FieldKind.TAXONOMY_REFERENCE
        items, notes = split_items(ft, raw)
        for note in notes:
            self.ctx.warn(invalid_value_warning(entry.id, definition.name, note))

        tokens: list[str] = []
        term_names: list[str] = []
        for item in items:
            if is_reference_token(item):
                tokens.append(item)
            elif is_taxonomy and isinstance(item, str) and item.strip():
                term_names.append(item.strip())
            elif is_taxonomy and isinstance(item, dict) and isinstance(item.get("name"), str):
                term_names.append(item["name"].strip())
            else:
                expected = "an @id reference or a term name" if is_taxonomy else "an @id reference"
                self.ctx.warn(
                    invalid_value_warning(entry.id, definition.name, f"expected {expected}, got {item!r}")
                )

        resolved, warnings = self.resolver.resolve(tokens, entry.id, definition.name)
        self.ctx.warn_all(warnings)
        if not resolved and not term_names:
            return None

        return SetReferencesOperation(
            content_id=entry.id,
            target=target,
            field=definition.name,
            references=resolved,
            vocabulary=ft.target if is_taxonomy else None,
            term_names=term_names,
            multivalued=ft.multivalued,
        )
