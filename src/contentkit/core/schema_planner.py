"""
Schema planner.

Diffs the bundles and fields requested by a document against storage and
emits additive operations only: create bundle, create field, attach body,
update bundle label/description. Fields are never removed or retyped.

Alongside the operations the planner builds the effective schema (stored
fields merged with planned ones), which the content planner uses for value
coercion. Because it does not depend on whether the operations actually ran,
preview and apply mode plan content identically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from contentkit.storage.base import ContentStorage

from .context import ImportContext
from .errors import (
    GrammarError,
    ImportWarning,
    WarningKind,
    grammar_warning,
    storage_warning,
)
from .grammar import parse_field_type
from .ir import (
    BundleInfo,
    BundleSchema,
    FieldDefinition,
    ModelEntry,
    SchemaAction,
    SchemaOperation,
)
from .naming import BODY_DEFINITION, BODY_FIELD, base_fields, is_reserved, machine_name

logger = logging.getLogger(__name__)


class EffectiveSchema:
    """
    Field sets of all bundles an import can write to.

    Bundles planned by the document are registered up front; any other
    bundle is looked up in storage on first use and cached.
    """

    def __init__(self, storage: ContentStorage):
        self.storage = storage
        self._bundles: dict[str, BundleSchema | None] = {}

    def register(self, schema: BundleSchema) -> None:
        self._bundles[schema.qualified_name] = schema

    def get(self, kind: str, bundle: str) -> BundleSchema | None:
        """
        Effective schema of a bundle, or None if the bundle exists nowhere.

        Raises:
            Exception: Whatever the storage backend raises on lookup
        """
        key = f"{kind}.{bundle}"
        if key not in self._bundles:
            self._bundles[key] = self._load(kind, bundle)
        return self._bundles[key]

    def _load(self, kind: str, bundle: str) -> BundleSchema | None:
        if self.storage.get_bundle(kind, bundle) is None:
            return None
        fields = base_fields(kind)
        for definition in self.storage.list_fields(kind, bundle):
            fields[definition.name] = definition
        return BundleSchema(kind=kind, bundle=bundle, fields=fields)

    def __contains__(self, key: object) -> bool:
        return key in self._bundles and self._bundles[key] is not None


@dataclass
class SchemaPlan:
    """Schema operations in document order plus the resulting effective schema."""

    operations: list[SchemaOperation] = field(default_factory=list)
    effective: EffectiveSchema | None = None

    @property
    def changes(self) -> list[SchemaOperation]:
        return [op for op in self.operations if not op.noop]


class SchemaPlanner:
    """
    Plans additive schema operations for a document's ``model`` section.

    Example:
        planner = SchemaPlanner(storage, ctx)
        plan = planner.plan(document.model)
        for op in plan.operations:
            print(op.describe())
    """

    def __init__(self, storage: ContentStorage, ctx: ImportContext):
        self.storage = storage
        self.ctx = ctx

    def plan(self, entries: list[ModelEntry]) -> SchemaPlan:
        """
        Plan schema operations for bundle definitions, in document order.

        Args:
            entries: Bundle definitions from the document

        Returns:
            SchemaPlan with operations and effective schema
        """
        effective = EffectiveSchema(self.storage)
        plan = SchemaPlan(effective=effective)

        for entry in entries:
            try:
                existing = self.storage.get_bundle(entry.entity.value, entry.bundle)
                stored = (
                    self.storage.list_fields(entry.entity.value, entry.bundle) if existing else []
                )
            except Exception as e:
                self.ctx.warn(storage_warning(f"look up bundle {entry.qualified_name}", e, entry.qualified_name))
                continue

            operations, schema = self._plan_entry(entry, existing, stored)
            plan.operations.extend(operations)
            effective.register(schema)

        logger.debug(
            "Planned %d schema operations (%d changes) for %d bundles",
            len(plan.operations),
            len(plan.changes),
            len(entries),
        )
        return plan

    def _plan_entry(
        self,
        entry: ModelEntry,
        existing: BundleInfo | None,
        stored: list[FieldDefinition],
    ) -> tuple[list[SchemaOperation], BundleSchema]:
        kind = entry.entity.value
        operations: list[SchemaOperation] = []

        fields = base_fields(kind)
        for definition in stored:
            fields[definition.name] = definition
        schema = BundleSchema(kind=kind, bundle=entry.bundle, fields=fields)

        if existing is None:
            operations.append(
                SchemaOperation(
                    action=SchemaAction.CREATE_BUNDLE,
                    entity_kind=kind,
                    bundle=entry.bundle,
                    label=entry.label,
                    description=entry.description,
                )
            )
        else:
            operations.append(
                SchemaOperation(
                    action=SchemaAction.UPDATE_BUNDLE,
                    entity_kind=kind,
                    bundle=entry.bundle,
                    label=entry.label,
                    description=entry.description,
                    noop=(
                        existing.label == entry.label
                        and existing.description == entry.description
                    ),
                )
            )

        want_body = entry.body
        claimed: dict[str, str] = {}
        for spec in entry.fields:
            name = machine_name(spec.id)
            if not name:
                self.ctx.warn(
                    ImportWarning(
                        WarningKind.GRAMMAR,
                        f"field id '{spec.id}' of {entry.qualified_name} has no usable machine name, skipped",
                        subject=entry.qualified_name,
                        field=spec.id,
                    )
                )
                continue
            if name in claimed:
                self.ctx.warn(
                    ImportWarning(
                        WarningKind.GRAMMAR,
                        f"field id '{spec.id}' of {entry.qualified_name} maps to machine name "
                        f"'{name}', already used by field id '{claimed[name]}', skipped",
                        subject=entry.qualified_name,
                        field=spec.id,
                    )
                )
                continue
            claimed[name] = spec.id
            if name == BODY_FIELD and kind == "node":
                want_body = True
                continue
            if is_reserved(name, kind):
                logger.debug("Field '%s' is a base field of %s, nothing to create", name, kind)
                continue

            try:
                parsed = parse_field_type(spec.type)
            except GrammarError as e:
                self.ctx.warn(grammar_warning(entry.qualified_name, spec.id, e))
                continue

            if name in schema.fields:
                current = schema.fields[name]
                if current.type != parsed:
                    logger.info(
                        "Field '%s' on %s already exists as %s, requested %s left unapplied",
                        name,
                        entry.qualified_name,
                        current.type.to_grammar(),
                        parsed.to_grammar(),
                    )
                continue

            definition = FieldDefinition(name=name, label=spec.label, type=parsed)
            operations.append(
                SchemaOperation(
                    action=SchemaAction.CREATE_FIELD,
                    entity_kind=kind,
                    bundle=entry.bundle,
                    field=definition,
                )
            )
            schema.fields[name] = definition

        if want_body and BODY_FIELD not in schema.fields:
            operations.append(
                SchemaOperation(
                    action=SchemaAction.ATTACH_BODY,
                    entity_kind=kind,
                    bundle=entry.bundle,
                )
            )
            schema.fields[BODY_FIELD] = BODY_DEFINITION

        return operations, schema
