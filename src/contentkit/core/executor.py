"""
Plan executor.

Applies schema and content operations against storage one at a time, or,
in preview mode, walks the same operations without calling storage and
hands out placeholder references instead of persisted ones.

A failing storage call is logged, recorded as a warning, and execution
moves on to the next operation. Nothing already applied is rolled back.
"""

from __future__ import annotations

import logging

from contentkit.logging import log_with_context
from contentkit.storage.base import TERM_KIND, ContentStorage

from .context import ImportContext
from .errors import storage_warning
from .ir import (
    CreateContentOperation,
    EntityRef,
    ReferenceValue,
    SchemaAction,
    SchemaOperation,
    SetReferencesOperation,
    values_to_python,
)

logger = logging.getLogger(__name__)


class Executor:
    """
    Executes plan operations in order against a storage backend.

    Every executed operation is appended to the context's plan, and every
    successful one adds a summary line.
    """

    def __init__(self, storage: ContentStorage, ctx: ImportContext):
        self.storage = storage
        self.ctx = ctx

    @property
    def preview(self) -> bool:
        return self.ctx.preview

    def _fail(self, description: str, error: Exception, subject: str | None = None) -> None:
        log_with_context(
            logger,
            logging.ERROR,
            f"Storage operation failed: {description}",
            error=str(error),
            error_type=type(error).__name__,
            subject=subject,
        )
        self.ctx.warn(storage_warning(description, error, subject))

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def apply_schema(self, op: SchemaOperation) -> bool:
        """
        Execute one schema operation.

        Returns:
            True if the operation succeeded (or was previewed / a no-op)
        """
        self.ctx.plan.schema_operations.append(op)
        if op.noop or self.preview:
            self.ctx.record(op.describe())
            return True

        try:
            if op.action == SchemaAction.CREATE_BUNDLE:
                self.storage.create_bundle(op.entity_kind, op.bundle, op.label, op.description)
            elif op.action == SchemaAction.UPDATE_BUNDLE:
                self.storage.update_bundle(op.entity_kind, op.bundle, op.label, op.description)
            elif op.action == SchemaAction.CREATE_FIELD and op.field is not None:
                self.storage.create_field(op.entity_kind, op.bundle, op.field)
            elif op.action == SchemaAction.ATTACH_BODY:
                self.storage.attach_body_field(op.entity_kind, op.bundle)
        except Exception as e:
            self._fail(op.describe(), e, op.qualified_bundle)
            return False

        self.ctx.record(op.describe())
        return True

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def create_content(self, op: CreateContentOperation) -> EntityRef | None:
        """
        Execute a first-pass create operation and register the new entity.

        Returns:
            The persisted reference (a placeholder in preview), or None on failure
        """
        self.ctx.plan.content_operations.append(op)
        if self.preview:
            ref = EntityRef(
                kind=op.entity_kind, bundle=op.bundle, id=op.content_id, placeholder=True
            )
        else:
            try:
                ref = self.storage.create_entity(
                    op.entity_kind, op.bundle, values_to_python(op.values)
                )
            except Exception as e:
                self._fail(op.describe(), e, op.content_id)
                return None

        self.ctx.register(op.content_id, ref, op.type)
        self.ctx.record(op.describe(ref))

        if op.path:
            self._set_alias(op, ref)
        return ref

    def _set_alias(self, op: CreateContentOperation, ref: EntityRef) -> None:
        description = f"Set path alias '{op.path}' for '{op.content_id}'"
        if not self.preview:
            try:
                self.storage.set_alias(ref, op.path or "")
            except Exception as e:
                self._fail(description, e, op.content_id)
                return
        self.ctx.record(description)

    def set_references(self, op: SetReferencesOperation) -> bool:
        """
        Execute a second-pass reference write.

        Term names are looked up (or created) in the field's vocabulary first;
        a term that cannot be ensured is skipped with a warning.

        Returns:
            True if the field was written (or previewed)
        """
        self.ctx.plan.content_operations.append(op)

        targets = [ref for _, ref in op.references]
        for name in op.term_names:
            term = self._ensure_term(op, name)
            if term is not None:
                targets.append(term)
        if not targets:
            return False

        value = ReferenceValue(targets=targets, multivalued=op.multivalued)
        if not self.preview:
            try:
                self.storage.set_fields(op.target, {op.field: value.to_python()})
            except Exception as e:
                self._fail(op.describe(), e, op.content_id)
                return False

        self.ctx.record(op.describe(targets))
        return True

    def _ensure_term(self, op: SetReferencesOperation, name: str) -> EntityRef | None:
        vocabulary = op.vocabulary or "tags"
        if self.preview:
            return EntityRef(
                kind=TERM_KIND, bundle=vocabulary, id=f"{vocabulary}/{name}", placeholder=True
            )
        try:
            return self.storage.ensure_term(vocabulary, name)
        except Exception as e:
            self._fail(f"Ensure term '{name}' in vocabulary '{vocabulary}'", e, op.content_id)
            return None
