"""
Content import orchestration.

One call validates the document, plans and applies schema operations, then
creates content in two passes: every entry, inline objects included, is created
without its references first, and reference fields are written once all
symbolic ids are known.

Usage:
    from contentkit import import_content
    from contentkit.storage import InMemoryStorage

    result = import_content(document, InMemoryStorage(), preview=True)
    for line in result.summary:
        print(line)
"""

from __future__ import annotations

import logging
from typing import Any

from contentkit.logging import log_with_context
from contentkit.storage.base import ContentStorage

from .content_planner import ContentPlanner
from .context import ImportContext
from .errors import ValidationError
from .executor import Executor
from .ir import ContentEntry, EntityRef, ImportDocument, ImportResult
from .loader import DocumentLoader
from .reporter import build_result, failed_result
from .schema_planner import EffectiveSchema, SchemaPlanner
from .settings import ImportSettings

logger = logging.getLogger(__name__)


class ContentImporter:
    """
    Imports content-model documents into a storage backend.

    The importer itself is stateless between calls: every call gets a fresh
    ``ImportContext``, so one instance can serve any number of imports.
    """

    def __init__(self, storage: ContentStorage, settings: ImportSettings | None = None):
        self.storage = storage
        self.settings = settings or ImportSettings()
        self.loader = DocumentLoader(self.settings)

    def import_document(self, document: Any, preview: bool = False) -> ImportResult:
        """
        Import (or preview) one document.

        Args:
            document: ``ImportDocument``, decoded JSON object, or JSON text
            preview: Plan and report without writing to storage

        Returns:
            ImportResult; ``success`` is False only if the document was rejected
        """
        try:
            parsed = self.loader.load(document)
        except ValidationError as e:
            log_with_context(logger, logging.ERROR, "Import document rejected", error=str(e))
            return failed_result(e, preview=preview)

        ctx = ImportContext(preview=preview, preview_prefix=self.settings.preview_prefix)
        self._run(parsed, ctx)

        result = build_result(ctx)
        log_with_context(
            logger,
            logging.INFO,
            f"Import {'previewed' if preview else 'applied'}",
            operations=ctx.plan.operation_count,
            created=len(result.created_entities),
            warnings=len(result.warnings),
        )
        return result

    def _run(self, document: ImportDocument, ctx: ImportContext) -> None:
        executor = Executor(self.storage, ctx)

        schema_plan = SchemaPlanner(self.storage, ctx).plan(document.model)
        for op in schema_plan.operations:
            executor.apply_schema(op)

        effective = schema_plan.effective or EffectiveSchema(self.storage)
        planner = ContentPlanner(effective, ctx)

        created: list[tuple[ContentEntry, EntityRef]] = []
        for queued in planner.expand(document.content):
            entry = queued.entry
            if queued.embedded_in is not None and queued.embedded_in not in ctx.symbols:
                logger.debug("Skipping '%s', its parent '%s' was not created", entry.id, queued.embedded_in)
                continue
            op = planner.plan_creation(entry, embedded_in=queued.embedded_in)
            if op is None:
                continue
            ref = executor.create_content(op)
            if ref is not None:
                created.append((entry, ref))

        for entry, ref in created:
            for ref_op in planner.plan_references(entry, ref):
                executor.set_references(ref_op)


def import_content(
    document: Any,
    storage: ContentStorage,
    preview: bool = False,
    settings: ImportSettings | None = None,
) -> ImportResult:
    """
    Import a content-model document.

    Args:
        document: ``ImportDocument``, decoded JSON object, or JSON text
        storage: Storage backend to plan against and write to
        preview: Plan and report without writing to storage
        settings: Import settings (defaults apply when omitted)

    Returns:
        ImportResult with summary lines, warnings and created entities
    """
    return ContentImporter(storage, settings).import_document(document, preview=preview)
