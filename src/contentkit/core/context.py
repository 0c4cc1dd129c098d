"""
Per-call import context.

Threaded explicitly through planners and the executor; holds everything one
import call accumulates. Nothing here outlives the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import ImportWarning
from .ir import CreatedEntity, EntityRef, ImportPlan
from .resolver import SymbolTable

logger = logging.getLogger(__name__)

PREVIEW_PREFIX = "[preview] "


@dataclass
class ImportContext:
    """
    State of one import call.

    Attributes:
        preview: Compute the plan without mutating storage
        preview_prefix: Marker prepended to summary lines in preview mode
        symbols: Symbolic content id -> created entity
        plan: Operations planned so far, in execution order
        summary: One line per executed operation
        warnings: Non-fatal problems, in the order they were found
        created: Content items created, in creation order
    """

    preview: bool = False
    preview_prefix: str = PREVIEW_PREFIX
    symbols: SymbolTable = field(default_factory=SymbolTable)
    plan: ImportPlan = field(default_factory=ImportPlan)
    summary: list[str] = field(default_factory=list)
    warnings: list[ImportWarning] = field(default_factory=list)
    created: list[CreatedEntity] = field(default_factory=list)

    def record(self, line: str) -> None:
        """Add a summary line, tagged when previewing."""
        self.summary.append(f"{self.preview_prefix}{line}" if self.preview else line)

    def warn(self, warning: ImportWarning) -> None:
        logger.warning(warning.render())
        self.warnings.append(warning)

    def warn_all(self, warnings: list[ImportWarning]) -> None:
        for warning in warnings:
            self.warn(warning)

    def register(self, content_id: str, ref: EntityRef, content_type: str) -> None:
        """Bind a created entity to its symbolic id and list it as created."""
        self.symbols.add(content_id, ref, content_type)
        self.created.append(
            CreatedEntity(id=content_id, persisted_ref=ref.render(), type=content_type)
        )
