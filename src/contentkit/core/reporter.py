"""
Result reporter: packages an import context into an ``ImportResult``.
"""

from __future__ import annotations

from .context import ImportContext
from .errors import ValidationError
from .ir import ImportResult


def build_result(ctx: ImportContext) -> ImportResult:
    """
    Build the result of a call that got past validation.

    Such a call is successful even with warnings: whatever was applied is
    real and is reported, not hidden.
    """
    return ImportResult(
        summary=list(ctx.summary),
        warnings=[warning.render() for warning in ctx.warnings],
        created_entities=list(ctx.created),
        success=True,
        preview=ctx.preview,
    )


def failed_result(error: ValidationError, preview: bool = False) -> ImportResult:
    """Build the result of a call rejected before any operation ran."""
    return ImportResult(success=False, preview=preview, error=str(error))
