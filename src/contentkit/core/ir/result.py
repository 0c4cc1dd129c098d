"""
Import result types.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreatedEntity(BaseModel):
    """A content item created (or, in preview, planned) by an import."""

    id: str
    persisted_ref: str = Field(alias="persistedRef")
    type: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ImportResult(BaseModel):
    """
    Outcome of one import call.

    Attributes:
        summary: One line per executed operation, in execution order
        warnings: One line per non-fatal problem
        created_entities: Content items created, in creation order
        success: False only when validation stopped the import before any operation
        preview: Whether the call ran in preview mode
        error: Validation message when ``success`` is False
    """

    summary: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    created_entities: list[CreatedEntity] = Field(default_factory=list, alias="createdEntities")
    success: bool = True
    preview: bool = False
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def created_map(self) -> dict[str, str]:
        """Symbolic id to rendered persisted reference."""
        return {entity.id: entity.persisted_ref for entity in self.created_entities}

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the external (camelCase) key names."""
        return self.model_dump(by_alias=True)
