"""
Coerced value types and entity references.

Raw JSON values from a content entry are mapped into a closed set of value
kinds (text, number, bool, list, reference), chosen from the field's parsed
type at coercion time. Storage backends receive the plain Python form from
``to_python()``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EntityRef(BaseModel):
    """
    Reference to an entity in storage, or a placeholder in preview mode.

    Attributes:
        kind: Entity kind ("node", "paragraph", "taxonomy_term")
        bundle: Bundle (or vocabulary for terms)
        id: Storage id; the symbolic id for placeholders
        revision_id: Revision id, set for revisioned kinds
        placeholder: True when nothing was persisted (preview)
    """

    kind: str
    bundle: str
    id: int | str
    revision_id: int | None = None
    placeholder: bool = False

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        """Render as ``kind:id``, or ``preview:<id>`` for placeholders."""
        if self.placeholder:
            return f"preview:{self.id}"
        return f"{self.kind}:{self.id}"

    def to_storage(self) -> dict[str, Any]:
        item: dict[str, Any] = {"target_id": self.id}
        if self.revision_id is not None:
            item["target_revision_id"] = self.revision_id
        return item


class TextValue(BaseModel):
    """
    String value, with an optional text format and extra attributes.

    Attributes such as ``alt`` (images), ``title`` (links) or ``end_value``
    (date ranges) travel alongside the main value.
    """

    kind: Literal["text"] = "text"
    value: str
    format: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)

    def to_python(self) -> Any:
        if self.format is None and not self.attributes:
            return self.value
        item: dict[str, Any] = {"value": self.value}
        if self.format is not None:
            item["format"] = self.format
        item.update(self.attributes)
        return item


class NumberValue(BaseModel):
    kind: Literal["number"] = "number"
    value: int | float

    def to_python(self) -> Any:
        return self.value


class BoolValue(BaseModel):
    kind: Literal["bool"] = "bool"
    value: bool

    def to_python(self) -> Any:
        return self.value


class ListValue(BaseModel):
    """Values of a multivalued field, in document order."""

    kind: Literal["list"] = "list"
    items: list[CoercedValue] = Field(default_factory=list)

    def to_python(self) -> Any:
        return [item.to_python() for item in self.items]


class ReferenceValue(BaseModel):
    """Resolved reference targets of one field."""

    kind: Literal["reference"] = "reference"
    targets: list[EntityRef] = Field(default_factory=list)
    multivalued: bool = True

    def to_python(self) -> Any:
        items = [target.to_storage() for target in self.targets]
        if self.multivalued:
            return items
        return items[0] if items else None


CoercedValue = Annotated[
    TextValue | NumberValue | BoolValue | ListValue | ReferenceValue,
    Field(discriminator="kind"),
]

ListValue.model_rebuild()


def values_to_python(values: dict[str, CoercedValue]) -> dict[str, Any]:
    """Convert a coerced value mapping to the plain form storage backends accept."""
    return {name: value.to_python() for name, value in values.items()}
