"""
Import plan types.

A plan is an ordered list of schema operations followed by an ordered list
of content operations. Each operation describes one storage call and knows
how to phrase itself as a summary line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .fields import FieldDefinition
from .values import CoercedValue, EntityRef


class SchemaAction(StrEnum):
    """Kinds of schema operations. All of them are additive."""

    CREATE_BUNDLE = "create_bundle"
    UPDATE_BUNDLE = "update_bundle"
    CREATE_FIELD = "create_field"
    ATTACH_BODY = "attach_body"


@dataclass
class SchemaOperation:
    """
    A single schema change.

    Attributes:
        action: What to do
        entity_kind: Entity kind of the bundle
        bundle: Bundle machine name
        label: Bundle label (create/update bundle)
        description: Bundle description (create/update bundle)
        field: Field to create (create field)
        noop: The operation changes nothing and makes no storage call
    """

    action: SchemaAction
    entity_kind: str
    bundle: str
    label: str = ""
    description: str = ""
    field: FieldDefinition | None = None
    noop: bool = False

    @property
    def qualified_bundle(self) -> str:
        return f"{self.entity_kind}.{self.bundle}"

    def describe(self) -> str:
        """Summary line for this operation."""
        if self.action == SchemaAction.CREATE_BUNDLE:
            return f"Create {self.entity_kind} bundle '{self.bundle}' ({self.label})"
        if self.action == SchemaAction.UPDATE_BUNDLE:
            if self.noop:
                return f"Keep {self.entity_kind} bundle '{self.bundle}' ({self.label}), already up to date"
            return f"Update {self.entity_kind} bundle '{self.bundle}' label to '{self.label}'"
        if self.action == SchemaAction.CREATE_FIELD and self.field is not None:
            return (
                f"Create field '{self.field.name}' ({self.field.type.to_grammar()}) "
                f"on {self.qualified_bundle}"
            )
        return f"Attach body field to {self.qualified_bundle}"


@dataclass
class CreateContentOperation:
    """
    First-pass creation of one content item, without reference values.

    Attributes:
        content_id: Symbolic id from the document
        entity_kind: Entity kind
        bundle: Bundle machine name
        values: Coerced non-reference values
        path: URL alias to assign after creation
        embedded_in: Symbolic id of the item this one was embedded in, if any
    """

    content_id: str
    entity_kind: str
    bundle: str
    values: dict[str, CoercedValue] = field(default_factory=dict)
    path: str | None = None
    embedded_in: str | None = None

    @property
    def type(self) -> str:
        return f"{self.entity_kind}.{self.bundle}"

    def describe(self, ref: EntityRef | None = None) -> str:
        line = f"Create {self.type} '{self.content_id}'"
        if self.embedded_in is not None:
            line += f" in '{self.embedded_in}'"
        if ref is not None:
            line += f" -> {ref.render()}"
        return line


@dataclass
class SetReferencesOperation:
    """
    Second-pass write of one reference-typed field on an already created item.

    Attributes:
        content_id: Symbolic id of the item being updated
        target: Entity created for the item in the first pass
        field: Field machine name
        references: Resolved targets, as (token, entity) pairs in document order
        vocabulary: Vocabulary for taxonomy fields
        term_names: Plain term names to look up or create in ``vocabulary``
        multivalued: Whether the field holds a list
    """

    content_id: str
    target: EntityRef
    field: str
    references: list[tuple[str, EntityRef]] = field(default_factory=list)
    vocabulary: str | None = None
    term_names: list[str] = field(default_factory=list)
    multivalued: bool = True

    @property
    def tokens(self) -> list[str]:
        return [token for token, _ in self.references]

    def describe(self, targets: list[EntityRef] | None = None) -> str:
        labels = self.tokens + [f"term '{name}'" for name in self.term_names]
        line = f"Set '{self.field}' on '{self.content_id}' to [{', '.join(labels)}]"
        if targets:
            line += f" -> [{', '.join(t.render() for t in targets)}]"
        return line


ContentOperation = CreateContentOperation | SetReferencesOperation


@dataclass
class ImportPlan:
    """
    Ordered operations of one import call.

    Attributes:
        schema_operations: Bundle and field operations, document order
        content_operations: Content creation (pass 1) then reference writes (pass 2)
    """

    schema_operations: list[SchemaOperation] = field(default_factory=list)
    content_operations: list[ContentOperation] = field(default_factory=list)

    @property
    def operation_count(self) -> int:
        return len(self.schema_operations) + len(self.content_operations)
