"""
Field type definitions for the import IR.

This module contains the parsed field type produced by the grammar parser,
and the stored field/bundle descriptions exchanged with storage backends.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_STRING_LENGTH = 255


class FieldKind(StrEnum):
    """Enumeration of supported base field kinds."""

    TEXT = "text"
    LONG_TEXT = "long_text"
    RICH_TEXT = "rich_text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    EMAIL = "email"
    PHONE = "phone"
    LINK = "link"
    IMAGE = "image"
    FILE = "file"
    DATETIME = "datetime"
    DATERANGE = "daterange"
    # Reference kinds: values are resolved in the second content pass
    TAXONOMY_REFERENCE = "taxonomy_reference"
    PARAGRAPH_REFERENCE = "paragraph_reference"
    REFERENCE = "reference"


REFERENCE_KINDS = frozenset(
    {FieldKind.TAXONOMY_REFERENCE, FieldKind.PARAGRAPH_REFERENCE, FieldKind.REFERENCE}
)


class ParsedFieldType(BaseModel):
    """
    Structured form of a field type grammar string.

    Examples:
        - string: ParsedFieldType(base_kind=TEXT)
        - string(80)!: ParsedFieldType(base_kind=TEXT, max_length=80, required=True)
        - term(tags)[]: ParsedFieldType(base_kind=TAXONOMY_REFERENCE, target="tags", multivalued=True)
        - paragraph(hero)![]: ParsedFieldType(base_kind=PARAGRAPH_REFERENCE, target="hero", required=True, multivalued=True)
        - ref(node:blog_post): ParsedFieldType(base_kind=REFERENCE, target_kind="node", target="blog_post")
    """

    base_kind: FieldKind
    required: bool = False
    multivalued: bool = False
    target: str | None = None  # vocabulary, paragraph bundle or referenced bundle
    target_kind: str | None = None  # entity kind for generic references
    max_length: int | None = None  # for text
    date_only: bool = False  # for datetime declared as "date"

    model_config = ConfigDict(frozen=True)

    @property
    def is_reference(self) -> bool:
        """Check if values of this type are resolved in the reference pass."""
        return self.base_kind in REFERENCE_KINDS

    def to_grammar(self) -> str:
        """
        Render the canonical grammar string for this type.

        The result parses back to an equal ``ParsedFieldType``.
        """
        kind = self.base_kind
        if kind == FieldKind.TEXT:
            if self.max_length and self.max_length != DEFAULT_STRING_LENGTH:
                base = f"string({self.max_length})"
            else:
                base = "string"
        elif kind == FieldKind.DATETIME:
            base = "date" if self.date_only else "datetime"
        elif kind == FieldKind.TAXONOMY_REFERENCE:
            base = f"term({self.target})"
        elif kind == FieldKind.PARAGRAPH_REFERENCE:
            base = f"paragraph({self.target})"
        elif kind == FieldKind.REFERENCE:
            arg = self.target_kind or "node"
            if self.target:
                arg = f"{arg}:{self.target}"
            base = f"ref({arg})"
        else:
            base = _CANONICAL_TOKENS[kind]

        if self.required:
            base += "!"
        if self.multivalued:
            base += "[]"
        return base


_CANONICAL_TOKENS: dict[FieldKind, str] = {
    FieldKind.LONG_TEXT: "text",
    FieldKind.RICH_TEXT: "rich",
    FieldKind.INTEGER: "int",
    FieldKind.DECIMAL: "number",
    FieldKind.BOOLEAN: "bool",
    FieldKind.EMAIL: "email",
    FieldKind.PHONE: "phone",
    FieldKind.LINK: "link",
    FieldKind.IMAGE: "image",
    FieldKind.FILE: "file",
    FieldKind.DATERANGE: "daterange",
}


class FieldDefinition(BaseModel):
    """
    A field as stored on a bundle.

    Attributes:
        name: Machine name of the field
        label: Human-readable label
        type: Parsed field type
    """

    name: str
    label: str
    type: ParsedFieldType

    model_config = ConfigDict(frozen=True)

    @property
    def is_required(self) -> bool:
        return self.type.required


class BundleInfo(BaseModel):
    """A bundle as stored in the repository."""

    kind: str
    bundle: str
    label: str
    description: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def qualified_name(self) -> str:
        return f"{self.kind}.{self.bundle}"


class BundleSchema(BaseModel):
    """
    Effective field set of one bundle: stored fields merged with planned ones.

    Used by the content planner to coerce values, in apply and preview mode alike.
    """

    kind: str
    bundle: str
    fields: dict[str, FieldDefinition] = Field(default_factory=dict)

    @property
    def qualified_name(self) -> str:
        return f"{self.kind}.{self.bundle}"

    def get_field(self, name: str) -> FieldDefinition | None:
        return self.fields.get(name)
