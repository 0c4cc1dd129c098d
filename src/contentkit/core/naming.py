"""
Machine-name rules and reserved base fields.

Field ids from documents are normalised to storage machine names, and a few
ids name base fields every node already has. Those never get a field
definition of their own.
"""

from __future__ import annotations

import re

from .ir import EntityKind, FieldDefinition, FieldKind, ParsedFieldType

BODY_FIELD = "body"
TITLE_FIELD = "title"
DEFAULT_TITLE = "Untitled"

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_INVALID_CHARS = re.compile(r"[^a-z0-9_]")
_UNDERSCORES = re.compile(r"_+")

# Base fields present on every node, keyed by machine name
_NODE_BASE_FIELDS: dict[str, FieldDefinition] = {
    TITLE_FIELD: FieldDefinition(
        name=TITLE_FIELD, label="Title", type=ParsedFieldType(base_kind=FieldKind.TEXT, max_length=255)
    ),
    "status": FieldDefinition(
        name="status", label="Published", type=ParsedFieldType(base_kind=FieldKind.BOOLEAN)
    ),
    "promote": FieldDefinition(
        name="promote", label="Promoted", type=ParsedFieldType(base_kind=FieldKind.BOOLEAN)
    ),
    "sticky": FieldDefinition(
        name="sticky", label="Sticky", type=ParsedFieldType(base_kind=FieldKind.BOOLEAN)
    ),
    "created": FieldDefinition(
        name="created", label="Authored on", type=ParsedFieldType(base_kind=FieldKind.DATETIME)
    ),
    "changed": FieldDefinition(
        name="changed", label="Changed", type=ParsedFieldType(base_kind=FieldKind.DATETIME)
    ),
    "uid": FieldDefinition(
        name="uid", label="Authored by", type=ParsedFieldType(base_kind=FieldKind.INTEGER)
    ),
}

BODY_DEFINITION = FieldDefinition(
    name=BODY_FIELD, label="Body", type=ParsedFieldType(base_kind=FieldKind.RICH_TEXT)
)


def machine_name(field_id: str) -> str:
    """
    Normalise a field id to a storage machine name.

    camelCase becomes snake_case, invalid characters become underscores,
    runs of underscores collapse, and a leading digit gets an underscore.

    Examples:
        >>> machine_name("heroImage")
        'hero_image'
        >>> machine_name("Event Date")
        'event_date'
    """
    name = _CAMEL_BOUNDARY.sub(r"\1_\2", field_id.strip()).lower()
    name = _INVALID_CHARS.sub("_", name)
    name = _UNDERSCORES.sub("_", name).strip("_")
    if name and name[0].isdigit():
        name = f"_{name}"
    return name


def base_fields(entity_kind: str) -> dict[str, FieldDefinition]:
    """Base fields of an entity kind (nodes only; paragraphs have none)."""
    if entity_kind == EntityKind.NODE:
        return dict(_NODE_BASE_FIELDS)
    return {}


def is_reserved(field_name: str, entity_kind: str) -> bool:
    """Check if a field id names a base field of the entity kind."""
    return field_name in base_fields(entity_kind)
