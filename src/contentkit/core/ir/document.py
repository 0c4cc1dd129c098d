"""
Import document types.

These are the validated, typed form of the JSON document handed to an import:
bundle definitions under ``model`` and content items under ``content``.
They live for the duration of one import call.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_CONTENT_TYPE_RE = re.compile(r"^([a-z][a-z0-9_]*)\.([A-Za-z0-9_]+)$")


class EntityKind(StrEnum):
    """Entity kinds a bundle can belong to."""

    NODE = "node"
    PARAGRAPH = "paragraph"


class FieldSpec(BaseModel):
    """
    Declarative description of one bundle field.

    Attributes:
        id: Machine name, unique within the bundle
        label: Human-readable label (``name`` is accepted as an alias)
        type: Field type grammar string, e.g. ``term(tags)[]``. Kept as
            given; the schema planner parses it and skips the field alone
            when it is not valid grammar.
    """

    id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: Any

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def accept_name_as_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and "label" not in data and "name" in data:
            data = {**data, "label": data["name"]}
        return data


class ModelEntry(BaseModel):
    """
    A bundle definition.

    Attributes:
        bundle: Bundle machine name, unique per entity kind
        label: Human-readable bundle label
        description: Optional description
        entity: Entity kind the bundle belongs to
        body: Attach the standard rich-text body field
        fields: Field definitions, in creation order
    """

    bundle: str
    label: str
    description: str = ""
    entity: EntityKind = EntityKind.NODE
    body: bool = False
    fields: list[FieldSpec] = Field(default_factory=list)

    @field_validator("bundle", "label")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def none_description(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("fields")
    @classmethod
    def unique_field_ids(cls, v: list[FieldSpec]) -> list[FieldSpec]:
        seen: set[str] = set()
        for spec in v:
            if spec.id in seen:
                raise ValueError(f"duplicate field id '{spec.id}'")
            seen.add(spec.id)
        return v

    @property
    def qualified_name(self) -> str:
        return f"{self.entity.value}.{self.bundle}"


class ContentEntry(BaseModel):
    """
    A content item to create.

    Attributes:
        id: Symbolic id, unique within the document, referenced as ``@id``
        type: Target as ``"<kind>.<bundle>"``
        path: Optional URL alias
        values: Field values keyed by field id
    """

    id: str = Field(min_length=1)
    type: str
    path: str | None = None
    values: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def kind_dot_bundle(cls, v: str) -> str:
        match = _CONTENT_TYPE_RE.match(v)
        if not match:
            raise ValueError(f"'{v}' is not of the form '<kind>.<bundle>'")
        if match.group(1) not in {k.value for k in EntityKind}:
            raise ValueError(f"unsupported entity kind '{match.group(1)}'")
        return v

    @field_validator("values", mode="before")
    @classmethod
    def none_values(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def entity_kind(self) -> str:
        return self.type.split(".", 1)[0]

    @property
    def bundle(self) -> str:
        return self.type.split(".", 1)[1]


class ImportDocument(BaseModel):
    """
    A complete import document.

    ``model`` may be a list of bundle definitions, or an object keyed by
    entity kind (``{"node": [...], "paragraph": [...]}``) in which case each
    entry takes its kind from the key.
    """

    model: list[ModelEntry] = Field(default_factory=list)
    content: list[ContentEntry] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_keyed_model(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        model = data.get("model")
        if isinstance(model, dict) and any(k.value in model for k in EntityKind):
            flat: list[Any] = []
            for kind in EntityKind:
                for entry in model.get(kind.value) or []:
                    if isinstance(entry, dict):
                        entry = {**entry, "entity": kind.value}
                    flat.append(entry)
            data = {**data, "model": flat}
        for key in ("model", "content"):
            if key in data and data[key] is None:
                data = {**data, key: []}
        return data

    @model_validator(mode="after")
    def check_document(self) -> ImportDocument:
        if not self.model and not self.content:
            raise ValueError("document must contain a non-empty 'model' or 'content' array")

        bundles: set[str] = set()
        for entry in self.model:
            if entry.qualified_name in bundles:
                raise ValueError(f"bundle '{entry.qualified_name}' is defined more than once")
            bundles.add(entry.qualified_name)

        ids: set[str] = set()
        for item in self.content:
            if item.id in ids:
                raise ValueError(f"duplicate content id '{item.id}'")
            ids.add(item.id)
        return self
