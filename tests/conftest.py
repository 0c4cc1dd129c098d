"""Shared pytest fixtures for contentkit tests."""

from __future__ import annotations

from typing import Any

import pytest

from contentkit.core.context import ImportContext
from contentkit.core.grammar import parse_field_type
from contentkit.core.ir import EntityRef, FieldDefinition
from contentkit.storage import InMemoryStorage


class RecordingStorage(InMemoryStorage):
    """In-memory storage that records every mutating call by method name."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def create_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        self.calls.append(("create_bundle", (kind, bundle)))
        super().create_bundle(kind, bundle, label, description)

    def update_bundle(self, kind: str, bundle: str, label: str, description: str = "") -> None:
        self.calls.append(("update_bundle", (kind, bundle)))
        super().update_bundle(kind, bundle, label, description)

    def create_field(self, kind: str, bundle: str, field: FieldDefinition) -> None:
        self.calls.append(("create_field", (kind, bundle, field.name)))
        super().create_field(kind, bundle, field)

    def attach_body_field(self, kind: str, bundle: str) -> None:
        self.calls.append(("attach_body_field", (kind, bundle)))
        super().attach_body_field(kind, bundle)

    def create_entity(self, kind: str, bundle: str, values: dict[str, Any]) -> EntityRef:
        self.calls.append(("create_entity", (kind, bundle)))
        return super().create_entity(kind, bundle, values)

    def set_fields(self, ref: EntityRef, values: dict[str, Any]) -> None:
        self.calls.append(("set_fields", (ref.render(), tuple(values))))
        super().set_fields(ref, values)

    def set_alias(self, ref: EntityRef, path: str) -> None:
        self.calls.append(("set_alias", (ref.render(), path)))
        super().set_alias(ref, path)

    def ensure_term(self, vocabulary: str, name: str) -> EntityRef:
        self.calls.append(("ensure_term", (vocabulary, name)))
        return super().ensure_term(vocabulary, name)

    def mutations(self, method: str | None = None) -> list[tuple[str, tuple[Any, ...]]]:
        return [call for call in self.calls if method is None or call[0] == method]


def define_field(name: str, type_string: str, label: str | None = None) -> FieldDefinition:
    return FieldDefinition(name=name, label=label or name.title(), type=parse_field_type(type_string))


@pytest.fixture
def storage() -> InMemoryStorage:
    """Return an empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def recording_storage() -> RecordingStorage:
    """Return an empty in-memory storage that records mutating calls."""
    return RecordingStorage()


def build_event_storage() -> RecordingStorage:
    """
    Build a storage with an ``event`` node bundle and an ``event_detail``
    paragraph bundle already defined.
    """
    store = RecordingStorage()
    store.create_bundle("paragraph", "event_detail", "Event detail")
    store.create_field("paragraph", "event_detail", define_field("title", "string"))
    store.create_bundle("node", "event", "Event")
    store.create_field("node", "event", define_field("location", "string"))
    store.create_field("node", "event", define_field("details", "paragraph(event_detail)[]"))
    store.create_field("node", "event", define_field("related", "ref(node:event)"))
    store.calls.clear()
    return store


@pytest.fixture
def event_storage() -> RecordingStorage:
    """Return a storage with the event bundles already defined."""
    return build_event_storage()


@pytest.fixture
def event_storage_factory():
    """Return a callable building further independent event storages."""
    return build_event_storage


@pytest.fixture
def ctx() -> ImportContext:
    """Return a fresh apply-mode import context."""
    return ImportContext()


@pytest.fixture
def preview_ctx() -> ImportContext:
    """Return a fresh preview-mode import context."""
    return ImportContext(preview=True)


@pytest.fixture
def blog_document() -> dict[str, Any]:
    """Return a document with schema, cross-references, terms and aliases."""
    return {
        "model": [
            {
                "bundle": "author",
                "label": "Author",
                "fields": [
                    {"id": "email", "label": "Email", "type": "email!"},
                    {"id": "bio", "label": "Bio", "type": "text"},
                ],
            },
            {
                "bundle": "quote",
                "label": "Quote",
                "entity": "paragraph",
                "fields": [{"id": "text", "label": "Text", "type": "string!"}],
            },
            {
                "bundle": "article",
                "label": "Article",
                "description": "Long-form posts",
                "body": True,
                "fields": [
                    {"id": "author", "label": "Author", "type": "ref(node:author)!"},
                    {"id": "tags", "label": "Tags", "type": "term(tags)[]"},
                    {"id": "quotes", "label": "Quotes", "type": "paragraph(quote)[]"},
                    {"id": "publishedOn", "label": "Published on", "type": "date"},
                    {"id": "rating", "label": "Rating", "type": "int"},
                ],
            },
        ],
        "content": [
            {
                "id": "post",
                "type": "node.article",
                "path": "/blog/hello",
                "values": {
                    "title": "Hello",
                    "body": "<p>Hi</p>",
                    "author": "@ada",
                    "tags": ["news", "@missing"],
                    "quotes": ["@q1"],
                    "publishedOn": "2024-05-01T10:00:00Z",
                    "rating": "5",
                },
            },
            {"id": "q1", "type": "paragraph.quote", "values": {"text": "Brevity is wit"}},
            {
                "id": "ada",
                "type": "node.author",
                "values": {"title": "Ada", "email": "ada@example.com"},
            },
        ],
    }
