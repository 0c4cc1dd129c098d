"""
Unit tests for the SQLite storage backend.
"""

import pytest

from contentkit import import_content
from contentkit.core.errors import StorageError
from contentkit.core.grammar import parse_field_type
from contentkit.core.ir import EntityRef, FieldDefinition
from contentkit.storage import TERM_KIND, ContentStorage, SQLiteStorage


@pytest.fixture
def db(tmp_path) -> SQLiteStorage:
    return SQLiteStorage(tmp_path / "content.db")


def _field(name: str, type_string: str) -> FieldDefinition:
    return FieldDefinition(name=name, label=name.title(), type=parse_field_type(type_string))


class TestSchemaStorage:
    """Tests for bundles and field definitions."""

    def test_satisfies_protocol(self, db):
        assert isinstance(db, ContentStorage)

    def test_bundle_round_trip(self, db):
        db.create_bundle("node", "event", "Event", "Things that happen")

        info = db.get_bundle("node", "event")
        assert info.label == "Event"
        assert info.description == "Things that happen"
        assert db.get_bundle("node", "missing") is None

    def test_duplicate_bundle(self, db):
        db.create_bundle("node", "event", "Event")
        with pytest.raises(StorageError, match="already exists"):
            db.create_bundle("node", "event", "Event")

    def test_update_missing_bundle(self, db):
        with pytest.raises(StorageError, match="does not exist"):
            db.update_bundle("node", "ghost", "Ghost")

    def test_fields_keep_order_and_type(self, db):
        db.create_bundle("node", "event", "Event")
        db.create_field("node", "event", _field("tags", "term(topics)![]"))
        db.create_field("node", "event", _field("starts", "date"))

        fields = db.list_fields("node", "event")

        assert [f.name for f in fields] == ["tags", "starts"]
        assert fields[0].type == parse_field_type("term(topics)[]!")
        assert fields[1].type.date_only

    def test_field_on_missing_bundle(self, db):
        with pytest.raises(StorageError, match="does not exist"):
            db.create_field("node", "ghost", _field("x", "int"))

    def test_base_field_rejected(self, db):
        db.create_bundle("node", "event", "Event")
        with pytest.raises(StorageError, match="already exists"):
            db.create_field("node", "event", _field("title", "string"))

    def test_attach_body_twice(self, db):
        db.create_bundle("node", "page", "Page")
        db.attach_body_field("node", "page")
        db.attach_body_field("node", "page")

        assert [f.name for f in db.list_fields("node", "page")] == ["body"]

    def test_list_bundles(self, db):
        db.create_bundle("paragraph", "quote", "Quote")
        db.create_bundle("node", "page", "Page")

        assert [b.qualified_name for b in db.list_bundles()] == ["node.page", "paragraph.quote"]


class TestContentStorage:
    """Tests for entities, aliases and terms."""

    @pytest.fixture
    def schema(self, db):
        db.create_bundle("node", "event", "Event")
        db.create_field("node", "event", _field("location", "string"))
        db.create_bundle("paragraph", "detail", "Detail")
        return db

    def test_create_and_read(self, schema):
        ref = schema.create_entity("node", "event", {"title": "Launch", "location": "Hall"})

        assert ref.kind == "node"
        assert ref.revision_id is None
        assert schema.get_values(ref) == {"title": "Launch", "location": "Hall"}

    def test_paragraphs_have_revisions(self, schema):
        ref = schema.create_entity("paragraph", "detail", {})
        assert ref.revision_id == ref.id

    def test_unknown_field_rejected(self, schema):
        with pytest.raises(StorageError, match="has no field"):
            schema.create_entity("node", "event", {"colour": "red"})

    def test_set_fields_merges(self, schema):
        ref = schema.create_entity("node", "event", {"title": "Launch"})
        schema.set_fields(ref, {"location": "Hall"})

        assert schema.get_values(ref) == {"title": "Launch", "location": "Hall"}

    def test_alias_conflict(self, schema):
        first = schema.create_entity("node", "event", {})
        second = schema.create_entity("node", "event", {})
        schema.set_alias(first, "events/launch")

        assert schema.resolve_alias("/events/launch") == first
        with pytest.raises(StorageError, match="already used"):
            schema.set_alias(second, "/events/launch/")

    def test_terms_deduplicated(self, schema):
        news = schema.ensure_term("tags", "news")

        assert news.kind == TERM_KIND
        assert schema.ensure_term("tags", "news") == news
        assert schema.ensure_term("topics", "news") != news

    def test_placeholder_rejected(self, schema):
        placeholder = EntityRef(kind="node", bundle="event", id="e1", placeholder=True)
        with pytest.raises(StorageError, match="not a persisted entity"):
            schema.set_fields(placeholder, {"location": "x"})


class TestImportIntoSQLite:
    """Tests for a full import persisted across storage instances."""

    def test_import_and_reopen(self, tmp_path, blog_document):
        path = tmp_path / "site.db"
        result = import_content(blog_document, SQLiteStorage(path))
        assert result.success

        reopened = SQLiteStorage(path)
        post = reopened.resolve_alias("/blog/hello")
        values = reopened.get_values(post)
        assert values["title"] == "Hello"
        assert values["tags"][0]["target_id"] == reopened.find_entities(TERM_KIND)[0].id

    def test_second_import_changes_no_schema(self, tmp_path, blog_document):
        path = tmp_path / "site.db"
        import_content({"model": blog_document["model"]}, SQLiteStorage(path))

        result = import_content({"model": blog_document["model"]}, SQLiteStorage(path))

        assert all(line.startswith("Keep ") for line in result.summary)
