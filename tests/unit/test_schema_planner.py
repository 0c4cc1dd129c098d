"""
Unit tests for additive schema planning.
"""

import pytest

from contentkit.core.errors import WarningKind
from contentkit.core.grammar import parse_field_type
from contentkit.core.ir import FieldDefinition, ModelEntry, SchemaAction
from contentkit.core.naming import machine_name
from contentkit.core.schema_planner import SchemaPlanner


def define_field(name: str, type_string: str) -> FieldDefinition:
    return FieldDefinition(name=name, label=name.title(), type=parse_field_type(type_string))


def _entry(**kwargs) -> ModelEntry:
    data = {"bundle": "event", "label": "Event", **kwargs}
    return ModelEntry.model_validate(data)


class TestNewBundles:
    """Tests for bundles that do not exist yet."""

    def test_create_bundle_and_fields(self, storage, ctx):
        entry = _entry(fields=[{"id": "location", "label": "Location", "type": "string"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert [op.action for op in plan.operations] == [
            SchemaAction.CREATE_BUNDLE,
            SchemaAction.CREATE_FIELD,
        ]
        assert plan.operations[0].describe() == "Create node bundle 'event' (Event)"
        assert plan.operations[1].describe() == "Create field 'location' (string) on node.event"
        assert ctx.warnings == []

    def test_planning_does_not_touch_storage(self, recording_storage, ctx):
        SchemaPlanner(recording_storage, ctx).plan([_entry()])

        assert recording_storage.mutations() == []
        assert recording_storage.get_bundle("node", "event") is None

    def test_effective_schema_includes_planned_fields(self, storage, ctx):
        entry = _entry(fields=[{"id": "startsAt", "label": "Starts", "type": "datetime!"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])
        schema = plan.effective.get("node", "event")

        assert schema is not None
        assert "starts_at" in schema.fields
        assert schema.fields["starts_at"].is_required
        assert "title" in schema.fields

    def test_paragraph_bundle(self, storage, ctx):
        entry = _entry(bundle="quote", label="Quote", entity="paragraph")

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert plan.operations[0].describe() == "Create paragraph bundle 'quote' (Quote)"
        assert plan.effective.get("paragraph", "quote").fields == {}


class TestBodyField:
    """Tests for the standard body field."""

    def test_body_flag(self, storage, ctx):
        plan = SchemaPlanner(storage, ctx).plan([_entry(body=True)])

        assert plan.operations[-1].action == SchemaAction.ATTACH_BODY
        assert plan.operations[-1].describe() == "Attach body field to node.event"

    def test_body_field_id(self, storage, ctx):
        entry = _entry(fields=[{"id": "body", "label": "Body", "type": "rich"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        actions = [op.action for op in plan.operations]
        assert actions == [SchemaAction.CREATE_BUNDLE, SchemaAction.ATTACH_BODY]

    def test_body_not_reattached(self, storage, ctx):
        storage.create_bundle("node", "event", "Event")
        storage.attach_body_field("node", "event")

        plan = SchemaPlanner(storage, ctx).plan([_entry(body=True)])

        assert SchemaAction.ATTACH_BODY not in [op.action for op in plan.operations]


class TestExistingBundles:
    """Tests for diffing against stored bundles."""

    def test_unchanged_bundle_is_noop(self, storage, ctx):
        storage.create_bundle("node", "event", "Event")
        storage.create_field("node", "event", define_field("location", "string"))
        entry = _entry(fields=[{"id": "location", "label": "Location", "type": "string"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert len(plan.operations) == 1
        assert plan.operations[0].action == SchemaAction.UPDATE_BUNDLE
        assert plan.operations[0].noop
        assert plan.changes == []

    def test_label_change_updates_bundle(self, storage, ctx):
        storage.create_bundle("node", "event", "Event")

        plan = SchemaPlanner(storage, ctx).plan([_entry(label="Happening")])

        op = plan.operations[0]
        assert op.action == SchemaAction.UPDATE_BUNDLE
        assert not op.noop
        assert op.describe() == "Update node bundle 'event' label to 'Happening'"

    def test_only_missing_fields_created(self, storage, ctx):
        storage.create_bundle("node", "event", "Event")
        storage.create_field("node", "event", define_field("location", "string"))
        entry = _entry(
            fields=[
                {"id": "location", "label": "Location", "type": "string"},
                {"id": "capacity", "label": "Capacity", "type": "int"},
            ]
        )

        plan = SchemaPlanner(storage, ctx).plan([entry])

        created = [op.field.name for op in plan.changes if op.action == SchemaAction.CREATE_FIELD]
        assert created == ["capacity"]

    def test_existing_field_never_retyped(self, storage, ctx):
        storage.create_bundle("node", "event", "Event")
        storage.create_field("node", "event", define_field("capacity", "string"))
        entry = _entry(fields=[{"id": "capacity", "label": "Capacity", "type": "int"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert plan.changes == []
        effective = plan.effective.get("node", "event")
        assert effective.fields["capacity"].type.to_grammar() == "string"


class TestFieldProblems:
    """Tests for fields that cannot be planned."""

    def test_grammar_error_skips_field_only(self, storage, ctx):
        entry = _entry(
            bundle="x",
            label="X",
            fields=[
                {"id": "f", "label": "F", "type": "bogus_type"},
                {"id": "g", "label": "G", "type": "int"},
            ],
        )

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert [op.action for op in plan.operations] == [
            SchemaAction.CREATE_BUNDLE,
            SchemaAction.CREATE_FIELD,
        ]
        assert plan.operations[1].field.name == "g"
        assert len(ctx.warnings) == 1
        assert ctx.warnings[0].kind == WarningKind.GRAMMAR
        assert ctx.warnings[0].field == "f"
        assert "bogus_type" in ctx.warnings[0].render()

    @pytest.mark.parametrize(
        "type_value,message",
        [("", "empty field type"), ("   ", "empty field type"), (3, "must be a string"), (None, "must be a string")],
    )
    def test_unusable_type_value_skips_field_only(self, storage, ctx, type_value, message):
        entry = _entry(
            fields=[
                {"id": "f", "label": "F", "type": type_value},
                {"id": "g", "label": "G", "type": "int"},
            ]
        )

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert [op.field.name for op in plan.operations if op.field] == ["g"]
        assert len(ctx.warnings) == 1
        assert ctx.warnings[0].kind == WarningKind.GRAMMAR
        assert ctx.warnings[0].field == "f"
        assert message in ctx.warnings[0].render()

    def test_ids_with_same_machine_name(self, storage, ctx):
        entry = _entry(
            fields=[
                {"id": "heroImage", "label": "Hero", "type": "image"},
                {"id": "hero_image", "label": "Hero again", "type": "string"},
            ]
        )

        plan = SchemaPlanner(storage, ctx).plan([entry])

        created = [op.field for op in plan.operations if op.field]
        assert [(f.name, f.label) for f in created] == [("hero_image", "Hero")]
        assert len(ctx.warnings) == 1
        assert ctx.warnings[0].kind == WarningKind.GRAMMAR
        assert ctx.warnings[0].field == "hero_image"
        assert "already used by field id 'heroImage'" in ctx.warnings[0].render()

    def test_reserved_field_not_created(self, storage, ctx):
        entry = _entry(fields=[{"id": "title", "label": "Title", "type": "string"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert [op.action for op in plan.operations] == [SchemaAction.CREATE_BUNDLE]
        assert ctx.warnings == []

    def test_unusable_field_id(self, storage, ctx):
        entry = _entry(fields=[{"id": "***", "label": "Stars", "type": "int"}])

        plan = SchemaPlanner(storage, ctx).plan([entry])

        assert len(plan.operations) == 1
        assert ctx.warnings[0].kind == WarningKind.GRAMMAR

    def test_storage_lookup_failure_becomes_warning(self, ctx):
        class BrokenStorage:
            def get_bundle(self, kind, bundle):
                raise RuntimeError("database is locked")

        plan = SchemaPlanner(BrokenStorage(), ctx).plan([_entry()])

        assert plan.operations == []
        assert ctx.warnings[0].kind == WarningKind.STORAGE_OPERATION
        assert "database is locked" in ctx.warnings[0].render()


class TestMachineNames:
    """Tests for field id normalisation."""

    def test_camel_case(self):
        assert machine_name("heroImage") == "hero_image"

    def test_spaces_and_punctuation(self):
        assert machine_name("Event Date!") == "event_date"

    def test_leading_digit(self):
        assert machine_name("2nd_place") == "_2nd_place"

    def test_nothing_usable(self):
        assert machine_name("***") == ""
