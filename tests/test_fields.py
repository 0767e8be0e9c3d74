"""Tests for field types, the field type registry and field storage."""

from decimal import Decimal

import pytest
import sqlalchemy as sa

from elementkit.domain.fields import Field
from elementkit.fieldtypes.base import FieldType
from elementkit.fieldtypes.lightswitch import LightswitchFieldType
from elementkit.fieldtypes.number import NumberFieldType
from elementkit.fieldtypes.plain_text import PlainTextFieldType
from elementkit.infra.exceptions import ConfigurationError, FieldTypeNotFoundError
from elementkit.infra.schema import CONTENT_TABLE
from elementkit.registries import create_field_type
from elementkit.registries.field_type_registry import (
    get_field_type_class,
    list_field_types,
    register_field_type,
    unregister_field_type,
)
from elementkit.services.elements import Elements


def column_names(db, table):
    return {column["name"] for column in sa.inspect(db.connection()).get_columns(table)}


class TestRegistry:
    def test_lookup_by_name_and_alias(self):
        assert get_field_type_class("PlainText") is PlainTextFieldType
        assert get_field_type_class("text") is PlainTextFieldType
        assert get_field_type_class("toggle") is LightswitchFieldType
        assert list_field_types() == ["PlainText", "Number", "Lightswitch", "Entries", "Matrix"]

    def test_unknown_name(self):
        with pytest.raises(FieldTypeNotFoundError, match="Unsupported field type: Color"):
            get_field_type_class("Color")

    def test_register_and_unregister(self):
        class ColorFieldType(FieldType):
            name = "Color"

        register_field_type(ColorFieldType)
        try:
            assert isinstance(create_field_type("color", default="#fff"), ColorFieldType)
            with pytest.raises(ValueError, match="already registered"):
                register_field_type(ColorFieldType)
        finally:
            unregister_field_type("Color")

        with pytest.raises(FieldTypeNotFoundError):
            unregister_field_type("Color")

    def test_nameless_class_is_rejected(self):
        class Nameless(FieldType):
            name = ""

        with pytest.raises(ValueError):
            register_field_type(Nameless)


class TestFieldTypes:
    def test_plain_text(self):
        text = PlainTextFieldType(max_length=5)
        assert isinstance(text.get_content_column_type(), sa.String)
        assert text.prep_value_for_db(42) == "42"
        assert text.validate("toolong") == ["must be no more than 5 characters"]
        assert isinstance(PlainTextFieldType().get_content_column_type(), sa.Text)

    def test_number(self):
        number = NumberFieldType(min=0, max=10)
        assert isinstance(number.get_content_column_type(), sa.Integer)
        assert number.prep_value_for_db("7") == 7
        assert number.prep_value_for_db("") is None
        assert number.validate(11) == ["must be no greater than 10"]
        assert number.validate(-1) == ["must be no less than 0"]
        assert number.validate("seven") == ["must be a number"]
        assert number.validate(5) == []

    def test_number_with_decimals(self):
        price = NumberFieldType(decimals=2)
        assert isinstance(price.get_content_column_type(), sa.Numeric)
        assert price.prep_value_for_db("1.239") == Decimal("1.24")

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), ("on", True), ("1", True), ("false", False), ("Off", False), ("", False), (0, False)],
    )
    def test_lightswitch_values(self, value, expected):
        assert LightswitchFieldType().prep_value_for_db(value) is expected

    def test_lightswitch_default(self):
        assert LightswitchFieldType(default=True).prep_value_for_db(None) is True
        assert LightswitchFieldType().get_search_keywords(True) == ""

    def test_unbound_field_type(self):
        with pytest.raises(RuntimeError, match="not bound"):
            PlainTextFieldType()._handle()


class TestFieldStorage:
    def test_create_field_adds_a_column(self, db, elements):
        field = elements.fields.create_field("subtitle", "Subtitle", max_length=80)

        assert field.id is not None
        assert "field_subtitle" in column_names(db, CONTENT_TABLE)
        assert elements.fields.get_field_by_handle("subtitle") is field
        assert elements.fields.get_field_by_id(field.id) is field

    def test_relation_fields_have_no_column(self, db, site):
        assert "field_related" not in column_names(db, CONTENT_TABLE)
        assert "field_blocks" not in column_names(db, CONTENT_TABLE)

    def test_fields_reload_from_the_database(self, db, site):
        fresh = Elements(db)
        count = fresh.fields.get_field_by_handle("count")
        assert isinstance(count.field_type, NumberFieldType)
        assert count.field_type.settings == {"min": 0, "max": 100}
        assert not count.translatable

    def test_relation_field_ids(self, elements, site):
        ids = elements.fields.get_relation_field_ids(["related", str(site.body.id), site.count, "nope"])
        assert ids == [site.related.id, site.body.id, site.count.id]

    def test_layouts(self, elements, site):
        layout = elements.fields.get_layout_by_type("Entry")
        assert layout is site.layout
        assert [lf.field.handle for lf in layout.get_fields()] == ["body", "count", "featured", "related", "blocks"]
        assert layout.get_required_fields() == []

    def test_layout_needs_saved_fields(self, elements):
        unsaved = Field(handle="draft", name="Draft", field_type=create_field_type("PlainText"))
        with pytest.raises(ConfigurationError, match="must be saved"):
            elements.fields.create_layout([unsaved])


class TestMatrixBlockTypes:
    def test_block_fields_live_in_the_matrix_table(self, db, elements, site):
        assert "field_text_body" in column_names(db, "matrixcontent_blocks")
        assert elements.fields.content_table_for_field(site.text_block.fields[0]) == "matrixcontent_blocks"
        assert elements.fields.get_field_by_handle("body") is site.body

    def test_two_block_types_share_a_handle(self, db, elements, site):
        elements.matrix.save_block_type(
            site.blocks,
            "quote",
            "Quote",
            [Field(handle="body", name="Quote", field_type=create_field_type("PlainText"))],
        )

        assert {"field_text_body", "field_quote_body"} <= column_names(db, "matrixcontent_blocks")
        handles = [block_type.handle for block_type in elements.matrix.get_block_types(site.blocks.id)]
        assert handles == ["text", "quote"]

    def test_matrix_field_must_be_saved(self, elements):
        unsaved = Field(handle="extra", name="Extra", field_type=create_field_type("Matrix"))
        with pytest.raises(ConfigurationError):
            elements.matrix.save_block_type(unsaved, "text")


class TestRelationFields:
    def test_targets_keep_their_order(self, elements, site, create_entry):
        alpha = create_entry("Alpha")
        beta = create_entry("Beta")
        source = create_entry("Source", fields={"related": [beta.id, alpha, beta.id]})

        assert elements.relations.get_target_ids(site.related, source.id) == [beta.id, alpha.id]
        assert elements.relations.get_target_ids(site.related, source.id, locale="en") == [beta.id, alpha.id]
        assert elements.relations.get_target_ids(site.related, alpha.id) == []
