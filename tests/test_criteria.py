"""Tests for element criteria and the element/field type registries."""

import pytest

from elementkit.domain.criteria import ElementCriteria
from elementkit.elementtypes.base import BaseElementType
from elementkit.fieldtypes.plain_text import PlainTextFieldType
from elementkit.infra.exceptions import ConfigurationError, ElementTypeNotFoundError, FieldTypeNotFoundError
from elementkit.registries import (
    create_field_type,
    get_element_type_class,
    list_element_types,
    register_element_type,
    unregister_element_type,
)


class TestCriteria:
    def test_defaults(self):
        criteria = ElementCriteria(element_type="Entry")
        assert criteria.status == "enabled"
        assert criteria.locale_enabled is True
        assert criteria.archived is False
        assert criteria.limit == 100

    def test_set_routes_names(self, elements):
        criteria = elements.get_criteria("Entry")
        criteria.set(limit=5, section="news", body="Hello*")

        assert criteria.limit == 5
        assert criteria.params["section"] == "news"
        assert criteria.fields == {"body": "Hello*"}
        assert criteria.get("section") == "news"
        assert criteria.get("body") == "Hello*"

    def test_get_criteria_populates_type_params(self, elements):
        criteria = elements.get_criteria("entries", section="news")
        assert criteria.element_type == "Entry"
        assert set(criteria.params) >= {"section", "section_id", "author_id", "post_date"}

    def test_unknown_element_type(self, elements):
        with pytest.raises(ConfigurationError):
            elements.get_criteria("Widget")

    def test_copy_is_independent(self, elements):
        criteria = elements.get_criteria("Entry", section="news", body="x")
        duplicate = criteria.copy()
        duplicate.set(section="blog", body="y", limit=1)

        assert criteria.params["section"] == "news"
        assert criteria.fields["body"] == "x"
        assert criteria.limit == 100

    def test_unbound_criteria_cannot_run(self):
        with pytest.raises(RuntimeError):
            ElementCriteria(element_type="Entry").find()


class TestElementTypeRegistry:
    def test_aliases_resolve(self):
        assert get_element_type_class("entries").handle == "Entry"
        assert get_element_type_class("matrix-block").handle == "MatrixBlock"

    def test_unknown_type(self, elements):
        with pytest.raises(ElementTypeNotFoundError):
            get_element_type_class("Widget")
        # Callers handling configuration problems catch both lookups
        with pytest.raises(ConfigurationError):
            get_element_type_class("Widget")
        with pytest.raises(ConfigurationError):
            elements.element_types.require("Widget")

    def test_register_and_unregister(self, elements):
        class WidgetElementType(BaseElementType):
            handle = "Widget"
            content = False
            titles = False

        register_element_type(WidgetElementType)
        try:
            assert "Widget" in list_element_types()
            assert elements.get_element_type("widget").has_content() is False
            with pytest.raises(ValueError):
                register_element_type(WidgetElementType)
        finally:
            unregister_element_type("Widget")

        assert "Widget" not in list_element_types()

    def test_all_types_are_bound_to_the_facade(self, elements):
        handles = [element_type.get_class_handle() for element_type in elements.get_all_element_types()]
        assert handles == ["Entry", "Category", "User", "MatrixBlock"]
        assert all(t.elements is elements for t in elements.get_all_element_types())


class TestFieldTypeRegistry:
    def test_create_by_alias_with_settings(self):
        field_type = create_field_type("text", max_length=20)
        assert isinstance(field_type, PlainTextFieldType)
        assert field_type.settings == {"max_length": 20}

    def test_unknown_field_type(self):
        with pytest.raises(FieldTypeNotFoundError):
            create_field_type("Colour")
        assert issubclass(FieldTypeNotFoundError, ConfigurationError)
