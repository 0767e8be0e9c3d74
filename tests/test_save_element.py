"""
Tests for saving elements.

Covers validation, the before-save veto, rollback of failed saves, placeholder titles,
per-locale rows and content, and matrix blocks saved through their owner.
"""

import pytest
from sqlalchemy import func, select

from elementkit.domain.entities import (
    ElementLocaleRecord,
    ElementRecord,
    MatrixBlockRecord,
    SearchIndexRecord,
)
from elementkit.domain.events import (
    EVENT_AFTER_SAVE_ELEMENT,
    EVENT_BEFORE_SAVE_ELEMENT,
)
from elementkit.domain.models import Entry, User
from elementkit.infra.exceptions import ElementNotFoundError, InvariantError
from elementkit.infra.uow import transaction


def count_rows(db, model):
    return db.scalar(select(func.count()).select_from(model))


class TestValidation:
    def test_missing_section(self, elements, site):
        entry = Entry()
        assert elements.save_element(entry) is False
        assert entry.get_errors("section_id") == ["Section cannot be blank."]
        assert count_rows(elements.db, ElementRecord) == 0

    def test_required_field(self, elements, site):
        layout = elements.fields.create_layout([site.body], required=["body"], type="Entry")
        strict = elements.sections.create_section("strict", field_layout=layout)

        entry = Entry(section_id=strict.id)
        entry.title = "No body"
        assert elements.save_element(entry) is False
        assert entry.get_errors("body") == ["Body cannot be blank."]
        assert entry.id is None

    def test_disabled_entries_skip_content_validation(self, elements, site):
        layout = elements.fields.create_layout([site.body], required=["body"], type="Entry")
        strict = elements.sections.create_section("strict", field_layout=layout)

        draft = Entry(section_id=strict.id, enabled=False)
        draft.title = "Draft"
        assert elements.save_element(draft) is True
        assert elements.save_element(draft, validate_content=True) is False

    def test_field_type_validation(self, elements, site):
        entry = Entry(section_id=site.news.id)
        entry.title = "Too many"
        entry.set_field_value("count", 500)
        assert elements.save_element(entry) is False
        assert entry.get_errors("count") == ["Count must be no greater than 100."]

    def test_errors_are_cleared_on_the_next_save(self, elements, site):
        entry = Entry(section_id=site.news.id)
        entry.title = "Count"
        entry.set_field_value("count", 500)
        assert elements.save_element(entry) is False

        entry.set_field_value("count", 50)
        assert elements.save_element(entry) is True
        assert not entry.has_errors()

    def test_missing_row_for_existing_element(self, elements, site):
        ghost = Entry(id=999, section_id=site.news.id)
        ghost.title = "Ghost"
        with pytest.raises(ElementNotFoundError):
            elements.save_element(ghost)


class TestSaving:
    def test_new_entry(self, elements, site):
        entry = Entry(section_id=site.news.id)
        entry.title = "Hello World"
        entry.set_field_values({"body": "First post", "count": 4})

        assert elements.save_element(entry) is True
        assert entry.id is not None
        assert entry.locale == "en"
        assert entry.slug == "hello-world"
        assert entry.uri == "news/hello-world"
        assert entry.post_date is not None
        assert entry.date_created is not None

        stored = elements.get_element_by_id(entry.id)
        assert stored.title == "Hello World"
        assert stored.get_field_value("body") == "First post"

    def test_placeholder_titles(self, elements, site):
        entry = Entry(section_id=site.news.id)
        assert elements.save_element(entry)
        assert entry.title == "New Entry"
        assert entry.slug == "new-entry"

        entry.title = "  "
        assert elements.save_element(entry)
        assert entry.title == f"Entry {entry.id}"

    def test_untitled_types_keep_no_title(self, elements):
        user = User(username="ada")
        assert elements.save_element(user)
        assert user.title is None
        assert user.locale == "en"

    def test_update_keeps_id_and_rows(self, elements, create_entry):
        entry = create_entry("Hello")
        stored = elements.get_element_by_id(entry.id)
        stored.title = "Hello again"
        assert elements.save_element(stored)

        assert stored.id == entry.id
        assert stored.slug == "hello"
        assert elements.get_element_by_id(entry.id).title == "Hello again"
        assert count_rows(elements.db, ElementRecord) == 1
        assert count_rows(elements.db, ElementLocaleRecord) == 2

    def test_events(self, elements, site):
        seen = []
        elements.events.on(EVENT_BEFORE_SAVE_ELEMENT, lambda event: seen.append(("before", event.is_new_element)))
        elements.events.on(EVENT_AFTER_SAVE_ELEMENT, lambda event: seen.append(("after", event.element.id)))

        entry = Entry(section_id=site.news.id)
        entry.title = "Evented"
        assert elements.save_element(entry)
        assert seen == [("before", True), ("after", entry.id)]

    def test_search_index_rows(self, elements, create_entry):
        entry = create_entry("Salmon", fields={"body": "Smoked"})
        rows = elements.db.scalars(
            select(SearchIndexRecord).where(
                SearchIndexRecord.element_id == entry.id, SearchIndexRecord.locale == "en"
            )
        ).all()
        keywords = {(row.attribute, row.field_id): row.keywords for row in rows}
        assert keywords[("title", 0)] == "salmon"
        assert keywords[("slug", 0)] == "salmon"
        assert keywords[("field", entry_field_id(elements, "body"))] == "smoked"


def entry_field_id(elements, handle):
    return elements.fields.get_field_by_handle(handle).id


class TestVetoAndRollback:
    def test_vetoed_save_writes_nothing(self, elements, site):
        def veto(event):
            event.perform_action = False

        elements.events.on(EVENT_BEFORE_SAVE_ELEMENT, veto)
        entry = Entry(section_id=site.news.id)
        entry.title = "Vetoed"

        assert elements.save_element(entry) is False
        assert entry.id is None
        assert count_rows(elements.db, ElementRecord) == 0

    def test_invalid_slug_rolls_back(self, elements, site):
        entry = Entry(section_id=site.news.id, slug="!!!")
        entry.title = "Bad slug"

        assert elements.save_element(entry) is False
        assert entry.get_errors("slug") == ["Slug is invalid."]
        assert entry.id is None
        assert count_rows(elements.db, ElementRecord) == 0

    def test_element_without_locales_is_rejected(self, elements, site):
        for section_locale in elements.sections.get_section_locales(site.news.id).values():
            elements.db.delete(section_locale)
        elements.db.commit()

        entry = Entry(section_id=site.news.id)
        entry.title = "Nowhere"

        with pytest.raises(InvariantError, match="does not belong to any locale"):
            elements.save_element(entry)
        assert entry.id is None
        assert entry.get_content().element_id is None
        assert count_rows(elements.db, ElementRecord) == 0
        assert count_rows(elements.db, ElementLocaleRecord) == 0

    def test_nested_save_joins_outer_transaction(self, elements, site):
        entry = Entry(section_id=site.news.id)
        entry.title = "Nested"

        with transaction(elements.db) as scope:
            assert elements.save_element(entry)
            scope.request_rollback()

        assert count_rows(elements.db, ElementRecord) == 0

    def test_after_save_listener_errors_propagate(self, elements, site):
        def explode(event):
            raise RuntimeError("listener failed")

        elements.events.on(EVENT_AFTER_SAVE_ELEMENT, explode)
        entry = Entry(section_id=site.news.id)
        entry.title = "Boom"

        # After-save listeners run once the save is committed
        with pytest.raises(RuntimeError):
            elements.save_element(entry)
        assert count_rows(elements.db, ElementRecord) == 1


class TestLocales:
    def test_rows_for_every_section_locale(self, elements, create_entry):
        entry = create_entry("Hello", fields={"body": "Hi"})
        german = elements.get_element_by_id(entry.id, "Entry", "de")

        assert german.title == "Hello"
        assert german.slug == "hello"
        assert german.uri == "news/hello"
        assert german.get_field_value("body") == "Hi"

    def test_translations_are_independent(self, elements, create_entry):
        entry = create_entry("Hello", fields={"body": "Hi"})
        german = elements.get_element_by_id(entry.id, "Entry", "de")
        german.title = "Hallo"
        german.slug = "hallo"
        german.set_field_value("body", "Servus")
        assert elements.save_element(german)

        english = elements.get_element_by_id(entry.id, "Entry", "en")
        assert english.title == "Hello"
        assert english.get_field_value("body") == "Hi"
        assert elements.get_element_uri_for_locale(entry.id, "de") == "news/hallo"

    def test_untranslatable_values_are_shared(self, elements, create_entry):
        entry = create_entry("Hello", fields={"count": 5})
        english = elements.get_element_by_id(entry.id)
        english.set_field_value("count", 7)
        assert elements.save_element(english)

        assert elements.get_element_by_id(entry.id, "Entry", "de").get_field_value("count") == 7

    def test_locale_disabled(self, elements, create_entry):
        entry = create_entry("Hello")
        german = elements.get_element_by_id(entry.id, "Entry", "de")
        german.locale_enabled = False
        assert elements.save_element(german)

        assert elements.get_enabled_locales_for_element(entry.id) == ["en"]
        assert elements.get_criteria("Entry", locale="de").find() == []
        assert len(elements.get_criteria("Entry", locale="de", locale_enabled=False).find()) == 1

    def test_removed_locales_are_pruned(self, elements, create_entry, site):
        entry = create_entry("Hello")
        site_locale = elements.sections.get_section_locales(site.news.id)["de"]
        elements.db.delete(site_locale)
        elements.db.commit()

        stored = elements.get_element_by_id(entry.id)
        assert elements.save_element(stored)
        assert elements.get_element_uri_for_locale(entry.id, "de") is None
        assert elements.get_element_by_id(entry.id, "Entry", "de") is None


class TestMatrixBlocks:
    def test_blocks_saved_with_owner(self, elements, site):
        matrix = elements.matrix
        entry = Entry(section_id=site.news.id)
        entry.title = "With blocks"
        entry.set_field_value(
            "blocks",
            [
                matrix.new_block(site.blocks, "text", body="Paragraph one"),
                matrix.new_block(site.blocks, "text", body="Paragraph two"),
            ],
        )
        assert elements.save_element(entry)

        blocks = matrix.get_blocks(site.blocks, entry.id)
        assert [block.get_field_value("body") for block in blocks] == ["Paragraph one", "Paragraph two"]
        assert [block.sort_order for block in blocks] == [1, 2]
        assert {block.owner_id for block in blocks} == {entry.id}
        assert blocks[0].type_handle == "text"

    def test_dropped_blocks_are_deleted(self, elements, site):
        matrix = elements.matrix
        entry = Entry(section_id=site.news.id)
        entry.title = "With blocks"
        entry.set_field_value(
            "blocks",
            [
                matrix.new_block(site.blocks, "text", body="Keep"),
                matrix.new_block(site.blocks, "text", body="Drop"),
            ],
        )
        assert elements.save_element(entry)

        kept = matrix.get_blocks(site.blocks, entry.id)[:1]
        entry.set_field_value("blocks", kept)
        assert elements.save_element(entry)

        assert [b.get_field_value("body") for b in matrix.get_blocks(site.blocks, entry.id)] == ["Keep"]
        assert count_rows(elements.db, MatrixBlockRecord) == 1

    def test_invalid_block_fails_the_owner(self, elements, site):
        matrix = elements.matrix
        entry = Entry(section_id=site.news.id)
        entry.title = "Broken blocks"
        entry.set_field_value("blocks", [matrix.new_block(site.blocks, "text", body="")])

        assert elements.save_element(entry) is False
        assert entry.get_errors("blocks") == ["Body cannot be blank."]
        assert entry.id is None
        assert count_rows(elements.db, ElementRecord) == 0

    def test_unknown_block_type(self, elements, site):
        from elementkit.infra.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            elements.matrix.new_block(site.blocks, "quote")
