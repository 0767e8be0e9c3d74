"""
Tests for finding elements: core params, statuses, field params, relations, ordering
and paging.
"""

from datetime import UTC, datetime, timedelta

import pytest

from elementkit.domain.models import Entry, User
from elementkit.infra.exceptions import QueryError
from elementkit.shared.types import RESULT_BOUNDARY


def titles(found):
    return [element.title for element in found]


@pytest.fixture
def news(create_entry):
    return [
        create_entry("Alpha", fields={"body": "Hello world", "count": 3, "featured": True}),
        create_entry("Beta", fields={"body": "Goodbye", "count": 7}),
        create_entry("Gamma", fields={"body": "Hello again", "count": 10, "featured": False}),
    ]


class TestCoreParams:
    def test_find_by_section_in_default_order(self, elements, news):
        found = elements.get_criteria("Entry", section="news").find()
        assert titles(found) == ["Alpha", "Beta", "Gamma"]
        assert all(isinstance(entry, Entry) for entry in found)
        assert found[0].section_handle == "news"
        assert found[0].get_url() == "http://example.test/news/alpha"

    def test_unknown_section_matches_nothing(self, elements, news):
        assert elements.get_criteria("Entry", section="nope").find() == []

    def test_empty_id_list_never_matches(self, elements, news):
        criteria = elements.get_criteria("Entry", id=[])
        assert elements.build_elements_query(criteria) is None
        assert criteria.find() == []
        assert criteria.total() == 0

    def test_id_and_slug(self, elements, news):
        alpha, beta, _ = news
        assert titles(elements.get_criteria("Entry", id=beta.id).find()) == ["Beta"]
        assert titles(elements.get_criteria("Entry", id=f"{alpha.id}, {beta.id}").find()) == [
            "Alpha",
            "Beta",
        ]
        assert titles(elements.get_criteria("Entry", slug="gamma").find()) == ["Gamma"]
        assert titles(elements.get_criteria("Entry", title="not Beta").find()) == ["Alpha", "Gamma"]

    def test_locale_defaults_to_app_locale(self, elements, news):
        criteria = elements.get_criteria("Entry")
        found = criteria.find()
        assert criteria.locale == "en"
        assert {entry.locale for entry in found} == {"en"}

    def test_just_ids_and_type_lookup(self, elements, news):
        ids = elements.get_criteria("Entry").ids()
        assert ids == [entry.id for entry in news]
        assert elements.get_element_type_by_id(ids[0]) == "Entry"
        assert elements.get_element_type_by_id(ids) == ["Entry"]
        assert elements.get_element_type_by_id([]) == []

    def test_index_by(self, elements, news):
        found = elements.get_criteria("Entry", index_by="slug").find()
        assert sorted(found) == ["alpha", "beta", "gamma"]
        assert found["beta"].title == "Beta"
        assert elements.get_criteria("Entry", id=[], index_by="slug").find() == {}


class TestStatuses:
    def test_disabled_entries_are_hidden_by_default(self, elements, create_entry, news):
        create_entry("Hidden", enabled=False)
        assert "Hidden" not in titles(elements.get_criteria("Entry").find())
        assert titles(elements.get_criteria("Entry", status="disabled").find()) == ["Hidden"]
        assert "Hidden" in titles(elements.get_criteria("Entry", status=None).find())

    def test_entry_statuses(self, elements, create_entry):
        now = datetime.now(UTC)
        create_entry("Live")
        create_entry("Later", post_date=now + timedelta(days=3))
        create_entry("Gone", post_date=now - timedelta(days=3), expiry_date=now - timedelta(days=1))

        assert titles(elements.get_criteria("Entry", status="live").find()) == ["Live"]
        assert titles(elements.get_criteria("Entry", status="pending").find()) == ["Later"]
        assert titles(elements.get_criteria("Entry", status="expired").find()) == ["Gone"]
        assert titles(elements.get_criteria("Entry", status="live, pending").find()) == ["Live", "Later"]

        later = elements.get_criteria("Entry", status="pending").first()
        assert later.get_status() == "pending"

    def test_unsupported_status_is_ignored(self, elements, news):
        # Users know "locked"; entries don't, so the status adds no condition
        assert len(elements.get_criteria("Entry", status="locked").find()) == 3

    def test_archived(self, elements, create_entry, news):
        create_entry("Old", archived=True)
        assert "Old" not in titles(elements.get_criteria("Entry", status=None).find())
        assert titles(elements.get_criteria("Entry", archived=True).find()) == ["Old"]

    def test_locked_users(self, elements):
        for username, locked in (("ada", False), ("bob", True)):
            assert elements.save_element(User(username=username, locked=locked))

        assert [u.username for u in elements.get_criteria("User", status="locked").find()] == ["bob"]
        assert [u.username for u in elements.get_criteria("User").find()] == ["ada", "bob"]


class TestFieldParams:
    def test_text_field(self, elements, news):
        assert titles(elements.get_criteria("Entry", body="Hello*").find()) == ["Alpha", "Gamma"]

    def test_number_field(self, elements, news):
        assert titles(elements.get_criteria("Entry", count="> 5").find()) == ["Beta", "Gamma"]

    def test_lightswitch_treats_unset_as_off(self, elements, news):
        assert titles(elements.get_criteria("Entry", featured=True).find()) == ["Alpha"]
        assert titles(elements.get_criteria("Entry", featured=False).find()) == ["Beta", "Gamma"]

    def test_field_values_are_materialized(self, elements, news):
        alpha = elements.get_criteria("Entry", slug="alpha").first()
        assert alpha.get_field_value("body") == "Hello world"
        assert alpha.get_field_value("count") == 3
        assert alpha.get_field_value("featured") is True


class TestRelations:
    @pytest.fixture
    def linked(self, elements, create_entry, news):
        alpha, beta, gamma = news
        source = create_entry("Source", fields={"related": [gamma.id, alpha]})
        return source, alpha, beta, gamma

    def test_relation_field_param(self, elements, linked):
        source, alpha, _, gamma = linked
        assert elements.get_criteria("Entry", related=gamma.id).ids() == [source.id]
        assert elements.get_criteria("Entry", related=":notempty:").ids() == [source.id]
        assert source.id not in elements.get_criteria("Entry", related=":empty:").ids()

    def test_related_to_source_keeps_relation_order(self, elements, linked):
        source, alpha, _, gamma = linked
        found = elements.get_criteria(
            "Entry",
            related_to={"source_element": source.id, "field": "related"},
            order="source_sort_order",
        ).find()
        assert [entry.id for entry in found] == [gamma.id, alpha.id]

    def test_related_to_target(self, elements, linked):
        source, alpha, _, _ = linked
        found = elements.get_criteria("Entry", related_to={"target_element": alpha}).ids()
        assert found == [source.id]

    def test_related_to_either_direction(self, elements, linked):
        source, alpha, beta, gamma = linked
        assert set(elements.get_criteria("Entry", related_to=source.id).ids()) == {alpha.id, gamma.id}
        assert elements.get_criteria("Entry", related_to=alpha.id).ids() == [source.id]
        assert elements.get_criteria("Entry", related_to=beta.id).ids() == []

    def test_related_to_all_of(self, elements, linked):
        source, alpha, beta, gamma = linked
        both = ["and", {"element": alpha.id}, {"element": gamma.id}]
        assert elements.get_criteria("Entry", related_to=both).ids() == [source.id]
        assert elements.get_criteria("Entry", related_to=["and", alpha.id, beta.id]).ids() == []

    def test_unknown_relation_field(self, elements, linked):
        source, *_ = linked
        criteria = elements.get_criteria(
            "Entry", related_to={"source_element": source.id, "field": "nope"}
        )
        assert criteria.find() == []


class TestOrderingAndPaging:
    def test_order_expression(self, elements, news):
        assert titles(elements.get_criteria("Entry", order="title desc").find()) == [
            "Gamma",
            "Beta",
            "Alpha",
        ]
        assert titles(elements.get_criteria("Entry", order="count desc").find())[0] == "Gamma"

    def test_invalid_order(self, elements, news):
        with pytest.raises(QueryError):
            elements.get_criteria("Entry", order="title sideways").find()
        with pytest.raises(QueryError):
            elements.get_criteria("Entry", order="nope").find()

    def test_fixed_order(self, elements, news):
        alpha, beta, gamma = news
        criteria = elements.get_criteria("Entry", id=[gamma.id, alpha.id, beta.id], fixed_order=True)
        assert titles(criteria.find()) == ["Gamma", "Alpha", "Beta"]

    def test_fixed_order_without_ids(self, elements, news):
        assert elements.get_criteria("Entry", fixed_order=True).find() == []

    def test_offset_limit_and_total(self, elements, news):
        criteria = elements.get_criteria("Entry", offset=1, limit=1)
        assert titles(criteria.find()) == ["Beta"]
        assert criteria.total() == 3

    def test_prev_next_chain(self, elements, news):
        first, second, third = elements.get_criteria("Entry").find()
        assert first.get_prev() is RESULT_BOUNDARY
        assert first.get_next() is second
        assert second.get_prev() is first
        assert third.get_next() is RESULT_BOUNDARY


class TestLookups:
    def test_get_element_by_id_ignores_status(self, elements, create_entry):
        hidden = create_entry("Hidden", enabled=False)
        found = elements.get_element_by_id(hidden.id)
        assert found.title == "Hidden"
        assert elements.get_element_by_id(hidden.id, "Entry", "de").locale == "de"
        assert elements.get_element_by_id(999) is None
        assert elements.get_element_by_id(None) is None

    def test_get_element_by_uri(self, elements, create_entry):
        entry = create_entry("Hello")
        assert elements.get_element_by_uri("news/hello").id == entry.id
        assert elements.get_element_by_uri("news/hello", "de").locale == "de"
        assert elements.get_element_by_uri("news/missing") is None

    def test_get_element_by_uri_enabled_only(self, elements, create_entry):
        create_entry("Draft", enabled=False)
        assert elements.get_element_by_uri("news/draft") is not None
        assert elements.get_element_by_uri("news/draft", enabled_only=True) is None

    def test_homepage(self, elements, create_entry):
        home = elements.sections.create_section(
            "home",
            "Home",
            "single",
            locales={locale: {"uri_format": "__home__"} for locale in ("en", "de")},
        )
        entry = create_entry("Welcome", section=home)
        assert entry.uri == "__home__"

        found = elements.get_element_by_uri("")
        assert found.id == entry.id
        assert found.get_url() == "http://example.test/"

    def test_locale_helpers(self, elements, create_entry):
        entry = create_entry("Hello")
        assert elements.get_element_uri_for_locale(entry.id, "de") == "news/hello"
        assert elements.get_enabled_locales_for_element(entry.id) == ["en", "de"]


class TestPlaceholders:
    def test_placeholder_replaces_query_result(self, elements, news):
        alpha = elements.get_criteria("Entry", slug="alpha").first()
        preview = alpha.copy()
        preview.title = "Alpha (draft)"
        elements.set_placeholder_element(preview)

        found = elements.get_criteria("Entry").find()
        assert found[0] is preview
        assert titles(found) == ["Alpha (draft)", "Beta", "Gamma"]

        # Other locales are untouched
        assert elements.get_element_by_id(alpha.id, "Entry", "de").title == "Alpha"
