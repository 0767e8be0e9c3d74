"""Tests for keyword search: query parsing, matching and scoring."""

import pytest

from elementkit.services.search import SearchTerm, normalize_keywords, parse_search_query


def titles(found):
    return [element.title for element in found]


@pytest.fixture
def news(create_entry):
    return [
        create_entry("Alpha", fields={"body": "Hello world"}),
        create_entry("Beta", fields={"body": "Goodbye"}),
        create_entry("Gamma", fields={"body": "Hello again"}),
    ]


class TestParsing:
    def test_normalize_keywords(self):
        assert normalize_keywords("  Crème Brûlée!  ") == "creme brulee"
        assert normalize_keywords("Fish & Chips, please") == "fish chips please"

    def test_parse_search_query(self):
        terms = parse_search_query('salmon "Smoked Fish" -canned title:recipe')
        assert terms == [
            SearchTerm(text="salmon"),
            SearchTerm(text="smoked fish", phrase=True),
            SearchTerm(text="canned", exclude=True),
            SearchTerm(text="recipe", attribute="title"),
        ]

    def test_blank_query(self):
        assert parse_search_query("  !! ") == []


class TestMatching:
    def test_every_term_must_match(self, elements, news):
        assert titles(elements.get_criteria("Entry", search="hello").find()) == ["Alpha", "Gamma"]
        assert titles(elements.get_criteria("Entry", search="hello world").find()) == ["Alpha"]

    def test_exclusion(self, elements, news):
        assert titles(elements.get_criteria("Entry", search="-goodbye").find()) == ["Alpha", "Gamma"]

    def test_phrase(self, elements, news):
        assert titles(elements.get_criteria("Entry", search='"hello again"').find()) == ["Gamma"]

    def test_attribute_and_field_terms(self, elements, news):
        assert titles(elements.get_criteria("Entry", search="title:beta").find()) == ["Beta"]
        assert titles(elements.get_criteria("Entry", search="body:again").find()) == ["Gamma"]

    def test_prefix_match(self, elements, news):
        assert titles(elements.get_criteria("Entry", search="good").find()) == ["Beta"]

    def test_no_hits(self, elements, news):
        criteria = elements.get_criteria("Entry", search="zebra")
        assert criteria.find() == []
        assert criteria.total() == 0

    def test_total_respects_search(self, elements, news):
        assert elements.get_criteria("Entry", search="hello", limit=1).total() == 2


class TestScoring:
    def test_score_order(self, elements, create_entry):
        create_entry("Dinner", fields={"body": "Salmon"})
        create_entry("Salmon")

        assert titles(elements.get_criteria("Entry", search="salmon").find()) == ["Dinner", "Salmon"]
        # Title matches outweigh field matches
        assert titles(elements.get_criteria("Entry", search="salmon", order="score").find()) == [
            "Salmon",
            "Dinner",
        ]

    def test_unscored_filter_keeps_candidate_order(self, elements, news):
        ids = [entry.id for entry in reversed(news)]
        assert elements.search.filter_element_ids_by_query(ids, "hello", scored=False) == [
            news[2].id,
            news[0].id,
        ]
        assert elements.search.filter_element_ids_by_query(ids, "") == ids
