"""
Tests for the nested-set criteria: ancestors, descendants, siblings and positions.

References are passed by id so the filter resolves each element's current position.
"""

import pytest

from elementkit.domain.models import Category
from elementkit.shared.types import SectionType


def titles(found):
    return [element.title for element in found]


@pytest.fixture
def categories(elements, topic_tree):
    def _find(**attributes):
        return titles(elements.get_criteria("Category", group="topics", **attributes).find())

    return _find


class TestTreeOrder:
    def test_default_order_walks_the_tree(self, categories):
        assert categories() == ["Fruit", "Apple", "Banana", "Veg", "Carrot"]

    def test_positions_are_materialized(self, elements, topic_tree):
        apple = elements.get_element_by_id(topic_tree.apple.id)
        fruit = elements.get_element_by_id(topic_tree.fruit.id)
        assert apple.level == 2
        assert fruit.level == 1
        assert fruit.lft < apple.lft < apple.rgt < fruit.rgt
        assert apple.root == fruit.root


class TestAncestorsAndDescendants:
    def test_descendant_of(self, categories, topic_tree):
        assert categories(descendant_of=topic_tree.fruit.id) == ["Apple", "Banana"]
        assert categories(descendant_of=topic_tree.apple.id) == []

    def test_descendant_dist(self, elements, categories, topic_tree):
        apple = elements.get_element_by_id(topic_tree.apple.id)
        seed = Category(group_id=apple.group_id, new_parent_id=apple.id)
        seed.title = "Seed"
        assert elements.save_element(seed)

        assert categories(descendant_of=topic_tree.fruit.id) == ["Apple", "Seed", "Banana"]
        assert categories(descendant_of=topic_tree.fruit.id, descendant_dist=1) == ["Apple", "Banana"]

    def test_ancestor_of(self, categories, topic_tree):
        assert categories(ancestor_of=topic_tree.carrot.id) == ["Veg"]
        assert categories(ancestor_of=topic_tree.veg.id) == []

    def test_element_instances_are_accepted(self, elements, categories, topic_tree):
        veg = elements.get_element_by_id(topic_tree.veg.id)
        assert categories(descendant_of=veg) == ["Carrot"]


class TestSiblings:
    def test_sibling_of(self, categories, topic_tree):
        assert categories(sibling_of=topic_tree.apple.id) == ["Banana"]
        assert categories(sibling_of=topic_tree.fruit.id) == ["Veg"]
        assert categories(sibling_of=topic_tree.carrot.id) == []

    def test_prev_and_next_sibling(self, categories, topic_tree):
        assert categories(prev_sibling_of=topic_tree.banana.id) == ["Apple"]
        assert categories(next_sibling_of=topic_tree.apple.id) == ["Banana"]
        assert categories(next_sibling_of=topic_tree.banana.id) == []
        assert categories(next_sibling_of=topic_tree.fruit.id) == ["Veg"]


class TestPositions:
    def test_positioned_before_and_after(self, categories, topic_tree):
        assert categories(positioned_before=topic_tree.veg.id) == ["Fruit", "Apple", "Banana"]
        assert categories(positioned_after=topic_tree.fruit.id) == ["Veg", "Carrot"]

    def test_level(self, categories, topic_tree):
        assert categories(level=1) == ["Fruit", "Veg"]
        assert categories(level="> 1") == ["Apple", "Banana", "Carrot"]


class TestUnresolvedReferences:
    def test_missing_element_matches_nothing(self, categories, topic_tree):
        assert categories(descendant_of=999) == []

    def test_element_outside_any_structure_matches_nothing(self, elements, create_entry):
        story = create_entry("Story")
        assert elements.get_criteria("Entry", descendant_of=story.id).find() == []
        assert elements.get_criteria("Entry", sibling_of=story.id).find() == []

    def test_structure_section_entries(self, elements, create_entry, site):
        about = create_entry("About", section=site.pages)
        team = create_entry("Team", section=site.pages, new_parent_id=about.id)

        children = elements.get_criteria("Entry", section="pages", descendant_of=about.id).find()
        assert [entry.id for entry in children] == [team.id]
        assert children[0].uri == "about/team"

    def test_references_resolve_in_the_querying_locale(self, elements, create_entry, site):
        handbook = elements.sections.create_section(
            "handbook",
            "Handbook",
            SectionType.STRUCTURE,
            locales={"de": {"uri_format": "{slug}", "nested_uri_format": "{parent.uri}/{slug}"}},
            field_layout=site.layout,
        )
        chapter = create_entry("Kapitel", section=handbook)
        page = create_entry("Seite", section=handbook, new_parent_id=chapter.id)
        assert page.locale == "de"

        def find(**attributes):
            criteria = elements.get_criteria("Entry", section="handbook", locale="de", **attributes)
            return [entry.id for entry in criteria.find()]

        # Neither entry has a row in the primary locale
        assert elements.get_element_by_id(page.id) is None
        assert find(ancestor_of=page.id) == [chapter.id]
        assert find(descendant_of=str(chapter.id)) == [page.id]
