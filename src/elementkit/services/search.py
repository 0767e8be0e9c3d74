"""
Keyword search over the ``searchindex`` table.

Every element gets one row per indexed attribute (``slug``, ``title``) and per searchable
field, in each locale it is saved in. Queries are a list of terms, all of which must
match::

    salmon "smoked fish" -canned title:recipe
"""

from __future__ import annotations

import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select

from ..domain.entities import SearchIndexRecord
from ..domain.interfaces import SearchInterface
from ..domain.models import Element

if TYPE_CHECKING:
    from .elements import Elements

_TERM = re.compile(r'(-)?(?:(\w+):)?("([^"]*)"|\S+)')
_NON_WORD = re.compile(r"[^\w\s]+", re.UNICODE)
_SPACES = re.compile(r"\s+")

# Attribute matches outrank field matches
ATTRIBUTE_WEIGHTS = {"title": 5, "slug": 3}


def normalize_keywords(text: str) -> str:
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_WORD.sub(" ", text.lower())
    return _SPACES.sub(" ", text).strip()


@dataclass(frozen=True)
class SearchTerm:
    text: str
    attribute: str | None = None
    exclude: bool = False
    phrase: bool = False


def parse_search_query(query: str) -> list[SearchTerm]:
    terms: list[SearchTerm] = []
    for match in _TERM.finditer(query):
        exclude, attribute, raw, quoted = match.groups()
        phrase = quoted is not None
        text = normalize_keywords(quoted if phrase else raw)
        if text:
            terms.append(SearchTerm(text=text, attribute=attribute, exclude=bool(exclude), phrase=phrase))
    return terms


class SearchService(SearchInterface):
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db

    def index_element_attributes(self, element: Element) -> None:
        """Rewrite the element's index rows for its locale."""
        if not element.id or not element.locale:
            return

        rows: dict[tuple[str, int], str] = {("slug", 0): element.slug or ""}

        element_type = self.elements.element_types.require(element.get_class_handle())
        if element_type.has_titles():
            rows[("title", 0)] = element.title or ""

        if element_type.has_content():
            layout = element_type.get_field_layout(element)
            for layout_field in layout.get_fields() if layout else []:
                field = layout_field.field
                if field.searchable and field.id is not None:
                    value = element.get_field_value(field.handle)
                    rows[("field", field.id)] = field.field_type.get_search_keywords(value)

        self.db.execute(
            delete(SearchIndexRecord).where(
                SearchIndexRecord.element_id == element.id,
                SearchIndexRecord.locale == element.locale,
            )
        )
        self.db.execute(
            insert(SearchIndexRecord.__table__),
            [
                {
                    "element_id": element.id,
                    "attribute": attribute,
                    "field_id": field_id,
                    "locale": element.locale,
                    "keywords": normalize_keywords(keywords),
                }
                for (attribute, field_id), keywords in rows.items()
            ],
        )

    def filter_element_ids_by_query(
        self, element_ids: list[int], query: str, scored: bool = True
    ) -> list[int]:
        terms = parse_search_query(query)
        if not terms or not element_ids:
            return list(element_ids)

        rows_by_element: dict[int, list[SearchIndexRecord]] = defaultdict(list)
        records = self.db.scalars(
            select(SearchIndexRecord).where(SearchIndexRecord.element_id.in_(element_ids))
        )
        for record in records:
            rows_by_element[record.element_id].append(record)

        scores: dict[int, int] = {}
        for element_id in element_ids:
            score = self._score(rows_by_element.get(element_id, []), terms)
            if score is not None:
                scores[element_id] = score

        matched = [element_id for element_id in element_ids if element_id in scores]
        if scored:
            # Stable: ties keep the candidate order
            matched.sort(key=lambda element_id: -scores[element_id])
        return matched

    def _score(self, rows: list[SearchIndexRecord], terms: list[SearchTerm]) -> int | None:
        total = 0
        for term in terms:
            hits = 0
            for row in rows:
                if term.attribute and not self._matches_attribute(row, term.attribute):
                    continue
                hits += self._term_hits(row.keywords, term) * ATTRIBUTE_WEIGHTS.get(row.attribute, 1)
            if term.exclude:
                if hits:
                    return None
            elif not hits:
                return None
            total += hits
        return total

    def _matches_attribute(self, row: SearchIndexRecord, attribute: str) -> bool:
        if row.attribute == attribute:
            return True
        field = self.elements.fields.get_field_by_handle(attribute)
        return row.attribute == "field" and field is not None and row.field_id == field.id

    def _term_hits(self, keywords: str, term: SearchTerm) -> int:
        if not keywords:
            return 0
        if term.phrase:
            return f" {keywords} ".count(f" {term.text} ")
        words = keywords.split(" ")
        exact = words.count(term.text)
        partial = sum(1 for word in words if word != term.text and word.startswith(term.text))
        return exact * 2 + partial
