"""
Entries: titled, localized elements grouped into sections.

Structure sections keep their entries in a tree; the other sections leave the structure
columns empty.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..domain.entities import EntryRecord, SectionRecord, StructureElementRecord, utcnow
from ..domain.models import Element, Entry
from ..query.params import parse_date_param, parse_param, split_param, to_datetime
from ..shared.types import ElementStatus, SectionType
from .base import BaseElementType
from .structure import apply_structure_placement, parent_uri_context, split_refs

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from ..domain.fields import FieldLayout
    from ..query.element_query import ElementQuery


class EntryElementType(BaseElementType):
    handle = "Entry"
    name = "Entries"
    model_class = Entry

    def get_statuses(self) -> dict[str, str]:
        return {
            ElementStatus.LIVE.value: "Live",
            ElementStatus.PENDING.value: "Pending",
            ElementStatus.EXPIRED.value: "Expired",
            ElementStatus.ENABLED.value: "Enabled",
            ElementStatus.DISABLED.value: "Disabled",
        }

    def define_criteria_attributes(self) -> dict[str, Any]:
        return {
            "section": None,
            "section_id": None,
            "author_id": None,
            "post_date": None,
            "expiry_date": None,
            "after": None,
            "before": None,
        }

    # Querying ---------------------------------------------------------------

    def _join_entries(self, query: ElementQuery) -> sa.Table:
        entries = EntryRecord.__table__
        query.join("entries", entries, entries.c.id == query.elements.c.id)
        return entries

    def get_element_query_status_condition(self, query: ElementQuery, status: str):
        entries = self._join_entries(query)
        now = utcnow()
        enabled = query.elements.c.enabled.is_(True)

        if status == ElementStatus.LIVE.value:
            return sa.and_(
                enabled,
                entries.c.post_date <= now,
                sa.or_(entries.c.expiry_date.is_(None), entries.c.expiry_date > now),
            )
        if status == ElementStatus.PENDING.value:
            return sa.and_(enabled, entries.c.post_date > now)
        if status == ElementStatus.EXPIRED.value:
            return sa.and_(
                enabled,
                entries.c.expiry_date.is_not(None),
                entries.c.expiry_date <= now,
            )
        return None

    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        entries = self._join_entries(query)
        sections = SectionRecord.__table__
        query.join("sections", sections, sections.c.id == entries.c.section_id)

        nodes = StructureElementRecord.__table__
        query.left_join(
            "structureelements",
            nodes,
            sa.and_(
                nodes.c.structure_id == sections.c.structure_id,
                nodes.c.element_id == query.elements.c.id,
            ),
        )

        query.add_select(
            section_id=entries.c.section_id,
            section_handle=sections.c.handle,
            author_id=entries.c.author_id,
            post_date=entries.c.post_date,
            expiry_date=entries.c.expiry_date,
            field_layout_id=sections.c.field_layout_id,
        )

        params = criteria.params
        if params.get("section") is not None:
            section_ids = self._section_ids(params["section"])
            if not section_ids:
                return False
            query.and_where(entries.c.section_id.in_(section_ids))

        query.and_where(parse_param(entries.c.section_id, params.get("section_id")))
        query.and_where(parse_param(entries.c.author_id, params.get("author_id")))
        query.and_where(parse_date_param(entries.c.post_date, params.get("post_date")))
        query.and_where(parse_date_param(entries.c.expiry_date, params.get("expiry_date")))
        if params.get("after") is not None:
            query.and_where(entries.c.post_date >= to_datetime(params["after"]))
        if params.get("before") is not None:
            query.and_where(entries.c.post_date < to_datetime(params["before"]))

        if criteria.ref is not None:
            condition = self._ref_condition(query, criteria.ref)
            if condition is None:
                return False
            query.and_where(condition)

        return True

    def _section_ids(self, value: Any) -> list[int]:
        _, items = split_param(value)
        ids: list[int] = []
        for item in items:
            if isinstance(item, SectionRecord):
                ids.append(item.id)
            elif isinstance(item, int) or (isinstance(item, str) and item.isdigit()):
                ids.append(int(item))
            else:
                section = self.elements.sections.get_section_by_handle(str(item))
                if section is not None:
                    ids.append(section.id)
        return ids

    def _ref_condition(self, query: ElementQuery, ref: Any):
        sections = query.table("sections")
        slug = query.elements_i18n.c.slug
        conditions = []
        for handle, ref_slug in split_refs(ref):
            if handle:
                conditions.append(sa.and_(sections.c.handle == handle, slug == ref_slug))
            else:
                conditions.append(slug == ref_slug)
        return sa.or_(*conditions) if conditions else None

    # Saving -----------------------------------------------------------------

    def _section(self, element: Entry) -> SectionRecord | None:
        return self.elements.sections.get_section_by_id(element.section_id)

    def get_locales(self, element: Element) -> dict[str, dict[str, Any]]:
        section = self._section(element)
        if section is None:
            return {}
        return {
            locale: {"enabled_by_default": record.enabled_by_default}
            for locale, record in self.elements.sections.get_section_locales(section.id).items()
        }

    def get_field_layout(self, element: Element) -> FieldLayout | None:
        section = self._section(element)
        if section is not None and section.field_layout_id:
            element.field_layout_id = section.field_layout_id
        return super().get_field_layout(element)

    def get_uri_format(self, element: Element) -> str | None:
        section = self._section(element)
        if section is None or not section.has_urls:
            return None
        record = self.elements.sections.get_section_locales(section.id).get(element.locale)
        if record is None:
            return None
        if section.type == SectionType.STRUCTURE.value and record.nested_uri_format:
            if element.new_parent_id or (element.level or 0) > 1:
                return record.nested_uri_format
        return record.uri_format

    def get_uri_format_context(self, element: Element) -> dict[str, Any]:
        section = self._section(element)
        context: dict[str, Any] = {"section": section.handle if section else None}
        if section is not None and section.structure_id:
            context.update(parent_uri_context(self.elements, element, section.structure_id))
        return context

    def validate(self, element: Element) -> bool:
        if not element.section_id:
            element.add_error("section_id", "Section cannot be blank.")
            return False
        if self._section(element) is None:
            element.add_error("section_id", f"No section exists with the ID {element.section_id}.")
            return False
        return True

    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        section = self._section(element)
        element.section_handle = section.handle
        if element.post_date is None and element.enabled:
            element.post_date = utcnow()

        record = self.elements.db.get(EntryRecord, element.id)
        if record is None:
            record = EntryRecord(id=element.id)
            self.elements.db.add(record)
        record.section_id = element.section_id
        record.author_id = element.author_id
        record.post_date = element.post_date
        record.expiry_date = element.expiry_date
        self.elements.db.flush()

        if section.type == SectionType.STRUCTURE.value and section.structure_id:
            apply_structure_placement(self.elements, element, section.structure_id)
