"""Categories: titled, localized elements kept in their group's structure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..domain.entities import CategoryGroupRecord, CategoryRecord, StructureElementRecord
from ..domain.models import Category, Element
from ..query.params import parse_param, split_param
from .base import BaseElementType
from .structure import apply_structure_placement, parent_uri_context, split_refs

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from ..domain.fields import FieldLayout
    from ..query.element_query import ElementQuery


class CategoryElementType(BaseElementType):
    handle = "Category"
    name = "Categories"
    model_class = Category

    def define_criteria_attributes(self) -> dict[str, Any]:
        return {"group": None, "group_id": None}

    def modify_elements_query(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        categories = CategoryRecord.__table__
        groups = CategoryGroupRecord.__table__
        nodes = StructureElementRecord.__table__

        query.join("categories", categories, categories.c.id == query.elements.c.id)
        query.join("categorygroups", groups, groups.c.id == categories.c.group_id)
        query.join(
            "structureelements",
            nodes,
            sa.and_(
                nodes.c.structure_id == groups.c.structure_id,
                nodes.c.element_id == query.elements.c.id,
            ),
        )
        query.add_select(
            group_id=categories.c.group_id,
            group_handle=groups.c.handle,
            field_layout_id=groups.c.field_layout_id,
        )

        params = criteria.params
        if params.get("group") is not None:
            _, items = split_param(params["group"])
            handles = [item.handle if isinstance(item, CategoryGroupRecord) else str(item) for item in items]
            if not handles:
                return False
            query.and_where(groups.c.handle.in_(handles))
        query.and_where(parse_param(categories.c.group_id, params.get("group_id")))

        if criteria.ref is not None:
            slug = query.elements_i18n.c.slug
            conditions = [
                sa.and_(groups.c.handle == handle, slug == ref_slug) if handle else slug == ref_slug
                for handle, ref_slug in split_refs(criteria.ref)
            ]
            if not conditions:
                return False
            query.and_where(sa.or_(*conditions))

        return True

    def default_order(self, query: ElementQuery) -> str:
        return "lft asc"

    # Saving -----------------------------------------------------------------

    def _group(self, element: Category) -> CategoryGroupRecord | None:
        return self.elements.categories.get_group_by_id(element.group_id)

    def get_locales(self, element: Element) -> dict[str, dict[str, Any]]:
        group = self._group(element)
        if group is None:
            return {}
        return {
            locale: {"enabled_by_default": True}
            for locale in self.elements.categories.get_group_locales(group.id)
        }

    def get_field_layout(self, element: Element) -> FieldLayout | None:
        group = self._group(element)
        if group is not None and group.field_layout_id:
            element.field_layout_id = group.field_layout_id
        return super().get_field_layout(element)

    def get_uri_format(self, element: Element) -> str | None:
        group = self._group(element)
        if group is None or not group.has_urls:
            return None
        record = self.elements.categories.get_group_locales(group.id).get(element.locale)
        if record is None:
            return None
        if record.nested_uri_format and (element.new_parent_id or (element.level or 0) > 1):
            return record.nested_uri_format
        return record.uri_format

    def get_uri_format_context(self, element: Element) -> dict[str, Any]:
        group = self._group(element)
        if group is None:
            return {}
        return {"group": group.handle, **parent_uri_context(self.elements, element, group.structure_id)}

    def validate(self, element: Element) -> bool:
        if not element.group_id or self._group(element) is None:
            element.add_error("group_id", "Group cannot be blank.")
            return False
        return True

    def save_type_record(self, element: Element, is_new_element: bool) -> None:
        group = self._group(element)
        element.group_handle = group.handle

        record = self.elements.db.get(CategoryRecord, element.id)
        if record is None:
            record = CategoryRecord(id=element.id)
            self.elements.db.add(record)
        record.group_id = element.group_id
        self.elements.db.flush()

        apply_structure_placement(self.elements, element, group.structure_id)
