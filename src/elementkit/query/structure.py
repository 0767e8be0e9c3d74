"""
Nested-set navigation filters.

Only applied once the element type has joined ``structureelements``. Every reference
element is resolved first (an element instance, or an id fetched lazily); a reference
that cannot be resolved, or that has no position in a structure, makes the whole query
impossible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from ..domain.models import Element
from .params import parse_param

if TYPE_CHECKING:
    from ..domain.criteria import ElementCriteria
    from .element_query import ElementQuery

logger = logging.getLogger(__name__)

# (value, element type, locale) -> element
ElementResolver = Callable[[Any, str, str | None], Element | None]
# element -> (lft, rgt) of its parent node, or None
ParentLocator = Callable[[Element], tuple[int, int] | None]

STRUCTURE_COLUMNS = ("structure_id", "root", "lft", "rgt", "level")


def _positioned(element: Element | None) -> bool:
    return element is not None and None not in (element.root, element.lft, element.rgt, element.level)


class StructureNavigator:
    """Adds ancestor/descendant/sibling/position predicates to a structure-joined query."""

    def __init__(self, resolve: ElementResolver, locate_parent: ParentLocator):
        self._resolve = resolve
        self._locate_parent = locate_parent

    def _reference(self, criteria: ElementCriteria, attribute: str) -> Element | None:
        value = getattr(criteria, attribute)
        if isinstance(value, Element):
            element = value
        else:
            element = self._resolve(value, criteria.element_type, criteria.locale)
        if not _positioned(element):
            logger.debug("Unresolved structure reference %s=%r", attribute, value)
            return None
        # Later steps reuse the resolved instance
        setattr(criteria, attribute, element)
        return element

    def apply(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        """Add the structure predicates. Returns False when nothing can match."""
        nodes = query.table("structureelements")
        query.add_select(**{name: nodes.c[name] for name in STRUCTURE_COLUMNS})

        if criteria.ancestor_of is not None:
            ref = self._reference(criteria, "ancestor_of")
            if ref is None:
                return False
            query.and_where(
                sa.and_(nodes.c.lft < ref.lft, nodes.c.rgt > ref.rgt, nodes.c.root == ref.root)
            )
            if criteria.ancestor_dist:
                query.and_where(nodes.c.level >= ref.level - criteria.ancestor_dist)

        if criteria.descendant_of is not None:
            ref = self._reference(criteria, "descendant_of")
            if ref is None:
                return False
            query.and_where(
                sa.and_(nodes.c.lft > ref.lft, nodes.c.rgt < ref.rgt, nodes.c.root == ref.root)
            )
            if criteria.descendant_dist:
                query.and_where(nodes.c.level <= ref.level + criteria.descendant_dist)

        if criteria.sibling_of is not None:
            ref = self._reference(criteria, "sibling_of")
            if ref is None:
                return False
            query.and_where(
                sa.and_(
                    nodes.c.level == ref.level,
                    nodes.c.root == ref.root,
                    nodes.c.element_id != ref.id,
                )
            )
            if ref.level != 1:
                parent = self._locate_parent(ref)
                if parent is None:
                    return False
                parent_lft, parent_rgt = parent
                query.and_where(sa.and_(nodes.c.lft > parent_lft, nodes.c.rgt < parent_rgt))

        if criteria.prev_sibling_of is not None:
            ref = self._reference(criteria, "prev_sibling_of")
            if ref is None:
                return False
            query.and_where(
                sa.and_(
                    nodes.c.level == ref.level,
                    nodes.c.rgt == ref.lft - 1,
                    nodes.c.root == ref.root,
                )
            )

        if criteria.next_sibling_of is not None:
            ref = self._reference(criteria, "next_sibling_of")
            if ref is None:
                return False
            query.and_where(
                sa.and_(
                    nodes.c.level == ref.level,
                    nodes.c.lft == ref.rgt + 1,
                    nodes.c.root == ref.root,
                )
            )

        if criteria.positioned_before is not None:
            ref = self._reference(criteria, "positioned_before")
            if ref is None:
                return False
            query.and_where(sa.and_(nodes.c.rgt < ref.lft, nodes.c.root == ref.root))

        if criteria.positioned_after is not None:
            ref = self._reference(criteria, "positioned_after")
            if ref is None:
                return False
            query.and_where(sa.and_(nodes.c.lft > ref.rgt, nodes.c.root == ref.root))

        if criteria.level is not None:
            query.and_where(parse_param(nodes.c.level, criteria.level))

        return True
