"""
Criteria-to-query compilation.

``ElementQueryCompiler.compile()`` returns an :class:`ElementQuery`, or None when it can
tell ahead of time that nothing will match (empty id list, impossible status, a field or
element type veto, an unresolved structure reference, no search hits). None is not an
error: finders turn it into an empty result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.orm import Session

from ..domain.criteria import ElementCriteria
from ..infra.exceptions import ConfigurationError
from ..infra.schema import content_table
from ..shared.types import ElementStatus
from .element_query import ElementQuery
from .params import parse_date_param, parse_param
from .relations import RELATION_SORT_COLUMN, RelationParamParser
from .structure import StructureNavigator

if TYPE_CHECKING:
    from ..domain.interfaces import ElementTypeInterface, SearchInterface
    from ..registries.element_type_registry import ElementTypeRegistry
    from ..services.fields import FieldsService

logger = logging.getLogger(__name__)

SCORE_ORDER = "score"


def _is_empty_id(value: Any) -> bool:
    # None means unconstrained; any other falsy value can never match
    return value is not None and not value


class ElementQueryCompiler:
    def __init__(
        self,
        db: Session,
        element_types: ElementTypeRegistry,
        fields: FieldsService,
        search: SearchInterface,
        navigator: StructureNavigator,
        *,
        primary_locale: str,
        app_locale: str,
    ):
        self.db = db
        self.element_types = element_types
        self.fields = fields
        self.search = search
        self.navigator = navigator
        self.primary_locale = primary_locale
        self.app_locale = app_locale

    def compile(self, criteria: ElementCriteria) -> ElementQuery | None:
        element_type = self.element_types.require(criteria.element_type)

        if not element_type.is_localized():
            criteria.locale = self.primary_locale
        elif not criteria.locale:
            criteria.locale = self.app_locale

        query = ElementQuery(criteria.locale)
        self._base(query)

        fields = []
        if element_type.has_content():
            fields = self._join_content(query, criteria, element_type)

        if not self._apply_core_params(query, criteria, element_type):
            return None

        if criteria.related_to is not None:
            parser = RelationParamParser(self.fields)
            condition = parser.parse(criteria.related_to, query)
            if condition is False:
                return None
            query.and_where(condition)
            if parser.is_relation_field_query:
                query.add_select(
                    **{RELATION_SORT_COLUMN: query.table("sources1").c.sort_order}
                )

        if query.content_table is not None:
            for field in fields:
                if field.handle not in criteria.fields:
                    continue
                with query.using_column_prefix(field.column_prefix):
                    allowed = field.get_field_type().modify_elements_query(
                        query, criteria.fields[field.handle]
                    )
                if allowed is False:
                    logger.debug("Field %s vetoed the query", field.handle)
                    return None

        if element_type.modify_elements_query(query, criteria) is False:
            logger.debug("%s vetoed the query", element_type.get_class_handle())
            return None

        if query.is_joined("structureelements"):
            if not self.navigator.apply(query, criteria):
                return None

        if criteria.search:
            element_ids = self.element_ids(query)
            scored = criteria.order == SCORE_ORDER
            filtered = self.search.filter_element_ids_by_query(element_ids, criteria.search, scored)
            if not filtered:
                return None
            query.and_where(query.elements.c.id.in_(filtered))
            if scored:
                query.order_by_ids(filtered)

        return query

    def apply_order_and_paging(self, query: ElementQuery, criteria: ElementCriteria) -> bool:
        """
        Apply ``fixed_order``/``order``, ``offset`` and ``limit``.

        Returns False when a fixed order was requested without any ids.
        """
        if criteria.fixed_order:
            ids = criteria.id if isinstance(criteria.id, (list, tuple)) else [criteria.id]
            ids = [int(element_id) for element_id in ids if element_id]
            if not ids:
                return False
            query.order_by_ids(ids)
        elif criteria.order and criteria.order != SCORE_ORDER:
            query.order_by_expression(criteria.order)
        elif not criteria.order:
            element_type = self.element_types.require(criteria.element_type)
            query.order_by_expression(element_type.default_order(query))

        query.offset(criteria.offset)
        query.limit(criteria.limit)
        return True

    def element_ids(self, query: ElementQuery) -> list[int]:
        """Distinct ids matched by the query's joins and predicates, ignoring order and paging."""
        return list(self.db.execute(query.id_statement()).scalars())

    # ------------------------------------------------------------------------

    def _base(self, query: ElementQuery) -> None:
        elements, i18n = query.elements, query.elements_i18n
        query.join("elements_i18n", i18n, i18n.c.element_id == elements.c.id)
        query.and_where(i18n.c.locale == query.locale)
        query.add_select(
            id=elements.c.id,
            type=elements.c.type,
            enabled=elements.c.enabled,
            archived=elements.c.archived,
            date_created=elements.c.date_created,
            date_updated=elements.c.date_updated,
            slug=i18n.c.slug,
            uri=i18n.c.uri,
            locale_enabled=i18n.c.enabled,
        )

    def _join_content(
        self,
        query: ElementQuery,
        criteria: ElementCriteria,
        element_type: ElementTypeInterface,
    ) -> list:
        table_name = element_type.get_content_table_for_query(criteria)
        if not table_name:
            return []

        content = content_table(table_name).alias("content")
        query.join("content", content, content.c.element_id == query.elements.c.id)
        query.and_where(content.c.locale == query.locale)
        query.content_table = table_name

        query.add_select(content_id=content.c.id)
        if element_type.has_titles():
            query.add_select(title=content.c.title)

        fields = element_type.get_fields_for_query(criteria)
        for field in fields:
            if not field.has_content_column():
                continue
            column_name = field.column_name
            if column_name not in content.c:
                raise ConfigurationError(
                    f"Content table {table_name!r} has no column for field {field.handle!r}"
                )
            query.add_select(**{column_name: content.c[column_name]})
            query.field_columns.append({"handle": field.handle, "column": column_name})
        return fields

    def _apply_core_params(
        self,
        query: ElementQuery,
        criteria: ElementCriteria,
        element_type: ElementTypeInterface,
    ) -> bool:
        elements, i18n = query.elements, query.elements_i18n

        if _is_empty_id(criteria.id):
            return False
        if criteria.id is not None:
            query.and_where(parse_param(elements.c.id, criteria.id))

        if criteria.archived:
            query.and_where(elements.c.archived.is_(True))
        else:
            query.and_where(elements.c.archived.is_(False))
            if criteria.status:
                condition = self._status_condition(query, criteria, element_type)
                if condition is False:
                    return False
                query.and_where(condition)

        if criteria.date_created is not None:
            query.and_where(parse_date_param(elements.c.date_created, criteria.date_created))
        if criteria.date_updated is not None:
            query.and_where(parse_date_param(elements.c.date_updated, criteria.date_updated))

        if criteria.title and element_type.has_titles() and query.content_table is not None:
            query.and_where(parse_param(query.table("content").c.title, criteria.title))

        if criteria.slug:
            query.and_where(parse_param(i18n.c.slug, criteria.slug))
        if criteria.uri:
            query.and_where(parse_param(i18n.c.uri, criteria.uri))
        if criteria.locale_enabled:
            query.and_where(i18n.c.enabled.is_(True))

        return True

    def _status_condition(
        self,
        query: ElementQuery,
        criteria: ElementCriteria,
        element_type: ElementTypeInterface,
    ) -> Any:
        statuses = criteria.status
        if isinstance(statuses, str):
            statuses = [part.strip() for part in statuses.split(",") if part.strip()]
        elif not isinstance(statuses, (list, tuple, set, frozenset)):
            statuses = [statuses]

        supported = element_type.get_statuses()
        conditions = []
        for status in statuses:
            status = str(getattr(status, "value", status)).lower()
            if status not in supported:
                continue
            if status == ElementStatus.ENABLED.value:
                conditions.append(query.elements.c.enabled.is_(True))
            elif status == ElementStatus.DISABLED.value:
                conditions.append(query.elements.c.enabled.is_(False))
            else:
                condition = element_type.get_element_query_status_condition(query, status)
                if condition is False:
                    return False
                if condition is not None and condition is not True:
                    conditions.append(condition)

        if not conditions:
            return None
        if len(conditions) == 1:
            return conditions[0]
        return sa.or_(*conditions)
