"""
``related_to`` parameter parsing.

Accepted shapes::

    related_to=12                                  # related either way to element 12
    related_to=[12, 13]                            # related to any of them
    related_to={"source_element": 12, "field": "topics"}
    related_to={"target_element": entry}
    related_to=["and", {"element": 12}, {"element": 13}]

``source_element`` finds the targets a source relates to, ``target_element`` finds the
sources relating to a target, ``element`` matches either direction.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement

from ..domain.entities import RelationRecord
from ..domain.interfaces import RelationParserInterface
from ..domain.models import Element
from .params import split_param

if TYPE_CHECKING:
    from ..services.fields import FieldsService
    from .element_query import ElementQuery

logger = logging.getLogger(__name__)

RELATION_SORT_COLUMN = "source_sort_order"
_DIRECTIONS = ("element", "source_element", "target_element")


def to_element_ids(value: Any) -> list[int]:
    if value is None:
        return []
    if isinstance(value, Element):
        return [value.id] if value.id else []
    if isinstance(value, (list, tuple, set, frozenset)):
        ids: list[int] = []
        for item in value:
            ids.extend(to_element_ids(item))
        return ids
    if isinstance(value, str):
        return [int(part) for part in value.split(",") if part.strip().isdigit()]
    return [int(value)]


class RelationParamParser(RelationParserInterface):
    def __init__(self, fields: FieldsService):
        self.fields = fields
        self._relation_field_query = False
        self._join_count = 0

    @property
    def is_relation_field_query(self) -> bool:
        return self._relation_field_query

    def parse(self, related_to: Any, query: ElementQuery) -> ColumnElement[bool] | bool:
        self._relation_field_query = False

        if isinstance(related_to, Mapping) or isinstance(related_to, Element):
            glue, clauses = "or", [related_to]
        else:
            glue, clauses = split_param(related_to)
            # A plain list of ids (or elements) is one "element" clause, or one per id for "and"
            if clauses and not any(isinstance(clause, Mapping) for clause in clauses):
                if glue == "and":
                    clauses = [{"element": clause} for clause in clauses]
                else:
                    clauses = [{"element": clauses}]

        normalized = [self._normalize(clause) for clause in clauses]
        if not normalized:
            return False

        if (
            len(normalized) == 1
            and normalized[0]["direction"] == "source_element"
            and normalized[0]["field"] is not None
        ):
            return self._parse_relation_field_clause(normalized[0], query)

        conditions: list[ColumnElement[bool]] = []
        for clause in normalized:
            condition = self._parse_clause(clause, query)
            if condition is False:
                if glue == "and":
                    return False
                continue
            conditions.append(condition)

        if not conditions:
            return False
        if len(conditions) == 1:
            return conditions[0]
        return sa.and_(*conditions) if glue == "and" else sa.or_(*conditions)

    # ------------------------------------------------------------------------

    def _normalize(self, clause: Any) -> dict[str, Any]:
        if not isinstance(clause, Mapping):
            clause = {"element": clause}

        direction = next((key for key in _DIRECTIONS if clause.get(key) is not None), "element")
        return {
            "direction": direction,
            "ids": to_element_ids(clause.get(direction)),
            "field": clause.get("field"),
            "source_locale": clause.get("source_locale"),
        }

    def _field_ids(self, clause: Mapping[str, Any]) -> list[int] | None:
        if clause["field"] is None:
            return None
        _glue, references = split_param(clause["field"])
        return self.fields.get_relation_field_ids(references)

    def _relation_conditions(
        self,
        relations: Any,
        clause: Mapping[str, Any],
        query: ElementQuery,
    ) -> list[ColumnElement[bool]] | None:
        conditions: list[ColumnElement[bool]] = []

        field_ids = self._field_ids(clause)
        if field_ids is not None:
            if not field_ids:
                return None
            conditions.append(relations.c.field_id.in_(field_ids))

        locale = clause["source_locale"] or query.locale
        conditions.append(
            sa.or_(relations.c.source_locale.is_(None), relations.c.source_locale == locale)
        )
        return conditions

    def _exists(
        self,
        clause: Mapping[str, Any],
        query: ElementQuery,
        *,
        reverse: bool,
    ) -> ColumnElement[bool] | bool:
        self._join_count += 1
        name = f"{'targets' if reverse else 'sources'}{self._join_count}"
        relations = RelationRecord.__table__.alias(name)

        conditions = self._relation_conditions(relations, clause, query)
        if conditions is None:
            return False

        if reverse:
            # Elements that relate to one of the given targets
            conditions += [
                relations.c.source_id == query.elements.c.id,
                relations.c.target_id.in_(clause["ids"]),
            ]
        else:
            # Elements the given sources relate to
            conditions += [
                relations.c.target_id == query.elements.c.id,
                relations.c.source_id.in_(clause["ids"]),
            ]

        return sa.exists().where(*conditions)

    def _parse_clause(self, clause: Mapping[str, Any], query: ElementQuery) -> ColumnElement[bool] | bool:
        if not clause["ids"]:
            return False

        direction = clause["direction"]
        if direction == "source_element":
            return self._exists(clause, query, reverse=False)
        if direction == "target_element":
            return self._exists(clause, query, reverse=True)

        either = [
            condition
            for condition in (
                self._exists(clause, query, reverse=False),
                self._exists(clause, query, reverse=True),
            )
            if condition is not False
        ]
        if not either:
            return False
        return sa.or_(*either)

    def _parse_relation_field_clause(
        self, clause: Mapping[str, Any], query: ElementQuery
    ) -> ColumnElement[bool] | bool:
        """Join the relations table so rows can be ordered by the relation sort order."""
        if not clause["ids"]:
            return False

        relations = RelationRecord.__table__.alias("sources1")
        conditions = self._relation_conditions(relations, clause, query)
        if conditions is None:
            return False

        query.join("sources1", relations, relations.c.target_id == query.elements.c.id)
        self._relation_field_query = True
        logger.debug("Relation field query on sources %s", clause["ids"])
        return sa.and_(relations.c.source_id.in_(clause["ids"]), *conditions)
