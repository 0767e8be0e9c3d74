"""
Deleting and merging elements.

Deleting an element keeps the structures it was in intact: its children are promoted to
its place before its node is removed. Matrix blocks owned by a deleted element are
deleted with it (through the same path, so their own nodes and index rows go too).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from ..domain.entities import ElementRecord, RelationRecord, SearchIndexRecord, StructureElementRecord
from ..domain.events import (
    EVENT_AFTER_MERGE_ELEMENTS,
    EVENT_BEFORE_DELETE_ELEMENTS,
    DeleteElementsEvent,
    MergeElementsEvent,
)
from ..infra.logging import get_logger
from ..infra.uow import transaction
from ..query.relations import to_element_ids
from ..shared.types import TaskKind

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)

REFERENCE_TASK_DESCRIPTION = "Updating element references"


def _lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


class ElementRemover:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db

    def merge_elements_by_ids(self, merged_element_id: int, prevailing_element_id: int) -> bool:
        """
        Fold one element into another, then delete it.

        Relations and structure positions that pointed at the merged element are moved to
        the prevailing one, unless the prevailing element already has an equivalent.
        Reference tags in stored content are rewritten later by a queued task.

        Returns:
            True if the merged element was deleted
        """
        merged_element_id = int(merged_element_id)
        prevailing_element_id = int(prevailing_element_id)

        with transaction(self.db):
            self._retarget_relations(merged_element_id, prevailing_element_id)
            self._take_over_structure_nodes(merged_element_id, prevailing_element_id)

            element_type = self.elements.get_element_type_by_id(prevailing_element_id)
            if element_type:
                prefix = "{" + _lcfirst(element_type) + ":"
                for suffix in (":", "}"):
                    self.elements.tasks.create_task(
                        TaskKind.FIND_AND_REPLACE,
                        REFERENCE_TASK_DESCRIPTION,
                        {
                            "find": f"{prefix}{merged_element_id}{suffix}",
                            "replace": f"{prefix}{prevailing_element_id}{suffix}",
                        },
                    )

            self.elements.events.trigger(
                EVENT_AFTER_MERGE_ELEMENTS,
                MergeElementsEvent(
                    merged_element_id=merged_element_id,
                    prevailing_element_id=prevailing_element_id,
                ),
            )

            success = self.delete_element_by_id(merged_element_id)

        logger.info(
            "elements_merged",
            merged_element_id=merged_element_id,
            prevailing_element_id=prevailing_element_id,
        )
        return success

    def _retarget_relations(self, merged_id: int, prevailing_id: int) -> None:
        relations = self.db.execute(
            select(
                RelationRecord.id,
                RelationRecord.field_id,
                RelationRecord.source_id,
                RelationRecord.source_locale,
            ).where(RelationRecord.target_id == merged_id)
        ).all()

        for relation in relations:
            if relation.source_locale is None:
                same_locale = RelationRecord.source_locale.is_(None)
            else:
                same_locale = RelationRecord.source_locale == relation.source_locale
            duplicate = self.db.scalar(
                select(func.count())
                .select_from(RelationRecord)
                .where(
                    RelationRecord.field_id == relation.field_id,
                    RelationRecord.source_id == relation.source_id,
                    same_locale,
                    RelationRecord.target_id == prevailing_id,
                )
            )
            # Duplicates stay pointed at the merged element and go away with it
            if not duplicate:
                self.db.execute(
                    update(RelationRecord)
                    .where(RelationRecord.id == relation.id)
                    .values(target_id=prevailing_id)
                )

    def _take_over_structure_nodes(self, merged_id: int, prevailing_id: int) -> None:
        nodes = self.db.execute(
            select(StructureElementRecord.id, StructureElementRecord.structure_id).where(
                StructureElementRecord.element_id == merged_id
            )
        ).all()

        for node in nodes:
            already_there = self.db.scalar(
                select(func.count())
                .select_from(StructureElementRecord)
                .where(
                    StructureElementRecord.structure_id == node.structure_id,
                    StructureElementRecord.element_id == prevailing_id,
                )
            )
            if not already_there:
                self.db.execute(
                    update(StructureElementRecord)
                    .where(StructureElementRecord.id == node.id)
                    .values(element_id=prevailing_id)
                )

    def delete_element_by_id(self, element_ids: int | Iterable[int]) -> bool:
        """
        Delete one or more elements.

        Returns:
            True if at least one element row was deleted; False for an empty input
        """
        if not element_ids:
            return False
        ids = to_element_ids(element_ids)
        if not ids:
            return False

        with transaction(self.db):
            self.elements.events.trigger(
                EVENT_BEFORE_DELETE_ELEMENTS, DeleteElementsEvent(element_ids=list(ids))
            )

            structures = self.elements.structures
            for element_id in ids:
                for node in structures.get_nodes_for_element(element_id):
                    for child in structures.get_children(node):
                        self.db.refresh(node)
                        self.db.refresh(child)
                        structures.move_before(child, node)
                    self.db.refresh(node)
                    structures.delete_node(node)

            self.elements.caches.delete_caches_by_element_id(ids, False)

            block_ids = self.elements.matrix.get_block_ids_by_owner(ids)
            if block_ids:
                self.elements.matrix.delete_block_by_id(block_ids)

            if len(ids) == 1:
                condition = ElementRecord.id == ids[0]
                index_condition = SearchIndexRecord.element_id == ids[0]
            else:
                condition = ElementRecord.id.in_(ids)
                index_condition = SearchIndexRecord.element_id.in_(ids)

            result = self.db.execute(delete(ElementRecord).where(condition))
            affected = result.rowcount or 0
            self.db.execute(delete(SearchIndexRecord).where(index_condition))
            # Rows removed by foreign key cascades may still sit in the identity map
            self.db.expire_all()

        logger.info("elements_deleted", element_ids=ids, affected=affected)
        return affected > 0

    def delete_elements_by_type(self, element_type: str) -> bool:
        """Delete every element of a type and drop the caches built from queries over it."""
        handle = self.elements.element_types.require(element_type).get_class_handle()
        ids = list(self.db.scalars(select(ElementRecord.id).where(ElementRecord.type == handle)))
        if not ids:
            return False

        with transaction(self.db):
            deleted = self.delete_element_by_id(ids)
            self.elements.caches.delete_caches_by_element_type(handle)
        return deleted
