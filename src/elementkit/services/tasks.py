"""
Background task queue backed by the ``tasks`` table.

Tasks are recorded in the same transaction as the operation that queues them and run
later, synchronously, by :meth:`TaskQueue.run_pending` (from the CLI or a worker).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import select

from ..domain.entities import TaskRecord
from ..domain.interfaces import TaskQueueInterface
from ..infra.logging import get_logger
from ..infra.schema import content_table, content_table_names
from ..infra.uow import transaction
from ..shared.types import TaskKind

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)

STATUS_PENDING = "pending"
STATUS_DONE = "done"
STATUS_FAILED = "failed"

# Fixed content columns that never hold user text
_SKIP_COLUMNS = {"locale"}


class TaskQueue(TaskQueueInterface):
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db
        self._runners = {TaskKind.FIND_AND_REPLACE.value: self._run_find_and_replace}

    def create_task(self, kind: str, description: str, params: Mapping[str, Any]) -> TaskRecord:
        kind = getattr(kind, "value", kind)
        with transaction(self.db):
            task = TaskRecord(type=kind, description=description, params=dict(params))
            self.db.add(task)
            self.db.flush()
        logger.info("task_created", task_id=task.id, type=kind, description=description)
        return task

    def get_pending(self) -> list[TaskRecord]:
        return list(
            self.db.scalars(
                select(TaskRecord).where(TaskRecord.status == STATUS_PENDING).order_by(TaskRecord.id)
            )
        )

    def run_pending(self) -> int:
        """
        Run every pending task in creation order.

        A failing task is marked ``failed`` and the queue moves on.

        Returns:
            Number of tasks that completed
        """
        completed = 0
        for task in self.get_pending():
            runner = self._runners.get(task.type)
            if runner is None:
                logger.warning("task_unknown_type", task_id=task.id, type=task.type)
                continue
            try:
                with transaction(self.db):
                    runner(task.params or {})
                    task.status = STATUS_DONE
            except Exception as exc:
                logger.error("task_failed", task_id=task.id, type=task.type, error=str(exc))
                with transaction(self.db):
                    failed = self.db.get(TaskRecord, task.id)
                    if failed is not None:
                        failed.status = STATUS_FAILED
                continue
            completed += 1
            logger.info("task_completed", task_id=task.id, type=task.type)
        return completed

    # Runners ----------------------------------------------------------------

    def find_and_replace(self, find: str, replace: str) -> int:
        """Replace ``find`` with ``replace`` in every text column of every content table."""
        # Loading the fields declares every content table and column
        self.elements.fields.get_all_fields()

        changed = 0
        for name in content_table_names():
            table = content_table(name)
            for column in table.c:
                if column.name in _SKIP_COLUMNS or not isinstance(column.type, sa.String):
                    continue
                result = self.db.execute(
                    sa.update(table)
                    .where(column.contains(find, autoescape=True))
                    .values({column.name: sa.func.replace(column, find, replace)})
                )
                changed += result.rowcount or 0
        return changed

    def _run_find_and_replace(self, params: Mapping[str, Any]) -> None:
        changed = self.find_and_replace(params["find"], params["replace"])
        logger.debug("find_and_replace_done", find=params["find"], rows=changed)
