from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.entities import RelationRecord
from ..domain.fields import Field
from ..domain.models import Element
from ..infra.uow import transaction


class RelationsService:
    """Writes the relation rows of relation fields."""

    def __init__(self, db: Session):
        self.db = db

    def save_relations(self, field: Field, source: Element, target_ids: list[int]) -> None:
        """
        Replace the targets ``source`` relates to through ``field``.

        Untranslatable fields share one set of relations across locales (``source_locale``
        is NULL); translatable fields keep one set per locale.
        """
        source_locale = source.locale if field.translatable else None
        unique_ids = list(dict.fromkeys(target_ids))

        with transaction(self.db):
            condition = [RelationRecord.field_id == field.id, RelationRecord.source_id == source.id]
            if source_locale is None:
                condition.append(RelationRecord.source_locale.is_(None))
            else:
                condition.append(RelationRecord.source_locale == source_locale)
            self.db.execute(delete(RelationRecord).where(*condition))

            for sort_order, target_id in enumerate(unique_ids, start=1):
                self.db.add(
                    RelationRecord(
                        field_id=field.id,
                        source_id=source.id,
                        source_locale=source_locale,
                        target_id=target_id,
                        sort_order=sort_order,
                    )
                )
            self.db.flush()

    def get_target_ids(self, field: Field, source_id: int, locale: str | None = None) -> list[int]:
        stmt = (
            select(RelationRecord.target_id)
            .where(RelationRecord.field_id == field.id, RelationRecord.source_id == source_id)
            .order_by(RelationRecord.sort_order)
        )
        if locale is not None:
            stmt = stmt.where(
                (RelationRecord.source_locale.is_(None)) | (RelationRecord.source_locale == locale)
            )
        return list(self.db.scalars(stmt))
