"""Category groups. Every group is backed by its own structure."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from ..domain.entities import CategoryGroupLocaleRecord, CategoryGroupRecord
from ..domain.fields import FieldLayout
from ..infra.logging import get_logger
from ..infra.settings import settings
from ..infra.uow import transaction

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)


class CategoriesService:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db

    def create_group(
        self,
        handle: str,
        name: str | None = None,
        *,
        locales: Mapping[str, Mapping[str, Any]] | None = None,
        field_layout: FieldLayout | None = None,
        has_urls: bool = True,
        max_levels: int | None = None,
    ) -> CategoryGroupRecord:
        if locales is None:
            locales = {
                locale: {
                    "uri_format": f"{handle}/{{slug}}",
                    "nested_uri_format": "{parent.uri}/{slug}",
                }
                for locale in settings.get_site_locale_ids()
            }

        with transaction(self.db):
            structure = self.elements.structures.create_structure(max_levels)
            group = CategoryGroupRecord(
                handle=handle,
                name=name or handle,
                structure_id=structure.id,
                has_urls=has_urls,
                field_layout_id=field_layout.id if field_layout else None,
            )
            self.db.add(group)
            self.db.flush()

            for locale, options in locales.items():
                self.db.add(
                    CategoryGroupLocaleRecord(
                        group_id=group.id,
                        locale=locale,
                        uri_format=options.get("uri_format"),
                        nested_uri_format=options.get("nested_uri_format"),
                    )
                )
            self.db.flush()

        logger.info("category_group_created", group_id=group.id, handle=handle)
        return group

    def get_group_by_id(self, group_id: int | None) -> CategoryGroupRecord | None:
        if not group_id:
            return None
        return self.db.get(CategoryGroupRecord, group_id)

    def get_group_by_handle(self, handle: str) -> CategoryGroupRecord | None:
        return self.db.scalar(select(CategoryGroupRecord).where(CategoryGroupRecord.handle == handle))

    def get_all_groups(self) -> list[CategoryGroupRecord]:
        return list(self.db.scalars(select(CategoryGroupRecord).order_by(CategoryGroupRecord.name)))

    def get_group_locales(self, group_id: int) -> dict[str, CategoryGroupLocaleRecord]:
        records = self.db.scalars(
            select(CategoryGroupLocaleRecord)
            .where(CategoryGroupLocaleRecord.group_id == group_id)
            .order_by(CategoryGroupLocaleRecord.id)
        )
        return {record.locale: record for record in records}
