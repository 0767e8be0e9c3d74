"""Entry sections and their per-locale URI settings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from ..domain.entities import SectionLocaleRecord, SectionRecord
from ..domain.fields import FieldLayout
from ..infra.logging import get_logger
from ..infra.settings import settings
from ..infra.uow import transaction
from ..shared.types import SectionType

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)


class SectionsService:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db

    def create_section(
        self,
        handle: str,
        name: str | None = None,
        type: SectionType | str = SectionType.CHANNEL,
        *,
        locales: Mapping[str, Mapping[str, Any]] | None = None,
        field_layout: FieldLayout | None = None,
        has_urls: bool = True,
        max_levels: int | None = None,
    ) -> SectionRecord:
        """
        Create a section.

        Args:
            handle: Unique section handle
            name: Display name (defaults to the handle)
            type: ``single``, ``channel`` or ``structure``; structure sections get a tree
            locales: locale -> ``{"uri_format", "nested_uri_format", "enabled_by_default"}``;
                defaults to every site locale with ``<handle>/{slug}``
            field_layout: Saved layout for the section's entries
            has_urls: Whether entries get URIs
            max_levels: Depth limit of a structure section

        Returns:
            The saved section record
        """
        section_type = SectionType(getattr(type, "value", type))
        if locales is None:
            locales = {
                locale: {"uri_format": f"{handle}/{{slug}}"}
                for locale in settings.get_site_locale_ids()
            }

        with transaction(self.db):
            section = SectionRecord(
                handle=handle,
                name=name or handle,
                type=section_type.value,
                has_urls=has_urls,
                field_layout_id=field_layout.id if field_layout else None,
            )
            if section_type is SectionType.STRUCTURE:
                section.structure_id = self.elements.structures.create_structure(max_levels).id
            self.db.add(section)
            self.db.flush()

            for locale, options in locales.items():
                self.db.add(
                    SectionLocaleRecord(
                        section_id=section.id,
                        locale=locale,
                        enabled_by_default=options.get("enabled_by_default", True),
                        uri_format=options.get("uri_format"),
                        nested_uri_format=options.get("nested_uri_format"),
                    )
                )
            self.db.flush()

        logger.info("section_created", section_id=section.id, handle=handle, type=section_type.value)
        return section

    def get_section_by_id(self, section_id: int | None) -> SectionRecord | None:
        if not section_id:
            return None
        return self.db.get(SectionRecord, section_id)

    def get_section_by_handle(self, handle: str) -> SectionRecord | None:
        return self.db.scalar(select(SectionRecord).where(SectionRecord.handle == handle))

    def get_all_sections(self) -> list[SectionRecord]:
        return list(self.db.scalars(select(SectionRecord).order_by(SectionRecord.name)))

    def get_section_locales(self, section_id: int) -> dict[str, SectionLocaleRecord]:
        records = self.db.scalars(
            select(SectionLocaleRecord)
            .where(SectionLocaleRecord.section_id == section_id)
            .order_by(SectionLocaleRecord.id)
        )
        return {record.locale: record for record in records}
