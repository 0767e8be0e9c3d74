"""
Saving elements.

A save writes the element row, the element type's own record, the content row and one
``elements_i18n`` row per locale the element type reports, then lets field types persist
whatever they keep outside the content table (relations, matrix blocks). Everything runs
in one unit of work: a failed save rolls back, a vetoed one commits without writing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update

from ..domain.entities import ElementLocaleRecord, ElementRecord, SearchIndexRecord
from ..domain.events import EVENT_AFTER_SAVE_ELEMENT, EVENT_BEFORE_SAVE_ELEMENT, ElementEvent
from ..domain.models import Element
from ..helpers.element_helper import MAX_URI_LENGTH, set_unique_uri, set_valid_slug
from ..infra.exceptions import ElementNotFoundError, InvariantError
from ..infra.logging import get_logger
from ..infra.settings import settings
from ..infra.uow import transaction

if TYPE_CHECKING:
    from ..elementtypes.base import BaseElementType
    from .elements import Elements

logger = get_logger(__name__)


class ElementSaver:
    def __init__(self, elements: Elements):
        self.elements = elements
        self.db = elements.db

    def save_element(self, element: Element, validate_content: bool | None = None) -> bool:
        """
        Save an element and its content in every locale it belongs to.

        Args:
            element: The element to save. New elements get their id back-filled.
            validate_content: Validate field values first. Defaults to the element's
                enabled state, so disabled drafts can be saved incomplete.

        Returns:
            True if the element was saved. False when validation failed, a listener
            vetoed the save, or a field type reported errors; the errors are on the element.

        Raises:
            ElementNotFoundError: If an existing element's row is gone
            InvariantError: If the element type reports no locales for the element
        """
        element_type = self.elements.element_types.require(element.get_class_handle())
        is_new_element = not element.id
        element.clear_errors()

        if not element_type.validate(element):
            logger.info("element_save_failed", element_type=element.get_class_handle(), errors=element.get_errors())
            return False

        if element_type.has_content():
            if validate_content is None:
                validate_content = bool(element.enabled)
            if validate_content and not self.elements.content.validate_content(element):
                element.add_errors(element.get_content().errors)
                logger.info("element_save_failed", element_id=element.id, errors=element.get_errors())
                return False

            if element_type.has_titles() and not (element.title or "").strip():
                handle = element.get_class_handle()
                element.title = f"New {handle}" if is_new_element else f"{handle} {element.id}"

        record = None
        if not is_new_element:
            record = self.db.get(ElementRecord, element.id)
            if record is None or record.type != element.get_class_handle():
                raise ElementNotFoundError(
                    f"No {element.get_class_handle()} exists with the ID {element.id}"
                )

        success = False
        vetoed = False
        try:
            with transaction(self.db) as scope:
                event = ElementEvent(element=element, is_new_element=is_new_element)
                self.elements.events.trigger(EVENT_BEFORE_SAVE_ELEMENT, event)

                if not event.perform_action:
                    vetoed = True
                else:
                    success = self._write(element, element_type, record, is_new_element)
                    if not success:
                        scope.request_rollback()
        except Exception:
            if is_new_element:
                self._forget_ids(element)
            raise

        if vetoed:
            logger.info("element_save_vetoed", element_id=element.id, element_type=element.get_class_handle())
            return False

        if not success:
            if is_new_element:
                self._forget_ids(element)
            logger.info("element_save_failed", element_id=element.id, errors=element.get_errors())
            return False

        self.elements.events.trigger(
            EVENT_AFTER_SAVE_ELEMENT, ElementEvent(element=element, is_new_element=is_new_element)
        )
        logger.info(
            "element_saved",
            element_id=element.id,
            element_type=element.get_class_handle(),
            is_new=is_new_element,
        )
        return True

    def _write(
        self,
        element: Element,
        element_type: BaseElementType,
        record: ElementRecord | None,
        is_new_element: bool,
    ) -> bool:
        if record is None:
            record = ElementRecord(type=element.get_class_handle())
            self.db.add(record)
        record.enabled = bool(element.enabled)
        record.archived = bool(element.archived)
        self.db.flush()

        if is_new_element:
            element.id = record.id
            if element.has_content():
                element.get_content().element_id = element.id
        element.date_created = record.date_created
        element.date_updated = record.date_updated

        element_type.save_type_record(element, is_new_element)

        locales = element_type.get_locales(element)
        if not locales:
            raise InvariantError(
                f"{element.get_class_handle()} {element.id} does not belong to any locale"
            )
        if not element.locale:
            element.locale = next(iter(locales))

        has_content = element_type.has_content()
        if has_content:
            self.elements.content.save_content(element, validate=False, update_other_locales=True)

        if not self._save_locales(element, element_type, locales, is_new_element):
            return False

        if not is_new_element:
            self._prune_locales(element, list(locales), has_content)

        layout = element_type.get_field_layout(element)
        if layout is not None:
            for layout_field in layout.get_fields():
                layout_field.field.field_type.on_after_element_save(element, self.elements)

        # Field types report failures (e.g. an invalid matrix block) on the element
        if element.has_errors():
            return False

        # Nested URIs of descendants embed this element's URI
        if not is_new_element:
            self.update_descendant_slugs_and_uris(element)

        self.elements.caches.delete_caches_by_element(element)
        return True

    def _save_locales(
        self,
        element: Element,
        element_type: BaseElementType,
        locales: dict[str, dict[str, Any]],
        is_new_element: bool,
    ) -> bool:
        existing: dict[str, ElementLocaleRecord] = {}
        if not is_new_element:
            existing = {
                locale_record.locale: locale_record
                for locale_record in self.db.scalars(
                    select(ElementLocaleRecord).where(ElementLocaleRecord.element_id == element.id)
                )
            }

        has_content = element_type.has_content()
        content_service = self.elements.content

        for locale_id, locale_info in locales.items():
            locale_record = existing.get(locale_id)
            if locale_record is None:
                locale_record = ElementLocaleRecord(
                    element_id=element.id,
                    locale=locale_id,
                    enabled=bool(locale_info.get("enabled_by_default", True)),
                )
                self.db.add(locale_record)

            if locale_id == element.locale:
                localized = element
            else:
                localized = element.copy()
                localized.locale = locale_id
                localized.slug = locale_record.slug if locale_id in existing else element.slug

            if has_content:
                if localized is not element:
                    content = content_service.get_content(localized) if not is_new_element else None
                    if content is None:
                        content = element.get_content().copy()
                        content.id = None
                        content.element_id = element.id
                        content.locale = locale_id
                    localized.set_content(content)

                if not localized.get_content().id:
                    content_service.save_content(localized, validate=False, update_other_locales=False)

            original_slug = localized.slug
            set_valid_slug(localized)
            if original_slug and not localized.slug:
                localized.slug = original_slug
                element.add_error("slug", "Slug is invalid.")
                logger.info("slug_invalid", element_id=element.id, locale=locale_id, slug=original_slug)
                return False
            if localized.slug and len(localized.slug) > MAX_URI_LENGTH:
                element.add_error("slug", f"Slug should contain at most {MAX_URI_LENGTH} characters.")
                return False

            set_unique_uri(
                self.db,
                localized,
                element_type.get_uri_format(localized),
                element_type.get_uri_format_context(localized),
            )

            locale_record.slug = localized.slug
            locale_record.uri = localized.uri
            if localized is element:
                locale_record.enabled = bool(element.locale_enabled)
            self.db.flush()

            self.elements.search.index_element_attributes(localized)

        return True

    def _prune_locales(self, element: Element, locale_ids: list[str], has_content: bool) -> None:
        """Drop the rows of locales the element no longer belongs to."""
        self.db.execute(
            delete(ElementLocaleRecord).where(
                ElementLocaleRecord.element_id == element.id,
                ElementLocaleRecord.locale.not_in(locale_ids),
            )
        )
        self.db.execute(
            delete(SearchIndexRecord).where(
                SearchIndexRecord.element_id == element.id,
                SearchIndexRecord.locale.not_in(locale_ids),
            )
        )
        if has_content:
            self.elements.content.delete_content_for_other_locales(element, locale_ids)

    @staticmethod
    def _forget_ids(element: Element) -> None:
        element.id = None
        if element.has_content():
            content = element.get_content()
            content.id = None
            content.element_id = None

    # Slugs and URIs ---------------------------------------------------------

    def update_element_slug_and_uri(
        self,
        element: Element,
        update_other_locales: bool = True,
        update_descendants: bool = True,
    ) -> None:
        """
        Recompute the element's URI in its locale and store it, optionally cascading to its
        other locales and to its descendants (whose nested URIs embed this one).
        """
        element_type = self.elements.element_types.require(element.get_class_handle())

        with transaction(self.db):
            set_unique_uri(
                self.db,
                element,
                element_type.get_uri_format(element),
                element_type.get_uri_format_context(element),
            )
            self.db.execute(
                update(ElementLocaleRecord)
                .where(
                    ElementLocaleRecord.element_id == element.id,
                    ElementLocaleRecord.locale == element.locale,
                )
                .values(slug=element.slug, uri=element.uri)
            )
            self.elements.caches.delete_caches_by_element(element)

            if update_other_locales:
                self.update_element_slug_and_uri_in_other_locales(element)
            if update_descendants:
                self.update_descendant_slugs_and_uris(element)

        logger.debug("element_uri_updated", element_id=element.id, locale=element.locale, uri=element.uri)

    def update_element_slug_and_uri_in_other_locales(self, element: Element) -> None:
        for locale_id in settings.get_site_locale_ids():
            if locale_id == element.locale:
                continue
            localized = self.elements.get_element_by_id(
                element.id, element.get_class_handle(), locale_id
            )
            if localized is not None:
                self.update_element_slug_and_uri(localized, False, False)

    def update_descendant_slugs_and_uris(self, element: Element) -> None:
        # Only elements placed in a structure have descendants
        if None in (element.root, element.lft, element.rgt, element.level):
            return
        children = self.elements.get_criteria(
            element.get_class_handle(),
            descendant_of=element,
            descendant_dist=1,
            status=None,
            locale_enabled=False,
            locale=element.locale,
            limit=None,
        ).find()
        for child in children:
            self.update_element_slug_and_uri(child, True, True)
