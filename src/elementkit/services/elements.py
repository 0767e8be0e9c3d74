"""
Elements service: the one entry point for querying and persisting elements.

``Elements`` wires the query compiler, the result materializer and the write
orchestrators to one database session. Everything that needs to talk about elements
(element types, field types, matrix blocks, reference tags) goes through it.

Usage:
    with session() as db:
        elements = Elements(db)
        entries = elements.get_criteria("Entry", section="news", limit=10).find()
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.criteria import ElementCriteria
from ..domain.entities import ElementLocaleRecord, ElementRecord
from ..domain.events import EventBus
from ..domain.models import Element
from ..elementtypes.base import BaseElementType
from ..helpers.element_helper import HOMEPAGE_URI
from ..infra.logging import get_logger
from ..infra.settings import settings
from ..query.compiler import ElementQueryCompiler
from ..query.materializer import PlaceholderOverlay, ResultMaterializer
from ..query.structure import StructureNavigator
from ..registries.element_type_registry import ElementTypeRegistry
from .caches import TemplateCacheService
from .categories import CategoriesService
from .content import ContentService
from .deletion import ElementRemover
from .fields import FieldsService
from .matrix import MatrixService
from .persistence import ElementSaver
from .refs import ReferenceTagParser
from .relations import RelationsService
from .search import SearchService
from .sections import SectionsService
from .structures import StructureService
from .tasks import TaskQueue

logger = get_logger(__name__)


class Elements:
    def __init__(
        self,
        db: Session,
        *,
        events: EventBus | None = None,
        placeholders: PlaceholderOverlay | None = None,
        primary_locale: str | None = None,
        app_locale: str | None = None,
    ):
        self.db = db
        self.events = events if events is not None else EventBus()
        self.placeholders = placeholders if placeholders is not None else PlaceholderOverlay()
        self.primary_locale = primary_locale or settings.primary_locale
        self.app_locale = app_locale or settings.get_app_locale()

        self.element_types = ElementTypeRegistry(self)
        self.fields = FieldsService(self)
        self.content = ContentService(self)
        self.relations = RelationsService(db)
        self.structures = StructureService(db)
        self.search = SearchService(self)
        self.caches = TemplateCacheService(self)
        self.tasks = TaskQueue(self)
        self.matrix = MatrixService(self)
        self.sections = SectionsService(self)
        self.categories = CategoriesService(self)

        self.compiler = ElementQueryCompiler(
            db,
            self.element_types,
            self.fields,
            self.search,
            StructureNavigator(self._resolve_reference, self.structures.locate_parent_bounds),
            primary_locale=self.primary_locale,
            app_locale=self.app_locale,
        )
        self.materializer = ResultMaterializer(self.events)

        self._saver = ElementSaver(self)
        self._remover = ElementRemover(self)
        self._refs = ReferenceTagParser(self)

    # Element types ----------------------------------------------------------

    def get_all_element_types(self) -> list[BaseElementType]:
        return self.element_types.all()

    def get_element_type(self, handle: str) -> BaseElementType | None:
        return self.element_types.get(handle)

    # Criteria and finding ---------------------------------------------------

    def get_criteria(self, element_type: str, **attributes: Any) -> ElementCriteria:
        """
        Build criteria for ``element_type``, pre-populated with the type's own params.

        Raises:
            ConfigurationError: If the element type does not exist
        """
        resolved = self.element_types.require(element_type)
        criteria = ElementCriteria(
            element_type=resolved.get_class_handle(),
            params=resolved.define_criteria_attributes(),
            _service=self,
        )
        criteria.set(**attributes)
        return criteria

    def build_elements_query(self, criteria: ElementCriteria):
        """Compile ``criteria``; None means the criteria can never match."""
        return self.compiler.compile(criteria)

    def find_elements(
        self,
        criteria: ElementCriteria,
        just_ids: bool = False,
        placeholders: PlaceholderOverlay | None = None,
    ) -> list[Any] | dict[Any, Element]:
        """
        Run ``criteria`` and return elements (or just their ids), in query order.

        When ``criteria.index_by`` is set (and ``just_ids`` is not), a dict keyed by that
        attribute is returned instead of a list.
        """
        empty: list[Any] | dict[Any, Element] = {} if criteria.index_by and not just_ids else []

        query = self.compiler.compile(criteria)
        if query is None:
            return empty
        if not self.compiler.apply_order_and_paging(query, criteria):
            return empty

        if just_ids:
            return list(self.db.execute(query.statement(just_ids=True)).scalars())

        element_type = self.element_types.require(criteria.element_type)
        rows = self.db.execute(query.statement()).mappings().all()
        return self.materializer.materialize(
            rows,
            element_type,
            locale=criteria.locale,
            content_table=query.content_table,
            field_columns=query.field_columns,
            index_by=criteria.index_by,
            placeholders=placeholders if placeholders is not None else self.placeholders,
        )

    def get_total_elements(self, criteria: ElementCriteria) -> int:
        """Number of elements matching ``criteria``, ignoring offset and limit."""
        query = self.compiler.compile(criteria)
        if query is None:
            return 0
        element_ids = self.compiler.element_ids(query)
        if criteria.search:
            element_ids = self.search.filter_element_ids_by_query(element_ids, criteria.search, False)
        return len(element_ids)

    # Lookups ----------------------------------------------------------------

    def get_element_by_id(
        self,
        element_id: Any,
        element_type: str | None = None,
        locale: str | None = None,
    ) -> Element | None:
        """Fetch one element by id regardless of its status."""
        if not element_id:
            return None
        if element_type is None:
            element_type = self.get_element_type_by_id(element_id)
            if element_type is None:
                return None

        criteria = self.get_criteria(
            element_type, id=element_id, locale=locale, status=None, locale_enabled=False
        )
        return criteria.first()

    def get_element_by_uri(
        self,
        uri: str,
        locale: str | None = None,
        enabled_only: bool = False,
    ) -> Element | None:
        """Fetch the element at ``uri`` in ``locale``; an empty URI is the homepage."""
        if uri == "":
            uri = HOMEPAGE_URI
        locale = locale or self.app_locale

        stmt = (
            select(ElementRecord.id, ElementRecord.type)
            .join(ElementLocaleRecord, ElementLocaleRecord.element_id == ElementRecord.id)
            .where(ElementLocaleRecord.uri == uri, ElementLocaleRecord.locale == locale)
        )
        if enabled_only:
            stmt = stmt.where(
                ElementLocaleRecord.enabled.is_(True),
                ElementRecord.enabled.is_(True),
                ElementRecord.archived.is_(False),
            )

        row = self.db.execute(stmt).first()
        if row is None:
            return None
        return self.get_element_by_id(row.id, row.type, locale)

    def get_element_type_by_id(self, element_id: Any) -> str | list[str] | None:
        """
        Return the type handle stored for one id, or the distinct handles for a list of ids.
        """
        if isinstance(element_id, (list, tuple, set, frozenset)):
            ids = [int(i) for i in element_id]
            if not ids:
                return []
            return list(
                self.db.scalars(
                    select(ElementRecord.type).where(ElementRecord.id.in_(ids)).distinct()
                )
            )
        return self.db.scalar(select(ElementRecord.type).where(ElementRecord.id == int(element_id)))

    def get_element_uri_for_locale(self, element_id: int, locale: str) -> str | None:
        return self.db.scalar(
            select(ElementLocaleRecord.uri).where(
                ElementLocaleRecord.element_id == element_id,
                ElementLocaleRecord.locale == locale,
            )
        )

    def get_enabled_locales_for_element(self, element_id: int) -> list[str]:
        return list(
            self.db.scalars(
                select(ElementLocaleRecord.locale)
                .where(
                    ElementLocaleRecord.element_id == element_id,
                    ElementLocaleRecord.enabled.is_(True),
                )
                .order_by(ElementLocaleRecord.id)
            )
        )

    # Saving -----------------------------------------------------------------

    def save_element(self, element: Element, validate_content: bool | None = None) -> bool:
        return self._saver.save_element(element, validate_content)

    def update_element_slug_and_uri(
        self,
        element: Element,
        update_other_locales: bool = True,
        update_descendants: bool = True,
    ) -> None:
        self._saver.update_element_slug_and_uri(element, update_other_locales, update_descendants)

    def update_element_slug_and_uri_in_other_locales(self, element: Element) -> None:
        self._saver.update_element_slug_and_uri_in_other_locales(element)

    def update_descendant_slugs_and_uris(self, element: Element) -> None:
        self._saver.update_descendant_slugs_and_uris(element)

    def set_placeholder_element(self, element: Element) -> None:
        """Substitute ``element`` for its stored version in later query results."""
        self.placeholders.set(element)

    # Merging and deleting ---------------------------------------------------

    def merge_elements_by_ids(self, merged_element_id: int, prevailing_element_id: int) -> bool:
        return self._remover.merge_elements_by_ids(merged_element_id, prevailing_element_id)

    def delete_element_by_id(self, element_ids: int | Iterable[int]) -> bool:
        return self._remover.delete_element_by_id(element_ids)

    def delete_elements_by_type(self, element_type: str) -> bool:
        return self._remover.delete_elements_by_type(element_type)

    # Reference tags ---------------------------------------------------------

    def parse_refs(self, text: str) -> str:
        return self._refs.parse(text)

    # ------------------------------------------------------------------------

    def _resolve_reference(self, value: Any, element_type: str, locale: str | None) -> Element | None:
        # Structure params accept an element or its id, read in the querying locale
        if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
            return self.get_element_by_id(int(value), element_type, locale)
        return None
