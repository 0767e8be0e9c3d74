"""
Derived (rendered output) caches.

Entries are tagged with the element ids they were rendered from and, for output built
from element queries, the element types those queries were over. Saving or deleting an
element drops every entry tagged with it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..domain.interfaces import DerivedCacheInterface
from ..domain.models import Element
from ..infra.logging import get_logger

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    value: Any
    element_ids: frozenset[int] = field(default_factory=frozenset)
    # Types of the element queries the value was built from
    query_types: frozenset[str] = field(default_factory=frozenset)


class TemplateCacheService(DerivedCacheInterface):
    def __init__(self, elements: Elements | None = None):
        self.elements = elements
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def set(
        self,
        key: str,
        value: Any,
        *,
        element_ids: Iterable[int] = (),
        query_types: Iterable[str] = (),
    ) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value,
                element_ids=frozenset(int(i) for i in element_ids),
                query_types=frozenset(t.lower() for t in query_types),
            )

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        return entry.value if entry is not None else default

    def has(self, key: str) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # Invalidation -----------------------------------------------------------

    def delete_caches_by_element(self, element: Element) -> None:
        if element.id:
            self._drop(
                lambda entry: element.id in entry.element_ids
                or element.get_class_handle().lower() in entry.query_types
            )

    def delete_caches_by_element_id(
        self, element_ids: Iterable[int], delete_query_caches: bool = True
    ) -> None:
        ids = {int(element_id) for element_id in element_ids if element_id}
        if not ids:
            return

        types: set[str] = set()
        if delete_query_caches and self.elements is not None:
            types = {t.lower() for t in self.elements.get_element_type_by_id(sorted(ids))}

        self._drop(lambda entry: bool(entry.element_ids & ids) or bool(entry.query_types & types))

    def delete_caches_by_element_type(self, element_type: str) -> None:
        handle = element_type.lower()
        self._drop(lambda entry: handle in entry.query_types)

    def _drop(self, predicate) -> None:
        with self._lock:
            stale = [key for key, entry in self._entries.items() if predicate(entry)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("template_caches_deleted", count=len(stale))
