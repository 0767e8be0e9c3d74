"""
Element criteria: a typed constraint object bound to one element type.

Well-known constraints are plain attributes. Constraints declared by the element type
(``section``, ``group``, ``username`` ...) live in ``params``; constraints on custom fields
live in ``fields``, keyed by field handle. ``None`` always means "unconstrained".
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from ..infra.settings import settings

if TYPE_CHECKING:
    from ..services.elements import Elements
    from .models import Element

# Attributes that are not query constraints but shape the result
RESULT_ATTRIBUTES = ("order", "fixed_order", "offset", "limit", "index_by")


@dataclass(eq=False)
class ElementCriteria:
    element_type: str

    id: Any = None
    status: Any = "enabled"
    archived: bool = False
    locale: str | None = None
    locale_enabled: bool = True
    date_created: Any = None
    date_updated: Any = None
    title: Any = None
    slug: Any = None
    uri: Any = None
    related_to: Any = None
    search: str | None = None
    ref: Any = None

    # Structure navigation
    ancestor_of: Any = None
    ancestor_dist: int | None = None
    descendant_of: Any = None
    descendant_dist: int | None = None
    sibling_of: Any = None
    prev_sibling_of: Any = None
    next_sibling_of: Any = None
    positioned_before: Any = None
    positioned_after: Any = None
    level: Any = None

    order: str | None = None
    fixed_order: bool = False
    offset: int | None = None
    limit: int | None = field(default_factory=lambda: settings.default_query_limit)
    index_by: str | None = None

    params: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)

    _service: Elements | None = field(default=None, repr=False)

    @classmethod
    def attribute_names(cls) -> set[str]:
        return {f.name for f in fields(cls) if not f.name.startswith("_")} - {
            "element_type",
            "params",
            "fields",
        }

    def set(self, **attributes: Any) -> ElementCriteria:
        """
        Set constraints by name and return self for chaining.

        Names are routed to a well-known attribute, a type-declared param, or otherwise
        treated as a field handle.
        """
        known = self.attribute_names()
        for name, value in attributes.items():
            if name in known:
                setattr(self, name, value)
            elif name in self.params:
                self.params[name] = value
            else:
                self.fields[name] = value
        return self

    def set_attributes(self, attributes: Mapping[str, Any]) -> ElementCriteria:
        return self.set(**dict(attributes))

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.attribute_names():
            return getattr(self, name)
        if name in self.params:
            return self.params[name]
        return self.fields.get(name, default)

    def copy(self) -> ElementCriteria:
        duplicate = copy.copy(self)
        duplicate.params = copy.deepcopy(self.params)
        duplicate.fields = copy.deepcopy(self.fields)
        return duplicate

    # Execution helpers, available once the criteria is bound to an Elements service

    def _require_service(self) -> Elements:
        if self._service is None:
            raise RuntimeError("Criteria is not bound to an Elements service")
        return self._service

    def find(self) -> list[Element] | dict[Any, Element]:
        return self._require_service().find_elements(self)

    def first(self) -> Element | None:
        one = self.copy()
        one.limit = 1
        one.index_by = None
        results = self._require_service().find_elements(one)
        return results[0] if results else None

    def ids(self) -> list[int]:
        return self._require_service().find_elements(self, just_ids=True)

    def total(self) -> int:
        return self._require_service().get_total_elements(self)
