"""
In-memory element models.

An element instance is always bound to one locale: the shared attributes come from
``elements``, the localized ones from ``elements_i18n``, and the free-form field values
from the element type's content table (held on a ``Content`` object).
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any, ClassVar

from ..shared.types import ElementStatus


@dataclass(eq=False)
class Content:
    """Field values of one element in one locale."""

    id: int | None = None
    element_id: int | None = None
    locale: str | None = None
    title: str | None = None
    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict, repr=False)

    _BASE_ATTRIBUTES: ClassVar[tuple[str, ...]] = ("id", "element_id", "locale", "title")

    def get_attributes(self) -> dict[str, Any]:
        attributes = {name: getattr(self, name) for name in self._BASE_ATTRIBUTES}
        attributes.update(self.values)
        return attributes

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        for name, value in attributes.items():
            if name in self._BASE_ATTRIBUTES:
                setattr(self, name, value)
            else:
                self.values[name] = value

    def get(self, handle: str, default: Any = None) -> Any:
        return self.values.get(handle, default)

    def add_error(self, attribute: str, message: str) -> None:
        self.errors.setdefault(attribute, []).append(message)

    def has_errors(self, attribute: str | None = None) -> bool:
        if attribute is None:
            return bool(self.errors)
        return bool(self.errors.get(attribute))

    def copy(self) -> Content:
        return Content(
            id=self.id,
            element_id=self.element_id,
            locale=self.locale,
            title=self.title,
            values=dict(self.values),
        )


@dataclass(eq=False)
class Element:
    """Base element model shared by every element type."""

    element_type: ClassVar[str] = "Element"

    id: int | None = None
    enabled: bool = True
    archived: bool = False
    locale: str | None = None
    locale_enabled: bool = True
    slug: str | None = None
    uri: str | None = None
    date_created: datetime | None = None
    date_updated: datetime | None = None
    field_layout_id: int | None = None

    # Structure position, set when the query joined a structure
    structure_id: int | None = None
    root: int | None = None
    lft: int | None = None
    rgt: int | None = None
    level: int | None = None

    _content: Content | None = field(default=None, init=False, repr=False)
    _prev: Any = field(default=None, init=False, repr=False)
    _next: Any = field(default=None, init=False, repr=False)
    _errors: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)
    _site_url: str | None = field(default=None, init=False, repr=False)

    @classmethod
    def populate(cls, row: Mapping[str, Any]) -> Element:
        """Build an instance from a query row, ignoring columns the model does not know."""
        names = {f.name for f in fields(cls) if f.init}
        return cls(**{key: value for key, value in row.items() if key in names})

    def get_class_handle(self) -> str:
        return self.element_type

    # Content --------------------------------------------------------------

    def get_content(self) -> Content:
        if self._content is None:
            self._content = Content(element_id=self.id, locale=self.locale)
        return self._content

    def set_content(self, content: Content | Mapping[str, Any]) -> None:
        if isinstance(content, Content):
            self._content = content
        else:
            fresh = Content()
            fresh.set_attributes(content)
            self._content = fresh

    def has_content(self) -> bool:
        return self._content is not None

    @property
    def title(self) -> str | None:
        return self._content.title if self._content is not None else None

    @title.setter
    def title(self, value: str | None) -> None:
        self.get_content().title = value

    def get_field_value(self, handle: str, default: Any = None) -> Any:
        return self.get_content().values.get(handle, default)

    def set_field_value(self, handle: str, value: Any) -> None:
        self.get_content().values[handle] = value

    def set_field_values(self, values: Mapping[str, Any]) -> None:
        self.get_content().values.update(values)

    # Attribute access used by reference tags and URI formats -----------------

    def get_attribute(self, name: str) -> Any:
        """Return a named attribute, field value, or computed value (``url``, ``title``).

        Returns None when the element has no such attribute.
        """
        if name == "url":
            return self.get_url()
        if name == "title":
            return self.title
        if name == "ref":
            return self.get_ref()
        if name in {f.name for f in fields(self) if f.init}:
            return getattr(self, name)
        if self._content is not None and name in self._content.values:
            return self._content.values[name]
        return None

    # Errors -----------------------------------------------------------------

    def add_error(self, attribute: str, message: str) -> None:
        self._errors.setdefault(attribute, []).append(message)

    def add_errors(self, errors: Mapping[str, list[str]]) -> None:
        for attribute, messages in errors.items():
            for message in messages:
                self.add_error(attribute, message)

    def get_errors(self, attribute: str | None = None) -> dict[str, list[str]] | list[str]:
        if attribute is None:
            return self._errors
        return self._errors.get(attribute, [])

    def has_errors(self, attribute: str | None = None) -> bool:
        if attribute is None:
            return bool(self._errors)
        return bool(self._errors.get(attribute))

    def clear_errors(self) -> None:
        self._errors = {}

    # Result sequence navigation ---------------------------------------------

    def get_prev(self) -> Any:
        return self._prev

    def set_prev(self, element: Any) -> None:
        self._prev = element

    def get_next(self) -> Any:
        return self._next

    def set_next(self, element: Any) -> None:
        self._next = element

    # Misc -------------------------------------------------------------------

    def copy(self) -> Element:
        """Shallow copy for another locale; errors and result links are not shared."""
        duplicate = copy.copy(self)
        duplicate._errors = {}
        duplicate._prev = None
        duplicate._next = None
        return duplicate

    def get_status(self) -> str:
        return ElementStatus.ENABLED.value if self.enabled else ElementStatus.DISABLED.value

    def get_ref(self) -> str | None:
        return None

    def get_url(self) -> str | None:
        if self.uri is None:
            return None
        base = self._site_url or "/"
        if self.uri == "__home__":
            return base
        return base.rstrip("/") + "/" + self.uri

    def __str__(self) -> str:
        return str(self.title or self.slug or self.id or "")


@dataclass(eq=False)
class Entry(Element):
    element_type: ClassVar[str] = "Entry"

    section_id: int | None = None
    section_handle: str | None = None
    author_id: int | None = None
    post_date: datetime | None = None
    expiry_date: datetime | None = None
    # Parent to place a new structure entry under; not persisted on its own
    new_parent_id: int | None = None

    def get_status(self) -> str:
        if not self.enabled:
            return ElementStatus.DISABLED.value
        now = datetime.now(UTC)
        post_date = _aware(self.post_date)
        expiry_date = _aware(self.expiry_date)
        if post_date is not None and post_date > now:
            return ElementStatus.PENDING.value
        if expiry_date is not None and expiry_date <= now:
            return ElementStatus.EXPIRED.value
        return ElementStatus.LIVE.value

    def get_ref(self) -> str | None:
        if self.section_handle and self.slug:
            return f"{self.section_handle}/{self.slug}"
        return None


@dataclass(eq=False)
class Category(Element):
    element_type: ClassVar[str] = "Category"

    group_id: int | None = None
    group_handle: str | None = None
    new_parent_id: int | None = None

    def get_ref(self) -> str | None:
        if self.group_handle and self.slug:
            return f"{self.group_handle}/{self.slug}"
        return None


@dataclass(eq=False)
class User(Element):
    element_type: ClassVar[str] = "User"

    username: str | None = None
    email: str | None = None
    locked: bool = False

    def get_status(self) -> str:
        if self.locked:
            return ElementStatus.LOCKED.value
        return super().get_status()

    def get_ref(self) -> str | None:
        return self.username

    def __str__(self) -> str:
        return self.username or super().__str__()


@dataclass(eq=False)
class MatrixBlock(Element):
    element_type: ClassVar[str] = "MatrixBlock"

    owner_id: int | None = None
    owner_locale: str | None = None
    field_id: int | None = None
    type_id: int | None = None
    type_handle: str | None = None
    sort_order: int | None = None


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
