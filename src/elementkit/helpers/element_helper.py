"""
Slug and URI helpers used while saving elements.

URI formats are small templates: ``{slug}``, ``{id}`` or any other element attribute,
plus dotted lookups such as ``{parent.uri}`` into values the element type provides.
"""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from ..domain.entities import ElementLocaleRecord
from ..domain.models import Element
from ..infra.exceptions import UniqueUriError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

HOMEPAGE_URI = "__home__"
SLUG_WORD_SEPARATOR = "-"
MAX_URI_LENGTH = 255
MAX_URI_ATTEMPTS = 100

_TOKEN = re.compile(r"\{\s*([\w.]+)\s*\}")


def slugify(text: str) -> str:
    """Convert a title or user supplied slug into a URL-safe slug."""
    s = unicodedata.normalize("NFKD", text)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = s.strip().lower()
    s = re.sub(r"['’]", "", s)  # drop apostrophes: "don't" -> "dont"
    s = re.sub(r"[^\w]+", SLUG_WORD_SEPARATOR, s)
    s = s.replace("_", SLUG_WORD_SEPARATOR)
    s = re.sub(rf"{SLUG_WORD_SEPARATOR}+", SLUG_WORD_SEPARATOR, s)
    return s.strip(SLUG_WORD_SEPARATOR)


def set_valid_slug(element: Element) -> None:
    """Clean the element's slug, deriving it from the title when there is none."""
    slug = element.slug
    if not slug and element.title:
        slug = element.title
    element.slug = slugify(slug) if slug else None


def render_uri_format(uri_format: str, element: Element, context: dict[str, Any] | None = None) -> str:
    """Substitute ``{name}`` tokens from ``context`` first, then the element's attributes."""
    context = context or {}

    def replace(match: re.Match[str]) -> str:
        path = match.group(1).split(".")
        head, rest = path[0], path[1:]
        value = context[head] if head in context else element.get_attribute(head)
        for name in rest:
            if value is None:
                break
            value = value.get_attribute(name) if isinstance(value, Element) else getattr(value, name, None)
        return "" if value is None else str(value)

    uri = _TOKEN.sub(replace, uri_format)
    # A missing parent leaves a leading slash behind
    return re.sub(r"/{2,}", "/", uri).strip("/")


def set_unique_uri(
    db: Session,
    element: Element,
    uri_format: str | None,
    context: dict[str, Any] | None = None,
) -> None:
    """
    Render the element's URI, suffixing the slug (``-1``, ``-2`` ...) until it is unique
    in the element's locale.

    Raises:
        UniqueUriError: If no unique URI was found within ``MAX_URI_ATTEMPTS`` tries
    """
    if not uri_format:
        element.uri = None
        return

    if not element.slug:
        element.slug = str(int(element.date_created.timestamp())) if element.date_created else "element"

    original_slug = element.slug
    for attempt in range(MAX_URI_ATTEMPTS):
        test_slug = original_slug if attempt == 0 else f"{original_slug}{SLUG_WORD_SEPARATOR}{attempt}"
        element.slug = test_slug
        test_uri = render_uri_format(uri_format, element, context)
        element.slug = original_slug

        if len(test_uri) > MAX_URI_LENGTH:
            overflow = len(test_uri) - MAX_URI_LENGTH
            test_slug = test_slug[: max(1, len(test_slug) - overflow)]
            element.slug = test_slug
            test_uri = render_uri_format(uri_format, element, context)
            element.slug = original_slug

        if not test_uri:
            element.uri = None
            return

        if not _uri_taken(db, element, test_uri):
            element.slug = test_slug
            element.uri = test_uri
            return

    raise UniqueUriError(f"Could not find a unique URI for element {element.id} in {element.locale}")


def _uri_taken(db: Session, element: Element, uri: str) -> bool:
    stmt = select(func.count()).select_from(ElementLocaleRecord).where(
        ElementLocaleRecord.locale == element.locale,
        ElementLocaleRecord.uri == uri,
    )
    if element.id:
        stmt = stmt.where(ElementLocaleRecord.element_id != element.id)
    return bool(db.scalar(stmt))
