"""
Reference tag parsing.

A reference tag names an element and optionally one of its attributes::

    {entry:42}              -> URL of entry 42
    {entry:news/hello:title} -> title of the entry with slug "hello" in section "news"
    {user:admin:email}      -> email of the user "admin"

Tags are collected in one pass, resolved with one query per element type and selector
kind (ids, refs), and substituted in one final pass. Attribute values may contain tags
of their own; those are parsed recursively up to ``ref_tag_max_depth`` levels.
"""

from __future__ import annotations

import re
import secrets
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.models import Element
from ..infra.logging import get_logger
from ..infra.settings import settings

if TYPE_CHECKING:
    from .elements import Elements

logger = get_logger(__name__)

REF_TAG_PATTERN = re.compile(r"\{(\w+):([^:}]+)(?::([^:}]+))?\}")


@dataclass
class RefTag:
    token: str
    tag: str
    selector: str
    attribute: str | None = None


def _ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


class ReferenceTagParser:
    def __init__(self, elements: Elements, max_depth: int | None = None):
        self.elements = elements
        self.max_depth = settings.ref_tag_max_depth if max_depth is None else max_depth

    def parse(self, text: str) -> str:
        """Replace every reference tag in ``text``; unresolved tags are left as written."""
        return self._parse(text, 0)

    def _parse(self, text: str, depth: int) -> str:
        if not text or "{" not in text:
            return text
        if depth > self.max_depth:
            logger.warning("ref_tag_depth_exceeded", depth=depth)
            return text

        nonce = secrets.token_hex(4)
        tags_by_type: dict[str, list[RefTag]] = defaultdict(list)
        counter = 0

        def tokenize(match: re.Match[str]) -> str:
            nonlocal counter
            element_type = self.elements.element_types.get(_ucfirst(match.group(1)))
            if element_type is None:
                return match.group(0)
            token = f"{{#{nonce}-{counter}}}"
            counter += 1
            tags_by_type[element_type.get_class_handle()].append(
                RefTag(token=token, tag=match.group(0), selector=match.group(2), attribute=match.group(3))
            )
            return token

        text = REF_TAG_PATTERN.sub(tokenize, text)
        if not tags_by_type:
            return text

        replacements: dict[str, str] = {}
        for element_type, tags in tags_by_type.items():
            by_id: dict[str, list[RefTag]] = defaultdict(list)
            by_ref: dict[str, list[RefTag]] = defaultdict(list)
            for tag in tags:
                bucket = by_id if tag.selector.isdigit() else by_ref
                bucket[tag.selector].append(tag)

            for kind, bucket in (("id", by_id), ("ref", by_ref)):
                if not bucket:
                    continue
                criteria = self.elements.get_criteria(element_type, status=None, limit=None)
                criteria.set(**{kind: list(bucket)})
                found: dict[str, Element] = {}
                for element in criteria.find():
                    key = str(element.id) if kind == "id" else element.get_ref()
                    if key is not None:
                        found[key] = element

                for selector, selector_tags in bucket.items():
                    element = found.get(selector)
                    for tag in selector_tags:
                        replacements[tag.token] = self._replacement(tag, element, depth)

        token_pattern = re.compile(r"\{#" + nonce + r"-\d+\}")
        return token_pattern.sub(lambda match: replacements.get(match.group(0), match.group(0)), text)

    def _replacement(self, tag: RefTag, element: Element | None, depth: int) -> str:
        if element is None:
            return tag.tag
        if tag.attribute:
            value = element.get_attribute(tag.attribute)
            if value is not None:
                return self._parse(str(value), depth + 1)
        return element.get_url() or ""
