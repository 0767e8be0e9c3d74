"""Helpers shared by element types whose elements live in a structure."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..domain.models import Element
from ..query.params import split_param

if TYPE_CHECKING:
    from ..services.elements import Elements


def split_refs(ref: Any) -> list[tuple[str | None, str]]:
    """Split ``"handle/slug"`` references; a bare value is a slug in any group."""
    _, items = split_param(ref)
    refs: list[tuple[str | None, str]] = []
    for item in items:
        text = str(item).strip()
        if not text:
            continue
        if "/" in text:
            handle, slug = text.split("/", 1)
            refs.append((handle, slug))
        else:
            refs.append((None, text))
    return refs


def apply_structure_placement(elements: Elements, element: Element, structure_id: int) -> None:
    """
    Put the element in its structure and copy the node's bounds onto it.

    Elements not yet in the structure are appended to ``new_parent_id`` (or the root);
    elements already in it only move when a new parent is given.
    """
    structures = elements.structures
    parent_id = getattr(element, "new_parent_id", None)

    if parent_id:
        node = structures.append(structure_id, element.id, parent_id)
    else:
        node = structures.get_element_node(structure_id, element.id)
        if node is None:
            node = structures.append_to_root(structure_id, element.id)

    elements.db.refresh(node)
    element.structure_id = node.structure_id
    element.root = node.root
    element.lft = node.lft
    element.rgt = node.rgt
    element.level = node.level


def parent_uri_context(elements: Elements, element: Element, structure_id: int) -> dict[str, Any]:
    parent_id = getattr(element, "new_parent_id", None)
    if not parent_id and element.id:
        parent_id = elements.structures.get_parent_element_id(structure_id, element.id)

    parent = None
    if parent_id:
        parent = elements.get_element_by_id(parent_id, element.get_class_handle(), element.locale)
    return {"parent": parent}
