"""
Nested-set tree primitive for ``structureelements``.

Each structure has a hidden root node (level 0, ``element_id`` NULL) whose id is the
``root`` of every node in the tree. All mutations are bulk ``UPDATE``s over the bounds,
issued as ORM-enabled statements so nodes already loaded in the session stay in sync.
"""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from ..domain.entities import StructureElementRecord, StructureRecord
from ..domain.models import Element
from ..infra.exceptions import InvariantError

Node = StructureElementRecord


class StructureService:
    def __init__(self, db: Session):
        self.db = db

    # Structures -------------------------------------------------------------

    def create_structure(self, max_levels: int | None = None) -> StructureRecord:
        structure = StructureRecord(max_levels=max_levels)
        self.db.add(structure)
        self.db.flush()

        root = Node(structure_id=structure.id, element_id=None, lft=1, rgt=2, level=0)
        self.db.add(root)
        self.db.flush()
        root.root = root.id
        self.db.flush()
        return structure

    def get_root_node(self, structure_id: int) -> Node:
        root = self.db.scalar(
            select(Node).where(Node.structure_id == structure_id, Node.level == 0)
        )
        if root is None:
            raise InvariantError(f"Structure {structure_id} has no root node")
        return root

    # Lookups ----------------------------------------------------------------

    def get_element_node(self, structure_id: int, element_id: int) -> Node | None:
        return self.db.scalar(
            select(Node).where(Node.structure_id == structure_id, Node.element_id == element_id)
        )

    def get_nodes_for_element(self, element_id: int) -> list[Node]:
        return list(self.db.scalars(select(Node).where(Node.element_id == element_id)))

    def get_children(self, node: Node) -> list[Node]:
        return list(
            self.db.scalars(
                select(Node)
                .where(
                    Node.root == node.root,
                    Node.lft > node.lft,
                    Node.rgt < node.rgt,
                    Node.level == node.level + 1,
                )
                .order_by(Node.lft)
            )
        )

    def get_parent(self, node: Node | Element) -> Node | None:
        """The parent node (the hidden root for level 1 nodes)."""
        if node.level is None or node.level <= 0:
            return None
        return self.db.scalar(
            select(Node).where(
                Node.root == node.root,
                Node.lft < node.lft,
                Node.rgt > node.rgt,
                Node.level == node.level - 1,
            )
        )

    def locate_parent_bounds(self, element: Element) -> tuple[int, int] | None:
        parent = self.get_parent(element)
        if parent is None:
            return None
        return parent.lft, parent.rgt

    def get_parent_element_id(self, structure_id: int, element_id: int) -> int | None:
        node = self.get_element_node(structure_id, element_id)
        if node is None:
            return None
        parent = self.get_parent(node)
        return parent.element_id if parent is not None else None

    # Insertion --------------------------------------------------------------

    def append_to_root(self, structure_id: int, element_id: int) -> Node:
        return self._insert_under(self.get_root_node(structure_id), element_id, last=True)

    def prepend_to_root(self, structure_id: int, element_id: int) -> Node:
        return self._insert_under(self.get_root_node(structure_id), element_id, last=False)

    def append(self, structure_id: int, element_id: int, parent_element_id: int | None = None) -> Node:
        """
        Make ``element_id`` the last child of ``parent_element_id`` (or of the root).

        An element already in the structure is moved there together with its descendants.
        """
        parent = self._parent_node(structure_id, parent_element_id)
        existing = self.get_element_node(structure_id, element_id)
        if existing is not None:
            current_parent = self.get_parent(existing)
            if current_parent is None or current_parent.id != parent.id:
                self._move(existing, parent.rgt, parent.level + 1)
            return existing
        return self._insert_under(parent, element_id, last=True)

    def prepend(self, structure_id: int, element_id: int, parent_element_id: int | None = None) -> Node:
        parent = self._parent_node(structure_id, parent_element_id)
        existing = self.get_element_node(structure_id, element_id)
        if existing is not None:
            self._move(existing, parent.lft + 1, parent.level + 1)
            return existing
        return self._insert_under(parent, element_id, last=False)

    # Moves ------------------------------------------------------------------

    def move_before(self, node: Node, target: Node) -> None:
        """Move ``node`` and its descendants to sit immediately left of ``target``."""
        self._move(node, target.lft, target.level)

    def move_after(self, node: Node, target: Node) -> None:
        self._move(node, target.rgt + 1, target.level)

    # Deletion ---------------------------------------------------------------

    def delete_node(self, node: Node) -> None:
        """Remove ``node`` (with any remaining descendants) and close the gap it leaves."""
        self.db.flush()
        lft, rgt, root = node.lft, node.rgt, node.root
        width = rgt - lft + 1

        self.db.execute(delete(Node).where(Node.root == root, Node.lft >= lft, Node.rgt <= rgt))
        self._shift(root, rgt + 1, -width)

    # ------------------------------------------------------------------------

    def _parent_node(self, structure_id: int, parent_element_id: int | None) -> Node:
        if not parent_element_id:
            return self.get_root_node(structure_id)
        parent = self.get_element_node(structure_id, parent_element_id)
        if parent is None:
            raise InvariantError(
                f"Element {parent_element_id} is not in structure {structure_id}"
            )
        return parent

    def _shift(self, root: int, start: int, delta: int) -> None:
        """Shift every bound at or right of ``start`` by ``delta``."""
        self.db.execute(
            update(Node).where(Node.root == root, Node.lft >= start).values(lft=Node.lft + delta)
        )
        self.db.execute(
            update(Node).where(Node.root == root, Node.rgt >= start).values(rgt=Node.rgt + delta)
        )

    def _insert_under(self, parent: Node, element_id: int, *, last: bool) -> Node:
        self.db.flush()
        position = parent.rgt if last else parent.lft + 1
        self._shift(parent.root, position, 2)

        node = Node(
            structure_id=parent.structure_id,
            element_id=element_id,
            root=parent.root,
            lft=position,
            rgt=position + 1,
            level=parent.level + 1,
        )
        self.db.add(node)
        self.db.flush()
        return node

    def _move(self, node: Node, destination: int, level: int) -> None:
        self.db.flush()
        if node.lft <= destination <= node.rgt:
            raise InvariantError("Cannot move a node inside itself")

        root = node.root
        width = node.rgt - node.lft + 1
        subtree_ids = list(
            self.db.scalars(
                select(Node.id).where(Node.root == root, Node.lft >= node.lft, Node.rgt <= node.rgt)
            )
        )

        # Make room at the destination, then move the subtree into it
        self._shift(root, destination, width)
        old_rgt = node.rgt
        offset = destination - node.lft
        level_delta = level - node.level
        self.db.execute(
            update(Node)
            .where(Node.id.in_(subtree_ids))
            .values(lft=Node.lft + offset, rgt=Node.rgt + offset, level=Node.level + level_delta)
        )

        # Close the gap it left behind
        self._shift(root, old_rgt + 1, -width)
