"""
Matrix field: an ordered list of blocks, each block an element of its own.

Blocks keep their content in a per-field table (``matrixcontent_<handle>``) whose
columns are prefixed by block type, so two block types may both define e.g. ``body``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..domain.models import MatrixBlock
from .base import FieldType

if TYPE_CHECKING:
    from ..domain.models import Element
    from ..services.elements import Elements

MATRIX_CONTENT_PREFIX = "matrixcontent_"


def matrix_content_table_name(handle: str) -> str:
    return f"{MATRIX_CONTENT_PREFIX}{handle.lower()}"


class MatrixFieldType(FieldType):
    name = "Matrix"

    def defines_content_column(self) -> bool:
        return False

    @property
    def content_table(self) -> str:
        return matrix_content_table_name(self._handle())

    def validate(self, value: Any) -> list[str]:
        max_blocks = self.settings.get("max_blocks")
        if max_blocks and isinstance(value, (list, tuple)) and len(value) > int(max_blocks):
            return [f"should contain at most {max_blocks} blocks"]
        return []

    def get_search_keywords(self, value: Any) -> str:
        if not isinstance(value, (list, tuple)):
            return ""
        words = []
        for block in value:
            if isinstance(block, MatrixBlock) and block.has_content():
                words.extend(str(v) for v in block.get_content().values.values() if v)
        return " ".join(words)

    def on_after_save_field(self, elements: Elements) -> None:
        elements.matrix.ensure_content_table(self.field)

    def on_after_element_save(self, element: Element, elements: Elements) -> None:
        blocks = element.get_field_value(self._handle())
        if blocks is None:
            return
        elements.matrix.save_field_blocks(self.field, element, list(blocks))
