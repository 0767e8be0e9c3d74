"""
Shared types and enums for elementkit.

This module contains common types and enums that are used across
the domain, query, service and CLI layers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ElementStatus(str, Enum):
    """Status names understood by the query compiler.

    ``enabled`` and ``disabled`` are built in and map onto ``elements.enabled``;
    the rest are answered by the element type that declares them.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"
    LIVE = "live"
    PENDING = "pending"
    EXPIRED = "expired"
    LOCKED = "locked"


class SectionType(str, Enum):
    """Types of entry sections."""

    SINGLE = "single"
    CHANNEL = "channel"
    STRUCTURE = "structure"


class TaskKind(str, Enum):
    """Background jobs the core knows how to enqueue."""

    FIND_AND_REPLACE = "find_and_replace"


class _ResultBoundary:
    """Marks the edge of a result sequence: no previous/next element."""

    _instance: _ResultBoundary | None = None

    def __new__(cls) -> _ResultBoundary:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "RESULT_BOUNDARY"


RESULT_BOUNDARY = _ResultBoundary()

# Locale info as returned by element types: locale id -> {"enabled_by_default": bool}
LocaleInfo = dict[str, Any]
RowMapping = dict[str, Any]
