"""
elementkit - storage and query core for content elements.

Entries, categories, users and matrix blocks share one element table, per-locale
slug/URI rows, per-type content tables and nested-set structures. The entry point is
:class:`elementkit.services.elements.Elements`.
"""

__version__ = "0.1.0"
