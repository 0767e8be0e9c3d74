"""
Application services.

``elements.Elements`` is the facade; the other modules are the collaborators it owns
(fields, content, relations, structures, search, caches, tasks, matrix blocks, sections
and category groups) and the orchestrators behind its write operations.
"""
