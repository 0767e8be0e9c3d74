"""
Domain layer - entities, element models, criteria, fields and events.

Table mappings live in entities.py; the in-memory element models that queries return
and saves accept live in models.py.
"""
