"""
Field types: how a field stores its value, constrains queries, validates and reacts
to its element being saved.
"""
