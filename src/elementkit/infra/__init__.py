"""
Infrastructure layer - database, unit of work, logging, settings, and the runtime
content table schema.
"""
