"""Durable storage abstractions.

This package provides the key-value store protocol used to persist the
color override maps, with an in-memory implementation for tests and a
PostgreSQL implementation for production.

Example:
    Use in a service or FastAPI dependency:
        >>> from landcover.db import database
        >>> store = database.get_key_value_store(settings)
"""
