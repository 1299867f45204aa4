"""Key-value stores for durable user preferences."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Protocol

import psycopg2
import psycopg2.extensions

if TYPE_CHECKING:
    from landcover.core import config


class StoreError(RuntimeError):
    """Raised when the storage backend cannot be read or written."""


class KeyValueStoreProtocol(Protocol):
    """Protocol interface for a string key-value store.

    Implementations provide persistence for small serialized values such as
    color override maps, supporting both in-memory (testing) and PostgreSQL
    (production) backends.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore(KeyValueStoreProtocol):
    """Simple in-memory store for tests and local development.

    Stores values in a dictionary. Data is lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        """Initialize the store, optionally pre-populated.

        Args:
            initial: Values to start with.
        """
        self._store: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        """Retrieve a value by key.

        Args:
            key: Storage key.

        Returns:
            The stored string, None if absent.
        """
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        """Store or replace a value.

        Args:
            key: Storage key.
            value: Serialized value.
        """
        self._store[key] = value


class PostgresKeyValueStore(KeyValueStoreProtocol):
    """PostgreSQL-backed key-value store.

    Persists values to a single ``kv_store`` table which is created by the
    first successful read or write. Backend failures, including an
    unreachable server, are reported as StoreError by ``get`` and ``set``.
    """

    CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS kv_store (
      key TEXT PRIMARY KEY,
      value TEXT NOT NULL,
      updated_at TIMESTAMPTZ DEFAULT now()
    );
    """

    def __init__(self, settings: config.Settings) -> None:
        """Initialize store with database settings.

        No connection is opened here.

        Args:
            settings: Application settings containing database connection URL.
        """
        self.settings = settings
        self._schema_ready = False

    def _connection(self) -> psycopg2.extensions.connection:
        return psycopg2.connect(self.settings.database_url)

    def _ensure_schema(self, cur: psycopg2.extensions.cursor) -> None:
        if not self._schema_ready:
            cur.execute(self.CREATE_TABLE_SQL)

    def get(self, key: str) -> str | None:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                self._ensure_schema(cur)
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise StoreError(f"Cannot read {key!r}: {exc}") from exc
        self._schema_ready = True
        if row is None:
            return None
        else:
            return str(row[0])

    def set(self, key: str, value: str) -> None:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                self._ensure_schema(cur)
                cur.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (%(key)s, %(value)s, now())
                    ON CONFLICT (key) DO UPDATE SET
                        value = EXCLUDED.value,
                        updated_at = EXCLUDED.updated_at;
                    """,
                    {"key": key, "value": value},
                )
                conn.commit()
        except psycopg2.Error as exc:
            raise StoreError(f"Cannot write {key!r}: {exc}") from exc
        self._schema_ready = True


@functools.lru_cache
def _shared_memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


_postgres_stores: dict[str, PostgresKeyValueStore] = {}


def get_key_value_store(settings: config.Settings) -> KeyValueStoreProtocol:
    """Factory function to create the configured key-value store.

    Args:
        settings: Application settings selecting the backend.

    Returns:
        A process-wide InMemoryKeyValueStore when ``color_store_backend`` is
        "memory", otherwise the PostgresKeyValueStore of
        ``settings.database_url``, reused across calls.
    """
    if settings.color_store_backend == "memory":
        return _shared_memory_store()
    store = _postgres_stores.get(settings.database_url)
    if store is None:
        store = PostgresKeyValueStore(settings)
        _postgres_stores[settings.database_url] = store
    return store
