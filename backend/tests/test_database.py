"""Tests for the key-value stores backing color overrides.

This module covers:
    - InMemoryKeyValueStore get/set semantics,
    - PostgresKeyValueStore SQL round-trips against a fake psycopg2
      connection, and the wrapping of driver errors into StoreError,
    - The get_key_value_store factory for both backends.

All tests are self-contained and do not require a running database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import psycopg2
import pytest

from landcover.core import config
from landcover.db import database

if TYPE_CHECKING:
    import types


class FakeCursor:
    """Cursor storing rows in the dictionary of its connection."""

    def __init__(self, rows: dict[str, str], statements: list[str]) -> None:
        self.rows = rows
        self.statements = statements
        self._result: tuple[str] | None = None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        return None

    def execute(self, sql: str, params: Any = None) -> None:
        self.statements.append(sql.strip().split()[0])
        if sql.lstrip().startswith("SELECT"):
            value = self.rows.get(params[0])
            self._result = (value,) if value is not None else None
        elif "INSERT INTO kv_store" in sql:
            self.rows[params["key"]] = params["value"]

    def fetchone(self) -> tuple[str] | None:
        return self._result


class FakeConnection:
    def __init__(
        self,
        rows: dict[str, str],
        statements: list[str] | None = None,
    ) -> None:
        self.rows = rows
        self.statements = statements if statements is not None else []

    def __enter__(self) -> FakeConnection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        return None

    def cursor(self) -> FakeCursor:
        return FakeCursor(self.rows, self.statements)

    def commit(self) -> None:
        return None


def test_in_memory_store_get_set() -> None:
    """Test storing and retrieving values in memory."""
    store = database.InMemoryKeyValueStore()
    assert store.get("missing") is None
    store.set("colors", '{"Agua": "#0000FF"}')
    assert store.get("colors") == '{"Agua": "#0000FF"}'


def test_in_memory_store_initial_values() -> None:
    """Test that initial values are copied into the store."""
    initial = {"k": "v"}
    store = database.InMemoryKeyValueStore(initial)
    store.set("k", "other")
    assert initial == {"k": "v"}
    assert store.get("k") == "other"


def test_postgres_store_round_trip(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that values written through the store are read back."""
    rows: dict[str, str] = {}
    monkeypatch.setattr(
        database.psycopg2, "connect", lambda _url: FakeConnection(rows)
    )
    store = database.PostgresKeyValueStore(config.Settings())
    assert store.get("landcover.class_colors") is None
    store.set("landcover.class_colors", "{}")
    assert rows == {"landcover.class_colors": "{}"}
    assert store.get("landcover.class_colors") == "{}"


def test_postgres_store_wraps_driver_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test that connection failures surface as StoreError."""

    def fail(_url: str) -> None:
        raise psycopg2.OperationalError("connection refused")

    monkeypatch.setattr(database.psycopg2, "connect", fail)
    store = database.PostgresKeyValueStore(config.Settings())
    with pytest.raises(database.StoreError):
        store.get("landcover.class_colors")
    with pytest.raises(database.StoreError):
        store.set("landcover.class_colors", "{}")


def test_postgres_store_creates_schema_once(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test the table is created by the first access, not by the constructor."""
    rows: dict[str, str] = {}
    statements: list[str] = []
    monkeypatch.setattr(
        database.psycopg2, "connect", lambda _url: FakeConnection(rows, statements)
    )
    store = database.PostgresKeyValueStore(config.Settings())
    assert statements == []
    store.get("a")
    store.set("a", "1")
    store.get("a")
    assert statements == ["CREATE", "SELECT", "INSERT", "SELECT"]


def test_get_key_value_store_memory_is_shared() -> None:
    """Test the memory backend returns one process-wide store."""
    settings = config.Settings(color_store_backend="memory")
    first = database.get_key_value_store(settings)
    second = database.get_key_value_store(settings)
    assert isinstance(first, database.InMemoryKeyValueStore)
    assert first is second


def test_get_key_value_store_postgres(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test factory function returns PostgresKeyValueStore."""

    class FakeStore(database.PostgresKeyValueStore):
        def __init__(self, settings: config.Settings):
            self.settings = settings

    monkeypatch.setattr(database, "PostgresKeyValueStore", FakeStore)
    monkeypatch.setattr(database, "_postgres_stores", {})
    store = database.get_key_value_store(config.Settings())
    assert isinstance(store, FakeStore)
    assert database.get_key_value_store(config.Settings()) is store
    other = database.get_key_value_store(
        config.Settings(database_url="postgresql://gis:gis@db:5432/other")
    )
    assert other is not store
