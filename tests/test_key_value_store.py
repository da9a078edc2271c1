import os
import sys

# Agregar el path para importar módulos
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../")))

import sqlite3
import pytest

from libs.database.key_value_store import InMemoryKeyValueStore, SQLiteKeyValueStore
from libs.database.rate_limit_ledger import AcquireStatus, RateLimitLedger


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(tmp_path / "nested" / "ledger.db")


class TestKeyValueStore:
    def test_missing_key_is_none(self, store):
        assert store.get("missing") is None

    def test_set_get_overwrite_remove(self, store):
        store.set("k", "1")
        assert store.get("k") == "1"

        store.set("k", "2")
        assert store.get("k") == "2"

        store.remove("k")
        assert store.get("k") is None

    def test_remove_missing_key_is_noop(self, store):
        store.remove("never-set")
        assert store.get("never-set") is None


class TestSQLiteKeyValueStore:
    def test_instances_share_the_same_file(self, tmp_path):
        path = tmp_path / "ledger.db"
        first, second = SQLiteKeyValueStore(path), SQLiteKeyValueStore(path)

        first.set("shared", "value")
        assert second.get("shared") == "value"

    def test_ledger_survives_restart(self, tmp_path):
        path = tmp_path / "ledger.db"
        ledger = RateLimitLedger(SQLiteKeyValueStore(path))
        for t in range(10):
            ledger.try_acquire(t)

        restarted = RateLimitLedger(SQLiteKeyValueStore(path))
        assert restarted.try_acquire(20).status is AcquireStatus.DENIED_COOLDOWN

    def test_sqlite_errors_are_logged_not_raised(self, tmp_path, mocker):
        store = SQLiteKeyValueStore(tmp_path / "ledger.db")
        mocker.patch(
            "libs.database.key_value_store.DatabaseManager.get_connection",
            side_effect=sqlite3.OperationalError("database is locked"),
        )
        mocker.patch(
            "libs.database.key_value_store.DatabaseManager.transaction",
            side_effect=sqlite3.OperationalError("database is locked"),
        )

        assert store.get("k") is None
        store.set("k", "v")
        store.remove("k")
