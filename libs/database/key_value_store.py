import sqlite3

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from libs.database.base import DatabaseManager
from libs.helpers.storage_helpers import validate_file
from libs.config.config_variables import LEDGER_DATABASE_PATH

from libs.config.config_logger import get_logger

logger = get_logger()


class KeyValueStore(ABC):
    """Puerto de almacenamiento clave-valor (texto) compartido entre procesos"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Almacenamiento volátil, útil en pruebas o ejecuciones sin disco"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SQLiteKeyValueStore(KeyValueStore):
    """
    Almacenamiento duradero en SQLite.

    Cada operación abre su propia conexión, de modo que varias instancias
    (o procesos) pueden compartir el mismo archivo. Los errores de SQLite se
    registran y no se propagan: una lectura fallida equivale a clave ausente.
    """

    TABLE_NAME = "key_value_store"

    def __init__(self, db_path: str | Path = LEDGER_DATABASE_PATH):
        self.db_path = str(validate_file(db_path, create_parents=True))
        self._init_schema()

    def _init_schema(self):
        with DatabaseManager.get_connection(db_path=self.db_path, wal=True) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.TABLE_NAME} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def get(self, key: str) -> Optional[str]:
        try:
            with DatabaseManager.get_connection(db_path=self.db_path, wal=True) as conn:
                row = conn.execute(
                    f"SELECT value FROM {self.TABLE_NAME} WHERE key=?", (key,)
                ).fetchone()
                return row["value"] if row else None
        except sqlite3.Error as e:
            logger.error(f"Error leyendo clave '{key}': {e}")
            return None

    def set(self, key: str, value: str) -> None:
        try:
            with DatabaseManager.transaction(db_path=self.db_path, wal=True) as cursor:
                cursor.execute(
                    f"""
                    INSERT OR REPLACE INTO {self.TABLE_NAME} (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    """,
                    (key, value),
                )
        except sqlite3.Error as e:
            logger.error(f"Error guardando clave '{key}': {e}")

    def remove(self, key: str) -> None:
        try:
            with DatabaseManager.transaction(db_path=self.db_path, wal=True) as cursor:
                cursor.execute(f"DELETE FROM {self.TABLE_NAME} WHERE key=?", (key,))
        except sqlite3.Error as e:
            logger.error(f"Error eliminando clave '{key}': {e}")
