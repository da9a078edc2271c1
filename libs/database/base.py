import sqlite3

from contextlib import contextmanager

from libs.config.config_variables import LEDGER_DATABASE_PATH

from libs.config.config_logger import get_logger

logger = get_logger()


class DatabaseManager:
    """Gestor centralizado de conexiones a base de datos"""

    @staticmethod
    @contextmanager
    def get_connection(db_path: str = None, wal: bool = False, timeout: float = 5.0):
        """Context manager para conexiones con commit/rollback automático"""
        path = db_path or LEDGER_DATABASE_PATH
        conn = sqlite3.connect(path, timeout=timeout)
        conn.row_factory = sqlite3.Row
        if wal:
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
            except sqlite3.Error:
                # No detener la conexión si pragma falla, pero registrar
                logger.debug("No se pudieron aplicar PRAGMA al conectar")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    @contextmanager
    def transaction(db_path: str = None, wal: bool = False):
        """Context manager que devuelve un cursor y maneja commit/rollback"""
        with DatabaseManager.get_connection(db_path=db_path, wal=wal) as conn:
            yield conn.cursor()
