# inventory/database.py

import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

import psycopg2

from .config import DatabaseConfig
from .exceptions import StoreError
from .models import InventoryRecord, InventoryStats

logger = logging.getLogger(__name__)

RECORD_COLUMNS = (
    "id, name, path, extension, size, is_directory, created_time, "
    "modified_time, accessed_time, attributes, is_deleted, last_seen"
)

INSERT_SQL = """
    INSERT INTO files (
        name, path, extension, size, is_directory,
        created_time, modified_time, accessed_time,
        attributes, last_seen
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

# last_seen не откатывается назад, даже если часы ушли назад
UPDATE_SQL = """
    UPDATE files SET
        name = %s,
        extension = %s,
        size = %s,
        is_directory = %s,
        created_time = %s,
        modified_time = %s,
        accessed_time = %s,
        attributes = %s,
        is_deleted = 0,
        last_seen = CASE
            WHEN last_seen IS NULL OR last_seen < %s THEN %s
            ELSE last_seen
        END
    WHERE path = %s
"""

MARK_DELETED_SQL = """
    UPDATE files SET is_deleted = 1
    WHERE last_seen < %s AND is_deleted = 0
"""

STATS_SQL = """
    SELECT
        COALESCE(SUM(CASE WHEN is_directory = 1 THEN 1 ELSE 0 END), 0),
        COALESCE(SUM(CASE WHEN is_directory = 1 THEN 0 ELSE 1 END), 0),
        COALESCE(SUM(CASE WHEN is_directory = 1 THEN 0 ELSE size END), 0)
    FROM files
    WHERE is_deleted = 0
"""


def _row_to_record(row: Sequence) -> InventoryRecord:
    return InventoryRecord(
        id=row[0],
        name=row[1],
        path=row[2],
        extension=row[3] or '',
        size=row[4] or 0,
        is_directory=bool(row[5]),
        created_time=row[6],
        modified_time=row[7],
        accessed_time=row[8],
        attributes=row[9] or '',
        is_deleted=bool(row[10]),
        last_seen=row[11]
    )


class Database:
    """
    Хранилище инвентарных записей.
    Подклассы задают подключение, схему и управление транзакцией,
    SQL-запросы общие и пишутся с плейсхолдером %s.
    """

    driver_error = Exception
    schema: Tuple[str, ...] = ()

    def __init__(self):
        self.conn = None

    @property
    def location(self) -> str:
        raise NotImplementedError

    def persisted_paths(self) -> List[str]:
        """Файлы хранилища, которые нельзя сканировать как обычные данные"""
        return []

    def _sql(self, sql: str) -> str:
        return sql

    def _cursor(self):
        raise NotImplementedError

    def _begin(self) -> None:
        raise NotImplementedError

    def _commit(self) -> None:
        raise NotImplementedError

    def _rollback(self) -> None:
        raise NotImplementedError

    def _execute(self, sql: str, params: Sequence = ()) -> int:
        with self._cursor() as cur:
            cur.execute(self._sql(sql), params)
            return cur.rowcount

    def _fetchall(self, sql: str, params: Sequence = ()) -> list:
        with self._cursor() as cur:
            cur.execute(self._sql(sql), params)
            return cur.fetchall()

    def close(self):
        """Закрытие соединения с базой данных"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def ensure_schema(self) -> None:
        """Создание таблицы и индексов, если их ещё нет"""
        try:
            for statement in self.schema:
                self._execute(statement)
            self._commit()
        except self.driver_error as e:
            self._rollback()
            logger.error(f"Error creating schema: {str(e)}")
            raise StoreError(f"Cannot create schema in {self.location}: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator['Database']:
        """Одна транзакция на весь проход сканирования"""
        try:
            self._begin()
        except self.driver_error as e:
            logger.error(f"Error starting transaction: {str(e)}")
            raise StoreError(f"Cannot start transaction: {e}") from e

        try:
            yield self
        except Exception:
            self._rollback()
            logger.error("Transaction rolled back")
            raise

        try:
            self._commit()
        except self.driver_error as e:
            self._rollback()
            logger.error(f"Error committing transaction: {str(e)}")
            raise StoreError(f"Cannot commit transaction: {e}") from e

    @contextmanager
    def _savepoint(self) -> Iterator[None]:
        """Точка сохранения на одну запись: сбой записи не обрывает всю транзакцию"""
        self._execute("SAVEPOINT record")
        try:
            yield
        except self.driver_error as e:
            self._execute("ROLLBACK TO SAVEPOINT record")
            self._execute("RELEASE SAVEPOINT record")
            raise StoreError(str(e)) from e
        self._execute("RELEASE SAVEPOINT record")

    def upsert_record(self, record: InventoryRecord, scan_time: int) -> str:
        """
        Обновление записи по пути, а если её нет - вставка новой.
        Возвращает 'updated' или 'inserted'.
        """
        with self._savepoint():
            changed = self._execute(UPDATE_SQL, (
                record.name,
                record.extension,
                record.size,
                int(record.is_directory),
                record.created_time,
                record.modified_time,
                record.accessed_time,
                record.attributes,
                scan_time,
                scan_time,
                record.path
            ))
            if changed:
                return 'updated'

            self._execute(INSERT_SQL, (
                record.name,
                record.path,
                record.extension,
                record.size,
                int(record.is_directory),
                record.created_time,
                record.modified_time,
                record.accessed_time,
                record.attributes,
                scan_time
            ))
            return 'inserted'

    def mark_stale(self, scan_time: int) -> int:
        """Пометка как удалённых записей, не встреченных в текущем сканировании"""
        try:
            marked = self._execute(MARK_DELETED_SQL, (scan_time,))
        except self.driver_error as e:
            logger.error(f"Error marking deleted records: {str(e)}")
            raise StoreError(f"Cannot mark deleted records: {e}") from e
        logger.debug(f"Marked {marked} records as deleted")
        return marked

    def get_record(self, path: str) -> Optional[InventoryRecord]:
        rows = self._fetchall(
            f"SELECT {RECORD_COLUMNS} FROM files WHERE path = %s ORDER BY id LIMIT 1",
            (path,)
        )
        return _row_to_record(rows[0]) if rows else None

    def list_records(self, include_deleted: bool = True) -> List[InventoryRecord]:
        sql = f"SELECT {RECORD_COLUMNS} FROM files"
        if not include_deleted:
            sql += " WHERE is_deleted = 0"
        sql += " ORDER BY path"
        return [_row_to_record(row) for row in self._fetchall(sql)]

    def count_records(self) -> int:
        return self._fetchall("SELECT COUNT(*) FROM files")[0][0]

    def get_inventory_stats(self) -> InventoryStats:
        """
        Статистика по актуальным записям:
        количество директорий, количество файлов, общий размер файлов
        """
        try:
            rows = self._fetchall(STATS_SQL)
        except self.driver_error as e:
            logger.error(f"Error getting inventory stats: {str(e)}")
            return InventoryStats(0, 0, 0)
        directories, files, total_size = rows[0]
        return InventoryStats(int(directories), int(files), int(total_size))


class SQLiteDatabase(Database):
    driver_error = sqlite3.Error
    schema = (
        "CREATE TABLE IF NOT EXISTS files ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT,"
        "name TEXT NOT NULL,"
        "path TEXT NOT NULL,"
        "extension TEXT,"
        "size INTEGER,"
        "is_directory INTEGER,"
        "created_time INTEGER,"
        "modified_time INTEGER,"
        "accessed_time INTEGER,"
        "attributes TEXT,"
        "is_deleted INTEGER DEFAULT 0,"
        "last_seen INTEGER"
        ");",
        "CREATE INDEX IF NOT EXISTS idx_path ON files(path);",
        "CREATE INDEX IF NOT EXISTS idx_extension ON files(extension);",
    )

    def __init__(self, path: str = DatabaseConfig.SQLITE_NAME):
        """Открытие файла базы данных; транзакциями управляем сами"""
        super().__init__()
        self.path = os.path.abspath(path)
        try:
            self.conn = sqlite3.connect(self.path, isolation_level=None)
            self.conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            self.close()
            logger.error(f"Cannot open database {self.path}: {str(e)}")
            raise StoreError(f"Cannot open database {self.path}: {e}") from e
        logger.info(f"Database {self.path} opened")

    @property
    def location(self) -> str:
        return self.path

    def persisted_paths(self) -> List[str]:
        return [self.path] + [self.path + suffix for suffix in ('-wal', '-shm', '-journal')]

    def _sql(self, sql: str) -> str:
        return sql.replace('%s', '?')

    def _cursor(self):
        return closing(self.conn.cursor())

    def _begin(self) -> None:
        # Блокировка записи берётся сразу, чтобы update+insert по пути не перемежались с другим писателем
        self.conn.execute("BEGIN IMMEDIATE")

    def _commit(self) -> None:
        if self.conn.in_transaction:
            self.conn.execute("COMMIT")

    def _rollback(self) -> None:
        if self.conn is not None and self.conn.in_transaction:
            self.conn.execute("ROLLBACK")


class PostgresDatabase(Database):
    driver_error = psycopg2.Error
    schema = (
        """
        CREATE TABLE IF NOT EXISTS files (
            id BIGSERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            path TEXT NOT NULL,
            extension TEXT,
            size BIGINT,
            is_directory INTEGER,
            created_time BIGINT,
            modified_time BIGINT,
            accessed_time BIGINT,
            attributes TEXT,
            is_deleted INTEGER DEFAULT 0,
            last_seen BIGINT
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_path ON files(path)",
        "CREATE INDEX IF NOT EXISTS idx_extension ON files(extension)",
    )

    # Ключ advisory-блокировки: один писатель инвентаря за раз
    LOCK_KEY = 0x46494C45

    def __init__(self, host: str = DatabaseConfig.HOST, port: int = DatabaseConfig.PORT,
                 database: str = DatabaseConfig.NAME, user: str = DatabaseConfig.USER,
                 password: str = DatabaseConfig.PASSWORD):
        """Инициализация подключения к базе данных"""
        super().__init__()
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        try:
            self.conn = psycopg2.connect(
                host=host,
                port=port,
                database=database,
                user=user,
                password=password
            )
        except psycopg2.Error as e:
            logger.error(f"Cannot connect to database {self.location}: {str(e)}")
            raise StoreError(f"Cannot connect to database {self.location}: {e}") from e
        self.conn.autocommit = False
        logger.info("Database connection established")

    @property
    def location(self) -> str:
        return f"postgresql://{self.user}@{self.host}:{self.port}/{self.database}"

    def _cursor(self):
        return self.conn.cursor()

    def _begin(self) -> None:
        self._execute("SELECT pg_advisory_xact_lock(%s)", (self.LOCK_KEY,))

    def _commit(self) -> None:
        self.conn.commit()

    def _rollback(self) -> None:
        if self.conn is not None:
            self.conn.rollback()
