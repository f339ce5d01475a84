# inventory/orchestrator.py

import os
import logging
from datetime import datetime
from typing import Iterable, Optional

from .config import DatabaseConfig
from .database import Database, SQLiteDatabase
from .exceptions import ScanError
from .models import ScanResult
from .reconciler import Reconciler
from .scanner import FilesystemScanner
from .timeutil import current_scan_time

logger = logging.getLogger(__name__)


def default_db_path(root: str) -> str:
    return os.path.join(root, DatabaseConfig.SQLITE_NAME)


def run_scan(root: str = '.', refresh: bool = False, db: Optional[Database] = None,
             db_path: Optional[str] = None, excluded_paths: Iterable[str] = ()) -> ScanResult:
    """
    Один проход инвентаризации в одной транзакции.

    root - корень сканирования
    refresh - пометить удалёнными записи, не встреченные в этом проходе
    db - уже открытое хранилище; если не задано, открывается SQLite
         в db_path (по умолчанию file_inventory.db в корне)
    excluded_paths - дополнительные пути, которые не сканируются
    """
    if not os.path.isdir(root):
        raise ScanError(f"Path {root} does not exist or is not a directory")
    root = os.path.abspath(root)

    owns_db = db is None
    if owns_db:
        db = SQLiteDatabase(db_path or default_db_path(root))

    try:
        db.ensure_schema()
        start_time = datetime.now()

        with db.transaction():
            scan_time = current_scan_time()
            reconciler = Reconciler(db, scan_time)
            scanner = FilesystemScanner(
                reconciler,
                excluded_paths=list(db.persisted_paths()) + list(excluded_paths)
            )
            scanner.scan(root)

            marked_deleted = 0
            if refresh:
                marked_deleted = db.mark_stale(scan_time)

        # Получаем статистику
        inventory = db.get_inventory_stats()

        result = ScanResult(
            root = root,
            refresh = refresh,
            scan_time = scan_time,
            inserted = reconciler.inserted,
            updated = reconciler.updated,
            marked_deleted = marked_deleted,
            directories = scanner.directories,
            files = scanner.files,
            total_size = scanner.total_size,
            inventory = inventory,
            start_time = start_time,
            end_time = datetime.now(),
            errors = scanner.errors + reconciler.errors
        )
        logger.info(
            f"Scan of {root} committed: {result.inserted} inserted, "
            f"{result.updated} updated, {result.marked_deleted} marked deleted"
        )
        return result
    finally:
        if owns_db:
            db.close()
