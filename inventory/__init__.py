# inventory/__init__.py
"""Инвентаризация файловой системы с сохранением истории удалённых файлов."""

from .database import Database, PostgresDatabase, SQLiteDatabase
from .exceptions import InventoryError, ScanError, StoreError
from .models import InventoryRecord, InventoryStats, ScanResult
from .orchestrator import run_scan

__all__ = [
    'Database',
    'PostgresDatabase',
    'SQLiteDatabase',
    'InventoryError',
    'ScanError',
    'StoreError',
    'InventoryRecord',
    'InventoryStats',
    'ScanResult',
    'run_scan',
]

__version__ = '2.1.0'
