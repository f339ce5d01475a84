"""Общие фикстуры тестов инвентаризации."""

import os

import pytest

from inventory import orchestrator
from inventory.database import SQLiteDatabase
from inventory.models import InventoryRecord


class ScanClock:
    """Управляемое время сканирования"""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 60) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def scan_clock(monkeypatch):
    clock = ScanClock(1_700_000_000)
    monkeypatch.setattr(orchestrator, 'current_scan_time', clock)
    return clock


@pytest.fixture
def scan_root(tmp_path):
    root = tmp_path / 'root'
    root.mkdir()
    return root


@pytest.fixture
def sample_tree(scan_root):
    """Один файл и подкаталог с одним файлом"""
    (scan_root / 'top.txt').write_text('hello')
    sub = scan_root / 'sub'
    sub.mkdir()
    (sub / 'nested.TXT').write_text('nested data')
    return scan_root


@pytest.fixture
def db(tmp_path):
    database = SQLiteDatabase(str(tmp_path / 'test.db'))
    database.ensure_schema()
    yield database
    database.close()


def open_inventory(root) -> SQLiteDatabase:
    return SQLiteDatabase(orchestrator.default_db_path(str(root)))


def make_record(path: str, **fields) -> InventoryRecord:
    values = dict(
        name=os.path.basename(path),
        path=path,
        extension='txt',
        size=10,
        created_time=100,
        modified_time=200,
        accessed_time=300,
        attributes='N',
    )
    values.update(fields)
    return InventoryRecord(**values)
