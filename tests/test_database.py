from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from inventory.database import PostgresDatabase, SQLiteDatabase
from inventory.exceptions import StoreError
from inventory.models import InventoryStats
from inventory.reconciler import Reconciler
from tests.conftest import make_record


class TestSchema:

    def test_columns(self, db):
        columns = db.conn.execute("PRAGMA table_info(files)").fetchall()
        assert [(c[1], c[2], c[4]) for c in columns] == [
            ('id', 'INTEGER', None),
            ('name', 'TEXT', None),
            ('path', 'TEXT', None),
            ('extension', 'TEXT', None),
            ('size', 'INTEGER', None),
            ('is_directory', 'INTEGER', None),
            ('created_time', 'INTEGER', None),
            ('modified_time', 'INTEGER', None),
            ('accessed_time', 'INTEGER', None),
            ('attributes', 'TEXT', None),
            ('is_deleted', 'INTEGER', '0'),
            ('last_seen', 'INTEGER', None),
        ]

    def test_indexes(self, db):
        indexes = {row[1] for row in db.conn.execute("PRAGMA index_list(files)")}
        assert {'idx_path', 'idx_extension'} <= indexes

    def test_ensure_schema_is_idempotent(self, db):
        db.upsert_record(make_record('/data/a.txt'), 100)
        db.ensure_schema()
        assert db.count_records() == 1

    def test_wal_journal(self, db):
        assert db.conn.execute("PRAGMA journal_mode").fetchone()[0] == 'wal'

    def test_persisted_paths_include_sidecars(self, db):
        assert db.persisted_paths() == [
            db.path, db.path + '-wal', db.path + '-shm', db.path + '-journal'
        ]


def test_open_failure_raises_store_error(tmp_path):
    with pytest.raises(StoreError):
        SQLiteDatabase(str(tmp_path / 'missing' / 'inventory.db'))


def test_close_is_idempotent(tmp_path):
    database = SQLiteDatabase(str(tmp_path / 'x.db'))
    database.close()
    database.close()
    assert database.conn is None


class TestUpsert:

    def test_insert_then_update(self, db):
        assert db.upsert_record(make_record('/data/a.txt'), 100) == 'inserted'
        assert db.upsert_record(make_record('/data/a.txt', size=99, attributes='R'), 200) == 'updated'

        record = db.get_record('/data/a.txt')
        assert db.count_records() == 1
        assert record.size == 99
        assert record.attributes == 'R'
        assert record.last_seen == 200
        assert record.is_deleted is False

    def test_insert_populates_all_fields(self, db):
        db.upsert_record(make_record('/data/sub', name='sub', extension='', size=0,
                                     is_directory=True, attributes='D'), 100)
        record = db.get_record('/data/sub')
        assert record.id is not None
        assert record.name == 'sub'
        assert record.is_directory is True
        assert (record.created_time, record.modified_time, record.accessed_time) == (100, 200, 300)
        assert record.last_seen == 100

    def test_update_clears_deleted_flag(self, db):
        db.upsert_record(make_record('/data/a.txt'), 100)
        db.mark_stale(200)
        assert db.get_record('/data/a.txt').is_deleted is True

        db.upsert_record(make_record('/data/a.txt'), 300)
        assert db.get_record('/data/a.txt').is_deleted is False

    def test_last_seen_is_never_rewound(self, db):
        db.upsert_record(make_record('/data/a.txt'), 500)
        db.upsert_record(make_record('/data/a.txt'), 400)
        assert db.get_record('/data/a.txt').last_seen == 500

    def test_update_refreshes_type_and_name(self, db):
        db.upsert_record(make_record('/data/x', name='x', extension='', attributes='N'), 100)
        db.upsert_record(make_record('/data/x', name='X', extension='', size=0, is_directory=True,
                                     created_time=150, attributes='D'), 200)

        record = db.get_record('/data/x')
        assert db.count_records() == 1
        assert record.is_directory is True
        assert record.name == 'X'
        assert record.created_time == 150
        assert record.attributes == 'D'


class TestMarkStale:

    def test_marks_only_older_records(self, db):
        db.upsert_record(make_record('/data/old.txt'), 100)
        db.upsert_record(make_record('/data/new.txt'), 200)

        assert db.mark_stale(200) == 1
        assert db.get_record('/data/old.txt').is_deleted is True
        assert db.get_record('/data/new.txt').is_deleted is False

    def test_already_deleted_records_are_not_counted_again(self, db):
        db.upsert_record(make_record('/data/old.txt'), 100)
        assert db.mark_stale(200) == 1
        assert db.mark_stale(300) == 0

    def test_last_seen_unchanged_by_marking(self, db):
        db.upsert_record(make_record('/data/old.txt'), 100)
        db.mark_stale(200)
        assert db.get_record('/data/old.txt').last_seen == 100


class TestTransaction:

    def test_commit(self, db):
        with db.transaction():
            db.upsert_record(make_record('/data/a.txt'), 100)
        assert not db.conn.in_transaction
        assert db.count_records() == 1

    def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.upsert_record(make_record('/data/a.txt'), 100)
                raise RuntimeError('scan failed')
        assert db.count_records() == 0

    def test_failed_record_does_not_abort_transaction(self, db):
        reconciler = Reconciler(db, 100)
        with db.transaction():
            assert reconciler.reconcile(make_record('/data/a.txt')) == 'inserted'
            assert reconciler.reconcile(make_record('/data/bad.txt', name=None)) is None
            assert reconciler.reconcile(make_record('/data/b.txt')) == 'inserted'

        assert reconciler.inserted == 2
        assert len(reconciler.errors) == 1
        assert '/data/bad.txt' in reconciler.errors[0]
        assert [r.path for r in db.list_records()] == ['/data/a.txt', '/data/b.txt']


def test_inventory_stats(db):
    db.upsert_record(make_record('/data/dir', is_directory=True, size=0), 100)
    db.upsert_record(make_record('/data/dir/a.txt', size=10), 100)
    db.upsert_record(make_record('/data/dir/b.txt', size=32), 200)
    db.mark_stale(200)

    assert db.get_inventory_stats() == InventoryStats(directories=0, files=1, total_size=32)


def test_list_records_without_deleted(db):
    db.upsert_record(make_record('/data/a.txt'), 100)
    db.upsert_record(make_record('/data/b.txt'), 200)
    db.mark_stale(200)

    assert [r.path for r in db.list_records(include_deleted=False)] == ['/data/b.txt']
    assert len(db.list_records()) == 2


class TestPostgres:

    @pytest.fixture
    def pg(self):
        with patch('inventory.database.psycopg2.connect') as connect:
            connect.return_value = MagicMock()
            database = PostgresDatabase(host='db', port=5433, database='inv', user='scan', password='pw')
            yield database

    @staticmethod
    def cursor(database):
        return database.conn.cursor.return_value.__enter__.return_value

    def test_connection_settings(self, pg):
        assert pg.conn.autocommit is False
        assert pg.location == 'postgresql://scan@db:5433/inv'
        assert pg.persisted_paths() == []

    def test_connect_failure_raises_store_error(self):
        with patch('inventory.database.psycopg2.connect',
                   side_effect=psycopg2.OperationalError('connection refused')):
            with pytest.raises(StoreError):
                PostgresDatabase()

    def test_upsert_inserts_when_nothing_updated(self, pg):
        cur = self.cursor(pg)
        cur.rowcount = 0

        assert pg.upsert_record(make_record('/data/a.txt'), 100) == 'inserted'

        executed = [call.args[0] for call in cur.execute.call_args_list]
        assert executed[0] == 'SAVEPOINT record'
        assert 'UPDATE files SET' in executed[1]
        assert 'INSERT INTO files' in executed[2]
        assert '%s' in executed[2]
        assert executed[3] == 'RELEASE SAVEPOINT record'

    def test_upsert_updates_existing(self, pg):
        cur = self.cursor(pg)
        cur.rowcount = 1

        assert pg.upsert_record(make_record('/data/a.txt'), 100) == 'updated'
        executed = [call.args[0] for call in cur.execute.call_args_list]
        assert not any('INSERT' in sql for sql in executed)

    def test_failed_upsert_rolls_back_to_savepoint(self, pg):
        cur = self.cursor(pg)

        def execute(sql, params=()):
            if 'UPDATE files' in sql:
                raise psycopg2.DataError('bad value')

        cur.execute.side_effect = execute
        with pytest.raises(StoreError):
            pg.upsert_record(make_record('/data/a.txt'), 100)

        executed = [call.args[0] for call in cur.execute.call_args_list]
        assert executed[-2:] == ['ROLLBACK TO SAVEPOINT record', 'RELEASE SAVEPOINT record']

    def test_transaction_takes_lock_and_commits(self, pg):
        cur = self.cursor(pg)
        with pg.transaction():
            pass

        assert 'pg_advisory_xact_lock' in cur.execute.call_args_list[0].args[0]
        pg.conn.commit.assert_called_once()

    def test_transaction_rolls_back(self, pg):
        with pytest.raises(ValueError):
            with pg.transaction():
                raise ValueError('boom')
        pg.conn.rollback.assert_called_once()
        pg.conn.commit.assert_not_called()

    def test_schema_is_committed(self, pg):
        cur = self.cursor(pg)
        pg.ensure_schema()

        executed = [call.args[0] for call in cur.execute.call_args_list]
        assert 'BIGSERIAL' in executed[0]
        assert 'idx_path' in executed[1]
        assert 'idx_extension' in executed[2]
        pg.conn.commit.assert_called_once()
