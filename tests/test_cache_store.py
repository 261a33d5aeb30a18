from datetime import datetime, timezone

import psycopg2
import pytest

from grantbridge.core.errors import CacheReadError, CacheWriteError, ConfigurationError
from grantbridge.pipeline.transform import transform_grants
from grantbridge.storage import cache_store as cache_store_module
from grantbridge.storage.cache_store import CACHE_COLUMNS, PostgresCacheStore

from fakes import raw_grant


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 0

    def execute(self, sql, params=None):
        if self.conn.error is not None:
            raise self.conn.error
        self.conn.executed.append((sql, params))
        self.rowcount = self.conn.rowcount

    def fetchall(self):
        return self.conn.rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self):
        self.executed = []
        self.rows = []
        self.rowcount = 0
        self.error = None
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class FakePool:
    def __init__(self, minconn, maxconn, dsn):
        self.dsn = dsn
        self.conn = FakeConnection()
        self.returned = 0
        self.closed = False

    def getconn(self):
        return self.conn

    def putconn(self, conn):
        self.returned += 1

    def closeall(self):
        self.closed = True


@pytest.fixture
def pg(monkeypatch):
    inserted = []

    def fake_execute_values(cursor, sql, values):
        cursor.execute(sql)
        inserted.extend(values)

    monkeypatch.setattr(cache_store_module, "SimpleConnectionPool", FakePool)
    monkeypatch.setattr(cache_store_module, "execute_values", fake_execute_values)

    store = PostgresCacheStore(database_url="postgresql://localhost/grantbridge")
    store.inserted = inserted
    return store


def connection(store):
    store._release_connection(store._get_connection())
    return store.pool.conn


def test_missing_dsn_raises_configuration_error(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    store = PostgresCacheStore()
    with pytest.raises(ConfigurationError):
        store.fetch_featured()


def test_fetch_featured_maps_rows(pg):
    conn = connection(pg)
    row = transform_grants([raw_grant(1)])[0].model_dump()
    row["tags"] = None
    row["updated_at"] = datetime(2026, 1, 1, tzinfo=timezone.utc)
    conn.rows = [row]

    grants = pg.fetch_featured()

    assert grants[0].id == "org-1-grant-1"
    assert grants[0].tags == []
    assert grants[0].updated_at.year == 2026
    assert "WHERE is_featured = TRUE" in conn.executed[0][0]
    assert pg.pool.returned >= 2


def test_fetch_featured_error(pg):
    conn = connection(pg)
    conn.error = psycopg2.OperationalError("connection reset")

    with pytest.raises(CacheReadError):
        pg.fetch_featured()
    assert conn.rollbacks == 1


def test_delete_all_uses_non_empty_filter(pg):
    conn = connection(pg)
    conn.rowcount = 4

    assert pg.delete_all() == 4
    assert conn.executed[0][0] == "DELETE FROM grants_cache WHERE id <> ''"
    assert conn.commits == 1


def test_insert_grants_orders_values_by_column(pg):
    grants = transform_grants([raw_grant(1), raw_grant(2)])

    assert pg.insert_grants(grants) == 2
    assert len(pg.inserted) == 2
    assert len(pg.inserted[0]) == len(CACHE_COLUMNS)
    assert pg.inserted[0][CACHE_COLUMNS.index("title")] == "Grant 1"
    assert pg.inserted[1][CACHE_COLUMNS.index("is_featured")] is True


def test_insert_nothing_skips_database(pg):
    assert pg.insert_grants([]) == 0
    assert pg.pool is None


def test_write_errors_raise_cache_write_error(pg):
    conn = connection(pg)
    conn.error = psycopg2.ProgrammingError("function refresh_popular_open() does not exist")

    with pytest.raises(CacheWriteError):
        pg.refresh_popular_open()
    with pytest.raises(CacheWriteError):
        pg.insert_grants(transform_grants([raw_grant(1)]))
    assert conn.rollbacks == 2


def test_close_releases_pool(pg):
    connection(pg)
    pool = pg.pool
    pg.close()
    assert pool.closed is True
    assert pg.pool is None
