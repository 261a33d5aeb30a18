"""
PostgreSQL adapter for the grants cache.

The cache lives in the Supabase Postgres database and is reached directly
through its connection string.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor, execute_values
from psycopg2.pool import SimpleConnectionPool

from grantbridge.core.domain_models import CachedGrant
from grantbridge.core.errors import CacheReadError, CacheWriteError, ConfigurationError


logger = logging.getLogger(__name__)

CACHE_TABLE = "grants_cache"

CACHE_COLUMNS = (
    "id",
    "source",
    "title",
    "organization",
    "description",
    "link",
    "amount",
    "amount_numeric",
    "currency",
    "deadline",
    "tags",
    "eligibility",
    "requirements",
    "popularity",
    "is_featured",
)

# Array columns may come back NULL from rows written by other tools
_ARRAY_COLUMNS = ("tags", "eligibility", "requirements")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS grants_cache (
    id TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT 'sonar',
    title TEXT NOT NULL,
    organization TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    link TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_numeric BIGINT NOT NULL DEFAULT 0,
    currency TEXT NOT NULL DEFAULT 'USD',
    deadline TEXT NOT NULL,
    tags TEXT[] NOT NULL DEFAULT '{}',
    eligibility TEXT[] NOT NULL DEFAULT '{}',
    requirements TEXT[] NOT NULL DEFAULT '{}',
    popularity INTEGER NOT NULL DEFAULT 0,
    is_featured BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS grants_cache_id_idx ON grants_cache (id);

CREATE MATERIALIZED VIEW IF NOT EXISTS popular_open AS
    SELECT *
    FROM grants_cache
    WHERE is_featured
    ORDER BY popularity DESC;

CREATE OR REPLACE FUNCTION refresh_popular_open() RETURNS void
LANGUAGE sql
AS $$ REFRESH MATERIALIZED VIEW popular_open $$;
"""


class PostgresCacheStore:
    """PostgreSQL adapter for the ``grants_cache`` table."""

    def __init__(self, database_url: Optional[str] = None, max_connections: int = 5):
        """
        Args:
            database_url: Postgres DSN (default: DATABASE_URL env var)
            max_connections: Pool size

        The pool is opened on first use.
        """
        self.database_url = database_url or os.getenv("DATABASE_URL")
        self.max_connections = max_connections
        self.pool: Optional[SimpleConnectionPool] = None

    def _get_connection(self):
        """Get a connection from the pool, creating the pool if needed."""
        if self.pool is None:
            if not self.database_url:
                raise ConfigurationError("DATABASE_URL environment variable is required")
            try:
                self.pool = SimpleConnectionPool(
                    minconn=1,
                    maxconn=self.max_connections,
                    dsn=self.database_url,
                )
                logger.info("PostgreSQL connection pool created successfully")
            except psycopg2.Error as e:
                logger.error(f"Failed to create PostgreSQL connection pool: {e}")
                raise CacheReadError("Failed to connect to the grants cache") from e
        return self.pool.getconn()

    def _release_connection(self, conn):
        """Return a connection to the pool."""
        if conn is not None and self.pool is not None:
            self.pool.putconn(conn)

    def _row_to_grant(self, row: Dict[str, Any]) -> CachedGrant:
        for column in _ARRAY_COLUMNS:
            if row.get(column) is None:
                row[column] = []
        return CachedGrant(**row)

    def fetch_featured(self) -> List[CachedGrant]:
        """
        Read every featured cache row.

        Raises:
            CacheReadError: If the query fails
        """
        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            cursor.execute(
                f"""
                SELECT {", ".join(CACHE_COLUMNS)}, created_at, updated_at
                FROM {CACHE_TABLE}
                WHERE is_featured = TRUE
                """
            )
            rows = cursor.fetchall()
            cursor.close()
            conn.commit()
            return [self._row_to_grant(dict(row)) for row in rows]

        except psycopg2.Error as e:
            logger.error(f"Error reading grants cache: {e}")
            if conn is not None:
                conn.rollback()
            raise CacheReadError("Failed to read grants cache") from e
        finally:
            self._release_connection(conn)

    def _write(self, sql: str, params=None, error_message: str = "Cache write failed") -> int:
        """Run one statement in its own committed transaction."""
        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            cursor.execute(sql, params)
            affected = cursor.rowcount
            cursor.close()
            conn.commit()
            return affected

        except psycopg2.Error as e:
            logger.error(f"{error_message}: {e}")
            if conn is not None:
                conn.rollback()
            raise CacheWriteError(f"{error_message}: {e}") from e
        finally:
            self._release_connection(conn)

    def delete_all(self) -> int:
        """
        Delete every cached row.

        Returns:
            Number of rows deleted
        """
        return self._write(
            f"DELETE FROM {CACHE_TABLE} WHERE id <> ''",
            error_message="Grants cache delete error",
        )

    def insert_grants(self, grants: List[CachedGrant]) -> int:
        """
        Bulk insert grants. Timestamps are left to column defaults.

        Returns:
            Number of rows inserted
        """
        if not grants:
            return 0

        values = []
        for grant in grants:
            row = grant.model_dump()
            values.append(tuple(row[column] for column in CACHE_COLUMNS))

        conn = None
        try:
            conn = self._get_connection()
            cursor = conn.cursor()
            execute_values(
                cursor,
                f"INSERT INTO {CACHE_TABLE} ({', '.join(CACHE_COLUMNS)}) VALUES %s",
                values,
            )
            cursor.close()
            conn.commit()
            return len(values)

        except psycopg2.Error as e:
            logger.error(f"Grants cache insert error: {e}")
            if conn is not None:
                conn.rollback()
            raise CacheWriteError(f"Grants cache insert error: {e}") from e
        finally:
            self._release_connection(conn)

    def refresh_popular_open(self) -> None:
        """
        Refresh the ``popular_open`` materialized view.

        Raises:
            CacheWriteError: If the refresh function is missing or fails
        """
        self._write(
            "SELECT refresh_popular_open()",
            error_message="popular_open refresh error",
        )

    def init_schema(self) -> None:
        """Create the cache table, the view and its refresh function."""
        self._write(SCHEMA_SQL, error_message="Schema creation error")
        logger.info("grants_cache schema ready")

    def close(self):
        """Close all connections in the pool."""
        if self.pool is not None:
            self.pool.closeall()
            self.pool = None
            logger.info("PostgreSQL connection pool closed")
