"""PostgreSQL client backing the edition ledger when USE_LOCAL_DB=1.

Expected table (schema management lives outside this service):

    CREATE TABLE editions (
        asset_id        TEXT        NOT NULL,
        version_number  INTEGER     NOT NULL CHECK (version_number > 0),
        file_path       TEXT        NOT NULL,
        file_name       TEXT        NOT NULL,
        byte_size       BIGINT,
        width           INTEGER,
        height          INTEGER,
        mime_type       TEXT,
        is_original     BOOLEAN     NOT NULL DEFAULT FALSE,
        is_current      BOOLEAN     NOT NULL DEFAULT FALSE,
        edits_applied   JSONB       NOT NULL DEFAULT '[]'::jsonb,
        created_at      TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (asset_id, version_number)
    );
    CREATE UNIQUE INDEX editions_one_current ON editions (asset_id) WHERE is_current;
    CREATE UNIQUE INDEX editions_one_original ON editions (asset_id) WHERE is_original;
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Generator

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)


class PostgresClient:
    """PostgreSQL database client with connection pooling.

    Every helper runs in its own transaction: committed when the block exits
    cleanly, rolled back otherwise.
    """

    def __init__(self) -> None:
        self.enabled = os.getenv("USE_LOCAL_DB", "0") == "1"
        self._pool: pool.ThreadedConnectionPool | None = None

        if self.enabled:
            try:
                self._pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=int(os.getenv("POSTGRES_POOL_SIZE", "10")),
                    host=os.getenv("POSTGRES_HOST", "localhost"),
                    port=int(os.getenv("POSTGRES_PORT", "5432")),
                    database=os.getenv("POSTGRES_DB", "gallery"),
                    user=os.getenv("POSTGRES_USER", "gallery"),
                    password=os.getenv("POSTGRES_PASSWORD", "gallery_dev_password"),
                )
            except psycopg2.Error as exc:  # pragma: no cover
                raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc
            logger.info("PostgreSQL pool ready for %s", os.getenv("POSTGRES_DB", "gallery"))

    @contextmanager
    def transaction(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        """Yield a cursor inside one transaction on a pooled connection.

        Raises:
            RuntimeError: If local database is not enabled.
        """
        if not self.enabled or self._pool is None:
            raise RuntimeError("Local PostgreSQL database is not enabled")

        conn = self._pool.getconn()
        try:
            cursor = conn.cursor(cursor_factory=RealDictCursor if dict_cursor else None)
            try:
                yield cursor
            finally:
                cursor.close()
            conn.commit()
        except Exception:
            conn.rollback()
            logger.debug("PostgreSQL transaction rolled back", exc_info=True)
            raise
        finally:
            self._pool.putconn(conn)

    def execute_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        with self.transaction() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            return dict(result) if result else None

    def execute_many(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self.transaction() as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def execute_insert(self, query: str, params: tuple = ()) -> dict[str, Any]:
        """Run an INSERT ... RETURNING and return the inserted row."""
        with self.transaction() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            if not result:
                raise RuntimeError("Insert query did not return a row")
            return dict(result)

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Run an UPDATE or DELETE and return the number of rows affected."""
        with self.transaction(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount


# Singleton instance
_POSTGRES_CLIENT: PostgresClient | None = None


def get_postgres_client() -> PostgresClient | None:
    """PostgreSQL client singleton, or None unless USE_LOCAL_DB=1."""
    global _POSTGRES_CLIENT
    if os.getenv("USE_LOCAL_DB", "0") != "1":
        return None
    if _POSTGRES_CLIENT is None:
        _POSTGRES_CLIENT = PostgresClient()
    return _POSTGRES_CLIENT
