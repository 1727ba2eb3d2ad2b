"""Database records for domains.

One row per domain ID in the ``domains`` table, holding a copy of the
domain's environments. Updates overwrite the environments unconditionally.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool

from constants import DOMAINS_TABLE
from metrics import DATABASE_QUERIES, DATABASE_QUERY_DURATION
from models import DomainRecord, RecordStoreError

logger = logging.getLogger(__name__)


class DomainRecordStore:
    """Get/create/update/delete of domain rows.

    The connection pool is injected; the store never opens connections of
    its own and never retries. Driver errors are re-raised as
    RecordStoreError.
    """

    def __init__(self, pool: ThreadedConnectionPool, table: str = DOMAINS_TABLE):
        self._pool = pool
        self._table = sql.Identifier(table)

    @contextmanager
    def _cursor(self, operation: str) -> Iterator[Any]:
        """Borrow a connection, yield a cursor, commit on success.

        On any driver error the transaction is rolled back and the error is
        wrapped. The connection always goes back to the pool, and is closed
        there when the server dropped it.
        """
        start = time.monotonic()
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as e:
            DATABASE_QUERIES.labels(operation=operation, status="error").inc()
            raise RecordStoreError(f"Could not get database connection: {e}") from e

        broken = False
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
            DATABASE_QUERIES.labels(operation=operation, status="success").inc()
        except psycopg2.Error as e:
            broken = self._rollback(conn, operation)
            DATABASE_QUERIES.labels(operation=operation, status="error").inc()
            logger.error("Database %s failed: %s", operation, e)
            raise RecordStoreError(f"Database {operation} failed: {e}") from e
        finally:
            if broken:
                self._pool.putconn(conn, close=True)
            else:
                self._pool.putconn(conn)
            DATABASE_QUERY_DURATION.labels(operation=operation).observe(
                time.monotonic() - start
            )

    @staticmethod
    def _rollback(conn: Any, operation: str) -> bool:
        """Roll back a failed transaction. Returns True if the connection is unusable."""
        if conn.closed:
            return True
        try:
            conn.rollback()
        except psycopg2.Error as e:
            logger.warning("Rollback after failed %s failed: %s", operation, e)
            return True
        return False

    def ensure_schema(self) -> None:
        """Create the domains table if it does not exist."""
        query = sql.SQL(
            "CREATE TABLE IF NOT EXISTS {} ("
            "domain_id TEXT PRIMARY KEY, "
            "environments TEXT[] NOT NULL DEFAULT '{{}}')"
        ).format(self._table)
        with self._cursor("ensure_schema") as cur:
            cur.execute(query)

    def get(self, domain_id: str) -> DomainRecord | None:
        """Get the record for a domain, or None if there is none."""
        query = sql.SQL(
            "SELECT domain_id, environments FROM {} WHERE domain_id = %s"
        ).format(self._table)
        with self._cursor("get") as cur:
            cur.execute(query, (domain_id,))
            row = cur.fetchone()

        if row is None:
            return None
        return DomainRecord(domain_id=row[0], environments=list(row[1] or []))

    def create(self, domain_id: str, environments: list[str]) -> None:
        query = sql.SQL(
            "INSERT INTO {} (domain_id, environments) VALUES (%s, %s)"
        ).format(self._table)
        with self._cursor("create") as cur:
            cur.execute(query, (domain_id, list(environments)))
        logger.info("Created record for domain %s", domain_id)

    def update(self, domain_id: str, environments: list[str]) -> None:
        """Overwrite a domain's environments (no partial patch)."""
        query = sql.SQL(
            "UPDATE {} SET environments = %s WHERE domain_id = %s"
        ).format(self._table)
        with self._cursor("update") as cur:
            cur.execute(query, (list(environments), domain_id))
        logger.info("Updated record for domain %s", domain_id)

    def delete(self, domain_id: str) -> None:
        """Delete a domain's record. Deleting a missing record succeeds."""
        query = sql.SQL("DELETE FROM {} WHERE domain_id = %s").format(self._table)
        with self._cursor("delete") as cur:
            cur.execute(query, (domain_id,))
            deleted = cur.rowcount
        if deleted:
            logger.info("Deleted record for domain %s", domain_id)
        else:
            logger.info("Record for domain %s already absent", domain_id)
