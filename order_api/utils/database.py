"""
Database connection and query utilities

Provides connection pooling and helper methods for database operations
"""

import psycopg2
from psycopg2 import extensions
from psycopg2.pool import ThreadedConnectionPool
from psycopg2.extras import RealDictCursor
from importlib import resources
from typing import Optional, Any, Tuple
from contextlib import contextmanager
import logging
import threading

from order_api.exceptions import OperationCancelled
from order_api.utils.cancellation import CancellationToken, check_cancelled
from order_api.utils.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Database connection manager with connection pooling"""

    def __init__(self):
        """Set up the manager; the pool is opened on first use"""
        self.pool: Optional[ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()

    def _initialize_pool(self):
        """Create connection pool"""
        try:
            self.pool = ThreadedConnectionPool(
                minconn=settings.DB_POOL_MIN,
                maxconn=settings.DB_POOL_MAX,
                host=settings.DB_HOST,
                port=settings.DB_PORT,
                database=settings.DB_NAME,
                user=settings.DB_USER,
                password=settings.DB_PASSWORD
            )
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise

    def _get_pool(self) -> ThreadedConnectionPool:
        with self._pool_lock:
            if self.pool is None:
                self._initialize_pool()
        return self.pool

    @contextmanager
    def get_connection(self, token: Optional[CancellationToken] = None):
        """
        Context manager for database connections

        Everything executed on the connection runs in one transaction that
        commits on success and rolls back on any exception. If a token is
        given, cancelling it aborts the running statement.

        Usage:
            with db.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM table")
        """
        check_cancelled(token)
        pool = self._get_pool()
        conn = None
        unregister = None
        try:
            conn = pool.getconn()
            if token is not None:
                unregister = token.register(conn.cancel)
            yield conn
            check_cancelled(token)
            conn.commit()
        except extensions.QueryCanceledError as e:
            if conn:
                conn.rollback()
            if token is not None and token.cancelled:
                logger.info("Database statement cancelled by caller")
                raise OperationCancelled() from e
            logger.error(f"Database error: {e}")
            raise
        except OperationCancelled:
            if conn:
                conn.rollback()
            logger.info("Database transaction rolled back after cancellation")
            raise
        except Exception as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            if unregister:
                unregister()
            if conn:
                pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True, token: Optional[CancellationToken] = None):
        """
        Context manager for database cursors

        Args:
            dict_cursor: If True, returns results as dictionaries
            token: Optional cancellation token for the transaction

        Usage:
            with db.get_cursor() as cursor:
                cursor.execute("SELECT * FROM table")
                results = cursor.fetchall()
        """
        with self.get_connection(token=token) as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple] = None,
        fetch_one: bool = False,
        dict_cursor: bool = True,
        token: Optional[CancellationToken] = None
    ) -> Optional[Any]:
        """
        Execute a SELECT query and return results

        Args:
            query: SQL query string
            params: Query parameters
            fetch_one: If True, return single row; otherwise return all rows
            dict_cursor: If True, return results as dictionaries
            token: Optional cancellation token

        Returns:
            Query results (single row, list of rows, or None)
        """
        with self.get_cursor(dict_cursor=dict_cursor, token=token) as cursor:
            cursor.execute(query, params)
            if fetch_one:
                return cursor.fetchone()
            return cursor.fetchall()

    def execute_update(
        self,
        query: str,
        params: Optional[Tuple] = None,
        token: Optional[CancellationToken] = None
    ) -> int:
        """
        Execute an INSERT/UPDATE/DELETE query

        Returns:
            Number of rows affected
        """
        with self.get_cursor(dict_cursor=False, token=token) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def apply_schema(self):
        """Create the order tables and seed the standard statuses"""
        schema_sql = resources.files("order_api.sql").joinpath("schema.sql").read_text()
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(schema_sql)
        logger.info("Order schema applied")

    def close(self):
        """Close all database connections in the pool"""
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Database connection pool closed")


# Global database instance
db = Database()


def get_db() -> Database:
    """Get the global database instance"""
    return db
