import os
from contextlib import contextmanager
from urllib.parse import quote_plus

from flask import current_app
from psycopg2.pool import ThreadedConnectionPool


def dsn_from_env() -> str:
    """
    Uses DATABASE_URL if set (e.g. for AWS RDS); otherwise builds a DSN from
    DB_HOST, DB_NAME, DB_USER, DB_PASSWORD, DB_PORT.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("DB_USER", "dev")
    pwd = quote_plus(os.getenv("DB_PASSWORD", "dev"))
    host = os.getenv("DB_HOST", "127.0.0.1")
    port = os.getenv("DB_PORT", "65432")
    name = os.getenv("DB_NAME", "donations_dev")
    return f"postgresql://{user}:{pwd}@{host}:{port}/{name}"


class Database:
    """
    Process-wide PostgreSQL handle. Opened once by create_app() and closed at
    shutdown; model functions take it as their first argument.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10):
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: ThreadedConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def open(self) -> "Database":
        if not self.is_open:
            self._pool = ThreadedConnectionPool(self.minconn, self.maxconn, self.dsn)
        return self

    def close(self) -> None:
        if self._pool is not None and not self._pool.closed:
            self._pool.closeall()
        self._pool = None

    @contextmanager
    def connection(self):
        """
        One transaction: commits when the block exits cleanly, rolls back
        when it raises.
        """
        if not self.is_open:
            self.open()
        conn = self._pool.getconn()
        try:
            with conn:
                yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def cursor(self):
        with self.connection() as conn, conn.cursor() as cur:
            yield cur


def get_db() -> Database:
    return current_app.extensions["db"]
