import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from penny.logging_setup import get_logger

logger = get_logger(__name__)

Connection = sqlite3.Connection

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Seconds a statement waits on a lock held by another process (e.g. a second CLI)
BUSY_TIMEOUT = 5.0


class DatabaseConfig:
    """Where the expense database lives."""

    def __init__(self, db_path: Path | str = "data/expenses.db"):
        self.db_path = Path(db_path)

    @property
    def connection_string(self) -> str:
        return str(self.db_path.absolute())

    def __repr__(self) -> str:
        return f"DatabaseConfig({self.db_path})"


def configure_connection(conn: Connection) -> None:
    """
    Settings applied to every new connection.

    Rows come back as sqlite3.Row so repositories can read columns by name.
    """
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row


class DatabaseManager:
    """
    Owns the single SQLite connection of the process.

    The API serves requests from a thread pool, so the connection is opened
    with `check_same_thread=False` and every use goes through `transaction()`
    or `read()`. Both hold a re-entrant lock; statements from two requests
    can never interleave inside one transaction.

    Usage:
        with DatabaseManager(DatabaseConfig("data/expenses.db")) as db:
            db.initialize()
            with db.transaction() as conn:
                conn.execute("DELETE FROM expenses WHERE id = ?", (1,))
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Connection | None = None
        self._lock = threading.RLock()

    def get_connection(self) -> Connection:
        """The shared connection, opened on first use."""
        with self._lock:
            if self._connection is None:
                self._connection = self._open()
            return self._connection

    def _open(self) -> Connection:
        self.config.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self.config.connection_string,
            timeout=BUSY_TIMEOUT,
            check_same_thread=False,  # guarded by self._lock
        )
        configure_connection(conn)
        logger.debug("Opened %s", self.config.db_path)
        return conn

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Run statements as one unit of work.

        Commits when the block exits normally; on any exception the work is
        rolled back and the exception re-raised, so a failed write leaves
        no partial record.
        """
        with self._lock:
            conn = self.get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    @contextmanager
    def read(self) -> Generator[Connection, None, None]:
        """Exclusive access to the connection for queries."""
        with self._lock:
            yield self.get_connection()

    def initialize(self, schema_path: Path = SCHEMA_PATH) -> None:
        """Create tables and indexes that do not exist yet; safe to call on every start."""
        with self._lock:
            execute_schema(self.get_connection(), schema_path)
        logger.debug("Schema %s applied to %s", schema_path.name, self.config.db_path)

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def execute_schema(conn: Connection, schema_path: Path) -> None:
    """Run every statement of a .sql file and commit."""
    conn.executescript(schema_path.read_text(encoding="utf-8"))
    conn.commit()
