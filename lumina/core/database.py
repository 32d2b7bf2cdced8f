"""
FILE: lumina/core/database.py
PURPOSE: Embedded SQLite database serialized to a single persisted blob
EXPORTS:
  - Database: in-memory SQLite store persisted through a JsonStore
  - create_tables(conn) -> None
  - SCHEMA_SQL
DEPENDENCIES:
  - asyncio, base64, binascii, logging, sqlite3 (stdlib)
  - lumina.core.storage (JsonStore)
  - lumina.core.exceptions
NOTES:
  - The database lives in a private ":memory:" connection; the durable copy
    is the whole database image, base64-encoded under DB_STORAGE_KEY
  - Every mutating statement re-exports and persists the full image
  - A stored image that fails to load is replaced by a fresh database
  - initialize() is async and idempotent; concurrent callers share one task
"""

import asyncio
import base64
import binascii
import logging
import sqlite3
from typing import Callable, List, Optional, Sequence

from .constants import DB_STORAGE_KEY
from .exceptions import DatabaseImportError, DatabaseInitError, DatabaseNotReadyError
from .storage import JsonStore

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    completed INTEGER DEFAULT 0,
    category TEXT NOT NULL,
    priority TEXT DEFAULT 'medium',
    created_at TEXT NOT NULL,
    project_id TEXT,
    due_date TEXT,
    due_time TEXT,
    is_recurring INTEGER DEFAULT 0,
    last_completed_at TEXT,
    task_order INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    progress INTEGER DEFAULT 0,
    total_tasks INTEGER DEFAULT 0,
    completed_tasks INTEGER DEFAULT 0,
    color TEXT DEFAULT 'slate',
    status TEXT DEFAULT 'active',
    created_at TEXT NOT NULL,
    deadline TEXT,
    tags TEXT
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""

# Columns added to tasks after the first schema shipped
_TASK_COLUMN_UPGRADES = (
    ("due_time", "TEXT"),
    ("is_recurring", "INTEGER DEFAULT 0"),
    ("last_completed_at", "TEXT"),
)


def create_tables(conn: sqlite3.Connection) -> None:
    """Create the tasks, projects and settings tables if they don't exist."""
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    logger.info("Database tables created")


def _upgrade_schema(conn: sqlite3.Connection) -> None:
    """Create missing tables and add task columns older images lack."""
    conn.executescript(SCHEMA_SQL)
    cols = {row[1] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}

    for name, decl in _TASK_COLUMN_UPGRADES:
        if name in cols:
            continue
        conn.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
        logger.info("Database migration: added column tasks.%s", name)
    conn.commit()


def _open_image(data: bytes) -> sqlite3.Connection:
    """Open a private in-memory connection holding a copy of data."""
    conn = sqlite3.connect(":memory:")
    try:
        conn.deserialize(data)
        # deserialize() is lazy about validation; touch the schema to force it
        conn.execute("SELECT name FROM sqlite_master").fetchall()
    except sqlite3.DatabaseError:
        conn.close()
        raise
    conn.row_factory = sqlite3.Row
    return conn


def _new_connection() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    create_tables(conn)
    return conn


class Database:
    """
    Embedded relational store.

    Usage:
        db = Database(store)
        await db.initialize()
        db.execute("INSERT INTO settings (key, value) VALUES (?, ?)", ("k", "v"))
        rows = db.query("SELECT * FROM settings")
    """

    def __init__(self, store: JsonStore, storage_key: str = DB_STORAGE_KEY) -> None:
        self._store = store
        self._key = storage_key
        self._conn: Optional[sqlite3.Connection] = None
        self._init_task: Optional[asyncio.Task] = None
        self._ready_listeners: List[Callable[[], None]] = []

    # --- Lifecycle ---

    @property
    def is_ready(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> "Database":
        """
        Load the persisted image or create a fresh database.

        Safe to call repeatedly: returns at once when already open, and a
        call made while another is in flight awaits the same work.

        Raises:
            DatabaseInitError: If the database could not be opened
        """
        if self._conn is not None:
            return self
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        try:
            await self._init_task
        except DatabaseInitError:
            # Allow a later attempt to start over
            self._init_task = None
            raise
        return self

    async def _initialize(self) -> None:
        # Yield once so concurrent initialize() calls all attach to this task
        await asyncio.sleep(0)
        if self._conn is not None:
            return

        try:
            self._conn = self._load()
        except sqlite3.Error as e:
            logger.error("Database initialization failed: %s", e)
            raise DatabaseInitError(f"Failed to initialize database: {e}") from e

        logger.info("Database ready")
        self._notify_ready()

    def _notify_ready(self) -> None:
        for listener in list(self._ready_listeners):
            listener()

    def _load(self) -> sqlite3.Connection:
        saved = self._store.read(self._key)
        if not saved:
            conn = _new_connection()
            logger.info("Created new database")
            return conn

        try:
            conn = _open_image(base64.b64decode(saved, validate=True))
            _upgrade_schema(conn)
        except (sqlite3.DatabaseError, binascii.Error, TypeError, ValueError) as e:
            logger.warning("Failed to load saved database, creating new one: %s", e)
            return _new_connection()

        logger.info("Loaded existing database from store")
        return conn

    def add_ready_listener(self, listener: Callable[[], None]) -> None:
        """
        Register a callback fired once initialization completes.

        If the database is already open the callback runs immediately.
        """
        self._ready_listeners.append(listener)
        if self._conn is not None:
            listener()

    def close(self) -> None:
        """Persist and close; a later initialize() reloads from the store."""
        if self._conn is None:
            return
        self.save()
        self._conn.close()
        self._conn = None
        self._init_task = None

    # --- Statements ---

    def get_connection(self) -> sqlite3.Connection:
        """
        Return the open connection.

        Raises:
            DatabaseNotReadyError: If initialize() has not completed
        """
        if self._conn is None:
            raise DatabaseNotReadyError()
        return self._conn

    def execute(self, sql: str, params: Sequence = ()) -> int:
        """
        Run one mutating statement, commit, and persist the whole image.

        Returns:
            Number of rows affected
        """
        conn = self.get_connection()
        cursor = conn.execute(sql, tuple(params))
        conn.commit()
        self.save()
        return cursor.rowcount

    def execute_batch(self, sql: str, param_rows: Sequence[Sequence]) -> None:
        """Run one statement per parameter row, then persist once."""
        conn = self.get_connection()
        for params in param_rows:
            conn.execute(sql, tuple(params))
        conn.commit()
        self.save()

    def query(self, sql: str, params: Sequence = ()) -> List[sqlite3.Row]:
        """Run a read-only query and return all rows."""
        conn = self.get_connection()
        return conn.execute(sql, tuple(params)).fetchall()

    # --- Persistence ---

    def save(self) -> bool:
        """Write the base64 image to the durable store (failures are logged)."""
        if self._conn is None:
            return False
        try:
            data = self._conn.serialize()
        except sqlite3.Error as e:
            logger.error("Failed to export database: %s", e)
            return False
        saved = self._store.write(self._key, base64.b64encode(data).decode("ascii"))
        if saved:
            logger.debug("Database saved (%d bytes)", len(data))
        return saved

    def export_bytes(self) -> Optional[bytes]:
        """Raw database image, or None if the database is not open."""
        if self._conn is None:
            return None
        return self._conn.serialize()

    def import_bytes(self, data: bytes) -> None:
        """
        Replace the whole database with the given image and persist it.

        Importing into a database that was never opened makes it ready,
        so ready listeners fire just as they do after initialize().

        Raises:
            DatabaseImportError: If data is not a readable SQLite image
        """
        try:
            conn = _open_image(bytes(data))
            _upgrade_schema(conn)
        except sqlite3.DatabaseError as e:
            raise DatabaseImportError(f"Not a valid database image: {e}") from e

        was_ready = self._conn is not None
        if was_ready:
            self._conn.close()
        self._conn = conn
        self.save()
        logger.info("Database imported (%d bytes)", len(data))
        if not was_ready:
            self._notify_ready()
