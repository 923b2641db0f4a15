"""
Embedded order database.

The whole database lives in memory on a single SQLite connection. It is
loaded from one file when the store opens and written back to that file,
atomically, after every unit of work that changes it.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Executable

from order_desk.core.durability import atomic_write_file
from order_desk.core.errors import PersistenceError, StatementError, StoreOpenError

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_memory_engine() -> Engine:
    """Create an engine bound to one shared in-memory SQLite connection."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # BEGIN is emitted by SQLAlchemy instead of pysqlite so that DDL runs
    # inside the same transaction as DML.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


class OrderStore:
    """
    Single-file, single-writer order database.

    Every unit of work runs under one re-entrant lock, so the read, modify
    and persist steps of two callers never interleave.

    Usage:
        with OrderStore(path) as store:
            repository = OrderRepository(store)
    """

    def __init__(self, path: Union[Path, str], *, fsync: bool = True) -> None:
        self.path = Path(path)
        self.fsync = fsync
        self._lock = threading.RLock()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        # Bytes of the file as last read or written
        self._saved_image: bytes = b""

    def __enter__(self) -> "OrderStore":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def open(self) -> None:
        """
        Materialize the in-memory database from the file, if there is one.

        Raises:
            StoreOpenError: If the file exists but is unreadable or corrupt
        """
        with self._lock:
            if self._engine is not None:
                return

            image = self._read_image()
            engine = create_memory_engine()
            if image:
                try:
                    self._load_image(engine, image)
                except StoreOpenError:
                    engine.dispose()
                    raise

            self._bind(engine)
            self._saved_image = image or b""
            logger.info(
                "Opened order store at %s (%s)",
                self.path,
                f"{len(image)} bytes" if image else "new database",
            )

    def initialize(self):
        """
        Open the store, bring the orders table to the current layout and
        save the result.

        Returns:
            The SchemaState the table was found in

        Raises:
            MigrationError: If the table cannot be brought up to date. The
                store is closed again and the file is left as it was.
        """
        from order_desk.core.schema import SchemaManager

        self.open()
        with self._lock:
            try:
                state = SchemaManager(self).apply()
                self.persist()
            except PersistenceError:
                self._release()
                raise
        return state

    def close(self) -> None:
        """Persist one last time and release the in-memory database."""
        with self._lock:
            if self._engine is None:
                return
            try:
                self.persist()
            finally:
                self._release()

    def _bind(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def _release(self) -> None:
        """Drop the in-memory database without saving it."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Closed order store at %s", self.path)

    def _read_image(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StoreOpenError(f"Cannot read database file {self.path}: {e}") from e

    def _load_image(self, engine: Engine, image: bytes) -> None:
        raw = engine.raw_connection()
        try:
            driver_connection = raw.driver_connection
            driver_connection.deserialize(image)
            row = driver_connection.execute("PRAGMA quick_check").fetchone()
        except sqlite3.DatabaseError as e:
            raise StoreOpenError(f"Database file {self.path} is corrupt: {e}") from e
        finally:
            raw.close()

        if row is None or row[0] != "ok":
            raise StoreOpenError(
                f"Database file {self.path} failed integrity check: {row[0] if row else 'no result'}"
            )

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise StatementError(f"Order store at {self.path} is not open")
        return self._engine

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def persist(self) -> None:
        """
        Serialize the whole database and atomically replace the file.

        Raises:
            WriteError: If the image cannot be written
        """
        with self._lock:
            raw = self._require_engine().raw_connection()
            try:
                driver_connection = raw.driver_connection
                # A database with no pages serializes to nothing
                page_count = driver_connection.execute("PRAGMA page_count").fetchone()[0]
                image = driver_connection.serialize() if page_count else b""
            except sqlite3.Error as e:
                raise StatementError(f"Cannot serialize database {self.path}: {e}") from e
            finally:
                raw.close()
            atomic_write_file(self.path, image, fsync=self.fsync)
            self._saved_image = image
            logger.debug("Persisted %d bytes to %s", len(image), self.path)

    def _persist_or_revert(self) -> None:
        """
        Persist a committed unit of work. If that fails, the in-memory
        database goes back to the last saved image, so the failed change
        is not written out by a later save.
        """
        try:
            self.persist()
        except PersistenceError:
            self._revert_to_saved()
            raise

    def _revert_to_saved(self) -> None:
        logger.warning("Save to %s failed; reverting to the last saved state", self.path)
        self._require_engine().dispose()
        engine = create_memory_engine()
        if self._saved_image:
            self._load_image(engine, self._saved_image)
        self._bind(engine)

    # ========================================================================
    # UNITS OF WORK
    # ========================================================================

    @contextmanager
    def connection(self, persist: bool = True) -> Iterator[Connection]:
        """
        Core connection inside one transaction.

        Committed when the block exits normally (then persisted, unless
        persist is False) and rolled back when it raises.
        """
        with self._lock:
            with self._require_engine().begin() as conn:
                yield conn
            if persist:
                self._persist_or_revert()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """ORM session for a mutation; committed and persisted on success."""
        with self._lock:
            if self._session_factory is None:
                raise StatementError(f"Order store at {self.path} is not open")
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StatementError(str(e)) from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
            self._persist_or_revert()

    @contextmanager
    def read(self) -> Iterator[Session]:
        """ORM session for queries. Nothing is committed or persisted."""
        with self._lock:
            if self._session_factory is None:
                raise StatementError(f"Order store at {self.path} is not open")
            session = self._session_factory()
            try:
                yield session
            except SQLAlchemyError as e:
                raise StatementError(str(e)) from e
            finally:
                session.close()

    def execute(
        self,
        statement: Union[str, Executable],
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run one statement in its own unit of work.

        Rows the statement returns come back as dicts, otherwise an empty
        list. A statement that changes data or schema, including one with a
        RETURNING clause, is committed and persisted before returning.

        Raises:
            StatementError: If the statement is malformed or fails
        """
        if isinstance(statement, str):
            statement = text(statement)

        with self._lock:
            try:
                with self._require_engine().begin() as conn:
                    before = self._change_marker(conn)
                    result = conn.execute(statement, params)
                    rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
                    changed = not result.returns_rows or self._change_marker(conn) != before
            except SQLAlchemyError as e:
                raise StatementError(str(e)) from e

            if changed:
                self._persist_or_revert()
            return rows

    @staticmethod
    def _change_marker(conn: Connection):
        """Row changes made on this connection, and the schema version."""
        schema_version = conn.exec_driver_sql("PRAGMA schema_version").scalar()
        return conn.connection.driver_connection.total_changes, schema_version
