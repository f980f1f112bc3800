import ctypes
import os

import structlog

from .errors import ConnectionCloseError, ConnectionClosedError, ConnectionOpenError, engine_error
from .native import (
    SQLITE_OK, SQLITE_OPEN_CREATE, SQLITE_OPEN_READONLY, SQLITE_OPEN_READWRITE, SQLITE_OPEN_URI,
    load_library,
)

logger = structlog.get_logger(__name__)


class Connection:
    """One open handle to a file-backed SQLite database.

    The handle is opened in the constructor; a failed open leaves no usable
    instance. Statements and queries built on a connection borrow it and
    must not outlive it. A connection has one owner thread at a time and
    does no locking of its own.
    """

    def __init__(self, path, *, readonly=False, create=True, uri=False, busy_timeout_ms=None):
        self._lib = load_library()
        self._db = None
        self.path = os.fspath(path)
        if not self.path:
            raise ConnectionOpenError("Invalid SQLite database file path")

        if readonly:
            flags = SQLITE_OPEN_READONLY
        else:
            flags = SQLITE_OPEN_READWRITE
            if create:
                flags |= SQLITE_OPEN_CREATE
        if uri:
            flags |= SQLITE_OPEN_URI

        db = ctypes.c_void_p()
        res = self._lib.sqlite3_open_v2(self.path.encode("utf-8"), ctypes.byref(db), flags, None)
        if res != SQLITE_OK:
            err = engine_error(
                ConnectionOpenError, db, f"Cannot open SQLite database file {self.path!r}", code=res
            )
            # The engine usually hands back a handle even on failure; release it.
            self._lib.sqlite3_close(db)
            raise err

        self._db = db
        if busy_timeout_ms is not None:
            self._lib.sqlite3_busy_timeout(db, int(busy_timeout_ms))
        logger.debug("connection_opened", path=self.path, flags=flags)

    @property
    def handle(self):
        if self._db is None:
            raise ConnectionClosedError("Connection closed")
        return self._db

    @property
    def closed(self):
        return self._db is None

    @property
    def in_transaction(self):
        return self._lib.sqlite3_get_autocommit(self.handle) == 0

    def changes(self):
        """Rows modified by the most recent INSERT, UPDATE or DELETE."""
        return int(self._lib.sqlite3_changes(self.handle))

    def close(self):
        if self._db is None:
            return
        res = self._lib.sqlite3_close(self._db)
        if res != SQLITE_OK:
            # Still open: unfinalized statements keep it busy.
            logger.warning("connection_close_failed", path=self.path, code=res)
            raise engine_error(ConnectionCloseError, self._db, "Cannot close SQLite database", code=res)
        self._db = None
        logger.debug("connection_closed", path=self.path)

    def list_tables(self):
        from .statement import PreparedStatement
        from .values import ValueKind

        rows = PreparedStatement(self).execute_rows(
            [ValueKind.TEXT],
            "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE ? ORDER BY name",
            "table",
            "sqlite_%",
        )
        return [name for (name,) in rows]

    def get_table_columns(self, table_name: str):
        from .statement import PreparedStatement
        from .values import ValueKind

        rows = PreparedStatement(self).execute_rows(
            [ValueKind.TEXT, ValueKind.TEXT, ValueKind.INT32, ValueKind.INT32],
            'SELECT name, type, "notnull", pk FROM pragma_table_info(?) ORDER BY cid',
            table_name,
        )
        return [
            {
                "name": name,
                "type": type_,
                "not_null": bool(not_null),
                "primary_key": pk > 0,
            }
            for name, type_, not_null, pk in rows
        ]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"<litemap.Connection {self.path!r} {state}>"


def connect(path, **kwargs):
    """Open a :class:`Connection`; keyword options are passed through."""
    return Connection(path, **kwargs)
