"""Statement lifecycle: prepare, bind, step, decode, finalize.

:class:`CompiledStatement` wraps a single ``sqlite3_stmt`` and is a context
manager, so it is finalized on every exit path. :class:`PreparedStatement`
is the user-facing API built on it: ``execute``, ``execute_rows``,
``execute_scalar`` and transaction control.
"""

from __future__ import annotations

import contextlib
import ctypes
import enum
from typing import Any, Iterator, List, Sequence

import structlog

from .errors import (
    BindError, ExecError, PrepareError, ScalarNotFoundError, StepError, engine_error,
)
from .native import SQLITE_DONE, SQLITE_OK, SQLITE_ROW, load_library
from .values import BindingChain, ValueBinding, ValueKind

logger = structlog.get_logger(__name__)


class StatementState(enum.Enum):
    IDLE = "idle"
    PREPARED = "prepared"


class TransactionMode(enum.Enum):
    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"


class CompiledStatement:
    """A single compiled statement on a borrowed connection."""

    def __init__(self, connection):
        self._connection = connection
        self._lib = load_library()
        self._stmt = None
        self._params = None
        self.sql = None
        self.tail = ""

    @property
    def state(self) -> StatementState:
        return StatementState.IDLE if self._stmt is None else StatementState.PREPARED

    @property
    def handle(self):
        if self._stmt is None:
            raise PrepareError("Statement is not prepared")
        return self._stmt

    def prepare(self, sql: str) -> "CompiledStatement":
        if not self.prepare_next(sql):
            # Blank input or a lone comment compiles to nothing.
            raise PrepareError(f"No statement found in SQL text: {sql!r}")
        return self

    def prepare_next(self, sql: str) -> bool:
        """Compile the first statement in ``sql``; the rest is left in ``tail``.

        Returns ``False`` when ``sql`` holds only whitespace or comments.
        """
        if self._stmt is not None:
            raise PrepareError("Statement is already prepared", code=None)
        db = self._connection.handle
        encoded = sql.encode("utf-8")
        buf = ctypes.create_string_buffer(encoded)
        stmt = ctypes.c_void_p()
        tail = ctypes.c_void_p()
        res = self._lib.sqlite3_prepare_v2(db, buf, len(encoded), ctypes.byref(stmt), ctypes.byref(tail))
        if res != SQLITE_OK:
            raise engine_error(PrepareError, db, "Cannot prepare the statement", code=res, sql=sql)
        consumed = tail.value - ctypes.addressof(buf) if tail.value else len(encoded)
        self.tail = encoded[consumed:].decode("utf-8")
        if not stmt:
            return False
        self._stmt = stmt
        self.sql = encoded[:consumed].decode("utf-8")
        logger.debug("statement_prepared", sql=self.sql)
        return True

    def parameter_count(self) -> int:
        return int(self._lib.sqlite3_bind_parameter_count(self.handle))

    def column_count(self) -> int:
        return int(self._lib.sqlite3_column_count(self.handle))

    def bind(self, chain: BindingChain) -> None:
        expected = self.parameter_count()
        if len(chain) != expected:
            raise BindError(f"Incorrect number of parameters: expected {expected}, got {len(chain)}")
        chain.bind(self.handle)
        self._params = chain.values()

    def step(self) -> bool:
        """Advance one row; ``True`` when a row is available, ``False`` when done."""
        res = self._lib.sqlite3_step(self.handle)
        if res == SQLITE_ROW:
            return True
        if res == SQLITE_DONE:
            return False
        raise engine_error(
            StepError, self._connection.handle, "Step failed", code=res, sql=self.sql, params=self._params
        )

    def finalize(self) -> None:
        if self._stmt is None:
            return
        stmt, self._stmt = self._stmt, None
        # The return code repeats the last step failure, which was already raised.
        self._lib.sqlite3_finalize(stmt)
        self._params = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()


class PreparedStatement:
    """Run SQL against a connection with positional ``?`` parameters.

    Parameters are :class:`~litemap.values.Value` instances, bindings (such
    as mapped entity fields) or plain ``int``, ``float`` and ``str`` values.
    Every call compiles and finalizes its own statement; nothing is held
    between calls.
    """

    def __init__(self, connection):
        connection.handle  # fail fast on a closed connection
        self._connection = connection
        self.rowcount = -1

    @property
    def connection(self):
        return self._connection

    def execute(self, sql: str, *params: Any) -> None:
        if not params:
            self._exec(sql)
            return

        chain = BindingChain.of_params(params)
        with CompiledStatement(self._connection) as stmt:
            stmt.prepare(sql)
            stmt.bind(chain)
            if stmt.step():
                raise StepError(
                    "execute error: statement produced rows; use execute_rows", code=SQLITE_ROW
                )
        self.rowcount = self._connection.changes()

    def _exec(self, sql: str) -> None:
        # Runs each statement of a script in turn; none may take parameters.
        remaining = sql
        while remaining.strip():
            with CompiledStatement(self._connection) as stmt:
                try:
                    if not stmt.prepare_next(remaining):
                        break
                    expected = stmt.parameter_count()
                    if expected:
                        raise BindError(f"Incorrect number of parameters: expected {expected}, got 0")
                    while stmt.step():
                        pass
                except (PrepareError, StepError) as e:
                    raise ExecError(f"execute error. {e.message}", code=e.code) from e
                remaining = stmt.tail
        self.rowcount = self._connection.changes()

    def execute_rows(self, shape: Sequence[Any], sql: str, *params: Any) -> List[tuple]:
        """Run a query and return every row as a tuple decoded per ``shape``.

        ``shape`` lists one kind per result column (``ValueKind`` members or
        ``int``/``float``/``str``). The rows are collected eagerly.
        """
        kinds = [ValueKind.for_type(k) for k in shape]
        chain = BindingChain.of_params(params)
        rows = []
        with CompiledStatement(self._connection) as stmt:
            stmt.prepare(sql)
            ncols = stmt.column_count()
            if ncols != len(kinds):
                raise PrepareError(
                    f"Query returns {ncols} columns but the row shape has {len(kinds)}"
                )
            stmt.bind(chain)
            slots = BindingChain.of_shape(kinds)
            while stmt.step():
                slots.extract(stmt.handle)
                rows.append(slots.values())
        return rows

    def execute_scalar(self, kind: Any, sql: str, *params: Any) -> Any:
        """Return column 0 of the first row; no row raises :class:`ScalarNotFoundError`."""
        slot = ValueBinding(kind)
        chain = BindingChain.of_params(params)
        with CompiledStatement(self._connection) as stmt:
            stmt.prepare(sql)
            if stmt.column_count() == 0:
                raise PrepareError(f"Statement returns no columns: {sql!r}")
            stmt.bind(chain)
            if not stmt.step():
                raise ScalarNotFoundError(f"executeScalar error: no row returned by {sql!r}")
            slot.extract_at(stmt.handle, 0)
        return slot.get()

    # ---- Transactions -------------------------------------------------------

    def begin(self, modifier=None) -> None:
        if modifier:
            if isinstance(modifier, str):
                modifier = modifier.strip().upper()
            mode = TransactionMode(modifier)
            self._exec(f"BEGIN {mode.value}")
        else:
            mode = None
            self._exec("BEGIN")
        logger.debug("transaction_begun", mode=mode.value if mode else None)

    def commit(self) -> None:
        self._exec("COMMIT")
        logger.debug("transaction_committed")

    def rollback(self) -> None:
        self._exec("ROLLBACK")
        logger.debug("transaction_rolled_back")

    @contextlib.contextmanager
    def transaction(self, modifier=None) -> Iterator["PreparedStatement"]:
        """``begin`` on entry, ``commit`` on success, ``rollback`` on error."""
        self.begin(modifier)
        try:
            yield self
        except BaseException:
            # The block may have ended the transaction itself.
            if self._connection.in_transaction:
                self.rollback()
            raise
        try:
            self.commit()
        except ExecError:
            if self._connection.in_transaction:
                self.rollback()
            raise
