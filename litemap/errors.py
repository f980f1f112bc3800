import collections.abc
import copy
import enum
import json

from .native import load_library


class ErrorKind(enum.Enum):
    CONNECTION_OPEN_FAILED = "ConnectionOpenFailed"
    CONNECTION_CLOSE_FAILED = "ConnectionCloseFailed"
    CONNECTION_CLOSED = "ConnectionClosed"
    STATEMENT_PREPARE_FAILED = "StatementPrepareFailed"
    STATEMENT_STEP_FAILED = "StatementStepFailed"
    BIND_FAILED = "BindFailed"
    UNSUPPORTED_TYPE = "UnsupportedType"
    SCALAR_NOT_FOUND = "ScalarNotFound"
    MAPPING_NOT_BOUND = "MappingNotBound"
    ENGINE_EXEC_FAILED = "EngineExecFailed"


class Error(Exception):
    """Base class for every litemap failure.

    ``code`` is the engine result code when the fault was detected at the
    SQLite boundary, otherwise ``None``.
    """

    kind = None

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self):
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"

    def with_prefix(self, prefix):
        """Copy of this error with ``prefix`` prepended; the code is kept."""
        clone = copy.copy(self)
        clone.message = prefix + self.message
        clone.args = (clone.message,)
        return clone


class ConnectionOpenError(Error):
    kind = ErrorKind.CONNECTION_OPEN_FAILED


class ConnectionCloseError(Error):
    kind = ErrorKind.CONNECTION_CLOSE_FAILED


class ConnectionClosedError(Error):
    kind = ErrorKind.CONNECTION_CLOSED


class PrepareError(Error):
    kind = ErrorKind.STATEMENT_PREPARE_FAILED


class StepError(Error):
    kind = ErrorKind.STATEMENT_STEP_FAILED


class BindError(Error):
    kind = ErrorKind.BIND_FAILED

    def __init__(self, message, code=None, value_kind=None):
        super().__init__(message, code)
        # ValueKind of the binding that failed, if known
        self.value_kind = value_kind


class UnsupportedTypeError(Error):
    kind = ErrorKind.UNSUPPORTED_TYPE


class ScalarNotFoundError(Error):
    kind = ErrorKind.SCALAR_NOT_FOUND


class MappingNotBoundError(Error):
    kind = ErrorKind.MAPPING_NOT_BOUND


class ExecError(Error):
    kind = ErrorKind.ENGINE_EXEC_FAILED


def _format_value_for_error(v, *, max_str=200):
    if v is None or isinstance(v, (bool, int, float)):
        return v
    if isinstance(v, str):
        if len(v) <= max_str:
            return v
        return v[:max_str] + "…"
    # Fall back to capped repr
    s = repr(v)
    if len(s) <= max_str:
        return s
    return s[:max_str] + "…"


def _format_params_for_error(params, *, max_items=50):
    if params is None:
        return None
    if not isinstance(params, collections.abc.Sequence):
        return _format_value_for_error(params)
    seq = list(params)
    if len(seq) > max_items:
        seq = seq[:max_items] + ["<truncated>"]
    return [_format_value_for_error(v) for v in seq]


def engine_error(exc_cls, db_handle, message, *, code=None, sql=None, params=None, **kwargs):
    """Build ``exc_cls`` from the engine's last error on ``db_handle``.

    ``code`` overrides the connection's last error code, which is needed when
    the caller already holds the result of the failing call.
    """
    lib = load_library()
    if code is None:
        code = lib.sqlite3_errcode(db_handle)
    native_msg = lib.sqlite3_errmsg(db_handle) if db_handle else None
    if native_msg:
        # Native messages should be UTF-8, but don't crash if not.
        native_str = native_msg.decode("utf-8", errors="replace")
    else:
        native_str = lib.sqlite3_errstr(code).decode("utf-8", errors="replace")

    msg_str = f"{message}: {native_str}"
    if sql is not None:
        ctx = {
            "native_code": int(code),
            "sql": sql,
            "params": _format_params_for_error(params),
        }
        msg_str = msg_str + "\nContext: " + json.dumps(ctx, ensure_ascii=False)
    return exc_cls(msg_str, code=int(code), **kwargs)
