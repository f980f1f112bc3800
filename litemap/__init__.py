from .native import load_library, sqlite_version
from .log import configure_logging
from .errors import (
    Error, ErrorKind, ConnectionOpenError, ConnectionCloseError, ConnectionClosedError,
    PrepareError, StepError, BindError, UnsupportedTypeError, ScalarNotFoundError,
    MappingNotBoundError, ExecError,
)
from .values import ValueKind, Value, Binding, ValueBinding, BindingChain
from .connection import Connection, connect
from .statement import CompiledStatement, PreparedStatement, StatementState, TransactionMode
from .mapping import Column, TableSchema, BoundField, TableMapping
from .query import ObjectQuery

__version__ = "0.1.0"

__all__ = [
    "load_library", "sqlite_version", "configure_logging",
    "Error", "ErrorKind", "ConnectionOpenError", "ConnectionCloseError", "ConnectionClosedError",
    "PrepareError", "StepError", "BindError", "UnsupportedTypeError", "ScalarNotFoundError",
    "MappingNotBoundError", "ExecError",
    "ValueKind", "Value", "Binding", "ValueBinding", "BindingChain",
    "Connection", "connect",
    "CompiledStatement", "PreparedStatement", "StatementState", "TransactionMode",
    "Column", "TableSchema", "BoundField", "TableMapping",
    "ObjectQuery",
]
