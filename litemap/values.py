"""Closed-set value kinds and their positional binding to SQLite statements.

Every value crossing the engine boundary is tagged with one of seven
:class:`ValueKind` members. A :class:`Binding` knows its kind and how to read
and write its Python value; :class:`BindingChain` binds an ordered sequence of
bindings to a statement's parameters and decodes result columns back into
them, position ``i`` of the chain matching parameter ``i + 1`` and column
``i``.
"""

from __future__ import annotations

import collections
import ctypes
import dataclasses
import enum
import math
import numbers
from typing import Any, Iterable, Iterator, Sequence

from .errors import BindError, UnsupportedTypeError
from .native import SQLITE_OK, SQLITE_TRANSIENT, errstr, load_library


class ValueKind(enum.Enum):
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    TEXT = "text"

    @property
    def python_type(self) -> type:
        if self in _INT_RANGES:
            return int
        if self is ValueKind.TEXT:
            return str
        return float

    @property
    def affinity(self) -> str:
        return {int: "INTEGER", float: "REAL", str: "TEXT"}[self.python_type]

    @property
    def zero(self) -> Any:
        return self.python_type()

    def validate(self, data: Any) -> Any:
        """Return ``data`` normalized for this kind, or raise :class:`BindError`."""
        if self in _INT_RANGES:
            if isinstance(data, bool) or not isinstance(data, int):
                raise BindError(
                    f"{self.value} binding expects int, got {type(data).__name__}",
                    value_kind=self,
                )
            lo, hi = _INT_RANGES[self]
            if not lo <= data <= hi:
                raise BindError(f"{data} is out of range for {self.value}", value_kind=self)
            return data
        if self is ValueKind.TEXT:
            if not isinstance(data, str):
                raise BindError(
                    f"text binding expects str, got {type(data).__name__}",
                    value_kind=self,
                )
            return data
        # Integers widen into the float family; nothing else crosses families.
        if isinstance(data, bool) or not isinstance(data, numbers.Real):
            raise BindError(
                f"{self.value} binding expects float, got {type(data).__name__}",
                value_kind=self,
            )
        try:
            data = float(data)
        except OverflowError:
            raise BindError(f"{data} is out of range for {self.value}", value_kind=self) from None
        if self is ValueKind.FLOAT32 and math.isfinite(data) and abs(data) > _FLOAT32_MAX:
            raise BindError(f"{data} is out of range for float32", value_kind=self)
        return data

    @classmethod
    def for_type(cls, type_or_kind: Any) -> "ValueKind":
        """Resolve a kind from a ``ValueKind`` or one of ``int``, ``float``, ``str``."""
        if isinstance(type_or_kind, cls):
            return type_or_kind
        try:
            return _DEFAULT_KINDS[type_or_kind]
        except (KeyError, TypeError):
            raise UnsupportedTypeError(f"unsupported value kind: {type_or_kind!r}") from None

    @classmethod
    def infer(cls, data: Any) -> "ValueKind":
        if isinstance(data, bool):
            raise UnsupportedTypeError("bool values are not a supported value kind")
        if isinstance(data, int):
            if data > _INT_RANGES[cls.INT64][1]:
                return cls.UINT64
            return cls.INT64
        if isinstance(data, float):
            return cls.FLOAT64
        if isinstance(data, str):
            return cls.TEXT
        raise UnsupportedTypeError(f"unsupported parameter type: {type(data).__name__}")


_INT_RANGES = {
    ValueKind.INT32: (-(2 ** 31), 2 ** 31 - 1),
    ValueKind.UINT32: (0, 2 ** 32 - 1),
    ValueKind.INT64: (-(2 ** 63), 2 ** 63 - 1),
    ValueKind.UINT64: (0, 2 ** 64 - 1),
}

_FLOAT32_MAX = 3.4028234663852886e38

_DEFAULT_KINDS = {
    int: ValueKind.INT64,
    float: ValueKind.FLOAT64,
    str: ValueKind.TEXT,
}


@dataclasses.dataclass(frozen=True)
class Value:
    """A tagged value; construction validates ``data`` against ``kind``."""

    kind: ValueKind
    data: Any

    def __post_init__(self):
        kind = ValueKind.for_type(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "data", kind.validate(self.data))

    @classmethod
    def of(cls, data: Any) -> "Value":
        return cls(ValueKind.infer(data), data)


# ---- Codecs ------------------------------------------------------------------


def _to_signed(data, bits):
    return data - (1 << bits) if data >= 1 << (bits - 1) else data


def _bind_int32(lib, stmt, index, data):
    return lib.sqlite3_bind_int(stmt, index, data)


def _bind_uint32(lib, stmt, index, data):
    return lib.sqlite3_bind_int(stmt, index, _to_signed(data, 32))


def _bind_int64(lib, stmt, index, data):
    return lib.sqlite3_bind_int64(stmt, index, data)


def _bind_uint64(lib, stmt, index, data):
    return lib.sqlite3_bind_int64(stmt, index, _to_signed(data, 64))


def _bind_double(lib, stmt, index, data):
    return lib.sqlite3_bind_double(stmt, index, data)


def _bind_text(lib, stmt, index, data):
    b = data.encode("utf-8")
    return lib.sqlite3_bind_text(stmt, index, b, len(b), SQLITE_TRANSIENT)


def _column_int32(lib, stmt, index):
    return int(lib.sqlite3_column_int(stmt, index))


def _column_uint32(lib, stmt, index):
    return int(lib.sqlite3_column_int(stmt, index)) & 0xFFFFFFFF


def _column_int64(lib, stmt, index):
    return int(lib.sqlite3_column_int64(stmt, index))


def _column_uint64(lib, stmt, index):
    return int(lib.sqlite3_column_int64(stmt, index)) & 0xFFFFFFFFFFFFFFFF


def _column_float32(lib, stmt, index):
    return ctypes.c_float(lib.sqlite3_column_double(stmt, index)).value


def _column_float64(lib, stmt, index):
    return float(lib.sqlite3_column_double(stmt, index))


def _column_text(lib, stmt, index):
    # column_text must be called before column_bytes for the length to match.
    ptr = lib.sqlite3_column_text(stmt, index)
    if not ptr:
        return ""
    length = lib.sqlite3_column_bytes(stmt, index)
    return ctypes.string_at(ptr, length).decode("utf-8", errors="replace")


Codec = collections.namedtuple("Codec", ["bind", "column"])

KIND_CODECS = {
    ValueKind.INT32: Codec(_bind_int32, _column_int32),
    ValueKind.UINT32: Codec(_bind_uint32, _column_uint32),
    ValueKind.INT64: Codec(_bind_int64, _column_int64),
    ValueKind.UINT64: Codec(_bind_uint64, _column_uint64),
    ValueKind.FLOAT32: Codec(_bind_double, _column_float32),
    ValueKind.FLOAT64: Codec(_bind_double, _column_float64),
    ValueKind.TEXT: Codec(_bind_text, _column_text),
}


# ---- Bindings ----------------------------------------------------------------


class Binding:
    """One position in a binding chain.

    Subclasses provide ``kind``, ``get`` and ``set``; binding and extraction
    go through the codec for ``kind``.
    """

    kind: ValueKind

    def get(self) -> Any:
        raise NotImplementedError

    def set(self, data: Any) -> None:
        raise NotImplementedError

    def bind_at(self, stmt, pos: int) -> None:
        data = self.kind.validate(self.get())
        index = pos + 1
        res = KIND_CODECS[self.kind].bind(load_library(), stmt, index, data)
        if res != SQLITE_OK:
            raise BindError(
                f"bind {self.kind.value} to parameter {index} failed: {errstr(res)}",
                code=res,
                value_kind=self.kind,
            )

    def extract_at(self, stmt, pos: int) -> None:
        self.set(KIND_CODECS[self.kind].column(load_library(), stmt, pos))


class ValueBinding(Binding):
    """A binding that owns its value: ad-hoc parameters and decode slots."""

    def __init__(self, kind, data=None):
        self.kind = ValueKind.for_type(kind)
        self._value = Value(self.kind, self.kind.zero if data is None else data)

    def get(self):
        return self._value.data

    def set(self, data):
        self._value = Value(self.kind, data)

    @property
    def value(self) -> Value:
        return self._value

    def __repr__(self):
        return f"ValueBinding({self.kind.value}, {self._value.data!r})"


def as_binding(param: Any) -> Binding:
    if isinstance(param, Binding):
        return param
    if isinstance(param, Value):
        return ValueBinding(param.kind, param.data)
    return ValueBinding(ValueKind.infer(param), param)


class BindingChain:
    """Ordered bindings, position ``i`` ↔ parameter ``i + 1`` / column ``i``."""

    def __init__(self, bindings: Iterable[Binding] = ()):
        self._bindings = list(bindings)

    @classmethod
    def of_params(cls, params: Iterable[Any]) -> "BindingChain":
        return cls(as_binding(p) for p in params)

    @classmethod
    def of_shape(cls, shape: Iterable[Any]) -> "BindingChain":
        return cls(ValueBinding(kind) for kind in shape)

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._bindings)

    @property
    def kinds(self) -> Sequence[ValueKind]:
        return [b.kind for b in self._bindings]

    def bind(self, stmt) -> None:
        for pos, binding in enumerate(self._bindings):
            binding.bind_at(stmt, pos)

    def extract(self, stmt) -> None:
        for pos, binding in enumerate(self._bindings):
            binding.extract_at(stmt, pos)

    def values(self) -> tuple:
        return tuple(b.get() for b in self._bindings)
