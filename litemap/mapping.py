"""Entity ↔ table mappings.

A :class:`TableSchema` is the static shape of an entity type: the table name
and its ordered columns, the first being the primary key. It is shared by
every instance. :meth:`TableSchema.bind` wraps one instance's attributes in
:class:`BoundField` objects and returns that instance's :class:`TableMapping`::

    PERSON = TableSchema("Person", [
        Column("id", ValueKind.INT32),
        Column("name", ValueKind.TEXT),
        Column("address", ValueKind.TEXT),
    ])

    class Person:
        def __init__(self, id=0, name="", address=""):
            self.id = id
            self.name = name
            self.address = address
            self.table_mapping = PERSON.bind(self)

Bound fields never copy values; they read and write the instance's
attributes at bind and extract time.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, List, Optional, Tuple

from .errors import MappingNotBoundError
from .values import Binding, ValueKind


@dataclasses.dataclass(frozen=True)
class Column:
    name: str
    kind: ValueKind
    attr: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", ValueKind.for_type(self.kind))
        if self.attr is None:
            object.__setattr__(self, "attr", self.name)


@dataclasses.dataclass(frozen=True)
class TableSchema:
    table_name: str
    columns: Tuple[Column, ...]

    def __post_init__(self):
        cols = tuple(c if isinstance(c, Column) else Column(*c) for c in self.columns)
        object.__setattr__(self, "columns", cols)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def bind(self, owner: Any) -> "TableMapping":
        fields = [BoundField(c.name, c.kind, owner, c.attr) for c in self.columns]
        return TableMapping(self.table_name, fields)


class BoundField(Binding):
    """A column bound to one attribute of one entity instance."""

    def __init__(self, name: str, kind: Any, owner: Any, attr: Optional[str] = None):
        self.name = name
        self.kind = ValueKind.for_type(kind)
        self.owner = owner
        self.attr = attr or name

    def get(self):
        return getattr(self.owner, self.attr)

    def set(self, data):
        setattr(self.owner, self.attr, data)

    @property
    def column(self) -> Column:
        return Column(self.name, self.kind, self.attr)

    def __repr__(self):
        return f"BoundField({self.name!r}, {self.kind.value}, attr={self.attr!r})"


class TableMapping:
    """Table name plus ordered bound fields; the first field is the primary key.

    Build it in one go (``TableMapping(table, fields)`` or
    :meth:`TableSchema.bind`) or incrementally with :meth:`bind_table_name`,
    :meth:`bind_primary_key` and :meth:`bind_field`.
    """

    def __init__(self, table_name: str = "", fields: Iterable[BoundField] = ()):
        self._table_name = table_name
        self._fields = list(fields)
        self._has_primary_key = bool(self._fields)

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def fields(self) -> List[BoundField]:
        return list(self._fields)

    @property
    def primary_key(self) -> BoundField:
        if not self._has_primary_key:
            raise MappingNotBoundError(f"No primary key bound for table {self._table_name!r}")
        return self._fields[0]

    @property
    def non_key_fields(self) -> List[BoundField]:
        return self._fields[1:] if self._has_primary_key else list(self._fields)

    @property
    def column_names(self) -> List[str]:
        return [f.name for f in self._fields]

    @property
    def schema(self) -> TableSchema:
        return TableSchema(self._table_name, tuple(f.column for f in self._fields))

    def check_bindings(self) -> bool:
        return bool(self._table_name) and self._has_primary_key and len(self._fields) >= 2

    def bind_table_name(self, table_name: str) -> None:
        self._table_name = table_name

    def bind_primary_key(self, name: str, kind: Any, owner: Any, attr: Optional[str] = None) -> None:
        field = BoundField(name, kind, owner, attr)
        others = [f for f in self.non_key_fields if f.name != name]
        self._fields = [field] + others
        self._has_primary_key = True

    def bind_field(self, name: str, kind: Any, owner: Any, attr: Optional[str] = None) -> None:
        field = BoundField(name, kind, owner, attr)
        for i, existing in enumerate(self._fields):
            if existing.name == name:
                # Re-binding a name replaces it in place.
                self._fields[i] = field
                return
        self._fields.append(field)

    def __repr__(self):
        return f"TableMapping({self._table_name!r}, {self.column_names!r})"


def mapping_of(entity: Any) -> TableMapping:
    """The mapping for ``entity``: a TableMapping itself, or its ``table_mapping``."""
    if isinstance(entity, TableMapping):
        return entity
    mapping = getattr(entity, "table_mapping", None)
    if not isinstance(mapping, TableMapping):
        raise MappingNotBoundError(f"{type(entity).__name__} has no table mapping")
    return mapping
