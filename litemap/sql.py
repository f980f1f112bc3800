"""SQL text for mapped tables, compiled with SQLAlchemy's SQLite dialect.

Only shape metadata (table and column names, value kinds) reaches the
compiler; every data value is a ``?`` placeholder. Each compiled statement
records which mapped column feeds each placeholder, in placeholder order.
"""

from __future__ import annotations

import collections
import functools

import sqlalchemy as sa
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateTable, DropTable

from .values import ValueKind

_DIALECT = sqlite.dialect(paramstyle="qmark")

_PK_PARAM = "pk_value"

# Maps value kinds onto SQLAlchemy types for DDL; affinity follows the engine table.
_TYPE_MAP = {
    ValueKind.INT32: sa.Integer,
    ValueKind.UINT32: sa.Integer,
    ValueKind.INT64: sa.BigInteger,
    ValueKind.UINT64: sa.BigInteger,
    ValueKind.FLOAT32: sa.Float,
    ValueKind.FLOAT64: sa.Double,
    ValueKind.TEXT: sa.Text,
}

CompiledSQL = collections.namedtuple("CompiledSQL", ["text", "columns"])

MappingSQL = collections.namedtuple(
    "MappingSQL", ["insert", "count", "select", "update", "delete"]
)


def to_table(schema) -> sa.Table:
    """SQLAlchemy ``Table`` for a :class:`~litemap.mapping.TableSchema`.

    The first column is the primary key.
    """
    metadata = sa.MetaData()
    columns = [
        sa.Column(
            col.name,
            _TYPE_MAP[col.kind](),
            primary_key=(i == 0),
            autoincrement=False,
        )
        for i, col in enumerate(schema.columns)
    ]
    return sa.Table(schema.table_name, metadata, *columns)


def _compile(stmt, param_columns) -> CompiledSQL:
    compiled = stmt.compile(dialect=_DIALECT)
    order = tuple(param_columns.get(key, key) for key in compiled.positiontup)
    return CompiledSQL(str(compiled), order)


@functools.lru_cache(maxsize=128)
def statements_for(schema) -> MappingSQL:
    """Compile the five persistence statements for ``schema`` (cached per shape)."""
    table = to_table(schema)
    pk_name = schema.columns[0].name
    pk_col = table.c[pk_name]
    by_pk = pk_col == sa.bindparam(_PK_PARAM)
    pk_params = {_PK_PARAM: pk_name}

    insert = _compile(sa.insert(table), {})
    count = _compile(sa.select(sa.func.count()).select_from(table).where(by_pk), pk_params)
    select = _compile(sa.select(*table.c).where(by_pk), pk_params)

    set_params = {}
    values = {}
    for i, col in enumerate(schema.columns[1:]):
        key = f"new_value_{i}"
        set_params[key] = col.name
        values[table.c[col.name]] = sa.bindparam(key)
    update = _compile(sa.update(table).values(values).where(by_pk), {**set_params, **pk_params})

    delete = _compile(sa.delete(table).where(by_pk), pk_params)
    return MappingSQL(insert, count, select, update, delete)


def create_table_sql(schema, if_not_exists=True) -> str:
    return str(CreateTable(to_table(schema), if_not_exists=if_not_exists).compile(dialect=_DIALECT)).strip()


def drop_table_sql(schema, if_exists=True) -> str:
    return str(DropTable(to_table(schema), if_exists=if_exists).compile(dialect=_DIALECT)).strip()
