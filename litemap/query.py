"""Generic object persistence over :class:`~litemap.mapping.TableMapping`.

:class:`ObjectQuery` saves, checks, fills, updates and deletes any mapped
entity by its primary key. SQL text comes from :mod:`litemap.sql`; every
field value travels as a positional parameter.
"""

from __future__ import annotations

from typing import Any

import structlog

from .errors import (
    Error, ExecError, MappingNotBoundError, PrepareError, ScalarNotFoundError, StepError,
)
from .mapping import TableMapping, mapping_of
from .sql import create_table_sql, drop_table_sql, statements_for
from .statement import CompiledStatement, PreparedStatement
from .values import BindingChain, ValueKind

logger = structlog.get_logger(__name__)


class ObjectQuery:
    """Persistence operations for mapped entities on one connection.

    Each operation accepts a :class:`TableMapping` or an entity exposing one
    as ``table_mapping``.
    """

    def __init__(self, connection):
        connection.handle  # fail fast on a closed connection
        self._connection = connection
        self._statement = PreparedStatement(connection)
        self.rowcount = -1

    def _mapping(self, entity: Any, op: str) -> TableMapping:
        mapping = mapping_of(entity)
        if not mapping.check_bindings():
            raise MappingNotBoundError(f"{op} error: table binding is not acceptable: {mapping!r}")
        return mapping

    @staticmethod
    def _params(mapping: TableMapping, columns):
        fields = {f.name: f for f in mapping.fields}
        return [fields[name] for name in columns]

    def _execute(self, op: str, mapping: TableMapping, compiled) -> None:
        params = self._params(mapping, compiled.columns)
        try:
            self._statement.execute(compiled.text, *params)
        except (PrepareError, StepError) as e:
            raise ExecError(f"{op} error. {e.message}", code=e.code) from e
        self.rowcount = self._statement.rowcount
        logger.debug("object_" + op, table=mapping.table_name, rowcount=self.rowcount)

    def save(self, entity: Any) -> None:
        mapping = self._mapping(entity, "save")
        self._execute("save", mapping, statements_for(mapping.schema).insert)

    def exists(self, entity: Any) -> bool:
        mapping = self._mapping(entity, "exists")
        compiled = statements_for(mapping.schema).count
        params = self._params(mapping, compiled.columns)
        try:
            count = self._statement.execute_scalar(ValueKind.INT64, compiled.text, *params)
        except (PrepareError, StepError, ScalarNotFoundError) as e:
            raise ExecError(f"exists error. {e.message}", code=e.code) from e
        return count > 0

    def fill(self, entity: Any) -> bool:
        """Load the row addressed by the primary key into the entity.

        Returns ``False``, leaving the entity untouched, when no row matches.
        """
        mapping = self._mapping(entity, "fill")
        compiled = statements_for(mapping.schema).select
        params = BindingChain(self._params(mapping, compiled.columns))
        try:
            with CompiledStatement(self._connection) as stmt:
                stmt.prepare(compiled.text)
                stmt.bind(params)
                if not stmt.step():
                    return False
                BindingChain(mapping.fields).extract(stmt.handle)
        except (PrepareError, StepError) as e:
            raise ExecError(f"fill error. {e.message}", code=e.code) from e
        return True

    def update(self, entity: Any) -> None:
        mapping = self._mapping(entity, "update")
        self._execute("update", mapping, statements_for(mapping.schema).update)

    def save_or_update(self, entity: Any) -> None:
        try:
            if self.exists(entity):
                self.update(entity)
            else:
                self.save(entity)
        except Error as e:
            raise e.with_prefix("save_or_update error. ") from e

    def delete_object(self, entity: Any) -> None:
        mapping = self._mapping(entity, "delete_object")
        self._execute("delete_object", mapping, statements_for(mapping.schema).delete)

    def create_table(self, entity: Any, if_not_exists: bool = True) -> None:
        """Create the mapped table; the first field becomes the primary key."""
        mapping = self._mapping(entity, "create_table")
        self._statement.execute(create_table_sql(mapping.schema, if_not_exists=if_not_exists))
        logger.debug("table_created", table=mapping.table_name)

    def drop_table(self, entity: Any, if_exists: bool = True) -> None:
        mapping = self._mapping(entity, "drop_table")
        self._statement.execute(drop_table_sql(mapping.schema, if_exists=if_exists))
        logger.debug("table_dropped", table=mapping.table_name)
