from litemap import Column, TableSchema, ValueKind
from litemap.sql import create_table_sql, drop_table_sql, statements_for

PERSON = TableSchema("Person", [
    Column("id", ValueKind.INT32),
    Column("name", ValueKind.TEXT),
    Column("address", ValueKind.TEXT),
])


def _normalize(sql):
    return " ".join(sql.split())


def test_insert():
    insert = statements_for(PERSON).insert
    assert insert.columns == ("id", "name", "address")
    assert insert.text.count("?") == 3
    assert _normalize(insert.text).startswith("INSERT INTO")


def test_count_and_delete_bind_only_key():
    stmts = statements_for(PERSON)
    assert stmts.count.columns == ("id",)
    assert "count(*)" in stmts.count.text
    assert stmts.delete.columns == ("id",)
    assert _normalize(stmts.delete.text).startswith("DELETE FROM")


def test_select_lists_mapped_columns_in_order():
    select = statements_for(PERSON).select
    assert select.columns == ("id",)
    text = _normalize(select.text)
    assert text.index("id") < text.index("name") < text.index("address")


def test_update_sets_non_key_then_filters_by_key():
    update = statements_for(PERSON).update
    assert update.columns == ("name", "address", "id")
    text = _normalize(update.text)
    assert text.startswith("UPDATE")
    assert "WHERE" in text


def test_statements_are_cached_per_schema():
    assert statements_for(PERSON) is statements_for(PERSON)
    other = TableSchema("Person", [Column("id", ValueKind.INT32), Column("name", ValueKind.TEXT)])
    assert statements_for(other) is not statements_for(PERSON)


def test_create_table_sql():
    ddl = _normalize(create_table_sql(PERSON))
    assert ddl.startswith("CREATE TABLE IF NOT EXISTS")
    assert "PRIMARY KEY (id)" in ddl
    assert "address TEXT" in ddl

    assert "IF NOT EXISTS" not in create_table_sql(PERSON, if_not_exists=False)


def test_drop_table_sql():
    assert _normalize(drop_table_sql(PERSON)) == 'DROP TABLE IF EXISTS "Person"'
    assert _normalize(drop_table_sql(PERSON, if_exists=False)) == 'DROP TABLE "Person"'
