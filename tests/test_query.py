import pytest
import litemap
from litemap import Column, ObjectQuery, PreparedStatement, TableSchema, ValueKind
from litemap.native import SQLITE_CONSTRAINT, SQLITE_ERROR

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


PERSON_DDL = (
    "create table if not exists Person("
    "id integer not null, name varchar(56), address text, primary key(id))"
)


@pytest.fixture
def query(conn):
    PreparedStatement(conn).execute(PERSON_DDL)
    return ObjectQuery(conn)


def _rows(conn):
    return PreparedStatement(conn).execute_rows([int, str, str], "select * from Person order by id")


def test_person_scenario(conn, query):
    steven = Person(1, "steven", "shanghai")
    kevin = Person(2, "kevin", "beijing")
    query.save(steven)
    query.save(kevin)
    assert _rows(conn) == [(1, "steven", "shanghai"), (2, "kevin", "beijing")]

    loaded = Person(2)
    assert query.fill(loaded)
    assert (loaded.name, loaded.address) == ("kevin", "beijing")

    kevin.address = "hangzhou"
    query.update(kevin)
    assert _rows(conn) == [(1, "steven", "shanghai"), (2, "kevin", "hangzhou")]

    query.delete_object(steven)
    assert _rows(conn) == [(2, "kevin", "hangzhou")]
    assert not query.exists(steven)
    assert query.exists(kevin)


def test_exists(query):
    p = Person(7, "amy", "xian")
    assert not query.exists(p)
    query.save(p)
    assert query.exists(p)
    assert query.rowcount == 1


def test_fill_missing_row_leaves_entity_untouched(query):
    p = Person(99, "keep", "me")
    assert query.fill(p) is False
    assert (p.id, p.name, p.address) == (99, "keep", "me")


def test_update_touches_only_addressed_row(conn, query):
    query.save(Person(1, "a", "x"))
    query.save(Person(2, "b", "y"))
    query.update(Person(1, "A", "X"))
    assert query.rowcount == 1
    assert _rows(conn) == [(1, "A", "X"), (2, "b", "y")]

    query.update(Person(3, "C", "Z"))
    assert query.rowcount == 0


def test_save_or_update(conn, query):
    p = Person(1, "steven", "shanghai")
    query.save_or_update(p)
    p.address = "suzhou"
    query.save_or_update(p)
    assert _rows(conn) == [(1, "steven", "suzhou")]


def test_duplicate_save_fails(query):
    query.save(Person(1, "a", "x"))
    with pytest.raises(litemap.ExecError) as excinfo:
        query.save(Person(1, "b", "y"))
    err = excinfo.value
    assert err.code == SQLITE_CONSTRAINT
    assert err.message.startswith("save error. ")
    assert isinstance(err.__cause__, litemap.StepError)


def test_save_or_update_error_keeps_code(conn):
    query = ObjectQuery(conn)
    with pytest.raises(litemap.ExecError) as excinfo:
        query.save_or_update(Person(1, "a", "x"))
    err = excinfo.value
    assert err.message.startswith("save_or_update error. ")
    assert err.code == SQLITE_ERROR
    assert err.__cause__ is not None
    assert "no such table" in str(err)


def test_unbound_mapping_rejected(query):
    mapping = litemap.TableMapping("Person")
    with pytest.raises(litemap.MappingNotBoundError):
        query.save(mapping)
    with pytest.raises(litemap.MappingNotBoundError):
        query.exists(mapping)
    with pytest.raises(litemap.MappingNotBoundError):
        query.save(object())


def test_incremental_mapping_persists(conn, query):
    class Row:
        pass

    row = Row()
    row.pk = 5
    row.label = "five"
    row.where = "here"
    mapping = litemap.TableMapping()
    mapping.bind_table_name("Person")
    mapping.bind_primary_key("id", ValueKind.INT32, row, "pk")
    mapping.bind_field("name", ValueKind.TEXT, row, "label")
    mapping.bind_field("address", ValueKind.TEXT, row, "where")

    query.save(mapping)
    assert _rows(conn) == [(5, "five", "here")]


def test_text_is_bound_not_spliced(conn, query):
    hostile = "x'); DROP TABLE Person; --"
    query.save(Person(1, hostile, "o'hare"))
    assert _rows(conn) == [(1, hostile, "o'hare")]
    assert conn.list_tables() == ["Person"]


class Sample:
    SCHEMA = TableSchema("samples", [
        Column("id", ValueKind.UINT64),
        Column("i32", ValueKind.INT32),
        Column("u32", ValueKind.UINT32),
        Column("i64", ValueKind.INT64),
        Column("f32", ValueKind.FLOAT32),
        Column("f64", ValueKind.FLOAT64),
        Column("txt", ValueKind.TEXT),
    ])

    def __init__(self, id=0):
        self.id = id
        self.i32 = 0
        self.u32 = 0
        self.i64 = 0
        self.f32 = 0.0
        self.f64 = 0.0
        self.txt = ""
        self.table_mapping = self.SCHEMA.bind(self)


def test_create_table_and_round_trip_every_kind(conn):
    query = ObjectQuery(conn)
    sample = Sample(2 ** 64 - 1)
    query.create_table(sample)
    assert "samples" in conn.list_tables()
    columns = conn.get_table_columns("samples")
    assert columns[0]["name"] == "id"
    assert columns[0]["primary_key"] is True

    sample.i32 = -(2 ** 31)
    sample.u32 = 2 ** 32 - 1
    sample.i64 = 2 ** 63 - 1
    sample.f32 = 0.5
    sample.f64 = 1.0 / 3.0
    sample.txt = "ünïcode"
    query.save(sample)

    loaded = Sample(2 ** 64 - 1)
    assert query.fill(loaded)
    assert loaded.i32 == sample.i32
    assert loaded.u32 == sample.u32
    assert loaded.i64 == sample.i64
    assert loaded.f32 == 0.5
    assert loaded.f64 == sample.f64
    assert loaded.txt == sample.txt

    query.drop_table(sample)
    assert "samples" not in conn.list_tables()


def test_create_table_is_idempotent(conn):
    query = ObjectQuery(conn)
    query.create_table(Person())
    query.create_table(Person())
    assert conn.list_tables() == ["Person"]
