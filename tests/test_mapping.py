import pytest
import litemap
from litemap import Column, TableMapping, TableSchema, ValueKind
from litemap.mapping import mapping_of

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


def test_schema_bind():
    p = Person(1, "steven", "shanghai")
    mapping = p.table_mapping
    assert mapping.table_name == "Person"
    assert mapping.column_names == ["id", "name", "address"]
    assert mapping.primary_key.name == "id"
    assert [f.name for f in mapping.non_key_fields] == ["name", "address"]
    assert mapping.check_bindings()
    assert mapping.schema == PERSON


def test_fields_read_live_values():
    p = Person(1, "steven", "shanghai")
    name = p.table_mapping.fields[1]
    assert name.get() == "steven"
    p.name = "kevin"
    assert name.get() == "kevin"
    name.set("amy")
    assert p.name == "amy"


def test_mappings_are_per_instance():
    a = Person(1, "a", "x")
    b = Person(2, "b", "y")
    assert a.table_mapping.primary_key.get() == 1
    assert b.table_mapping.primary_key.get() == 2


def test_check_bindings():
    assert not TableMapping().check_bindings()

    owner = Person()
    mapping = TableMapping()
    mapping.bind_primary_key("id", ValueKind.INT32, owner)
    mapping.bind_field("name", ValueKind.TEXT, owner)
    assert not mapping.check_bindings()  # no table name

    mapping.bind_table_name("Person")
    assert mapping.check_bindings()

    only_key = TableMapping()
    only_key.bind_table_name("Person")
    only_key.bind_primary_key("id", ValueKind.INT32, owner)
    assert not only_key.check_bindings()  # key alone

    no_key = TableMapping()
    no_key.bind_table_name("Person")
    no_key.bind_field("name", ValueKind.TEXT, owner)
    no_key.bind_field("address", ValueKind.TEXT, owner)
    assert not no_key.check_bindings()
    with pytest.raises(litemap.MappingNotBoundError):
        no_key.primary_key


def test_incremental_binding_order():
    owner = Person(5, "n", "a")
    mapping = TableMapping()
    mapping.bind_table_name("Person")
    mapping.bind_field("name", ValueKind.TEXT, owner)
    mapping.bind_field("address", ValueKind.TEXT, owner)
    mapping.bind_primary_key("id", ValueKind.INT32, owner)
    assert mapping.column_names == ["id", "name", "address"]

    # Re-binding a name replaces it without moving it.
    mapping.bind_field("name", str, owner)
    assert mapping.column_names == ["id", "name", "address"]
    assert mapping.fields[1].kind is ValueKind.TEXT


def test_attribute_names_can_differ():
    class Entry:
        def __init__(self):
            self.key = 3
            self.label = "three"

    schema = TableSchema("entries", [Column("entry_id", int, "key"), Column("title", str, "label")])
    entry = Entry()
    mapping = schema.bind(entry)
    assert mapping.column_names == ["entry_id", "title"]
    assert mapping.primary_key.get() == 3
    assert mapping.primary_key.kind is ValueKind.INT64


def test_schema_accepts_tuples():
    schema = TableSchema("t", [("id", int), ("v", float)])
    assert schema.columns == (Column("id", ValueKind.INT64), Column("v", ValueKind.FLOAT64))
    assert schema.column_names == ["id", "v"]


def test_unsupported_column_kind():
    with pytest.raises(litemap.UnsupportedTypeError):
        Column("blob", bytes)


def test_mapping_of():
    p = Person()
    assert mapping_of(p) is p.table_mapping
    assert mapping_of(p.table_mapping) is p.table_mapping
    with pytest.raises(litemap.MappingNotBoundError):
        mapping_of(object())
