"""Example: persisting plain Python objects with litemap.

Run:
    LITEMAP_SQLITE_LIB=/path/to/libsqlite3.so python example.py

``LITEMAP_SQLITE_LIB`` is optional; the system SQLite is used otherwise.
"""

import os
import tempfile

import litemap
from litemap import Column, TableSchema, ValueKind

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


def main():
    db_path = os.path.join(tempfile.gettempdir(), "litemap_example.db")
    if os.path.exists(db_path):
        os.remove(db_path)

    with litemap.connect(db_path) as conn:
        query = litemap.ObjectQuery(conn)
        stmt = litemap.PreparedStatement(conn)

        query.create_table(Person())

        # Save two people inside one transaction.
        with stmt.transaction():
            query.save(Person(1, "steven", "shanghai"))
            query.save(Person(2, "kevin", "beijing"))

        print("All people:")
        for id_, name, address in stmt.execute_rows(
            [int, str, str], "SELECT id, name, address FROM Person ORDER BY id"
        ):
            print(f"  id={id_}  name={name}  address={address}")

        # Load by primary key.
        kevin = Person(2)
        query.fill(kevin)
        print(f"\nLoaded: {kevin.name} from {kevin.address}")

        kevin.address = "hangzhou"
        query.save_or_update(kevin)

        query.delete_object(Person(1))
        count = stmt.execute_scalar(int, "SELECT count(*) FROM Person")
        print(f"\nPeople left: {count}")

    os.remove(db_path)


if __name__ == "__main__":
    main()
