import pytest
import litemap


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def conn(db_path):
    conn = litemap.connect(db_path)
    yield conn
    # Fails if any statement was left unfinalized.
    conn.close()
