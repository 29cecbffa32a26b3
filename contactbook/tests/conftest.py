import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("db") / "contacts_test.db"
    # Point contactbook to this temp DB
    os.environ["CONTACTBOOK_DB_PATH"] = str(path)
    from contactbook.services.contact_svc import ensure_contact_schema
    ensure_contact_schema()
    return str(path)


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Safety: ensure we only ever wipe the temp DB, never a real one
    assert os.environ.get("CONTACTBOOK_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in ("contacts", "contact_audit"):
            conn.execute(f"DELETE FROM {t}")
        conn.commit()
    finally:
        conn.close()
    yield


@pytest.fixture()
def conn():
    """In-memory connection with the contacts table, for repository tests."""
    from contactbook.repository import ContactRepository
    c = sqlite3.connect(":memory:", isolation_level=None)
    c.row_factory = sqlite3.Row
    ContactRepository(c).ensure_schema()
    try:
        yield c
    finally:
        c.close()


@pytest.fixture()
def repo(conn):
    from contactbook.repository import ContactRepository
    return ContactRepository(conn)


@pytest.fixture()
def ana():
    from contactbook.models import Contact
    return Contact(first_name="Ana", last_name="Lee", phone="555-1000", address="1 Main St")
