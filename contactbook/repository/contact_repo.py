"""
Contact data access.

ContactRepository wraps an already-open sqlite3 connection; it never opens,
commits or closes the connection itself. Each method runs a single
parameterized statement and closes its cursor before returning.
"""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from sqlite3 import Connection
from typing import List, Sequence

import pydantic

from ..errors import NotFoundError, StoreError, ValidationError
from ..models import Contact, UpdateContactRequest

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS contacts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  first_name TEXT NOT NULL,
  last_name TEXT NOT NULL,
  phone TEXT NOT NULL,
  address TEXT NOT NULL
);
"""

_SELECT = "SELECT id, first_name, last_name, phone, address FROM contacts"


def _row_to_contact(row: Sequence) -> Contact:
    try:
        return Contact(
            id=str(row[0]),
            first_name=row[1],
            last_name=row[2],
            phone=row[3],
            address=row[4],
        )
    except pydantic.ValidationError as e:
        raise StoreError(f"cannot decode contact row: {e}") from e


def build_update_statement(contact_id: str, patch: UpdateContactRequest) -> tuple[str, list]:
    """Build the UPDATE touching only the fields present in the patch.

    Column names come from the fixed allow-list in models.CONTACT_FIELDS;
    values are bound positionally with the id last. The id is compared as
    text so only the exact string create() returned matches its row.
    """
    present = patch.present_fields()
    if not present:
        raise ValidationError("no fields to update")
    assignments = ", ".join(f"{col} = ?" for col, _ in present)
    params = [v for _, v in present]
    params.append(contact_id)
    return f"UPDATE contacts SET {assignments} WHERE CAST(id AS TEXT) = ?", params


class ContactRepository:
    def __init__(self, conn: Connection):
        self._conn = conn

    def ensure_schema(self):
        try:
            self._conn.executescript(DDL)
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def _fetch_all(self, sql: str, params: Sequence) -> List[Contact]:
        with closing(self._conn.execute(sql, params)) as cur:
            return [_row_to_contact(r) for r in cur.fetchall()]

    def list(self, limit: int, offset: int) -> List[Contact]:
        logger.info("list: retrieving contacts with limit %d and offset %d", limit, offset)
        try:
            contacts = self._fetch_all(f"{_SELECT} ORDER BY id LIMIT ? OFFSET ?", (limit, offset))
        except sqlite3.Error as e:
            logger.error("list: error executing query: %s", e)
            raise StoreError(str(e)) from e
        logger.info("list: retrieved %d contacts", len(contacts))
        return contacts

    def search(self, term: str) -> List[Contact]:
        logger.info("search: searching contacts with term %r", term)
        sql = (
            f"{_SELECT} "
            "WHERE first_name LIKE :q "
            "OR last_name LIKE :q "
            "OR phone LIKE :q "
            "OR address LIKE :q "
            "ORDER BY id"
        )
        try:
            contacts = self._fetch_all(sql, {"q": f"%{term}%"})
        except sqlite3.Error as e:
            logger.error("search: error executing query: %s", e)
            raise StoreError(str(e)) from e
        logger.info("search: %d contacts matched %r", len(contacts), term)
        return contacts

    def count(self) -> int:
        try:
            with closing(self._conn.execute("SELECT COUNT(1) FROM contacts")) as cur:
                return cur.fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def create(self, contact: Contact) -> str:
        logger.info("create: adding contact %s %s", contact.first_name, contact.last_name)
        try:
            with closing(self._conn.execute(
                "INSERT INTO contacts(first_name, last_name, phone, address) VALUES(?, ?, ?, ?)",
                (contact.first_name, contact.last_name, contact.phone, contact.address),
            )) as cur:
                new_id = str(cur.lastrowid)
        except sqlite3.Error as e:
            logger.error("create: insert failed: %s", e)
            raise StoreError(str(e)) from e
        logger.info("create: contact stored with id %s", new_id)
        return new_id

    def update(self, contact_id: str, patch: UpdateContactRequest):
        logger.info("update: updating contact with id %s", contact_id)
        sql, params = build_update_statement(contact_id, patch)
        try:
            with closing(self._conn.execute(sql, params)) as cur:
                affected = cur.rowcount
        except sqlite3.Error as e:
            logger.error("update: statement failed for id %s: %s", contact_id, e)
            raise StoreError(str(e)) from e
        if affected == 0:
            raise NotFoundError(contact_id)

    def delete(self, contact_id: str):
        logger.info("delete: deleting contact with id %s", contact_id)
        try:
            with closing(self._conn.execute("DELETE FROM contacts WHERE CAST(id AS TEXT) = ?", (contact_id,))) as cur:
                affected = cur.rowcount
        except sqlite3.Error as e:
            logger.error("delete: statement failed for id %s: %s", contact_id, e)
            raise StoreError(str(e)) from e
        if affected == 0:
            raise NotFoundError(contact_id)

    def get_by_id(self, contact_id: str) -> Contact:
        logger.info("get_by_id: retrieving contact with id %s", contact_id)
        try:
            with closing(self._conn.execute(f"{_SELECT} WHERE CAST(id AS TEXT) = ?", (contact_id,))) as cur:
                row = cur.fetchone()
        except sqlite3.Error as e:
            logger.error("get_by_id: query failed for id %s: %s", contact_id, e)
            raise StoreError(str(e)) from e
        if row is None:
            raise NotFoundError(contact_id)
        return _row_to_contact(row)
