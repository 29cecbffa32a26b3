from __future__ import annotations

# contactbook/services/contact_svc.py
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

import pydantic

from ..audit import AuditAction, ContactAudit, ensure_audit_schema
from ..db import get_conn
from ..errors import ContactError, StoreError, ValidationError
from ..models import Contact, UpdateContactRequest
from ..repository import ContactRepository


@contextmanager
def _transaction(conn) -> Iterator[None]:
    """Explicit BEGIN..COMMIT on an autocommit connection; rolls back on ContactError."""
    try:
        conn.execute("BEGIN")
    except sqlite3.Error as e:
        raise StoreError(str(e)) from e
    try:
        yield
    except ContactError:
        conn.rollback()
        raise
    try:
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(str(e)) from e


def ensure_contact_schema():
    with get_conn() as conn:
        ContactRepository(conn).ensure_schema()
        conn.commit()
    ensure_audit_schema()


def list_contacts(limit: int, offset: int) -> list[dict[str, Any]]:
    with get_conn() as conn:
        return [c.model_dump() for c in ContactRepository(conn).list(limit, offset)]


def list_contacts_page(page: int, size: int) -> tuple[int, list[dict[str, Any]]]:
    """1-indexed page of contacts plus the total row count."""
    with get_conn() as conn:
        repo = ContactRepository(conn)
        total = repo.count()
        items = [c.model_dump() for c in repo.list(size, (page - 1) * size)]
    return total, items


def search_contacts(term: str) -> list[dict[str, Any]]:
    with get_conn() as conn:
        return [c.model_dump() for c in ContactRepository(conn).search(term)]


def get_contact(contact_id: str) -> dict[str, Any]:
    with get_conn() as conn:
        return ContactRepository(conn).get_by_id(contact_id).model_dump()


def create_contact(data: dict | Contact, audit: ContactAudit | None = None) -> str:
    audit = audit or ContactAudit(AuditAction.CREATE)
    try:
        contact = data if isinstance(data, Contact) else Contact(**data)
        with get_conn() as conn:
            new_id = ContactRepository(conn).create(contact)
            conn.commit()
    except (ContactError, pydantic.ValidationError) as e:
        audit.failed(e)
        raise
    audit.record_after(contact.model_copy(update={"id": new_id}))
    audit.ok()
    return new_id


def update_contact(
    contact_id: str,
    patch: dict | UpdateContactRequest,
    audit: ContactAudit | None = None,
) -> dict[str, Any]:
    """
    Apply a partial update and return the row as it reads afterwards.
    Only fields present in the patch are written; the update and the
    read-back share one transaction, so either both land or neither does.
    """
    audit = audit or ContactAudit(AuditAction.UPDATE)
    audit.contact_id = contact_id
    try:
        req = patch if isinstance(patch, UpdateContactRequest) else UpdateContactRequest(**patch)
        audit.changed = [col for col, _ in req.present_fields()]
        if not audit.changed:
            raise ValidationError("no fields to update")
        with get_conn() as conn:
            repo = ContactRepository(conn)
            with _transaction(conn):
                before = repo.get_by_id(contact_id)
                repo.update(contact_id, req)
                after = repo.get_by_id(contact_id)
    except (ContactError, pydantic.ValidationError) as e:
        audit.failed(e)
        raise
    audit.record_before(before)
    audit.record_after(after)
    audit.ok()
    return after.model_dump()


def delete_contact(contact_id: str, audit: ContactAudit | None = None):
    audit = audit or ContactAudit(AuditAction.DELETE)
    audit.contact_id = contact_id
    try:
        with get_conn() as conn:
            repo = ContactRepository(conn)
            with _transaction(conn):
                before = repo.get_by_id(contact_id)
                repo.delete(contact_id)
    except ContactError as e:
        audit.failed(e)
        raise
    audit.record_before(before)
    audit.ok()
