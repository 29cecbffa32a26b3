"""
Audit trail for contact mutations.

Every create, update and delete leaves one row in ``contact_audit`` holding
the contact as it was before and after the change (as Contact JSON), the
columns a patch touched, and the error kind when the operation failed.
"""
from __future__ import annotations

import datetime as dt
import logging
import sqlite3
import time
import uuid
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel

from .db import get_conn
from .models import Contact

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS contact_audit (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  action TEXT NOT NULL,
  contact_id TEXT,
  request_id TEXT NOT NULL,
  before_json TEXT,
  after_json TEXT,
  changed TEXT,
  result TEXT NOT NULL,
  error_kind TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_audit_contact ON contact_audit(contact_id, id);
"""


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditEntry(BaseModel):
    id: int
    ts: str
    action: AuditAction
    contact_id: Optional[str] = None
    before: Optional[Contact] = None
    after: Optional[Contact] = None
    changed: List[str] = []
    result: str
    error_kind: Optional[str] = None
    err_msg: Optional[str] = None
    latency_ms: int = 0


def ensure_audit_schema():
    with get_conn() as conn:
        conn.executescript(DDL)
        conn.commit()


class ContactAudit:
    """Collects what one mutation did to a contact, then writes it once."""

    def __init__(self, action: AuditAction):
        self.action = AuditAction(action)
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.contact_id: Optional[str] = None
        self.before: Optional[Contact] = None
        self.after: Optional[Contact] = None
        self.changed: List[str] = []

    def record_before(self, contact: Contact):
        self.before = contact
        self.contact_id = contact.id

    def record_after(self, contact: Contact):
        self.after = contact
        self.contact_id = contact.id

    def ok(self):
        self._write("OK")

    def failed(self, exc: Exception):
        self._write("ERROR", type(exc).__name__, str(exc))

    def _write(self, result: str, error_kind: Optional[str] = None, err_msg: Optional[str] = None):
        rec = {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(),
            "action": self.action.value,
            "contact_id": self.contact_id,
            "request_id": self.request_id,
            "before_json": self.before.model_dump_json() if self.before is not None else None,
            "after_json": self.after.model_dump_json() if self.after is not None else None,
            "changed": ",".join(self.changed) or None,
            "result": result,
            "error_kind": error_kind,
            "err_msg": err_msg,
            "latency_ms": int((time.perf_counter() - self.start) * 1000),
        }
        # a failed audit write is reported, never raised over the mutation's own outcome
        try:
            with get_conn() as conn:
                conn.execute(
                    "INSERT INTO contact_audit(ts, action, contact_id, request_id, before_json, after_json, "
                    "changed, result, error_kind, err_msg, latency_ms) "
                    "VALUES(:ts, :action, :contact_id, :request_id, :before_json, :after_json, "
                    ":changed, :result, :error_kind, :err_msg, :latency_ms)",
                    rec,
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.warning("audit write failed for %s %s: %s", self.action.value, self.contact_id, e)


def _to_entry(row) -> AuditEntry:
    return AuditEntry(
        id=row["id"],
        ts=row["ts"],
        action=row["action"],
        contact_id=row["contact_id"],
        before=Contact.model_validate_json(row["before_json"]) if row["before_json"] else None,
        after=Contact.model_validate_json(row["after_json"]) if row["after_json"] else None,
        changed=row["changed"].split(",") if row["changed"] else [],
        result=row["result"],
        error_kind=row["error_kind"],
        err_msg=row["err_msg"],
        latency_ms=row["latency_ms"] or 0,
    )


def contact_history(
    contact_id: str | None = None,
    action: AuditAction | str | None = None,
    page: int = 1,
    size: int = 20,
) -> Tuple[int, List[AuditEntry]]:
    """Audit entries, newest first, optionally for one contact and/or one action."""
    where = []
    params: dict = {}
    if contact_id is not None:
        where.append("contact_id = :contact_id")
        params["contact_id"] = contact_id
    if action is not None:
        where.append("action = :action")
        params["action"] = AuditAction(action).value
    wh = " WHERE " + " AND ".join(where) if where else ""
    with get_conn() as conn:
        total = conn.execute(f"SELECT COUNT(1) AS cnt FROM contact_audit{wh}", params).fetchone()["cnt"]
        rows = conn.execute(
            f"SELECT * FROM contact_audit{wh} ORDER BY id DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": size, "offset": (page - 1) * size},
        ).fetchall()
    return total, [_to_entry(r) for r in rows]
