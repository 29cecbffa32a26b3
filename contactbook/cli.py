#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Contact book (SQLite)

Commands:
  init                Create the contacts and contact_audit tables
  list                Page through contacts (--limit/--offset)
  search TERM         Case-insensitive substring search on name, phone and address
  show ID             Print one contact
  add                 Add a contact, prints the new id
  update ID           Change only the given fields of a contact
  delete ID           Remove a contact
  export              Write all contacts to a CSV file
  history [ID]        Audit trail of changes, optionally for one contact

Exit codes: 0 ok, 1 not found, 2 invalid input, 3 store failure.
"""
from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd

from .audit import AuditAction, contact_history
from .db import get_settings
from .errors import NotFoundError, StoreError
from .services import contact_svc, export_svc

logger = logging.getLogger(__name__)


def _print_table(items: list[dict]):
    if not items:
        print("(empty)")
        return
    pd.set_option("display.max_rows", 200)
    pd.set_option("display.width", 160)
    print(pd.DataFrame(items).to_string(index=False))


# ---------------- Commands ----------------

def cmd_init(args):
    contact_svc.ensure_contact_schema()
    print("DB initialized.")


def cmd_list(args):
    limit = args.limit if args.limit is not None else get_settings()["page_size"]
    _print_table(contact_svc.list_contacts(limit, args.offset))


def cmd_search(args):
    _print_table(contact_svc.search_contacts(args.term))


def cmd_show(args):
    c = contact_svc.get_contact(args.id)
    for k, v in c.items():
        print(f"{k:<11}{v}")


def cmd_add(args):
    data = {
        "first_name": args.first_name,
        "last_name": args.last_name,
        "phone": args.phone,
        "address": args.address,
    }
    new_id = contact_svc.create_contact(data)
    print(new_id)


def cmd_update(args):
    patch = {
        "first_name": args.first_name,
        "last_name": args.last_name,
        "phone": args.phone,
        "address": args.address,
    }
    after = contact_svc.update_contact(args.id, patch)
    _print_table([after])


def cmd_delete(args):
    contact_svc.delete_contact(args.id)
    print("Deleted", args.id)


def cmd_export(args):
    n = export_svc.export_contacts_csv(args.out)
    print(f"{n} contacts exported to {args.out}")


def cmd_history(args):
    total, entries = contact_history(args.id, args.action, args.page, args.size)
    print(f"total: {total}")
    rows = []
    for e in entries:
        rows.append({
            "ts": e.ts,
            "action": e.action.value,
            "contact_id": e.contact_id,
            "changed": ",".join(e.changed),
            "result": e.result,
            "error": f"{e.error_kind}: {e.err_msg}" if e.error_kind else "",
        })
    _print_table(rows)


# ---------------- Entry ----------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contactbook", description="Contact book (SQLite)")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="create tables")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="list contacts")
    p_list.add_argument("--limit", type=int, required=False, help="default: page_size from config.yaml")
    p_list.add_argument("--offset", type=int, default=0)
    p_list.set_defaults(func=cmd_list)

    p_search = sub.add_parser("search", help="search contacts")
    p_search.add_argument("term")
    p_search.set_defaults(func=cmd_search)

    p_show = sub.add_parser("show", help="show one contact")
    p_show.add_argument("id")
    p_show.set_defaults(func=cmd_show)

    p_add = sub.add_parser("add", help="add a contact")
    p_add.add_argument("--first_name", required=True)
    p_add.add_argument("--last_name", required=True)
    p_add.add_argument("--phone", required=True)
    p_add.add_argument("--address", required=True)
    p_add.set_defaults(func=cmd_add)

    p_upd = sub.add_parser("update", help="update some fields of a contact")
    p_upd.add_argument("id")
    p_upd.add_argument("--first_name", required=False)
    p_upd.add_argument("--last_name", required=False)
    p_upd.add_argument("--phone", required=False)
    p_upd.add_argument("--address", required=False)
    p_upd.set_defaults(func=cmd_update)

    p_del = sub.add_parser("delete", help="delete a contact")
    p_del.add_argument("id")
    p_del.set_defaults(func=cmd_delete)

    p_exp = sub.add_parser("export", help="export contacts to CSV")
    p_exp.add_argument("--out", default="contacts.csv")
    p_exp.set_defaults(func=cmd_export)

    p_hist = sub.add_parser("history", help="audit trail of contact changes")
    p_hist.add_argument("id", nargs="?")
    p_hist.add_argument("--action", choices=[a.value for a in AuditAction], required=False)
    p_hist.add_argument("--page", type=int, default=1)
    p_hist.add_argument("--size", type=int, default=20)
    p_hist.set_defaults(func=cmd_history)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    try:
        # an unknown log_level name is a ValueError from logging itself
        logging.basicConfig(
            level=get_settings()["log_level"],
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        args.func(args)
    except NotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        logger.error("store failure in %s: %s", args.func.__name__, e)
        print(f"[ERROR] {e}", file=sys.stderr)
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
