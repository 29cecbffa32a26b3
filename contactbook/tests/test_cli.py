from __future__ import annotations

import csv

from contactbook import cli, db
from contactbook.services import contact_svc


def _add(capsys, first="Ana", last="Lee", phone="555-1000", address="1 Main St") -> str:
    rc = cli.main(["add", "--first_name", first, "--last_name", last, "--phone", phone, "--address", address])
    assert rc == 0
    return capsys.readouterr().out.strip()


def test_add_show_update_delete(capsys):
    new_id = _add(capsys)
    assert contact_svc.get_contact(new_id)["last_name"] == "Lee"

    assert cli.main(["show", new_id]) == 0
    out = capsys.readouterr().out
    assert "555-1000" in out

    assert cli.main(["update", new_id, "--phone", "555-2000"]) == 0
    capsys.readouterr()
    got = contact_svc.get_contact(new_id)
    assert got["phone"] == "555-2000"
    assert got["address"] == "1 Main St"

    assert cli.main(["delete", new_id]) == 0
    capsys.readouterr()
    assert cli.main(["show", new_id]) == 1
    assert "not found" in capsys.readouterr().err


def test_update_without_fields_is_invalid(capsys):
    new_id = _add(capsys)
    assert cli.main(["update", new_id]) == 2
    assert "no fields to update" in capsys.readouterr().err


def test_list_and_search(capsys):
    _add(capsys)
    _add(capsys, first="John", last="Smith", phone="555-3000", address="9 Oak Ave")

    assert cli.main(["list", "--limit", "1"]) == 0
    out = capsys.readouterr().out
    assert "Ana" in out and "John" not in out

    assert cli.main(["search", "SMITH"]) == 0
    out = capsys.readouterr().out
    assert "John" in out and "Ana" not in out

    assert cli.main(["search", "nobody"]) == 0
    assert "(empty)" in capsys.readouterr().out


def test_export(capsys, tmp_path):
    _add(capsys)
    out_path = tmp_path / "contacts.csv"
    assert cli.main(["export", "--out", str(out_path)]) == 0
    with open(out_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["first_name"] == "Ana"
    assert rows[0]["address"] == "1 Main St"


def test_history(capsys):
    new_id = _add(capsys)
    _add(capsys, first="John")
    assert cli.main(["update", new_id, "--phone", "555-2000"]) == 0
    capsys.readouterr()

    assert cli.main(["history", new_id]) == 0
    out = capsys.readouterr().out
    assert "total: 2" in out
    assert "UPDATE" in out and "phone" in out

    assert cli.main(["history", "--action", "CREATE"]) == 0
    assert "total: 2" in capsys.readouterr().out


def test_malformed_config_is_invalid_input(capsys, monkeypatch, tmp_path):
    (tmp_path / "config.yaml").write_text("db_path: [unclosed\n", encoding="utf-8")
    monkeypatch.setattr(db, "_PROJECT_ROOT", str(tmp_path))
    assert cli.main(["list"]) == 2
    err = capsys.readouterr().err
    assert "invalid" in err and "config.yaml" in err


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out
