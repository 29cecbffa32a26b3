import os
import sqlite3

import pytest

from contactbook import db
from contactbook.errors import ConfigError


def test_env_path_wins(monkeypatch, tmp_path):
    target = tmp_path / "sub" / "x.db"
    monkeypatch.setenv("CONTACTBOOK_DB_PATH", str(target))
    assert db.get_db_path() == str(target)
    assert os.path.isdir(target.parent)


def test_config_yaml_paths(monkeypatch, tmp_path):
    (tmp_path / "config.yaml").write_text(
        "db_path: /tmp/prod.db\ntest_db_path: {}\npage_size: 25\nlog_level: debug\n".format(tmp_path / "t.db"),
        encoding="utf-8",
    )
    monkeypatch.setattr(db, "_PROJECT_ROOT", str(tmp_path))
    monkeypatch.delenv("CONTACTBOOK_DB_PATH")
    # PYTEST_CURRENT_TEST is set while tests run
    assert db.get_db_path() == str(tmp_path / "t.db")
    assert db.get_settings() == {"page_size": 25, "log_level": "DEBUG"}


def test_settings_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(db, "_PROJECT_ROOT", str(tmp_path))
    assert db.get_settings() == {"page_size": db.DEFAULT_PAGE_SIZE, "log_level": "INFO"}


def test_get_conn_closes(tmp_db_path):
    with db.get_conn() as conn:
        row = conn.execute("SELECT COUNT(1) AS n FROM contacts").fetchone()
        assert row["n"] == 0
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


@pytest.mark.parametrize("text", ["db_path: [unclosed\n", "- just\n- a list\n", "plain string\n"])
def test_unreadable_config_raises_config_error(monkeypatch, tmp_path, text):
    (tmp_path / "config.yaml").write_text(text, encoding="utf-8")
    monkeypatch.setattr(db, "_PROJECT_ROOT", str(tmp_path))
    with pytest.raises(ConfigError, match="invalid"):
        db.get_settings()
    # a ConfigError still reads as bad input to callers catching ValueError
    with pytest.raises(ValueError):
        db.get_db_path()
