from __future__ import annotations

# contactbook/db.py
import sqlite3
from contextlib import contextmanager
from typing import Iterator
import os
import yaml

from .errors import ConfigError

# DB path resolution order:
# 1) CONTACTBOOK_DB_PATH env var (highest priority)
# 2) config.yaml test_db_path (when running under tests)
# 3) config.yaml db_path
# 4) fallback: contacts.db in the project root
_PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
_ROOT_DB = os.path.join(_PROJECT_ROOT, "contacts.db")

DEFAULT_PAGE_SIZE = 50
DEFAULT_LOG_LEVEL = "INFO"


def _read_config_yaml() -> dict:
    cfg_path = os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid {cfg_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"invalid {cfg_path}: expected a mapping of settings")
    out = {}
    for k in ("db_path", "test_db_path", "log_level"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = v.strip()
    if isinstance(cfg.get("page_size"), int) and cfg["page_size"] > 0:
        out["page_size"] = cfg["page_size"]
    return out


def get_settings() -> dict:
    """Non-path settings from config.yaml, with defaults filled in."""
    cfg = _read_config_yaml()
    return {
        "page_size": cfg.get("page_size", DEFAULT_PAGE_SIZE),
        "log_level": cfg.get("log_level", DEFAULT_LOG_LEVEL).upper(),
    }


def get_db_path(_: str | None = None) -> str:
    env_path = os.environ.get("CONTACTBOOK_DB_PATH")
    cfg = _read_config_yaml()
    cfg_db = cfg.get("db_path")
    cfg_test = cfg.get("test_db_path")
    is_test = (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)

    if env_path:
        path = env_path
    elif is_test and cfg_test:
        path = cfg_test
    elif cfg_db:
        path = cfg_db
    else:
        path = _ROOT_DB

    # make sure the parent directory exists
    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Open a SQLite connection. An explicit db_path wins, otherwise get_db_path().
    Row factory is sqlite3.Row; the connection is always closed on exit.
    """
    path = db_path or get_db_path()
    conn = sqlite3.connect(
        path,
        detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        check_same_thread=False,
        isolation_level=None,
    )
    try:
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()

