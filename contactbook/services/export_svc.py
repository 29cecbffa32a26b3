from __future__ import annotations

import pandas as pd

from ..db import get_conn
from ..repository import ContactRepository

EXPORT_COLUMNS = ["id", "first_name", "last_name", "phone", "address"]


def contacts_frame() -> pd.DataFrame:
    """All contacts ordered by id, as a DataFrame."""
    with get_conn() as conn:
        # negative LIMIT: no limit
        rows = [c.model_dump() for c in ContactRepository(conn).list(-1, 0)]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_contacts_csv(path: str) -> int:
    df = contacts_frame()
    df.to_csv(path, index=False, encoding="utf-8")
    return len(df)
