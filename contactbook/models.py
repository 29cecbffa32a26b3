from __future__ import annotations

from typing import Optional, List, Tuple
from pydantic import BaseModel, ConfigDict


# Allow-list of writable columns, in the order they are bound.
CONTACT_FIELDS = ("first_name", "last_name", "phone", "address")


class Contact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    first_name: str
    last_name: str
    phone: str
    address: str


class UpdateContactRequest(BaseModel):
    """Sparse patch: a field set to None is left unchanged."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def present_fields(self) -> List[Tuple[str, str]]:
        pairs = [(col, getattr(self, col)) for col in CONTACT_FIELDS]
        return [(col, v) for col, v in pairs if v is not None]
