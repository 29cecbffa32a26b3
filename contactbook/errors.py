"""Error kinds raised by the contact data-access layer.

Store-specific "no match" signals (no row returned, zero rows affected) are
mapped onto NotFoundError; every sqlite3 failure is wrapped in StoreError with
the driver exception chained as __cause__.
"""
from __future__ import annotations


class ContactError(Exception):
    """Base for all contactbook errors."""


class ValidationError(ContactError, ValueError):
    """The request is invalid before any store interaction."""


class NotFoundError(ContactError, LookupError):
    def __init__(self, contact_id: str):
        super().__init__(f"contact not found with such id: {contact_id}")
        self.contact_id = contact_id


class StoreError(ContactError):
    """Failure surfaced by the underlying store."""


class ConfigError(ContactError, ValueError):
    """config.yaml cannot be read as a mapping of settings."""
