"""Repository layer: DB access helpers (SQLite).

Keep classes thin and focused, so services avoid SQL strings.
"""
from __future__ import annotations

from .contact_repo import ContactRepository

__all__ = ["ContactRepository"]
