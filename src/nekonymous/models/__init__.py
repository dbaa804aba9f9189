"""SQLAlchemy models for the Nekonymous application."""

from .kv_entry import KVEntry

__all__ = ["KVEntry"]
