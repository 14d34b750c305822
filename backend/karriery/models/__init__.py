"""SQLAlchemy models used by the SQL storage substrate."""
from .base import Base
from .kv_entry import KeyValueEntry

__all__ = ["Base", "KeyValueEntry"]
