"""Key-value persistence substrates for the record store."""
from .base import KeyValueSubstrate
from .memory import MemorySubstrate
from .sql import SqlSubstrate

__all__ = ["KeyValueSubstrate", "MemorySubstrate", "SqlSubstrate"]
