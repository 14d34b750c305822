"""Interface shared by the key-value persistence substrates."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional


class KeyValueSubstrate(ABC):
    """
    Minimal string key -> string value storage, modelled on browser
    local storage.

    Implementations raise PersistenceUnavailable on any I/O failure and
    never return partially written values.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete key if present."""

    @abstractmethod
    def keys(self) -> Iterable[str]:
        """Return all stored keys."""

    def close(self) -> None:
        """Release any underlying resources."""
