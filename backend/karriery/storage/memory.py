"""In-process substrate used for tests and throwaway sessions."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..exceptions import PersistenceUnavailable
from .base import KeyValueSubstrate


class MemorySubstrate(KeyValueSubstrate):
    """
    Dict-backed storage with an optional byte quota.

    When quota is set, a write that would push the total stored size
    (keys + values, UTF-8) over it fails the way a full browser storage
    area does.
    """

    def __init__(self, quota: Optional[int] = None) -> None:
        self._data: Dict[str, str] = {}
        self.quota = quota

    def _size_with(self, key: str, value: str) -> int:
        total = 0
        for k, v in self._data.items():
            if k == key:
                continue
            total += len(k.encode("utf-8")) + len(v.encode("utf-8"))
        return total + len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None and self._size_with(key, value) > self.quota:
            raise PersistenceUnavailable(f"Storage quota exceeded while writing '{key}'")
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())
