"""
In-process cache store.

Default CacheStore for a Registry: a plain dict of groups. Values are stored
as deep copies so callers mutating a returned row cannot corrupt the cache.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional


class MemoryCacheStore:
    """Grouped key/value store living for the lifetime of its Registry."""

    def __init__(self) -> None:
        self._groups: Dict[str, Dict[str, Any]] = {}

    def get(self, group: str, key: str) -> Optional[Any]:
        value = self._groups.get(group, {}).get(key)
        return copy.deepcopy(value)

    def set(self, group: str, key: str, value: Any) -> None:
        self._groups.setdefault(group, {})[key] = copy.deepcopy(value)

    def clear_key(self, group: str, key: str) -> None:
        self._groups.get(group, {}).pop(key, None)

    def clear_group(self, group: str) -> None:
        self._groups.pop(group, None)

    def __contains__(self, item: tuple) -> bool:
        group, key = item
        return key in self._groups.get(group, {})


__all__ = ["MemoryCacheStore"]
