"""Process-wide key/value memory (core domain).

Values live for the lifetime of the process. Persisting them between runs is
handled by a storage adapter through ``snapshot()`` and ``load()``.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

GLOBAL = "global"


class MemoryStore:
    """Key/value store partitioned into a global scope and named scopes.

    Named scopes are free-form strings; ``user()`` and ``room()`` build the
    conventional ``user:<id>`` / ``room:<id>`` names. No locking is done, so
    read-modify-write sequences rely on cycles for one conversation arriving
    in order.
    """

    def __init__(self) -> None:
        self._scopes: Dict[str, Dict[str, Any]] = {GLOBAL: {}}

    def get(self, key: str, scope: Optional[str] = None, default: Any = None) -> Any:
        return self._scopes.get(scope or GLOBAL, {}).get(key, default)

    def set(self, key: str, value: Any, scope: Optional[str] = None) -> None:
        self._scopes.setdefault(scope or GLOBAL, {})[key] = value

    def unset(self, key: str, scope: Optional[str] = None) -> None:
        self._scopes.get(scope or GLOBAL, {}).pop(key, None)

    def scope(self, name: Optional[str] = None) -> "MemoryScope":
        return MemoryScope(self, name or GLOBAL)

    def user(self, user_id: str) -> "MemoryScope":
        return self.scope(f"user:{user_id}")

    def room(self, room_id: str) -> "MemoryScope":
        return self.scope(f"room:{room_id}")

    @property
    def private(self) -> Dict[str, Any]:
        """Read-only copy of the global scope, handy for debug logging."""

        return dict(self._scopes[GLOBAL])

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Return a deep copy of every scope for persistence."""

        return copy.deepcopy(self._scopes)

    def load(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        """Merge a persisted snapshot over the current contents."""

        for scope, values in snapshot.items():
            self._scopes.setdefault(scope, {}).update(copy.deepcopy(values))

    def clear(self) -> None:
        self._scopes = {GLOBAL: {}}


class MemoryScope:
    """Bound view of a single memory scope."""

    def __init__(self, store: MemoryStore, name: str) -> None:
        self._store = store
        self.name = name

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, self.name, default)

    def set(self, key: str, value: Any) -> None:
        self._store.set(key, value, self.name)

    def unset(self, key: str) -> None:
        self._store.unset(key, self.name)
