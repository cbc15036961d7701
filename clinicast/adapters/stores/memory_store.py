"""
In-Memory State Store Adapter - Process-local engine state.
"""

import copy
import threading
from collections import defaultdict, deque
from typing import Any

from clinicast.core.ports.state_store import StateStore


class InMemoryStateStore(StateStore):
    """
    State store backed by dictionaries, guarded by a single lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._lists: dict[str, dict[str, deque]] = defaultdict(dict)

    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._records[namespace].get(key)
            return copy.deepcopy(value) if value is not None else None

    def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._records[namespace][key] = copy.deepcopy(value)

    def delete(self, namespace: str, key: str) -> bool:
        with self._lock:
            removed = self._records[namespace].pop(key, None) is not None
            removed = self._lists[namespace].pop(key, None) is not None or removed
            return removed

    def append(self, namespace: str, key: str, item: dict[str, Any], max_length: int) -> None:
        with self._lock:
            ring = self._lists[namespace].get(key)
            if ring is None or ring.maxlen != max_length:
                ring = deque(ring or (), maxlen=max_length)
                self._lists[namespace][key] = ring
            ring.append(copy.deepcopy(item))

    def get_list(self, namespace: str, key: str) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(list(self._lists[namespace].get(key, ())))

    def clear(self, namespace: str | None = None) -> None:
        with self._lock:
            if namespace is None:
                self._records.clear()
                self._lists.clear()
            else:
                self._records.pop(namespace, None)
                self._lists.pop(namespace, None)
