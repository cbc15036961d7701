"""
StateStore Port - Interface for the engine's per-key learned state.

The engine keeps trained regression models, tuned smoothing parameters and
accuracy samples behind this port so the numerical core stays free of hidden
global state. The host picks the implementation and owns its lifetime,
locking and persistence.

Values are JSON-shaped dictionaries; the engine converts its models.
"""

from abc import ABC, abstractmethod
from typing import Any


class StateStore(ABC):
    """
    Abstract interface for keyed engine state.

    Implementations:
    - InMemoryStateStore: process-local dictionaries
    - RedisStateStore: shared Redis keys
    """

    @abstractmethod
    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        """
        Get a record.

        Args:
            namespace: Record family (e.g. "models", "parameters")
            key: Record key within the namespace

        Returns:
            The stored record, or None if absent
        """
        ...

    @abstractmethod
    def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        """
        Store a record, replacing any previous value wholesale.
        """
        ...

    @abstractmethod
    def delete(self, namespace: str, key: str) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if not found
        """
        ...

    @abstractmethod
    def append(self, namespace: str, key: str, item: dict[str, Any], max_length: int) -> None:
        """
        Append to a bounded list, dropping the oldest items beyond max_length.
        """
        ...

    @abstractmethod
    def get_list(self, namespace: str, key: str) -> list[dict[str, Any]]:
        """
        Get a bounded list, oldest first. Missing lists are empty.
        """
        ...

    @abstractmethod
    def clear(self, namespace: str | None = None) -> None:
        """
        Remove every record in a namespace, or all records if None.
        """
        ...
