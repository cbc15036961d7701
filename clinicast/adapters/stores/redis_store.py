import json
import logging
from typing import Any

from redis import Redis

from clinicast.core.domain.settings import EngineSettings
from clinicast.core.ports.state_store import StateStore

logger = logging.getLogger(__name__)


class RedisStateStore(StateStore):
    """
    Redis-backed implementation of StateStore.
    Records are JSON strings; bounded lists are Redis lists trimmed on append.
    Shares engine state between API workers and Celery workers.
    """

    def __init__(self, settings: EngineSettings):
        self.settings = settings
        self.prefix = settings.redis_prefix
        self.client = Redis.from_url(settings.redis_url, decode_responses=True)

    def _record_key(self, namespace: str, key: str) -> str:
        return f"{self.prefix}:{namespace}:{key}"

    def _list_key(self, namespace: str, key: str) -> str:
        return f"{self.prefix}:{namespace}:{key}:ring"

    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        raw = self.client.get(self._record_key(namespace, key))
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        self.client.set(self._record_key(namespace, key), json.dumps(value))

    def delete(self, namespace: str, key: str) -> bool:
        removed = self.client.delete(self._record_key(namespace, key), self._list_key(namespace, key))
        return removed > 0

    def append(self, namespace: str, key: str, item: dict[str, Any], max_length: int) -> None:
        list_key = self._list_key(namespace, key)
        pipe = self.client.pipeline()
        pipe.rpush(list_key, json.dumps(item))
        pipe.ltrim(list_key, -max_length, -1)
        pipe.execute()

    def get_list(self, namespace: str, key: str) -> list[dict[str, Any]]:
        items = []
        for raw in self.client.lrange(self._list_key(namespace, key), 0, -1):
            try:
                items.append(json.loads(raw))
            except json.JSONDecodeError as e:
                logger.error(f"Skipping corrupt entry in {namespace}/{key}: {e}")
        return items

    def clear(self, namespace: str | None = None) -> None:
        pattern = f"{self.prefix}:{namespace}:*" if namespace else f"{self.prefix}:*"
        keys = list(self.client.scan_iter(match=pattern))
        if keys:
            self.client.delete(*keys)
        logger.info(f"Cleared {len(keys)} keys matching '{pattern}'")
